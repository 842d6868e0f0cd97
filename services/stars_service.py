# services/stars_service.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from database import Database
from services.base_service import BaseService
from utils.errors import InsufficientBalance, InvalidInput


def _parse_timestamp(value: Any) -> Optional[datetime]:
    if value is None or isinstance(value, datetime):
        return value
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass
class StarAccount:
    user_id: int
    number_of_stars: int = 0
    given_stars: int = 0
    received_stars: int = 0
    last_free_star: Optional[datetime] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "StarAccount":
        return cls(
            user_id=row["id"],
            number_of_stars=row["number_of_stars"],
            given_stars=row["given_stars"],
            received_stars=row["received_stars"],
            last_free_star=_parse_timestamp(row["last_free_star"]),
        )

    def next_free_star_at(self, cooldown: timedelta) -> Optional[datetime]:
        if self.last_free_star is None:
            return None
        return self.last_free_star + cooldown

    def free_star_available(self, cooldown: timedelta, now: Optional[datetime] = None) -> bool:
        next_at = self.next_free_star_at(cooldown)
        if next_at is None:
            return True
        return (now or datetime.now(timezone.utc)) >= next_at


@dataclass
class StarGift:
    was_free: bool
    giver: StarAccount
    recipient: StarAccount


class StarService(BaseService):
    """
    Gold star ledger.

    Every balance change is one UPDATE statement. Paid transfers carry the
    balance check in their WHERE clause, so concurrent transfers can never push
    a balance below zero. The ledger does not enforce the free-star cooldown;
    callers check `StarAccount.free_star_available` first (see `give_star`).
    """

    def __init__(self, db: Database):
        super().__init__(db, "stars")

    @staticmethod
    def _check_amount(amount: int) -> int:
        if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
            raise InvalidInput(f"Star amount must be a positive whole number, got {amount!r}.")
        return amount

    async def get_account(self, user_id: int) -> Optional[StarAccount]:
        row = await self.db.fetchone(
            "SELECT * FROM gold_stars WHERE id = ?", (self.db.to_db_id(user_id),)
        )
        return StarAccount.from_row(row) if row else None

    async def get_or_create_account(self, user_id: int) -> StarAccount:
        user_id = self.db.to_db_id(user_id)
        await self._ensure_record("gold_stars", "id", user_id)
        return await self.get_account(user_id)

    async def _raise_insufficient(self, user_id: int, amount: int) -> None:
        account = await self.get_account(user_id)
        raise InsufficientBalance(user_id, amount, account.number_of_stars if account else 0)

    async def transfer_star(
        self,
        giver_id: int,
        amount: int,
        is_free: bool,
        *,
        now: Optional[datetime] = None,
    ) -> None:
        """Record stars given away; paid transfers are deducted from the balance"""
        giver_id = self.db.to_db_id(giver_id)
        amount = self._check_amount(amount)

        if is_free:
            await self._ensure_record("gold_stars", "id", giver_id)
            stamp = (now or datetime.now(timezone.utc)).isoformat()
            await self.db.execute(
                "UPDATE gold_stars SET given_stars = given_stars + ?, last_free_star = ? WHERE id = ?",
                (amount, stamp, giver_id),
            )
            self.logger.info(f"⭐ {giver_id} used a free star ({amount})")
            return

        # A missing account has a zero balance, so nothing is created on refusal.
        updated = await self.db.execute(
            """
            UPDATE gold_stars
            SET number_of_stars = number_of_stars - ?, given_stars = given_stars + ?
            WHERE id = ? AND number_of_stars >= ?
            """,
            (amount, amount, giver_id, amount),
        )
        if not updated:
            await self._raise_insufficient(giver_id, amount)
        self.logger.info(f"⭐ {giver_id} spent {amount} star(s)")

    async def receive_star(self, recipient_id: int, amount: int) -> None:
        recipient_id = self.db.to_db_id(recipient_id)
        amount = self._check_amount(amount)
        await self._ensure_record("gold_stars", "id", recipient_id)
        await self.db.execute(
            """
            UPDATE gold_stars
            SET number_of_stars = number_of_stars + ?, received_stars = received_stars + ?
            WHERE id = ?
            """,
            (amount, amount, recipient_id),
        )

    async def give_star(
        self,
        giver_id: int,
        recipient_id: int,
        *,
        cooldown: timedelta,
        now: Optional[datetime] = None,
    ) -> StarGift:
        """
        Give one star: free when the giver's cooldown has elapsed, otherwise
        paid from their balance.

        Both sides of the gift are one UPDATE over the two account rows, so the
        giver is never charged without the recipient being credited. A paid gift
        the giver can't afford raises InsufficientBalance before any write.
        """
        giver_id = self.db.to_db_id(giver_id)
        recipient_id = self.db.to_db_id(recipient_id)
        if giver_id == recipient_id:
            raise InvalidInput("You can't give a star to yourself.")

        now = now or datetime.now(timezone.utc)
        giver = await self.get_account(giver_id) or StarAccount(user_id=giver_id)
        is_free = giver.free_star_available(cooldown, now)
        cost = 0 if is_free else 1
        if giver.number_of_stars < cost:
            raise InsufficientBalance(giver_id, cost, giver.number_of_stars)

        await self._ensure_record("gold_stars", "id", giver_id)
        await self._ensure_record("gold_stars", "id", recipient_id)
        updated = await self.db.execute(
            """
            UPDATE gold_stars
            SET number_of_stars = number_of_stars
                    + (CASE WHEN id = ? THEN 1 ELSE 0 END)
                    - (CASE WHEN id = ? THEN ? ELSE 0 END),
                given_stars = given_stars + (CASE WHEN id = ? THEN 1 ELSE 0 END),
                received_stars = received_stars + (CASE WHEN id = ? THEN 1 ELSE 0 END),
                last_free_star = CASE WHEN id = ? AND ? THEN ? ELSE last_free_star END
            WHERE id IN (?, ?)
              AND (SELECT number_of_stars FROM gold_stars WHERE id = ?) >= ?
            """,
            (
                recipient_id,
                giver_id, cost,
                giver_id,
                recipient_id,
                giver_id, int(is_free), now.isoformat(),
                giver_id, recipient_id,
                giver_id, cost,
            ),
        )
        if updated != 2:
            # Balance spent by a concurrent gift between the read and the write.
            await self._raise_insufficient(giver_id, cost)

        self.logger.info(f"⭐ {giver_id} gave {recipient_id} a {'free' if is_free else 'paid'} star")
        return StarGift(
            was_free=is_free,
            giver=await self.get_account(giver_id),
            recipient=await self.get_account(recipient_id),
        )
