import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from services.stars_service import StarAccount, StarService
from utils.errors import InsufficientBalance, InvalidInput

GIVER = 1001
RECIPIENT = 2002
COOLDOWN = timedelta(hours=24)
NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def stars(db):
    return StarService(db)


async def _seed(db, user_id, stars=0, given=0, last_free=None):
    await db.execute(
        "INSERT INTO gold_stars (id, number_of_stars, given_stars, last_free_star) VALUES (?, ?, ?, ?)",
        (user_id, stars, given, last_free.isoformat() if last_free else None),
    )


class TestAccounts:
    async def test_missing_account_is_none(self, stars):
        assert await stars.get_account(GIVER) is None

    async def test_get_or_create_starts_at_zero(self, stars):
        account = await stars.get_or_create_account(GIVER)
        assert account == StarAccount(user_id=GIVER)

    async def test_concurrent_creation_makes_one_row(self, db, stars):
        accounts = await asyncio.gather(*(stars.get_or_create_account(GIVER) for _ in range(10)))

        assert all(a.number_of_stars == 0 for a in accounts)
        row = await db.fetchone("SELECT COUNT(*) AS n FROM gold_stars WHERE id = ?", (GIVER,))
        assert row["n"] == 1


class TestTransfer:
    async def test_paid_transfer_with_insufficient_balance_changes_nothing(self, db, stars):
        await _seed(db, GIVER, stars=5)

        with pytest.raises(InsufficientBalance) as exc:
            await stars.transfer_star(GIVER, 10, False)

        assert exc.value.balance == 5
        assert exc.value.requested == 10
        account = await stars.get_account(GIVER)
        assert account.number_of_stars == 5
        assert account.given_stars == 0

    async def test_paid_transfer_deducts_balance(self, db, stars):
        await _seed(db, GIVER, stars=5, given=2)

        await stars.transfer_star(GIVER, 3, False)

        account = await stars.get_account(GIVER)
        assert account.number_of_stars == 2
        assert account.given_stars == 5
        assert account.last_free_star is None

    async def test_free_transfer_keeps_balance(self, db, stars):
        await _seed(db, GIVER, stars=4)

        await stars.transfer_star(GIVER, 1, True, now=NOW)

        account = await stars.get_account(GIVER)
        assert account.number_of_stars == 4
        assert account.given_stars == 1
        assert account.last_free_star == NOW

    async def test_refused_paid_transfer_creates_no_account(self, stars):
        with pytest.raises(InsufficientBalance) as exc:
            await stars.transfer_star(GIVER, 1, False)

        assert exc.value.balance == 0
        assert await stars.get_account(GIVER) is None

    async def test_concurrent_paid_transfers_never_overdraw(self, db, stars):
        await _seed(db, GIVER, stars=3)

        results = await asyncio.gather(
            *(stars.transfer_star(GIVER, 1, False) for _ in range(5)),
            return_exceptions=True,
        )

        failures = [r for r in results if isinstance(r, InsufficientBalance)]
        assert len(failures) == 2
        account = await stars.get_account(GIVER)
        assert account.number_of_stars == 0
        assert account.given_stars == 3

    async def test_receive_star(self, stars):
        await stars.receive_star(RECIPIENT, 2)
        await stars.receive_star(RECIPIENT, 1)

        account = await stars.get_account(RECIPIENT)
        assert account.number_of_stars == 3
        assert account.received_stars == 3

    @pytest.mark.parametrize("amount", [0, -1, 1.5, True])
    async def test_invalid_amounts(self, stars, amount):
        with pytest.raises(InvalidInput):
            await stars.transfer_star(GIVER, amount, False)
        with pytest.raises(InvalidInput):
            await stars.receive_star(RECIPIENT, amount)


class TestGiveStar:
    async def test_first_star_is_free_then_paid(self, stars):
        await stars.receive_star(GIVER, 2)

        first = await stars.give_star(GIVER, RECIPIENT, cooldown=COOLDOWN, now=NOW)
        second = await stars.give_star(GIVER, RECIPIENT, cooldown=COOLDOWN, now=NOW + timedelta(hours=1))

        assert first.was_free is True
        assert first.giver.number_of_stars == 2
        assert second.was_free is False
        assert second.giver.number_of_stars == 1
        assert second.giver.given_stars == 2
        assert second.recipient.number_of_stars == 2

    async def test_free_again_after_cooldown(self, stars):
        await stars.give_star(GIVER, RECIPIENT, cooldown=COOLDOWN, now=NOW)
        gift = await stars.give_star(GIVER, RECIPIENT, cooldown=COOLDOWN, now=NOW + COOLDOWN)
        assert gift.was_free is True

    async def test_paid_without_balance_leaves_recipient_untouched(self, stars):
        await stars.give_star(GIVER, RECIPIENT, cooldown=COOLDOWN, now=NOW)

        with pytest.raises(InsufficientBalance):
            await stars.give_star(GIVER, RECIPIENT, cooldown=COOLDOWN, now=NOW + timedelta(minutes=5))

        recipient = await stars.get_account(RECIPIENT)
        assert recipient.number_of_stars == 1

    async def test_refused_gift_creates_no_recipient_account(self, stars):
        await stars.give_star(GIVER, RECIPIENT, cooldown=COOLDOWN, now=NOW)

        with pytest.raises(InsufficientBalance):
            await stars.give_star(GIVER, 3003, cooldown=COOLDOWN, now=NOW + timedelta(minutes=5))

        assert await stars.get_account(3003) is None

    async def test_concurrent_paid_gifts_charge_and_credit_together(self, db, stars):
        await _seed(db, GIVER, stars=1, last_free=NOW)
        later = NOW + timedelta(hours=1)

        results = await asyncio.gather(
            *(stars.give_star(GIVER, RECIPIENT, cooldown=COOLDOWN, now=later) for _ in range(3)),
            return_exceptions=True,
        )

        assert sum(isinstance(r, InsufficientBalance) for r in results) == 2
        giver = await stars.get_account(GIVER)
        recipient = await stars.get_account(RECIPIENT)
        assert (giver.number_of_stars, giver.given_stars) == (0, 1)
        assert (recipient.number_of_stars, recipient.received_stars) == (1, 1)
        assert giver.last_free_star == NOW

    async def test_cannot_give_to_self(self, stars):
        with pytest.raises(InvalidInput):
            await stars.give_star(GIVER, GIVER, cooldown=COOLDOWN, now=NOW)


class TestStarAccount:
    def test_never_used_free_star_is_available(self):
        account = StarAccount(user_id=GIVER)
        assert account.next_free_star_at(COOLDOWN) is None
        assert account.free_star_available(COOLDOWN, NOW)

    def test_cooldown_window(self):
        account = StarAccount(user_id=GIVER, last_free_star=NOW)
        assert account.next_free_star_at(COOLDOWN) == NOW + COOLDOWN
        assert not account.free_star_available(COOLDOWN, NOW + timedelta(hours=23))
        assert account.free_star_available(COOLDOWN, NOW + COOLDOWN)
