"""
Database Handler - SQLite storage for tickets, stars, FAQ, rules and infractions
Every write is a single statement on an autocommit connection
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, List, Dict, Any, Iterable

import aiosqlite

from config import Config
from utils.errors import ConversionError, NotFound, PersistenceFailure

logger = logging.getLogger("KingsBot.Database")

# SQLite INTEGER is a signed 64-bit value; Discord snowflakes are unsigned.
MAX_DB_ID = 2**63 - 1

CHANNEL_CATEGORIES = ("support", "spoiler")
ROLE_CATEGORIES = ("support",)


SCHEMA = [
    """
    CREATE TABLE IF NOT EXISTS servers (
        id INTEGER PRIMARY KEY,
        support_thread_id INTEGER NOT NULL DEFAULT 0 CHECK (support_thread_id >= 0)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS channels (
        id INTEGER NOT NULL,
        guild_id INTEGER NOT NULL,
        category TEXT NOT NULL,
        PRIMARY KEY (id, category)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS roles (
        id INTEGER NOT NULL,
        guild_id INTEGER NOT NULL,
        category TEXT NOT NULL,
        PRIMARY KEY (id, category)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS gold_stars (
        id INTEGER PRIMARY KEY,
        number_of_stars INTEGER NOT NULL DEFAULT 0 CHECK (number_of_stars >= 0),
        given_stars INTEGER NOT NULL DEFAULT 0,
        received_stars INTEGER NOT NULL DEFAULT 0,
        last_free_star TEXT
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS support_faq (
        id TEXT NOT NULL,
        guild_id INTEGER NOT NULL,
        answer TEXT NOT NULL,
        PRIMARY KEY (id, guild_id)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS server_rules (
        rule_id TEXT NOT NULL,
        guild_id INTEGER NOT NULL,
        rule_text TEXT NOT NULL,
        PRIMARY KEY (rule_id, guild_id)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS infractions (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        user_id INTEGER NOT NULL,
        username TEXT NOT NULL,
        guild_id INTEGER NOT NULL,
        infraction_type TEXT NOT NULL,
        moderator_id INTEGER NOT NULL,
        moderator_username TEXT NOT NULL,
        points INTEGER NOT NULL DEFAULT 1,
        reason TEXT NOT NULL DEFAULT 'No reason provided',
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    )
    """,
    """
    CREATE INDEX IF NOT EXISTS idx_channels_guild_category
    ON channels(guild_id, category)
    """,
    """
    CREATE INDEX IF NOT EXISTS idx_roles_guild_category
    ON roles(guild_id, category)
    """,
    """
    CREATE INDEX IF NOT EXISTS idx_infractions_user
    ON infractions(user_id, created_at)
    """,
]


@dataclass
class Infraction:
    user_id: int
    username: str
    guild_id: int
    infraction_type: str
    moderator_id: int
    moderator_username: str
    points: int = 1
    reason: str = "No reason provided"
    id: Optional[int] = None
    created_at: Optional[datetime] = field(default=None, compare=False)

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Infraction":
        created_at = row.get("created_at")
        if isinstance(created_at, str):
            created_at = datetime.fromisoformat(created_at).replace(tzinfo=timezone.utc)
        return cls(
            id=row["id"],
            user_id=row["user_id"],
            username=row["username"],
            guild_id=row["guild_id"],
            infraction_type=row["infraction_type"],
            moderator_id=row["moderator_id"],
            moderator_username=row["moderator_username"],
            points=row["points"],
            reason=row["reason"],
            created_at=created_at,
        )


class Database:
    """
    Persistence gateway shared by every cog and service:
    - One persistent aiosqlite connection per process, opened lazily
    - Autocommit mode, so each statement is its own transaction
    - Parameterized execute/fetch helpers returning plain dicts
    - aiosqlite errors surface as PersistenceFailure
    """

    def __init__(self, db_path: Optional[str] = None) -> None:
        self.db_path = db_path or Config.DATABASE_PATH
        self._lock = asyncio.Lock()
        self._pool: Optional[aiosqlite.Connection] = None

    async def init_pool(self) -> None:
        """Open the shared connection and create the schema"""
        async with self._lock:
            if self._pool is not None:
                return
            try:
                conn = await aiosqlite.connect(self.db_path, isolation_level=None)
                conn.row_factory = aiosqlite.Row
                await conn.execute("PRAGMA journal_mode=WAL")
                await conn.execute("PRAGMA synchronous=NORMAL")
                await conn.execute("PRAGMA busy_timeout=5000")
                for statement in SCHEMA:
                    await conn.execute(statement)
            except aiosqlite.Error as e:
                raise PersistenceFailure(f"Failed to open database: {e}") from e
            self._pool = conn
            logger.info(f"✅ Database ready at {self.db_path}")

    @asynccontextmanager
    async def get_connection(self):
        """Borrow the shared connection; store errors are re-raised as PersistenceFailure"""
        if self._pool is None:
            await self.init_pool()
        try:
            yield self._pool
        except aiosqlite.Error as e:
            logger.error(f"Database error: {e}")
            raise PersistenceFailure(str(e)) from e

    async def close(self) -> None:
        """Close database connections"""
        if self._pool is not None:
            await self._pool.close()
            self._pool = None
        logger.info("🗄️ Database cleanup complete")

    # ==================== VALIDATION ====================

    @staticmethod
    def to_db_id(value: Any) -> int:
        """Convert a snowflake (or object with .id) to a storable integer"""
        raw = getattr(value, "id", value)
        if isinstance(raw, bool):
            raise ConversionError(f"Invalid identifier: {raw!r}")
        try:
            number = int(raw)
        except (TypeError, ValueError):
            raise ConversionError(f"Invalid identifier: {raw!r}") from None
        if number <= 0 or number > MAX_DB_ID:
            raise ConversionError(f"Identifier out of range: {number}")
        return number

    @classmethod
    def _validate_guild_id(cls, guild_id: int) -> int:
        return cls.to_db_id(guild_id)

    @classmethod
    def _validate_user_id(cls, user_id: int) -> int:
        return cls.to_db_id(user_id)

    # ==================== GATEWAY ====================

    async def execute(self, sql: str, params: Iterable[Any] = ()) -> int:
        """Run one statement and return the affected row count"""
        async with self.get_connection() as db:
            async with db.execute(sql, tuple(params)) as cursor:
                return cursor.rowcount

    async def execute_returning_id(self, sql: str, params: Iterable[Any] = ()) -> int:
        async with self.get_connection() as db:
            async with db.execute(sql, tuple(params)) as cursor:
                return cursor.lastrowid

    async def fetchone(self, sql: str, params: Iterable[Any] = ()) -> Optional[Dict[str, Any]]:
        async with self.get_connection() as db:
            rows = await db.execute_fetchall(sql, tuple(params))
        rows = list(rows)
        return dict(rows[0]) if rows else None

    async def fetchall(self, sql: str, params: Iterable[Any] = ()) -> List[Dict[str, Any]]:
        async with self.get_connection() as db:
            rows = await db.execute_fetchall(sql, tuple(params))
        return [dict(r) for r in rows]

    # ==================== CHANNELS & ROLES ====================

    async def _category_ids(self, table: str, guild_id: int, category: str) -> List[int]:
        guild_id = self._validate_guild_id(guild_id)
        rows = await self.fetchall(
            f"SELECT id FROM {table} WHERE guild_id = ? AND category = ? ORDER BY rowid",
            (guild_id, category),
        )
        return [r["id"] for r in rows]

    async def get_support_channel_ids(self, guild_id: int) -> List[int]:
        """Support channels in the order they were configured"""
        return await self._category_ids("channels", guild_id, "support")

    async def get_spoiler_channel_ids(self, guild_id: int) -> List[int]:
        return await self._category_ids("channels", guild_id, "spoiler")

    async def get_support_role_ids(self, guild_id: int) -> List[int]:
        return await self._category_ids("roles", guild_id, "support")

    async def add_channel(self, guild_id: int, channel_id: int, category: str = "support") -> bool:
        if category not in CHANNEL_CATEGORIES:
            raise ValueError(f"Unknown channel category: {category}")
        count = await self.execute(
            "INSERT INTO channels (id, guild_id, category) VALUES (?, ?, ?) ON CONFLICT DO NOTHING",
            (self.to_db_id(channel_id), self._validate_guild_id(guild_id), category),
        )
        return count > 0

    async def remove_channel(self, guild_id: int, channel_id: int, category: str = "support") -> bool:
        count = await self.execute(
            "DELETE FROM channels WHERE id = ? AND guild_id = ? AND category = ?",
            (self.to_db_id(channel_id), self._validate_guild_id(guild_id), category),
        )
        return count > 0

    async def add_role(self, guild_id: int, role_id: int, category: str = "support") -> bool:
        if category not in ROLE_CATEGORIES:
            raise ValueError(f"Unknown role category: {category}")
        count = await self.execute(
            "INSERT INTO roles (id, guild_id, category) VALUES (?, ?, ?) ON CONFLICT DO NOTHING",
            (self.to_db_id(role_id), self._validate_guild_id(guild_id), category),
        )
        return count > 0

    async def remove_role(self, guild_id: int, role_id: int, category: str = "support") -> bool:
        count = await self.execute(
            "DELETE FROM roles WHERE id = ? AND guild_id = ? AND category = ?",
            (self.to_db_id(role_id), self._validate_guild_id(guild_id), category),
        )
        return count > 0

    # ==================== SUPPORT FAQ ====================

    async def get_support_answer(self, guild_id: int, support_id: str) -> str:
        row = await self.fetchone(
            "SELECT answer FROM support_faq WHERE id = ? AND guild_id = ?",
            (support_id, self._validate_guild_id(guild_id)),
        )
        if row is None:
            raise NotFound(f"No FAQ entry called `{support_id}`.")
        return row["answer"]

    async def get_all_support_faq(self, guild_id: int) -> List[Dict[str, Any]]:
        return await self.fetchall(
            "SELECT id, guild_id, answer FROM support_faq WHERE guild_id = ? ORDER BY id",
            (self._validate_guild_id(guild_id),),
        )

    async def create_support_faq(self, guild_id: int, support_id: str, answer: str) -> None:
        """Create or replace an FAQ answer"""
        await self.execute(
            """
            INSERT INTO support_faq (id, guild_id, answer) VALUES (?, ?, ?)
            ON CONFLICT (id, guild_id) DO UPDATE SET answer = excluded.answer
            """,
            (support_id, self._validate_guild_id(guild_id), answer),
        )

    async def delete_support_faq(self, guild_id: int, support_id: str) -> bool:
        count = await self.execute(
            "DELETE FROM support_faq WHERE id = ? AND guild_id = ?",
            (support_id, self._validate_guild_id(guild_id)),
        )
        return count > 0

    # ==================== RULES ====================

    async def get_rule(self, guild_id: int, rule_id: str) -> str:
        row = await self.fetchone(
            "SELECT rule_text FROM server_rules WHERE rule_id = ? AND guild_id = ?",
            (rule_id, self._validate_guild_id(guild_id)),
        )
        if row is None:
            raise NotFound(f"Rule `{rule_id}` does not exist.")
        return row["rule_text"]

    async def get_rules(self, guild_id: int) -> List[Dict[str, Any]]:
        """All rules, numeric ids sorted numerically"""
        rows = await self.fetchall(
            "SELECT rule_id, rule_text FROM server_rules WHERE guild_id = ?",
            (self._validate_guild_id(guild_id),),
        )
        return sorted(
            rows,
            key=lambda r: (0, int(r["rule_id"]), "") if r["rule_id"].isdecimal() else (1, 0, r["rule_id"]),
        )

    async def set_rule(self, guild_id: int, rule_id: str, rule_text: str) -> None:
        await self.execute(
            """
            INSERT INTO server_rules (rule_id, guild_id, rule_text) VALUES (?, ?, ?)
            ON CONFLICT (rule_id, guild_id) DO UPDATE SET rule_text = excluded.rule_text
            """,
            (rule_id, self._validate_guild_id(guild_id), rule_text),
        )

    # ==================== INFRACTIONS ====================

    async def get_user_infractions(
        self, user_id: int, recent: bool = False, *, recent_days: Optional[int] = None
    ) -> List[Infraction]:
        """Infractions for a user, newest first; `recent` limits to the configured window"""
        user_id = self._validate_user_id(user_id)
        if recent:
            days = recent_days if recent_days is not None else Config.INFRACTION_RECENT_DAYS
            rows = await self.fetchall(
                """
                SELECT * FROM infractions
                WHERE user_id = ? AND created_at > datetime('now', ?)
                ORDER BY created_at DESC, id DESC
                """,
                (user_id, f"-{int(days)} days"),
            )
        else:
            rows = await self.fetchall(
                "SELECT * FROM infractions WHERE user_id = ? ORDER BY created_at DESC, id DESC",
                (user_id,),
            )
        return [Infraction.from_row(r) for r in rows]

    async def create_user_infraction(self, infraction: Infraction) -> int:
        return await self.execute_returning_id(
            """
            INSERT INTO infractions
            (user_id, username, guild_id, infraction_type, moderator_id, moderator_username, points, reason)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                self._validate_user_id(infraction.user_id),
                infraction.username,
                self._validate_guild_id(infraction.guild_id),
                infraction.infraction_type,
                self._validate_user_id(infraction.moderator_id),
                infraction.moderator_username,
                infraction.points,
                infraction.reason,
            ),
        )
