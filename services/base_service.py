# services/base_service.py
import logging
from abc import ABC

from database import Database


class BaseService(ABC):
    """
    The abstract base class for all logical services.
    Provides standard access to the Database and Logger.
    """
    def __init__(self, db: Database, service_name: str):
        self.db = db
        self.logger = logging.getLogger(f"KingsBot.Services.{service_name}")
        self.logger.debug(f"Service '{service_name}' initialized.")

    async def _ensure_record(self, table: str, key_col: str, key_val: int) -> bool:
        """
        Insert a row holding only its key if none exists yet.
        A single conflict-tolerant INSERT, so concurrent first calls create one row.
        Returns True when this call created the row.
        """
        created = await self.db.execute(
            f"INSERT INTO {table} ({key_col}) VALUES (?) ON CONFLICT ({key_col}) DO NOTHING",
            (key_val,),
        )
        if created:
            self.logger.info(f"Created new record in {table} for ID {key_val}")
        return bool(created)
