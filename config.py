"""
Bot Configuration
"""

import os
import re
from dotenv import load_dotenv

load_dotenv()

def _parse_hex_color(value: str | None, default: int) -> int:
    if not value:
        return default
    s = value.strip()
    if s.startswith("#"):
        s = s[1:]
    if s.lower().startswith("0x"):
        s = s[2:]
    try:
        return int(s, 16)
    except ValueError:
        return default


def _parse_int(value: str | None, default: int) -> int:
    if not value:
        return default
    try:
        return int(value.strip())
    except ValueError:
        return default


def _parse_id_set(value: str | None) -> frozenset[int]:
    """`OWNER_IDS=1,2 3` -> {1, 2, 3}; junk entries are skipped"""
    ids = set()
    for part in re.split(r"[,\s]+", (value or "").strip()):
        if part.isdecimal():
            ids.add(int(part))
    return frozenset(ids)


class Config:
    # Bot Token
    TOKEN = os.getenv('DISCORD_TOKEN')
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
    OWNER_IDS = _parse_id_set(os.getenv("OWNER_IDS") or os.getenv("OWNER_ID"))

    # Storage
    DATABASE_PATH = os.getenv("DATABASE_PATH", "kingsbot.db")

    # Global embed side color (set `EMBED_ACCENT_COLOR` to a hex like `#A020F0`)
    EMBED_ACCENT_COLOR = _parse_hex_color(os.getenv("EMBED_ACCENT_COLOR"), 0x5865F2)
    COLOR_BRAND = EMBED_ACCENT_COLOR
    COLOR_GOLD = 0xF1C40F

    # Channels
    RULES_CHANNEL_ID = _parse_int(os.getenv("RULES_CHANNEL_ID"), 0)
    # Parent of reopenable tickets: the support channel the ticket threads live in
    SUPPORT_CHANNEL_ID = _parse_int(os.getenv("SUPPORT_CHANNEL_ID"), 0)

    # Support threads (minutes; Discord accepts 60, 1440, 4320, 10080)
    THREAD_AUTO_ARCHIVE_MINUTES = _parse_int(os.getenv("THREAD_AUTO_ARCHIVE_MINUTES"), 10080)
    THREAD_NAME_MAX_LENGTH = 100

    # Gold stars
    FREE_STAR_COOLDOWN_HOURS = _parse_int(os.getenv("FREE_STAR_COOLDOWN_HOURS"), 24)

    # Infractions younger than this count as "recent"
    INFRACTION_RECENT_DAYS = _parse_int(os.getenv("INFRACTION_RECENT_DAYS"), 182)

    # Emojis
    EMOJI_SUCCESS = "✅"
    EMOJI_ERROR = "❌"
    EMOJI_WARNING = "⚠️"
    EMOJI_INFO = "ℹ️"
    EMOJI_STAR = "⭐"
