"""
Embed helpers
"""

import discord
from typing import Optional

from config import Config
from utils.errors import BotError


class Colors:
    """Color constants for embeds"""
    ACCENT = Config.EMBED_ACCENT_COLOR
    SUCCESS = 0x22C55E
    ERROR = 0xEF4444
    WARNING = 0xF59E0B
    INFO = 0x2563EB
    GOLD = Config.COLOR_GOLD


class ModEmbed:
    """
    One-line status embeds: a bold header with an icon, then the body as a
    block quote, e.g.

        ✅ **FAQ Saved**
        > FAQ entry `crash` saved.
    """

    @staticmethod
    def _header(icon: str, title: str) -> str:
        # Titles may already start with an emoji; keep only one icon.
        title = (title or "").strip()
        while title and not title[0].isalnum() and not title.startswith("<"):
            title = title[1:].lstrip()
        return f"{icon} **{title or 'Update'}**"

    @staticmethod
    def _body(description: Optional[str]) -> str:
        lines = [line.strip() for line in (description or "").splitlines() if line.strip()]
        return "\n".join(f"> {line}" for line in lines)

    @classmethod
    def _build(cls, icon: str, color: int, title: str, description: Optional[str]) -> discord.Embed:
        body = cls._body(description)
        header = cls._header(icon, title)
        return discord.Embed(description=f"{header}\n{body}" if body else header, color=color)

    @classmethod
    def success(cls, title: str, description: Optional[str] = None) -> discord.Embed:
        return cls._build(Config.EMOJI_SUCCESS, Colors.SUCCESS, title, description)

    @classmethod
    def error(cls, title: str, description: Optional[str] = None) -> discord.Embed:
        return cls._build(Config.EMOJI_ERROR, Colors.ERROR, title, description)

    @classmethod
    def warning(cls, title: str, description: Optional[str] = None) -> discord.Embed:
        return cls._build(Config.EMOJI_WARNING, Colors.WARNING, title, description)

    @classmethod
    def info(cls, title: str, description: Optional[str] = None) -> discord.Embed:
        return cls._build(Config.EMOJI_INFO, Colors.INFO, title, description)

    @classmethod
    def from_error(cls, error: BotError) -> discord.Embed:
        """Error embed titled by the error class, with its message as the body"""
        return cls.error(error.title, error.message)
