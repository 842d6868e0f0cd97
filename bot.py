"""
KingsBot - Community management bot
Support tickets, gold stars, rules, FAQ and infractions
"""

import discord
from discord import app_commands
from discord.ext import commands
import logging
import sys
import asyncio
from datetime import datetime, timezone
from typing import Optional

from config import Config
from database import Database
from services.stars_service import StarService
from services.tickets_service import TicketService
from utils.embeds import ModEmbed
from utils.errors import BotError
from utils.messages import Messages
from utils.messaging import DiscordMessagingPort

# ==================== LOGGING ====================
class ColoredFormatter(logging.Formatter):
    """Level-colored output on a TTY; emoji swapped for tags when stdout can't encode them"""

    LEVEL_COLORS = {
        logging.DEBUG: "\033[36m",
        logging.INFO: "\033[32m",
        logging.WARNING: "\033[33m",
        logging.ERROR: "\033[31m",
        logging.CRITICAL: "\033[35m",
    }
    RESET = "\033[0m"

    EMOJI_TAGS = {
        "✅": "[OK]",
        "❌": "[ERR]",
        "⚠️": "[WARN]",
        "⚡": "[SYNC]",
        "🎫": "[TICKET]",
        "⭐": "[STAR]",
        "📝": "[EDIT]",
        "📦": "[COG]",
        "🗄️": "[DB]",
        "🤖": "[BOT]",
        "👋": "[BYE]",
    }

    def format(self, record: logging.LogRecord) -> str:
        msg = super().format(record)

        encoding = getattr(sys.stdout, "encoding", None) or "utf-8"
        try:
            msg.encode(encoding)
        except (UnicodeEncodeError, LookupError):
            for emoji, tag in self.EMOJI_TAGS.items():
                msg = msg.replace(emoji, tag)

        if sys.stdout.isatty():
            msg = f"{self.LEVEL_COLORS.get(record.levelno, '')}{msg}{self.RESET}"
        return msg


def setup_logging(level: Optional[str] = None) -> logging.Logger:
    """Install the colored stdout handler on the root logger"""
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        ColoredFormatter(
            fmt="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )

    level = logging.getLevelName(level or Config.LOG_LEVEL)
    if not isinstance(level, int):
        level = logging.INFO
    logging.basicConfig(level=level, handlers=[handler], force=True)

    # discord.py and aiosqlite are chatty at INFO/DEBUG
    for name in ("discord", "discord.http", "aiosqlite"):
        logging.getLogger(name).setLevel(logging.WARNING)

    return logging.getLogger("KingsBot")


logger = logging.getLogger("KingsBot")

COGS = [
    "cogs.support",
    "cogs.rules",
    "cogs.stars",
    "cogs.infractions",
]


# ==================== ENVIRONMENT ====================
def validate_environment() -> bool:
    """DISCORD_TOKEN is required; channel settings only limit features"""
    if not Config.TOKEN:
        logger.critical("❌ DISCORD_TOKEN is not set. Add `DISCORD_TOKEN=...` to your environment or .env file.")
        return False

    if not Config.RULES_CHANNEL_ID:
        logger.warning("⚠️ RULES_CHANNEL_ID not set; /rule replies won't link the rules channel")
    if not Config.SUPPORT_CHANNEL_ID:
        logger.warning("⚠️ SUPPORT_CHANNEL_ID not set; /open will refuse every channel")
    return True


# ==================== BOT ====================
class KingsBot(commands.Bot):
    """
    Main bot class:
    - One shared Database handle injected into every service
    - Ticket and star services reachable as bot.tickets / bot.stars
    - Slash-command errors translated into error embeds
    """

    def __init__(self, db: Optional[Database] = None):
        super().__init__(
            command_prefix=commands.when_mentioned,
            intents=discord.Intents.default(),
            help_command=None,
        )

        self.db: Database = db or Database()
        self.messaging = DiscordMessagingPort(self)
        self.tickets = TicketService(self.db, self.messaging)
        self.stars = StarService(self.db)

        self.started_at = datetime.now(timezone.utc)
        self.errors_caught = 0

        self.tree.on_error = self.on_app_command_error

    async def setup_hook(self):
        await self.db.init_pool()

        for extension in COGS:
            try:
                await self.load_extension(extension)
            except commands.ExtensionError as e:
                logger.error(f"❌ Could not load {extension}: {e}", exc_info=e)
            else:
                logger.info(f"📦 Loaded {extension}")

        try:
            synced = await self.tree.sync()
        except discord.HTTPException as e:
            logger.error(f"❌ Slash command sync failed: {e}")
        else:
            logger.info(f"⚡ Synced {len(synced)} slash commands")

    async def on_ready(self):
        logger.info(f"🤖 Logged in as {self.user} (ID: {self.user.id}) in {len(self.guilds)} guild(s)")

    async def _send_error(self, interaction: discord.Interaction, embed: discord.Embed) -> None:
        if interaction.response.is_done():
            await interaction.followup.send(embed=embed, ephemeral=True)
        else:
            await interaction.response.send_message(embed=embed, ephemeral=True)

    async def on_app_command_error(
        self, interaction: discord.Interaction, error: app_commands.AppCommandError
    ) -> None:
        """Global slash-command error handler"""
        self.errors_caught += 1
        original = getattr(error, "original", error)

        if isinstance(original, BotError):
            logger.info(f"{type(original).__name__} for {interaction.user}: {original}")
            embed = ModEmbed.from_error(original)
        elif isinstance(error, app_commands.MissingPermissions):
            embed = ModEmbed.error("Missing Permissions", Messages.MISSING_PERMISSIONS)
        elif isinstance(error, app_commands.BotMissingPermissions):
            missing = ", ".join(f"`{perm}`" for perm in error.missing_permissions)
            embed = ModEmbed.error(
                "Bot Missing Permissions",
                Messages.format(Messages.BOT_MISSING_PERMISSIONS, perms=missing),
            )
        elif isinstance(error, app_commands.CommandOnCooldown):
            embed = ModEmbed.warning(
                "Cooldown", Messages.format(Messages.RATE_LIMITED, seconds=error.retry_after)
            )
        elif isinstance(error, app_commands.CheckFailure):
            embed = ModEmbed.error("Check Failed", "You cannot use this command here.")
        else:
            command = interaction.command.qualified_name if interaction.command else "unknown"
            logger.error(
                f"Command error in '/{command}': {type(original).__name__}: {original}",
                exc_info=original,
            )
            embed = ModEmbed.error("Command Error", Messages.UNEXPECTED_ERROR)
            embed.set_footer(text=f"Error: {type(original).__name__}")

        try:
            await self._send_error(interaction, embed)
        except discord.HTTPException as e:
            logger.warning(f"Could not report error to {interaction.user}: {e}")

    async def on_error(self, event: str, *args, **kwargs):
        self.errors_caught += 1
        logger.exception(f"Unhandled error in event '{event}'")

    async def close(self):
        uptime = datetime.now(timezone.utc) - self.started_at
        logger.info(f"👋 Shutting down after {uptime} ({self.errors_caught} error(s) caught)")
        await self.db.close()
        await super().close()


# ==================== ENTRY POINT ====================
async def main() -> int:
    setup_logging()
    if not validate_environment():
        return 1

    bot = KingsBot()
    try:
        async with bot:
            await bot.start(Config.TOKEN)
    except discord.LoginFailure:
        logger.critical("❌ Discord rejected the token. Check DISCORD_TOKEN.")
        return 1
    return 0


def run() -> None:
    try:
        sys.exit(asyncio.run(main()))
    except KeyboardInterrupt:
        sys.exit(0)


if __name__ == "__main__":
    run()
