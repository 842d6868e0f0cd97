"""
Permission checks for slash commands
"""

import discord
from discord import app_commands

from config import Config


def _has_any(interaction: discord.Interaction, *perm_names: str) -> bool:
    if interaction.user.id in Config.OWNER_IDS:
        return True
    perms = getattr(interaction.user, "guild_permissions", None)
    if perms is None:
        return False
    return perms.administrator or any(getattr(perms, name) for name in perm_names)


def is_mod():
    """Moderators: kick, ban, timeout or manage-messages permission"""
    async def predicate(interaction: discord.Interaction) -> bool:
        if _has_any(interaction, "kick_members", "ban_members", "moderate_members", "manage_messages"):
            return True
        raise app_commands.MissingPermissions(["moderate_members"])

    return app_commands.check(predicate)


def is_admin():
    """Admins: administrator or manage-server permission"""
    async def predicate(interaction: discord.Interaction) -> bool:
        if _has_any(interaction, "manage_guild"):
            return True
        raise app_commands.MissingPermissions(["manage_guild"])

    return app_commands.check(predicate)
