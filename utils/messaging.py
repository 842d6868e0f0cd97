"""
Messaging port - the narrow surface services use to talk to Discord
"""

from __future__ import annotations

import logging
from typing import Any, Optional, Protocol, Sequence

import discord

from config import Config
from utils.errors import MessagingFailure

logger = logging.getLogger("KingsBot.Messaging")


class MessagingPort(Protocol):
    async def create_private_thread(self, channel_id: int, title: str) -> Any:
        ...

    async def post(
        self,
        target: Any,
        *,
        content: Optional[str] = None,
        embeds: Sequence[discord.Embed] = (),
        user_ids: Sequence[int] = (),
        role_ids: Sequence[int] = (),
    ) -> Any:
        ...


def mention_line(user_ids: Sequence[int] = (), role_ids: Sequence[int] = ()) -> Optional[str]:
    """Role mentions first, then users, space separated"""
    parts = [f"<@&{rid}>" for rid in role_ids] + [f"<@{uid}>" for uid in user_ids]
    return " ".join(parts) or None


class DiscordMessagingPort:
    """MessagingPort backed by a discord.py client"""

    def __init__(self, client: discord.Client, *, auto_archive_minutes: Optional[int] = None):
        self.client = client
        self.auto_archive_minutes = auto_archive_minutes or Config.THREAD_AUTO_ARCHIVE_MINUTES

    async def _resolve_channel(self, channel_id: int) -> discord.abc.GuildChannel:
        channel = self.client.get_channel(channel_id)
        if channel is None:
            channel = await self.client.fetch_channel(channel_id)
        return channel

    async def create_private_thread(self, channel_id: int, title: str) -> discord.Thread:
        try:
            channel = await self._resolve_channel(channel_id)
            if not isinstance(channel, discord.TextChannel):
                raise MessagingFailure(
                    f"Channel {channel_id} cannot hold private threads.",
                    target_id=channel_id,
                )
            return await channel.create_thread(
                name=title,
                type=discord.ChannelType.private_thread,
                auto_archive_duration=self.auto_archive_minutes,
                invitable=False,
            )
        except (discord.HTTPException, discord.InvalidData) as e:
            raise MessagingFailure(
                f"Could not create a thread in <#{channel_id}>: {e}",
                target_id=channel_id,
            ) from e

    async def post(
        self,
        target: discord.abc.Messageable,
        *,
        content: Optional[str] = None,
        embeds: Sequence[discord.Embed] = (),
        user_ids: Sequence[int] = (),
        role_ids: Sequence[int] = (),
    ) -> discord.Message:
        if content is None:
            content = mention_line(user_ids, role_ids)
        allowed = discord.AllowedMentions(
            everyone=False,
            users=[discord.Object(id=uid) for uid in user_ids],
            roles=[discord.Object(id=rid) for rid in role_ids],
        )
        try:
            return await target.send(content=content, embeds=list(embeds), allowed_mentions=allowed)
        except discord.HTTPException as e:
            raise MessagingFailure(
                f"Could not post in <#{getattr(target, 'id', '?')}>: {e}",
                target_id=getattr(target, "id", None),
            ) from e
