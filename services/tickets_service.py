# services/tickets_service.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, List, Optional, Tuple

import discord

from config import Config
from database import Database
from services.base_service import BaseService
from utils.errors import InvalidInput, MessagingFailure, MissingGuildContext
from utils.messaging import MessagingPort, mention_line

EXCERPT_LENGTH = 50


@dataclass(frozen=True)
class SupportTicket:
    """A validated support request as submitted through the support modal"""

    guild_id: int
    submitter_id: int
    submitter_name: str
    issue: str
    version: str
    additional: Optional[str] = None

    @classmethod
    def from_fields(
        cls,
        *,
        guild_id: Optional[int],
        submitter_id: int,
        submitter_name: str,
        issue: Optional[str],
        version: Optional[str],
        additional: Optional[str] = None,
    ) -> "SupportTicket":
        if guild_id is None:
            raise MissingGuildContext()
        issue = (issue or "").strip()
        if not issue:
            raise InvalidInput("Please describe the issue.")
        version = (version or "").strip()
        if not version:
            raise InvalidInput("Please tell us which game version you are on.")
        return cls(
            guild_id=guild_id,
            submitter_id=submitter_id,
            submitter_name=submitter_name,
            issue=issue,
            version=version,
            additional=(additional or "").strip() or None,
        )


@dataclass
class DispatchReport:
    ticket_id: int
    title: str
    threads: List[Tuple[int, Any]] = field(default_factory=list)
    failures: List[Tuple[int, MessagingFailure]] = field(default_factory=list)
    # Threads that exist but did not receive all of the ticket content
    post_failures: List[Tuple[int, MessagingFailure]] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures and not self.post_failures

    @property
    def channel_count(self) -> int:
        return len(self.threads) + len(self.failures)


def build_thread_title(ticket_id: int, username: str, issue_text: str) -> str:
    """`<id> - <user> - <issue excerpt>`, clipped to Discord's thread name limit"""
    excerpt = " ".join(issue_text.split())
    if len(excerpt) > EXCERPT_LENGTH:
        excerpt = excerpt[:EXCERPT_LENGTH].rstrip() + "..."
    title = f"{ticket_id} - {username} - {excerpt}"
    return title[: Config.THREAD_NAME_MAX_LENGTH]


def build_ticket_embeds(ticket: SupportTicket) -> List[discord.Embed]:
    issue = discord.Embed(title="Issue", description=ticket.issue, color=Config.COLOR_BRAND)
    issue.set_footer(text=f"Version: {ticket.version}")
    embeds = [issue]
    if ticket.additional:
        embeds.append(
            discord.Embed(
                title="Additional Information",
                description=ticket.additional,
                color=Config.COLOR_BRAND,
            )
        )
    return embeds


class TicketService(BaseService):
    """Per-guild ticket numbering and support thread fan-out"""

    def __init__(self, db: Database, messaging: MessagingPort):
        super().__init__(db, "tickets")
        self.messaging = messaging

    async def current_ticket_id(self, guild_id: int) -> int:
        row = await self.db.fetchone(
            "SELECT support_thread_id FROM servers WHERE id = ?",
            (self.db.to_db_id(guild_id),),
        )
        return row["support_thread_id"] if row else 0

    async def allocate_next_ticket_id(self, guild_id: int) -> int:
        """
        Bump and return the guild's ticket counter.
        One upsert statement; a missing row counts as 0, so the first ticket is 1.
        """
        row = await self.db.fetchone(
            """
            INSERT INTO servers (id, support_thread_id) VALUES (?, 1)
            ON CONFLICT (id) DO UPDATE SET support_thread_id = support_thread_id + 1
            RETURNING support_thread_id
            """,
            (self.db.to_db_id(guild_id),),
        )
        ticket_id = row["support_thread_id"]
        self.logger.debug(f"Allocated ticket #{ticket_id} for guild {guild_id}")
        return ticket_id

    async def dispatch(self, ticket: SupportTicket) -> DispatchReport:
        """
        Open one private thread per support channel and seed each with the ticket.

        The ticket number is allocated before any thread is created. A failure in
        one channel is recorded in the report and the remaining channels are still
        attempted.
        """
        channel_ids = await self.db.get_support_channel_ids(ticket.guild_id)
        role_ids = await self.db.get_support_role_ids(ticket.guild_id)

        ticket_id = await self.allocate_next_ticket_id(ticket.guild_id)
        title = build_thread_title(ticket_id, ticket.submitter_name, ticket.issue)
        report = DispatchReport(ticket_id=ticket_id, title=title)

        issue_embed, *extra_embeds = build_ticket_embeds(ticket)
        mentions = mention_line([ticket.submitter_id], role_ids)

        for channel_id in channel_ids:
            try:
                thread = await self.messaging.create_private_thread(channel_id, title)
            except MessagingFailure as e:
                self.logger.warning(f"Ticket #{ticket_id}: no thread in channel {channel_id}: {e}")
                report.failures.append((channel_id, e))
                continue
            report.threads.append((channel_id, thread))

            try:
                await self.messaging.post(
                    thread,
                    content=mentions,
                    embeds=[issue_embed],
                    user_ids=[ticket.submitter_id],
                    role_ids=role_ids,
                )
                for embed in extra_embeds:
                    await self.messaging.post(thread, embeds=[embed])
            except MessagingFailure as e:
                self.logger.warning(f"Ticket #{ticket_id}: thread in channel {channel_id} is missing content: {e}")
                report.post_failures.append((channel_id, e))

        self.logger.info(
            f"🎫 Ticket #{ticket_id} in guild {ticket.guild_id}: "
            f"{len(report.threads)}/{report.channel_count} thread(s) opened"
        )
        return report
