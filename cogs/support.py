"""
Support System - ticket modal, ticket reopening, FAQ answers and support channel setup
"""

import discord
from discord import app_commands
from discord.ext import commands
import logging
from typing import Literal

from config import Config
from services.tickets_service import SupportTicket, DispatchReport
from utils.checks import is_admin
from utils.embeds import ModEmbed
from utils.errors import BotError, MessagingFailure, MissingGuildContext
from utils.messages import Messages

logger = logging.getLogger("KingsBot.Support")

REOPEN_PREFIXES = ("[Fixed] - ", "[Closed] - ")


def reopened_channel_name(name: str) -> str:
    for prefix in REOPEN_PREFIXES:
        name = name.replace(prefix, "")
    return name


def in_support_channel(channel) -> bool:
    """True for ticket threads opened under the configured support channel"""
    return bool(Config.SUPPORT_CHANNEL_ID) and getattr(channel, "parent_id", None) == Config.SUPPORT_CHANNEL_ID


def summarize_dispatch(report: DispatchReport) -> discord.Embed:
    if report.channel_count == 0:
        return ModEmbed.warning(
            "No Support Channels",
            Messages.format(Messages.TICKET_NO_CHANNELS, ticket_id=report.ticket_id),
        )
    if report.post_failures:
        return ModEmbed.warning(
            "Ticket Incomplete",
            Messages.format(
                Messages.TICKET_INCOMPLETE,
                ticket_id=report.ticket_id,
                opened=len(report.threads),
                incomplete=len(report.post_failures),
            ),
        )
    if report.ok:
        return ModEmbed.success(
            "Ticket Created",
            Messages.format(Messages.TICKET_CREATED, ticket_id=report.ticket_id, count=len(report.threads)),
        )
    return ModEmbed.warning(
        "Ticket Partially Created",
        Messages.format(
            Messages.TICKET_PARTIAL,
            ticket_id=report.ticket_id,
            opened=len(report.threads),
            total=report.channel_count,
        ),
    )


class SupportTicketModal(discord.ui.Modal, title="Support Ticket"):
    issue = discord.ui.TextInput(
        label="What's the issue?",
        custom_id="issue",
        style=discord.TextStyle.paragraph,
        placeholder="Describe what went wrong...",
        required=True,
        max_length=1024,
    )
    version = discord.ui.TextInput(
        label="Game version",
        custom_id="version",
        placeholder="e.g. 1.3.2",
        required=True,
        max_length=50,
    )
    additional = discord.ui.TextInput(
        label="Additional information (optional)",
        custom_id="additional",
        style=discord.TextStyle.paragraph,
        required=False,
        max_length=1024,
    )

    def __init__(self, cog: "Support"):
        super().__init__(timeout=600)
        self.cog = cog

    async def on_submit(self, interaction: discord.Interaction) -> None:
        try:
            ticket = SupportTicket.from_fields(
                guild_id=interaction.guild_id,
                submitter_id=interaction.user.id,
                submitter_name=interaction.user.name,
                issue=self.issue.value,
                version=self.version.value,
                additional=self.additional.value,
            )
        except BotError as e:
            await interaction.response.send_message(embed=ModEmbed.from_error(e), ephemeral=True)
            return

        await interaction.response.defer(ephemeral=True, thinking=True)
        try:
            report = await self.cog.bot.tickets.dispatch(ticket)
        except BotError as e:
            await interaction.followup.send(embed=ModEmbed.from_error(e), ephemeral=True)
            return

        await interaction.followup.send(embed=summarize_dispatch(report), ephemeral=True)

    async def on_error(self, interaction: discord.Interaction, error: Exception) -> None:
        logger.error(f"Support modal failed: {type(error).__name__}: {error}", exc_info=error)
        embed = ModEmbed.error("Ticket Error", Messages.UNEXPECTED_ERROR)
        if interaction.response.is_done():
            await interaction.followup.send(embed=embed, ephemeral=True)
        else:
            await interaction.response.send_message(embed=embed, ephemeral=True)


class Support(commands.Cog):
    faq_group = app_commands.Group(name="faq", description="Frequently asked support questions", guild_only=True)
    config_group = app_commands.Group(
        name="supportconfig",
        description="Configure support channels and roles",
        default_permissions=discord.Permissions(manage_guild=True),
        guild_only=True,
    )

    def __init__(self, bot):
        self.bot = bot

    # ==================== TICKETS ====================

    @app_commands.command(name="support", description="Open a support ticket")
    @app_commands.guild_only()
    async def support(self, interaction: discord.Interaction) -> None:
        await interaction.response.send_modal(SupportTicketModal(self))

    @app_commands.command(name="open", description="Reopen a support ticket")
    @app_commands.guild_only()
    @app_commands.default_permissions(manage_messages=True)
    async def reopen(self, interaction: discord.Interaction) -> None:
        channel = interaction.channel
        if interaction.guild is None or channel is None:
            raise MissingGuildContext()

        if not in_support_channel(channel):
            await interaction.response.send_message(
                embed=ModEmbed.error("Wrong Channel", Messages.TICKET_REOPEN_WRONG_CHANNEL),
                ephemeral=True,
            )
            return

        new_name = reopened_channel_name(channel.name)
        try:
            await channel.edit(name=new_name, reason=f"Ticket reopened by {interaction.user}")
        except discord.HTTPException as e:
            raise MessagingFailure(f"Could not rename {channel.mention}: {e}", target_id=channel.id) from e

        await interaction.response.send_message(Messages.TICKET_REOPENED)

    # ==================== FAQ ====================

    async def _faq_autocomplete(self, interaction: discord.Interaction, current: str) -> list[app_commands.Choice[str]]:
        if interaction.guild_id is None:
            return []
        entries = await self.bot.db.get_all_support_faq(interaction.guild_id)
        current = current.lower()
        return [
            app_commands.Choice(name=e["id"], value=e["id"])
            for e in entries
            if current in e["id"].lower()
        ][:25]

    @faq_group.command(name="show", description="Show a FAQ answer")
    @app_commands.describe(faq_id="The FAQ entry", ephemeral="Only show the answer to you | Default: true")
    @app_commands.rename(faq_id="id")
    @app_commands.autocomplete(faq_id=_faq_autocomplete)
    async def faq_show(self, interaction: discord.Interaction, faq_id: str, ephemeral: bool = True) -> None:
        answer = await self.bot.db.get_support_answer(interaction.guild_id, faq_id)
        embed = discord.Embed(title=faq_id, description=answer, color=Config.COLOR_BRAND)
        await interaction.response.send_message(embed=embed, ephemeral=ephemeral)

    @faq_group.command(name="list", description="List all FAQ entries")
    async def faq_list(self, interaction: discord.Interaction) -> None:
        entries = await self.bot.db.get_all_support_faq(interaction.guild_id)
        if not entries:
            await interaction.response.send_message(
                embed=ModEmbed.info("No FAQ", "No FAQ entries have been added yet."),
                ephemeral=True,
            )
            return
        embed = discord.Embed(
            title="Support FAQ",
            description="\n".join(f"• `{e['id']}`" for e in entries),
            color=Config.COLOR_BRAND,
        )
        await interaction.response.send_message(embed=embed, ephemeral=True)

    @faq_group.command(name="add", description="Add or replace a FAQ answer")
    @app_commands.rename(faq_id="id")
    @is_admin()
    async def faq_add(self, interaction: discord.Interaction, faq_id: str, answer: str) -> None:
        await self.bot.db.create_support_faq(interaction.guild_id, faq_id, answer)
        logger.info(f"📝 {interaction.user} saved FAQ '{faq_id}' in guild {interaction.guild_id}")
        await interaction.response.send_message(
            embed=ModEmbed.success("FAQ Saved", Messages.format(Messages.FAQ_SAVED, faq_id=faq_id)),
            ephemeral=True,
        )

    @faq_group.command(name="remove", description="Remove a FAQ answer")
    @app_commands.rename(faq_id="id")
    @app_commands.autocomplete(faq_id=_faq_autocomplete)
    @is_admin()
    async def faq_remove(self, interaction: discord.Interaction, faq_id: str) -> None:
        if not await self.bot.db.delete_support_faq(interaction.guild_id, faq_id):
            await interaction.response.send_message(
                embed=ModEmbed.error("Not Found", f"No FAQ entry called `{faq_id}`."),
                ephemeral=True,
            )
            return
        await interaction.response.send_message(
            embed=ModEmbed.success("FAQ Removed", Messages.format(Messages.FAQ_DELETED, faq_id=faq_id)),
            ephemeral=True,
        )

    # ==================== CONFIGURATION ====================

    @config_group.command(name="addchannel", description="Register a support or spoiler channel")
    async def config_add_channel(
        self,
        interaction: discord.Interaction,
        channel: discord.TextChannel,
        category: Literal["support", "spoiler"] = "support",
    ) -> None:
        added = await self.bot.db.add_channel(interaction.guild_id, channel.id, category)
        embed = (
            ModEmbed.success("Channel Added", f"{channel.mention} is now a {category} channel.")
            if added
            else ModEmbed.info("No Change", f"{channel.mention} is already a {category} channel.")
        )
        await interaction.response.send_message(embed=embed, ephemeral=True)

    @config_group.command(name="removechannel", description="Unregister a support or spoiler channel")
    async def config_remove_channel(
        self,
        interaction: discord.Interaction,
        channel: discord.TextChannel,
        category: Literal["support", "spoiler"] = "support",
    ) -> None:
        removed = await self.bot.db.remove_channel(interaction.guild_id, channel.id, category)
        embed = (
            ModEmbed.success("Channel Removed", f"{channel.mention} is no longer a {category} channel.")
            if removed
            else ModEmbed.info("No Change", f"{channel.mention} was not a {category} channel.")
        )
        await interaction.response.send_message(embed=embed, ephemeral=True)

    @config_group.command(name="addrole", description="Tag a role on new support tickets")
    async def config_add_role(self, interaction: discord.Interaction, role: discord.Role) -> None:
        added = await self.bot.db.add_role(interaction.guild_id, role.id)
        embed = (
            ModEmbed.success("Role Added", f"{role.mention} will be tagged on new tickets.")
            if added
            else ModEmbed.info("No Change", f"{role.mention} is already a support role.")
        )
        await interaction.response.send_message(embed=embed, ephemeral=True)

    @config_group.command(name="removerole", description="Stop tagging a role on new support tickets")
    async def config_remove_role(self, interaction: discord.Interaction, role: discord.Role) -> None:
        removed = await self.bot.db.remove_role(interaction.guild_id, role.id)
        embed = (
            ModEmbed.success("Role Removed", f"{role.mention} will no longer be tagged.")
            if removed
            else ModEmbed.info("No Change", f"{role.mention} was not a support role.")
        )
        await interaction.response.send_message(embed=embed, ephemeral=True)

    @config_group.command(name="show", description="Show the support configuration")
    async def config_show(self, interaction: discord.Interaction) -> None:
        guild_id = interaction.guild_id
        support_channels = await self.bot.db.get_support_channel_ids(guild_id)
        spoiler_channels = await self.bot.db.get_spoiler_channel_ids(guild_id)
        roles = await self.bot.db.get_support_role_ids(guild_id)
        last_ticket = await self.bot.tickets.current_ticket_id(guild_id)

        def _fmt(ids: list[int], fmt: str) -> str:
            return ", ".join(fmt.format(i) for i in ids) or "*None*"

        embed = discord.Embed(title="Support Configuration", color=Config.COLOR_BRAND)
        embed.add_field(name="Support Channels", value=_fmt(support_channels, "<#{}>"), inline=False)
        embed.add_field(name="Spoiler Channels", value=_fmt(spoiler_channels, "<#{}>"), inline=False)
        embed.add_field(name="Support Roles", value=_fmt(roles, "<@&{}>"), inline=False)
        embed.add_field(name="Last Ticket", value=f"#{last_ticket}" if last_ticket else "*None yet*", inline=False)
        await interaction.response.send_message(embed=embed, ephemeral=True)


async def setup(bot):
    await bot.add_cog(Support(bot))
