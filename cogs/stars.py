"""
Gold Stars - peer recognition points
"""

import discord
from discord import app_commands
from discord.ext import commands
from datetime import timedelta
import logging
from typing import Optional

from config import Config
from services.stars_service import StarAccount
from utils.errors import InvalidInput
from utils.messages import Messages

logger = logging.getLogger("KingsBot.Stars")


def free_star_cooldown() -> timedelta:
    return timedelta(hours=max(0, Config.FREE_STAR_COOLDOWN_HOURS))


def account_embed(member: discord.abc.User, account: StarAccount) -> discord.Embed:
    embed = discord.Embed(title=f"{Config.EMOJI_STAR} {member.display_name}'s Stars", color=Config.COLOR_GOLD)
    embed.add_field(name="Balance", value=str(account.number_of_stars), inline=True)
    embed.add_field(name="Given", value=str(account.given_stars), inline=True)
    embed.add_field(name="Received", value=str(account.received_stars), inline=True)

    if account.free_star_available(free_star_cooldown()):
        embed.set_footer(text="Free star available")
    else:
        next_free = account.next_free_star_at(free_star_cooldown())
        embed.add_field(
            name="Free Star",
            value=Messages.format(Messages.STAR_NEXT_FREE, timestamp=int(next_free.timestamp())),
            inline=False,
        )
    embed.set_thumbnail(url=member.display_avatar.url)
    return embed


class Stars(commands.Cog):
    star_group = app_commands.Group(name="goldstar", description="Gold star commands", guild_only=True)

    def __init__(self, bot):
        self.bot = bot

    @star_group.command(name="give", description="Give someone a gold star")
    @app_commands.describe(member="Who deserves a star?")
    async def give(self, interaction: discord.Interaction, member: discord.Member) -> None:
        if member.bot:
            raise InvalidInput("Bots can't receive gold stars.")

        gift = await self.bot.stars.give_star(
            interaction.user.id,
            member.id,
            cooldown=free_star_cooldown(),
        )
        logger.info(f"⭐ {interaction.user} gave {member} a {'free' if gift.was_free else 'paid'} star")
        template = Messages.STAR_GIVEN_FREE if gift.was_free else Messages.STAR_GIVEN_PAID
        text = Messages.format(
            template,
            giver=interaction.user.mention,
            recipient=member.mention,
            balance=gift.giver.number_of_stars,
        )
        embed = discord.Embed(description=text, color=Config.COLOR_GOLD)
        embed.set_footer(text=f"{member.display_name} now has {gift.recipient.number_of_stars} star(s)")
        await interaction.response.send_message(embed=embed)

    @star_group.command(name="view", description="View gold star stats")
    @app_commands.describe(member="Whose stars to show (default: you)")
    async def view(self, interaction: discord.Interaction, member: Optional[discord.Member] = None) -> None:
        member = member or interaction.user
        account = await self.bot.stars.get_or_create_account(member.id)
        await interaction.response.send_message(embed=account_embed(member, account))


async def setup(bot):
    await bot.add_cog(Stars(bot))
