"""
Infractions - point-based moderation history
"""

import discord
from discord import app_commands
from discord.ext import commands
import logging
from typing import Literal

from database import Infraction
from utils.checks import is_mod
from utils.embeds import Colors, ModEmbed
from utils.messages import Messages

logger = logging.getLogger("KingsBot.Infractions")

InfractionType = Literal["warn", "mute", "kick", "softban", "ban"]


class Infractions(commands.Cog):
    """Record and review infractions"""

    infraction_group = app_commands.Group(
        name="infraction",
        description="Moderation infractions",
        default_permissions=discord.Permissions(moderate_members=True),
        guild_only=True,
    )

    def __init__(self, bot):
        self.bot = bot

    @infraction_group.command(name="add", description="Log an infraction for a member")
    @app_commands.describe(
        member="The member who broke the rules",
        infraction_type="What action was taken",
        points="How many points this infraction is worth",
        reason="Why",
    )
    @app_commands.rename(infraction_type="type")
    @is_mod()
    async def add(
        self,
        interaction: discord.Interaction,
        member: discord.Member,
        infraction_type: InfractionType,
        points: app_commands.Range[int, 0, 100] = 1,
        reason: str = "No reason provided",
    ) -> None:
        infraction = Infraction(
            user_id=member.id,
            username=member.name,
            guild_id=interaction.guild_id,
            infraction_type=infraction_type,
            moderator_id=interaction.user.id,
            moderator_username=interaction.user.name,
            points=points,
            reason=reason,
        )
        infraction_id = await self.bot.db.create_user_infraction(infraction)
        logger.info(
            f"⚠️ {interaction.user} logged {infraction_type} (#{infraction_id}) for {member} in {interaction.guild}"
        )
        await interaction.response.send_message(
            embed=ModEmbed.success(
                "Infraction Logged",
                Messages.format(
                    Messages.INFRACTION_LOGGED,
                    infraction_id=infraction_id,
                    user=member.mention,
                    points=points,
                ),
            ),
            ephemeral=True,
        )

    @infraction_group.command(name="list", description="Show a member's infractions")
    @app_commands.describe(member="The member to look up", recent="Only infractions from the last six months")
    @is_mod()
    async def list_infractions(
        self,
        interaction: discord.Interaction,
        member: discord.Member,
        recent: bool = True,
    ) -> None:
        infractions = await self.bot.db.get_user_infractions(member.id, recent)
        if not infractions:
            window = "recent " if recent else ""
            await interaction.response.send_message(
                embed=ModEmbed.info("No Infractions", f"{member.mention} has no {window}infractions."),
                ephemeral=True,
            )
            return

        total_points = sum(i.points for i in infractions)
        embed = discord.Embed(
            title=f"Infractions for {member.display_name}",
            description=f"Total: **{len(infractions)}** infraction(s), **{total_points}** point(s)",
            color=Colors.WARNING,
        )
        for infraction in infractions[:10]:
            when = f"<t:{int(infraction.created_at.timestamp())}:d>" if infraction.created_at else "Unknown time"
            embed.add_field(
                name=f"#{infraction.id} - {infraction.infraction_type} ({infraction.points} pt)",
                value=f"**Reason:** {infraction.reason[:100]}\n**By:** {infraction.moderator_username}\n**When:** {when}",
                inline=False,
            )
        if len(infractions) > 10:
            embed.set_footer(text=f"Showing 10 of {len(infractions)} infractions")
        await interaction.response.send_message(embed=embed, ephemeral=True)


async def setup(bot):
    await bot.add_cog(Infractions(bot))
