"""
Server Rules - look up a single rule or list them all
"""

import discord
from discord import app_commands
from discord.ext import commands
import logging

from config import Config
from utils.checks import is_admin
from utils.embeds import ModEmbed
from utils.messages import Messages

logger = logging.getLogger("KingsBot.Rules")


def _rules_channel_hint() -> str:
    if not Config.RULES_CHANNEL_ID:
        return ""
    channel = f"<#{Config.RULES_CHANNEL_ID}>"
    return "\n\n" + Messages.format(Messages.RULE_FOOTER, channel=channel)


def rule_embed(rule_id: str, rule_text: str) -> discord.Embed:
    return discord.Embed(
        title=f"Rule: {rule_id}",
        description=f"**{rule_id}.** {rule_text}{_rules_channel_hint()}",
        color=Config.COLOR_BRAND,
    )


class Rules(commands.Cog):
    def __init__(self, bot):
        self.bot = bot

    @app_commands.command(name="rule", description="Get a rule")
    @app_commands.describe(rule_id="The ID of the rule")
    @app_commands.rename(rule_id="id")
    @app_commands.guild_only()
    async def rule(self, interaction: discord.Interaction, rule_id: str) -> None:
        rule_text = await self.bot.db.get_rule(interaction.guild_id, rule_id.strip())
        await interaction.response.send_message(embed=rule_embed(rule_id.strip(), rule_text))

    @app_commands.command(name="rules", description="Show all server rules")
    @app_commands.guild_only()
    async def rules(self, interaction: discord.Interaction) -> None:
        rules = await self.bot.db.get_rules(interaction.guild_id)
        if not rules:
            await interaction.response.send_message(
                embed=ModEmbed.info("No Rules", "No rules have been set for this server."),
                ephemeral=True,
            )
            return

        guild_name = interaction.guild.name if interaction.guild else "Server"
        body = "\n\n".join(f"**{r['rule_id']}.** {r['rule_text']}" for r in rules)
        embed = discord.Embed(
            title=f"{guild_name} Rules",
            description=body[:4096],
            color=Config.COLOR_BRAND,
        )
        await interaction.response.send_message(embed=embed)

    @app_commands.command(name="setrule", description="Create or update a rule")
    @app_commands.describe(rule_id="The ID of the rule", text="The rule text")
    @app_commands.rename(rule_id="id")
    @app_commands.guild_only()
    @app_commands.default_permissions(manage_guild=True)
    @is_admin()
    async def setrule(self, interaction: discord.Interaction, rule_id: str, text: str) -> None:
        await self.bot.db.set_rule(interaction.guild_id, rule_id.strip(), text.strip())
        logger.info(f"📝 {interaction.user} set rule {rule_id} in guild {interaction.guild_id}")
        await interaction.response.send_message(
            embed=ModEmbed.success("Rule Saved", f"Rule `{rule_id.strip()}` has been saved."),
            ephemeral=True,
        )


async def setup(bot):
    await bot.add_cog(Rules(bot))
