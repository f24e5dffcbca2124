from __future__ import annotations

import logging

import discord
from discord import app_commands
from discord.ext import commands

from core.bot import HelpdeskBot
from utils.embeds import success_embed, user_embed
from views.login import LoginModal

LOGGER = logging.getLogger(__name__)


class AuthCog(commands.Cog):
    def __init__(self, bot: HelpdeskBot) -> None:
        self.bot = bot

    @app_commands.command(name="login", description="Log in to the helpdesk.")
    async def login(self, interaction: discord.Interaction) -> None:
        await interaction.response.send_modal(LoginModal(self.bot.sessions))

    @app_commands.command(name="logout", description="Log out of the helpdesk.")
    async def logout(self, interaction: discord.Interaction) -> None:
        await interaction.response.defer(ephemeral=True, thinking=True)
        await self.bot.sessions.logout(interaction.user.id)
        await interaction.followup.send(embed=success_embed("You are logged out."), ephemeral=True)

    @app_commands.command(name="whoami", description="Show the helpdesk account linked to you.")
    async def whoami(self, interaction: discord.Interaction) -> None:
        await interaction.response.defer(ephemeral=True, thinking=True)
        session = await self.bot.session_for(interaction.user.id)
        await interaction.followup.send(embed=user_embed(session.require_user()), ephemeral=True)


async def setup(bot: HelpdeskBot) -> None:
    await bot.add_cog(AuthCog(bot))
