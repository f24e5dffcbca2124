from __future__ import annotations

import logging

import discord

from core.errors import BotError, humanize_error, send_error_response
from services.session import SessionStore
from utils.embeds import user_embed

LOGGER = logging.getLogger(__name__)


class LoginModal(discord.ui.Modal, title="Helpdesk login"):
    username = discord.ui.TextInput(
        label="Username",
        placeholder="Your helpdesk username",
        max_length=80,
        required=True,
    )
    password = discord.ui.TextInput(
        label="Password",
        placeholder="Your helpdesk password",
        max_length=128,
        required=True,
    )

    def __init__(self, sessions: SessionStore) -> None:
        super().__init__(timeout=300)
        self.sessions = sessions

    async def on_submit(self, interaction: discord.Interaction) -> None:
        await interaction.response.defer(ephemeral=True, thinking=True)
        user = await self.sessions.login(interaction.user.id, str(self.username), str(self.password))
        embed = user_embed(user)
        embed.title = "Welcome"
        await interaction.followup.send(embed=embed, ephemeral=True)

    async def on_error(self, interaction: discord.Interaction, error: Exception) -> None:
        if not isinstance(error, BotError):
            LOGGER.exception("Login failed unexpectedly. discord_user=%s", interaction.user.id, exc_info=error)
        await send_error_response(interaction, humanize_error(error))
