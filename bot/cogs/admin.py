from __future__ import annotations

import logging

import discord
from discord import app_commands
from discord.ext import commands

from core.bot import HelpdeskBot
from core.errors import PermissionDeniedError
from services.permissions import DashboardScreen, resolve_screen
from views.ticket_board import open_screen

LOGGER = logging.getLogger(__name__)


class AdminCog(commands.Cog):
    admin = app_commands.Group(name="admin", description="Helpdesk administration screens.")

    def __init__(self, bot: HelpdeskBot) -> None:
        self.bot = bot

    async def _open(self, interaction: discord.Interaction, screen: DashboardScreen) -> None:
        await interaction.response.defer(ephemeral=True, thinking=True)
        session = await self.bot.session_for(interaction.user.id)
        if resolve_screen(session.require_user().profile, screen) is not screen:
            raise PermissionDeniedError()
        await open_screen(interaction, session, screen, self.bot.confirm_timeout)

    @admin.command(name="users", description="Manage helpdesk users.")
    async def users(self, interaction: discord.Interaction) -> None:
        await self._open(interaction, DashboardScreen.USERS)

    @admin.command(name="clients", description="Manage clients.")
    async def clients(self, interaction: discord.Interaction) -> None:
        await self._open(interaction, DashboardScreen.CLIENTS)

    @admin.command(name="service-types", description="Manage service types.")
    async def service_types(self, interaction: discord.Interaction) -> None:
        await self._open(interaction, DashboardScreen.SERVICE_TYPES)


async def setup(bot: HelpdeskBot) -> None:
    await bot.add_cog(AdminCog(bot))
