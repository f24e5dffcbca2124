from __future__ import annotations

import logging

import discord
from discord import app_commands
from discord.ext import commands

from core.bot import HelpdeskBot
from services.permissions import DashboardScreen
from services.ticket_service import TicketDetailController
from views.ticket_board import open_new_ticket, open_screen, send_private
from views.ticket_detail import open_ticket_detail

LOGGER = logging.getLogger(__name__)


class TicketsCog(commands.Cog):
    tickets = app_commands.Group(name="tickets", description="Helpdesk tickets.")

    def __init__(self, bot: HelpdeskBot) -> None:
        self.bot = bot

    @tickets.command(name="list", description="Show the ticket board.")
    async def list_tickets(self, interaction: discord.Interaction) -> None:
        await interaction.response.defer(ephemeral=True, thinking=True)
        session = await self.bot.session_for(interaction.user.id)
        await open_screen(interaction, session, DashboardScreen.TICKETS, self.bot.confirm_timeout)

    @tickets.command(name="view", description="Open one ticket.")
    @app_commands.describe(ticket_id="Ticket number")
    async def view_ticket(self, interaction: discord.Interaction, ticket_id: app_commands.Range[int, 1]) -> None:
        await interaction.response.defer(ephemeral=True, thinking=True)
        session = await self.bot.session_for(interaction.user.id)
        controller = TicketDetailController(session, ticket_id)
        embed, view = await open_ticket_detail(controller, interaction.user.id, self.bot.confirm_timeout)
        await send_private(interaction, embed, view)

    @tickets.command(name="new", description="Open a new ticket.")
    async def new_ticket(self, interaction: discord.Interaction) -> None:
        await interaction.response.defer(ephemeral=True, thinking=True)
        session = await self.bot.session_for(interaction.user.id)
        await open_new_ticket(interaction, session)


async def setup(bot: HelpdeskBot) -> None:
    await bot.add_cog(TicketsCog(bot))
