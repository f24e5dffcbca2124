from __future__ import annotations

import logging

import discord

from backend.models import TicketPriority
from core.errors import BotError, humanize_error, send_error_response
from services.ticket_service import NewTicketForm
from utils.constants import MAX_SELECT_OPTIONS, PRIORITY_LABELS
from utils.embeds import error_embed, make_embed, outcome_embed, truncate

LOGGER = logging.getLogger(__name__)


class NewTicketModal(discord.ui.Modal, title="New ticket"):
    ticket_title = discord.ui.TextInput(
        label="Title",
        placeholder="Summarize the problem",
        max_length=200,
        required=True,
    )
    description = discord.ui.TextInput(
        label="Description",
        placeholder="Describe what happened and what you expected",
        style=discord.TextStyle.long,
        max_length=4000,
        required=True,
    )

    def __init__(self, form: NewTicketForm) -> None:
        super().__init__(timeout=600)
        self.form = form

    async def on_submit(self, interaction: discord.Interaction) -> None:
        await interaction.response.defer(ephemeral=True, thinking=True)
        outcome = await self.form.submit(str(self.ticket_title), str(self.description))
        await interaction.followup.send(embed=outcome_embed(outcome), ephemeral=True)

    async def on_error(self, interaction: discord.Interaction, error: Exception) -> None:
        if not isinstance(error, BotError):
            LOGGER.exception("New ticket submission failed", exc_info=error)
        await send_error_response(interaction, humanize_error(error))


class ServiceTypeSelect(discord.ui.Select["NewTicketView"]):
    def __init__(self, form: NewTicketForm) -> None:
        options = [
            discord.SelectOption(
                label=truncate(item.name, 100),
                value=str(item.id),
                description=truncate(item.description, 100) if item.description else None,
            )
            for item in form.service_types[:MAX_SELECT_OPTIONS]
        ]
        super().__init__(placeholder="Service type", options=options, custom_id="new_ticket:service_type", row=0)
        self.form = form

    async def callback(self, interaction: discord.Interaction) -> None:
        self.form.service_type_id = int(self.values[0])
        await interaction.response.defer()


class ClientSelect(discord.ui.Select["NewTicketView"]):
    def __init__(self, form: NewTicketForm) -> None:
        options = [discord.SelectOption(label="No client", value="none")]
        options.extend(
            discord.SelectOption(label=truncate(client.name, 100), value=str(client.id))
            for client in form.clients[: MAX_SELECT_OPTIONS - 1]
        )
        super().__init__(placeholder="Client (optional)", options=options, custom_id="new_ticket:client", row=1)
        self.form = form

    async def callback(self, interaction: discord.Interaction) -> None:
        value = self.values[0]
        self.form.client_id = None if value == "none" else int(value)
        await interaction.response.defer()


class PrioritySelect(discord.ui.Select["NewTicketView"]):
    def __init__(self, form: NewTicketForm) -> None:
        options = [
            discord.SelectOption(label=PRIORITY_LABELS[priority], value=priority.value, default=priority is form.priority)
            for priority in TicketPriority
        ]
        super().__init__(placeholder="Priority", options=options, custom_id="new_ticket:priority", row=2)
        self.form = form

    async def callback(self, interaction: discord.Interaction) -> None:
        self.form.priority = TicketPriority(self.values[0])
        await interaction.response.defer()


class NewTicketView(discord.ui.View):
    def __init__(self, form: NewTicketForm, owner_id: int) -> None:
        super().__init__(timeout=900)
        self.form = form
        self.owner_id = owner_id
        if form.service_types:
            self.add_item(ServiceTypeSelect(form))
        if form.clients:
            self.add_item(ClientSelect(form))
        self.add_item(PrioritySelect(form))

    async def interaction_check(self, interaction: discord.Interaction) -> bool:
        return interaction.user.id == self.owner_id

    def build_embed(self) -> discord.Embed:
        if not self.form.service_types:
            return error_embed("No active service types are available. Ask an administrator to create one.")
        return make_embed(
            title="New ticket",
            description="Pick the service type, an optional client and the priority, then press **Continue**.",
        )

    @discord.ui.button(label="Continue", style=discord.ButtonStyle.primary, custom_id="new_ticket:continue", row=3)
    async def continue_button(self, interaction: discord.Interaction, _: discord.ui.Button) -> None:
        if self.form.service_type_id is None:
            await interaction.response.send_message(embed=error_embed("Choose a service type first."), ephemeral=True)
            return
        await interaction.response.send_modal(NewTicketModal(self.form))

    async def on_error(
        self, interaction: discord.Interaction, error: Exception, item: discord.ui.Item[discord.ui.View]
    ) -> None:
        if not isinstance(error, BotError):
            LOGGER.exception("New ticket view failed", exc_info=error)
        await send_error_response(interaction, humanize_error(error))
