from __future__ import annotations

import logging
from typing import Any

import discord

from core.errors import BotError, humanize_error, send_error_response
from services.admin_service import CrudScreen, FormDialog
from utils.constants import MAX_MODAL_LABEL, MAX_SELECT_OPTIONS, SCREEN_LABELS
from utils.dialogs import Outcome
from utils.embeds import error_embed, outcome_embed, prefill, records_embed, truncate
from views.confirm import InteractionConfirmer

LOGGER = logging.getLogger(__name__)


def _record_id(record: Any) -> int:
    return int(getattr(record, "id"))


class RecordFormModal(discord.ui.Modal):
    """Create/edit form built from the screen's field list."""

    def __init__(self, screen_view: AdminScreenView, dialog: FormDialog[Any]) -> None:
        super().__init__(title=dialog.title, timeout=600)
        self.screen_view = screen_view
        self.dialog = dialog
        self._inputs: list[tuple[str, discord.ui.TextInput]] = []

        for form_field in dialog.schema.fields[:5]:
            required = form_field.required or (form_field.required_on_create and dialog.is_create)
            default, max_length = prefill(dialog.values.get(form_field.name), form_field.max_length)
            text_input = discord.ui.TextInput(
                label=form_field.label[:MAX_MODAL_LABEL],
                placeholder=form_field.placeholder[:100] or None,
                default=default,
                style=discord.TextStyle.long if form_field.multiline else discord.TextStyle.short,
                required=required,
                max_length=max_length,
            )
            self._inputs.append((form_field.name, text_input))
            self.add_item(text_input)

    async def on_submit(self, interaction: discord.Interaction) -> None:
        await interaction.response.defer()
        values = {name: str(text_input.value) for name, text_input in self._inputs}
        outcome = await self.screen_view.screen.submit(self.dialog, values)
        await self.screen_view.publish(interaction, outcome)

    async def on_error(self, interaction: discord.Interaction, error: Exception) -> None:
        await self.screen_view.report_error(interaction, error)


class RecordSelect(discord.ui.Select["AdminScreenView"]):
    def __init__(self, screen: CrudScreen[Any], selected_id: int | None) -> None:
        options = [
            discord.SelectOption(
                label=truncate(screen.schema.describe(record), 100),
                value=str(_record_id(record)),
                default=_record_id(record) == selected_id,
            )
            for record in screen.records[:MAX_SELECT_OPTIONS]
        ]
        super().__init__(
            placeholder=f"Select a {screen.schema.noun.lower()}",
            options=options,
            custom_id=f"admin:{screen.schema.screen.value}:select",
            row=0,
        )

    async def callback(self, interaction: discord.Interaction) -> None:
        assert self.view is not None
        self.view.selected_id = int(self.values[0])
        await interaction.response.edit_message(embed=self.view.build_embed(), view=self.view.rebuild())


class AdminScreenView(discord.ui.View):
    def __init__(self, screen: CrudScreen[Any], owner_id: int, confirm_timeout: float = 60) -> None:
        super().__init__(timeout=900)
        self.screen = screen
        self.owner_id = owner_id
        self.confirm_timeout = confirm_timeout
        self.selected_id: int | None = None
        self.rebuild()

    async def interaction_check(self, interaction: discord.Interaction) -> bool:
        return interaction.user.id == self.owner_id

    @property
    def selected(self) -> Any | None:
        if self.selected_id is None:
            return None
        return self.screen.find(self.selected_id)

    def build_embed(self) -> discord.Embed:
        lines = [
            f"{'▶ ' if _record_id(record) == self.selected_id else ''}`{_record_id(record)}` "
            f"{self.screen.schema.describe(record)}"
            for record in self.screen.records
        ]
        return records_embed(SCREEN_LABELS[self.screen.schema.screen.value], lines, self.screen.error)

    def rebuild(self) -> AdminScreenView:
        self.clear_items()
        if self.selected is None:
            self.selected_id = None
        if self.screen.records:
            self.add_item(RecordSelect(self.screen, self.selected_id))
        has_selection = self.selected_id is not None
        for label, style, action, handler, disabled in (
            ("New", discord.ButtonStyle.success, "new", self.on_new, False),
            ("Edit", discord.ButtonStyle.primary, "edit", self.on_edit, not has_selection),
            ("Delete", discord.ButtonStyle.danger, "delete", self.on_delete, not has_selection),
            ("Refresh", discord.ButtonStyle.secondary, "refresh", self.on_refresh, False),
        ):
            button: discord.ui.Button[AdminScreenView] = discord.ui.Button(
                label=label,
                style=style,
                custom_id=f"admin:{self.screen.schema.screen.value}:{action}",
                disabled=disabled,
                row=1,
            )
            button.callback = handler  # type: ignore[method-assign]
            self.add_item(button)
        return self

    async def publish(self, interaction: discord.Interaction, outcome: Outcome | None = None) -> None:
        await interaction.edit_original_response(embed=self.build_embed(), view=self.rebuild())
        if outcome is not None and (outcome.message or not outcome.ok):
            await interaction.followup.send(embed=outcome_embed(outcome), ephemeral=True)

    async def on_new(self, interaction: discord.Interaction) -> None:
        await interaction.response.send_modal(RecordFormModal(self, self.screen.open_create()))

    async def on_edit(self, interaction: discord.Interaction) -> None:
        record = self.selected
        if record is None:
            await interaction.response.send_message(embed=error_embed("Select a record first."), ephemeral=True)
            return
        await interaction.response.send_modal(RecordFormModal(self, self.screen.open_edit(record)))

    async def on_delete(self, interaction: discord.Interaction) -> None:
        record = self.selected
        if record is None:
            await interaction.response.send_message(embed=error_embed("Select a record first."), ephemeral=True)
            return
        await interaction.response.defer()
        outcome = await self.screen.delete(record, InteractionConfirmer(interaction, timeout=self.confirm_timeout))
        if outcome.ok:
            self.selected_id = None
        await self.publish(interaction, outcome)

    async def on_refresh(self, interaction: discord.Interaction) -> None:
        await interaction.response.defer()
        await self.screen.load()
        await self.publish(interaction)

    async def report_error(self, interaction: discord.Interaction, error: Exception) -> None:
        if not isinstance(error, BotError):
            LOGGER.exception("Admin screen action failed. screen=%s", self.screen.schema.screen.value, exc_info=error)
        await send_error_response(interaction, humanize_error(error))

    async def on_error(
        self, interaction: discord.Interaction, error: Exception, item: discord.ui.Item[discord.ui.View]
    ) -> None:
        await self.report_error(interaction, error)
