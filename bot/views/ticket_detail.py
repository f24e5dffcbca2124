from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable

import discord

from backend.models import TicketPriority
from core.errors import BotError, humanize_error, send_error_response
from services.ticket_service import EDITABLE_STATUSES, DetailMode, TicketDetailController
from utils.constants import MAX_SELECT_OPTIONS, PRIORITY_LABELS, STATUS_LABELS
from utils.dialogs import Outcome
from utils.embeds import make_embed, outcome_embed, prefill, ticket_embed, truncate
from views.confirm import InteractionConfirmer

LOGGER = logging.getLogger(__name__)

Handler = Callable[[discord.Interaction], Awaitable[None]]


class _ActionButton(discord.ui.Button["TicketDetailView"]):
    def __init__(self, handler: Handler, **kwargs: object) -> None:
        super().__init__(**kwargs)  # type: ignore[arg-type]
        self.handler = handler

    async def callback(self, interaction: discord.Interaction) -> None:
        await self.handler(interaction)


class _DraftSelect(discord.ui.Select["TicketDetailView"]):
    def __init__(self, field_name: str, placeholder: str, options: list[discord.SelectOption], row: int) -> None:
        super().__init__(
            placeholder=placeholder,
            options=options[:MAX_SELECT_OPTIONS],
            custom_id=f"ticket:draft:{field_name}",
            row=row,
        )
        self.field_name = field_name

    async def callback(self, interaction: discord.Interaction) -> None:
        assert self.view is not None
        value = self.values[0]
        if self.field_name == "assigned_to":
            self.view.controller.update_draft(assigned_to=None if value == "none" else int(value))
        else:
            self.view.controller.update_draft(**{self.field_name: value})
        await interaction.response.edit_message(embed=self.view.build_embed(), view=self.view.rebuild())


class ResponseModal(discord.ui.Modal):
    message = discord.ui.TextInput(
        label="Message",
        placeholder="Type your response",
        style=discord.TextStyle.long,
        max_length=2000,
        required=True,
    )

    def __init__(self, detail_view: TicketDetailView, internal: bool) -> None:
        super().__init__(title="Internal note" if internal else "Reply to ticket", timeout=600)
        self.detail_view = detail_view
        self.internal = internal

    async def on_submit(self, interaction: discord.Interaction) -> None:
        await interaction.response.defer()
        outcome = await self.detail_view.controller.submit_response(str(self.message), internal=self.internal)
        await self.detail_view.publish(interaction, outcome)

    async def on_error(self, interaction: discord.Interaction, error: Exception) -> None:
        await self.detail_view.report_error(interaction, error)


class CloseTicketModal(discord.ui.Modal, title="Close ticket"):
    message = discord.ui.TextInput(
        label="Closing message (optional)",
        placeholder="Summary of the resolution",
        style=discord.TextStyle.long,
        max_length=2000,
        required=False,
    )

    def __init__(self, detail_view: TicketDetailView) -> None:
        super().__init__(timeout=600)
        self.detail_view = detail_view

    async def on_submit(self, interaction: discord.Interaction) -> None:
        await interaction.response.defer()
        confirmer = InteractionConfirmer(interaction, timeout=self.detail_view.confirm_timeout)
        outcome = await self.detail_view.controller.close(str(self.message), confirmer)
        await self.detail_view.publish(interaction, outcome)

    async def on_error(self, interaction: discord.Interaction, error: Exception) -> None:
        await self.detail_view.report_error(interaction, error)


class EditTextModal(discord.ui.Modal, title="Edit ticket"):
    def __init__(self, detail_view: TicketDetailView) -> None:
        super().__init__(timeout=600)
        self.detail_view = detail_view
        draft = detail_view.controller.draft
        title_default, title_limit = prefill(draft.title if draft else None, 200)
        description_default, description_limit = prefill(draft.description if draft else None, 4000)
        self.title_input = discord.ui.TextInput(
            label="Title",
            default=title_default,
            max_length=title_limit,
            required=True,
        )
        self.description_input = discord.ui.TextInput(
            label="Description",
            default=description_default,
            style=discord.TextStyle.long,
            max_length=description_limit,
            required=True,
        )
        self.add_item(self.title_input)
        self.add_item(self.description_input)

    async def on_submit(self, interaction: discord.Interaction) -> None:
        self.detail_view.controller.update_draft(
            title=str(self.title_input.value),
            description=str(self.description_input.value),
        )
        await interaction.response.edit_message(
            embed=self.detail_view.build_embed(), view=self.detail_view.rebuild()
        )

    async def on_error(self, interaction: discord.Interaction, error: Exception) -> None:
        await self.detail_view.report_error(interaction, error)


class TicketDetailView(discord.ui.View):
    """Ticket screen; controls are rebuilt from the controller layout after every action."""

    def __init__(self, controller: TicketDetailController, owner_id: int, confirm_timeout: float = 60) -> None:
        super().__init__(timeout=900)
        self.controller = controller
        self.owner_id = owner_id
        self.confirm_timeout = confirm_timeout
        self.rebuild()

    async def interaction_check(self, interaction: discord.Interaction) -> bool:
        return interaction.user.id == self.owner_id

    def build_embed(self) -> discord.Embed:
        ticket = self.controller.ticket
        if ticket is None:
            return make_embed(
                title=f"Ticket #{self.controller.ticket_id}",
                description=self.controller.error or "Ticket not found.",
                color=discord.Color.red(),
            )
        layout = self.controller.layout()
        draft = self.controller.draft
        if self.controller.mode is DetailMode.EDITING and draft is not None:
            assignee = next(
                (user.username for user in self.controller.assignees if user.id == draft.assigned_to),
                "Unassigned" if draft.assigned_to is None else f"User {draft.assigned_to}",
            )
            summary = (
                f"✏️ **Editing** · title: {truncate(draft.title, 80)} · "
                f"{STATUS_LABELS[draft.status]} · {PRIORITY_LABELS[draft.priority]} · {assignee}\n\n"
                f"{draft.description}"
            )
            return ticket_embed(ticket, layout.responses, description=summary)
        return ticket_embed(ticket, layout.responses)

    def rebuild(self) -> TicketDetailView:
        self.clear_items()
        layout = self.controller.layout()
        action_row: int | None = None
        if layout.show_save_cancel:
            self._add_edit_controls()
            action_row = 4
        if layout.show_edit:
            self._button("Edit", discord.ButtonStyle.primary, "ticket:edit", self.on_edit, "✏️")
        if layout.show_close:
            self._button("Close", discord.ButtonStyle.danger, "ticket:close", self.on_close, "🧾", action_row)
        if layout.show_response_form:
            self._button("Reply", discord.ButtonStyle.success, "ticket:reply", self.on_reply, "💬", action_row)
        if layout.show_internal_option:
            self._button(
                "Internal note", discord.ButtonStyle.secondary, "ticket:internal", self.on_internal, "🔒", action_row
            )
        if not layout.show_save_cancel:
            self._button("Refresh", discord.ButtonStyle.secondary, "ticket:refresh", self.on_refresh, "🔄")
        return self

    def _button(
        self,
        label: str,
        style: discord.ButtonStyle,
        custom_id: str,
        handler: Handler,
        emoji: str | None = None,
        row: int | None = None,
    ) -> None:
        self.add_item(_ActionButton(handler, label=label, style=style, custom_id=custom_id, emoji=emoji, row=row))

    def _add_edit_controls(self) -> None:
        draft = self.controller.draft
        assert draft is not None
        status_options = [
            discord.SelectOption(label=STATUS_LABELS[status], value=status.value, default=status is draft.status)
            for status in EDITABLE_STATUSES
        ]
        priority_options = [
            discord.SelectOption(
                label=PRIORITY_LABELS[priority], value=priority.value, default=priority is draft.priority
            )
            for priority in TicketPriority
        ]
        assignee_options = [
            discord.SelectOption(label="Unassigned", value="none", default=draft.assigned_to is None)
        ]
        assignee_options.extend(
            discord.SelectOption(
                label=truncate(user.username, 100),
                value=str(user.id),
                default=user.id == draft.assigned_to,
            )
            for user in self.controller.assignees
        )
        self.add_item(_DraftSelect("status", "Status", status_options, row=0))
        self.add_item(_DraftSelect("priority", "Priority", priority_options, row=1))
        self.add_item(_DraftSelect("assigned_to", "Assign to", assignee_options, row=2))
        self._button("Edit text", discord.ButtonStyle.secondary, "ticket:text", self.on_edit_text, "📝", row=3)
        self._button("Save", discord.ButtonStyle.success, "ticket:save", self.on_save, "💾", row=3)
        self._button("Cancel", discord.ButtonStyle.secondary, "ticket:cancel", self.on_cancel, row=3)

    async def publish(self, interaction: discord.Interaction, outcome: Outcome | None = None) -> None:
        """Re-render the ticket message of a deferred interaction and report ``outcome``."""
        await interaction.edit_original_response(embed=self.build_embed(), view=self.rebuild())
        if outcome is not None and (outcome.message or not outcome.ok):
            await interaction.followup.send(embed=outcome_embed(outcome), ephemeral=True)

    async def on_edit(self, interaction: discord.Interaction) -> None:
        self.controller.begin_edit()
        await interaction.response.edit_message(embed=self.build_embed(), view=self.rebuild())

    async def on_edit_text(self, interaction: discord.Interaction) -> None:
        await interaction.response.send_modal(EditTextModal(self))

    async def on_cancel(self, interaction: discord.Interaction) -> None:
        self.controller.cancel_edit()
        await interaction.response.edit_message(embed=self.build_embed(), view=self.rebuild())

    async def on_save(self, interaction: discord.Interaction) -> None:
        await interaction.response.defer()
        outcome = await self.controller.save()
        await self.publish(interaction, outcome)

    async def on_close(self, interaction: discord.Interaction) -> None:
        await interaction.response.send_modal(CloseTicketModal(self))

    async def on_reply(self, interaction: discord.Interaction) -> None:
        await interaction.response.send_modal(ResponseModal(self, internal=False))

    async def on_internal(self, interaction: discord.Interaction) -> None:
        await interaction.response.send_modal(ResponseModal(self, internal=True))

    async def on_refresh(self, interaction: discord.Interaction) -> None:
        await interaction.response.defer()
        await self.controller.refresh()
        await self.publish(interaction)

    async def report_error(self, interaction: discord.Interaction, error: Exception) -> None:
        if not isinstance(error, BotError):
            LOGGER.exception("Ticket view action failed. ticket=%s", self.controller.ticket_id, exc_info=error)
        await send_error_response(interaction, humanize_error(error))

    async def on_error(
        self, interaction: discord.Interaction, error: Exception, item: discord.ui.Item[discord.ui.View]
    ) -> None:
        await self.report_error(interaction, error)


async def open_ticket_detail(
    controller: TicketDetailController, owner_id: int, confirm_timeout: float = 60
) -> tuple[discord.Embed, TicketDetailView | None]:
    """Load the controller and return what the ticket message should show."""
    await controller.load()
    if controller.ticket is None:
        message = controller.error or f"Ticket #{controller.ticket_id} was not found."
        return make_embed(title="Ticket", description=message, color=discord.Color.red()), None
    view = TicketDetailView(controller, owner_id, confirm_timeout)
    return view.build_embed(), view
