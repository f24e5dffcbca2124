from __future__ import annotations

import logging
from typing import Any

import discord

from core.errors import BotError, humanize_error, send_error_response
from services.admin_service import SCHEMAS_BY_SCREEN, CrudScreen
from services.permissions import DashboardScreen, allowed_screens
from services.session import Session
from services.ticket_service import NewTicketForm, TicketBoard, TicketDetailController
from utils.constants import MAX_SELECT_OPTIONS, SCREEN_LABELS, STATUS_EMOJI
from utils.embeds import board_embed, truncate
from views.admin_screen import AdminScreenView
from views.new_ticket import NewTicketView
from views.ticket_detail import open_ticket_detail

LOGGER = logging.getLogger(__name__)


async def send_private(interaction: discord.Interaction, embed: discord.Embed, view: discord.ui.View | None) -> None:
    kwargs: dict[str, Any] = {"embed": embed, "ephemeral": True}
    if view is not None:
        kwargs["view"] = view
    if interaction.response.is_done():
        await interaction.followup.send(**kwargs)
    else:
        await interaction.response.send_message(**kwargs)


async def open_screen(
    interaction: discord.Interaction, session: Session, screen: DashboardScreen, confirm_timeout: float
) -> None:
    """Send the requested dashboard screen; unknown or forbidden screens fall back to the board."""
    if screen is DashboardScreen.TICKETS or screen not in allowed_screens(session.require_user().profile):
        board = TicketBoard(session)
        await board.load()
        view = TicketBoardView(board, interaction.user.id, confirm_timeout)
        await send_private(interaction, view.build_embed(), view)
        return
    crud = CrudScreen(session, SCHEMAS_BY_SCREEN[screen])
    await crud.load()
    admin_view = AdminScreenView(crud, interaction.user.id, confirm_timeout)
    await send_private(interaction, admin_view.build_embed(), admin_view)


async def open_new_ticket(interaction: discord.Interaction, session: Session) -> None:
    session.require_user()
    form = NewTicketForm(session)
    await form.load_options()
    view = NewTicketView(form, interaction.user.id)
    await send_private(interaction, view.build_embed(), view if form.service_types else None)


class TicketSelect(discord.ui.Select["TicketBoardView"]):
    def __init__(self, board: TicketBoard) -> None:
        options = [
            discord.SelectOption(
                label=truncate(f"#{ticket.id} {ticket.title}", 100),
                value=str(ticket.id),
                emoji=STATUS_EMOJI[ticket.status],
            )
            for ticket in board.tickets[:MAX_SELECT_OPTIONS]
        ]
        super().__init__(placeholder="Open a ticket", options=options, custom_id="board:ticket", row=0)

    async def callback(self, interaction: discord.Interaction) -> None:
        assert self.view is not None
        await interaction.response.defer(ephemeral=True, thinking=True)
        controller = TicketDetailController(self.view.board.session, int(self.values[0]))
        embed, detail_view = await open_ticket_detail(controller, interaction.user.id, self.view.confirm_timeout)
        await send_private(interaction, embed, detail_view)


class TicketBoardView(discord.ui.View):
    def __init__(self, board: TicketBoard, owner_id: int, confirm_timeout: float = 60) -> None:
        super().__init__(timeout=900)
        self.board = board
        self.owner_id = owner_id
        self.confirm_timeout = confirm_timeout
        self.rebuild()

    async def interaction_check(self, interaction: discord.Interaction) -> bool:
        return interaction.user.id == self.owner_id

    def build_embed(self) -> discord.Embed:
        return board_embed(
            self.board.session.require_user(), self.board.tickets, self.board.stats, self.board.error
        )

    def rebuild(self) -> TicketBoardView:
        self.clear_items()
        if self.board.tickets:
            self.add_item(TicketSelect(self.board))
        self._add_button("New ticket", discord.ButtonStyle.success, "board:new", self.on_new_ticket, row=1)
        self._add_button("Refresh", discord.ButtonStyle.secondary, "board:refresh", self.on_refresh, row=1)
        for screen in allowed_screens(self.board.profile):
            if screen is DashboardScreen.TICKETS:
                continue
            self._add_button(
                SCREEN_LABELS[screen.value],
                discord.ButtonStyle.primary,
                f"board:screen:{screen.value}",
                self._screen_handler(screen),
                row=2,
            )
        return self

    def _add_button(self, label: str, style: discord.ButtonStyle, custom_id: str, handler: Any, row: int) -> None:
        button: discord.ui.Button[TicketBoardView] = discord.ui.Button(
            label=label, style=style, custom_id=custom_id, row=row
        )
        button.callback = handler  # type: ignore[method-assign]
        self.add_item(button)

    def _screen_handler(self, screen: DashboardScreen) -> Any:
        async def handler(interaction: discord.Interaction) -> None:
            await interaction.response.defer(ephemeral=True, thinking=True)
            await open_screen(interaction, self.board.session, screen, self.confirm_timeout)

        return handler

    async def on_new_ticket(self, interaction: discord.Interaction) -> None:
        await interaction.response.defer(ephemeral=True, thinking=True)
        await open_new_ticket(interaction, self.board.session)

    async def on_refresh(self, interaction: discord.Interaction) -> None:
        await interaction.response.defer()
        await self.board.load()
        await interaction.edit_original_response(embed=self.build_embed(), view=self.rebuild())

    async def on_error(
        self, interaction: discord.Interaction, error: Exception, item: discord.ui.Item[discord.ui.View]
    ) -> None:
        if not isinstance(error, BotError):
            LOGGER.exception("Ticket board action failed", exc_info=error)
        await send_error_response(interaction, humanize_error(error))
