from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from backend.models import (
    Client,
    Profile,
    ServiceType,
    Ticket,
    TicketPriority,
    TicketResponse,
    TicketStats,
    TicketStatus,
    User,
)
from core.errors import BackendError, PermissionDeniedError, TicketStateError, ValidationError
from services.permissions import Capabilities, STAFF_PROFILES, visible_responses
from services.session import Session
from utils.dialogs import Confirmer, Decision, Outcome

LOGGER = logging.getLogger(__name__)

EDITABLE_STATUSES = (TicketStatus.OPEN, TicketStatus.IN_PROGRESS)

_UNSET: Any = object()


class DetailMode(StrEnum):
    VIEWING = "viewing"
    EDITING = "editing"


@dataclass(slots=True)
class TicketDraft:
    title: str
    description: str
    priority: TicketPriority
    status: TicketStatus
    assigned_to: int | None = None

    @classmethod
    def from_ticket(cls, ticket: Ticket) -> TicketDraft:
        return cls(
            title=ticket.title,
            description=ticket.description,
            priority=ticket.priority,
            status=ticket.status,
            assigned_to=ticket.assigned_to,
        )

    def to_payload(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "description": self.description,
            "priority": self.priority.value,
            "status": self.status.value,
            "assigned_to": self.assigned_to if self.assigned_to is not None else "",
        }


@dataclass(slots=True, frozen=True)
class TicketDetailLayout:
    show_edit: bool
    show_save_cancel: bool
    show_close: bool
    show_response_form: bool
    show_internal_option: bool
    responses: tuple[TicketResponse, ...] = ()


class TicketDetailController:
    """State of one ticket screen: the ticket, its thread and the edit draft."""

    def __init__(self, session: Session, ticket_id: int) -> None:
        self.session = session
        self.ticket_id = ticket_id
        self.ticket: Ticket | None = None
        self.responses: list[TicketResponse] = []
        self.assignees: list[User] = []
        self.mode = DetailMode.VIEWING
        self.draft: TicketDraft | None = None
        self.loading = True
        self.error: str | None = None

    @property
    def capabilities(self) -> Capabilities:
        return self.session.capabilities

    @property
    def not_found(self) -> bool:
        return not self.loading and self.ticket is None and self.error is None

    async def load(self) -> None:
        self.loading = True
        await self._fetch_ticket()
        await self._fetch_responses()
        if self.capabilities.can_edit:
            await self._fetch_assignees()
        self.loading = False

    async def refresh(self) -> None:
        await self._fetch_ticket()
        await self._fetch_responses()

    async def _fetch_ticket(self) -> None:
        try:
            self.ticket = await self.session.tickets.get(self.ticket_id)
            self.error = None
        except BackendError as exc:
            LOGGER.warning("Could not load ticket %s: %s", self.ticket_id, exc.user_message)
            self.error = exc.user_message

    async def _fetch_responses(self) -> None:
        try:
            self.responses = await self.session.responses.list_for(self.ticket_id)
        except BackendError as exc:
            LOGGER.warning("Could not load responses of ticket %s: %s", self.ticket_id, exc.user_message)

    async def _fetch_assignees(self) -> None:
        try:
            users = await self.session.users.list_all()
        except BackendError as exc:
            LOGGER.info("Assignee list unavailable for ticket %s: %s", self.ticket_id, exc.user_message)
            self.assignees = []
            return
        self.assignees = [user for user in users if user.profile in STAFF_PROFILES]

    def layout(self) -> TicketDetailLayout:
        caps = self.capabilities
        ticket = self.ticket
        if ticket is None:
            return TicketDetailLayout(False, False, False, False, False)
        open_ticket = not ticket.is_closed
        editing = self.mode is DetailMode.EDITING and open_ticket
        return TicketDetailLayout(
            show_edit=caps.can_edit and open_ticket and not editing,
            show_save_cancel=caps.can_edit and editing,
            show_close=caps.can_close and open_ticket,
            show_response_form=open_ticket,
            show_internal_option=open_ticket and caps.can_edit,
            responses=tuple(visible_responses(self.responses, self.session.user)),
        )

    def _require_open_ticket(self) -> Ticket:
        if self.ticket is None:
            raise TicketStateError("The ticket is not loaded.")
        if self.ticket.is_closed:
            raise TicketStateError("This ticket is closed and can no longer be changed.")
        return self.ticket

    def begin_edit(self) -> TicketDraft:
        if not self.capabilities.can_edit:
            raise PermissionDeniedError()
        ticket = self._require_open_ticket()
        self.draft = TicketDraft.from_ticket(ticket)
        self.mode = DetailMode.EDITING
        return self.draft

    def cancel_edit(self) -> None:
        self.draft = None
        self.mode = DetailMode.VIEWING

    def _require_draft(self) -> TicketDraft:
        if self.mode is not DetailMode.EDITING or self.draft is None:
            raise TicketStateError("The ticket is not being edited.")
        return self.draft

    def update_draft(
        self,
        *,
        title: str | None = None,
        description: str | None = None,
        priority: TicketPriority | str | None = None,
        status: TicketStatus | str | None = None,
        assigned_to: Any = _UNSET,
    ) -> TicketDraft:
        draft = self._require_draft()
        if title is not None:
            if not title.strip():
                raise ValidationError("Title cannot be empty.")
            draft.title = title.strip()
        if description is not None:
            if not description.strip():
                raise ValidationError("Description cannot be empty.")
            draft.description = description.strip()
        if priority is not None:
            try:
                draft.priority = TicketPriority(priority)
            except ValueError as exc:
                raise ValidationError(f"Unknown priority: {priority}") from exc
        if status is not None:
            try:
                new_status = TicketStatus(status)
            except ValueError as exc:
                raise ValidationError(f"Unknown status: {status}") from exc
            if new_status not in EDITABLE_STATUSES:
                raise ValidationError("Use the close action to close a ticket.")
            draft.status = new_status
        if assigned_to is not _UNSET:
            draft.assigned_to = int(assigned_to) if assigned_to not in (None, "") else None
        return draft

    async def save(self) -> Outcome:
        draft = self._require_draft()
        self._require_open_ticket()
        try:
            await self.session.tickets.update(self.ticket_id, draft.to_payload())
        except BackendError as exc:
            LOGGER.warning("Saving ticket %s failed: %s", self.ticket_id, exc.user_message)
            return Outcome.failure(exc.user_message)
        self.cancel_edit()
        await self.refresh()
        return Outcome.success(f"Ticket #{self.ticket_id} updated.")

    async def close(self, message: str | None, confirmer: Confirmer) -> Outcome:
        if not self.capabilities.can_close:
            raise PermissionDeniedError()
        self._require_open_ticket()
        decision = await confirmer.confirm(
            f"Close ticket #{self.ticket_id}? Closed tickets cannot be reopened."
        )
        if decision is not Decision.CONFIRMED:
            return Outcome.skip("Ticket was not closed.")
        try:
            await self.session.tickets.close(self.ticket_id, (message or "").strip())
        except BackendError as exc:
            LOGGER.warning("Closing ticket %s failed: %s", self.ticket_id, exc.user_message)
            return Outcome.failure(exc.user_message)
        self.cancel_edit()
        await self.refresh()
        if self.ticket is not None and not self.ticket.is_closed:
            LOGGER.warning("Ticket %s still reported as %s after close", self.ticket_id, self.ticket.status)
            self.ticket = dataclasses.replace(self.ticket, status=TicketStatus.CLOSED)
        return Outcome.success(f"Ticket #{self.ticket_id} closed.")

    async def submit_response(self, message: str, internal: bool = False) -> Outcome:
        text = message.strip()
        if not text:
            return Outcome.skip()
        self._require_open_ticket()
        is_internal = internal and self.capabilities.can_edit
        try:
            await self.session.responses.add(self.ticket_id, text, is_internal)
        except BackendError as exc:
            LOGGER.warning("Adding a response to ticket %s failed: %s", self.ticket_id, exc.user_message)
            return Outcome.failure(exc.user_message)
        await self.refresh()
        return Outcome.success("Internal note added." if is_internal else "Response sent.")


@dataclass(slots=True)
class TicketBoard:
    """Ticket list and aggregate counters shown after login."""

    session: Session
    tickets: list[Ticket] = field(default_factory=list)
    stats: TicketStats = field(default_factory=TicketStats)
    loading: bool = True
    error: str | None = None

    @property
    def profile(self) -> Profile:
        return self.session.require_user().profile

    async def load(self) -> None:
        self.loading = True
        self.error = None
        try:
            self.tickets = await self.session.tickets.list_all()
        except BackendError as exc:
            LOGGER.warning("Could not load tickets: %s", exc.user_message)
            self.tickets = []
            self.error = exc.user_message
        try:
            self.stats = await self.session.tickets.stats()
        except BackendError as exc:
            LOGGER.warning("Could not load ticket stats: %s", exc.user_message)
            self.stats = TicketStats()
        self.loading = False


@dataclass(slots=True)
class NewTicketForm:
    session: Session
    service_types: list[ServiceType] = field(default_factory=list)
    clients: list[Client] = field(default_factory=list)
    service_type_id: int | None = None
    client_id: int | None = None
    priority: TicketPriority = TicketPriority.MEDIUM

    async def load_options(self) -> None:
        try:
            service_types = await self.session.service_types.list_all()
            self.service_types = [item for item in service_types if item.active]
        except BackendError as exc:
            LOGGER.warning("Could not load service types: %s", exc.user_message)
            self.service_types = []
        try:
            self.clients = await self.session.clients.list_all()
        except BackendError as exc:
            LOGGER.info("Client list unavailable: %s", exc.user_message)
            self.clients = []

    async def submit(self, title: str, description: str) -> Outcome:
        title = title.strip()
        description = description.strip()
        if not title or not description:
            return Outcome.failure("Title and description are required.")
        if self.service_type_id is None:
            return Outcome.failure("Choose a service type first.")
        payload: dict[str, Any] = {
            "title": title,
            "description": description,
            "service_type_id": self.service_type_id,
            "client_id": self.client_id if self.client_id is not None else "",
            "priority": self.priority.value,
        }
        try:
            ticket = await self.session.tickets.create(payload)
        except BackendError as exc:
            LOGGER.warning("Ticket creation failed: %s", exc.user_message)
            return Outcome.failure(exc.user_message)
        if ticket is not None:
            return Outcome.success(f"Ticket #{ticket.id} created.")
        return Outcome.success("Ticket created.")
