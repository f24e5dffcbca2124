from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

LOGGER = logging.getLogger(__name__)


class Profile(StrEnum):
    ADMINISTRATOR = "administrador"
    TECHNICIAN = "tecnico"
    STANDARD = "usuario"

    @classmethod
    def parse(cls, value: Any) -> Profile:
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            LOGGER.warning("Unknown profile %r, treating as standard user", value)
            return cls.STANDARD


class TicketStatus(StrEnum):
    OPEN = "aberto"
    IN_PROGRESS = "em_andamento"
    CLOSED = "fechado"

    @classmethod
    def parse(cls, value: Any) -> TicketStatus:
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            LOGGER.warning("Unknown ticket status %r, treating as open", value)
            return cls.OPEN


class TicketPriority(StrEnum):
    LOW = "baixa"
    MEDIUM = "media"
    HIGH = "alta"

    @classmethod
    def parse(cls, value: Any) -> TicketPriority:
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return cls.MEDIUM


def _opt_int(value: Any) -> int | None:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _opt_str(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value)
    return text if text else None


@dataclass(slots=True, frozen=True)
class User:
    id: int
    username: str
    profile: Profile
    active: bool = True

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> User:
        return cls(
            id=int(row["id"]),
            username=str(row.get("username", "")),
            profile=Profile.parse(row.get("profile")),
            active=bool(row.get("active", True)),
        )


@dataclass(slots=True, frozen=True)
class Ticket:
    id: int
    title: str
    description: str
    status: TicketStatus
    priority: TicketPriority
    service_type: str | None = None
    client: str | None = None
    assigned_to: int | None = None
    assigned_user: str | None = None
    user: str | None = None
    user_id: int | None = None
    created_at: str | None = None
    updated_at: str | None = None

    @property
    def is_closed(self) -> bool:
        return self.status is TicketStatus.CLOSED

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> Ticket:
        return cls(
            id=int(row["id"]),
            title=str(row.get("title", "")),
            description=str(row.get("description", "")),
            status=TicketStatus.parse(row.get("status")),
            priority=TicketPriority.parse(row.get("priority")),
            service_type=_opt_str(row.get("service_type")),
            client=_opt_str(row.get("client")),
            assigned_to=_opt_int(row.get("assigned_to")),
            assigned_user=_opt_str(row.get("assigned_user")),
            user=_opt_str(row.get("user")),
            user_id=_opt_int(row.get("user_id")),
            created_at=_opt_str(row.get("created_at")),
            updated_at=_opt_str(row.get("updated_at")),
        )


@dataclass(slots=True, frozen=True)
class TicketResponse:
    id: int
    message: str
    is_internal: bool
    user: str | None = None
    ticket_id: int | None = None
    created_at: str | None = None

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> TicketResponse:
        return cls(
            id=int(row["id"]),
            message=str(row.get("message", "")),
            is_internal=bool(row.get("is_internal", False)),
            user=_opt_str(row.get("user")),
            ticket_id=_opt_int(row.get("ticket_id")),
            created_at=_opt_str(row.get("created_at")),
        )


@dataclass(slots=True, frozen=True)
class Client:
    id: int
    name: str
    email: str
    phone: str | None = None
    company: str | None = None
    address: str | None = None
    active: bool = True

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> Client:
        return cls(
            id=int(row["id"]),
            name=str(row.get("name", "")),
            email=str(row.get("email", "")),
            phone=_opt_str(row.get("phone")),
            company=_opt_str(row.get("company")),
            address=_opt_str(row.get("address")),
            active=bool(row.get("active", True)),
        )


@dataclass(slots=True, frozen=True)
class ServiceType:
    id: int
    name: str
    description: str | None = None
    active: bool = True

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> ServiceType:
        return cls(
            id=int(row["id"]),
            name=str(row.get("name", "")),
            description=_opt_str(row.get("description")),
            active=bool(row.get("active", True)),
        )


@dataclass(slots=True, frozen=True)
class TicketStats:
    total: int = 0
    open: int = 0
    in_progress: int = 0
    closed: int = 0

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> TicketStats:
        return cls(
            total=_opt_int(row.get("total")) or 0,
            open=_opt_int(row.get(TicketStatus.OPEN.value)) or 0,
            in_progress=_opt_int(row.get(TicketStatus.IN_PROGRESS.value)) or 0,
            closed=_opt_int(row.get(TicketStatus.CLOSED.value)) or 0,
        )
