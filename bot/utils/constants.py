from __future__ import annotations

from backend.models import Profile, TicketPriority, TicketStatus

STATUS_LABELS = {
    TicketStatus.OPEN: "Open",
    TicketStatus.IN_PROGRESS: "In progress",
    TicketStatus.CLOSED: "Closed",
}

STATUS_EMOJI = {
    TicketStatus.OPEN: "🟢",
    TicketStatus.IN_PROGRESS: "🟡",
    TicketStatus.CLOSED: "⚫",
}

PRIORITY_LABELS = {
    TicketPriority.LOW: "Low",
    TicketPriority.MEDIUM: "Medium",
    TicketPriority.HIGH: "High",
}

PROFILE_LABELS = {
    Profile.ADMINISTRATOR: "Administrator",
    Profile.TECHNICIAN: "Technician",
    Profile.STANDARD: "User",
}

SCREEN_LABELS = {
    "tickets": "Tickets",
    "users": "Users",
    "clients": "Clients",
    "service-types": "Service types",
}

# Discord component limits.
MAX_SELECT_OPTIONS = 25
MAX_EMBED_FIELDS = 25
MAX_FIELD_VALUE = 1024
MAX_EMBED_DESCRIPTION = 4096
MAX_EMBED_TOTAL = 6000
MAX_MODAL_LABEL = 45
MAX_TEXT_INPUT = 4000
