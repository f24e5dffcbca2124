from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from enum import StrEnum

from backend.models import Profile, TicketResponse, User

STAFF_PROFILES = frozenset({Profile.ADMINISTRATOR, Profile.TECHNICIAN})


@dataclass(slots=True, frozen=True)
class Capabilities:
    can_edit: bool = False
    can_close: bool = False
    can_view_internal: bool = False
    can_manage_users: bool = False
    can_manage_clients: bool = False
    can_manage_service_types: bool = False


NO_CAPABILITIES = Capabilities()


def capabilities_for(user: User | None) -> Capabilities:
    if user is None:
        return NO_CAPABILITIES
    staff = user.profile in STAFF_PROFILES
    admin = user.profile is Profile.ADMINISTRATOR
    return Capabilities(
        can_edit=staff,
        can_close=staff,
        can_view_internal=staff,
        can_manage_users=admin,
        can_manage_clients=staff,
        can_manage_service_types=admin,
    )


class DashboardScreen(StrEnum):
    TICKETS = "tickets"
    USERS = "users"
    CLIENTS = "clients"
    SERVICE_TYPES = "service-types"


_SCREEN_PROFILES: dict[DashboardScreen, frozenset[Profile]] = {
    DashboardScreen.TICKETS: frozenset(Profile),
    DashboardScreen.USERS: frozenset({Profile.ADMINISTRATOR}),
    DashboardScreen.CLIENTS: STAFF_PROFILES,
    DashboardScreen.SERVICE_TYPES: frozenset({Profile.ADMINISTRATOR}),
}


def resolve_screen(profile: Profile, requested: DashboardScreen) -> DashboardScreen:
    """Return ``requested`` when ``profile`` may open it, otherwise the ticket board."""
    if profile in _SCREEN_PROFILES[requested]:
        return requested
    return DashboardScreen.TICKETS


def allowed_screens(profile: Profile) -> list[DashboardScreen]:
    return [screen for screen in DashboardScreen if resolve_screen(profile, screen) is screen]


def visible_responses(responses: Iterable[TicketResponse], user: User | None) -> list[TicketResponse]:
    if capabilities_for(user).can_view_internal:
        return list(responses)
    return [response for response in responses if not response.is_internal]
