from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any, Generic, TypeVar

from backend.base import BackendClient
from backend.models import Client, ServiceType, Ticket, TicketResponse, TicketStats, User
from core.errors import AuthenticationRequiredError, NotFoundError

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")


def _rows(body: Any, key: str) -> list[dict[str, Any]]:
    if isinstance(body, dict):
        body = body.get(key, [])
    if not isinstance(body, list):
        return []
    return [row for row in body if isinstance(row, dict)]


def _record(body: Any, key: str) -> dict[str, Any] | None:
    if isinstance(body, dict):
        inner = body.get(key)
        if isinstance(inner, dict):
            return inner
        if "id" in body:
            return body
    return None


class AuthRepository:
    def __init__(self, client: BackendClient) -> None:
        self.client = client

    async def me(self) -> User | None:
        try:
            body = await self.client.get("/api/me")
        except (AuthenticationRequiredError, NotFoundError):
            return None
        row = _record(body, "user")
        return User.from_row(row) if row else None

    async def login(self, username: str, password: str) -> User:
        body = await self.client.post("/api/login", {"username": username, "password": password})
        row = _record(body, "user")
        if row is None:
            raise AuthenticationRequiredError(user_message="Login response did not include a user.")
        return User.from_row(row)

    async def logout(self) -> None:
        await self.client.post("/api/logout")


class TicketRepository:
    def __init__(self, client: BackendClient) -> None:
        self.client = client

    async def list_all(self) -> list[Ticket]:
        body = await self.client.get("/api/tickets")
        return [Ticket.from_row(row) for row in _rows(body, "tickets")]

    async def get(self, ticket_id: int) -> Ticket | None:
        try:
            body = await self.client.get(f"/api/tickets/{ticket_id}")
        except NotFoundError:
            return None
        row = _record(body, "ticket")
        return Ticket.from_row(row) if row else None

    async def create(self, payload: dict[str, Any]) -> Ticket | None:
        body = await self.client.post("/api/tickets", payload)
        row = _record(body, "ticket")
        return Ticket.from_row(row) if row else None

    async def update(self, ticket_id: int, payload: dict[str, Any]) -> None:
        await self.client.put(f"/api/tickets/{ticket_id}", payload)

    async def close(self, ticket_id: int, message: str) -> None:
        await self.client.post(f"/api/tickets/{ticket_id}/close", {"message": message})

    async def stats(self) -> TicketStats:
        body = await self.client.get("/api/tickets/stats")
        row = body.get("stats", body) if isinstance(body, dict) else {}
        return TicketStats.from_row(row if isinstance(row, dict) else {})


class ResponseRepository:
    def __init__(self, client: BackendClient) -> None:
        self.client = client

    async def list_for(self, ticket_id: int) -> list[TicketResponse]:
        body = await self.client.get(f"/api/tickets/{ticket_id}/responses")
        return [TicketResponse.from_row(row) for row in _rows(body, "responses")]

    async def add(self, ticket_id: int, message: str, is_internal: bool) -> None:
        await self.client.post(
            f"/api/tickets/{ticket_id}/responses",
            {"message": message, "is_internal": is_internal},
        )


class RecordRepository(Generic[T]):
    """List/create/update/delete for the flat admin resources."""

    def __init__(
        self,
        client: BackendClient,
        path: str,
        parse: Callable[[dict[str, Any]], T],
        envelope: str,
    ) -> None:
        self.client = client
        self.path = path
        self.parse = parse
        self.envelope = envelope

    async def list_all(self) -> list[T]:
        body = await self.client.get(self.path)
        return [self.parse(row) for row in _rows(body, self.envelope)]

    async def create(self, payload: dict[str, Any]) -> None:
        await self.client.post(self.path, payload)

    async def update(self, record_id: int, payload: dict[str, Any]) -> None:
        await self.client.put(f"{self.path}/{record_id}", payload)

    async def delete(self, record_id: int) -> None:
        await self.client.delete(f"{self.path}/{record_id}")


class UserRepository(RecordRepository[User]):
    def __init__(self, client: BackendClient) -> None:
        super().__init__(client, "/api/users", User.from_row, "users")


class ClientRepository(RecordRepository[Client]):
    def __init__(self, client: BackendClient) -> None:
        super().__init__(client, "/api/clients", Client.from_row, "clients")


class ServiceTypeRepository(RecordRepository[ServiceType]):
    def __init__(self, client: BackendClient) -> None:
        super().__init__(client, "/api/service-types", ServiceType.from_row, "service_types")
