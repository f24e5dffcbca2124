from __future__ import annotations

import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer

from backend.base import BackendClient
from backend.models import Profile, TicketStatus
from backend.repositories import AuthRepository, TicketRepository
from core.errors import (
    AuthenticationRequiredError,
    BackendError,
    BackendUnavailableError,
    NotFoundError,
)


@pytest.mark.asyncio
async def test_login_keeps_cookie_for_followup_requests(helpdesk) -> None:
    client = BackendClient(helpdesk.base_url)
    auth = AuthRepository(client)

    user = await auth.login("admin", "admin123")
    me = await auth.me()

    assert user.profile is Profile.ADMINISTRATOR
    assert me is not None and me.username == "admin"
    await client.close()


@pytest.mark.asyncio
async def test_wrong_password_surfaces_server_message(helpdesk) -> None:
    client = BackendClient(helpdesk.base_url)

    with pytest.raises(AuthenticationRequiredError) as excinfo:
        await AuthRepository(client).login("admin", "nope")

    assert excinfo.value.user_message == "Credenciais inválidas"
    assert excinfo.value.status == 401
    await client.close()


@pytest.mark.asyncio
async def test_me_without_session_is_anonymous(helpdesk) -> None:
    client = BackendClient(helpdesk.base_url)
    assert await AuthRepository(client).me() is None
    await client.close()


@pytest.mark.asyncio
async def test_missing_ticket_reads_as_absent(helpdesk) -> None:
    client = BackendClient(helpdesk.base_url)
    await AuthRepository(client).login("admin", "admin123")
    tickets = TicketRepository(client)

    assert await tickets.get(999) is None
    ticket = await tickets.get(7)
    assert ticket is not None
    assert ticket.status is TicketStatus.OPEN
    assert ticket.assigned_user == "carlos"
    await client.close()


@pytest.mark.asyncio
async def test_other_errors_keep_status_and_message(helpdesk) -> None:
    client = BackendClient(helpdesk.base_url)
    await AuthRepository(client).login("maria", "maria123")

    with pytest.raises(BackendError) as excinfo:
        await TicketRepository(client).update(12, {"title": "x"})

    assert excinfo.value.status == 403
    assert excinfo.value.user_message == "Acesso negado"
    assert not isinstance(excinfo.value, NotFoundError)
    await client.close()


@pytest.mark.asyncio
async def test_plain_text_error_body_is_used_as_message() -> None:
    async def broken(_: web.Request) -> web.Response:
        return web.Response(status=500, text="database is locked")

    app = web.Application()
    app.router.add_get("/api/tickets", broken)
    server = TestServer(app)
    await server.start_server()
    client = BackendClient(str(server.make_url("")))

    with pytest.raises(BackendError) as excinfo:
        await client.get("/api/tickets")

    assert excinfo.value.user_message == "database is locked"
    assert excinfo.value.status == 500
    await client.close()
    await server.close()


@pytest.mark.asyncio
async def test_unreachable_server_raises_unavailable() -> None:
    client = BackendClient("http://127.0.0.1:1", timeout_seconds=2)

    with pytest.raises(BackendUnavailableError) as excinfo:
        await client.get("/api/me")

    assert "connect" in excinfo.value.user_message
    await client.close()


@pytest.mark.asyncio
async def test_stats_envelope_maps_wire_keys(helpdesk) -> None:
    client = BackendClient(helpdesk.base_url)
    await AuthRepository(client).login("admin", "admin123")

    stats = await TicketRepository(client).stats()

    assert (stats.total, stats.open, stats.in_progress, stats.closed) == (3, 2, 0, 1)
    await client.close()
