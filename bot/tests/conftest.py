from __future__ import annotations

import itertools
import secrets
from collections.abc import AsyncIterator, Awaitable, Callable
from typing import Any

import pytest_asyncio
from aiohttp import web
from aiohttp.test_utils import TestServer

from core.config import BackendConfig, SecurityConfig
from services.cache import MemoryCache
from services.session import Session, SessionStore

STAFF = {"administrador", "tecnico"}

PASSWORDS = {"admin": "admin123", "carlos": "tec123", "maria": "maria123"}


def _error(status: int, message: str) -> web.Response:
    return web.json_response({"error": message}, status=status)


class FakeHelpdesk:
    """In-memory helpdesk API speaking the same JSON envelopes as the real server."""

    def __init__(self) -> None:
        self.base_url = ""
        self.requests: list[tuple[str, str, Any]] = []
        self.sessions: dict[str, int] = {}
        self.stats_available = True
        self._ids = itertools.count(100)
        self.users: dict[int, dict[str, Any]] = {
            1: {"id": 1, "username": "admin", "password": "admin123", "profile": "administrador", "active": True},
            2: {"id": 2, "username": "carlos", "password": "tec123", "profile": "tecnico", "active": True},
            3: {"id": 3, "username": "maria", "password": "maria123", "profile": "usuario", "active": True},
        }
        self.clients: dict[int, dict[str, Any]] = {
            1: {
                "id": 1,
                "name": "ACME Ltda",
                "email": "contato@acme.com",
                "phone": "(11) 4000-1000",
                "company": "ACME",
                "address": "Rua A, 10",
                "active": True,
            },
        }
        self.service_types: dict[int, dict[str, Any]] = {
            1: {"id": 1, "name": "Suporte técnico", "description": "Hardware e software", "active": True},
            2: {"id": 2, "name": "Legado", "description": None, "active": False},
        }
        self.tickets: dict[int, dict[str, Any]] = {
            7: self._ticket_row(7, "Impressora offline", user_id=1, assigned_to=2),
            12: self._ticket_row(12, "Sem acesso ao e-mail", user_id=3),
            20: self._ticket_row(20, "Troca de monitor", user_id=3, status="fechado"),
        }
        self.responses: dict[int, list[dict[str, Any]]] = {
            7: [],
            12: [
                self._response_row(12, "Estamos verificando", user_id=2, is_internal=False),
                self._response_row(12, "Senha expirada no AD", user_id=2, is_internal=True),
            ],
            20: [self._response_row(20, "Monitor trocado", user_id=2, is_internal=False)],
        }

    # rows ---------------------------------------------------------------

    def _ticket_row(
        self,
        ticket_id: int,
        title: str,
        *,
        user_id: int,
        assigned_to: int | None = None,
        status: str = "aberto",
        priority: str = "media",
    ) -> dict[str, Any]:
        return {
            "id": ticket_id,
            "title": title,
            "description": f"Detalhes de {title.lower()}",
            "status": status,
            "priority": priority,
            "service_type_id": 1,
            "client_id": 1,
            "assigned_to": assigned_to,
            "user_id": user_id,
            "created_at": "2024-05-01 10:00:00",
            "updated_at": "2024-05-01 10:00:00",
        }

    def _response_row(self, ticket_id: int, message: str, *, user_id: int, is_internal: bool) -> dict[str, Any]:
        return {
            "id": next(self._ids),
            "ticket_id": ticket_id,
            "message": message,
            "is_internal": is_internal,
            "user_id": user_id,
            "created_at": "2024-05-01 11:00:00",
        }

    def _render_ticket(self, row: dict[str, Any]) -> dict[str, Any]:
        service_type = self.service_types.get(row["service_type_id"] or 0)
        client = self.clients.get(row["client_id"] or 0)
        assignee = self.users.get(row["assigned_to"] or 0)
        creator = self.users.get(row["user_id"])
        return {
            **row,
            "service_type": service_type["name"] if service_type else None,
            "client": client["name"] if client else None,
            "assigned_user": assignee["username"] if assignee else None,
            "user": creator["username"] if creator else None,
        }

    def _render_response(self, row: dict[str, Any]) -> dict[str, Any]:
        author = self.users.get(row["user_id"])
        return {**row, "user": author["username"] if author else None}

    @staticmethod
    def _public_user(row: dict[str, Any]) -> dict[str, Any]:
        return {key: value for key, value in row.items() if key != "password"}

    def requests_for(self, method: str, path: str) -> list[Any]:
        return [body for m, p, body in self.requests if m == method and p == path]

    # app ----------------------------------------------------------------

    def _current_user(self, request: web.Request) -> dict[str, Any] | None:
        user_id = self.sessions.get(request.cookies.get("sid", ""))
        return self.users.get(user_id) if user_id is not None else None

    def build_app(self) -> web.Application:
        @web.middleware
        async def record(request: web.Request, handler: Callable[[web.Request], Awaitable[web.StreamResponse]]):
            body = await request.json() if request.can_read_body else None
            self.requests.append((request.method, request.path, body))
            return await handler(request)

        @web.middleware
        async def authenticate(request: web.Request, handler: Callable[[web.Request], Awaitable[web.StreamResponse]]):
            if request.path != "/api/login":
                user = self._current_user(request)
                if user is None:
                    return _error(401, "Não autenticado")
                request["user"] = user
            return await handler(request)

        app = web.Application(middlewares=[record, authenticate])
        app.router.add_get("/api/me", self.me)
        app.router.add_post("/api/login", self.login)
        app.router.add_post("/api/logout", self.logout)
        app.router.add_get("/api/tickets/stats", self.ticket_stats)
        app.router.add_get("/api/tickets", self.list_tickets)
        app.router.add_post("/api/tickets", self.create_ticket)
        app.router.add_get(r"/api/tickets/{id:\d+}", self.get_ticket)
        app.router.add_put(r"/api/tickets/{id:\d+}", self.update_ticket)
        app.router.add_post(r"/api/tickets/{id:\d+}/close", self.close_ticket)
        app.router.add_get(r"/api/tickets/{id:\d+}/responses", self.list_responses)
        app.router.add_post(r"/api/tickets/{id:\d+}/responses", self.add_response)
        for path, table, read_roles, write_roles in (
            ("/api/users", "users", STAFF, {"administrador"}),
            ("/api/clients", "clients", STAFF, STAFF),
            ("/api/service-types", "service_types", None, {"administrador"}),
        ):
            self._add_crud(app, path, table, read_roles, write_roles)
        return app

    # auth ---------------------------------------------------------------

    async def me(self, request: web.Request) -> web.Response:
        return web.json_response({"user": self._public_user(request["user"])})

    async def login(self, request: web.Request) -> web.Response:
        data = await request.json()
        for user in self.users.values():
            if user["username"] == data.get("username") and user["password"] == data.get("password"):
                if not user["active"]:
                    break
                token = secrets.token_hex(8)
                self.sessions[token] = user["id"]
                response = web.json_response({"user": self._public_user(user)})
                response.set_cookie("sid", token)
                return response
        return _error(401, "Credenciais inválidas")

    async def logout(self, request: web.Request) -> web.Response:
        self.sessions.pop(request.cookies.get("sid", ""), None)
        response = web.json_response({"message": "Logout realizado"})
        response.del_cookie("sid")
        return response

    # tickets ------------------------------------------------------------

    def _find_ticket(self, request: web.Request) -> dict[str, Any] | None:
        row = self.tickets.get(int(request.match_info["id"]))
        user = request["user"]
        if row is None or (user["profile"] not in STAFF and row["user_id"] != user["id"]):
            return None
        return row

    async def list_tickets(self, request: web.Request) -> web.Response:
        user = request["user"]
        rows = [
            self._render_ticket(row)
            for row in self.tickets.values()
            if user["profile"] in STAFF or row["user_id"] == user["id"]
        ]
        return web.json_response({"tickets": rows})

    async def ticket_stats(self, request: web.Request) -> web.Response:
        if not self.stats_available:
            return _error(500, "Erro ao calcular estatísticas")
        statuses = [row["status"] for row in self.tickets.values()]
        return web.json_response(
            {
                "stats": {
                    "total": len(statuses),
                    "aberto": statuses.count("aberto"),
                    "em_andamento": statuses.count("em_andamento"),
                    "fechado": statuses.count("fechado"),
                }
            }
        )

    async def get_ticket(self, request: web.Request) -> web.Response:
        row = self._find_ticket(request)
        if row is None:
            return _error(404, "Ticket não encontrado")
        return web.json_response({"ticket": self._render_ticket(row)})

    async def create_ticket(self, request: web.Request) -> web.Response:
        data = await request.json()
        if not data.get("title") or not data.get("description") or not data.get("service_type_id"):
            return _error(400, "Título, descrição e tipo de serviço são obrigatórios")
        ticket_id = next(self._ids)
        row = self._ticket_row(
            ticket_id,
            data["title"],
            user_id=request["user"]["id"],
            priority=data.get("priority") or "media",
        )
        row["description"] = data["description"]
        row["service_type_id"] = int(data["service_type_id"])
        row["client_id"] = int(data["client_id"]) if data.get("client_id") else None
        self.tickets[ticket_id] = row
        self.responses[ticket_id] = []
        return web.json_response({"ticket": self._render_ticket(row)}, status=201)

    async def update_ticket(self, request: web.Request) -> web.Response:
        if request["user"]["profile"] not in STAFF:
            return _error(403, "Acesso negado")
        row = self._find_ticket(request)
        if row is None:
            return _error(404, "Ticket não encontrado")
        data = await request.json()
        for key in ("title", "description", "priority", "status"):
            if key in data:
                row[key] = data[key]
        if "assigned_to" in data:
            row["assigned_to"] = int(data["assigned_to"]) if data["assigned_to"] not in (None, "") else None
        return web.json_response({"message": "Ticket atualizado"})

    async def close_ticket(self, request: web.Request) -> web.Response:
        if request["user"]["profile"] not in STAFF:
            return _error(403, "Acesso negado")
        row = self._find_ticket(request)
        if row is None:
            return _error(404, "Ticket não encontrado")
        if row["status"] == "fechado":
            return _error(400, "Ticket já está fechado")
        data = await request.json()
        row["status"] = "fechado"
        message = (data or {}).get("message")
        if message:
            self.responses[row["id"]].append(
                self._response_row(row["id"], message, user_id=request["user"]["id"], is_internal=False)
            )
        return web.json_response({"message": "Ticket fechado"})

    async def list_responses(self, request: web.Request) -> web.Response:
        row = self._find_ticket(request)
        if row is None:
            return _error(404, "Ticket não encontrado")
        # Internal notes are returned to everyone; hiding them is the client's job.
        rows = [self._render_response(item) for item in self.responses.get(row["id"], [])]
        return web.json_response({"responses": rows})

    async def add_response(self, request: web.Request) -> web.Response:
        row = self._find_ticket(request)
        if row is None:
            return _error(404, "Ticket não encontrado")
        if row["status"] == "fechado":
            return _error(400, "Ticket fechado não aceita respostas")
        data = await request.json()
        response = self._response_row(
            row["id"], data["message"], user_id=request["user"]["id"], is_internal=bool(data.get("is_internal"))
        )
        self.responses[row["id"]].append(response)
        return web.json_response({"response": self._render_response(response)}, status=201)

    # admin records ------------------------------------------------------

    def _add_crud(
        self,
        app: web.Application,
        path: str,
        table: str,
        read_roles: set[str] | None,
        write_roles: set[str],
    ) -> None:
        store: dict[int, dict[str, Any]] = getattr(self, table)

        def allowed(request: web.Request, write: bool) -> bool:
            roles = write_roles if write else read_roles
            return roles is None or request["user"]["profile"] in roles

        async def list_records(request: web.Request) -> web.Response:
            if not allowed(request, write=False):
                return _error(403, "Acesso negado")
            rows = [self._public_user(row) if table == "users" else row for row in store.values()]
            return web.json_response(rows)

        async def create_record(request: web.Request) -> web.Response:
            if not allowed(request, write=True):
                return _error(403, "Acesso negado")
            data = await request.json()
            problem = self._validate(table, data, creating=True)
            if problem:
                return _error(400, problem)
            record_id = next(self._ids)
            store[record_id] = {"id": record_id, "active": True, **data}
            return web.json_response({"id": record_id}, status=201)

        async def update_record(request: web.Request) -> web.Response:
            if not allowed(request, write=True):
                return _error(403, "Acesso negado")
            record = store.get(int(request.match_info["id"]))
            if record is None:
                return _error(404, "Registro não encontrado")
            data = await request.json()
            problem = self._validate(table, data, creating=False, record_id=record["id"])
            if problem:
                return _error(400, problem)
            if table == "users" and not data.get("password"):
                data.pop("password", None)
            record.update(data)
            return web.json_response({"message": "Atualizado"})

        async def delete_record(request: web.Request) -> web.Response:
            if not allowed(request, write=True):
                return _error(403, "Acesso negado")
            if store.pop(int(request.match_info["id"]), None) is None:
                return _error(404, "Registro não encontrado")
            return web.json_response({"message": "Removido"})

        app.router.add_get(path, list_records)
        app.router.add_post(path, create_record)
        app.router.add_put(path + r"/{id:\d+}", update_record)
        app.router.add_delete(path + r"/{id:\d+}", delete_record)

    def _validate(self, table: str, data: dict[str, Any], *, creating: bool, record_id: int | None = None) -> str | None:
        if table == "users":
            if not data.get("username"):
                return "Usuário é obrigatório"
            if creating and not data.get("password"):
                return "Senha é obrigatória"
            for row in self.users.values():
                if row["username"] == data["username"] and row["id"] != record_id:
                    return "Usuário já existe"
        if table == "clients" and (not data.get("name") or not data.get("email")):
            return "Nome e e-mail são obrigatórios"
        if table == "service_types" and not data.get("name"):
            return "Nome é obrigatório"
        return None


@pytest_asyncio.fixture
async def helpdesk() -> AsyncIterator[FakeHelpdesk]:
    fake = FakeHelpdesk()
    server = TestServer(fake.build_app())
    await server.start_server()
    fake.base_url = str(server.make_url("")).rstrip("/")
    yield fake
    await server.close()


@pytest_asyncio.fixture
async def store(helpdesk: FakeHelpdesk) -> AsyncIterator[SessionStore]:
    sessions = SessionStore(
        BackendConfig(base_url=helpdesk.base_url),
        SecurityConfig(login_max_attempts=3, login_window_seconds=60),
        MemoryCache(),
    )
    yield sessions
    await sessions.close()


@pytest_asyncio.fixture
async def login_as(store: SessionStore) -> Callable[[str], Awaitable[Session]]:
    discord_ids = itertools.count(1000)

    async def _login(username: str) -> Session:
        discord_user_id = next(discord_ids)
        await store.login(discord_user_id, username, PASSWORDS[username])
        return await store.open(discord_user_id)

    return _login
