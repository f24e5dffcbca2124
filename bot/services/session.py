from __future__ import annotations

import asyncio
import logging

from backend.base import BackendClient
from backend.models import User
from backend.repositories import (
    AuthRepository,
    ClientRepository,
    ResponseRepository,
    ServiceTypeRepository,
    TicketRepository,
    UserRepository,
)
from core.config import BackendConfig, SecurityConfig
from core.errors import AuthenticationRequiredError, BackendError, ValidationError
from services.cache import CacheBackend
from services.permissions import Capabilities, capabilities_for
from utils.rate_limit import AttemptLimiter

LOGGER = logging.getLogger(__name__)


class Session:
    """Helpdesk identity of one Discord user.

    Views read ``user`` and ``capabilities``; the identity only changes through
    :meth:`login` and :meth:`logout`. Capabilities are derived from the current
    user on every access.
    """

    def __init__(self, client: BackendClient) -> None:
        self.client = client
        self.auth = AuthRepository(client)
        self.tickets = TicketRepository(client)
        self.responses = ResponseRepository(client)
        self.users = UserRepository(client)
        self.clients = ClientRepository(client)
        self.service_types = ServiceTypeRepository(client)
        self._user: User | None = None
        self._started = False

    @property
    def user(self) -> User | None:
        return self._user

    @property
    def is_authenticated(self) -> bool:
        return self._user is not None

    @property
    def capabilities(self) -> Capabilities:
        return capabilities_for(self._user)

    def require_user(self) -> User:
        if self._user is None:
            raise AuthenticationRequiredError()
        return self._user

    async def start(self) -> User | None:
        """Session check performed once when the session is opened."""
        if self._started:
            return self._user
        self._started = True
        try:
            self._user = await self.auth.me()
        except BackendError as exc:
            LOGGER.warning("Session check failed: %s", exc.user_message)
            self._user = None
        return self._user

    async def login(self, username: str, password: str) -> User:
        username = username.strip()
        if not username or not password:
            raise ValidationError("Username and password are required.")
        user = await self.auth.login(username, password)
        self._user = user
        return user

    async def logout(self) -> None:
        if self._user is None:
            return
        try:
            await self.auth.logout()
        except BackendError as exc:
            LOGGER.warning("Logout request failed: %s", exc.user_message)
        finally:
            self._user = None
            self.client.clear_credentials()

    async def close(self) -> None:
        await self.client.close()


class SessionStore:
    """Keeps one :class:`Session` (and one cookie jar) per logged-in Discord user.

    Anonymous sessions are never retained: their HTTP client is closed as soon
    as the session check or a login attempt leaves them without a user.
    """

    def __init__(self, backend: BackendConfig, security: SecurityConfig, cache: CacheBackend) -> None:
        self.backend = backend
        self.security = security
        self.limiter = AttemptLimiter(cache)
        self._sessions: dict[int, Session] = {}
        self._lock = asyncio.Lock()

    @property
    def active_count(self) -> int:
        return sum(1 for session in self._sessions.values() if session.is_authenticated)

    @property
    def tracked_count(self) -> int:
        return len(self._sessions)

    def _new_client(self) -> BackendClient:
        return BackendClient(self.backend.base_url, timeout_seconds=self.backend.timeout_seconds)

    async def open(self, discord_user_id: int) -> Session:
        async with self._lock:
            session = self._sessions.get(discord_user_id)
            if session is None:
                session = Session(self._new_client())
                self._sessions[discord_user_id] = session
        if await session.start() is None:
            await self._release(discord_user_id, session)
        return session

    async def _release(self, discord_user_id: int, session: Session) -> None:
        async with self._lock:
            if self._sessions.get(discord_user_id) is session:
                del self._sessions[discord_user_id]
        await session.close()

    async def login(self, discord_user_id: int, username: str, password: str) -> User:
        key = f"login:attempts:{discord_user_id}"
        log_extra = {"discord_user": discord_user_id}
        hit = await self.limiter.hit(
            key,
            limit=self.security.login_max_attempts,
            window_seconds=self.security.login_window_seconds,
        )
        if not hit.allowed:
            LOGGER.warning(
                "Login throttled. discord_user=%s attempts=%s", discord_user_id, hit.current, extra=log_extra
            )
            raise ValidationError(
                f"Too many login attempts. Try again in {self.security.login_window_seconds} seconds."
            )
        session = await self.open(discord_user_id)
        try:
            user = await session.login(username, password)
        finally:
            if not session.is_authenticated:
                await self._release(discord_user_id, session)
        async with self._lock:
            self._sessions[discord_user_id] = session
        await self.limiter.reset(key)
        LOGGER.info(
            "Helpdesk login. discord_user=%s username=%s profile=%s",
            discord_user_id,
            user.username,
            user.profile.value,
            extra=log_extra,
        )
        return user

    async def logout(self, discord_user_id: int) -> None:
        async with self._lock:
            session = self._sessions.pop(discord_user_id, None)
        if session is None:
            return
        try:
            await session.logout()
        finally:
            await session.close()
        LOGGER.info("Helpdesk logout. discord_user=%s", discord_user_id, extra={"discord_user": discord_user_id})

    async def probe_backend(self) -> bool:
        client = self._new_client()
        try:
            await AuthRepository(client).me()
            return True
        except BackendError:
            return False
        finally:
            await client.close()

    async def close(self) -> None:
        async with self._lock:
            sessions = list(self._sessions.values())
            self._sessions.clear()
        for session in sessions:
            await session.close()
