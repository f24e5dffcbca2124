from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

import aiohttp

from core.errors import (
    AuthenticationRequiredError,
    BackendError,
    BackendUnavailableError,
    NotFoundError,
)

LOGGER = logging.getLogger(__name__)


def _error_message(body: Any, fallback: str) -> str:
    if isinstance(body, dict):
        for key in ("error", "message", "detail"):
            value = body.get(key)
            if isinstance(value, str) and value.strip():
                return value
    return fallback


async def _read_body(response: aiohttp.ClientResponse) -> Any:
    text = await response.text()
    if not text.strip():
        return None
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        if response.status >= 400:
            return {"error": text.strip()}
        LOGGER.warning("Non-JSON body from %s %s", response.method, response.url.path)
        return None


class BackendClient:
    """One cookie-carrying HTTP session against the helpdesk REST API."""

    def __init__(self, base_url: str, timeout_seconds: float | None = None) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = aiohttp.ClientTimeout(total=timeout_seconds)
        self._session: aiohttp.ClientSession | None = None

    @property
    def base_url(self) -> str:
        return self._base_url

    @property
    def is_connected(self) -> bool:
        return self._session is not None and not self._session.closed

    async def connect(self) -> None:
        if self.is_connected:
            return
        # unsafe=True keeps cookies issued by IP-addressed hosts such as 127.0.0.1.
        self._session = aiohttp.ClientSession(
            cookie_jar=aiohttp.CookieJar(unsafe=True),
            timeout=self._timeout,
            headers={"Accept": "application/json"},
        )

    async def close(self) -> None:
        if self._session:
            await self._session.close()
            self._session = None

    def clear_credentials(self) -> None:
        if self._session:
            self._session.cookie_jar.clear()

    async def request(self, method: str, path: str, payload: dict[str, Any] | None = None) -> Any:
        await self.connect()
        assert self._session is not None
        url = f"{self._base_url}{path}"
        try:
            async with self._session.request(method, url, json=payload) as response:
                status = response.status
                reason = response.reason or f"HTTP {status}"
                body = await _read_body(response)
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            LOGGER.warning("Helpdesk request failed. method=%s path=%s error=%r", method, path, exc)
            raise BackendUnavailableError() from exc

        LOGGER.debug("Helpdesk request. method=%s path=%s status=%s", method, path, status)
        if status == 401:
            raise AuthenticationRequiredError(
                user_message=_error_message(body, AuthenticationRequiredError().user_message)
            )
        if status == 404:
            raise NotFoundError(user_message=_error_message(body, NotFoundError().user_message))
        if status >= 400:
            raise BackendError(user_message=_error_message(body, reason), status=status)
        return body

    async def get(self, path: str) -> Any:
        return await self.request("GET", path)

    async def post(self, path: str, payload: dict[str, Any] | None = None) -> Any:
        return await self.request("POST", path, payload)

    async def put(self, path: str, payload: dict[str, Any]) -> Any:
        return await self.request("PUT", path, payload)

    async def delete(self, path: str) -> Any:
        return await self.request("DELETE", path)
