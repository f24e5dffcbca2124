from __future__ import annotations

from fastapi import FastAPI, Header, HTTPException

from core.bot import HelpdeskBot


def _auth(x_api_key: str | None, expected: str) -> None:
    if not expected:
        return
    if x_api_key != expected:
        raise HTTPException(status_code=401, detail="Unauthorized")


def create_api_app(bot: HelpdeskBot) -> FastAPI:
    app = FastAPI(title="Helpdesk Bot API", version="1.0.0")

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.get("/status")
    async def status(x_api_key: str | None = Header(default=None)) -> dict[str, object]:
        _auth(x_api_key, bot.config.fastapi.api_key)
        sessions = getattr(bot, "sessions", None)
        return {
            "bot_ready": bot.is_ready(),
            "active_sessions": sessions.active_count if sessions else 0,
            "backend_url": bot.config.backend.base_url,
            "backend_reachable": await sessions.probe_backend() if sessions else False,
        }

    return app
