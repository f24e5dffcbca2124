from __future__ import annotations

import logging

import discord
from discord.ext import commands

from core.config import AppConfig
from core.errors import handle_app_command_error
from core.extensions import load_extensions
from services.cache import CacheBackend, build_cache
from services.session import Session, SessionStore

LOGGER = logging.getLogger(__name__)


class HelpdeskBot(commands.Bot):
    def __init__(self, config: AppConfig) -> None:
        intents = discord.Intents.default()

        super().__init__(
            command_prefix=config.discord.prefix,
            intents=intents,
            application_id=config.discord.application_id,
            allowed_mentions=discord.AllowedMentions.none(),
            help_command=None,
        )
        self.config = config
        self.cache: CacheBackend | None = None

        # Initialized during setup_hook.
        self.sessions: SessionStore

    @property
    def confirm_timeout(self) -> float:
        return float(self.config.security.confirmation_timeout_seconds)

    async def session_for(self, discord_user_id: int) -> Session:
        session = await self.sessions.open(discord_user_id)
        session.require_user()
        return session

    async def setup_hook(self) -> None:
        self.cache = build_cache(self.config.redis)
        self.sessions = SessionStore(self.config.backend, self.config.security, self.cache)

        await load_extensions(self, self.config.enabled_extensions)

        if self.config.discord.sync_commands_on_start:
            synced = await self.tree.sync()
            LOGGER.info("Synced %s application commands", len(synced))

        self.tree.on_error = handle_app_command_error  # type: ignore[assignment]

    async def on_ready(self) -> None:
        LOGGER.info("Bot ready as %s (%s)", self.user, self.user.id if self.user else "n/a")
        activity_type = self.config.discord.activity_type.lower()
        if activity_type == "playing":
            activity = discord.Game(name=self.config.discord.status_text)
        elif activity_type == "listening":
            activity = discord.Activity(
                type=discord.ActivityType.listening, name=self.config.discord.status_text
            )
        else:
            activity = discord.Activity(
                type=discord.ActivityType.watching, name=self.config.discord.status_text
            )
        await self.change_presence(status=discord.Status.online, activity=activity)

    async def close(self) -> None:
        await super().close()
        if hasattr(self, "sessions"):
            await self.sessions.close()
        if self.cache:
            await self.cache.close()
