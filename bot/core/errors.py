from __future__ import annotations

import logging
from dataclasses import dataclass

import discord
from discord import app_commands

LOGGER = logging.getLogger(__name__)


class BotError(RuntimeError):
    user_message: str = "An unexpected error occurred."


@dataclass(slots=True)
class PermissionDeniedError(BotError):
    user_message: str = "Your helpdesk profile does not allow this action."


@dataclass(slots=True)
class TicketStateError(BotError):
    user_message: str = "The ticket is not in a valid state for this action."


@dataclass(slots=True)
class ValidationError(BotError):
    user_message: str = "The provided input is not valid."


@dataclass(slots=True)
class BackendError(BotError):
    """Non-success answer from the helpdesk API; ``user_message`` is the server's text."""

    user_message: str = "The helpdesk server rejected the request."
    status: int | None = None


@dataclass(slots=True)
class AuthenticationRequiredError(BackendError):
    user_message: str = "You are not logged in. Use /login first."
    status: int | None = 401


@dataclass(slots=True)
class NotFoundError(BackendError):
    user_message: str = "The requested record could not be found."
    status: int | None = 404


@dataclass(slots=True)
class BackendUnavailableError(BackendError):
    user_message: str = "Could not connect to the helpdesk server."
    status: int | None = None


async def send_error_response(interaction: discord.Interaction, message: str) -> None:
    embed = discord.Embed(title="Error", description=message, color=discord.Color.red())
    if interaction.response.is_done():
        await interaction.followup.send(embed=embed, ephemeral=True)
    else:
        await interaction.response.send_message(embed=embed, ephemeral=True)


def humanize_error(error: Exception) -> str:
    if isinstance(error, BotError):
        return error.user_message
    return "Action failed due to an unexpected error."


async def handle_app_command_error(
    interaction: discord.Interaction, error: app_commands.AppCommandError
) -> None:
    original = getattr(error, "original", error)
    if isinstance(original, BotError):
        message = original.user_message
        LOGGER.info(
            "Slash command refused. command=%s user=%s reason=%s",
            getattr(interaction.command, "qualified_name", None),
            interaction.user.id if interaction.user else None,
            message,
        )
    elif isinstance(error, app_commands.CommandOnCooldown):
        message = f"Cooldown active. Retry in {error.retry_after:.1f} seconds."
    elif isinstance(error, app_commands.CheckFailure):
        message = "You are not authorized for this command."
    else:
        message = "An unexpected slash-command error occurred."
        LOGGER.exception(
            "Slash command failed. command=%s user=%s",
            getattr(interaction.command, "qualified_name", None),
            interaction.user.id if interaction.user else None,
            exc_info=error,
        )
    await send_error_response(interaction, message)
