from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import UTC, datetime

import discord

from backend.models import Ticket, TicketResponse, TicketStats, TicketStatus, User
from utils.constants import (
    MAX_EMBED_DESCRIPTION,
    MAX_EMBED_FIELDS,
    MAX_EMBED_TOTAL,
    MAX_FIELD_VALUE,
    MAX_TEXT_INPUT,
    PRIORITY_LABELS,
    PROFILE_LABELS,
    STATUS_EMOJI,
    STATUS_LABELS,
)
from utils.dialogs import Outcome
from utils.time import format_timestamp

STATUS_COLORS = {
    TicketStatus.OPEN: discord.Color.green(),
    TicketStatus.IN_PROGRESS: discord.Color.gold(),
    TicketStatus.CLOSED: discord.Color.dark_grey(),
}


def truncate(text: str, limit: int) -> str:
    if len(text) <= limit:
        return text
    return text[: max(limit - 1, 0)] + "…"


def prefill(value: str | None, max_length: int) -> tuple[str | None, int]:
    """Return ``(default, max_length)`` for a pre-filled text input.

    Discord rejects a modal whose default is longer than its ``max_length``, so
    the limit grows to fit values saved elsewhere, up to the input cap.
    """
    if not value:
        return None, max_length
    if len(value) > MAX_TEXT_INPUT:
        value = truncate(value, MAX_TEXT_INPUT)
    return value, max(max_length, len(value))


def make_embed(
    title: str,
    description: str,
    color: discord.Color | None = None,
    footer: str | None = None,
) -> discord.Embed:
    resolved_color = color if color is not None else discord.Color.blurple()
    embed = discord.Embed(
        title=title,
        description=truncate(description, MAX_EMBED_DESCRIPTION),
        color=resolved_color,
        timestamp=datetime.now(UTC),
    )
    if footer:
        embed.set_footer(text=footer)
    return embed


def staff_embed(title: str, description: str) -> discord.Embed:
    return make_embed(title=title, description=description, color=discord.Color.gold())


def success_embed(message: str) -> discord.Embed:
    return make_embed(title="Success", description=message, color=discord.Color.green())


def error_embed(message: str) -> discord.Embed:
    return make_embed(title="Error", description=message, color=discord.Color.red())


def outcome_embed(outcome: Outcome) -> discord.Embed:
    if outcome.ok:
        return success_embed(outcome.message or "Done.")
    if outcome.skipped:
        return make_embed(title="Cancelled", description=outcome.message or "Nothing was changed.")
    return error_embed(outcome.message or "Action failed.")


def status_badge(status: TicketStatus) -> str:
    return f"{STATUS_EMOJI[status]} {STATUS_LABELS[status]}"


def user_embed(user: User) -> discord.Embed:
    embed = make_embed(
        title="Helpdesk account",
        description=f"Logged in as **{user.username}**",
        color=discord.Color.blurple(),
    )
    embed.add_field(name="Profile", value=PROFILE_LABELS[user.profile], inline=True)
    embed.add_field(name="User ID", value=str(user.id), inline=True)
    return embed


# Leaves room for responses under the total embed size.
TICKET_DESCRIPTION_LIMIT = 2000
_OMITTED_NOTE_RESERVE = 64


def _response_field(response: TicketResponse) -> tuple[str, str]:
    marker = "🔒 Internal note" if response.is_internal else "💬 Response"
    name = truncate(f"{marker} by {response.user or 'unknown'}", 256)
    value = truncate(f"{response.message}\n{format_timestamp(response.created_at, 'R')}", MAX_FIELD_VALUE)
    return name, value


def ticket_embed(
    ticket: Ticket,
    responses: Sequence[TicketResponse] = (),
    description: str | None = None,
) -> discord.Embed:
    """Ticket card with as many of the newest responses as fit in one message.

    Discord rejects embeds over 6000 characters in total, so older responses
    are dropped first and replaced by a count.
    """
    embed = make_embed(
        title=truncate(f"#{ticket.id} {ticket.title}", 256),
        description=truncate(description or ticket.description or "*No description*", TICKET_DESCRIPTION_LIMIT),
        color=STATUS_COLORS[ticket.status],
        footer=truncate(f"Opened by {ticket.user or 'unknown'}", 256),
    )
    embed.add_field(name="Status", value=status_badge(ticket.status), inline=True)
    embed.add_field(name="Priority", value=PRIORITY_LABELS[ticket.priority], inline=True)
    embed.add_field(name="Assigned to", value=truncate(ticket.assigned_user or "Unassigned", 256), inline=True)
    embed.add_field(name="Service type", value=truncate(ticket.service_type or "-", 256), inline=True)
    embed.add_field(name="Client", value=truncate(ticket.client or "-", 256), inline=True)
    embed.add_field(name="Created", value=format_timestamp(ticket.created_at), inline=True)

    if not responses:
        embed.add_field(name="Responses", value="No responses yet.", inline=False)
        return embed

    used = len(embed)
    shown: list[tuple[str, str]] = []
    for response in reversed(responses):
        if len(embed.fields) + len(shown) + 1 >= MAX_EMBED_FIELDS:
            break
        name, value = _response_field(response)
        if used + len(name) + len(value) + _OMITTED_NOTE_RESERVE > MAX_EMBED_TOTAL:
            break
        shown.append((name, value))
        used += len(name) + len(value)

    omitted = len(responses) - len(shown)
    if omitted:
        embed.add_field(
            name="Earlier responses",
            value=f"{omitted} older response(s) not shown.",
            inline=False,
        )
    for name, value in reversed(shown):
        embed.add_field(name=name, value=value, inline=False)
    return embed


def stats_line(stats: TicketStats) -> str:
    return (
        f"**Total** {stats.total} · "
        f"{status_badge(TicketStatus.OPEN)} {stats.open} · "
        f"{status_badge(TicketStatus.IN_PROGRESS)} {stats.in_progress} · "
        f"{status_badge(TicketStatus.CLOSED)} {stats.closed}"
    )


def board_embed(user: User, tickets: Sequence[Ticket], stats: TicketStats, error: str | None = None) -> discord.Embed:
    lines = [stats_line(stats), ""]
    if error:
        lines.append(f"⚠️ {error}")
    elif not tickets:
        lines.append("No tickets found.")
    for ticket in tickets:
        assignee = f" → {ticket.assigned_user}" if ticket.assigned_user else ""
        lines.append(
            f"{STATUS_EMOJI[ticket.status]} **#{ticket.id}** {truncate(ticket.title, 60)}"
            f" · {PRIORITY_LABELS[ticket.priority]}{assignee}"
        )
    return make_embed(
        title="Tickets",
        description="\n".join(lines),
        footer=f"{user.username} · {PROFILE_LABELS[user.profile]}",
    )


def records_embed(title: str, lines: Iterable[str], error: str | None = None) -> discord.Embed:
    rows = list(lines)
    if error:
        body = f"⚠️ {error}"
    elif not rows:
        body = "No records yet."
    else:
        body = "\n".join(rows)
    return make_embed(title=title, description=body, color=discord.Color.dark_teal())
