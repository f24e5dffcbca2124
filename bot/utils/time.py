from __future__ import annotations

from datetime import UTC, datetime

import discord


def parse_timestamp(value: str | None) -> datetime | None:
    """Parse the API's ISO-8601 / SQL timestamps; naive values are taken as UTC."""
    if not value:
        return None
    text = value.strip().replace("Z", "+00:00")
    if " " in text and "T" not in text:
        text = text.replace(" ", "T", 1)
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed.astimezone(UTC)


def format_timestamp(value: str | None, style: str = "f") -> str:
    parsed = parse_timestamp(value)
    if parsed is None:
        return value or "-"
    return discord.utils.format_dt(parsed, style=style)  # type: ignore[arg-type]
