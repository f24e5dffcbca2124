"""Decision and outcome values shared by controllers and Discord views.

Controllers never talk to Discord directly: destructive actions ask a
:class:`Confirmer` for a :class:`Decision`, and every user-triggered action
reports an :class:`Outcome` that a view turns into an embed.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Protocol


class Decision(StrEnum):
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    TIMED_OUT = "timed_out"


class Confirmer(Protocol):
    async def confirm(self, prompt: str) -> Decision: ...


class StaticConfirmer:
    """Answers every prompt with the same decision and remembers the prompts."""

    def __init__(self, decision: Decision) -> None:
        self.decision = decision
        self.prompts: list[str] = []

    async def confirm(self, prompt: str) -> Decision:
        self.prompts.append(prompt)
        return self.decision


@dataclass(slots=True, frozen=True)
class Outcome:
    ok: bool
    message: str | None = None
    skipped: bool = False

    @classmethod
    def success(cls, message: str | None = None) -> Outcome:
        return cls(ok=True, message=message)

    @classmethod
    def failure(cls, message: str) -> Outcome:
        return cls(ok=False, message=message)

    @classmethod
    def skip(cls, message: str | None = None) -> Outcome:
        return cls(ok=False, message=message, skipped=True)
