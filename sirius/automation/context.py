"""
Context Providers

The scheduler asks a provider for the user's current situation on every
evaluation cycle. Providers are synchronous so they can run on a worker
thread; anything that satisfies ContextProvider can be plugged in.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime
from typing import Any, Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field


class Context(BaseModel):
    """Snapshot of the user's situation. Unknown signals are kept as extras."""

    model_config = ConfigDict(extra="allow")

    user_id: str
    time_block: str = "night-rest"
    focus: str = "general"
    energy: str = "medium"
    urgency: str = "low"
    location: str | None = None
    emails: list[dict[str, Any]] = Field(default_factory=list)
    messages: list[dict[str, Any]] = Field(default_factory=list)
    timestamp: datetime = Field(default_factory=datetime.now)


@runtime_checkable
class ContextProvider(Protocol):
    def get_context(self, user_id: str) -> Context: ...


def time_block_for(hour: int) -> str:
    if 6 <= hour < 9:
        return "morning-startup"
    if 9 <= hour < 12:
        return "morning-focus"
    if 12 <= hour < 14:
        return "lunch-break"
    if 14 <= hour < 17:
        return "afternoon-focus"
    if 17 <= hour < 19:
        return "evening-wrapup"
    if 19 <= hour < 22:
        return "evening-personal"
    return "night-rest"


def energy_for(hour: int) -> str:
    """Typical energy curve: morning high, post-lunch dip, evening wind-down."""
    if 9 <= hour <= 11:
        return "high"
    if 14 <= hour <= 15:
        return "low"
    if 16 <= hour <= 17:
        return "medium"
    if hour >= 18:
        return "low"
    return "medium"


class ClockContextProvider:
    """Context derived from the clock alone: time block and expected energy."""

    def __init__(self, now: Callable[[], datetime] = datetime.now):
        self.now = now

    def get_context(self, user_id: str) -> Context:
        now = self.now()
        return Context(
            user_id=user_id,
            time_block=time_block_for(now.hour),
            energy=energy_for(now.hour),
            timestamp=now,
        )


__all__ = [
    "ClockContextProvider",
    "Context",
    "ContextProvider",
    "energy_for",
    "time_block_for",
]
