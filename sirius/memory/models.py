"""
Memory Data Models

Typed records for the per-user memory document. Everything here is a
pydantic model so the document can be validated when read back from a
backend and serialized to JSON on save.

Records accept both snake_case and camelCase keys (older clients send
``timeBlock`` / ``actionType``) and always dump as snake_case.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


SCHEMA_VERSION = 1

CircadianType = Literal[
    "morning_person",
    "evening_person",
    "night_owl",
    "balanced",
    "insufficient_data",
]

Priority = Literal["low", "medium", "high", "critical"]


def to_local_naive(value: datetime) -> datetime:
    """Convert an aware datetime to naive local time; naive values pass through."""
    if value.tzinfo is None:
        return value
    return value.astimezone().replace(tzinfo=None)


class _Record(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class _FrozenRecord(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


# =============================================================================
# Interaction log
# =============================================================================


class Interaction(BaseModel):
    """A single observed interaction. Unknown keys are kept as extras."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    schema_version: int = SCHEMA_VERSION
    type: str = "interaction"
    operation: str | None = None
    action_type: str | None = None
    actions: list[dict[str, Any]] = Field(default_factory=list)
    time_block: str | None = None
    focus: str | None = None
    energy: str | None = None
    urgency: str | None = None
    success: bool | None = None
    timestamp: datetime = Field(default_factory=datetime.now)

    @field_validator("timestamp")
    @classmethod
    def normalize_timestamp(cls, v: datetime) -> datetime:
        """Clients may send UTC ('...Z'); the log stores naive local time."""
        return to_local_naive(v)


# =============================================================================
# Preferences
# =============================================================================


class WorkHours(_Record):
    start: int = Field(default=9, ge=0, le=23)
    end: int = Field(default=17, ge=0, le=24)


class NotificationPreferences(_Record):
    urgent: bool = True
    meetings: bool = True
    emails: bool = False
    todos: bool = True


class Preferences(_Record):
    work_hours: WorkHours = Field(default_factory=WorkHours)
    focus_blocks: list[str] = Field(default_factory=lambda: ["morning-focus", "afternoon-focus"])
    break_times: list[str] = Field(default_factory=lambda: ["lunch-break", "evening-wrapup"])
    no_meeting_times: list[str] = Field(
        default_factory=lambda: ["evening-personal", "night-rest"]
    )
    preferred_meeting_duration: int = 30
    email_check_frequency: int = 15
    focus_duration: int = 25
    notification_preferences: NotificationPreferences = Field(
        default_factory=NotificationPreferences
    )


# =============================================================================
# Learned patterns
# =============================================================================


class Recommendation(_Record):
    type: str
    title: str
    description: str
    priority: Priority = "medium"


class PeriodStats(_Record):
    count: int
    success_rate: float
    avg_performance: float
    frequency: int


class CircadianAnalysis(_Record):
    type: CircadianType = "insufficient_data"
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    periods: dict[str, PeriodStats] = Field(default_factory=dict)
    peak_hours: list[int] = Field(default_factory=list)
    recommendations: list[Recommendation] = Field(default_factory=list)


class TimePatterns(_Record):
    optimal_hour: int | None = None
    optimal_day: int | None = None
    optimal_time_block: str | None = None
    optimal_weekday: str | None = None
    hour_distribution: dict[int, int] = Field(default_factory=dict)
    day_distribution: dict[int, int] = Field(default_factory=dict)
    time_block_distribution: dict[str, int] = Field(default_factory=dict)
    weekday_distribution: dict[str, int] = Field(default_factory=dict)
    circadian_rhythm: CircadianAnalysis = Field(default_factory=CircadianAnalysis)


class Preference(_Record):
    value: str = "unknown"
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    distribution: dict[str, int] = Field(default_factory=dict)


class BehavioralPreferences(_Record):
    preferred_focus: Preference = Field(default_factory=Preference)
    preferred_energy: Preference = Field(default_factory=Preference)
    preferred_urgency: Preference = Field(default_factory=Preference)
    preferred_action_type: Preference = Field(default_factory=Preference)


class ContextBreakdown(_Record):
    time_blocks: dict[str, int] = Field(default_factory=dict)
    focus_modes: dict[str, int] = Field(default_factory=dict)
    energy_levels: dict[str, int] = Field(default_factory=dict)
    urgency_levels: dict[str, int] = Field(default_factory=dict)


class SuccessPattern(_Record):
    success_rate: float  # percent, 0-100
    total_attempts: int
    success_count: int
    optimal_contexts: ContextBreakdown = Field(default_factory=ContextBreakdown)
    failure_contexts: ContextBreakdown = Field(default_factory=ContextBreakdown)


class ContextKey(_FrozenRecord):
    """Exact (time block, focus, energy, urgency) tuple used to group interactions."""

    time_block: str | None = None
    focus: str | None = None
    energy: str | None = None
    urgency: str | None = None


class ContextPerformance(_Record):
    context: ContextKey
    success_rate: float
    avg_performance: float
    frequency: int


class ContextState(_FrozenRecord):
    """
    One side of a transition: the context tuple plus the interaction type.

    Frozen, so instances hash and compare by value and can key the
    transition table directly.
    """

    time_block: str | None = None
    focus: str | None = None
    energy: str | None = None
    urgency: str | None = None
    action_type: str | None = None

    @classmethod
    def from_mapping(cls, data: dict[str, Any]) -> ContextState:
        """Build a state from a context dict (snake_case or camelCase keys)."""
        def pick(snake: str, camel: str) -> Any:
            return data.get(snake, data.get(camel))

        return cls(
            time_block=pick("time_block", "timeBlock"),
            focus=data.get("focus"),
            energy=data.get("energy"),
            urgency=data.get("urgency"),
            action_type=pick("action_type", "actionType"),
        )


class TransitionEdge(_Record):
    state: ContextState
    count: int
    probability: float = Field(ge=0.0, le=1.0)


class TransitionRow(_Record):
    source: ContextState
    successors: list[TransitionEdge] = Field(default_factory=list)


class PredictivePatterns(_Record):
    transitions: list[TransitionRow] = Field(default_factory=list)
    sequence_count: int = 0
    last_updated: datetime = Field(default_factory=datetime.now)

    def transition_table(self) -> dict[ContextState, dict[ContextState, float]]:
        """Source state -> {next state: probability}."""
        return {
            row.source: {edge.state: edge.probability for edge in row.successors}
            for row in self.transitions
        }


class Patterns(_Record):
    time_blocks: TimePatterns | None = None
    behavioral_preferences: BehavioralPreferences | None = None
    success_patterns: dict[str, SuccessPattern] = Field(default_factory=dict)
    optimal_contexts: list[ContextPerformance] = Field(default_factory=list)
    predictive_patterns: PredictivePatterns | None = None


# =============================================================================
# Memory document
# =============================================================================


class LearnedBehavior(_Record):
    value: Any = None
    timestamp: datetime = Field(default_factory=datetime.now)
    confidence: float = Field(default=1.0, ge=0.0, le=1.0)

    @field_validator("timestamp")
    @classmethod
    def normalize_timestamp(cls, v: datetime) -> datetime:
        return to_local_naive(v)


def _default_behaviors() -> dict[str, dict[str, LearnedBehavior]]:
    return {
        "meeting_preferences": {},
        "email_handling": {},
        "task_prioritization": {},
        "communication_style": {},
    }


class UserMemory(_Record):
    """Everything the core knows about one user."""

    schema_version: int = SCHEMA_VERSION
    user_id: str
    preferences: Preferences = Field(default_factory=Preferences)
    patterns: Patterns = Field(default_factory=Patterns)
    interactions: list[Interaction] = Field(default_factory=list)
    learned_behaviors: dict[str, dict[str, LearnedBehavior]] = Field(
        default_factory=_default_behaviors
    )
    timestamp: datetime = Field(default_factory=datetime.now)


__all__ = [
    "SCHEMA_VERSION",
    "BehavioralPreferences",
    "CircadianAnalysis",
    "CircadianType",
    "ContextBreakdown",
    "ContextKey",
    "ContextPerformance",
    "ContextState",
    "Interaction",
    "LearnedBehavior",
    "NotificationPreferences",
    "Patterns",
    "PeriodStats",
    "Preference",
    "Preferences",
    "PredictivePatterns",
    "Priority",
    "Recommendation",
    "SuccessPattern",
    "TimePatterns",
    "TransitionEdge",
    "TransitionRow",
    "UserMemory",
    "WorkHours",
    "to_local_naive",
]
