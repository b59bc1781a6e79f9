"""
Tool: Default Wellness Triggers
Purpose: The built-in trigger set installed by `sirius --action run`

Triggers:
- 4-Hour Stop (critical, wellness): fires once 4 hours have passed since
  the user started working; resets the work clock
- Pomodoro Break (medium, wellness): fires 25 minutes after the last break;
  records a new break
- Explicit Urgency Alert (high, notification): fires when an email subject
  or message body carries an urgency keyword, or an email is flagged
  high/urgent priority
- Circadian Rhythm Analysis (low, productivity): hourly between 06:00 and
  22:00, reports the learned circadian rhythm

Work-start and last-break times live in a WorkTimeTracker. Nothing starts
the work clock automatically; call `tracker.start_work(user_id)` when the
user begins a session.
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from datetime import datetime, timedelta
from typing import Any

from sirius.logging_config import get_logger
from sirius.memory.store import MemoryStore

from .context import Context
from .triggers import ActionPriority, ActionType, AutonomousAction, Trigger


logger = get_logger(__name__)

MAX_WORK_PERIOD = timedelta(hours=4)
POMODORO_PERIOD = timedelta(minutes=25)
ANALYSIS_HOURS = (6, 22)
URGENCY_KEYWORDS = ("urgent", "asap", "emergency", "critical")
URGENT_PRIORITIES = ("high", "urgent")


class WorkTimeTracker:
    """Per-user work-start and last-break timestamps."""

    def __init__(self, now: Callable[[], datetime] = datetime.now):
        self.now = now
        self._work_start: dict[str, datetime] = {}
        self._last_break: dict[str, datetime] = {}
        self._lock = threading.Lock()

    def start_work(self, user_id: str) -> None:
        with self._lock:
            self._work_start[user_id] = self.now()

    def reset_work(self, user_id: str) -> None:
        with self._lock:
            self._work_start.pop(user_id, None)

    def work_start(self, user_id: str) -> datetime | None:
        return self._work_start.get(user_id)

    def record_break(self, user_id: str) -> None:
        with self._lock:
            self._last_break[user_id] = self.now()

    def last_break(self, user_id: str) -> datetime | None:
        return self._last_break.get(user_id)


def _has_keyword(text: str | None) -> bool:
    lowered = (text or "").lower()
    return any(keyword in lowered for keyword in URGENCY_KEYWORDS)


def urgent_emails(context: Context, include_priority: bool = True) -> list[dict[str, Any]]:
    return [
        email for email in context.emails
        if _has_keyword(email.get("subject"))
        or (include_priority and email.get("priority") in URGENT_PRIORITIES)
    ]


def urgent_messages(context: Context) -> list[dict[str, Any]]:
    return [msg for msg in context.messages if _has_keyword(msg.get("content"))]


def circadian_report(store: MemoryStore, user_id: str) -> dict[str, Any]:
    """The learned circadian rhythm with its recommendations, or a low-confidence notice."""
    time_patterns = store.load(user_id).patterns.time_blocks
    if time_patterns is None or time_patterns.circadian_rhythm.type == "insufficient_data":
        return {
            "message": "Insufficient data for circadian analysis",
            "confidence": 0.0,
            "recommendations": ["Keep working as usual; the rhythm is learned from your interactions"],
        }

    rhythm = time_patterns.circadian_rhythm
    return {
        "message": "Circadian rhythm analysis completed",
        "circadian_type": rhythm.type,
        "confidence": rhythm.confidence,
        "peak_hours": rhythm.peak_hours,
        "optimal_hour": time_patterns.optimal_hour,
        "recommendations": [r.model_dump() for r in rhythm.recommendations],
    }


def create_default_triggers(
    tracker: WorkTimeTracker,
    store: MemoryStore,
    now: Callable[[], datetime] = datetime.now,
) -> list[Trigger]:
    """Build the four default triggers. The caller adds them to a scheduler."""

    def four_hour_condition(context: Context) -> bool:
        started = tracker.work_start(context.user_id)
        return started is not None and now() - started >= MAX_WORK_PERIOD

    def four_hour_stop(context: Context, user_id: str) -> dict[str, Any]:
        tracker.reset_work(user_id)
        return {
            "message": "4-hour limit reached. Take a significant break.",
            "actions": [
                "Step away from work completely",
                "Go for a walk or exercise",
                "Have a proper meal",
                "Rest for at least 1 hour",
            ],
        }

    def pomodoro_condition(context: Context) -> bool:
        last = tracker.last_break(context.user_id)
        return last is not None and now() - last >= POMODORO_PERIOD

    def pomodoro_break(context: Context, user_id: str) -> dict[str, Any]:
        tracker.record_break(user_id)
        return {
            "message": "Pomodoro break time! Boost your energy.",
            "actions": [
                "Stand up and stretch",
                "Get a glass of water",
                "Take 5 deep breaths",
                "Look away from the screen for 20 seconds",
            ],
            "break_minutes": 5,
        }

    def urgency_condition(context: Context) -> bool:
        return bool(urgent_emails(context) or urgent_messages(context))

    def urgency_alert(context: Context, user_id: str) -> dict[str, Any]:
        items = [
            f"{email.get('subject')} ({email.get('from')})"
            for email in urgent_emails(context, include_priority=False)
        ]
        items += [msg.get("content", "") for msg in urgent_messages(context)]
        return {
            "message": "Explicit urgency detected in communications",
            "urgent_items": items,
            "actions": [
                "Review urgent communications immediately",
                "Prioritize response to urgent items",
            ],
        }

    def circadian_condition(context: Context) -> bool:
        start, end = ANALYSIS_HOURS
        return start <= now().hour <= end

    def circadian_analysis(context: Context, user_id: str) -> dict[str, Any]:
        return circadian_report(store, user_id)

    triggers = [
        Trigger(
            four_hour_condition,
            AutonomousAction(
                ActionType.WELLNESS,
                "4-Hour Stop",
                "Maximum effective work period reached. Time for a significant break.",
                four_hour_stop,
            ),
            ActionPriority.CRITICAL,
        ),
        Trigger(
            pomodoro_condition,
            AutonomousAction(
                ActionType.WELLNESS,
                "Pomodoro Break",
                "Take a 5-minute break after 25 minutes of focused work",
                pomodoro_break,
            ),
            ActionPriority.MEDIUM,
        ),
        Trigger(
            urgency_condition,
            AutonomousAction(
                ActionType.NOTIFICATION,
                "Explicit Urgency Alert",
                "Critical communication detected requiring immediate attention",
                urgency_alert,
            ),
            ActionPriority.HIGH,
        ),
        Trigger(
            circadian_condition,
            AutonomousAction(
                ActionType.PRODUCTIVITY,
                "Circadian Rhythm Analysis",
                "Analyze work patterns to optimize productivity timing",
                circadian_analysis,
            ),
            ActionPriority.LOW,
        ),
    ]

    logger.info("default_triggers_created", count=len(triggers))
    return triggers


__all__ = [
    "WorkTimeTracker",
    "circadian_report",
    "create_default_triggers",
    "urgent_emails",
    "urgent_messages",
]
