"""
Tool: Smart Triggers
Purpose: Conditions, actions and results for the autonomous scheduler

A Trigger pairs a condition with an AutonomousAction. It fires when it is
enabled, its condition holds and its cooldown has elapsed. The cooldown is
set by priority and shrinks or grows with the trigger's sensitivity
multiplier, which the scheduler tunes from recent outcomes.

Priority cooldowns (defaults, args/automation.yaml):
    critical: 0       high: 5 min
    medium:   15 min  low:  1 hour

Usage:
    from sirius.automation.triggers import ActionPriority, ActionType, AutonomousAction, Trigger

    action = AutonomousAction(ActionType.WELLNESS, "Stretch", "Stand up", stretch_fn)
    trigger = Trigger(lambda ctx: ctx.energy == "low", action, ActionPriority.HIGH)
"""

from __future__ import annotations

import asyncio
import inspect
import time
import uuid
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Any

from sirius.config_models import CooldownConfig, SensitivityConfig
from sirius.exceptions import ActionTimeoutError
from sirius.logging_config import get_logger


logger = get_logger(__name__)


class ActionType(str, Enum):
    """Categories of autonomous action."""
    CALENDAR = "calendar"
    EMAIL = "email"
    TODO = "todo"
    NOTIFICATION = "notification"
    PRODUCTIVITY = "productivity"
    WELLNESS = "wellness"
    COMMUNICATION = "communication"


class ActionPriority(str, Enum):
    """Trigger priorities; each maps to a cooldown."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


def _new_id(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:12]}"


def _context_summary(context: Any) -> dict[str, Any]:
    return {
        "urgency": getattr(context, "urgency", None),
        "focus": getattr(context, "focus", None),
        "energy": getattr(context, "energy", None),
    }


@dataclass
class ActionResult:
    """Outcome of one action execution. Failures are results, not exceptions."""

    success: bool
    action_id: str
    action_type: str
    title: str
    result: Any = None
    error: str | None = None
    duration_ms: int | None = None
    timestamp: datetime = field(default_factory=datetime.now)
    context: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def failure(cls, action: AutonomousAction, error: str, context: Any = None) -> ActionResult:
        return cls(
            success=False,
            action_id=action.id,
            action_type=action.type,
            title=action.title,
            error=error,
            context=_context_summary(context),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "action_id": self.action_id,
            "action_type": self.action_type,
            "title": self.title,
            "result": self.result,
            "error": self.error,
            "duration_ms": self.duration_ms,
            "timestamp": self.timestamp.isoformat(),
            "context": self.context,
        }


class AutonomousAction:
    """
    Something the scheduler can do on the user's behalf.

    `execute_fn(context, user_id)` may be a plain function or a coroutine
    function. Either way it is bounded by `timeout_ms`; expiry yields a
    failed ActionResult. `retry_count` is declared metadata only, the
    scheduler never retries.
    """

    def __init__(
        self,
        type: ActionType | str,
        title: str,
        description: str,
        execute_fn: Callable[..., Any],
        *,
        requires_confirmation: bool = False,
        can_be_undone: bool = True,
        timeout_ms: int = 30000,
        retry_count: int = 3,
        action_id: str | None = None,
    ):
        self.id = action_id or _new_id("action")
        self.type = type.value if isinstance(type, ActionType) else type
        self.title = title
        self.description = description
        self.execute_fn = execute_fn
        self.requires_confirmation = requires_confirmation
        self.can_be_undone = can_be_undone
        self.timeout_ms = timeout_ms
        self.retry_count = retry_count
        self.created_at = datetime.now()

    async def execute(self, context: Any, user_id: str) -> ActionResult:
        start = time.monotonic()
        timeout = self.timeout_ms / 1000

        try:
            if inspect.iscoroutinefunction(self.execute_fn):
                result = await asyncio.wait_for(self.execute_fn(context, user_id), timeout=timeout)
            else:
                loop = asyncio.get_running_loop()
                result = await asyncio.wait_for(
                    loop.run_in_executor(None, self.execute_fn, context, user_id), timeout=timeout
                )
        except TimeoutError:
            error = ActionTimeoutError(self.title, self.timeout_ms)
            logger.warning("action_timed_out", action=self.title, timeout_ms=self.timeout_ms)
            return ActionResult.failure(self, str(error), context)
        except Exception as e:
            logger.warning("action_failed", action=self.title, error=str(e))
            return ActionResult.failure(self, str(e), context)

        return ActionResult(
            success=True,
            action_id=self.id,
            action_type=self.type,
            title=self.title,
            result=result,
            duration_ms=int((time.monotonic() - start) * 1000),
            context=_context_summary(context),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type,
            "title": self.title,
            "description": self.description,
            "requires_confirmation": self.requires_confirmation,
            "can_be_undone": self.can_be_undone,
            "timeout_ms": self.timeout_ms,
            "retry_count": self.retry_count,
        }


Condition = Callable[[Any], bool]


class Trigger:
    """A condition bound to an action, with a priority cooldown and tunable sensitivity."""

    def __init__(
        self,
        condition: Condition,
        action: AutonomousAction,
        priority: ActionPriority | str = ActionPriority.MEDIUM,
        *,
        trigger_id: str | None = None,
        cooldowns: CooldownConfig | None = None,
        sensitivity: SensitivityConfig | None = None,
    ):
        try:
            priority = ActionPriority(priority)
        except ValueError:
            raise ValueError(f"Unknown priority: {priority}") from None

        self.id = trigger_id or _new_id("trigger")
        self.condition = condition
        self.action = action
        self.priority = priority
        self.enabled = True
        self.last_triggered: datetime | None = None
        self.trigger_count = 0
        self.sensitivity_multiplier = 1.0
        self.created_at = datetime.now()
        self.cooldowns = cooldowns
        self.sensitivity = sensitivity

    def base_cooldown(self) -> timedelta:
        cooldowns = self.cooldowns or CooldownConfig()
        return timedelta(seconds=getattr(cooldowns, self.priority.value))

    def adjusted_cooldown(self) -> timedelta:
        return self.base_cooldown() / self.sensitivity_multiplier

    def should_trigger(self, context: Any, now: datetime | None = None) -> bool:
        if not self.enabled:
            return False

        if self.last_triggered is not None:
            now = now or datetime.now()
            if now - self.last_triggered < self.adjusted_cooldown():
                return False

        evaluate = getattr(self.condition, "evaluate", self.condition)
        return bool(evaluate(context))

    def mark_triggered(self, now: datetime | None = None) -> None:
        self.last_triggered = now or datetime.now()
        self.trigger_count += 1

    def adjust_sensitivity(self, factor: float) -> float:
        """Multiply the sensitivity by `factor`, clamped to the configured bounds."""
        bounds = self.sensitivity or SensitivityConfig()
        self.sensitivity_multiplier = max(
            bounds.min_multiplier,
            min(bounds.max_multiplier, self.sensitivity_multiplier * factor),
        )
        logger.info(
            "trigger_sensitivity_adjusted",
            trigger_id=self.id,
            action=self.action.title,
            multiplier=self.sensitivity_multiplier,
        )
        return self.sensitivity_multiplier

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "action": self.action.to_dict(),
            "priority": self.priority.value,
            "enabled": self.enabled,
            "last_triggered": self.last_triggered.isoformat() if self.last_triggered else None,
            "trigger_count": self.trigger_count,
            "sensitivity_multiplier": self.sensitivity_multiplier,
            "adjusted_cooldown_seconds": self.adjusted_cooldown().total_seconds(),
        }


__all__ = [
    "ActionPriority",
    "ActionResult",
    "ActionType",
    "AutonomousAction",
    "Condition",
    "Trigger",
]
