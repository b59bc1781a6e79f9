"""Tests for sirius/automation/triggers.py"""

import asyncio
import time
from datetime import datetime, timedelta

import pytest

from sirius.automation.context import Context
from sirius.automation.triggers import (
    ActionPriority,
    ActionResult,
    ActionType,
    AutonomousAction,
    Trigger,
)


NOW = datetime(2024, 5, 15, 10, 0)


def _ctx(**fields):
    return Context(user_id="alice", **fields)


def _action(fn=None, **kwargs):
    return AutonomousAction(
        ActionType.WELLNESS, "Stretch", "Stand up", fn or (lambda ctx, user_id: "done"), **kwargs
    )


class TestAutonomousAction:
    @pytest.mark.asyncio
    async def test_sync_function(self):
        result = await _action().execute(_ctx(energy="low"), "alice")

        assert result.success is True
        assert result.result == "done"
        assert result.context["energy"] == "low"
        assert result.duration_ms >= 0

    @pytest.mark.asyncio
    async def test_coroutine_function(self):
        async def execute(context, user_id):
            return {"user": user_id}

        result = await _action(execute).execute(_ctx(), "alice")
        assert result.result == {"user": "alice"}

    @pytest.mark.asyncio
    async def test_exception_becomes_failed_result(self):
        def execute(context, user_id):
            raise RuntimeError("calendar offline")

        result = await _action(execute).execute(_ctx(), "alice")
        assert result.success is False
        assert result.error == "calendar offline"

    @pytest.mark.asyncio
    async def test_async_timeout(self):
        async def execute(context, user_id):
            await asyncio.sleep(1)

        result = await _action(execute, timeout_ms=20).execute(_ctx(), "alice")
        assert result.success is False
        assert result.error == "Action 'Stretch' timed out after 20ms"

    @pytest.mark.asyncio
    async def test_sync_timeout(self):
        def execute(context, user_id):
            time.sleep(0.3)

        result = await _action(execute, timeout_ms=20).execute(_ctx(), "alice")
        assert result.success is False
        assert "timed out" in result.error

    def test_to_dict(self):
        data = _action(action_id="action-1", retry_count=0).to_dict()
        assert data["id"] == "action-1"
        assert data["retry_count"] == 0
        assert data["timeout_ms"] == 30000


class TestActionResult:
    def test_failure(self):
        action = _action()
        result = ActionResult.failure(action, "boom", _ctx(urgency="high"))
        assert result.action_id == action.id
        assert result.context == {"urgency": "high", "focus": "general", "energy": "medium"}
        assert result.to_dict()["timestamp"] == result.timestamp.isoformat()


class TestTrigger:
    def test_unknown_priority_rejected(self):
        with pytest.raises(ValueError, match="Unknown priority"):
            Trigger(lambda ctx: True, _action(), "urgent")

    def test_priority_and_type_coerced(self):
        trigger = Trigger(lambda ctx: True, _action(), "high")
        assert trigger.priority is ActionPriority.HIGH
        assert trigger.base_cooldown() == timedelta(minutes=5)

        data = trigger.to_dict()
        assert data["priority"] == "high"
        assert type(data["priority"]) is str
        assert type(trigger.action.type) is str
        assert trigger.action.type == ActionType.WELLNESS

    def test_disabled_never_fires(self):
        trigger = Trigger(lambda ctx: True, _action())
        trigger.enabled = False
        assert trigger.should_trigger(_ctx(), NOW) is False

    def test_condition_object_with_evaluate(self):
        class Condition:
            def evaluate(self, context):
                return context.urgency == "high"

        trigger = Trigger(Condition(), _action())
        assert trigger.should_trigger(_ctx(urgency="high"), NOW)
        assert not trigger.should_trigger(_ctx(), NOW)

    def test_cooldown_blocks_refire(self):
        trigger = Trigger(lambda ctx: True, _action(), ActionPriority.HIGH)
        trigger.mark_triggered(NOW)

        assert not trigger.should_trigger(_ctx(), NOW + timedelta(minutes=4))
        assert trigger.should_trigger(_ctx(), NOW + timedelta(minutes=5))
        assert trigger.trigger_count == 1

    def test_never_fires_twice_within_cooldown(self):
        trigger = Trigger(lambda ctx: True, _action(), ActionPriority.MEDIUM)
        fired = []
        for minute in range(0, 60):
            now = NOW + timedelta(minutes=minute)
            if trigger.should_trigger(_ctx(), now):
                trigger.mark_triggered(now)
                fired.append(minute)

        assert fired == [0, 15, 30, 45]

    def test_critical_has_no_cooldown(self):
        trigger = Trigger(lambda ctx: True, _action(), ActionPriority.CRITICAL)
        trigger.mark_triggered(NOW)
        assert trigger.should_trigger(_ctx(), NOW)

    def test_sensitivity_scales_cooldown(self):
        trigger = Trigger(lambda ctx: True, _action(), ActionPriority.LOW)
        trigger.adjust_sensitivity(2.0)
        assert trigger.adjusted_cooldown() == timedelta(minutes=30)

    def test_sensitivity_clamped(self):
        trigger = Trigger(lambda ctx: True, _action())
        for _ in range(100):
            trigger.adjust_sensitivity(1.1)
        assert trigger.sensitivity_multiplier == 5.0
        for _ in range(100):
            trigger.adjust_sensitivity(0.9)
        assert trigger.sensitivity_multiplier == 0.1

    def test_to_dict(self):
        trigger = Trigger(lambda ctx: True, _action(), ActionPriority.HIGH, trigger_id="t1")
        data = trigger.to_dict()
        assert data["id"] == "t1"
        assert data["last_triggered"] is None
        assert data["adjusted_cooldown_seconds"] == 300.0
