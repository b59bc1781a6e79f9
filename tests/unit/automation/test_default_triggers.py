"""Tests for sirius/automation/default_triggers.py"""

from datetime import datetime, timedelta

import pytest

from sirius.automation.context import Context
from sirius.automation.default_triggers import (
    WorkTimeTracker,
    circadian_report,
    create_default_triggers,
    urgent_emails,
    urgent_messages,
)
from sirius.learning.pattern_learner import PatternLearner


class Clock:
    def __init__(self, start):
        self.current = start

    def __call__(self):
        return self.current

    def advance(self, **delta):
        self.current += timedelta(**delta)


@pytest.fixture
def clock():
    return Clock(datetime(2024, 5, 15, 9, 0))


@pytest.fixture
def tracker(clock):
    return WorkTimeTracker(now=clock)


@pytest.fixture
def triggers(tracker, store, clock):
    return {t.action.title: t for t in create_default_triggers(tracker, store, now=clock)}


def _ctx(**fields):
    return Context(user_id="alice", **fields)


class TestDefaultSet:
    def test_priorities_and_types(self, triggers):
        summary = {title: (t.priority, t.action.type) for title, t in triggers.items()}
        assert summary == {
            "4-Hour Stop": ("critical", "wellness"),
            "Pomodoro Break": ("medium", "wellness"),
            "Explicit Urgency Alert": ("high", "notification"),
            "Circadian Rhythm Analysis": ("low", "productivity"),
        }


class TestFourHourStop:
    @pytest.mark.asyncio
    async def test_fires_after_four_hours(self, triggers, tracker, clock):
        trigger = triggers["4-Hour Stop"]
        assert not trigger.should_trigger(_ctx(), clock())

        tracker.start_work("alice")
        clock.advance(hours=3, minutes=59)
        assert not trigger.should_trigger(_ctx(), clock())

        clock.advance(minutes=1)
        assert trigger.should_trigger(_ctx(), clock())

        result = await trigger.action.execute(_ctx(), "alice")
        assert result.success
        assert tracker.work_start("alice") is None


class TestPomodoro:
    @pytest.mark.asyncio
    async def test_fires_after_break_period(self, triggers, tracker, clock):
        trigger = triggers["Pomodoro Break"]
        tracker.record_break("alice")
        clock.advance(minutes=24)
        assert not trigger.should_trigger(_ctx(), clock())

        clock.advance(minutes=1)
        assert trigger.should_trigger(_ctx(), clock())

        result = await trigger.action.execute(_ctx(), "alice")
        assert result.result["break_minutes"] == 5
        assert tracker.last_break("alice") == clock()


class TestUrgency:
    def test_keyword_and_priority(self):
        context = _ctx(
            emails=[
                {"subject": "URGENT: prod down", "from": "ops"},
                {"subject": "Lunch?", "priority": "high"},
                {"subject": "Newsletter"},
            ],
            messages=[{"content": "need this asap"}, {"content": "thanks"}],
        )
        assert len(urgent_emails(context)) == 2
        assert len(urgent_emails(context, include_priority=False)) == 1
        assert urgent_messages(context) == [{"content": "need this asap"}]

    @pytest.mark.asyncio
    async def test_alert_lists_keyword_items(self, triggers, clock):
        trigger = triggers["Explicit Urgency Alert"]
        context = _ctx(
            emails=[{"subject": "Emergency patch", "from": "sec"}, {"subject": "Hi", "priority": "urgent"}],
            messages=[{"content": "critical bug"}],
        )
        assert trigger.should_trigger(context, clock())
        assert not trigger.should_trigger(_ctx(), clock())

        result = await trigger.action.execute(context, "alice")
        assert result.result["urgent_items"] == ["Emergency patch (sec)", "critical bug"]


class TestCircadianAnalysis:
    @pytest.mark.parametrize("hour,expected", [(5, False), (6, True), (22, True), (23, False)])
    def test_hour_window(self, triggers, clock, hour, expected):
        clock.current = clock.current.replace(hour=hour)
        assert triggers["Circadian Rhythm Analysis"].should_trigger(_ctx(), clock()) is expected

    def test_report_without_data(self, store):
        report = circadian_report(store, "alice")
        assert report["confidence"] == 0.0
        assert report["message"] == "Insufficient data for circadian analysis"

    def test_report_with_learned_rhythm(self, store, learning_config, mock_user_id, morning_interactions):
        learner = PatternLearner(store, learning_config)
        for interaction in morning_interactions:
            learner.learn_from_interaction(mock_user_id, interaction)

        report = circadian_report(store, mock_user_id)
        assert report["circadian_type"] == "morning_person"
        assert report["optimal_hour"] == 6
        assert report["recommendations"]
