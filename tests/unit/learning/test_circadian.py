"""Tests for sirius/learning/circadian.py"""

import pytest

from sirius.config_models import CircadianConfig
from sirius.learning.circadian import (
    analyze_circadian_rhythm,
    calculate_performance_score,
    circadian_period,
    classify,
)
from sirius.memory.models import Interaction


def _period_data(**counts):
    """period -> (count, successes, performance score per interaction)"""
    data = {p: {"count": 0, "success": 0, "performance": []} for p in ("morning", "afternoon", "evening", "night")}
    for period, (count, success, score) in counts.items():
        data[period] = {"count": count, "success": success, "performance": [score] * count}
    return data


class TestCircadianPeriod:
    @pytest.mark.parametrize(
        "hour,expected",
        [
            (5, "morning"),
            (11, "morning"),
            (12, "afternoon"),
            (16, "afternoon"),
            (17, "evening"),
            (21, "evening"),
            (22, "night"),
            (0, "night"),
            (4, "night"),
        ],
    )
    def test_boundaries(self, hour, expected):
        assert circadian_period(hour) == expected


class TestPerformanceScore:
    def test_best_case(self):
        interaction = Interaction(success=True, energy="high", focus="deep-work", urgency="critical")
        assert calculate_performance_score(interaction) == 100.0

    def test_failure_low_energy(self):
        interaction = Interaction(success=False, energy="low", urgency="low")
        assert calculate_performance_score(interaction) == 15.0

    def test_unknown_fields_neutral(self):
        assert calculate_performance_score(Interaction()) == 50.0


class TestClassify:
    def test_insufficient_data(self):
        assert classify({"morning": 90.0}, 2, CircadianConfig()) == ("insufficient_data", 0.0)

    def test_balanced_when_range_small(self):
        scores = {"morning": 60.0, "afternoon": 62.0, "evening": 58.0, "night": 55.0}
        circadian_type, _ = classify(scores, 20, CircadianConfig())
        assert circadian_type == "balanced"

    def test_evening_person(self):
        scores = {"morning": 20.0, "evening": 70.0}
        assert classify(scores, 10, CircadianConfig()) == ("evening_person", 0.7)

    def test_night_owl(self):
        scores = {"evening": 30.0, "night": 80.0}
        assert classify(scores, 10, CircadianConfig())[0] == "night_owl"

    def test_afternoon_peak_is_balanced(self):
        scores = {"morning": 10.0, "afternoon": 80.0}
        assert classify(scores, 10, CircadianConfig()) == ("balanced", 0.8)

    def test_confidence_clamped(self):
        scores = {"morning": 150.0}
        assert classify(scores, 50, CircadianConfig())[1] == 1.0


class TestAnalyzeCircadianRhythm:
    def test_morning_person(self):
        analysis = analyze_circadian_rhythm(_period_data(morning=(8, 8, 100.0)), {6: 4, 7: 4})

        assert analysis.type == "morning_person"
        assert analysis.confidence == pytest.approx(0.816)
        assert analysis.peak_hours == [6, 7]
        assert analysis.periods["morning"].success_rate == 100.0
        assert any(r.title == "Morning Person Detected" for r in analysis.recommendations)

    def test_empty_periods_excluded(self):
        analysis = analyze_circadian_rhythm(_period_data(evening=(5, 2, 40.0)), {18: 5})
        assert set(analysis.periods) == {"evening"}

    def test_peak_hours_limited_and_ranked(self):
        analysis = analyze_circadian_rhythm(
            _period_data(morning=(10, 10, 90.0), evening=(6, 1, 30.0)),
            {6: 2, 8: 5, 9: 3, 18: 6},
        )
        assert analysis.peak_hours == [8, 9, 6]

    def test_custom_weights(self):
        config = CircadianConfig(success_weight=1.0, performance_weight=0.0, frequency_weight=0.0)
        analysis = analyze_circadian_rhythm(_period_data(morning=(4, 2, 80.0)), {9: 4}, config)
        assert analysis.confidence == pytest.approx(0.5)
