"""
Circadian Analysis

Scores each interaction, buckets interactions into time-of-day periods and
classifies the user into a circadian archetype. The thresholds are
empirical and live in args/learning.yaml under ``circadian``.

Score per period:
    success_weight * success_rate(%) + performance_weight * avg_performance
    + frequency_weight * count
"""

from __future__ import annotations

from typing import Any

from sirius.config_models import CircadianConfig
from sirius.memory.models import CircadianAnalysis, Interaction, PeriodStats, Recommendation

from . import CIRCADIAN_PERIODS


def circadian_period(hour: int) -> str:
    """Map an hour (0-23) to morning, afternoon, evening or night."""
    for period, (start, end) in CIRCADIAN_PERIODS.items():
        if start < end and start <= hour < end:
            return period
    return "night"


def calculate_performance_score(interaction: Interaction) -> float:
    """Heuristic 0-100 performance score for one interaction."""
    score = 50.0

    if interaction.success is True:
        score += 30
    elif interaction.success is False:
        score -= 20

    if interaction.energy == "high":
        score += 10
    elif interaction.energy == "low":
        score -= 10

    if interaction.focus == "deep-work":
        score += 10
    elif interaction.focus == "meeting-prep":
        score += 5

    if interaction.urgency == "critical":
        score += 5
    elif interaction.urgency == "low":
        score -= 5

    return max(0.0, min(100.0, score))


def period_scores(periods: dict[str, PeriodStats], config: CircadianConfig) -> dict[str, float]:
    return {
        period: (
            stats.success_rate * config.success_weight
            + stats.avg_performance * config.performance_weight
            + stats.frequency * config.frequency_weight
        )
        for period, stats in periods.items()
    }


def classify(scores: dict[str, float], total: int, config: CircadianConfig) -> tuple[str, float]:
    """Return (circadian type, confidence) from per-period scores."""
    if total < 3 or not scores:
        return "insufficient_data", 0.0

    morning = scores.get("morning", 0.0)
    afternoon = scores.get("afternoon", 0.0)
    evening = scores.get("evening", 0.0)
    night = scores.get("night", 0.0)
    all_scores = [morning, afternoon, evening, night]
    max_score = max(all_scores)

    # First maximum wins on ties
    best_period = max(scores, key=lambda p: scores[p])
    margin = config.classification_margin

    if max_score - min(all_scores) < config.balanced_range:
        circadian_type, score = "balanced", max_score
    elif best_period == "morning" and morning > evening + margin:
        circadian_type, score = "morning_person", morning
    elif best_period == "evening" and evening > morning + margin:
        circadian_type, score = "evening_person", evening
    elif best_period == "night" and night > evening + margin:
        circadian_type, score = "night_owl", night
    elif best_period == "afternoon":
        circadian_type, score = "balanced", afternoon
    else:
        circadian_type, score = "balanced", max_score

    return circadian_type, max(0.0, min(1.0, score / 100))


def analyze_circadian_rhythm(
    period_data: dict[str, dict[str, Any]],
    hours: dict[int, int],
    config: CircadianConfig | None = None,
) -> CircadianAnalysis:
    """
    Classify the user's circadian rhythm.

    Args:
        period_data: period -> {"count": int, "success": int, "performance": [float]}
        hours: hour -> interaction count
        config: circadian thresholds and weights

    Returns:
        CircadianAnalysis with type, confidence, peak hours and recommendations
    """
    config = config or CircadianConfig()

    periods: dict[str, PeriodStats] = {}
    for period, data in period_data.items():
        count = data["count"]
        if count > 0:
            performance = data["performance"]
            periods[period] = PeriodStats(
                count=count,
                success_rate=data["success"] / count * 100,
                avg_performance=sum(performance) / len(performance),
                frequency=count,
            )

    scores = period_scores(periods, config)
    total = sum(stats.count for stats in periods.values())
    circadian_type, confidence = classify(scores, total, config)

    hour_scores = {
        hour: count * scores.get(circadian_period(hour), 0.0) for hour, count in hours.items()
    }
    peak_hours = [
        hour
        for hour, _ in sorted(hour_scores.items(), key=lambda item: (-item[1], item[0]))[
            : config.peak_hour_count
        ]
    ]

    analysis = CircadianAnalysis(
        type=circadian_type,
        confidence=confidence,
        periods=periods,
        peak_hours=peak_hours,
    )
    analysis.recommendations = generate_circadian_recommendations(analysis)
    return analysis


def generate_circadian_recommendations(analysis: CircadianAnalysis) -> list[Recommendation]:
    recommendations: list[Recommendation] = []

    if analysis.type == "morning_person":
        recommendations.append(Recommendation(
            type="schedule_optimization",
            title="Morning Person Detected",
            description="You perform best in the morning. Schedule important tasks between 6-11 AM.",
            priority="high",
        ))
        recommendations.append(Recommendation(
            type="energy_management",
            title="Morning Energy Strategy",
            description="Use your peak morning energy for complex tasks and creative work.",
            priority="medium",
        ))
    elif analysis.type == "evening_person":
        recommendations.append(Recommendation(
            type="schedule_optimization",
            title="Evening Person Detected",
            description="You perform best in the evening. Schedule important tasks between 5-9 PM.",
            priority="high",
        ))
        recommendations.append(Recommendation(
            type="energy_management",
            title="Evening Energy Strategy",
            description="Use your peak evening energy for focused work and problem-solving.",
            priority="medium",
        ))
    elif analysis.type == "night_owl":
        recommendations.append(Recommendation(
            type="schedule_optimization",
            title="Night Owl Detected",
            description="You perform best late at night. Consider flexible scheduling for optimal productivity.",
            priority="high",
        ))
        recommendations.append(Recommendation(
            type="health_consideration",
            title="Sleep Schedule Balance",
            description="While you work well at night, ensure adequate sleep for long-term health.",
            priority="medium",
        ))
    elif analysis.type == "balanced":
        recommendations.append(Recommendation(
            type="schedule_optimization",
            title="Balanced Circadian Rhythm",
            description="You perform consistently throughout the day. Maintain regular work hours.",
            priority="medium",
        ))

    if analysis.peak_hours:
        hours = ", ".join(f"{h}:00" for h in analysis.peak_hours)
        recommendations.append(Recommendation(
            type="peak_hours",
            title="Peak Performance Hours",
            description=f"Your peak performance hours are: {hours}",
            priority="high",
        ))

    return recommendations
