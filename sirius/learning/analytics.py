"""
Tool: Learning Analytics
Purpose: Dashboard summary of what has been learned from the interaction log

Works directly on the raw log rather than the learned patterns, so the
numbers are available even before the pattern learner has enough data.

Usage:
    from sirius.learning.analytics import get_learning_analytics

    report = get_learning_analytics(store, "alice")
    report["summary"]["success_rate"]
"""

from __future__ import annotations

import math
from collections import defaultdict
from datetime import datetime
from typing import Any

from sirius.logging_config import get_logger
from sirius.memory.models import Interaction, to_local_naive
from sirius.memory.store import MemoryStore


logger = get_logger(__name__)

TRACKED_TYPES = ("jira_operation", "autonomous_action")
RECENT_WINDOW = 10
TOP_OPERATIONS = 5
ASSUMED_SESSION_MINUTES = 25


def _most_common(counts: dict[Any, int], default: Any = None) -> Any:
    if not counts:
        return default
    return max(counts, key=lambda k: counts[k])


def analyze_time_patterns(interactions: list[Interaction]) -> dict[str, Any]:
    time_blocks: dict[str, int] = defaultdict(int)
    hours: dict[int, int] = defaultdict(int)
    days: dict[int, int] = defaultdict(int)

    for interaction in interactions:
        ts = interaction.timestamp
        time_blocks[interaction.time_block or "unknown"] += 1
        hours[ts.hour] += 1
        days[(ts.weekday() + 1) % 7] += 1

    return {
        "time_blocks": dict(time_blocks),
        "hours": dict(hours),
        "days": dict(days),
        "most_active_time": _most_common(hours),
        "most_active_day": _most_common(days),
        "most_active_time_block": _most_common(time_blocks),
        "total_interactions": len(interactions),
    }


def analyze_success_rates(interactions: list[Interaction]) -> dict[str, Any]:
    """Overall and per-operation success rates (percent) of tracked operations."""
    stats: dict[str, dict[str, int]] = {}
    total_success = 0
    total_operations = 0

    for interaction in interactions:
        if interaction.type not in TRACKED_TYPES:
            continue
        operation = interaction.operation or interaction.action_type or "unknown"
        entry = stats.setdefault(operation, {"success": 0, "total": 0})
        entry["total"] += 1
        total_operations += 1
        if interaction.success is True:
            entry["success"] += 1
            total_success += 1

    by_operation = {op: s["success"] / s["total"] * 100 for op, s in stats.items()}
    top = sorted(by_operation.items(), key=lambda item: item[1], reverse=True)[:TOP_OPERATIONS]

    return {
        "overall": total_success / total_operations * 100 if total_operations else 0.0,
        "by_operation": by_operation,
        "top_operations": [{"operation": op, "success_rate": rate} for op, rate in top],
        "operation_stats": stats,
    }


def analyze_behavioral_patterns(interactions: list[Interaction]) -> dict[str, Any]:
    focus: dict[str, int] = defaultdict(int)
    urgency: dict[str, int] = defaultdict(int)
    energy: dict[str, int] = defaultdict(int)
    actions: dict[str, int] = defaultdict(int)

    for interaction in interactions:
        if interaction.focus:
            focus[interaction.focus] += 1
        if interaction.urgency:
            urgency[interaction.urgency] += 1
        if interaction.energy:
            energy[interaction.energy] += 1
        for action in interaction.actions:
            actions[action.get("type") or "unknown"] += 1

    return {
        "focus_patterns": dict(focus),
        "urgency_patterns": dict(urgency),
        "energy_patterns": dict(energy),
        "action_preferences": dict(actions),
        "preferred_focus": _most_common(focus, "unknown"),
        "preferred_urgency": _most_common(urgency, "unknown"),
        "preferred_energy": _most_common(energy, "unknown"),
        "preferred_action_type": _most_common(actions, "unknown"),
    }


def analyze_productivity(interactions: list[Interaction]) -> dict[str, Any]:
    productivity = {
        "focus_sessions": 0,
        "deep_work_sessions": 0,
        "meeting_prep_sessions": 0,
        "urgent_task_handling": 0,
        "average_session_duration": 0.0,
    }
    sessions = 0

    for interaction in interactions:
        if interaction.focus == "deep-work":
            productivity["deep_work_sessions"] += 1
        if interaction.focus == "meeting-prep":
            productivity["meeting_prep_sessions"] += 1
        if interaction.urgency in ("critical", "high"):
            productivity["urgent_task_handling"] += 1
        if any(a.get("id") == "focus-mode" for a in interaction.actions):
            productivity["focus_sessions"] += 1
        if interaction.type == "autonomous_action":
            sessions += 1

    # Session length is not recorded yet; every autonomous session counts as one pomodoro
    if sessions:
        productivity["average_session_duration"] = float(ASSUMED_SESSION_MINUTES)
    return productivity


def calculate_learning_period(interactions: list[Interaction]) -> dict[str, Any]:
    if not interactions:
        return {"days": 0, "start_date": None, "end_date": None}

    timestamps = sorted(i.timestamp for i in interactions)
    start, end = timestamps[0], timestamps[-1]
    return {
        "days": math.ceil((end - start).total_seconds() / 86400),
        "start_date": start.isoformat(),
        "end_date": end.isoformat(),
    }


def generate_recommendations(interactions: list[Interaction]) -> list[dict[str, Any]]:
    """Advice derived from the most recent interactions only."""
    recent = interactions[-RECENT_WINDOW:]
    time_analysis = analyze_time_patterns(recent)
    success_rates = analyze_success_rates(recent)
    behavior = analyze_behavioral_patterns(recent)
    recommendations = []

    if time_analysis["most_active_time"] is not None:
        recommendations.append({
            "type": "optimal_time",
            "title": "Optimal Work Time",
            "description": (
                f"You're most active at {time_analysis['most_active_time']}:00. "
                "Consider scheduling important tasks during this time."
            ),
            "priority": "medium",
            "confidence": 0.8,
        })

    if success_rates["overall"] < 80:
        recommendations.append({
            "type": "focus_improvement",
            "title": "Improve Focus",
            "description": (
                f"Your success rate is {success_rates['overall']:.1f}%. "
                "Consider using focus mode more often."
            ),
            "priority": "high",
            "confidence": 0.7,
        })

    block = time_analysis["most_active_time_block"]
    if block and block != "unknown":
        recommendations.append({
            "type": "time_block_optimization",
            "title": "Optimize Time Blocks",
            "description": (
                f"You work best during '{block}' time blocks. "
                "Schedule deep work during these periods."
            ),
            "priority": "medium",
            "confidence": 0.9,
        })

    if behavior["preferred_energy"] == "high":
        recommendations.append({
            "type": "energy_management",
            "title": "Energy Management",
            "description": (
                "You perform best with high energy. "
                "Consider scheduling breaks to maintain energy levels."
            ),
            "priority": "medium",
            "confidence": 0.6,
        })

    return recommendations


def analyze_trends(interactions: list[Interaction]) -> dict[str, Any]:
    """Per-day interaction counts, successes and operations."""
    daily: dict[str, dict[str, Any]] = {}
    for interaction in interactions:
        day = interaction.timestamp.date().isoformat()
        entry = daily.setdefault(day, {"count": 0, "success": 0, "operations": {}})
        entry["count"] += 1
        if interaction.success is True:
            entry["success"] += 1
        operation = interaction.operation or interaction.action_type or "unknown"
        entry["operations"][operation] = entry["operations"].get(operation, 0) + 1

    return {
        "daily_stats": daily,
        "total_days": len(daily),
        "average_daily_interactions": len(interactions) / len(daily) if daily else 0.0,
    }


def get_learning_analytics(store: MemoryStore, user_id: str) -> dict[str, Any]:
    """
    Full analytics report for one user.

    Args:
        store: Memory store holding the user's interaction log
        user_id: User identifier

    Returns:
        dict with summary, time_analysis, success_rates, behavioral_patterns,
        productivity_insights and recommendations
    """
    interactions = store.load(user_id).interactions

    time_analysis = analyze_time_patterns(interactions)
    success_rates = analyze_success_rates(interactions)

    logger.debug("learning_analytics_generated", user_id=user_id, interactions=len(interactions))
    return {
        "user_id": user_id,
        "timestamp": datetime.now().isoformat(),
        "summary": {
            "total_interactions": len(interactions),
            "learning_period": calculate_learning_period(interactions),
            "most_active_time": time_analysis["most_active_time"],
            "success_rate": success_rates["overall"],
            "top_operations": success_rates["top_operations"],
        },
        "time_analysis": time_analysis,
        "success_rates": success_rates,
        "behavioral_patterns": analyze_behavioral_patterns(interactions),
        "productivity_insights": analyze_productivity(interactions),
        "recommendations": generate_recommendations(interactions),
    }


def get_time_period_insights(
    store: MemoryStore, user_id: str, start: datetime, end: datetime
) -> dict[str, Any]:
    """Analytics restricted to interactions between start and end (inclusive)."""
    start, end = to_local_naive(start), to_local_naive(end)
    interactions = [
        i for i in store.load(user_id).interactions if start <= i.timestamp <= end
    ]
    return {
        "period": {"start": start.isoformat(), "end": end.isoformat()},
        "interactions": len(interactions),
        "analytics": get_learning_analytics(store, user_id),
        "trends": analyze_trends(interactions),
    }


__all__ = [
    "analyze_behavioral_patterns",
    "analyze_productivity",
    "analyze_success_rates",
    "analyze_time_patterns",
    "analyze_trends",
    "calculate_learning_period",
    "generate_recommendations",
    "get_learning_analytics",
    "get_time_period_insights",
]
