"""
Tool: Prediction Engine
Purpose: Serve predictions from the learned patterns

Read-only: nothing here mutates memory. Every prediction degrades to a
zero or low-confidence answer when the patterns it needs have not been
learned yet. Public methods never raise; a failure is logged and answered
with the neutral result plus an ``error`` field.

Predictions:
- predict_next_action: likely next context states from the transition table
- predict_optimal_timing: best hour/time block/weekday and circadian peaks
- predict_success_probability: blended historical, context and preference signal
- generate_personalized_recommendations: all of the above as ranked advice

Usage:
    from sirius.learning.prediction import PredictionEngine

    engine = PredictionEngine(store)
    engine.predict_next_action("alice", {"time_block": "morning-focus", "focus": "deep-work"})
    engine.predict_success_probability("alice", {"action_type": "focus_mode", "energy": "high"})
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel

from sirius.config_models import LearningConfig, load_and_validate
from sirius.logging_config import get_logger
from sirius.memory.models import BehavioralPreferences, ContextPerformance, ContextState, UserMemory
from sirius.memory.store import MemoryStore

from . import CONTEXT_FIELDS, PRIORITY_ORDER


logger = get_logger(__name__)

_CAMEL_FIELDS = {"time_block": "timeBlock", "action_type": "actionType"}
_KEY_FIELDS = (*CONTEXT_FIELDS, "action_type", "operation")


def _as_key(value: Any) -> str | None:
    """Scalars become strings; containers and None are treated as unset."""
    if value is None or isinstance(value, str):
        return value
    if isinstance(value, (bool, int, float)):
        return str(value)
    return None


def _as_dict(context: Any) -> dict[str, Any]:
    """Accept a pydantic model or a plain mapping; normalise camelCase keys."""
    if context is None:
        return {}
    if isinstance(context, BaseModel):
        data = context.model_dump()
    else:
        data = dict(context)
    for snake, camel in _CAMEL_FIELDS.items():
        if snake not in data and camel in data:
            data[snake] = data[camel]
    for field in _KEY_FIELDS:
        if field in data:
            data[field] = _as_key(data[field])
    return data


def calculate_time_confidence(distribution: dict[Any, int]) -> float:
    """Share of the most frequent bucket."""
    if not distribution:
        return 0.0
    total = sum(distribution.values())
    if total == 0:
        return 0.0
    return min(max(distribution.values()) / total, 1.0)


def calculate_context_similarity(context: dict[str, Any], other: dict[str, Any]) -> float:
    """Fraction of equal fields among the fields both contexts define."""
    matches = 0
    total = 0
    for field in CONTEXT_FIELDS:
        if context.get(field) and other.get(field):
            total += 1
            if context[field] == other[field]:
                matches += 1
    return matches / total if total > 0 else 0.0


def calculate_context_match(
    context: dict[str, Any], optimal_contexts: list[ContextPerformance]
) -> dict[str, Any]:
    """Find the learned optimal context most similar to `context`."""
    if not optimal_contexts:
        return {"best_match": None, "confidence": 0.0, "all_matches": []}

    scored = []
    for optimal in optimal_contexts:
        similarity = calculate_context_similarity(context, optimal.context.model_dump())
        scored.append({**optimal.model_dump(mode="json"), "similarity_score": similarity})

    best_match = None
    best_score = 0.0
    for match in scored:
        if match["similarity_score"] > best_score:
            best_score = match["similarity_score"]
            best_match = match

    return {
        "best_match": best_match,
        "confidence": best_score,
        "all_matches": sorted(scored, key=lambda m: m["similarity_score"], reverse=True),
    }


def calculate_behavioral_match(
    context: dict[str, Any], preferences: BehavioralPreferences | None
) -> dict[str, Any]:
    """Preference-confidence weighted share of matching behavioural dimensions."""
    if preferences is None:
        return {"score": 0.0, "matches": [], "total_weight": 0.0}

    matches = []
    total_score = 0.0
    total_weight = 0.0
    for factor, preference in (
        ("focus", preferences.preferred_focus),
        ("energy", preferences.preferred_energy),
        ("urgency", preferences.preferred_urgency),
    ):
        current = context.get(factor)
        if not current or preference.value == "unknown":
            continue
        matched = preference.value == current
        weight = preference.confidence
        matches.append({
            "factor": factor,
            "match": matched,
            "weight": weight,
            "preference": preference.value,
            "current": current,
        })
        total_score += weight if matched else 0.0
        total_weight += weight

    return {
        "score": total_score / total_weight if total_weight > 0 else 0.0,
        "matches": matches,
        "total_weight": total_weight,
    }


class PredictionEngine:
    """Read path over learned patterns, served to external callers."""

    def __init__(self, store: MemoryStore, config: LearningConfig | None = None):
        self.store = store
        self.config = config or load_and_validate("learning")

    def predict_next_action(self, user_id: str, current_context: Any) -> dict[str, Any]:
        """Top successor states of the current context in the transition table."""
        try:
            memory = self.store.load(user_id)
            return self._next_action(memory, _as_dict(current_context))
        except Exception as e:
            logger.error("predict_next_action_failed", user_id=user_id, error=str(e))
            return {"confidence": 0.0, "predictions": [], "error": str(e)}

    def _next_action(self, memory: UserMemory, context: dict[str, Any]) -> dict[str, Any]:
        predictive = memory.patterns.predictive_patterns

        if predictive is None or not predictive.transitions:
            return {
                "confidence": 0.0,
                "predictions": [],
                "message": "Insufficient data for prediction",
            }

        state = ContextState.from_mapping(context)
        transitions = predictive.transition_table().get(state)

        if not transitions:
            return {
                "confidence": 0.0,
                "predictions": [],
                "current_context": state.model_dump(),
                "message": "No patterns found for current context",
            }

        ranked = sorted(transitions.items(), key=lambda item: item[1], reverse=True)
        predictions = [
            {"next_state": next_state.model_dump(), "probability": p, "confidence": p}
            for next_state, p in ranked[: self.config.prediction.top_predictions]
        ]

        return {
            "confidence": sum(p["confidence"] for p in predictions) / len(predictions),
            "predictions": predictions,
            "current_context": state.model_dump(),
            "total_patterns": predictive.sequence_count,
        }

    def predict_optimal_timing(self, user_id: str, action_type: str | None = None) -> dict[str, Any]:
        """Ranked timing recommendations, optionally specific to one action type."""
        action_type = _as_key(action_type)
        try:
            memory = self.store.load(user_id)
            return self._optimal_timing(memory, action_type)
        except Exception as e:
            logger.error("predict_optimal_timing_failed", user_id=user_id, error=str(e))
            return {
                "confidence": 0.0,
                "recommendations": [],
                "action_type": action_type,
                "error": str(e),
            }

    def _optimal_timing(self, memory: UserMemory, action_type: str | None) -> dict[str, Any]:
        time_blocks = memory.patterns.time_blocks
        if time_blocks is None:
            return {
                "confidence": 0.0,
                "recommendations": [],
                "action_type": action_type,
                "message": "Insufficient timing data",
            }

        recommendations: list[dict[str, Any]] = []

        if time_blocks.optimal_hour is not None:
            recommendations.append({
                "type": "optimal_hour",
                "value": time_blocks.optimal_hour,
                "confidence": calculate_time_confidence(time_blocks.hour_distribution),
                "description": f"You're most active at {time_blocks.optimal_hour}:00",
            })

        circadian = time_blocks.circadian_rhythm
        recommendations.append({
            "type": "circadian_type",
            "value": circadian.type,
            "confidence": circadian.confidence,
            "description": (
                f"You are a {circadian.type.replace('_', ' ')} "
                f"({circadian.confidence * 100:.1f}% confidence)"
            ),
        })
        if circadian.peak_hours:
            recommendations.append({
                "type": "peak_hours",
                "value": list(circadian.peak_hours),
                "confidence": circadian.confidence,
                "description": "Peak performance hours: "
                + ", ".join(f"{h}:00" for h in circadian.peak_hours),
            })

        if time_blocks.optimal_time_block:
            recommendations.append({
                "type": "optimal_time_block",
                "value": time_blocks.optimal_time_block,
                "confidence": calculate_time_confidence(time_blocks.time_block_distribution),
                "description": f"You work best during '{time_blocks.optimal_time_block}' time blocks",
            })

        if time_blocks.optimal_weekday:
            recommendations.append({
                "type": "optimal_weekday",
                "value": time_blocks.optimal_weekday,
                "confidence": calculate_time_confidence(time_blocks.weekday_distribution),
                "description": f"You're most productive on {time_blocks.optimal_weekday}s",
            })

        pattern = memory.patterns.success_patterns.get(action_type) if action_type else None
        if pattern is not None and pattern.optimal_contexts.time_blocks:
            block_counts = pattern.optimal_contexts.time_blocks
            best_block = max(block_counts, key=lambda b: block_counts[b])
            recommendations.append({
                "type": "action_specific_timing",
                "value": best_block,
                "confidence": pattern.success_rate / 100,
                "description": (
                    f"This action has {pattern.success_rate:.1f}% success rate "
                    f"during '{best_block}' time blocks"
                ),
            })

        recommendations.sort(key=lambda r: r["confidence"], reverse=True)
        return {
            "confidence": sum(r["confidence"] for r in recommendations) / len(recommendations),
            "recommendations": recommendations,
            "action_type": action_type,
        }

    def predict_success_probability(self, user_id: str, action_context: Any) -> dict[str, Any]:
        """Probability in [0, 1] that an action succeeds in the given context."""
        try:
            memory = self.store.load(user_id)
            return self._success_probability(memory, _as_dict(action_context))
        except Exception as e:
            logger.error("predict_success_probability_failed", user_id=user_id, error=str(e))
            return {"probability": 0.5, "confidence": 0.0, "factors": [], "error": str(e)}

    def _success_probability(self, memory: UserMemory, context: dict[str, Any]) -> dict[str, Any]:
        patterns = memory.patterns
        if patterns.time_blocks is None:
            return {
                "probability": 0.5,
                "confidence": 0.0,
                "factors": [],
                "message": "Insufficient data for prediction",
            }

        prediction = self.config.prediction
        action_type = context.get("action_type") or context.get("operation")
        action_pattern = patterns.success_patterns.get(action_type) if action_type else None

        probability = 0.5
        confidence = 0.0
        factors: list[dict[str, Any]] = []

        if action_pattern is not None:
            probability = action_pattern.success_rate / 100
            confidence = min(action_pattern.total_attempts / prediction.attempts_for_full_confidence, 1.0)
            factors.append({
                "factor": "historical_success_rate",
                "value": action_pattern.success_rate,
                "impact": "high",
            })

        context_match = calculate_context_match(context, patterns.optimal_contexts)
        best_match = context_match["best_match"]
        if best_match:
            probability = (probability + best_match["avg_performance"] / 100) / 2
            factors.append({
                "factor": "context_optimization",
                "value": best_match["avg_performance"],
                "impact": "medium",
            })

        behavioral_match = calculate_behavioral_match(context, patterns.behavioral_preferences)
        if behavioral_match["score"] > 0:
            probability = (probability + behavioral_match["score"]) / 2
            factors.append({
                "factor": "behavioral_preference",
                "value": behavioral_match["score"] * 100,
                "impact": "medium",
            })

        factors.sort(key=lambda f: PRIORITY_ORDER[f["impact"]], reverse=True)
        return {
            "probability": max(0.0, min(1.0, probability)),
            "confidence": min(confidence + context_match["confidence"], 1.0),
            "factors": factors,
            "context_match": context_match,
            "behavioral_match": behavioral_match,
        }

    def generate_personalized_recommendations(
        self,
        user_id: str,
        current_context: Any,
        now: datetime | None = None,
    ) -> dict[str, Any]:
        """Timing, success, behavioural and productivity advice sorted by priority."""
        now = now or datetime.now()
        try:
            memory = self.store.load(user_id)
            return self._recommendations(user_id, memory, _as_dict(current_context), now)
        except Exception as e:
            logger.error("generate_recommendations_failed", user_id=user_id, error=str(e))
            return {
                "user_id": user_id,
                "timestamp": now.isoformat(),
                "recommendations": [],
                "summary": {"total_recommendations": 0, "high_priority_count": 0},
                "error": str(e),
            }

    def _recommendations(
        self, user_id: str, memory: UserMemory, context: dict[str, Any], now: datetime
    ) -> dict[str, Any]:
        categories: list[dict[str, Any]] = []

        timing = self._optimal_timing(memory, context.get("action_type"))
        if timing["recommendations"]:
            categories.append({
                "category": "timing",
                "recommendations": timing["recommendations"],
                "priority": "high",
            })

        success = self._success_probability(memory, context)
        if success["probability"] < self.config.prediction.success_optimization_threshold:
            categories.append({
                "category": "success_optimization",
                "recommendations": self._success_optimization_recommendations(success),
                "priority": "high",
            })

        behavioral = self._behavioral_recommendations(context, memory)
        if behavioral:
            categories.append({
                "category": "behavioral_optimization",
                "recommendations": behavioral,
                "priority": "medium",
            })

        productivity = self._productivity_recommendations(memory, now)
        if productivity:
            categories.append({
                "category": "productivity",
                "recommendations": productivity,
                "priority": "medium",
            })

        categories.sort(key=lambda c: PRIORITY_ORDER[c["priority"]], reverse=True)
        return {
            "user_id": user_id,
            "timestamp": now.isoformat(),
            "current_context": context,
            "recommendations": categories,
            "summary": {
                "total_recommendations": sum(len(c["recommendations"]) for c in categories),
                "high_priority_count": sum(1 for c in categories if c["priority"] == "high"),
            },
        }

    # =========================================================================
    # Recommendation builders
    # =========================================================================

    def _success_optimization_recommendations(self, success: dict[str, Any]) -> list[dict[str, Any]]:
        recommendations = []

        if success["probability"] < self.config.prediction.low_success_threshold:
            recommendations.append({
                "type": "timing_optimization",
                "title": "Consider Optimal Timing",
                "description": (
                    "Your success rate is low. Try scheduling this action "
                    "during your optimal time blocks."
                ),
                "priority": "high",
            })

        best_match = (success.get("context_match") or {}).get("best_match")
        if best_match:
            optimal = best_match["context"]
            recommendations.append({
                "type": "context_optimization",
                "title": "Optimize Context",
                "description": (
                    f"Try this action when you're in {optimal.get('focus')} mode "
                    f"with {optimal.get('energy')} energy."
                ),
                "priority": "medium",
            })

        return recommendations

    def _behavioral_recommendations(
        self, context: dict[str, Any], memory: UserMemory
    ) -> list[dict[str, Any]]:
        preferences = memory.patterns.behavioral_preferences
        if preferences is None:
            return []

        recommendations = []
        focus = preferences.preferred_focus
        if focus.value != "unknown" and context.get("focus") != focus.value:
            recommendations.append({
                "type": "focus_optimization",
                "title": "Optimize Focus Mode",
                "description": (
                    f"You typically perform better in '{focus.value}' mode. Consider switching."
                ),
                "priority": "medium",
            })

        energy = preferences.preferred_energy
        if energy.value != "unknown" and context.get("energy") != energy.value:
            recommendations.append({
                "type": "energy_optimization",
                "title": "Energy Management",
                "description": (
                    f"You work best with {energy.value} energy. "
                    "Consider taking a break or energizing."
                ),
                "priority": "medium",
            })

        return recommendations

    def _productivity_recommendations(self, memory: UserMemory, now: datetime) -> list[dict[str, Any]]:
        time_blocks = memory.patterns.time_blocks
        if time_blocks is None or time_blocks.optimal_hour is None:
            return []

        window = self.config.prediction.productivity_window_hours
        if abs(now.hour - time_blocks.optimal_hour) > window:
            return []

        return [{
            "type": "peak_performance",
            "title": "Peak Performance Window",
            "description": (
                f"You're in your optimal performance window ({time_blocks.optimal_hour}:00). "
                "Focus on important tasks."
            ),
            "priority": "high",
        }]


__all__ = [
    "PredictionEngine",
    "calculate_behavioral_match",
    "calculate_context_match",
    "calculate_context_similarity",
    "calculate_time_confidence",
]
