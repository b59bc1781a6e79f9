"""
Tool: Pattern Learner
Purpose: Derive behavioural patterns from the interaction log

Every new interaction is appended to the user's log and the five pattern
families are re-derived from the whole log:

Pattern Families:
- time_blocks: hour/day/time-block/weekday frequencies and circadian rhythm
- behavioral_preferences: most frequent focus, energy, urgency, action type
- success_patterns: per-operation success rate with success/failure contexts
- optimal_contexts: top context combinations by average performance
- predictive_patterns: transition table between consecutive context states

Usage:
    from sirius.learning.pattern_learner import PatternLearner

    learner = PatternLearner(store)
    learner.learn_from_interaction("alice", {
        "type": "autonomous_action",
        "action_type": "focus_mode",
        "time_block": "morning-focus",
        "focus": "deep-work",
        "energy": "high",
        "success": True,
    })

Dependencies:
    - pydantic (record validation)
"""

from __future__ import annotations

from collections import defaultdict
from datetime import datetime
from typing import Any

from pydantic import ValidationError

from sirius.config_models import LearningConfig, load_and_validate
from sirius.logging_config import get_logger, user_log_context
from sirius.memory.models import (
    BehavioralPreferences,
    ContextBreakdown,
    ContextKey,
    ContextPerformance,
    ContextState,
    Interaction,
    Preference,
    PredictivePatterns,
    SuccessPattern,
    TimePatterns,
    TransitionEdge,
    TransitionRow,
    UserMemory,
)
from sirius.memory.store import MemoryStore

from . import CIRCADIAN_PERIODS, WEEKDAY_NAMES
from .circadian import analyze_circadian_rhythm, calculate_performance_score, circadian_period


logger = get_logger(__name__)


def _argmax(counts: dict[Any, int]) -> Any:
    """Key with the highest count; the first one seen wins ties."""
    return max(counts, key=lambda k: counts[k])


def calculate_preference(counts: dict[str, int]) -> Preference:
    """Most frequent value with confidence = its share of all observations."""
    total = sum(counts.values())
    if total == 0:
        return Preference(value="unknown", confidence=0.0)

    value = _argmax(counts)
    return Preference(value=value, confidence=counts[value] / total, distribution=dict(counts))


def analyze_context_breakdown(contexts: list[Interaction]) -> ContextBreakdown:
    """Frequency breakdown of time blocks, focus modes, energy and urgency levels."""
    breakdown = ContextBreakdown()
    for c in contexts:
        if c.time_block:
            breakdown.time_blocks[c.time_block] = breakdown.time_blocks.get(c.time_block, 0) + 1
        if c.focus:
            breakdown.focus_modes[c.focus] = breakdown.focus_modes.get(c.focus, 0) + 1
        if c.energy:
            breakdown.energy_levels[c.energy] = breakdown.energy_levels.get(c.energy, 0) + 1
        if c.urgency:
            breakdown.urgency_levels[c.urgency] = breakdown.urgency_levels.get(c.urgency, 0) + 1
    return breakdown


def interaction_state(interaction: Interaction) -> ContextState:
    """The transition-table state of an interaction."""
    return ContextState(
        time_block=interaction.time_block,
        focus=interaction.focus,
        energy=interaction.energy,
        urgency=interaction.urgency,
        action_type=interaction.type,
    )


class PatternLearner:
    """Runs the learning passes and persists the result through a MemoryStore."""

    def __init__(self, store: MemoryStore, config: LearningConfig | None = None):
        self.store = store
        self.config = config or load_and_validate("learning")

    def learn_from_interaction(self, user_id: str, interaction: Interaction | dict[str, Any]) -> bool:
        """
        Record an interaction and re-learn the user's patterns.

        Args:
            user_id: User identifier
            interaction: Interaction record or a dict in its shape

        Returns:
            True if the updated memory was saved
        """
        try:
            if not isinstance(interaction, Interaction):
                interaction = Interaction.model_validate(interaction)
        except ValidationError as e:
            logger.warning("interaction_rejected", user_id=user_id, errors=e.error_count())
            return False

        try:
            with user_log_context(user_id), self.store.user_lock(user_id):
                memory = self.store.load(user_id)
                self.store.append_interaction(memory, interaction)
                self.learn_patterns(memory)

                logger.info("learned_from_interaction", interaction_type=interaction.type)
                return self.store.save(memory)
        except Exception as e:
            logger.error("learn_from_interaction_failed", user_id=user_id, error=str(e))
            return False

    def learn_patterns(self, memory: UserMemory) -> None:
        """Run every learning pass that has enough data."""
        interactions = memory.interactions
        patterns = self.config.patterns
        if len(interactions) < patterns.min_interactions:
            return

        self.learn_time_patterns(memory, interactions)
        self.learn_behavioral_patterns(memory, interactions)
        self.learn_success_patterns(memory, interactions)
        self.learn_context_patterns(memory, interactions)
        if len(interactions) >= patterns.min_predictive_interactions:
            self.learn_predictive_patterns(memory, interactions)

        logger.debug("pattern_learning_completed", user_id=memory.user_id, interactions=len(interactions))

    # =========================================================================
    # Learning passes
    # =========================================================================

    def learn_time_patterns(self, memory: UserMemory, interactions: list[Interaction]) -> None:
        """Learn hour/day/time-block frequencies and the circadian rhythm."""
        time_blocks: dict[str, int] = defaultdict(int)
        hours: dict[int, int] = defaultdict(int)
        days: dict[int, int] = defaultdict(int)
        weekdays: dict[str, int] = defaultdict(int)
        period_data = {
            period: {"count": 0, "success": 0, "performance": []} for period in CIRCADIAN_PERIODS
        }

        for interaction in interactions:
            ts = interaction.timestamp
            day = (ts.weekday() + 1) % 7

            time_blocks[interaction.time_block or "unknown"] += 1
            hours[ts.hour] += 1
            days[day] += 1
            weekdays[WEEKDAY_NAMES[day]] += 1

            data = period_data[circadian_period(ts.hour)]
            data["count"] += 1
            if interaction.success is True:
                data["success"] += 1
            data["performance"].append(calculate_performance_score(interaction))

        memory.patterns.time_blocks = TimePatterns(
            optimal_hour=_argmax(hours),
            optimal_day=_argmax(days),
            optimal_time_block=_argmax(time_blocks),
            optimal_weekday=_argmax(weekdays),
            hour_distribution=dict(hours),
            day_distribution=dict(days),
            time_block_distribution=dict(time_blocks),
            weekday_distribution=dict(weekdays),
            circadian_rhythm=analyze_circadian_rhythm(period_data, dict(hours), self.config.circadian),
        )

    def learn_behavioral_patterns(self, memory: UserMemory, interactions: list[Interaction]) -> None:
        """Learn the preferred focus, energy, urgency and action type."""
        focus: dict[str, int] = defaultdict(int)
        energy: dict[str, int] = defaultdict(int)
        urgency: dict[str, int] = defaultdict(int)
        action_types: dict[str, int] = defaultdict(int)

        for interaction in interactions:
            if interaction.focus:
                focus[interaction.focus] += 1
            if interaction.energy:
                energy[interaction.energy] += 1
            if interaction.urgency:
                urgency[interaction.urgency] += 1
            if interaction.action_type:
                action_types[interaction.action_type] += 1
            for action in interaction.actions:
                action_types[action.get("type") or "unknown"] += 1

        memory.patterns.behavioral_preferences = BehavioralPreferences(
            preferred_focus=calculate_preference(focus),
            preferred_energy=calculate_preference(energy),
            preferred_urgency=calculate_preference(urgency),
            preferred_action_type=calculate_preference(action_types),
        )

    def learn_success_patterns(self, memory: UserMemory, interactions: list[Interaction]) -> None:
        """Learn per-operation success rates and the contexts behind them."""
        tracked = set(self.config.patterns.success_tracked_types)
        attempts: dict[str, list[Interaction]] = defaultdict(list)

        for interaction in interactions:
            if interaction.type in tracked or interaction.operation or interaction.action_type:
                operation = interaction.operation or interaction.action_type or "unknown"
                attempts[operation].append(interaction)

        success_patterns: dict[str, SuccessPattern] = {}
        for operation, items in attempts.items():
            successes = [i for i in items if i.success is True]
            failures = [i for i in items if i.success is not True]
            success_patterns[operation] = SuccessPattern(
                success_rate=len(successes) / len(items) * 100,
                total_attempts=len(items),
                success_count=len(successes),
                optimal_contexts=analyze_context_breakdown(successes),
                failure_contexts=analyze_context_breakdown(failures),
            )

        memory.patterns.success_patterns = success_patterns

    def learn_context_patterns(self, memory: UserMemory, interactions: list[Interaction]) -> None:
        """Rank exact context combinations by average performance."""
        groups: dict[ContextKey, list[Interaction]] = defaultdict(list)
        for interaction in interactions:
            key = ContextKey(
                time_block=interaction.time_block,
                focus=interaction.focus,
                energy=interaction.energy,
                urgency=interaction.urgency,
            )
            groups[key].append(interaction)

        min_samples = self.config.patterns.min_context_samples
        ranked: list[ContextPerformance] = []
        for key, items in groups.items():
            if len(items) < min_samples:
                continue
            scores = [calculate_performance_score(i) for i in items]
            ranked.append(ContextPerformance(
                context=key,
                success_rate=sum(1 for i in items if i.success is True) / len(items) * 100,
                avg_performance=sum(scores) / len(scores),
                frequency=len(items),
            ))

        ranked.sort(key=lambda c: c.avg_performance, reverse=True)
        memory.patterns.optimal_contexts = ranked[: self.config.patterns.top_contexts]

    def learn_predictive_patterns(self, memory: UserMemory, interactions: list[Interaction]) -> None:
        """Build the transition table from consecutive interaction pairs."""
        if len(interactions) < self.config.patterns.min_predictive_interactions:
            return

        counts: dict[ContextState, dict[ContextState, int]] = defaultdict(lambda: defaultdict(int))
        for current, following in zip(interactions, interactions[1:]):
            counts[interaction_state(current)][interaction_state(following)] += 1

        rows = []
        for source, successors in counts.items():
            total = sum(successors.values())
            rows.append(TransitionRow(
                source=source,
                successors=[
                    TransitionEdge(state=state, count=count, probability=count / total)
                    for state, count in successors.items()
                ],
            ))

        memory.patterns.predictive_patterns = PredictivePatterns(
            transitions=rows,
            sequence_count=len(interactions) - 1,
            last_updated=datetime.now(),
        )


__all__ = [
    "PatternLearner",
    "analyze_context_breakdown",
    "calculate_preference",
    "interaction_state",
]
