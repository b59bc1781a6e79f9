"""
Tool: RLVR Agent
Purpose: 1-shot reward learning over a tabular action-value policy

A snapshot of the interface and the user's context is encoded into a flat
numeric vector. Each (state, action, reward) example moves the stored value
Q(s, a) towards its target with a single update; there is no batching and
no generalisation between states. Two states that encode differently are
unrelated entries in the table.

Reward = 0.4 * satisfaction + 0.3 * completion + 0.2 * efficiency + 0.1 * novelty

Usage:
    from sirius.learning.rlvr import AgentAction, RLVRAgent

    agent = RLVRAgent(memory_store=store)
    state = agent.create_visual_state({"energy": "low"}, {"active_components": ["inbox"]})
    action = AgentAction(type="break_reminder", title="Take Break")

    agent.learn_from_visual_feedback(state, action, {"positive": True}, user_id="alice")
    best = agent.get_best_action(state, agent.possible_actions(state))

Dependencies:
    - threading (stdlib, policy lock)
    - random (stdlib, injectable exploration source)
"""

from __future__ import annotations

import random
import threading
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Any

from sirius.config_models import LearningConfig, RLVRConfig, load_and_validate
from sirius.logging_config import get_logger
from sirius.memory.store import MemoryStore


logger = get_logger(__name__)

# Field order of the encoded vector; extra interface keys follow in sorted order
INTERFACE_FIELDS = ("active_components", "user_focus", "task_queue", "notifications", "current_action")
CONTEXT_FIELDS = ("time_block", "energy", "focus", "urgency", "location")

DEFAULT_ACTIONS = (
    ("focus_mode", "Focus Mode"),
    ("break_reminder", "Take Break"),
    ("meeting_prep", "Meeting Prep"),
    ("daily_digest", "Daily Digest"),
    ("context_analysis", "Analyze Context"),
)

SATISFACTION_SCORES = {
    "positive": 1.0,
    "helpful": 0.8,
    "efficient": 0.6,
    "negative": -1.0,
    "unhelpful": -0.8,
    "inefficient": -0.6,
    "neutral": 0.1,
}

LEARNED_BEHAVIOR_CATEGORY = "rlvr_learning"


def scalarize(value: Any) -> float:
    """Numbers pass through, booleans 0/1, strings length, collections count, else 0."""
    if isinstance(value, bool):
        return 1.0 if value else 0.0
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        return float(len(value))
    if isinstance(value, (list, tuple, set, dict)):
        return float(len(value))
    return 0.0


def _camel_to_snake(key: str) -> str:
    return "".join(f"_{c.lower()}" if c.isupper() else c for c in key)


def _normalise_keys(data: dict[str, Any] | None) -> dict[str, Any]:
    return {_camel_to_snake(k): v for k, v in (data or {}).items()}


@dataclass
class AgentAction:
    """An action the agent can take or has taken."""

    type: str
    title: str = ""
    execution_time: float | None = None
    expected_time: float | None = None

    @classmethod
    def coerce(cls, action: AgentAction | dict[str, Any]) -> AgentAction:
        if isinstance(action, cls):
            return action
        data = _normalise_keys(action)
        return cls(
            type=data.get("type", "unknown"),
            title=data.get("title", ""),
            execution_time=data.get("execution_time"),
            expected_time=data.get("expected_time"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "title": self.title,
            "execution_time": self.execution_time,
            "expected_time": self.expected_time,
        }


@dataclass(frozen=True)
class EncodedState:
    """Encoded snapshot. `vector` is the policy key; the rest is kept for replay."""

    vector: tuple[float, ...]
    interface: dict[str, Any] = field(compare=False)
    context: dict[str, Any] = field(compare=False)
    history: tuple[dict[str, Any], ...] = field(compare=False)
    timestamp: float = field(compare=False)


@dataclass
class VisualState:
    """Interface snapshot plus user context plus recent interaction history."""

    interface_state: dict[str, Any] = field(default_factory=lambda: {
        "active_components": [],
        "user_focus": None,
        "task_queue": [],
        "notifications": [],
        "current_action": None,
    })
    user_context: dict[str, Any] = field(default_factory=lambda: {
        "time_block": None,
        "energy": None,
        "focus": None,
        "urgency": None,
        "location": None,
    })
    interaction_history: list[dict[str, Any]] = field(default_factory=list)
    timestamp: float = field(default_factory=time.time)
    history_window: int = 10

    def encode(self) -> EncodedState:
        extras = sorted(k for k in self.interface_state if k not in INTERFACE_FIELDS)
        extras += sorted(
            k for k in self.user_context if k not in CONTEXT_FIELDS and k not in self.interface_state
        )

        values = [self.interface_state.get(k) for k in INTERFACE_FIELDS]
        values += [self.user_context.get(k) for k in CONTEXT_FIELDS]
        values += [self.interface_state.get(k, self.user_context.get(k)) for k in extras]

        return EncodedState(
            vector=tuple(scalarize(v) for v in values),
            interface=dict(self.interface_state),
            context=dict(self.user_context),
            history=tuple(self.interaction_history[-self.history_window:]),
            timestamp=self.timestamp,
        )


@dataclass
class Experience:
    state: EncodedState
    action: AgentAction
    reward: float
    next_state: EncodedState | None
    timestamp: float = field(default_factory=time.time)


class RewardFunction:
    """Weighted reward from user feedback, task completion, efficiency and novelty."""

    def __init__(self, config: RLVRConfig):
        self.weights = config.reward
        self.novelty_reward = config.novelty_reward

    def calculate_reward(
        self,
        action: AgentAction | dict[str, Any],
        state: VisualState,
        feedback: dict[str, Any] | None,
    ) -> float:
        action = AgentAction.coerce(action)
        satisfaction = self.satisfaction_reward(feedback)
        completion = self.completion_reward(state)
        efficiency = self.efficiency_reward(action)
        novelty = self.novelty(action, state)

        total = (
            self.weights.user_satisfaction * satisfaction
            + self.weights.task_completion * completion
            + self.weights.efficiency * efficiency
            + self.weights.novelty * novelty
        )
        logger.debug(
            "reward_calculated",
            action_type=action.type,
            satisfaction=satisfaction,
            completion=completion,
            efficiency=efficiency,
            novelty=novelty,
            total=total,
        )
        return total

    @staticmethod
    def satisfaction_reward(feedback: dict[str, Any] | None) -> float:
        if not feedback:
            return 0.0
        reward = sum(score for flag, score in SATISFACTION_SCORES.items() if feedback.get(flag))
        return max(-1.0, min(1.0, reward))

    @staticmethod
    def completion_reward(state: VisualState | None) -> float:
        """Fraction of queued tasks marked completed."""
        if state is None:
            return 0.0
        queue = state.interface_state.get("task_queue") or []
        completed = [t for t in queue if isinstance(t, dict) and t.get("completed")]
        return len(completed) / len(queue) if completed else 0.0

    @staticmethod
    def efficiency_reward(action: AgentAction) -> float:
        actual = action.execution_time or 0
        expected = action.expected_time or 1
        if actual < expected:
            return min(1.0, (expected - actual) / expected)
        return 0.0

    def novelty(self, action: AgentAction, state: VisualState | None) -> float:
        if state is None:
            return 0.0
        if any(h.get("type") == action.type for h in state.interaction_history):
            return 0.0
        return self.novelty_reward


class RLVRAgent:
    """
    Tabular Q-learning agent updated from single examples.

    The policy and experience buffer are shared by every caller; mutations
    are serialised with a lock.

    Args:
        config: Learning configuration (the `rlvr` section is used)
        memory_store: Optional store; outcomes are remembered per user
        rng: Random source for exploration (inject a seeded one in tests)
    """

    def __init__(
        self,
        config: LearningConfig | None = None,
        memory_store: MemoryStore | None = None,
        rng: random.Random | None = None,
    ):
        self.config = (config or load_and_validate("learning")).rlvr
        self.memory_store = memory_store
        self.rng = rng or random.Random()
        self.reward_function = RewardFunction(self.config)

        self.learning_rate = self.config.learning_rate
        self.discount_factor = self.config.discount_factor
        self.exploration_rate = self.config.exploration_rate

        self.experience_buffer: deque[Experience] = deque(maxlen=self.config.memory_size)
        self.policy: dict[tuple[tuple[float, ...], str], float] = {}
        self._known_actions: dict[tuple[float, ...], set[str]] = {}
        self._lock = threading.Lock()

    # =========================================================================
    # Learning
    # =========================================================================

    def learn_from_example(
        self,
        state: VisualState,
        action: AgentAction | dict[str, Any],
        reward: float,
        next_state: VisualState | None = None,
        user_id: str | None = None,
    ) -> dict[str, Any]:
        """
        Apply one example to the policy.

        Q(s,a) <- Q(s,a) + alpha * (target - Q(s,a)), with target = reward
        when there is no next state, else reward + gamma * max_a' Q(s',a').

        Returns:
            dict with success, experience_count, q_value and policy_updated
        """
        action = AgentAction.coerce(action)
        encoded = state.encode()
        encoded_next = next_state.encode() if next_state is not None else None
        experience = Experience(state=encoded, action=action, reward=reward, next_state=encoded_next)

        with self._lock:
            self.experience_buffer.append(experience)
            q_value = self._update_policy(experience, next_state)
            experience_count = len(self.experience_buffer)

        logger.info("rlvr_example_learned", action_type=action.type, reward=reward, q_value=q_value)

        if self.memory_store is not None and user_id:
            self._store_learned_behavior(user_id, encoded, action, reward)

        return {
            "success": True,
            "experience_count": experience_count,
            "q_value": q_value,
            "policy_updated": True,
        }

    def _update_policy(self, experience: Experience, next_state: VisualState | None) -> float:
        """Must hold _lock."""
        key = (experience.state.vector, experience.action.type)
        current = self.policy.get(key, 0.0)

        target = experience.reward
        if experience.next_state is not None and next_state is not None:
            next_vector = experience.next_state.vector
            candidates = {a.type for a in self.possible_actions(next_state)}
            candidates |= self._known_actions.get(next_vector, set())
            max_next = max(self.policy.get((next_vector, a), 0.0) for a in candidates)
            target = experience.reward + self.discount_factor * max_next

        updated = current + self.learning_rate * (target - current)
        self.policy[key] = updated
        self._known_actions.setdefault(key[0], set()).add(key[1])

        logger.debug("policy_updated", action_type=key[1], current=current, target=target, updated=updated)
        return updated

    def _store_learned_behavior(
        self, user_id: str, state: EncodedState, action: AgentAction, reward: float
    ) -> None:
        self.memory_store.remember_behavior(
            user_id,
            LEARNED_BEHAVIOR_CATEGORY,
            action.type,
            {
                "reward": reward,
                "success": reward > 0,
                "state": list(state.vector),
                "context": state.context,
            },
        )

    def learn_from_visual_feedback(
        self,
        state: VisualState,
        action: AgentAction | dict[str, Any],
        feedback: dict[str, Any] | None,
        next_state: VisualState | None = None,
        user_id: str | None = None,
    ) -> dict[str, Any]:
        """Compute the reward from feedback, then learn from it."""
        action = AgentAction.coerce(action)
        reward = self.reward_function.calculate_reward(action, state, feedback)
        result = self.learn_from_example(state, action, reward, next_state, user_id=user_id)
        result["reward"] = reward
        return result

    # =========================================================================
    # Acting
    # =========================================================================

    def q_value(self, state: VisualState, action_type: str) -> float:
        return self.policy.get((state.encode().vector, action_type), 0.0)

    def get_best_action(
        self, state: VisualState, candidates: list[AgentAction]
    ) -> AgentAction | None:
        """Epsilon-greedy choice among candidates; first candidate wins ties."""
        if not candidates:
            return None

        if self.rng.random() < self.exploration_rate:
            choice = self.rng.choice(candidates)
            logger.debug("rlvr_explore", action_type=choice.type)
            return choice

        vector = state.encode().vector
        best = candidates[0]
        best_q = float("-inf")
        for candidate in candidates:
            q = self.policy.get((vector, candidate.type), 0.0)
            if q > best_q:
                best, best_q = candidate, q

        logger.debug("rlvr_exploit", action_type=best.type, q_value=best_q)
        return best

    def possible_actions(self, state: VisualState) -> list[AgentAction]:
        """Default catalogue, plus urgent handling and energy boost when the context calls for it."""
        actions = [AgentAction(type=t, title=title) for t, title in DEFAULT_ACTIONS]
        if state.user_context.get("urgency") == "high":
            actions.append(AgentAction(type="urgent_task_handling", title="Handle Urgent Task"))
        if state.user_context.get("energy") == "low":
            actions.append(AgentAction(type="energy_boost", title="Energy Boost"))
        return actions

    def create_visual_state(
        self,
        context: dict[str, Any] | None,
        interface_state: dict[str, Any] | None = None,
        interaction_history: list[dict[str, Any]] | None = None,
    ) -> VisualState:
        """Merge a context and interface snapshot over the default visual state."""
        state = VisualState(history_window=self.config.history_window)
        state.interface_state.update(_normalise_keys(interface_state))
        state.user_context.update(_normalise_keys(context))
        if interaction_history:
            state.interaction_history = list(interaction_history)
        return state

    def get_learning_stats(self) -> dict[str, Any]:
        with self._lock:
            policy = [
                {"state": list(vector), "action": action, "q_value": q}
                for (vector, action), q in self.policy.items()
            ]
            return {
                "experience_count": len(self.experience_buffer),
                "policy_size": len(self.policy),
                "exploration_rate": self.exploration_rate,
                "learning_rate": self.learning_rate,
                "discount_factor": self.discount_factor,
                "policy": policy,
            }


__all__ = [
    "AgentAction",
    "EncodedState",
    "Experience",
    "RLVRAgent",
    "RewardFunction",
    "VisualState",
    "scalarize",
]
