"""
Tool: Trigger Scheduler
Purpose: Periodic evaluation loop that fires triggers and learns from the outcomes

Every cycle:
1. Fetch the user's context (worker offload, direct provider call on failure)
2. For each trigger whose condition holds and whose cooldown has elapsed,
   mark it fired and execute its action
3. Prepend the ActionResult to the history (most recent first)
4. Feed the result back: interaction log, learned behaviours, RLVR policy
   and trigger sensitivity

Only one evaluation runs at a time. `stop()` cancels the timer; an
evaluation that is already running completes.

Usage:
    from sirius.automation.engine import TriggerScheduler

    scheduler = TriggerScheduler(store, learner=learner, agent=agent)
    scheduler.add_trigger(trigger)
    scheduler.start()
    ...
    scheduler.stop()
"""

from __future__ import annotations

import asyncio
import itertools
from collections import deque
from collections.abc import Callable
from datetime import datetime
from typing import Any

from sirius.config_models import AutomationConfig, load_and_validate
from sirius.logging_config import get_logger, user_log_context
from sirius.learning.pattern_learner import PatternLearner
from sirius.learning.rlvr import AgentAction, RLVRAgent
from sirius.memory.store import MemoryStore

from .context import ClockContextProvider, Context, ContextProvider
from .offload import WorkerPool
from .triggers import ActionPriority, ActionResult, AutonomousAction, Trigger


logger = get_logger(__name__)


class TriggerScheduler:
    """Runs triggers for one user and closes the learning loop."""

    def __init__(
        self,
        store: MemoryStore,
        learner: PatternLearner | None = None,
        agent: RLVRAgent | None = None,
        context_provider: ContextProvider | None = None,
        worker_pool: WorkerPool | None = None,
        config: AutomationConfig | None = None,
        now: Callable[[], datetime] = datetime.now,
    ):
        self.config = config or load_and_validate("automation")
        self.store = store
        self.learner = learner
        self.agent = agent
        self.context_provider = context_provider or ClockContextProvider(now)
        self.worker_pool = worker_pool or WorkerPool.from_config(self.config.workers)
        self.now = now

        scheduler_config = self.config.scheduler
        self.user_id = scheduler_config.user_id
        self.check_interval = scheduler_config.check_interval_seconds
        self.expected_action_ms = scheduler_config.expected_action_ms

        self.triggers: dict[str, Trigger] = {}
        self.actions: dict[str, AutonomousAction] = {}
        self._history: deque[ActionResult] = deque(maxlen=scheduler_config.history_size)

        self.running = False
        self._evaluating = False
        self._timer: asyncio.Task | None = None
        self._inflight: set[asyncio.Task] = set()

        if not self.worker_pool.has_handler("context"):
            self.worker_pool.register("context", self._context_handler)
        if not self.worker_pool.has_handler("action"):
            self.worker_pool.register("action", self._action_handler)

    # =========================================================================
    # Registration
    # =========================================================================

    def add_trigger(self, trigger: Trigger) -> None:
        if trigger.cooldowns is None:
            trigger.cooldowns = self.config.cooldowns
        if trigger.sensitivity is None:
            trigger.sensitivity = self.config.sensitivity
        self.triggers[trigger.id] = trigger
        logger.info("trigger_added", trigger_id=trigger.id, action=trigger.action.title)

    def remove_trigger(self, trigger_id: str) -> bool:
        trigger = self.triggers.pop(trigger_id, None)
        if trigger is None:
            return False
        logger.info("trigger_removed", trigger_id=trigger_id, action=trigger.action.title)
        return True

    def add_action(self, action: AutonomousAction) -> None:
        self.actions[action.id] = action
        logger.info("action_added", action_id=action.id, action=action.title)

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def start(self) -> None:
        """Start the timer. Must be called from a running event loop."""
        if self.running:
            return
        self.running = True
        self._timer = asyncio.get_running_loop().create_task(self._run_loop())
        logger.info("scheduler_started", user_id=self.user_id, interval=self.check_interval)

    def stop(self) -> None:
        """Cancel the timer. In-flight evaluations are left to finish."""
        if not self.running:
            return
        self.running = False
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        logger.info("scheduler_stopped", inflight=len(self._inflight))

    async def wait_idle(self) -> None:
        """Wait for evaluations that were already running when stop() was called."""
        if self._inflight:
            await asyncio.gather(*self._inflight, return_exceptions=True)

    async def _run_loop(self) -> None:
        while self.running:
            await asyncio.sleep(self.check_interval)
            if not self.running:
                break
            task = asyncio.create_task(self.check_triggers())
            self._inflight.add(task)
            task.add_done_callback(self._inflight.discard)

    # =========================================================================
    # Evaluation
    # =========================================================================

    async def check_triggers(self) -> list[ActionResult]:
        """One evaluation cycle. Returns the results of the actions that ran."""
        if self._evaluating:
            logger.debug("trigger_check_skipped", reason="evaluation in progress")
            return []

        self._evaluating = True
        results: list[ActionResult] = []
        user_id = self.user_id
        try:
            with user_log_context(user_id):
                await self._evaluate(user_id, results)
        except Exception as e:
            logger.error("trigger_check_failed", user_id=user_id, error=str(e))
        finally:
            self._evaluating = False

        return results

    async def _evaluate(self, user_id: str, results: list[ActionResult]) -> None:
        context = await self._fetch_context(user_id)
        now = self.now()

        for trigger in list(self.triggers.values()):
            try:
                fire = trigger.should_trigger(context, now)
            except Exception as e:
                logger.warning("trigger_condition_failed", trigger_id=trigger.id, error=str(e))
                continue
            if not fire:
                continue

            logger.info("trigger_activated", trigger_id=trigger.id, action=trigger.action.title)
            trigger.mark_triggered(now)

            result = await self.execute_action(trigger.action, context, user_id)
            self._history.appendleft(result)
            self.learn_from_action(result, context, user_id)
            results.append(result)

    async def _fetch_context(self, user_id: str) -> Context:
        try:
            context = await self.worker_pool.try_async("context", {"user_id": user_id})
        except Exception as e:
            logger.debug("context_worker_fallback", error=str(e))
            context = self.context_provider.get_context(user_id)
        return context

    def _context_handler(self, payload: dict[str, Any]) -> Context:
        return self.context_provider.get_context(payload["user_id"])

    @staticmethod
    def _action_handler(payload: dict[str, Any]) -> ActionResult:
        # Runs on a worker thread, which has no event loop of its own
        return asyncio.run(payload["action"].execute(payload["context"], payload["user_id"]))

    @staticmethod
    async def _execute_inline(payload: dict[str, Any]) -> ActionResult:
        return await payload["action"].execute(payload["context"], payload["user_id"])

    async def execute_action(
        self, action: AutonomousAction, context: Context, user_id: str
    ) -> ActionResult:
        """Run an action, offloading the heavier categories. Never raises."""
        logger.info("action_executing", action=action.title, action_type=action.type)
        payload = {"action": action, "context": context, "user_id": user_id}

        try:
            if action.type in self.config.workers.offloaded_action_types:
                return await self.worker_pool.run_offloaded("action", payload, self._execute_inline)
            return await self._execute_inline(payload)
        except Exception as e:
            logger.error("action_execution_failed", action=action.title, error=str(e))
            return ActionResult.failure(action, str(e), context)

    # =========================================================================
    # Feedback
    # =========================================================================

    def learn_from_action(self, result: ActionResult, context: Context, user_id: str) -> None:
        """Feed one result into the interaction log, learned behaviours, policy and sensitivity."""
        try:
            if self.learner is not None:
                self.learner.learn_from_interaction(user_id, {
                    "type": "autonomous_action",
                    "action_type": result.action_type,
                    "success": result.success,
                    "time_block": context.time_block,
                    "focus": context.focus,
                    "energy": context.energy,
                    "urgency": context.urgency,
                    "timestamp": result.timestamp,
                })

            if result.success:
                self.store.remember_behavior(user_id, "action_history", result.action_id, {
                    "action_id": result.action_id,
                    "action_type": result.action_type,
                    "title": result.title,
                    "success": result.success,
                    "timestamp": result.timestamp.isoformat(),
                    "context": result.context,
                })
                self._learn_reward(result, context, user_id)

            self.analyze_action_patterns(user_id, result, context)
        except Exception as e:
            logger.error("learn_from_action_failed", action=result.title, error=str(e))

    def _learn_reward(self, result: ActionResult, context: Context, user_id: str) -> None:
        if self.agent is None:
            return

        try:
            state = self.agent.create_visual_state(
                context.model_dump(include={"time_block", "energy", "focus", "urgency", "location"}),
                {
                    "active_components": ["autonomous-action"],
                    "user_focus": context.focus,
                    "task_queue": [],
                    "notifications": [],
                    "current_action": result.action_type,
                },
            )
            feedback = {
                "positive": result.success,
                "helpful": result.success and not result.error,
                "efficient": (result.duration_ms or 0) < self.expected_action_ms,
                "neutral": not result.success and not result.error,
            }
            action = AgentAction(
                type=result.action_type,
                title=result.title,
                execution_time=result.duration_ms,
                expected_time=self.expected_action_ms,
            )
            self.agent.learn_from_visual_feedback(state, action, feedback, user_id=user_id)
        except Exception as e:
            logger.warning("rlvr_learning_failed", action=result.title, error=str(e))

    def analyze_action_patterns(
        self, user_id: str, result: ActionResult, context: Context
    ) -> bool | None:
        """
        Tune sensitivity from recent results of the same type and outcome.

        Returns:
            True/False when triggers were made more/less sensitive, None when
            there were too few similar results
        """
        sensitivity = self.config.sensitivity
        recent = itertools.islice(self._history, sensitivity.pattern_window)
        similar = [
            r for r in recent
            if r.action_type == result.action_type and r.success == result.success
        ]
        if len(similar) < sensitivity.min_pattern_samples:
            return None

        successes = sum(1 for r in similar if r.success)
        was_successful = successes > len(similar) - successes
        self.optimize_trigger_conditions(user_id, result.action_type, context, was_successful)
        return was_successful

    def optimize_trigger_conditions(
        self, user_id: str, action_type: str, context: Context, was_successful: bool
    ) -> None:
        now = self.now()
        self.store.remember_behavior(
            user_id,
            "trigger_optimization",
            f"{action_type}_{int(now.timestamp() * 1000)}",
            {
                "action_type": action_type,
                "context": {
                    "urgency": context.urgency,
                    "focus": context.focus,
                    "energy": context.energy,
                    "time_of_day": now.hour,
                    "day_of_week": (now.weekday() + 1) % 7,
                },
                "was_successful": was_successful,
                "timestamp": now.isoformat(),
            },
        )

        sensitivity = self.config.sensitivity
        factor = sensitivity.increase_factor if was_successful else sensitivity.decrease_factor
        for trigger in self.triggers.values():
            if trigger.action.type == action_type:
                trigger.adjust_sensitivity(factor)

    # =========================================================================
    # Queries
    # =========================================================================

    def get_action_history(self, limit: int = 20) -> list[ActionResult]:
        return list(itertools.islice(self._history, limit))

    def get_trigger_stats(self) -> dict[str, Any]:
        stats: dict[str, Any] = {
            "total": len(self.triggers),
            "enabled": 0,
            "disabled": 0,
            "by_priority": {priority.value: 0 for priority in ActionPriority},
            "by_type": {},
            "triggers": [],
        }
        for trigger in self.triggers.values():
            if trigger.enabled:
                stats["enabled"] += 1
            else:
                stats["disabled"] += 1
            stats["by_priority"][trigger.priority.value] += 1
            action_type = trigger.action.type
            stats["by_type"][action_type] = stats["by_type"].get(action_type, 0) + 1
            stats["triggers"].append(trigger.to_dict())
        return stats


__all__ = ["TriggerScheduler"]
