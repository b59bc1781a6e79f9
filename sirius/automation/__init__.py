"""
Automation - autonomous actions driven by smart triggers

This package turns learned patterns into proactive behaviour:
- Evaluate triggers on a fixed period (scheduler loop)
- Execute actions inline or on the worker pool
- Feed every outcome back into memory, the RLVR policy and trigger sensitivity

Components:
    triggers.py: Trigger, AutonomousAction, ActionResult, priorities and types
    engine.py: TriggerScheduler (evaluation loop and feedback)
    offload.py: Bounded worker pool with synchronous fallback
    context.py: Context model and providers
    default_triggers.py: 4-hour stop, pomodoro, urgency alert, circadian analysis

Usage:
    from sirius.automation import TriggerScheduler, create_default_triggers

    scheduler = TriggerScheduler(store, learner=learner, agent=agent)
    for trigger in create_default_triggers(tracker, store):
        scheduler.add_trigger(trigger)
    scheduler.start()
"""

from .context import ClockContextProvider, Context, ContextProvider
from .default_triggers import WorkTimeTracker, create_default_triggers
from .engine import TriggerScheduler
from .offload import WorkerPool
from .triggers import ActionPriority, ActionResult, ActionType, AutonomousAction, Trigger

__all__ = [
    "ActionPriority",
    "ActionResult",
    "ActionType",
    "AutonomousAction",
    "ClockContextProvider",
    "Context",
    "ContextProvider",
    "Trigger",
    "TriggerScheduler",
    "WorkTimeTracker",
    "WorkerPool",
    "create_default_triggers",
]
