#!/usr/bin/env python3
"""
SIRIUS Command Line Interface

Main entry point for the `sirius` command. Every action prints JSON.

Usage:
    sirius --action learn --user alice --data '{"type": "autonomous_action", "success": true}'
    sirius --action preferences --user alice
    sirius --action predict-next --user alice --data '{"time_block": "morning-focus"}'
    sirius --action run --user alice
"""

import argparse
import asyncio
import json
import signal
import sys
from typing import Any

from sirius import __version__
from sirius.exceptions import MemoryBackendError
from sirius.logging_config import setup_logging


def _parse_data(raw: str | None, required: bool, action: str) -> dict[str, Any]:
    if not raw:
        if required:
            print(json.dumps({"success": False, "error": f"--data required for {action} action"}))
            sys.exit(1)
        return {}
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        print(json.dumps({"success": False, "error": f"Invalid JSON in --data: {e}"}))
        sys.exit(1)
    if not isinstance(data, dict):
        print(json.dumps({"success": False, "error": "--data must be a JSON object"}))
        sys.exit(1)
    return data


async def _run_scheduler(store, user_id: str) -> dict[str, Any]:
    """Run the scheduler with the default triggers until SIGINT/SIGTERM."""
    from sirius.automation import TriggerScheduler, WorkTimeTracker, create_default_triggers
    from sirius.learning.pattern_learner import PatternLearner
    from sirius.learning.rlvr import RLVRAgent

    scheduler = TriggerScheduler(
        store,
        learner=PatternLearner(store),
        agent=RLVRAgent(memory_store=store),
    )
    scheduler.user_id = user_id

    tracker = WorkTimeTracker()
    tracker.start_work(user_id)
    tracker.record_break(user_id)
    for trigger in create_default_triggers(tracker, store):
        scheduler.add_trigger(trigger)

    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop_event.set)

    scheduler.start()
    await stop_event.wait()
    scheduler.stop()
    await scheduler.wait_idle()
    scheduler.worker_pool.shutdown()

    return {
        "success": True,
        "history": [r.to_dict() for r in scheduler.get_action_history()],
        "triggers": scheduler.get_trigger_stats(),
    }


def main():
    parser = argparse.ArgumentParser(
        description="SIRIUS - adaptive behaviour learning and prediction",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    # Record an interaction and re-learn patterns
    sirius --action learn --user alice \\
        --data '{"type": "autonomous_action", "action_type": "focus_mode", "success": true}'

    # Remember a behaviour
    sirius --action remember --user alice --category meeting_preferences \\
        --key duration --data '{"value": 25}'

    # Predictions
    sirius --action predict-next --user alice --data '{"time_block": "morning-focus"}'
    sirius --action timing --user alice --action-type focus_mode
    sirius --action success --user alice --data '{"action_type": "focus_mode"}'

    # Run the scheduler with the default triggers
    sirius --action run --user alice
        """,
    )

    parser.add_argument(
        "--action",
        required=True,
        choices=[
            "learn",
            "preferences",
            "remember",
            "forget",
            "predict-next",
            "timing",
            "success",
            "recommend",
            "analytics",
            "run",
        ],
        help="Action to perform",
    )
    parser.add_argument("--user", required=True, help="User ID")
    parser.add_argument("--data", help="JSON object (interaction, context or behaviour value)")
    parser.add_argument("--category", help="Learned behaviour category for remember")
    parser.add_argument("--key", help="Learned behaviour key for remember")
    parser.add_argument("--action-type", help="Action type for timing predictions")
    parser.add_argument("--days", type=int, help="Age threshold in days for forget")
    parser.add_argument("--log-level", default=None, help="Log level (default: SIRIUS_LOG_LEVEL or INFO)")
    parser.add_argument("--version", action="version", version=f"sirius {__version__}")

    args = parser.parse_args()
    setup_logging(level=args.log_level)

    from sirius.learning.analytics import get_learning_analytics
    from sirius.learning.pattern_learner import PatternLearner
    from sirius.learning.prediction import PredictionEngine
    from sirius.memory import MemoryStore

    store = MemoryStore()
    try:
        store.initialize()
    except MemoryBackendError as e:
        print(json.dumps({"success": False, "error": str(e)}))
        sys.exit(1)

    result = None

    if args.action == "learn":
        data = _parse_data(args.data, required=True, action=args.action)
        result = {"success": PatternLearner(store).learn_from_interaction(args.user, data)}

    elif args.action == "preferences":
        result = {"success": True, "data": store.get_preferences(args.user)}

    elif args.action == "remember":
        if not args.category or not args.key:
            print(json.dumps({"success": False, "error": "--category and --key required for remember action"}))
            sys.exit(1)
        data = _parse_data(args.data, required=True, action=args.action)
        result = {
            "success": store.remember_behavior(
                args.user,
                args.category,
                args.key,
                data.get("value", data),
                data.get("confidence", 1.0),
            )
        }

    elif args.action == "forget":
        result = {"success": store.forget_old_memories(args.user, args.days)}

    elif args.action == "predict-next":
        data = _parse_data(args.data, required=False, action=args.action)
        result = {"success": True, "data": PredictionEngine(store).predict_next_action(args.user, data)}

    elif args.action == "timing":
        result = {
            "success": True,
            "data": PredictionEngine(store).predict_optimal_timing(args.user, args.action_type),
        }

    elif args.action == "success":
        data = _parse_data(args.data, required=False, action=args.action)
        result = {
            "success": True,
            "data": PredictionEngine(store).predict_success_probability(args.user, data),
        }

    elif args.action == "recommend":
        data = _parse_data(args.data, required=False, action=args.action)
        result = {
            "success": True,
            "data": PredictionEngine(store).generate_personalized_recommendations(args.user, data),
        }

    elif args.action == "analytics":
        result = {"success": True, "data": get_learning_analytics(store, args.user)}

    elif args.action == "run":
        result = asyncio.run(_run_scheduler(store, args.user))

    if result:
        print(json.dumps(result, indent=2, default=str))
        if not result.get("success"):
            sys.exit(1)


if __name__ == "__main__":
    main()
