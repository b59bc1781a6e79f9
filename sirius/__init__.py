"""SIRIUS Adaptive Core - behaviour learning, prediction and autonomous actions

Philosophy:
    Learn from behaviour, not configuration forms.
    Every interaction is a data point. Patterns emerge from observation,
    predictions are served read-only, and autonomous actions feed their
    outcomes back into the model.

Packages:
    memory/: Durable per-user memory (preferences, interaction log,
        learned patterns, learned behaviours) behind pluggable backends
    learning/: Pattern learning, circadian analysis, predictions,
        analytics and the 1-shot reward learning (RLVR) agent
    automation/: Trigger scheduler, worker offload, context providers
        and the default wellness triggers

Configuration: args/*.yaml
    - memory.yaml: persistence backend selection
    - learning.yaml: pattern thresholds, circadian weights, RLVR tuning
    - automation.yaml: loop period, cooldowns, sensitivity, worker pool
"""

from pathlib import Path

__version__ = "0.4.0"

# Path constants
PROJECT_ROOT = Path(__file__).parent.parent
ARGS_DIR = PROJECT_ROOT / "args"
DATA_DIR = PROJECT_ROOT / "data"

__all__ = ["ARGS_DIR", "DATA_DIR", "PROJECT_ROOT", "__version__"]
