from __future__ import annotations

import os
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field

from sirius import ARGS_DIR
from sirius.logging_config import get_logger

logger = get_logger(__name__)


def _expand_env_vars(value: Any) -> Any:
    """Recursively expand ${VAR} placeholders in config values."""
    if isinstance(value, str):
        if value.startswith("${") and value.endswith("}"):
            return os.getenv(value[2:-1], "")
        return value
    elif isinstance(value, dict):
        return {k: _expand_env_vars(v) for k, v in value.items()}
    elif isinstance(value, list):
        return [_expand_env_vars(item) for item in value]
    return value


# =============================================================================
# MemoryConfig (args/memory.yaml)
# =============================================================================

class JsonBackendConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    directory: str = Field(default="data/memory")


class SQLiteBackendConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    database_path: str = Field(default="data/memory.db")


class BackendConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    active: str = Field(default="json")
    json_file: JsonBackendConfig = Field(default_factory=JsonBackendConfig)
    sqlite: SQLiteBackendConfig = Field(default_factory=SQLiteBackendConfig)


class RetentionConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    max_interactions: int = Field(default=1000, ge=1)
    forget_after_days: int = Field(default=90, ge=1)


class MemoryConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    backend: BackendConfig = Field(default_factory=BackendConfig)
    retention: RetentionConfig = Field(default_factory=RetentionConfig)


# =============================================================================
# LearningConfig (args/learning.yaml)
# =============================================================================

class CircadianConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    success_weight: float = Field(default=0.4, ge=0.0)
    performance_weight: float = Field(default=0.4, ge=0.0)
    frequency_weight: float = Field(default=0.2, ge=0.0)
    balanced_range: float = Field(default=10.0, ge=0.0)
    classification_margin: float = Field(default=5.0, ge=0.0)
    peak_hour_count: int = Field(default=3, ge=1)


class PatternConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    min_interactions: int = Field(default=3, ge=1)
    min_predictive_interactions: int = Field(default=10, ge=2)
    min_context_samples: int = Field(default=2, ge=1)
    top_contexts: int = Field(default=5, ge=1)
    success_tracked_types: list[str] = Field(
        default_factory=lambda: ["jira_operation", "autonomous_action"]
    )


class PredictionConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    top_predictions: int = Field(default=3, ge=1)
    attempts_for_full_confidence: int = Field(default=10, ge=1)
    success_optimization_threshold: float = Field(default=0.7, ge=0.0, le=1.0)
    low_success_threshold: float = Field(default=0.5, ge=0.0, le=1.0)
    productivity_window_hours: int = Field(default=2, ge=0)


class RewardWeightsConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    user_satisfaction: float = Field(default=0.4)
    task_completion: float = Field(default=0.3)
    efficiency: float = Field(default=0.2)
    novelty: float = Field(default=0.1)


class RLVRConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    learning_rate: float = Field(default=0.001, gt=0.0, le=1.0)
    discount_factor: float = Field(default=0.95, ge=0.0, lt=1.0)
    exploration_rate: float = Field(default=0.1, ge=0.0, le=1.0)
    memory_size: int = Field(default=1000, ge=1)
    history_window: int = Field(default=10, ge=1)
    novelty_reward: float = Field(default=0.2, ge=0.0, le=1.0)
    reward: RewardWeightsConfig = Field(default_factory=RewardWeightsConfig)


class LearningConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    patterns: PatternConfig = Field(default_factory=PatternConfig)
    circadian: CircadianConfig = Field(default_factory=CircadianConfig)
    prediction: PredictionConfig = Field(default_factory=PredictionConfig)
    rlvr: RLVRConfig = Field(default_factory=RLVRConfig)


# =============================================================================
# AutomationConfig (args/automation.yaml)
# =============================================================================

class CooldownConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    critical: int = Field(default=0, ge=0)
    high: int = Field(default=5 * 60, ge=0)
    medium: int = Field(default=15 * 60, ge=0)
    low: int = Field(default=60 * 60, ge=0)


class SensitivityConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    min_multiplier: float = Field(default=0.1, gt=0.0)
    max_multiplier: float = Field(default=5.0, gt=0.0)
    increase_factor: float = Field(default=1.1, gt=0.0)
    decrease_factor: float = Field(default=0.9, gt=0.0)
    pattern_window: int = Field(default=20, ge=1)
    min_pattern_samples: int = Field(default=3, ge=1)


class WorkersConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    enabled: bool = Field(default=True)
    max_workers: int = Field(default=4, ge=0)
    timeout_seconds: float = Field(default=30.0, gt=0.0)
    offloaded_action_types: list[str] = Field(
        default_factory=lambda: ["productivity", "communication"]
    )


class SchedulerConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    user_id: str = Field(default="default-user")
    check_interval_seconds: float = Field(default=60.0, gt=0.0)
    history_size: int = Field(default=100, ge=1)
    expected_action_ms: int = Field(default=5000, ge=1)


class AutomationConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    scheduler: SchedulerConfig = Field(default_factory=SchedulerConfig)
    cooldowns: CooldownConfig = Field(default_factory=CooldownConfig)
    sensitivity: SensitivityConfig = Field(default_factory=SensitivityConfig)
    workers: WorkersConfig = Field(default_factory=WorkersConfig)


# =============================================================================
# Loader
# =============================================================================

_CONFIG_MAP: dict[str, type[BaseModel]] = {
    "memory": MemoryConfig,
    "learning": LearningConfig,
    "automation": AutomationConfig,
}


def load_and_validate(config_name: str, model_class: type[BaseModel] | None = None) -> BaseModel:
    if model_class is None:
        model_class = _CONFIG_MAP.get(config_name)
        if model_class is None:
            raise ValueError(f"Unknown config: {config_name}. Available: {list(_CONFIG_MAP.keys())}")

    yaml_path = ARGS_DIR / f"{config_name}.yaml"

    try:
        if yaml_path.exists():
            with open(yaml_path) as f:
                raw = yaml.safe_load(f) or {}
        else:
            raw = {}

        return model_class.model_validate(_expand_env_vars(raw))
    except Exception as e:
        logger.warning("config_validation_failed", config=config_name, error=str(e))
        return model_class()
