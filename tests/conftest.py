"""Shared test fixtures for SIRIUS tests.

This module provides common fixtures used across all test modules:
- Memory stores isolated in temporary directories
- Standard test user and interaction data
- Default configuration models

Usage:
    def test_something(store):
        # store writes to a temporary directory that is cleaned up after the test
        ...
"""

from collections.abc import Callable
from datetime import datetime, timedelta
from pathlib import Path

import pytest

from sirius.config_models import AutomationConfig, LearningConfig, MemoryConfig
from sirius.memory.backends.json_file import JsonFileBackend
from sirius.memory.backends.sqlite import SQLiteBackend
from sirius.memory.store import MemoryStore


# ─────────────────────────────────────────────────────────────────────────────
# Config Fixtures
# ─────────────────────────────────────────────────────────────────────────────


@pytest.fixture
def memory_config() -> MemoryConfig:
    return MemoryConfig()


@pytest.fixture
def learning_config() -> LearningConfig:
    return LearningConfig()


@pytest.fixture
def automation_config() -> AutomationConfig:
    """Automation defaults with the worker pool disabled, so tests run inline."""
    config = AutomationConfig()
    config.workers.enabled = False
    return config


# ─────────────────────────────────────────────────────────────────────────────
# Store Fixtures
# ─────────────────────────────────────────────────────────────────────────────


@pytest.fixture
def temp_data_dir(tmp_path: Path) -> Path:
    """Create a temporary data directory structure.

    Returns:
        Path to temporary data directory
    """
    data_dir = tmp_path / "data"
    data_dir.mkdir(parents=True, exist_ok=True)
    return data_dir


@pytest.fixture
def store(temp_data_dir: Path, memory_config: MemoryConfig) -> MemoryStore:
    """MemoryStore backed by JSON files in a temporary directory."""
    return MemoryStore(backend=JsonFileBackend(temp_data_dir / "memory"), config=memory_config)


@pytest.fixture
def sqlite_store(temp_data_dir: Path, memory_config: MemoryConfig) -> MemoryStore:
    """MemoryStore backed by a temporary SQLite database."""
    return MemoryStore(backend=SQLiteBackend(temp_data_dir / "memory.db"), config=memory_config)


# ─────────────────────────────────────────────────────────────────────────────
# User Fixtures
# ─────────────────────────────────────────────────────────────────────────────


@pytest.fixture
def mock_user_id() -> str:
    """Standard test user ID."""
    return "test_user_123"


# ─────────────────────────────────────────────────────────────────────────────
# Interaction Fixtures
# ─────────────────────────────────────────────────────────────────────────────


@pytest.fixture
def base_time() -> datetime:
    """A fixed Wednesday morning."""
    return datetime(2024, 5, 15, 6, 0, 0)


@pytest.fixture
def make_interaction(base_time: datetime) -> Callable[..., dict]:
    """Factory for interaction dicts; `offset_minutes` shifts the timestamp from base_time."""

    def _make(offset_minutes: int = 0, **fields) -> dict:
        interaction = {
            "type": "autonomous_action",
            "action_type": "focus_mode",
            "time_block": "morning-startup",
            "focus": "deep-work",
            "energy": "high",
            "urgency": "low",
            "success": True,
            "timestamp": base_time + timedelta(minutes=offset_minutes),
        }
        interaction.update(fields)
        return interaction

    return _make


@pytest.fixture
def morning_interactions(make_interaction) -> list[dict]:
    """8 successful, high-energy deep-work interactions between 06:00 and 08:00."""
    return [make_interaction(offset_minutes=i * 15) for i in range(8)]
