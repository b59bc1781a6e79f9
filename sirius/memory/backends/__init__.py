"""Pluggable persistence backends for user memory documents."""

from __future__ import annotations

from pathlib import Path

from sirius import PROJECT_ROOT
from sirius.config_models import MemoryConfig

from .base import BackendStatus, MemoryBackend
from .json_file import JsonFileBackend
from .sqlite import SQLiteBackend


def _resolve(path: str) -> Path:
    p = Path(path)
    return p if p.is_absolute() else PROJECT_ROOT / p


def create_backend(config: MemoryConfig | None = None) -> MemoryBackend:
    """Create the backend named by ``backend.active`` in args/memory.yaml."""
    config = config or MemoryConfig()
    active = config.backend.active

    if active == "json":
        return JsonFileBackend(_resolve(config.backend.json_file.directory))
    elif active == "sqlite":
        return SQLiteBackend(_resolve(config.backend.sqlite.database_path))
    else:
        raise ValueError(f"Unknown memory backend: {active}")


__all__ = [
    "BackendStatus",
    "JsonFileBackend",
    "MemoryBackend",
    "SQLiteBackend",
    "create_backend",
]
