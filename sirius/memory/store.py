"""
Memory Store

Durable per-user state: preferences, the interaction log, learned patterns
and learned behaviours. Pure storage and retrieval; the pattern learner and
the scheduler own the business logic.

Features:
    - Lazy creation: a missing or unreadable document yields a fresh default
    - Boolean save results, never exceptions, on write failure
    - Per-user re-entrant locks around every load-modify-save sequence
    - Prune-by-age for interactions and learned behaviours

Usage:
    from sirius.memory import MemoryStore

    store = MemoryStore()
    store.initialize()

    memory = store.load("alice")
    store.remember_behavior("alice", "meeting_preferences", "duration", 25)
    store.forget_old_memories("alice", days_old=30)
"""

from __future__ import annotations

import threading
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timedelta
from typing import Any

from pydantic import ValidationError

from sirius.config_models import MemoryConfig, load_and_validate
from sirius.exceptions import MemoryBackendError
from sirius.logging_config import get_logger

from .backends import BackendStatus, MemoryBackend, create_backend
from .models import Interaction, LearnedBehavior, UserMemory


logger = get_logger(__name__)


def _older_than(timestamp: datetime, days: int) -> bool:
    """True if timestamp lies more than `days` in the past (naive or aware)."""
    now = datetime.now(timestamp.tzinfo) if timestamp.tzinfo else datetime.now()
    return timestamp < now - timedelta(days=days)


class MemoryStore:
    """
    Load, save and prune UserMemory documents through a MemoryBackend.

    The store is an explicit service object: construct one at startup and
    pass it to the pattern learner, prediction engine, RLVR agent and
    scheduler.
    """

    def __init__(
        self,
        backend: MemoryBackend | None = None,
        config: MemoryConfig | None = None,
    ):
        self.config = config or load_and_validate("memory")
        self.backend = backend or create_backend(self.config)
        self.max_interactions = self.config.retention.max_interactions
        self._locks: dict[str, threading.RLock] = {}
        self._locks_guard = threading.Lock()

    def initialize(self) -> BackendStatus:
        """
        Check the backend at startup.

        Raises:
            MemoryBackendError: if the backend is unreachable. This is the
                only fatal memory error; everything after startup degrades.
        """
        status = self.backend.check()
        if not status.ready:
            logger.error("memory_backend_unreachable", backend=status.backend, error=status.error)
            raise MemoryBackendError(f"Memory backend '{status.backend}' unavailable: {status.error}")

        logger.info("memory_store_initialized", backend=status.backend, **status.details)
        return status

    @contextmanager
    def user_lock(self, user_id: str) -> Iterator[None]:
        """Serialize load-modify-save sequences for one user."""
        with self._locks_guard:
            lock = self._locks.get(user_id)
            if lock is None:
                lock = threading.RLock()
                self._locks[user_id] = lock
        with lock:
            yield

    # =========================================================================
    # Load / Save
    # =========================================================================

    def load(self, user_id: str) -> UserMemory:
        """Load a user's memory, falling back to a fresh default on any failure."""
        try:
            document = self.backend.read(user_id)
        except Exception as e:
            logger.warning("memory_read_failed", user_id=user_id, error=str(e))
            document = None

        if document is None:
            logger.info("memory_created", user_id=user_id)
            return UserMemory(user_id=user_id)

        try:
            memory = UserMemory.model_validate_json(document)
        except ValidationError as e:
            logger.warning("memory_parse_failed", user_id=user_id, errors=e.error_count())
            return UserMemory(user_id=user_id)

        logger.debug("memory_loaded", user_id=user_id, interactions=len(memory.interactions))
        return memory

    def save(self, memory: UserMemory) -> bool:
        """Persist a memory document. Returns False instead of raising on failure."""
        memory.timestamp = datetime.now()
        try:
            self.backend.write(memory.user_id, memory.model_dump_json(indent=2))
        except Exception as e:
            logger.error("memory_save_failed", user_id=memory.user_id, error=str(e))
            return False

        logger.debug("memory_saved", user_id=memory.user_id)
        return True

    # =========================================================================
    # Mutations
    # =========================================================================

    def append_interaction(self, memory: UserMemory, interaction: Interaction) -> None:
        """Append to the log, evicting the oldest entries beyond the cap."""
        memory.interactions.append(interaction)
        overflow = len(memory.interactions) - self.max_interactions
        if overflow > 0:
            del memory.interactions[:overflow]

    def remember_behavior(
        self,
        user_id: str,
        category: str,
        key: str,
        value: Any,
        confidence: float = 1.0,
    ) -> bool:
        """Store a learned behaviour under learned_behaviors[category][key]."""
        try:
            with self.user_lock(user_id):
                memory = self.load(user_id)
                memory.learned_behaviors.setdefault(category, {})[key] = LearnedBehavior(
                    value=value,
                    confidence=max(0.0, min(1.0, confidence)),
                )
                logger.info("behavior_remembered", user_id=user_id, category=category, key=key)
                return self.save(memory)
        except Exception as e:
            logger.error(
                "remember_behavior_failed", user_id=user_id, category=category, key=key, error=str(e)
            )
            return False

    def forget_old_memories(self, user_id: str, days_old: int | None = None) -> bool:
        """Drop interactions and learned behaviours older than `days_old` days."""
        if days_old is None:
            days_old = self.config.retention.forget_after_days

        try:
            with self.user_lock(user_id):
                memory = self.load(user_id)
                before = len(memory.interactions)

                memory.interactions = [
                    i for i in memory.interactions if not _older_than(i.timestamp, days_old)
                ]

                forgotten_behaviors = 0
                for category in memory.learned_behaviors.values():
                    stale = [k for k, b in category.items() if _older_than(b.timestamp, days_old)]
                    for key in stale:
                        del category[key]
                    forgotten_behaviors += len(stale)

                logger.info(
                    "memories_forgotten",
                    user_id=user_id,
                    days_old=days_old,
                    interactions=before - len(memory.interactions),
                    behaviors=forgotten_behaviors,
                )
                return self.save(memory)
        except Exception as e:
            logger.error("forget_old_memories_failed", user_id=user_id, error=str(e))
            return False

    # =========================================================================
    # Queries
    # =========================================================================

    def get_preferences(self, user_id: str) -> dict[str, Any]:
        """Preferences, learned patterns and behaviours in a JSON-ready dict."""
        memory = self.load(user_id)
        data = memory.model_dump(mode="json", include={"preferences", "patterns", "learned_behaviors"})
        data["last_updated"] = memory.timestamp.isoformat()
        return data


__all__ = ["MemoryStore"]
