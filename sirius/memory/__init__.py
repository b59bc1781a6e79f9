"""Memory - durable per-user state

Components:
    models.py: pydantic records for the memory document
        - Interaction log entries (schema-versioned, extras kept)
        - Preferences, learned patterns, learned behaviours
    store.py: MemoryStore service (load, save, remember, prune)
    backends/: JSON-file and SQLite persistence

Every mutation is persisted immediately. A read failure is treated as
"no prior memory"; a write failure is reported as False and the failed
mutation is dropped; the next operation reloads from the backend.
"""

from .models import Interaction, UserMemory
from .store import MemoryStore

__all__ = ["Interaction", "MemoryStore", "UserMemory"]
