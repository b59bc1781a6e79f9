"""
Memory Backend Base Class

Abstract interface for keyed persistence of user memory documents. The
memory store hands a backend one JSON document per user id and never
looks inside the storage format.

Design Principles:
- Documents are opaque JSON strings; validation happens in the store
- Reads of a missing key return None instead of raising
- Write failures raise and the store turns them into a boolean result
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field


@dataclass
class BackendStatus:
    """Result of a backend reachability check."""

    ready: bool
    backend: str
    details: dict[str, str] = field(default_factory=dict)
    error: str | None = None


class MemoryBackend(ABC):
    """Keyed read/write of JSON-serialized UserMemory documents."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Backend identifier used in config and logs."""

    @abstractmethod
    def read(self, user_id: str) -> str | None:
        """Return the stored document for user_id, or None if there is none."""

    @abstractmethod
    def write(self, user_id: str, document: str) -> None:
        """Persist the document for user_id, replacing any previous one."""

    @abstractmethod
    def check(self) -> BackendStatus:
        """Verify the backend is reachable and writable."""

    def delete(self, user_id: str) -> bool:
        """Remove a stored document. Backends that cannot delete return False."""
        return False
