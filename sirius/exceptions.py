"""Exception hierarchy shared by the memory, learning and automation packages."""


class SiriusError(Exception):
    """Base class for all errors raised by the adaptive core."""


class MemoryBackendError(SiriusError):
    """The persistence backend cannot be reached or initialised."""


class OffloadUnavailable(SiriusError):
    """A worker offload could not run the task (disabled, saturated, timed out or failed)."""


class ActionTimeoutError(SiriusError):
    """An autonomous action exceeded its configured timeout."""

    def __init__(self, title: str, timeout_ms: int):
        super().__init__(f"Action '{title}' timed out after {timeout_ms}ms")
        self.title = title
        self.timeout_ms = timeout_ms


__all__ = [
    "ActionTimeoutError",
    "MemoryBackendError",
    "OffloadUnavailable",
    "SiriusError",
]
