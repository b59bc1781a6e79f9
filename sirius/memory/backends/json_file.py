"""
JSON File Backend

Stores each user's memory as ``<user_id>.json`` inside a directory.
Writes go to a temporary sibling first and are moved into place, so a
crash mid-write leaves the previous document intact.
"""

from __future__ import annotations

import os
import re
from pathlib import Path

from .base import BackendStatus, MemoryBackend


_SAFE_ID = re.compile(r"[^A-Za-z0-9_.@-]")


class JsonFileBackend(MemoryBackend):
    def __init__(self, directory: Path | str):
        self.directory = Path(directory)

    @property
    def name(self) -> str:
        return "json"

    def _path(self, user_id: str) -> Path:
        return self.directory / f"{_SAFE_ID.sub('_', user_id)}.json"

    def read(self, user_id: str) -> str | None:
        path = self._path(user_id)
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8")

    def write(self, user_id: str, document: str) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        path = self._path(user_id)
        tmp_path = path.with_suffix(".json.tmp")
        tmp_path.write_text(document, encoding="utf-8")
        os.replace(tmp_path, path)

    def delete(self, user_id: str) -> bool:
        path = self._path(user_id)
        if path.exists():
            path.unlink()
            return True
        return False

    def check(self) -> BackendStatus:
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            return BackendStatus(ready=False, backend=self.name, error=str(e))

        if not os.access(self.directory, os.W_OK):
            return BackendStatus(
                ready=False,
                backend=self.name,
                error=f"Directory not writable: {self.directory}",
            )

        return BackendStatus(ready=True, backend=self.name, details={"directory": str(self.directory)})
