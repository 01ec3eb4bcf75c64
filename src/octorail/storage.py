"""
Local state storage.

Each concern (identity, allowlist, history) lives in its own JSON
document. Writes are read-modify-write without locking: one CLI
invocation at a time is assumed.
"""

from __future__ import annotations

import copy
import json
import logging
import os
from pathlib import Path
from typing import Any, Protocol

from .errors import PersistenceError


logger = logging.getLogger(__name__)


def ensure_private_dir(path: Path) -> None:
    path.mkdir(parents=True, exist_ok=True)
    os.chmod(path, 0o700)


class StateStore(Protocol):
    """Named JSON documents with get/set/append semantics."""

    def read(self, name: str, default: Any) -> Any: ...

    def write(self, name: str, value: Any, private: bool = False) -> None: ...

    def append(self, name: str, item: Any) -> None: ...


class JsonFileStore:
    """One pretty-printed JSON file per document under base_dir."""

    def __init__(self, base_dir: Path):
        self.base_dir = base_dir

    def path_for(self, name: str) -> Path:
        return self.base_dir / name

    def read(self, name: str, default: Any) -> Any:
        path = self.path_for(name)
        if not path.exists():
            return copy.deepcopy(default)
        try:
            with open(path, encoding="utf-8") as f:
                return json.load(f)
        except (OSError, ValueError) as e:
            logger.warning("Ignoring unreadable state file %s: %s", path, e)
            return copy.deepcopy(default)

    def write(self, name: str, value: Any, private: bool = False) -> None:
        path = self.path_for(name)
        tmp_path = path.with_suffix(path.suffix + f".tmp.{os.getpid()}")
        try:
            ensure_private_dir(self.base_dir)
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(value, f, indent=2)
                f.flush()
                os.fsync(f.fileno())
            if private:
                os.chmod(tmp_path, 0o600)
            os.replace(tmp_path, path)
        except OSError as e:
            raise PersistenceError(f"Failed to write {path}: {e}") from e

    def append(self, name: str, item: Any) -> None:
        items = self.read(name, [])
        if not isinstance(items, list):
            logger.warning("State file %s is not a list; starting over", self.path_for(name))
            items = []
        items.append(item)
        self.write(name, items)


class MemoryStore:
    """In-memory StateStore for tests and embedding."""

    def __init__(self, initial: dict[str, Any] | None = None):
        self._docs: dict[str, Any] = copy.deepcopy(initial or {})
        self.private: set[str] = set()

    def read(self, name: str, default: Any) -> Any:
        if name not in self._docs:
            return copy.deepcopy(default)
        return copy.deepcopy(self._docs[name])

    def write(self, name: str, value: Any, private: bool = False) -> None:
        self._docs[name] = copy.deepcopy(value)
        if private:
            self.private.add(name)

    def append(self, name: str, item: Any) -> None:
        items = self._docs.get(name)
        if not isinstance(items, list):
            items = []
        items.append(copy.deepcopy(item))
        self._docs[name] = items
