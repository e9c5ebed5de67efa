"""Key/value storage for session-scoped and durable state.

Created: 2026-10-06

Two backends share one small interface:

- ``MemoryStorage`` lives as long as the process (the "session").
- ``FileStorage`` persists to a single JSON file (the "local" store).

Values must be JSON-serializable. Reads return deep copies so callers never
mutate stored state by accident.
"""

from __future__ import annotations

import copy
import json
import logging
import os
import stat
from pathlib import Path
from typing import Any, Protocol

logger = logging.getLogger(__name__)


class KeyValueStorage(Protocol):
    def get(self, key: str, default: Any = None) -> Any: ...

    def set(self, key: str, value: Any) -> None: ...

    def remove(self, key: str) -> None: ...

    def keys(self) -> list[str]: ...

    def clear(self) -> None: ...


class MemoryStorage:
    """Process-lifetime storage."""

    def __init__(self) -> None:
        self._data: dict[str, Any] = {}

    def get(self, key: str, default: Any = None) -> Any:
        if key not in self._data:
            return default
        return copy.deepcopy(self._data[key])

    def set(self, key: str, value: Any) -> None:
        # Round-trip through JSON so both backends accept the same values
        self._data[key] = json.loads(json.dumps(value))

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._data)

    def clear(self) -> None:
        self._data.clear()


class FileStorage:
    """Durable storage in one JSON file.

    The file is chmod 0600 (owner-only read/write) and written atomically
    via a temp file + rename.
    """

    def __init__(self, path: Path | None = None):
        if path is None:
            from authflow.config import get_config_dir

            path = get_config_dir() / "local_storage.json"
        self.path = path
        self._data: dict[str, Any] = self._load()

    def _load(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError) as e:
            logger.warning("Failed to load storage from %s: %s", self.path, e)
            return {}
        if not isinstance(data, dict):
            logger.warning("Ignoring malformed storage file %s", self.path)
            return {}
        return data

    def _flush(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        temp_path = self.path.with_suffix(".tmp")
        temp_path.write_text(json.dumps(self._data, indent=2, ensure_ascii=False), encoding="utf-8")
        os.chmod(temp_path, stat.S_IRUSR | stat.S_IWUSR)
        temp_path.replace(self.path)

    def get(self, key: str, default: Any = None) -> Any:
        if key not in self._data:
            return default
        return copy.deepcopy(self._data[key])

    def set(self, key: str, value: Any) -> None:
        self._data[key] = json.loads(json.dumps(value))
        self._flush()

    def remove(self, key: str) -> None:
        if key in self._data:
            del self._data[key]
            self._flush()

    def keys(self) -> list[str]:
        return list(self._data)

    def clear(self) -> None:
        self._data.clear()
        self._flush()
