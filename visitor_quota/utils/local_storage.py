"""Durable client-local key/value storage backed by a JSON file.

Holds the fallback visitor id so repeated fallback resolutions on the same
device return the same value. Thread-safe; writes go through a temporary
file and an atomic rename.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from pathlib import Path

logger = logging.getLogger(__name__)


class JsonFileStorage:
    """Small string-to-string storage persisted in one JSON document.

    Errors reading or writing the file raise ``OSError``; a corrupt document
    (invalid JSON or not UTF-8) is treated as empty.
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path).expanduser()
        self._lock = threading.RLock()

    @property
    def path(self) -> Path:
        return self._path

    def _read_all(self) -> dict[str, str]:
        try:
            raw = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        except UnicodeDecodeError:
            logger.warning("local_storage.corrupt", extra={"file_name": self._path.name, "reason": "encoding"})
            return {}

        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("local_storage.corrupt", extra={"file_name": self._path.name})
            return {}

        if not isinstance(data, dict):
            return {}
        return {str(k): v for k, v in data.items() if isinstance(v, str)}

    def get_item(self, key: str) -> str | None:
        with self._lock:
            return self._read_all().get(key)

    def set_item(self, key: str, value: str) -> None:
        """Persist ``value`` under ``key``.

        Raises:
            OSError: If the directory or file cannot be written.
        """
        with self._lock:
            data = self._read_all()
            data[key] = value
            self._path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self._path.parent, prefix=".visitor-", suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    json.dump(data, handle)
                os.replace(tmp_name, self._path)
            except OSError:
                Path(tmp_name).unlink(missing_ok=True)
                raise
