"""
Key-value settings store used for configuration and quota counters.
"""

import fcntl
import json
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Optional
import logging

from ..utils import PersistenceError

logger = logging.getLogger(__name__)


class SettingsStore(ABC):
    """Minimal key -> string store. Writes are immediate (write-through)."""

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """Return the stored value or None."""

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """Persist a value. Raises PersistenceError on failure."""

    @abstractmethod
    def all(self) -> Dict[str, str]:
        """Return a snapshot of every stored key."""


class InMemorySettingsStore(SettingsStore):
    """Process-local store, for tests and throwaway sessions."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            self._data[key] = value

    def all(self) -> Dict[str, str]:
        with self._lock:
            return dict(self._data)


class JsonFileSettingsStore(SettingsStore):
    """
    Settings persisted as a flat JSON object on disk.

    The whole file is read once at construction. Every ``set`` rewrites
    the file under an exclusive ``fcntl`` lock so that two processes
    sharing the file never interleave partial writes.
    """

    def __init__(self, path: str = "data/settings.json"):
        """
        Initialize the store.

        Args:
            path: Location of the JSON settings file
        """
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()
        self._data: Dict[str, str] = self._load()

    def _load(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}

        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                fcntl.flock(f.fileno(), fcntl.LOCK_SH)
                try:
                    data = json.load(f)
                finally:
                    fcntl.flock(f.fileno(), fcntl.LOCK_UN)
        except (json.JSONDecodeError, IOError) as e:
            logger.warning(f"Failed to load settings from {self.path}, starting empty: {e}")
            return {}

        if not isinstance(data, dict):
            logger.warning(f"Settings file {self.path} is not a JSON object, ignoring it")
            return {}

        return {str(k): str(v) for k, v in data.items() if v is not None}

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            previous = self._data.get(key)
            self._data[key] = value
            try:
                self._write()
            except IOError as e:
                # keep memory and disk consistent with each other
                if previous is None:
                    self._data.pop(key, None)
                else:
                    self._data[key] = previous
                raise PersistenceError(f"Failed to save setting {key}: {e}") from e

        shown = value if len(value) <= 50 else value[:50] + "..."
        logger.debug(f"Setting saved: {key} = {shown}")

    def _write(self) -> None:
        with open(self.path, 'a+', encoding='utf-8') as f:
            fcntl.flock(f.fileno(), fcntl.LOCK_EX)
            try:
                f.seek(0)
                f.truncate()
                json.dump(self._data, f, indent=2, sort_keys=True)
                f.flush()
            finally:
                fcntl.flock(f.fileno(), fcntl.LOCK_UN)

    def all(self) -> Dict[str, str]:
        with self._lock:
            return dict(self._data)
