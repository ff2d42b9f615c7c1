"""Key-value persistence adapters for quota counters.

Purpose of this abstraction:
    Mirror the browser `localStorage` contract (string keys, string values,
    immediate writes) so `QuotaStore` can persist after every transition
    without knowing where the values live.

Adapters:
    - `JsonFileStorage`: one JSON object file, rewritten on every `set_item`.
    - `MemoryStorage`: process-local dict, used by tests and ephemeral sessions.
"""

import json
import logging
import os
import threading


logger = logging.getLogger(__name__)


class MemoryStorage:
    """In-process key-value storage with string values."""

    def __init__(self, initial=None):
        self._items = {str(k): str(v) for k, v in (initial or {}).items()}

    def get_item(self, key):
        return self._items.get(key)

    def set_item(self, key, value):
        self._items[key] = str(value)

    def items(self):
        return dict(self._items)


class JsonFileStorage:
    """Key-value storage backed by a single JSON object file.

    Input:
        path: File location. Parent directories are created on first write.

    Side effects:
        - Reads the file lazily on first access.
        - Rewrites the whole file on every `set_item`.

    Failure handling:
        A missing or corrupt file reads as empty storage; write errors
        propagate to the caller.
    """

    def __init__(self, path):
        self.path = path
        self._lock = threading.Lock()
        self._items = None

    def _load(self):
        if self._items is not None:
            return self._items

        self._items = {}
        if not os.path.exists(self.path):
            return self._items

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError):
            logger.warning("Quota storage file unreadable, starting empty: %s", self.path)
            return self._items

        if isinstance(data, dict):
            self._items = {str(k): str(v) for k, v in data.items()}
        return self._items

    def get_item(self, key):
        with self._lock:
            return self._load().get(key)

    def set_item(self, key, value):
        with self._lock:
            items = self._load()
            items[key] = str(value)

            directory = os.path.dirname(os.path.abspath(self.path))
            os.makedirs(directory, exist_ok=True)

            with open(self.path, "w", encoding="utf-8") as f:
                json.dump(items, f, indent=2)

    def items(self):
        with self._lock:
            return dict(self._load())
