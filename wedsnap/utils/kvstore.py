"""Persistent string key-value store for device bookkeeping.

Holds the device identifier and the per-album ``album_<id>_device_<id>``
assignment keys.
"""

import json
import logging
import threading
import uuid
from pathlib import Path

logger = logging.getLogger(__name__)

DEVICE_ID_KEY = "device_id"


def album_key_prefix(album_id: str) -> str:
    return f"album_{album_id}_device_"


def assignment_key(album_id: str, device_id: str) -> str:
    return f"{album_key_prefix(album_id)}{device_id}"


class KeyValueStore:
    """In-memory store; ``FileKeyValueStore`` adds persistence."""

    def __init__(self):
        self._data: dict[str, str] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> str | None:
        with self._lock:
            return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            before = dict(self._data)
            self._data[key] = str(value)
            self._commit(before)

    def remove(self, key: str) -> None:
        with self._lock:
            before = dict(self._data)
            if self._data.pop(key, None) is not None:
                self._commit(before)

    def remove_prefix(self, prefix: str) -> int:
        """Drop every key starting with ``prefix``; returns how many went."""
        with self._lock:
            before = dict(self._data)
            doomed = [k for k in self._data if k.startswith(prefix)]
            for key in doomed:
                del self._data[key]
            if doomed:
                self._commit(before)
            return len(doomed)

    def _commit(self, before: dict[str, str]) -> None:
        # A failed write leaves memory matching what is on disk
        try:
            self._flush()
        except OSError:
            self._data = before
            raise

    def _flush(self) -> None:
        pass


class FileKeyValueStore(KeyValueStore):
    """JSON file backed store, rewritten on every change."""

    def __init__(self, path: Path):
        super().__init__()
        self.path = Path(path)
        if self.path.exists():
            try:
                loaded = json.loads(self.path.read_text() or "{}")
                self._data = {str(k): str(v) for k, v in loaded.items()}
            except ValueError:
                logger.warning("Ignoring unreadable key-value file: %s", self.path)

    def _flush(self) -> None:
        tmp = self.path.with_suffix(".tmp")
        tmp.write_text(json.dumps(self._data))
        tmp.replace(self.path)


def ensure_device_id(store: KeyValueStore) -> str:
    """Return this install's device id, generating one on first use."""
    device_id = store.get(DEVICE_ID_KEY)
    if not device_id:
        device_id = str(uuid.uuid4())
        store.set(DEVICE_ID_KEY, device_id)
    return device_id
