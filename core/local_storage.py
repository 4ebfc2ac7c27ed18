"""
core/local_storage.py

Device-local key/value storage: one JSON document per key inside a
storage directory (the storage scope).

- Reads and writes are synchronous and unlocked across processes.
- Writes are atomic (temp-file -> rename), so readers never see a torn file.
- ``load_json`` never raises: missing or corrupt values degrade to the
  supplied default.
- Optional cross-process watch (watchdog): when another process sharing the
  directory changes a key, ``storage_changed`` is sent on the bus. Changes
  made through this instance are not echoed back, mirroring browser
  ``storage`` events which only fire in *other* tabs.

Usage:
    storage = LocalStorage(STORAGE_DIR)
    storage.save_json("crm:spot:orders", [])
    orders = storage.load_json("crm:spot:orders", [])

    storage.start_watching()   # deliver other-process changes on bus.storage_changed
"""

from __future__ import annotations

import threading
from pathlib import Path
from typing import Any, Optional
from urllib.parse import quote, unquote

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from utils.atomic_persistence import delete_file_safe, dumps_compact, load_json_safe, write_text_atomic
from utils.logger import get_logger
from utils.signal_bus import SignalBus, bus as default_bus

log = get_logger(__name__)

FILE_SUFFIX = ".json"


def key_to_filename(key: str) -> str:
    """Reversible key -> filename mapping ("crm:spot:orders" -> "crm%3Aspot%3Aorders.json")."""
    return quote(key, safe="") + FILE_SUFFIX


def filename_to_key(name: str) -> Optional[str]:
    if not name.endswith(FILE_SUFFIX):
        return None
    return unquote(name[: -len(FILE_SUFFIX)])


class _StorageEventHandler(FileSystemEventHandler):
    """Routes watchdog events for storage files back to the owning LocalStorage."""

    def __init__(self, storage: "LocalStorage"):
        self.storage = storage

    def on_any_event(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            return

        paths = [event.src_path, getattr(event, "dest_path", "")]
        for raw_path in paths:
            if not raw_path:
                continue
            key = filename_to_key(Path(str(raw_path)).name)
            if key is not None:
                self.storage._on_external_change(key)


class LocalStorage:
    """
    JSON-file backed key/value store scoped to one directory.
    """

    def __init__(self, directory: Path | str, bus: Optional[SignalBus] = None):
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)
        self._bus = bus or default_bus
        self._lock = threading.RLock()

        # key -> raw text this process last wrote (None = removed). Used to
        # drop watcher echoes of our own writes.
        self._last_seen: dict[str, Optional[str]] = {}
        self._observer: Optional[Observer] = None

    # ---- Core API ----
    def path_for(self, key: str) -> Path:
        return self.directory / key_to_filename(key)

    def get_item(self, key: str) -> Optional[str]:
        """Return the raw stored text, or None if absent/unreadable."""
        try:
            return self.path_for(key).read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except UnicodeDecodeError as e:
            log.warning("storage.decode_failed", key=key, error=str(e))
            return None
        except OSError as e:
            log.error("storage.read_failed", key=key, error=str(e))
            return None

    def set_item(self, key: str, value: str) -> None:
        """
        Store raw text under key.

        Raises:
            OSError: if the storage directory is not writable
        """
        with self._lock:
            write_text_atomic(value, self.path_for(key))
            self._last_seen[key] = value
        log.debug("storage.set", key=key, size=len(value))

    def remove_item(self, key: str) -> None:
        with self._lock:
            delete_file_safe(self.path_for(key))
            self._last_seen[key] = None
        log.debug("storage.removed", key=key)

    # ---- JSON helpers ----
    def load_json(self, key: str, default: Any = None) -> Any:
        """Parse the stored JSON value; missing or corrupt data yields ``default``."""
        return load_json_safe(self.path_for(key), default=default)

    def save_json(self, key: str, value: Any) -> bool:
        """Best-effort JSON write. Returns False (and logs) on failure."""
        try:
            self.set_item(key, dumps_compact(value))
            return True
        except (OSError, TypeError, ValueError) as e:
            log.error("storage.save_failed", key=key, error=str(e))
            return False

    # ---- Cross-process watch ----
    @property
    def is_watching(self) -> bool:
        return self._observer is not None

    def start_watching(self) -> None:
        """Start a watchdog observer on the storage directory (idempotent)."""
        if self._observer is not None:
            return
        observer = Observer()
        observer.schedule(_StorageEventHandler(self), str(self.directory), recursive=False)
        observer.daemon = True
        observer.start()
        self._observer = observer
        log.info("storage.watch_started", directory=str(self.directory))

    def stop_watching(self) -> None:
        observer = self._observer
        if observer is None:
            return
        self._observer = None
        observer.stop()
        observer.join(timeout=2.0)
        log.info("storage.watch_stopped", directory=str(self.directory))

    def _on_external_change(self, key: str) -> None:
        current = self.get_item(key)
        with self._lock:
            if key in self._last_seen and self._last_seen[key] == current:
                return  # echo of our own write, or already delivered
            self._last_seen[key] = current

        log.debug("storage.external_change", key=key)
        self._bus.storage_changed.send(self, key=key)

    def __enter__(self) -> "LocalStorage":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop_watching()
