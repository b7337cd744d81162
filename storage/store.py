"""
WorldStore: Persistence port for World and controller snapshots.

Implementations:
    - JsonFileStore: one JSON file per snapshot family in a directory
    - MemoryStore: keeps records in a dict (tests, demos)

Both wrap payloads in a SnapshotRecord and surface unreadable or corrupt
records as SnapshotError.  A snapshot that was never saved is not an
error: loads return None.
"""

import json
import logging
import os
from typing import Any, Dict, Optional

from .metrics import StoreMetrics
from .record import SnapshotRecord
from .utils import atomic_write_json, read_json

log = logging.getLogger(__name__)

WORLD = "world"
CONTROLLER = "controller"


class SnapshotError(Exception):
    """Raised when a stored snapshot exists but cannot be read or written."""


class WorldStore:
    """
    Interface shared by every snapshot store.

    Subclasses implement _read, _write and _delete; this base class adds
    record wrapping, validation and metrics.
    """

    def __init__(self):
        self.metrics = StoreMetrics()

    # ---------- Public API ----------
    def load_world(self) -> Optional[Dict[str, Any]]:
        """
        Load the World snapshot payload.

        Returns:
            Optional[dict]: The payload, or None if nothing was saved.

        Raises:
            SnapshotError: If the stored record is unreadable or corrupt.
        """
        return self._load(WORLD)

    def save_world(self, payload: Dict[str, Any]) -> str:
        """
        Save the World snapshot payload.

        Args:
            payload (dict): Output of World.as_dict().

        Returns:
            str: The id of the written record.
        """
        return self._save(WORLD, payload)

    def load_controller(self) -> Optional[Dict[str, Any]]:
        """Load the best-controller payload, or None if nothing was saved."""
        return self._load(CONTROLLER)

    def save_controller(self, payload: Dict[str, Any]) -> str:
        """Save the best-controller payload."""
        return self._save(CONTROLLER, payload)

    def clear_controller(self) -> None:
        """Forget the stored controller so the next run starts fresh."""
        self._delete(CONTROLLER)
        log.info("Controller snapshot cleared")

    # ---------- Record handling ----------
    def _load(self, kind: str) -> Optional[Dict[str, Any]]:
        try:
            raw = self._read(kind)
        except (OSError, ValueError) as exc:
            self.metrics.failures += 1
            raise SnapshotError(f"cannot read {kind} snapshot: {exc}") from exc
        if raw is None:
            self.metrics.missing += 1
            return None
        try:
            record = SnapshotRecord.from_dict(raw)
        except (KeyError, TypeError, ValueError) as exc:
            self.metrics.failures += 1
            raise SnapshotError(f"corrupt {kind} snapshot: {exc}") from exc
        if record.kind != kind:
            self.metrics.failures += 1
            raise SnapshotError(f"expected a {kind} snapshot, found {record.kind!r}")
        self.metrics.loaded += 1
        log.debug("Loaded %s snapshot %s", kind, record.id)
        return record.payload

    def _save(self, kind: str, payload: Dict[str, Any]) -> str:
        record = SnapshotRecord(kind=kind, payload=payload)
        try:
            self._write(kind, record.as_dict())
        except (OSError, TypeError, ValueError) as exc:
            self.metrics.failures += 1
            raise SnapshotError(f"cannot write {kind} snapshot: {exc}") from exc
        self.metrics.saved += 1
        log.debug("Saved %s snapshot %s", kind, record.id)
        return record.id

    # ---------- Backend hooks ----------
    def _read(self, kind: str) -> Optional[Any]:
        raise NotImplementedError

    def _write(self, kind: str, data: Dict[str, Any]) -> None:
        raise NotImplementedError

    def _delete(self, kind: str) -> None:
        raise NotImplementedError


class JsonFileStore(WorldStore):
    """
    Stores each snapshot family as '<directory>/<kind>.json'.

    Attributes:
        directory (str): Folder holding the snapshot files.
    """

    def __init__(self, directory: str):
        super().__init__()
        self.directory = directory

    def path_for(self, kind: str) -> str:
        return os.path.join(self.directory, f"{kind}.json")

    def _read(self, kind: str) -> Optional[Any]:
        return read_json(self.path_for(kind))

    def _write(self, kind: str, data: Dict[str, Any]) -> None:
        atomic_write_json(self.path_for(kind), data)

    def _delete(self, kind: str) -> None:
        path = self.path_for(kind)
        if os.path.exists(path):
            os.remove(path)


class MemoryStore(WorldStore):
    """
    Keeps serialised records in memory.

    Records are stored as JSON text so that saving and loading behave like
    the file store (no aliasing, same serialisation errors).
    """

    def __init__(self):
        super().__init__()
        self._records: Dict[str, str] = {}

    def put_raw(self, kind: str, text: str) -> None:
        """Store arbitrary text under *kind* (used to simulate corruption)."""
        self._records[kind] = text

    def _read(self, kind: str) -> Optional[Any]:
        text = self._records.get(kind)
        if text is None:
            return None
        return json.loads(text)

    def _write(self, kind: str, data: Dict[str, Any]) -> None:
        self._records[kind] = json.dumps(data)

    def _delete(self, kind: str) -> None:
        self._records.pop(kind, None)
