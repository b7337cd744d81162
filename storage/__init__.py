"""
storage: Snapshot persistence port
===================================

A single injected store loads and saves the World snapshot and the
best-controller snapshot.  Core logic never touches files directly;
orchestrators receive a :class:`WorldStore` and call it.

Modules
-------
record
    :class:`SnapshotRecord` envelope written around every payload.
store
    :class:`WorldStore` interface, :class:`JsonFileStore`,
    :class:`MemoryStore`, :class:`SnapshotError`.
metrics
    :class:`StoreMetrics` counter snapshot.
utils
    Atomic JSON write and tolerant JSON read.
"""

from .record import SnapshotRecord
from .store import JsonFileStore, MemoryStore, SnapshotError, WorldStore
from .metrics import StoreMetrics
from .utils import atomic_write_json, read_json

__all__ = [
    "SnapshotRecord",
    "WorldStore",
    "JsonFileStore",
    "MemoryStore",
    "SnapshotError",
    "StoreMetrics",
    "atomic_write_json",
    "read_json",
]
