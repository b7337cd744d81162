#!/usr/bin/env python3
"""
Snapshot store tests for the file and in-memory backends.
"""

from __future__ import annotations

import os
import tempfile
import unittest

from storage import JsonFileStore, MemoryStore, SnapshotError, SnapshotRecord, atomic_write_json


class JsonFileStoreTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self._tmp.cleanup)
        self.store = JsonFileStore(os.path.join(self._tmp.name, "saves"))

    def test_missing_snapshot_loads_as_none(self) -> None:
        self.assertIsNone(self.store.load_world())
        self.assertIsNone(self.store.load_controller())
        self.assertEqual(self.store.metrics.report()["missing"], 2)

    def test_round_trip_creates_directory(self) -> None:
        payload = {"graph": {"points": [{"x": 1.5, "y": 2.0}], "segments": []}}
        record_id = self.store.save_world(payload)
        self.assertTrue(os.path.exists(self.store.path_for("world")))
        self.assertTrue(record_id)
        self.assertEqual(self.store.load_world(), payload)
        self.assertEqual(
            self.store.metrics.report(),
            {"saved": 1, "loaded": 1, "missing": 0, "failures": 0},
        )

    def test_corrupt_file_raises_snapshot_error(self) -> None:
        os.makedirs(self.store.directory)
        with open(self.store.path_for("world"), "w", encoding="utf-8") as fh:
            fh.write("{\"kind\": \"world\", \"payl")
        with self.assertRaises(SnapshotError):
            self.store.load_world()
        self.assertEqual(self.store.metrics.failures, 1)

    def test_record_without_payload_is_corrupt(self) -> None:
        atomic_write_json(self.store.path_for("controller"), {"kind": "controller"})
        with self.assertRaises(SnapshotError):
            self.store.load_controller()

    def test_record_of_the_wrong_kind_is_rejected(self) -> None:
        record = SnapshotRecord(kind="controller", payload={"levels": []})
        atomic_write_json(self.store.path_for("world"), record.as_dict())
        with self.assertRaises(SnapshotError):
            self.store.load_world()

    def test_unserialisable_payload_raises_on_save(self) -> None:
        with self.assertRaises(SnapshotError):
            self.store.save_controller({"levels": object()})
        self.assertFalse(os.path.exists(self.store.path_for("controller")))
        self.assertEqual(os.listdir(self.store.directory), [])

    def test_clear_controller(self) -> None:
        self.store.save_controller({"levels": []})
        self.store.clear_controller()
        self.assertIsNone(self.store.load_controller())
        self.store.clear_controller()


class MemoryStoreTests(unittest.TestCase):
    def test_saved_payload_is_not_aliased(self) -> None:
        store = MemoryStore()
        payload = {"levels": [1, 2, 3]}
        store.save_controller(payload)
        payload["levels"].append(4)
        self.assertEqual(store.load_controller(), {"levels": [1, 2, 3]})

    def test_raw_corruption_is_reported(self) -> None:
        store = MemoryStore()
        store.put_raw("world", "not json at all")
        with self.assertRaises(SnapshotError):
            store.load_world()
        store.put_raw("world", "{\"kind\": \"world\", \"payload\": [1, 2]}")
        with self.assertRaises(SnapshotError):
            store.load_world()
        self.assertEqual(store.metrics.failures, 2)


if __name__ == "__main__":
    unittest.main()
