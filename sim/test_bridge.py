#!/usr/bin/env python3
"""
Frame-driven orchestration tests for :class:`sim.sim_bridge.SimBridge`.
"""

from __future__ import annotations

import unittest

from geometry import Point, Segment
from ml.trainer import TrainerPolicy
from sim.graph import Graph
from sim.sim_bridge import SimBridge
from sim.world import World, load_world, save_world
from storage import MemoryStore, SnapshotError

POLICY = TrainerPolicy(population=4, hidden_neurons=3, elite_count=1, max_generation_ticks=5)


def pending_world() -> World:
    graph = Graph(segments=[Segment(Point(0, 0), Point(800, 0))])
    return World(graph, seed=4, autogenerate=False)


class SimBridgeTests(unittest.TestCase):
    def test_generation_runs_before_training(self) -> None:
        bridge = SimBridge(world=pending_world(), trainer_policy=POLICY, seed=4)
        bridge.step()
        status = bridge.get_status()
        self.assertEqual(status["phase"], "generating")
        self.assertIsNotNone(status["progress"])
        self.assertEqual(bridge.get_vehicles(), [])

    def test_runs_to_generation_cap_and_saves_leader(self) -> None:
        store = MemoryStore()
        bridge = SimBridge(
            world=pending_world(), store=store, trainer_policy=POLICY, generations=2, seed=4
        )
        for _ in range(500):
            if bridge.is_finished():
                break
            bridge.step()
        self.assertTrue(bridge.is_finished())
        self.assertEqual(bridge.trainer.generation, 2)
        self.assertEqual(len(bridge.history), 2)
        self.assertIsNotNone(store.load_controller())
        self.assertIsNone(bridge.get_status()["error"])

    def test_vehicle_view_marks_the_followed_car(self) -> None:
        bridge = SimBridge(world=pending_world(), trainer_policy=POLICY, seed=4)
        for _ in range(500):
            bridge.step()
            if bridge.trainer.tick > 0:
                break
        vehicles = bridge.get_vehicles()
        self.assertEqual(len(vehicles), POLICY.population)
        best = [v for v in vehicles if v["best"]]
        self.assertEqual(len(best), 1)
        self.assertEqual(len(best[0]["rays"]), 5)
        self.assertTrue(all("color" in v and "polygon" in v for v in vehicles))

    def test_pause_freezes_the_simulation(self) -> None:
        bridge = SimBridge(world=pending_world(), trainer_policy=POLICY, seed=4)
        bridge.set_paused(True)
        for _ in range(5):
            bridge.step()
        self.assertTrue(bridge.world.needs_generation())
        self.assertEqual(bridge.get_status()["phase"], "paused")

    def test_stop_and_reset(self) -> None:
        bridge = SimBridge(world=pending_world(), trainer_policy=POLICY, seed=4)
        for _ in range(20):
            bridge.step()
        bridge.stop()
        self.assertTrue(bridge.is_finished())
        bridge.reset()
        self.assertFalse(bridge.is_finished())
        self.assertEqual(bridge.trainer.generation, 0)

    def test_loads_world_from_store(self) -> None:
        store = MemoryStore()
        save_world(pending_world(), store)
        bridge = SimBridge(store=store, trainer_policy=POLICY)
        self.assertIsNone(bridge.load_error)
        self.assertEqual(len(bridge.world.graph.segments), 1)
        self.assertIsNotNone(bridge.save())

    def test_corrupt_store_is_reported(self) -> None:
        store = MemoryStore()
        store.put_raw("world", "garbage")
        bridge = SimBridge(store=store, trainer_policy=POLICY)
        self.assertIsNotNone(bridge.get_status()["error"])
        self.assertEqual(bridge.world.graph.points, [])

    def test_unedited_fallback_world_keeps_the_corrupt_snapshot(self) -> None:
        store = MemoryStore()
        store.put_raw("world", "{\"kind\": \"world\", \"payl")
        world, error = load_world(store)
        bridge = SimBridge(world=world, store=store, trainer_policy=POLICY, load_error=error)
        self.assertEqual(bridge.get_status()["error"], error)
        bridge.stop()
        self.assertIsNone(bridge.save())
        self.assertEqual(store.metrics.saved, 0)
        with self.assertRaises(SnapshotError):
            store.load_world()

    def test_edited_fallback_world_is_saved(self) -> None:
        store = MemoryStore()
        store.put_raw("world", "garbage")
        bridge = SimBridge(store=store, trainer_policy=POLICY)
        bridge.world.graph.try_add_segment(Segment(Point(0, 0), Point(500, 0)))
        self.assertIsNotNone(bridge.save())
        world, error = load_world(store)
        self.assertIsNone(error)
        self.assertEqual(len(world.graph.segments), 1)

    def test_empty_world_stops_with_an_error(self) -> None:
        bridge = SimBridge(world=World(), trainer_policy=POLICY)
        for _ in range(3):
            bridge.step()
        self.assertTrue(bridge.is_finished())
        self.assertIsNotNone(bridge.get_status()["error"])


if __name__ == "__main__":
    unittest.main()
