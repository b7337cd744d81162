#!/usr/bin/env python3
"""
World tests: generation, derived-data invariants, markings, lights and
snapshot round trips through a store.
"""

from __future__ import annotations

import itertools
import json
import math
import random
import unittest
from dataclasses import replace
from typing import Optional

import config
from geometry import EPSILON, Point, Polygon, Segment, exhaust
from sim.generator import tree_steps
from sim.graph import Graph
from sim.items import Building
from sim.policy import GenerationPolicy
from sim.markings import LightState, Marking, MarkingKind
from sim.obstacles import Obstacle, ObstacleKind
from sim.world import World, load_world, save_world
from storage import MemoryStore, SnapshotRecord

SEGMENT = Segment(Point(0, 0), Point(1000, 0))


def straight_world(seed: int = 3) -> World:
    return World(Graph(segments=[SEGMENT]), road_width=100, seed=seed)


def cross_world() -> World:
    hub = Point(0, 0)
    arms = [Point(600, 0), Point(-600, 0), Point(0, 600), Point(0, -600)]
    return World(Graph(segments=[Segment(hub, arm) for arm in arms]), seed=1)


class GenerationTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls) -> None:
        cls.world = straight_world()

    def test_single_segment_borders_sit_at_half_width(self) -> None:
        world = self.world
        self.assertEqual(len(world.envelopes), 1)
        self.assertGreater(len(world.road_borders), 0)
        for seg in world.road_borders:
            for p in (seg.p1, seg.p2):
                self.assertAlmostEqual(SEGMENT.distance_to_point(p), 50.0, places=6)

    def test_on_road_query(self) -> None:
        self.assertTrue(self.world.is_on_road(Point(500, 0)))
        self.assertTrue(self.world.is_on_road(Point(500, 45)))
        self.assertFalse(self.world.is_on_road(Point(500, 80)))

    def test_buildings_keep_their_distance(self) -> None:
        buildings = self.world.buildings
        for a, b in itertools.combinations(buildings, 2):
            self.assertFalse(a.base.intersects_poly(b.base))
            self.assertGreaterEqual(
                a.base.distance_to_poly(b.base), self.world.spacing - EPSILON
            )
        for b in buildings:
            self.assertFalse(b.base.intersects_poly(self.world.envelopes[0].poly))

    def test_trees_keep_their_distance(self) -> None:
        trees = self.world.trees
        min_gap = self.world.tree_size * 0.6
        for a, b in itertools.combinations(trees, 2):
            self.assertGreaterEqual(
                math.hypot(a.center.x - b.center.x, a.center.y - b.center.y), min_gap
            )
        for tree in trees:
            self.assertFalse(self.world.is_on_road(tree.center))
            for building in self.world.buildings:
                self.assertFalse(building.base.contains_point(tree.center))

    def test_lane_guides_sit_at_quarter_width(self) -> None:
        self.assertGreater(len(self.world.lane_guides), 0)
        for seg in self.world.lane_guides:
            self.assertAlmostEqual(SEGMENT.distance_to_point(seg.p1), 25.0, places=6)

    def test_generate_is_idempotent(self) -> None:
        world = straight_world()
        borders = list(world.road_borders)
        trees = list(world.trees)
        self.assertFalse(world.needs_generation())
        self.assertFalse(world.generate())
        self.assertEqual(world.road_borders, borders)
        self.assertEqual(world.trees, trees)

    def test_same_seed_regenerates_same_scenery(self) -> None:
        a = straight_world(seed=11)
        b = straight_world(seed=11)
        self.assertEqual([t.center for t in a.trees], [t.center for t in b.trees])
        self.assertEqual(len(a.buildings), len(b.buildings))

    def test_graph_change_triggers_clean_regeneration(self) -> None:
        world = straight_world()
        extra = Segment(Point(1000, 0), Point(1000, 800))
        world.graph.try_add_segment(extra)
        self.assertTrue(world.needs_generation())
        self.assertTrue(world.generate())
        self.assertEqual(len(world.envelopes), 2)

        world.graph.remove_segment(extra)
        self.assertTrue(world.generate())
        self.assertEqual(len(world.envelopes), 1)
        self.assertTrue(all(not world.is_on_road(t.center) for t in world.trees))

    def test_empty_world_generates_nothing(self) -> None:
        world = World()
        world.generate()
        self.assertEqual(world.road_borders, [])
        self.assertEqual(world.buildings, [])
        self.assertEqual(world.trees, [])

    def test_chunked_generation_reports_progress(self) -> None:
        world = World(Graph(segments=[SEGMENT]), seed=3, autogenerate=False)
        phases = [p.phase for p in world.generate_steps()]
        self.assertIn("road_borders", phases)
        self.assertFalse(world.needs_generation())
        self.assertEqual(list(world.generate_steps()), [])


BRANCH_POINTS = [Point(0, 0), Point(800, 0), Point(800, 700), Point(1500, -300)]

DEGRADED = replace(
    GenerationPolicy(),
    road_union_limit=0,
    building_union_limit=0,
    lane_guide_limit=0,
    tree_simplified_limit=0,
    chunk_size=3,
)


def branching_world(policy: Optional[GenerationPolicy] = None) -> World:
    a, b, c, d = BRANCH_POINTS
    graph = Graph(segments=[Segment(a, b), Segment(b, c), Segment(b, d)])
    return World(graph, road_width=100, seed=7, policy=policy)


class BranchingGenerationTests(unittest.TestCase):
    """Scenery invariants on a three-way junction with the full-fidelity algorithms."""

    policy: Optional[GenerationPolicy] = None

    @classmethod
    def setUpClass(cls) -> None:
        cls.world = branching_world(cls.policy)

    def test_segment_midpoints_lie_inside_the_borders(self) -> None:
        world = self.world
        self.assertGreater(len(world.road_borders), 0)
        for seg in world.graph.segments:
            mid = seg.midpoint()
            self.assertTrue(world.is_on_road(mid))
            clearance = min(b.distance_to_point(mid) for b in world.road_borders)
            self.assertGreaterEqual(clearance, world.road_width / 2 - 1e-6)

    def test_buildings_keep_their_distance(self) -> None:
        buildings = self.world.buildings
        self.assertGreater(len(buildings), 0)
        for a, b in itertools.combinations(buildings, 2):
            self.assertFalse(a.base.intersects_poly(b.base))
            self.assertGreaterEqual(
                a.base.distance_to_poly(b.base), self.world.spacing - EPSILON
            )

    def test_trees_keep_their_distance(self) -> None:
        trees = self.world.trees
        min_gap = self.world.tree_size * 0.6
        for a, b in itertools.combinations(trees, 2):
            self.assertGreaterEqual(
                math.hypot(a.center.x - b.center.x, a.center.y - b.center.y), min_gap
            )
        for tree in trees:
            for building in self.world.buildings:
                self.assertFalse(building.base.contains_point(tree.center))

    def test_lane_guides_exist_for_every_arm(self) -> None:
        self.assertGreater(len(self.world.lane_guides), 0)

    def test_regeneration_is_reproducible(self) -> None:
        again = branching_world(self.policy)
        self.assertEqual(again.road_borders, self.world.road_borders)
        self.assertEqual([t.center for t in again.trees], [t.center for t in self.world.trees])


class DegradedBranchingGenerationTests(BranchingGenerationTests):
    """Same invariants with every size threshold forcing the shortcut paths."""

    policy = DEGRADED

    def test_borders_are_raw_envelope_edges(self) -> None:
        edges = sum(len(e.poly.segments) for e in self.world.envelopes)
        self.assertEqual(len(self.world.road_borders), edges)


class GridTreeSamplerTests(unittest.TestCase):
    def test_sampled_area_is_capped_around_the_roads(self) -> None:
        borders = [
            Segment(Point(0, 0), Point(100000, 0)),
            Segment(Point(0, 2000), Point(100000, 2000)),
        ]
        far = Polygon([Point(-1e6, -1e6), Point(-1e6 + 50, -1e6), Point(-1e6, -1e6 + 50)])
        buildings = [Building(far) for _ in range(20)]
        policy = replace(
            GenerationPolicy(),
            tree_simplified_limit=0,
            tree_grid_fill_chance=1.0,
            tree_grid_max_extent=1000.0,
        )
        trees = exhaust(tree_steps(borders, buildings, [], 160.0, policy, random.Random(2)))
        self.assertGreater(len(trees), 0)
        self.assertLessEqual(len(trees), len(buildings) // 10)
        # A 1000 x 1000 window centred on the roads, covered by 2 x 2 cells of 640.
        for tree in trees:
            self.assertTrue(49500 <= tree.center.x <= 49500 + 2 * 640)
            self.assertTrue(500 <= tree.center.y <= 500 + 2 * 640)


class MarkingTests(unittest.TestCase):
    def setUp(self) -> None:
        self.world = straight_world()

    def test_new_start_replaces_previous_start(self) -> None:
        first = Marking(MarkingKind.START, Point(100, 0), Point(1, 0), 50, 50)
        second = Marking(MarkingKind.START, Point(200, 0), Point(1, 0), 50, 50)
        self.world.add_marking(first)
        self.world.add_marking(Marking(MarkingKind.STOP, Point(300, 0), Point(1, 0), 50, 50))
        self.world.add_marking(second)
        self.assertIs(self.world.start_marking(), second)
        self.assertEqual(len(self.world.markings), 2)

    def test_duplicate_targets_use_the_first(self) -> None:
        first = Marking(MarkingKind.TARGET, Point(100, 0), Point(1, 0), 50, 50)
        second = Marking(MarkingKind.TARGET, Point(200, 0), Point(1, 0), 50, 50)
        self.world.markings = [first, second]
        self.assertIs(self.world.target_marking(), first)

    def test_snap_marking_lands_on_a_lane_guide(self) -> None:
        marking = self.world.snap_marking(MarkingKind.START, Point(500, 40))
        self.assertIsNotNone(marking)
        self.assertAlmostEqual(marking.center.x, 500.0, places=6)
        self.assertAlmostEqual(abs(marking.center.y), 25.0, places=6)
        self.assertAlmostEqual(math.hypot(marking.direction.x, marking.direction.y), 1.0)

    def test_crossing_spans_the_centre_line(self) -> None:
        marking = self.world.snap_marking(MarkingKind.CROSSING, Point(400, 30))
        self.assertAlmostEqual(marking.center.x, 400.0, places=6)
        self.assertAlmostEqual(marking.center.y, 0.0, places=6)
        self.assertEqual(marking.width, self.world.road_width)

    def test_snap_outside_threshold_returns_none(self) -> None:
        self.assertIsNone(
            self.world.snap_marking(MarkingKind.STOP, Point(500, 900), threshold=10)
        )
        self.assertEqual(self.world.markings, [])

    def test_only_lights_carry_state(self) -> None:
        light = Marking(MarkingKind.LIGHT, Point(0, 0), Point(0, -1), 50, 50)
        stop = Marking(MarkingKind.STOP, Point(0, 0), Point(0, -1), 50, 50,
                       light_state=LightState.GREEN)
        self.assertIs(light.light_state, LightState.OFF)
        self.assertIsNone(stop.light_state)
        self.assertIs(MarkingKind.parse("unknown-kind"), MarkingKind.GENERIC)

    def test_remove_marking_and_obstacle(self) -> None:
        marking = self.world.snap_marking(MarkingKind.YIELD, Point(200, 10))
        obstacle = Obstacle(Point(600, 0), kind=ObstacleKind.COW)
        self.world.add_obstacle(obstacle)
        self.assertTrue(self.world.remove_marking(marking))
        self.assertFalse(self.world.remove_marking(marking))
        self.assertTrue(self.world.remove_obstacle(obstacle))
        self.assertEqual(self.world.obstacles, [])

    def test_obstacles_are_perceived(self) -> None:
        base = len(self.world.perception_edges())
        self.world.add_obstacle(Obstacle(Point(600, 0), 40, 40, ObstacleKind.POTHOLE))
        self.assertEqual(len(self.world.perception_edges()), base + 4)
        self.assertEqual(len(self.world.traffic_polygons()), 1)


class LightTests(unittest.TestCase):
    def test_one_light_per_intersection_is_not_red(self) -> None:
        world = cross_world()
        self.assertEqual(world.intersections(), [Point(0, 0)])
        lights = [
            Marking(MarkingKind.LIGHT, Point(60, 25), Point(-1, 0), 50, 20),
            Marking(MarkingKind.LIGHT, Point(-25, 60), Point(0, -1), 50, 20),
        ]
        for light in lights:
            world.add_marking(light)

        cycle_frames = (config.LIGHT_GREEN_TICKS + config.LIGHT_YELLOW_TICKS) * config.LIGHT_FRAMES_PER_TICK
        seen_active = set()
        for _ in range(cycle_frames * 2 + 5):
            world.update_lights()
            not_red = [i for i, m in enumerate(lights) if m.light_state is not LightState.RED]
            self.assertEqual(len(not_red), 1)
            seen_active.update(not_red)
        self.assertEqual(seen_active, {0, 1})

    def test_yellow_follows_green(self) -> None:
        world = cross_world()
        light = Marking(MarkingKind.LIGHT, Point(60, 25), Point(-1, 0), 50, 20)
        world.add_marking(light)
        world.update_lights()
        self.assertIs(light.light_state, LightState.GREEN)
        world.frame_count = config.LIGHT_GREEN_TICKS * config.LIGHT_FRAMES_PER_TICK
        world.update_lights()
        self.assertIs(light.light_state, LightState.YELLOW)


class SnapshotTests(unittest.TestCase):
    def setUp(self) -> None:
        self.world = straight_world()
        self.world.snap_marking(MarkingKind.START, Point(100, 20))
        self.world.snap_marking(MarkingKind.LIGHT, Point(800, 20))
        self.world.add_obstacle(Obstacle(Point(500, 0), kind=ObstacleKind.DEBRIS))

    def _through_json(self, data: dict) -> dict:
        return json.loads(json.dumps(data))

    def test_full_snapshot_round_trip(self) -> None:
        data = self._through_json(self.world.as_dict())
        again = World.from_dict(data, seed=3)
        self.assertFalse(again.needs_generation())
        self.assertEqual(again.graph.segments, self.world.graph.segments)
        self.assertEqual(again.road_borders, self.world.road_borders)
        self.assertEqual(len(again.buildings), len(self.world.buildings))
        self.assertEqual([t.center for t in again.trees], [t.center for t in self.world.trees])
        self.assertEqual(again.markings, self.world.markings)
        self.assertEqual(again.obstacles, self.world.obstacles)
        self.assertEqual(again.road_width, self.world.road_width)

    def test_optimized_snapshot_regenerates(self) -> None:
        data = self._through_json(self.world.as_dict(optimized=True))
        self.assertNotIn("road_borders", data)
        again = World.from_dict(data, seed=3)
        self.assertEqual(again.road_borders, self.world.road_borders)
        self.assertEqual([t.center for t in again.trees], [t.center for t in self.world.trees])

    def test_unreadable_derived_data_regenerates(self) -> None:
        data = self._through_json(self.world.as_dict())
        data["envelopes"] = [{"nonsense": True}]
        again = World.from_dict(data, seed=3)
        self.assertEqual(len(again.envelopes), 1)
        self.assertEqual(again.road_borders, self.world.road_borders)

    def test_missing_parameters_take_defaults(self) -> None:
        again = World.from_dict({"graph": self.world.graph.as_dict(), "road_width": -5})
        self.assertEqual(again.road_width, config.DEFAULT_ROAD_WIDTH)
        self.assertEqual(again.tree_size, config.DEFAULT_TREE_SIZE)

    def test_malformed_markings_are_skipped(self) -> None:
        data = self._through_json(self.world.as_dict(optimized=True))
        data["markings"].append({"type": "stop"})
        again = World.from_dict(data)
        self.assertEqual(len(again.markings), 2)

    def test_store_round_trip(self) -> None:
        store = MemoryStore()
        save_world(self.world, store)
        loaded, error = load_world(store, seed=3)
        self.assertIsNone(error)
        self.assertEqual(loaded.graph.segments, self.world.graph.segments)
        self.assertEqual(len(loaded.markings), 2)
        self.assertEqual(store.metrics.report()["saved"], 1)

    def test_missing_snapshot_is_an_empty_world(self) -> None:
        world, error = load_world(MemoryStore())
        self.assertIsNone(error)
        self.assertEqual(world.graph.points, [])

    def test_corrupt_snapshot_falls_back_to_empty_world(self) -> None:
        store = MemoryStore()
        store.put_raw("world", "{not json")
        world, error = load_world(store)
        self.assertIsNotNone(error)
        self.assertEqual(world.graph.segments, [])

    def test_malformed_payload_falls_back_to_empty_world(self) -> None:
        store = MemoryStore()
        record = SnapshotRecord(kind="world", payload={"graph": 5})
        store.put_raw("world", json.dumps(record.as_dict()))
        world, error = load_world(store)
        self.assertIsNotNone(error)
        self.assertEqual(world.graph.segments, [])


if __name__ == "__main__":
    unittest.main()
