#!/usr/bin/env python3
"""
Evolutionary trainer tests: generation boundaries, persistence of the
leader, cancellation and stored-controller seeding.
"""

from __future__ import annotations

import os
import tempfile
import unittest
from dataclasses import replace

import numpy as np
import pandas as pd

from geometry import Point, Segment
from ml.fitness import FitnessPolicy, score
from ml.network import NeuralNetwork
from ml.trainer import EvolutionaryTrainer, TrainerPolicy, TrainerState, TrainingError
from sim.car import DamageType
from sim.graph import Graph
from sim.markings import Marking, MarkingKind
from sim.world import World
from storage import MemoryStore

POLICY = TrainerPolicy(
    population=6,
    hidden_neurons=3,
    elite_count=2,
    max_generation_ticks=50,
    spawn_jitter=0.0,
)


def training_world() -> World:
    world = World(Graph(segments=[Segment(Point(0, 0), Point(1000, 0))]), seed=5)
    world.add_marking(Marking(MarkingKind.START, Point(500, -20), Point(1, 0), 50, 50))
    world.add_marking(Marking(MarkingKind.TARGET, Point(900, -20), Point(1, 0), 50, 50))
    return world


def crash_everyone(trainer: EvolutionaryTrainer) -> None:
    for car in trainer.cars:
        car.mark_damaged(DamageType.COLLISION)


class GenerationBoundaryTests(unittest.TestCase):
    def setUp(self) -> None:
        self.store = MemoryStore()
        self.trainer = EvolutionaryTrainer(training_world(), store=self.store, policy=POLICY, seed=1)
        self.trainer.start()

    def test_start_spawns_population_on_route(self) -> None:
        trainer = self.trainer
        self.assertIs(trainer.state, TrainerState.RUNNING)
        self.assertEqual(len(trainer.cars), POLICY.population)
        self.assertEqual(trainer.route.start, Point(500, -20))
        self.assertEqual(trainer.route.target, Point(900, -20))
        for car in trainer.cars:
            self.assertEqual((car.x, car.y), (500, -20))
        self.assertEqual(trainer.neuron_counts, [5, 3, 4])

    def test_no_live_agents_ends_the_generation(self) -> None:
        trainer = self.trainer
        old = list(trainer.brains)
        crash_everyone(trainer)

        self.assertTrue(trainer.step())
        self.assertEqual(trainer.generation, 1)
        self.assertIs(trainer.state, TrainerState.RUNNING)
        self.assertEqual(len(trainer.brains), POLICY.population)
        self.assertEqual(len(trainer.cars), POLICY.population)
        self.assertEqual(trainer.active_count, POLICY.population)
        self.assertEqual(trainer.tick, 0)
        self.assertEqual(len(trainer.last_fitness), POLICY.population)

        # Equal scores keep the original ranking: the elites are copied unmutated.
        for i in range(POLICY.elite_count):
            self.assertTrue(trainer.brains[i].equals(old[i]))
            self.assertIsNot(trainer.brains[i], old[i])

        stats = trainer.history.generations[0]
        self.assertEqual(stats.collision, POLICY.population)
        self.assertEqual(stats.population, POLICY.population)
        self.assertFalse(stats.timed_out)

    def test_completed_generation_saves_the_leader(self) -> None:
        crash_everyone(self.trainer)
        self.trainer.step()
        record = self.store.load_controller()
        self.assertIsNotNone(record)
        self.assertEqual(record["generation"], 1)
        leader = NeuralNetwork.from_dict(record)
        self.assertTrue(leader.equals(self.trainer.best_brain))

    def test_stop_mid_generation_does_not_persist(self) -> None:
        for _ in range(10):
            self.trainer.step()
        self.trainer.stop()
        self.assertIs(self.trainer.state, TrainerState.STOPPED)
        self.assertFalse(self.trainer.step())
        self.assertIsNone(self.store.load_controller())
        self.assertEqual(self.store.metrics.saved, 0)
        self.assertEqual(len(self.trainer.history), 0)

    def test_tick_cap_ends_the_generation(self) -> None:
        trainer = self.trainer
        for _ in range(POLICY.max_generation_ticks):
            trainer.step()
        self.assertEqual(trainer.generation, 1)
        stats = trainer.history.generations[0]
        self.assertLessEqual(stats.ticks, POLICY.max_generation_ticks)

    def test_best_car_is_an_active_car(self) -> None:
        trainer = self.trainer
        trainer.cars[0].mark_damaged(DamageType.OFF_ROAD)
        self.assertIsNot(trainer.best_car(), trainer.cars[0])


class StagnationTests(unittest.TestCase):
    def test_cars_without_progress_are_stopped(self) -> None:
        policy = replace(POLICY, stagnation_ticks=3, min_progress=1000.0)
        trainer = EvolutionaryTrainer(training_world(), policy=policy, seed=2)
        trainer.start()
        for _ in range(4):
            trainer.step()
        self.assertEqual(trainer.generation, 1)
        stats = trainer.history.generations[0]
        self.assertEqual(stats.stagnation, policy.population)
        self.assertEqual(stats.ticks, 4)


class RouteTests(unittest.TestCase):
    def test_route_falls_back_to_graph_points(self) -> None:
        world = World(Graph(segments=[Segment(Point(0, 0), Point(1000, 0))]), seed=5)
        trainer = EvolutionaryTrainer(world, policy=POLICY, seed=1)
        trainer.start()
        self.assertEqual(trainer.route.direction, Point(1.0, 0.0))
        self.assertEqual(trainer.route.start, Point(0.0, -POLICY.lane_offset))
        self.assertEqual(trainer.route.target, Point(1000, 0))

    def test_policy_rejects_an_empty_population(self) -> None:
        with self.assertRaises(ValueError):
            TrainerPolicy(population=0)
        with self.assertRaises(ValueError):
            replace(POLICY, elite_count=-1)

    def test_empty_world_cannot_train(self) -> None:
        trainer = EvolutionaryTrainer(World(), policy=POLICY)
        with self.assertRaises(TrainingError):
            trainer.start()


class SeedingTests(unittest.TestCase):
    def test_first_generation_seeds_from_stored_leader(self) -> None:
        store = MemoryStore()
        leader = NeuralNetwork([5, 3, 4], np.random.default_rng(9))
        store.save_controller(leader.as_dict())

        trainer = EvolutionaryTrainer(training_world(), store=store, policy=POLICY, seed=1)
        trainer.start()
        self.assertTrue(trainer.brains[0].equals(leader))
        self.assertTrue(any(not b.equals(leader) for b in trainer.brains[1:]))
        for brain in trainer.brains:
            self.assertIsNot(brain, leader)

    def test_mismatched_layout_is_ignored(self) -> None:
        store = MemoryStore()
        store.save_controller(NeuralNetwork([3, 2, 4]).as_dict())
        trainer = EvolutionaryTrainer(training_world(), store=store, policy=POLICY, seed=1)
        trainer.start()
        self.assertEqual(trainer.brains[0].neuron_counts, [5, 3, 4])

    def test_corrupt_controller_starts_fresh(self) -> None:
        store = MemoryStore()
        store.put_raw("controller", "[[[")
        trainer = EvolutionaryTrainer(training_world(), store=store, policy=POLICY, seed=1)
        trainer.start()
        self.assertEqual(len(trainer.brains), POLICY.population)
        self.assertEqual(store.metrics.failures, 1)


class HistoryTests(unittest.TestCase):
    def test_run_records_every_generation(self) -> None:
        policy = replace(POLICY, max_generation_ticks=5)
        trainer = EvolutionaryTrainer(training_world(), policy=policy, seed=3)
        history = trainer.run(3)
        self.assertEqual(trainer.generation, 3)
        self.assertEqual(len(history), 3)

        frame = history.to_frame()
        self.assertEqual(list(frame.index), [0, 1, 2])
        self.assertIn("best_fitness", frame.columns)
        self.assertGreaterEqual(history.best().best_fitness, frame["mean_fitness"].min())

        with tempfile.TemporaryDirectory() as tmp:
            path = history.save_csv(os.path.join(tmp, "out", "history.csv"))
            loaded = pd.read_csv(path, index_col="generation")
        self.assertEqual(len(loaded), 3)


class FitnessTests(unittest.TestCase):
    def test_more_progress_scores_higher(self) -> None:
        self.assertGreater(score(400, 100, False, False), score(400, 300, False, False))
        self.assertEqual(score(400, 500, False, False), 0.0)

    def test_reaching_and_damage(self) -> None:
        policy = FitnessPolicy()
        reached = score(400, 10, False, True, policy)
        self.assertAlmostEqual(reached, 390 + policy.reach_bonus)
        self.assertLess(score(400, 100, True, False), score(400, 100, False, False))
        self.assertGreaterEqual(score(400, 100, True, False), 0.0)


if __name__ == "__main__":
    unittest.main()
