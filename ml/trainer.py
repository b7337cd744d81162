"""
ml/trainer.py
=============
Generational neuroevolution over :class:`~sim.car.Car` agents.

One generation is a population of cars spawned at the Start marking and
stepped one tick at a time by the host loop.  The generation ends when
no car is active any more or the tick cap is hit; agents are then scored
with :func:`ml.fitness.score`, ranked, and the next population is built
from the leaders:

1. ``elite_count`` leaders are carried over unmutated.
2. The following slots are mutated clones of the elites at escalating
   rates (light, then moderate, then heavy).
3. The last ``random_fraction`` of the population are fresh random
   controllers.

The best controller so far is saved to the injected
:class:`~storage.WorldStore` only when a generation completes, so
:meth:`EvolutionaryTrainer.stop` at any tick leaves the stored leader
untouched.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional

import numpy as np

import config
from geometry import Point
from geometry.ops import distance, normalize
from sim.car import Car, DamageType
from sim.physics import heading_for
from sim.policy import CarPolicy, SensorPolicy
from sim.world import World
from storage import SnapshotError, WorldStore

from .fitness import FitnessPolicy, score
from .history import GenerationStats, TrainingHistory
from .network import NeuralNetwork

log = logging.getLogger("trainer")

OUTPUT_COUNT = 4


class TrainingError(RuntimeError):
    """Raised when a world offers nothing to train on."""


class TrainerState(Enum):
    IDLE = "idle"
    RUNNING = "running"
    ENDING = "ending"
    STOPPED = "stopped"


@dataclass(frozen=True)
class TrainerPolicy:
    """Population layout, mutation schedule and termination limits."""

    population: int = config.DEFAULT_POPULATION
    """Cars per generation."""

    hidden_neurons: int = config.DEFAULT_HIDDEN_NEURONS
    """Width of the single hidden layer."""

    elite_count: int = 5
    """Leaders copied unmutated into the next generation."""

    light_mutation: float = 0.05
    moderate_mutation: float = 0.2
    heavy_mutation: float = 0.5

    light_share: float = 0.25
    """Fraction of the mutated slots that get the light rate."""

    moderate_share: float = 0.5
    """Fraction of the mutated slots that get the moderate rate; the rest are heavy."""

    random_fraction: float = 0.1
    """Fraction of the population replaced by fresh random controllers."""

    seed_mutation: float = 0.1
    """Rate applied to the copies of a stored leader in the first generation."""

    max_generation_ticks: int = 3000
    """Tick cap of a single generation."""

    stagnation_ticks: int = 300
    """Ticks without getting ``min_progress`` closer before a car is stopped."""

    min_progress: float = 1.0

    target_radius: float = 20.0
    """Distance at which a car counts as having reached the target."""

    spawn_jitter: float = 5.0
    """Half-width of the uniform positional jitter applied at spawn."""

    lane_offset: float = 15.0
    """Sideways shift into the driving lane when spawning at a bare graph point."""

    def __post_init__(self) -> None:
        if self.population < 1:
            raise ValueError(f"population must be at least 1, got {self.population}")
        if self.elite_count < 0:
            raise ValueError(f"elite_count must not be negative, got {self.elite_count}")


@dataclass(frozen=True)
class Route:
    start: Point
    direction: Point
    target: Point


class EvolutionaryTrainer:
    """Population-based trainer driven one tick at a time.

    Parameters
    ----------
    world : World
        Generated world; agents collide with its borders and obstacles.
    store : WorldStore or None
        Persistence port for the leader controller.  ``None`` disables
        seeding and saving.
    policy : TrainerPolicy or None
    car_policy, sensor_policy : optional
        Agent kinematics and ray layout.
    fitness : FitnessPolicy or None
    seed : int or None
        Seeds the numpy generator for weights, mutation and spawn jitter.
    history : TrainingHistory or None
        Receives one :class:`GenerationStats` per completed generation.
    """

    def __init__(
        self,
        world: World,
        store: Optional[WorldStore] = None,
        policy: Optional[TrainerPolicy] = None,
        car_policy: Optional[CarPolicy] = None,
        sensor_policy: Optional[SensorPolicy] = None,
        fitness: Optional[FitnessPolicy] = None,
        seed: Optional[int] = None,
        history: Optional[TrainingHistory] = None,
    ) -> None:
        self.world = world
        self.store = store
        self.policy = policy or TrainerPolicy()
        self.car_policy = car_policy or CarPolicy()
        self.sensor_policy = sensor_policy or SensorPolicy()
        self.fitness_policy = fitness or FitnessPolicy()
        self.rng = np.random.default_rng(seed)
        self.history = history if history is not None else TrainingHistory()

        self.state = TrainerState.IDLE
        self.generation = 0
        self.tick = 0
        self.route: Optional[Route] = None
        self.cars: List[Car] = []
        self.brains: List[NeuralNetwork] = []
        self.best_brain: Optional[NeuralNetwork] = None
        self.best_fitness = -math.inf
        self.last_fitness: List[float] = []

        self._start_distance: List[float] = []
        self._best_distance: List[float] = []
        self._anchor_distance: List[float] = []
        self._last_progress: List[int] = []
        self._stop_requested = False

    def __repr__(self) -> str:
        return (
            f"EvolutionaryTrainer(state={self.state.value}, generation={self.generation}, "
            f"tick={self.tick}, active={self.active_count})"
        )

    @property
    def neuron_counts(self) -> List[int]:
        return [self.sensor_policy.ray_count, self.policy.hidden_neurons, OUTPUT_COUNT]

    @property
    def active_count(self) -> int:
        return sum(1 for c in self.cars if c.active)

    # ── Lifecycle ─────────────────────────────────────────────────────────

    def start(self) -> None:
        """Resolve the route, seed the first population and spawn it.

        Raises
        ------
        TrainingError
            If the world has neither a Start marking nor any road point.
        """
        if self.world.needs_generation():
            self.world.generate()
        self.route = self._resolve_route()
        self.brains = self._initial_population()
        self._stop_requested = False
        self._spawn()
        self.state = TrainerState.RUNNING
        log.info(
            "Training started: population=%d, start=%s, target=%s",
            len(self.brains),
            self.route.start.as_tuple(),
            self.route.target.as_tuple(),
        )

    def stop(self) -> None:
        """Cancel at the current tick; the in-flight generation is discarded."""
        if self.state is TrainerState.RUNNING:
            log.info("Training stopped at generation %d, tick %d", self.generation, self.tick)
        self._stop_requested = True
        self.state = TrainerState.STOPPED

    def reset(self) -> None:
        self.state = TrainerState.IDLE
        self.generation = 0
        self.tick = 0
        self.cars = []
        self.brains = []
        self.best_brain = None
        self.best_fitness = -math.inf
        self.last_fitness = []
        self._stop_requested = False

    def run(self, generations: int) -> TrainingHistory:
        """Run *generations* complete generations synchronously (headless)."""
        if self.state is TrainerState.IDLE:
            self.start()
        goal = self.generation + generations
        while self.state is TrainerState.RUNNING and self.generation < goal:
            self.step()
        return self.history

    # ── Tick ──────────────────────────────────────────────────────────────

    def step(self) -> bool:
        """Advance every active car by one tick.

        Returns ``False`` when the trainer is not running.
        """
        if self.state is not TrainerState.RUNNING:
            return False

        world = self.world
        borders = world.border_edges()
        seen = world.perception_edges()
        traffic = world.traffic_polygons()
        on_road = world.is_on_road if world.envelopes else None
        target = self.route.target
        p = self.policy

        for i, car in enumerate(self.cars):
            if not car.active:
                continue
            car.update(borders, traffic, on_road, seen)
            d = distance(car.position, target)
            if d < self._best_distance[i]:
                self._best_distance[i] = d
            if d <= p.target_radius and not car.damaged:
                car.reached_target = True
                car.speed = 0.0
                continue
            if d < self._anchor_distance[i] - p.min_progress:
                self._anchor_distance[i] = d
                self._last_progress[i] = self.tick
            elif self.tick - self._last_progress[i] >= p.stagnation_ticks:
                car.mark_damaged(DamageType.STAGNATION)

        self.tick += 1
        timed_out = self.tick >= p.max_generation_ticks
        if timed_out or self.active_count == 0:
            self._end_generation(timed_out and self.active_count > 0)
        return True

    # ── Generation boundary ───────────────────────────────────────────────

    def _end_generation(self, timed_out: bool) -> None:
        self.state = TrainerState.ENDING
        fitness = [
            score(
                self._start_distance[i],
                self._best_distance[i],
                car.damaged,
                car.reached_target,
                self.fitness_policy,
            )
            for i, car in enumerate(self.cars)
        ]
        order = sorted(range(len(fitness)), key=lambda i: fitness[i], reverse=True)
        ranked = [self.brains[i] for i in order]
        self.last_fitness = [fitness[i] for i in order]

        leader = order[0]
        if fitness[leader] >= self.best_fitness:
            self.best_fitness = fitness[leader]
            self.best_brain = self.brains[leader].clone()

        stats = self._stats(fitness, timed_out)
        self.history.record(stats)
        log.info(
            "Generation %d done in %d ticks: best=%.1f mean=%.1f reached=%d "
            "off-road=%d collision=%d stagnation=%d%s",
            stats.generation,
            stats.ticks,
            stats.best_fitness,
            stats.mean_fitness,
            stats.reached,
            stats.off_road,
            stats.collision,
            stats.stagnation,
            " (timeout)" if timed_out else "",
        )

        self.generation += 1
        self._persist_best()
        self.brains = self._next_population(ranked)

        if self._stop_requested:
            self.state = TrainerState.STOPPED
            return
        self._spawn()
        self.state = TrainerState.RUNNING

    def _stats(self, fitness: List[float], timed_out: bool) -> GenerationStats:
        causes: Dict[DamageType, int] = {d: 0 for d in DamageType}
        for car in self.cars:
            if car.damage_type is not None:
                causes[car.damage_type] += 1
        return GenerationStats(
            generation=self.generation,
            best_fitness=max(fitness) if fitness else 0.0,
            mean_fitness=float(np.mean(fitness)) if fitness else 0.0,
            ticks=self.tick,
            population=len(self.cars),
            reached=sum(1 for c in self.cars if c.reached_target),
            off_road=causes[DamageType.OFF_ROAD],
            collision=causes[DamageType.COLLISION],
            stagnation=causes[DamageType.STAGNATION],
            timed_out=timed_out,
        )

    def _next_population(self, ranked: List[NeuralNetwork]) -> List[NeuralNetwork]:
        p = self.policy
        size = p.population
        elites = ranked[: max(0, min(p.elite_count, size))]
        if not elites:
            return [self._fresh() for _ in range(size)]

        fresh_count = min(int(round(size * p.random_fraction)), size - len(elites))
        mutated_count = size - len(elites) - fresh_count

        population = [b.clone() for b in elites]
        for k in range(mutated_count):
            child = elites[k % len(elites)].clone()
            child.mutate(self._tier_rate(k, mutated_count), self.rng)
            population.append(child)
        population.extend(self._fresh() for _ in range(fresh_count))
        return population

    def _tier_rate(self, index: int, count: int) -> float:
        p = self.policy
        share = index / count
        if share < p.light_share:
            return p.light_mutation
        if share < p.light_share + p.moderate_share:
            return p.moderate_mutation
        return p.heavy_mutation

    def _fresh(self) -> NeuralNetwork:
        return NeuralNetwork(self.neuron_counts, self.rng)

    # ── Seeding / persistence ─────────────────────────────────────────────

    def _initial_population(self) -> List[NeuralNetwork]:
        size = self.policy.population
        leader = self._load_leader()
        if leader is None:
            return [self._fresh() for _ in range(size)]
        population = [leader]
        for _ in range(size - 1):
            child = leader.clone()
            child.mutate(self.policy.seed_mutation, self.rng)
            population.append(child)
        return population

    def _load_leader(self) -> Optional[NeuralNetwork]:
        if self.store is None:
            return None
        try:
            record = self.store.load_controller()
        except SnapshotError as exc:
            log.warning("Stored controller unreadable, starting fresh: %s", exc)
            return None
        if record is None:
            return None
        try:
            brain = NeuralNetwork.from_dict(record)
        except (KeyError, TypeError, ValueError) as exc:
            log.warning("Stored controller malformed, starting fresh: %s", exc)
            return None
        if brain.neuron_counts != self.neuron_counts:
            log.warning(
                "Stored controller has layout %s, expected %s; starting fresh",
                brain.neuron_counts,
                self.neuron_counts,
            )
            return None
        log.info(
            "Seeded from stored controller (generation %s, fitness %s)",
            record.get("generation"),
            record.get("fitness"),
        )
        return brain

    def _persist_best(self) -> None:
        if self.store is None or self.best_brain is None:
            return
        payload = self.best_brain.as_dict()
        payload["generation"] = self.generation
        payload["fitness"] = self.best_fitness
        try:
            self.store.save_controller(payload)
        except SnapshotError as exc:
            log.warning("Could not save best controller: %s", exc)

    # ── Spawning ──────────────────────────────────────────────────────────

    def _resolve_route(self) -> Route:
        world = self.world
        start_marking = world.start_marking()
        points = world.graph.points

        if start_marking is not None:
            start = start_marking.center
            direction = start_marking.direction
        elif points:
            anchor = points[0]
            direction = Point(0.0, -1.0)
            for seg in world.graph.segments_with_point(anchor):
                other = seg.p2 if seg.p1 == anchor else seg.p1
                direction = normalize(Point(other.x - anchor.x, other.y - anchor.y))
                break
            start = self._lane_shift(anchor, direction)
        else:
            raise TrainingError("world has no Start marking and no road points")

        target_marking = world.target_marking()
        if target_marking is not None:
            target = target_marking.center
        elif points:
            target = points[-1]
        else:
            target = start
        return Route(start, direction, target)

    def _lane_shift(self, point: Point, direction: Point) -> Point:
        # Screen y grows downwards: (dy, -dx) is the left of travel.
        side = 1.0 if self.world.driving_side == "left" else -1.0
        off = self.policy.lane_offset * side
        return Point(point.x + direction.y * off, point.y - direction.x * off)

    def _spawn(self) -> None:
        route = self.route
        heading = heading_for(route.direction)
        jitter = self.policy.spawn_jitter
        offsets = self.rng.uniform(-jitter, jitter, size=(len(self.brains), 2))

        self.cars = []
        for i, brain in enumerate(self.brains):
            dx, dy = offsets[i]
            self.cars.append(Car(
                route.start.x + float(dx),
                route.start.y + float(dy),
                heading,
                brain=brain,
                policy=self.car_policy,
                sensor_policy=self.sensor_policy,
                car_id=f"g{self.generation}-{i}",
            ))

        start_distance = [distance(c.position, route.target) for c in self.cars]
        self._start_distance = list(start_distance)
        self._best_distance = list(start_distance)
        self._anchor_distance = list(start_distance)
        self._last_progress = [0] * len(self.cars)
        self.tick = 0

    # ── Views ─────────────────────────────────────────────────────────────

    def best_car(self) -> Optional[Car]:
        """Active car closest to the target, or the closest overall."""
        if not self.cars:
            return None
        target = self.route.target
        pool = [c for c in self.cars if c.active] or self.cars
        return min(pool, key=lambda c: distance(c.position, target))
