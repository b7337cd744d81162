"""
sim/sim_bridge.py
=================
Cooperative orchestrator tying :mod:`sim.world`, the
:class:`~ml.trainer.EvolutionaryTrainer` and a
:class:`~storage.WorldStore` together.  There are no threads: the host
loop (the pygame view or a headless driver) calls :meth:`SimBridge.step`
once per frame and the bridge advances whatever is pending by one
bounded slice:

1. one chunk of world generation while derived data is out of date;
2. otherwise ``steps_per_frame`` trainer ticks plus one traffic-light frame.

Public API consumed by :mod:`ui.pygame_view`
--------------------------------------------
* ``step()``                 → ``None``
* ``get_vehicles()``         → ``List[dict]``
* ``get_world_draw_data()``  → ``dict``
* ``get_status()``           → ``dict``
* ``is_finished()``          → ``bool``
* ``reset()``                → ``None``
* ``set_paused(bool)``       → ``None``
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Generator, List, Optional, Sequence, Tuple

from ml.history import TrainingHistory
from ml.trainer import EvolutionaryTrainer, TrainerPolicy, TrainerState, TrainingError
from storage import SnapshotError, WorldStore

from .generator import GenerationProgress
from .world import World, load_world, save_world

log = logging.getLogger("sim_bridge")

# Vehicle palette (same order as ViewConstants.DEFAULT_VEHICLE_COLORS)
_VEHICLE_COLORS: Sequence[Tuple[int, int, int]] = (
    (86, 168, 255),
    (255, 88, 88),
    (100, 226, 170),
    (246, 191, 90),
    (180, 120, 255),
    (255, 160, 100),
)


class SimBridge:
    """Frame-driven orchestrator for the viewer and headless runs.

    Parameters
    ----------
    world : World or None
        World to train in; loaded from *store* (or empty) when omitted.
    store : WorldStore or None
        Persistence port for the world and the leader controller.
    trainer_policy : TrainerPolicy or None
        Population and mutation settings.
    generations : int or None
        Stop after this many completed generations; ``None`` runs until
        :meth:`stop`.
    steps_per_frame : int
        Trainer ticks per :meth:`step` call.
    seed : int or None
        Seed for world generation and the trainer.
    load_error : str or None
        Why a caller-loaded *world* is an empty fallback.  While that
        fallback is unedited, :meth:`save` leaves the stored snapshot alone.
    """

    def __init__(
        self,
        world: Optional[World] = None,
        store: Optional[WorldStore] = None,
        trainer_policy: Optional[TrainerPolicy] = None,
        generations: Optional[int] = None,
        steps_per_frame: int = 1,
        seed: Optional[int] = None,
        load_error: Optional[str] = None,
    ) -> None:
        self.store = store
        self.load_error = load_error
        if world is None:
            if store is not None:
                world, self.load_error = load_world(store, seed=seed)
            else:
                world = World(seed=seed)
        self._world = world
        self._fallback_revision: Optional[int] = (
            world.graph.revision if self.load_error else None
        )
        self._trainer_policy = trainer_policy
        self._generations = generations
        self._steps_per_frame = max(1, int(steps_per_frame))
        self._seed = seed

        self.history = TrainingHistory()
        self._trainer = self._make_trainer()
        self._gen_steps: Optional[Generator[GenerationProgress, None, bool]] = None
        self._progress: Optional[GenerationProgress] = None
        self._paused = False
        self._error: Optional[str] = None

    @property
    def world(self) -> World:
        return self._world

    @property
    def trainer(self) -> EvolutionaryTrainer:
        return self._trainer

    def _make_trainer(self) -> EvolutionaryTrainer:
        return EvolutionaryTrainer(
            self._world,
            store=self.store,
            policy=self._trainer_policy,
            seed=self._seed,
            history=self.history,
        )

    # ── Frame step ────────────────────────────────────────────────────────

    def step(self) -> None:
        """Advance one host frame."""
        if self._paused or self.is_finished():
            return
        try:
            if self._advance_generation():
                return
            self._advance_training()
            self._world.update_lights()
        except Exception:
            log.exception("SimBridge tick error")
            self._error = "tick error, training stopped"
            self._trainer.stop()

    def _advance_generation(self) -> bool:
        """Run one generation chunk; True while generation is in flight."""
        if self._gen_steps is None:
            if not self._world.needs_generation():
                return False
            self._gen_steps = self._world.generate_steps()
        try:
            self._progress = next(self._gen_steps)
        except StopIteration:
            self._gen_steps = None
            self._progress = None
            return False
        return True

    def _advance_training(self) -> None:
        trainer = self._trainer
        if trainer.state is TrainerState.IDLE:
            try:
                trainer.start()
            except TrainingError as exc:
                log.warning("Cannot train: %s", exc)
                self._error = str(exc)
                trainer.stop()
                return
        for _ in range(self._steps_per_frame):
            if not trainer.step():
                break
            if self._generations is not None and trainer.generation >= self._generations:
                trainer.stop()
                log.info("Reached %d generations", self._generations)
                break

    # ── Host API ──────────────────────────────────────────────────────────

    def get_vehicles(self) -> List[Dict[str, Any]]:
        """Car poses for the renderer; the followed car carries its sensor rays."""
        best = self._trainer.best_car()
        vehicles = []
        for i, car in enumerate(self._trainer.cars):
            data = car.as_dict()
            data["color"] = _VEHICLE_COLORS[i % len(_VEHICLE_COLORS)]
            data["best"] = car is best
            if car is best:
                data["rays"] = [
                    (ray.p1.as_tuple(), ray.p2.as_tuple(),
                     None if hit is None else (hit.x, hit.y))
                    for ray, hit in zip(car.sensor.rays, car.sensor.readings)
                ]
            vehicles.append(data)
        return vehicles

    def get_world_draw_data(self) -> Dict[str, Any]:
        return self._world.draw_data()

    def get_status(self) -> Dict[str, Any]:
        trainer = self._trainer
        if self._gen_steps is not None:
            phase = "generating"
        elif self._paused:
            phase = "paused"
        else:
            phase = trainer.state.value
        progress = self._progress
        return {
            "phase": phase,
            "generation": trainer.generation,
            "tick": trainer.tick,
            "active": trainer.active_count,
            "population": len(trainer.cars),
            "best_fitness": trainer.best_fitness if trainer.best_brain is not None else None,
            "progress": (progress.phase, progress.done, progress.total) if progress else None,
            "error": self._error or self.load_error,
            "store": self.store.metrics.report() if self.store is not None else None,
        }

    def is_finished(self) -> bool:
        """True once training stopped (generation cap, cancellation or error)."""
        return self._trainer.state is TrainerState.STOPPED

    def reset(self) -> None:
        """Discard the population and restart training from the stored leader."""
        self._trainer.stop()
        self._trainer = self._make_trainer()
        self._error = None
        log.info("SimBridge reset")

    def set_paused(self, paused: bool) -> None:
        self._paused = paused

    def stop(self) -> None:
        """Cancel training at the current tick."""
        self._trainer.stop()

    def save(self) -> Optional[str]:
        """Persist the world (optimized); returns the record id or ``None``.

        An unedited fallback world is never written over the unreadable
        snapshot it replaced.
        """
        if self.store is None:
            return None
        if self._fallback_revision == self._world.graph.revision:
            log.warning("Keeping unreadable world snapshot, nothing edited: %s", self.load_error)
            return None
        try:
            return save_world(self._world, self.store)
        except SnapshotError as exc:
            log.warning("Could not save world: %s", exc)
            self._error = str(exc)
            return None
