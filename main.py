#!/usr/bin/env python3
"""
main.py
=======
Command-line entry point.

Loads the stored world (or imports an OpenStreetMap JSON file), then
either trains headless for a fixed number of generations or opens the
pygame viewer.  Defaults come from :mod:`config`; the environment
variables ``DRIVINGWORLD_STORE_DIR``, ``DRIVINGWORLD_POPULATION`` and
``DRIVINGWORLD_SEED`` override them, and flags override both.

Usage::

    python main.py --headless --generations 10
    python main.py --osm city.json --population 50
"""

import argparse
import json
import logging
import os
import sys
from dataclasses import replace
from typing import List, Optional

import config
from logging_setup import setup_logging
from ml.trainer import EvolutionaryTrainer, TrainerPolicy, TrainingError
from sim.osm import parse_roads
from sim.world import World, load_world, save_world
from storage import JsonFileStore

project_root = os.path.abspath(os.path.dirname(__file__))


def _env_int(name: str) -> Optional[int]:
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return None
    try:
        return int(raw)
    except ValueError:
        logging.getLogger("main").warning("Ignoring non-integer %s=%r", name, raw)
        return None


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="2D driving world with neuroevolution.")
    parser.add_argument("--headless", action="store_true", help="train without opening a window")
    parser.add_argument("--generations", type=int, default=None,
                        help=f"generations to train (default {config.DEFAULT_GENERATIONS} headless, "
                             "unlimited in the viewer)")
    parser.add_argument("--population", type=int, default=None)
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("--store-dir", default=None, help="snapshot directory")
    parser.add_argument("--osm", default=None, help="import roads from an Overpass JSON file")
    parser.add_argument("--reset-controller", action="store_true",
                        help="forget the stored leader before training")
    parser.add_argument("--steps-per-frame", type=int, default=config.STEPS_PER_FRAME)
    parser.add_argument("--log-level", default="INFO")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(getattr(logging, str(args.log_level).upper(), logging.INFO))
    log = logging.getLogger("main")

    store_dir = (
        args.store_dir
        or os.environ.get("DRIVINGWORLD_STORE_DIR")
        or os.path.join(project_root, config.STORE_REL_DIR)
    )
    population = args.population or _env_int("DRIVINGWORLD_POPULATION") or config.DEFAULT_POPULATION
    seed = args.seed if args.seed is not None else _env_int("DRIVINGWORLD_SEED")
    policy = replace(TrainerPolicy(), population=max(1, population))

    store = JsonFileStore(store_dir)
    if args.reset_controller:
        store.clear_controller()

    error: Optional[str] = None
    if args.osm:
        with open(args.osm, "r", encoding="utf-8") as f:
            graph = parse_roads(json.load(f))
        world = World(graph, seed=seed)
        save_world(world, store)
    else:
        world, error = load_world(store, seed=seed)
        if error:
            log.warning("Started with an empty world: %s", error)

    if args.headless:
        generations = args.generations or config.DEFAULT_GENERATIONS
        trainer = EvolutionaryTrainer(world, store=store, policy=policy, seed=seed)
        try:
            history = trainer.run(generations)
        except TrainingError as exc:
            log.error("Cannot train: %s", exc)
            return 1
        except KeyboardInterrupt:
            trainer.stop()
            log.info("Interrupted, stored leader kept from the last completed generation")
            history = trainer.history
        if len(history):
            history.save_csv(os.path.join(store_dir, config.HISTORY_CSV_NAME))
        log.info("Store activity: %s", store.metrics.report())
        return 0

    from sim.sim_bridge import SimBridge
    from ui import run_pygame_view

    bridge = SimBridge(
        world=world,
        store=store,
        trainer_policy=policy,
        generations=args.generations,
        steps_per_frame=args.steps_per_frame,
        seed=seed,
        load_error=error,
    )
    try:
        run_pygame_view(bridge, width=config.WINDOW_WIDTH, height=config.WINDOW_HEIGHT,
                        fps=config.TARGET_FPS)
    except KeyboardInterrupt:
        log.info("Shutting down...")
    finally:
        bridge.stop()
        bridge.save()
        if len(bridge.history):
            bridge.history.save_csv(os.path.join(store_dir, config.HISTORY_CSV_NAME))
    return 0


if __name__ == "__main__":
    sys.exit(main())
