#!/usr/bin/env python3
"""
Quick demo: builds a small road network with Start / Target markings,
a traffic light and a few obstacles, then trains in the Pygame view.
Snapshots live in memory only, so nothing is written to disk.

Usage:
    python3 demo.py [--population N] [--seed S]
"""

import argparse
import logging
from dataclasses import replace

import config
from geometry import Point, Segment
from logging_setup import setup_logging
from ml.trainer import TrainerPolicy
from sim.graph import Graph
from sim.markings import MarkingKind
from sim.obstacles import Obstacle, ObstacleKind
from sim.sim_bridge import SimBridge
from sim.world import World
from storage import MemoryStore


def build_demo_world(seed: int = 7) -> World:
    """A 1200 x 800 ring road split by a north-south avenue."""
    corners = [Point(0, 0), Point(1200, 0), Point(1200, 800), Point(0, 800)]
    top_mid, bottom_mid = Point(600, 0), Point(600, 800)

    graph = Graph()
    ring = [corners[0], top_mid, corners[1], corners[2], bottom_mid, corners[3]]
    for a, b in zip(ring, ring[1:] + ring[:1]):
        graph.try_add_segment(Segment(a, b))
    graph.try_add_segment(Segment(top_mid, bottom_mid))

    world = World(graph, seed=seed)
    world.snap_marking(MarkingKind.START, Point(100, 790))
    world.snap_marking(MarkingKind.TARGET, Point(1100, 10))
    world.snap_marking(MarkingKind.LIGHT, Point(590, 60))
    world.snap_marking(MarkingKind.LIGHT, Point(540, 10))
    world.add_obstacle(Obstacle(Point(300, 820), kind=ObstacleKind.POTHOLE))
    world.add_obstacle(Obstacle(Point(1210, 400), kind=ObstacleKind.COW))
    return world


def main() -> None:
    parser = argparse.ArgumentParser(description="Driving world demo.")
    parser.add_argument("--population", type=int, default=50)
    parser.add_argument("--seed", type=int, default=7)
    args = parser.parse_args()

    setup_logging(logging.INFO)
    bridge = SimBridge(
        world=build_demo_world(args.seed),
        store=MemoryStore(),
        trainer_policy=replace(TrainerPolicy(), population=max(1, args.population)),
        steps_per_frame=config.STEPS_PER_FRAME,
        seed=args.seed,
    )

    from ui import run_pygame_view

    run_pygame_view(bridge, width=config.WINDOW_WIDTH, height=config.WINDOW_HEIGHT,
                    fps=config.TARGET_FPS)


if __name__ == "__main__":
    main()
