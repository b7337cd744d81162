#!/usr/bin/env python3
"""
sim/policy.py
=============
Tunable generation, kinematics and perception parameters.  Every
constant lives in a frozen dataclass so that experiments can swap
policies without touching code.

* :class:`GenerationPolicy`: size thresholds for the degraded
  generation paths, sampling attempt caps and chunking.
* :class:`CarPolicy`: agent size and kinematic increments.
* :class:`SensorPolicy`: ray fan layout.
"""

from __future__ import annotations

import math
from dataclasses import dataclass


@dataclass(frozen=True)
class GenerationPolicy:
    """Immutable bag of world-generator knobs.

    The size thresholds are performance switches, not correctness
    contracts: above them the generator takes a bounded shortcut instead
    of the full-fidelity algorithm.
    """

    # ── Large-input thresholds ────────────────────────────────────────────
    road_union_limit: int = 2000
    """Above this many envelopes, road borders are the raw envelope edges."""

    building_union_limit: int = 2000
    """Above this many guide envelopes, building guides skip the union."""

    lane_guide_limit: int = 2000
    """Above this many segments, lane guides skip the union."""

    tree_simplified_limit: int = 2000
    """Above this many buildings, trees use the grid sampler."""

    # ── Building packing ──────────────────────────────────────────────────
    building_fit_ratio: float = 0.8
    """A footprint shorter than this fraction of the minimum length triggers a retry."""

    building_height: float = 200.0
    """Visual height assigned to every generated building."""

    # ── Tree sampling ─────────────────────────────────────────────────────
    tree_max_attempts: int = 2000
    """Total rejection-sampling attempts."""

    tree_max_consecutive_failures: int = 300
    """Stop after this many rejections in a row."""

    tree_seed_count: int = 10
    """The "close to something" rule is waived until this many trees exist."""

    tree_height: float = 200.0
    """Visual height assigned to every generated tree."""

    tree_simplified_max: int = 500
    """Hard cap on trees placed by the grid sampler."""

    tree_grid_max_cells: int = 50
    """Grid sampler columns / rows cap."""

    tree_grid_max_extent: float = 50000.0
    """Width and height cap of the area the grid sampler covers, centred on the roads."""

    tree_grid_fill_chance: float = 0.3
    """Probability that a grid cell receives a tree."""

    tree_grid_building_samples: int = 50
    """Buildings sampled per candidate by the grid sampler."""

    # ── Cooperative scheduling ────────────────────────────────────────────
    chunk_size: int = 250
    """Items processed between two yield points of :meth:`World.generate_steps`."""


@dataclass(frozen=True)
class CarPolicy:
    """Agent footprint and kinematic increments (per tick)."""

    width: float = 30.0
    """Car width in world units."""

    height: float = 50.0
    """Car length in world units."""

    acceleration: float = 0.2
    """Speed gained per tick while a throttle control is held."""

    max_speed: float = 3.0
    """Forward speed cap.  Reverse is capped at half of it."""

    friction: float = 0.05
    """Speed lost per tick towards zero."""

    steer_rate: float = 0.03
    """Heading change (radians) per tick while turning and moving."""


@dataclass(frozen=True)
class SensorPolicy:
    """Ray fan layout centred on the agent heading."""

    ray_count: int = 5
    """Number of rays (also the controller input count)."""

    ray_length: float = 150.0
    """Length of every ray in world units."""

    ray_spread: float = math.pi / 2
    """Angle between the outermost rays (radians)."""
