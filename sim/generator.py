#!/usr/bin/env python3
"""
sim/generator.py
================
Phase functions behind :meth:`sim.world.World.generate_steps`.

Each phase is a generator: it yields :class:`GenerationProgress` at
chunk boundaries and *returns* its result, so callers compose phases
with ``result = yield from phase(...)``.  Degenerate primitives are
skipped silently; attempt caps bound the randomised phases.

Phases
------
1. envelopes       – one capsule per graph segment
2. road borders    – union of the envelopes
3. buildings       – packed along unioned wide-envelope guides
4. trees           – rejection sampling around roads and buildings
5. lane guides     – union of half-width envelopes
"""

from __future__ import annotations

import logging
import math
import random
from dataclasses import dataclass
from typing import Dict, Generator, List, Sequence, Tuple, TypeVar

from geometry import (
    DegenerateGeometryError,
    EPSILON,
    Envelope,
    Point,
    Polygon,
    PolygonSet,
    Segment,
)
from geometry.ops import add, lerp, scale
from geometry.polygon import iter_union

from .items import Building, Tree
from .policy import GenerationPolicy

log = logging.getLogger("generator")

T = TypeVar("T")


@dataclass(frozen=True)
class GenerationProgress:
    """Yield-point marker: *done* of *total* items of *phase* processed."""

    phase: str
    done: int
    total: int


Steps = Generator[GenerationProgress, None, T]


def relabel(phase: str, steps: Generator[Tuple[int, int], None, T]) -> Steps[T]:
    """Wrap a ``(done, total)`` generator so it yields progress records."""
    while True:
        try:
            done, total = next(steps)
        except StopIteration as finished:
            return finished.value
        yield GenerationProgress(phase, done, total)


# ── Envelopes / unions ───────────────────────────────────────────────────────


def envelope_steps(
    segments: Sequence[Segment],
    width: float,
    roundness: int,
    chunk_size: int,
    phase: str = "envelopes",
) -> Steps[List[Envelope]]:
    envelopes: List[Envelope] = []
    total = len(segments)
    for i, seg in enumerate(segments):
        try:
            envelopes.append(Envelope(seg, width, roundness))
        except DegenerateGeometryError:
            log.debug("Skipping degenerate segment %s", seg)
        if (i + 1) % chunk_size == 0:
            yield GenerationProgress(phase, i + 1, total)
    return envelopes


def _raw_edges(polys: Sequence[Polygon], chunk_size: int, phase: str) -> Steps[List[Segment]]:
    edges: List[Segment] = []
    for i, poly in enumerate(polys):
        edges.extend(poly.segments)
        if (i + 1) % chunk_size == 0:
            yield GenerationProgress(phase, i + 1, len(polys))
    return edges


def merged_borders(
    envelopes: Sequence[Envelope],
    limit: int,
    chunk_size: int,
    phase: str,
) -> Steps[List[Segment]]:
    """Union of the envelope polygons, or their raw edges above *limit*."""
    polys = [e.poly for e in envelopes]
    if len(polys) > limit:
        log.info(
            "%s: %d envelopes above limit %d, using raw envelope edges",
            phase, len(polys), limit,
        )
        return (yield from _raw_edges(polys, chunk_size, phase))
    return (yield from relabel(phase, iter_union(polys, chunk_size)))


# ── Buildings ────────────────────────────────────────────────────────────────


def pack_supports(
    guide: Segment,
    min_length: float,
    spacing: float,
    fit_ratio: float,
) -> List[Segment]:
    """Split *guide* into evenly sized building spines separated by *spacing*.

    If the even split is shorter than ``min_length * fit_ratio`` one
    building fewer is tried; if that still does not fit, the guide is
    abandoned.
    """
    length = guide.length()
    if length < min_length:
        return []

    count = max(1, math.floor(length / (min_length + spacing)))
    building_length = (length - (count - 1) * spacing) / count
    if building_length < min_length * fit_ratio:
        count = max(1, count - 1)
        building_length = (length - (count - 1) * spacing) / count
        if building_length < min_length * fit_ratio:
            return []

    direction = guide.direction_vector()
    supports: List[Segment] = []
    q1 = guide.p1
    for _ in range(count):
        q2 = add(q1, scale(direction, building_length))
        supports.append(Segment(q1, q2))
        q1 = add(q2, scale(direction, spacing))
    return supports


def reject_overlaps(
    bases: Sequence[Polygon],
    spacing: float,
    chunk_size: int,
) -> Steps[List[Polygon]]:
    """Keep footprints that neither touch nor come within *spacing* of an earlier keeper.

    Candidates are processed in order; the first accepted footprint wins.
    A uniform grid limits each test to footprints whose bounding boxes
    are within *spacing*, which gives the same result as the all-pairs
    scan.
    """
    accepted: List[Polygon] = []
    if not bases:
        return accepted

    extent = max(max(b.bbox[2] - b.bbox[0], b.bbox[3] - b.bbox[1]) for b in bases)
    cell = max(extent + spacing, EPSILON)
    grid: Dict[Tuple[int, int], List[int]] = {}

    def cells(poly: Polygon, margin: float) -> List[Tuple[int, int]]:
        min_x, min_y, max_x, max_y = poly.bbox
        return [
            (cx, cy)
            for cx in range(math.floor((min_x - margin) / cell), math.floor((max_x + margin) / cell) + 1)
            for cy in range(math.floor((min_y - margin) / cell), math.floor((max_y + margin) / cell) + 1)
        ]

    for i, base in enumerate(bases):
        neighbours = {j for c in cells(base, spacing) for j in grid.get(c, ())}
        clash = False
        for j in sorted(neighbours):
            other = accepted[j]
            if not base.bbox_overlaps(other, margin=spacing):
                continue
            if base.intersects_poly(other) or base.distance_to_poly(other) < spacing - EPSILON:
                clash = True
                break
        if not clash:
            idx = len(accepted)
            accepted.append(base)
            for c in cells(base, 0.0):
                grid.setdefault(c, []).append(idx)
        if (i + 1) % chunk_size == 0:
            yield GenerationProgress("building_overlaps", i + 1, len(bases))

    return accepted


def building_steps(
    segments: Sequence[Segment],
    road_width: float,
    road_roundness: int,
    building_width: float,
    building_min_length: float,
    spacing: float,
    policy: GenerationPolicy,
) -> Steps[List[Building]]:
    chunk = policy.chunk_size
    guide_width = road_width + building_width + spacing * 4
    envelopes = yield from envelope_steps(
        segments, guide_width, road_roundness, chunk, "building_envelopes"
    )
    guides = yield from merged_borders(
        envelopes, policy.building_union_limit, chunk, "building_guides"
    )
    guides = [g for g in guides if g.length() >= building_min_length]

    bases: List[Polygon] = []
    for guide in guides:
        for support in pack_supports(
            guide, building_min_length, spacing, policy.building_fit_ratio
        ):
            try:
                bases.append(Envelope(support, building_width).poly)
            except DegenerateGeometryError:
                continue
    log.debug("%d guides produced %d building candidates", len(guides), len(bases))

    kept = yield from reject_overlaps(bases, spacing, chunk)
    return [Building(base, policy.building_height) for base in kept]


# ── Trees ────────────────────────────────────────────────────────────────────


def _bounds(points: Sequence[Point]) -> Tuple[float, float, float, float]:
    xs = [p.x for p in points]
    ys = [p.y for p in points]
    return min(xs), max(xs), min(ys), max(ys)


def tree_steps(
    road_borders: Sequence[Segment],
    buildings: Sequence[Building],
    envelopes: Sequence[Envelope],
    tree_size: float,
    policy: GenerationPolicy,
    rng: random.Random,
) -> Steps[List[Tree]]:
    """Rejection-sample trees around roads and buildings."""
    if len(buildings) > policy.tree_simplified_limit:
        log.info(
            "trees: %d buildings above limit %d, using grid sampler",
            len(buildings), policy.tree_simplified_limit,
        )
        return (yield from _grid_tree_steps(road_borders, buildings, tree_size, policy, rng))

    points = [p for s in road_borders for p in (s.p1, s.p2)]
    points += [p for b in buildings for p in b.base.points]
    if not points:
        return []
    left, right, top, bottom = _bounds(points)

    illegal = PolygonSet([b.base for b in buildings] + [e.poly for e in envelopes])
    min_clearance = tree_size / 3
    min_gap = tree_size * 0.6
    near_radius = tree_size * 2

    trees: List[Tree] = []
    tries = 0
    failures = 0
    while tries < policy.tree_max_attempts and failures < policy.tree_max_consecutive_failures:
        p = Point(lerp(left, right, rng.random()), lerp(top, bottom, rng.random()))
        tries += 1

        clearance = illegal.distance(p)
        keep = clearance >= min_clearance and not illegal.contains(p)
        if keep:
            keep = all(math.hypot(t.center.x - p.x, t.center.y - p.y) >= min_gap for t in trees)
        if keep and (clearance < near_radius or len(trees) < policy.tree_seed_count):
            trees.append(Tree(p, tree_size, policy.tree_height))
            failures = 0
        else:
            failures += 1

        if tries % policy.chunk_size == 0:
            yield GenerationProgress("trees", tries, policy.tree_max_attempts)

    log.debug("trees: %d placed after %d attempts", len(trees), tries)
    return trees


def _grid_tree_steps(
    road_borders: Sequence[Segment],
    buildings: Sequence[Building],
    tree_size: float,
    policy: GenerationPolicy,
    rng: random.Random,
) -> Steps[List[Tree]]:
    max_trees = min(policy.tree_simplified_max, len(buildings) // 10)
    if not road_borders or max_trees == 0:
        return []

    left, right, top, bottom = _bounds([p for s in road_borders for p in (s.p1, s.p2)])
    width = min(right - left, policy.tree_grid_max_extent)
    height = min(bottom - top, policy.tree_grid_max_extent)
    left = (left + right - width) / 2
    top = (top + bottom - height) / 2
    grid = tree_size * 4
    cols = min(policy.tree_grid_max_cells, math.ceil(width / grid))
    rows = min(policy.tree_grid_max_cells, math.ceil(height / grid))
    samples = min(policy.tree_grid_building_samples, len(buildings))
    min_gap = tree_size * 0.6

    trees: List[Tree] = []
    for i in range(cols):
        for j in range(rows):
            if len(trees) >= max_trees:
                return trees
            if rng.random() > policy.tree_grid_fill_chance:
                continue
            p = Point(left + (i + rng.random()) * grid, top + (j + rng.random()) * grid)
            nearby = buildings if samples == len(buildings) else rng.sample(buildings, samples)
            crowded = any(b.base.distance_to_point(p) < tree_size for b in nearby)
            if not crowded and all(
                math.hypot(t.center.x - p.x, t.center.y - p.y) >= min_gap for t in trees
            ):
                trees.append(Tree(p, tree_size, policy.tree_height))
        yield GenerationProgress("trees", i + 1, cols)
    return trees


# ── Lane guides ──────────────────────────────────────────────────────────────


def lane_guide_steps(
    segments: Sequence[Segment],
    road_width: float,
    road_roundness: int,
    policy: GenerationPolicy,
) -> Steps[List[Segment]]:
    chunk = policy.chunk_size
    envelopes = yield from envelope_steps(
        segments, road_width / 2, road_roundness, chunk, "lane_envelopes"
    )
    return (yield from merged_borders(envelopes, policy.lane_guide_limit, chunk, "lane_guides"))
