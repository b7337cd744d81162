#!/usr/bin/env python3
"""
sim/world.py
============
Aggregate root of the driving sandbox.

:class:`World` owns the road :class:`~sim.graph.Graph`, the generation
parameters and every derived collection (envelopes, road borders,
buildings, trees, lane guides) plus the user-placed markings and
obstacles.

Generation
----------
:meth:`World.generate_steps` runs the pipeline in
:mod:`sim.generator` as a chunked generator yielding
:class:`~sim.generator.GenerationProgress`; :meth:`World.generate`
drains it in one go.  Both are no-ops while the graph revision is the
one the derived data was built from, and both clear every derived
collection before rebuilding.

Snapshots
---------
:meth:`World.as_dict` / :meth:`World.from_dict` round-trip the graph,
parameters, markings and obstacles losslessly.  Derived collections are
optional; an *optimized* snapshot omits them and loading regenerates.
:func:`load_world` wraps a :class:`~storage.WorldStore` and falls back
to an empty world when the stored snapshot is unusable.
"""

from __future__ import annotations

import logging
import math
import random
import time
from typing import Any, Callable, Dict, Generator, List, Optional, Sequence, Tuple

import numpy as np

import config
from geometry import DegenerateGeometryError, Envelope, Point, Polygon, PolygonSet, Segment, exhaust
from geometry.ops import get_nearest_point, get_nearest_segment, segments_to_array
from storage import SnapshotError, WorldStore

from . import generator as gen
from .generator import GenerationProgress
from .graph import Graph
from .items import Building, Tree
from .markings import LightState, Marking, MarkingKind
from .obstacles import Obstacle
from .policy import GenerationPolicy

log = logging.getLogger("world")

_PARAM_DEFAULTS: Dict[str, Any] = {
    "road_width": config.DEFAULT_ROAD_WIDTH,
    "road_roundness": config.DEFAULT_ROAD_ROUNDNESS,
    "building_width": config.DEFAULT_BUILDING_WIDTH,
    "building_min_length": config.DEFAULT_BUILDING_MIN_LENGTH,
    "spacing": config.DEFAULT_SPACING,
    "tree_size": config.DEFAULT_TREE_SIZE,
}

_SINGLETON_KINDS = (MarkingKind.START, MarkingKind.TARGET)


def _positive(value: Any, default: Any) -> Any:
    """Coerce *value* to the type of *default*; fall back when missing or not positive."""
    try:
        coerced = type(default)(value)
    except (TypeError, ValueError):
        return default
    if not coerced > 0:
        return default
    return coerced


class World:
    """Road network, generation parameters and derived scenery.

    Parameters
    ----------
    graph : Graph or None
        Road topology; a fresh empty graph when omitted.
    road_width, road_roundness, building_width, building_min_length, spacing, tree_size
        Generation parameters (defaults in :mod:`config`).
    driving_side : str
        ``'left'`` or ``'right'``; decides the lane agents spawn in.
    seed : int or None
        Seed for the randomised tree placement.  With a seed,
        regenerating the same graph yields the same trees.
    policy : GenerationPolicy or None
        Size thresholds and sampling attempt caps.
    autogenerate : bool
        Run :meth:`generate` immediately when the graph has segments.
    """

    def __init__(
        self,
        graph: Optional[Graph] = None,
        road_width: float = config.DEFAULT_ROAD_WIDTH,
        road_roundness: int = config.DEFAULT_ROAD_ROUNDNESS,
        building_width: float = config.DEFAULT_BUILDING_WIDTH,
        building_min_length: float = config.DEFAULT_BUILDING_MIN_LENGTH,
        spacing: float = config.DEFAULT_SPACING,
        tree_size: float = config.DEFAULT_TREE_SIZE,
        driving_side: str = config.DEFAULT_DRIVING_SIDE,
        seed: Optional[int] = None,
        policy: Optional[GenerationPolicy] = None,
        autogenerate: bool = True,
    ) -> None:
        self.graph = graph if graph is not None else Graph()
        self.road_width = road_width
        self.road_roundness = road_roundness
        self.building_width = building_width
        self.building_min_length = building_min_length
        self.spacing = spacing
        self.tree_size = tree_size
        self.driving_side = driving_side if driving_side in ("left", "right") else "left"
        self.seed = seed
        self.policy = policy or GenerationPolicy()

        self.envelopes: List[Envelope] = []
        self.road_borders: List[Segment] = []
        self.buildings: List[Building] = []
        self.trees: List[Tree] = []
        self.lane_guides: List[Segment] = []

        self.markings: List[Marking] = []
        self.obstacles: List[Obstacle] = []

        self.frame_count = 0
        self._generated_revision: Optional[int] = None
        self._road_set: Optional[PolygonSet] = None
        self._border_edges: Optional[np.ndarray] = None
        self._intersections: Tuple[int, List[Point]] = (-1, [])

        if autogenerate and self.graph.segments:
            self.generate()

    def __repr__(self) -> str:
        return (
            f"World(segments={len(self.graph.segments)}, borders={len(self.road_borders)}, "
            f"buildings={len(self.buildings)}, trees={len(self.trees)})"
        )

    # ── Generation ────────────────────────────────────────────────────────

    def needs_generation(self) -> bool:
        return self._generated_revision != self.graph.revision

    def _clear_derived(self) -> None:
        self.envelopes = []
        self.road_borders = []
        self.buildings = []
        self.trees = []
        self.lane_guides = []
        self._road_set = None
        self._border_edges = None

    def generate_steps(self) -> Generator[GenerationProgress, None, bool]:
        """Chunked generation pipeline.

        Yields
        ------
        GenerationProgress
            At every chunk boundary of every phase.

        Returns
        -------
        bool
            ``True`` if derived data was rebuilt, ``False`` for a no-op.
        """
        if not self.needs_generation():
            return False

        revision = self.graph.revision
        started = time.perf_counter()
        policy = self.policy
        segments = list(self.graph.segments)
        self._clear_derived()

        self.envelopes = yield from gen.envelope_steps(
            segments, self.road_width, self.road_roundness, policy.chunk_size
        )
        self.road_borders = yield from gen.merged_borders(
            self.envelopes, policy.road_union_limit, policy.chunk_size, "road_borders"
        )
        self.buildings = yield from gen.building_steps(
            segments,
            self.road_width,
            self.road_roundness,
            self.building_width,
            self.building_min_length,
            self.spacing,
            policy,
        )
        self.trees = yield from gen.tree_steps(
            self.road_borders,
            self.buildings,
            self.envelopes,
            self.tree_size,
            policy,
            random.Random(self.seed),
        )
        self.lane_guides = yield from gen.lane_guide_steps(
            segments, self.road_width, self.road_roundness, policy
        )

        self._road_set = None
        self._border_edges = None
        self._generated_revision = revision
        log.info(
            "Generated %d envelopes, %d borders, %d buildings, %d trees, %d lane guides in %.2fs",
            len(self.envelopes),
            len(self.road_borders),
            len(self.buildings),
            len(self.trees),
            len(self.lane_guides),
            time.perf_counter() - started,
        )
        return True

    def generate(self) -> bool:
        """Run :meth:`generate_steps` to completion."""
        return exhaust(self.generate_steps())

    # ── Spatial queries ───────────────────────────────────────────────────

    def road_polygons(self) -> PolygonSet:
        if self._road_set is None:
            self._road_set = PolygonSet(e.poly for e in self.envelopes)
        return self._road_set

    def is_on_road(self, point: Point) -> bool:
        """True when *point* lies inside any road envelope."""
        return self.road_polygons().contains(point)

    def border_edges(self) -> np.ndarray:
        """Road borders as an ``(n, 4)`` edge array (cached)."""
        if self._border_edges is None:
            self._border_edges = segments_to_array(self.road_borders)
        return self._border_edges

    def traffic_polygons(self) -> List[Polygon]:
        """Footprints agents may collide with besides the road borders."""
        return [o.poly for o in self.obstacles]

    def perception_edges(self) -> np.ndarray:
        """Everything a sensor ray can hit: borders plus obstacle edges."""
        polys = self.traffic_polygons()
        if not polys:
            return self.border_edges()
        return np.concatenate([self.border_edges()] + [p.edges for p in polys])

    def collision_segments(self) -> List[Segment]:
        """Road borders plus building and tree footprint edges."""
        segs = list(self.road_borders)
        for b in self.buildings:
            segs.extend(b.base.segments)
        for t in self.trees:
            segs.extend(t.base.segments)
        return segs

    def intersections(self) -> List[Point]:
        revision, cached = self._intersections
        if revision != self.graph.revision:
            cached = self.graph.intersections()
            self._intersections = (self.graph.revision, cached)
        return cached

    # ── Markings / obstacles ──────────────────────────────────────────────

    def markings_of(self, kind: MarkingKind) -> List[Marking]:
        return [m for m in self.markings if m.kind is kind]

    def start_marking(self) -> Optional[Marking]:
        """First Start marking (duplicates are ignored)."""
        starts = self.markings_of(MarkingKind.START)
        if len(starts) > 1:
            log.warning("%d start markings found, using the first", len(starts))
        return starts[0] if starts else None

    def target_marking(self) -> Optional[Marking]:
        """First Target marking (duplicates are ignored)."""
        targets = self.markings_of(MarkingKind.TARGET)
        if len(targets) > 1:
            log.warning("%d target markings found, using the first", len(targets))
        return targets[0] if targets else None

    def add_marking(self, marking: Marking) -> None:
        """Append *marking*; a new Start or Target replaces the previous one."""
        if marking.kind in _SINGLETON_KINDS:
            self.markings = [m for m in self.markings if m.kind is not marking.kind]
        self.markings.append(marking)

    def remove_marking(self, marking: Marking) -> bool:
        for i, m in enumerate(self.markings):
            if m is marking:
                del self.markings[i]
                return True
        return False

    def snap_marking(
        self,
        kind: MarkingKind,
        point: Point,
        threshold: float = math.inf,
    ) -> Optional[Marking]:
        """Create a marking of *kind* on the lane nearest to *point* and add it.

        Crossings snap to road centre lines and span the full road width;
        every other kind snaps to a lane guide.  Returns ``None`` when no
        candidate segment is within *threshold*.
        """
        if kind is MarkingKind.CROSSING or not self.lane_guides:
            candidates: Sequence[Segment] = self.graph.segments
        else:
            candidates = self.lane_guides
        seg = get_nearest_segment(point, candidates, threshold)
        if seg is None:
            return None
        projected, offset = seg.project_point(point)
        if not 0.0 <= offset <= 1.0:
            projected = seg.p1 if offset < 0.0 else seg.p2
        width = self.road_width if kind is MarkingKind.CROSSING else self.road_width / 2
        marking = Marking(kind, projected, seg.direction_vector(), width, self.road_width / 2)
        self.add_marking(marking)
        return marking

    def add_obstacle(self, obstacle: Obstacle) -> None:
        self.obstacles.append(obstacle)

    def remove_obstacle(self, obstacle: Obstacle) -> bool:
        for i, o in enumerate(self.obstacles):
            if o is obstacle:
                del self.obstacles[i]
                return True
        return False

    # ── Traffic lights ────────────────────────────────────────────────────

    def update_lights(self) -> None:
        """Advance one frame of the per-intersection light cycle.

        Lights are grouped by their nearest intersection; within a group
        exactly one light is green or yellow at a time, the rest are red.
        """
        lights = self.markings_of(MarkingKind.LIGHT)
        if lights:
            centers = self.intersections()
            groups: Dict[Point, List[Marking]] = {}
            for light in lights:
                center = get_nearest_point(light.center, centers) or light.center
                groups.setdefault(center, []).append(light)

            green = config.LIGHT_GREEN_TICKS
            cycle = green + config.LIGHT_YELLOW_TICKS
            tick = self.frame_count // config.LIGHT_FRAMES_PER_TICK
            for group in groups.values():
                c_tick = tick % (len(group) * cycle)
                active = c_tick // cycle
                phase = LightState.GREEN if c_tick % cycle < green else LightState.YELLOW
                for i, light in enumerate(group):
                    light.light_state = phase if i == active else LightState.RED
        self.frame_count += 1

    # ── Draw data ─────────────────────────────────────────────────────────

    def draw_data(self) -> Dict[str, Any]:
        """Plain-tuple geometry for renderers; no pixel work happens here."""

        def ring(poly: Polygon) -> List[Tuple[float, float]]:
            return [p.as_tuple() for p in poly.points]

        def line(seg: Segment) -> Tuple[Tuple[float, float], Tuple[float, float]]:
            return (seg.p1.as_tuple(), seg.p2.as_tuple())

        markings = []
        for m in self.markings:
            try:
                poly = ring(m.poly)
            except DegenerateGeometryError:
                continue
            markings.append({
                "kind": m.kind.value,
                "poly": poly,
                "center": m.center.as_tuple(),
                "direction": m.direction.as_tuple(),
                "state": m.light_state.value if m.light_state else None,
            })

        return {
            "envelopes": [ring(e.poly) for e in self.envelopes],
            "road_borders": [line(s) for s in self.road_borders],
            "graph_segments": [line(s) for s in self.graph.segments],
            "lane_guides": [line(s) for s in self.lane_guides],
            "buildings": [{"base": ring(b.base), "height": b.height} for b in self.buildings],
            "trees": [{"base": ring(t.base), "center": t.center.as_tuple()} for t in self.trees],
            "markings": markings,
            "obstacles": [{"kind": o.kind.value, "poly": ring(o.poly)} for o in self.obstacles],
        }

    # ── Serialisation ─────────────────────────────────────────────────────

    def as_dict(self, optimized: bool = False) -> Dict[str, Any]:
        """Snapshot record; *optimized* omits the derived collections."""
        data: Dict[str, Any] = {
            "graph": self.graph.as_dict(),
            "road_width": self.road_width,
            "road_roundness": self.road_roundness,
            "building_width": self.building_width,
            "building_min_length": self.building_min_length,
            "spacing": self.spacing,
            "tree_size": self.tree_size,
            "driving_side": self.driving_side,
            "markings": [m.as_dict() for m in self.markings],
            "obstacles": [o.as_dict() for o in self.obstacles],
            "is_optimized": optimized,
        }
        if not optimized:
            data["envelopes"] = [e.as_dict() for e in self.envelopes]
            data["road_borders"] = [s.as_dict() for s in self.road_borders]
            data["buildings"] = [b.as_dict() for b in self.buildings]
            data["trees"] = [t.as_dict() for t in self.trees]
            data["lane_guides"] = [s.as_dict() for s in self.lane_guides]
        return data

    @classmethod
    def from_dict(
        cls,
        data: Dict[str, Any],
        seed: Optional[int] = None,
        policy: Optional[GenerationPolicy] = None,
    ) -> "World":
        """Rebuild a world from :meth:`as_dict` output.

        Missing parameters take their defaults; unparseable markings and
        obstacles are skipped with a warning; missing or unreadable
        derived collections are regenerated.

        Raises
        ------
        TypeError
            If *data* is not a mapping.
        """
        if not isinstance(data, dict):
            raise TypeError(f"world snapshot must be an object, got {type(data).__name__}")

        params = {k: _positive(data.get(k), v) for k, v in _PARAM_DEFAULTS.items()}
        world = cls(
            graph=Graph.from_dict(data.get("graph") or {}),
            driving_side=str(data.get("driving_side") or config.DEFAULT_DRIVING_SIDE),
            seed=seed,
            policy=policy,
            autogenerate=False,
            **params,
        )
        world.markings = _load_items(data.get("markings"), Marking.from_dict, "marking")
        world.obstacles = _load_items(data.get("obstacles"), Obstacle.from_dict, "obstacle")

        if data.get("is_optimized") or not data.get("envelopes"):
            world.generate()
            return world

        try:
            world.envelopes = [Envelope.from_dict(e) for e in data["envelopes"]]
            world.road_borders = [Segment.from_dict(s) for s in data.get("road_borders") or []]
            world.buildings = [Building.from_dict(b) for b in data.get("buildings") or []]
            world.trees = [
                Tree.from_dict(t, world.tree_size) for t in data.get("trees") or []
            ]
            world.lane_guides = [Segment.from_dict(s) for s in data.get("lane_guides") or []]
            world._generated_revision = world.graph.revision
        except (KeyError, TypeError, ValueError) as exc:
            log.warning("Derived world data unreadable (%s), regenerating", exc)
            world._clear_derived()
            world.generate()
        return world


def _load_items(raw: Any, parse: Callable[[Dict[str, Any]], Any], label: str) -> List[Any]:
    items = []
    for entry in raw or []:
        try:
            items.append(parse(entry))
        except (KeyError, TypeError, ValueError) as exc:
            log.warning("Skipping malformed %s %r: %s", label, entry, exc)
    return items


# ── Store helpers ─────────────────────────────────────────────────────────────


def load_world(
    store: WorldStore,
    seed: Optional[int] = None,
    policy: Optional[GenerationPolicy] = None,
) -> Tuple[World, Optional[str]]:
    """Load the stored world, falling back to an empty one.

    Returns
    -------
    tuple
        ``(world, error)``, where *error* is ``None`` on success or when no
        snapshot exists, otherwise a message describing why the empty
        fallback world was returned.
    """
    try:
        record = store.load_world()
    except SnapshotError as exc:
        log.warning("World snapshot unreadable, starting empty: %s", exc)
        return World(seed=seed, policy=policy), str(exc)

    if record is None:
        log.info("No saved world, starting empty")
        return World(seed=seed, policy=policy), None

    try:
        world = World.from_dict(record, seed=seed, policy=policy)
    except (KeyError, TypeError, ValueError, AttributeError) as exc:
        log.warning("World snapshot malformed, starting empty: %s", exc)
        return World(seed=seed, policy=policy), f"malformed world snapshot: {exc}"

    log.info("Loaded world: %r", world)
    return world, None


def save_world(world: World, store: WorldStore, optimized: bool = True) -> str:
    """Persist *world*; optimized snapshots skip the derived collections."""
    record_id = store.save_world(world.as_dict(optimized=optimized))
    log.info("Saved world snapshot %s (optimized=%s)", record_id, optimized)
    return record_id


__all__ = [
    "World",
    "GenerationProgress",
    "load_world",
    "save_world",
]
