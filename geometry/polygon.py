"""
geometry/polygon.py
===================
Closed polygons, multi-polygon queries and boundary union.

The union is the classic "break and filter" approximation: every edge of
every polygon is split at its crossings with the other polygons, and a
piece survives only if its midpoint lies outside all other polygons.
It is not a full CSG boolean: coincident edges may survive or vanish
together, but the result is good enough for road borders and guides.

Long unions run as generators (:func:`iter_union`) that yield
``(done, total)`` between chunks so a host loop can stay responsive;
:func:`exhaust` drives such a generator to completion.
"""

from __future__ import annotations

import math
from typing import Any, Dict, Generator, Iterable, List, Sequence, Tuple

import numpy as np

from .ops import (
    EMPTY_EDGES,
    any_crossing,
    edge_crossings,
    intersection_params,
    lerp,
    point_edge_distances,
    points_to_edges,
)
from .primitives import EPSILON, DegenerateGeometryError, Point, Segment

Progress = Tuple[int, int]


class Polygon:
    """Ordered ring of at least three distinct points.

    Consecutive near-duplicate points (and a repeated closing point) are
    dropped on construction.

    Raises
    ------
    DegenerateGeometryError
        If fewer than three distinct points remain.
    """

    def __init__(self, points: Sequence[Point]) -> None:
        cleaned: List[Point] = []
        for p in points:
            if math.isnan(p.x) or math.isnan(p.y):
                raise DegenerateGeometryError("polygon point is NaN")
            if cleaned and p.equals(cleaned[-1]):
                continue
            cleaned.append(p)
        while len(cleaned) > 1 and cleaned[0].equals(cleaned[-1]):
            cleaned.pop()
        if len(cleaned) < 3:
            raise DegenerateGeometryError(
                f"polygon needs 3 distinct points, got {len(cleaned)}"
            )

        self.points: Tuple[Point, ...] = tuple(cleaned)
        n = len(self.points)
        self.segments: Tuple[Segment, ...] = tuple(
            Segment(self.points[i], self.points[(i + 1) % n]) for i in range(n)
        )
        self.edges: np.ndarray = points_to_edges([p.as_tuple() for p in self.points])
        xs = self.edges[:, 0]
        ys = self.edges[:, 1]
        self.bbox: Tuple[float, float, float, float] = (
            float(xs.min()), float(ys.min()), float(xs.max()), float(ys.max())
        )

    def __repr__(self) -> str:
        return f"Polygon({len(self.points)} points)"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Polygon):
            return NotImplemented
        return self.points == other.points

    def __hash__(self) -> int:
        return hash(self.points)

    # ── Queries ───────────────────────────────────────────────────────────

    def contains_point(self, point: Point) -> bool:
        """Ray-casting parity test."""
        min_x, min_y, max_x, max_y = self.bbox
        if not (min_x <= point.x <= max_x and min_y <= point.y <= max_y):
            return False
        return bool(self.contains_points(np.array([[point.x, point.y]]))[0])

    def contains_points(self, xy: np.ndarray) -> np.ndarray:
        """Vectorised :meth:`contains_point` for an ``(p, 2)`` array."""
        if len(xy) == 0:
            return np.zeros(0, dtype=bool)
        crossings = edge_crossings(xy, self.edges)
        return np.count_nonzero(crossings, axis=1) % 2 == 1

    def contains_segment(self, seg: Segment) -> bool:
        return self.contains_point(seg.midpoint())

    def bbox_overlaps(self, other: "Polygon", margin: float = 0.0) -> bool:
        a = self.bbox
        b = other.bbox
        return (
            a[0] - margin <= b[2]
            and b[0] - margin <= a[2]
            and a[1] - margin <= b[3]
            and b[1] - margin <= a[3]
        )

    def intersects_poly(self, other: "Polygon") -> bool:
        """Boundary crossing or full containment of one polygon in the other."""
        if not self.bbox_overlaps(other):
            return False
        if any_crossing(self.edges, other.edges):
            return True
        return self.contains_point(other.points[0]) or other.contains_point(self.points[0])

    def distance_to_point(self, point: Point) -> float:
        return float(point_edge_distances(point.x, point.y, self.edges).min())

    def distance_to_poly(self, other: "Polygon") -> float:
        """Smallest vertex-to-boundary distance, checked in both directions."""
        best = math.inf
        for p in other.points:
            best = min(best, float(point_edge_distances(p.x, p.y, self.edges).min()))
        for p in self.points:
            best = min(best, float(point_edge_distances(p.x, p.y, other.edges).min()))
        return best

    # ── Serialisation ─────────────────────────────────────────────────────

    def as_dict(self) -> Dict[str, Any]:
        return {"points": [p.as_dict() for p in self.points]}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Polygon":
        return cls([Point.from_dict(p) for p in data["points"]])

    # ── Union ─────────────────────────────────────────────────────────────

    @staticmethod
    def union(polygons: Sequence["Polygon"]) -> List[Segment]:
        """Outer boundary segments of the merged *polygons*."""
        return exhaust(iter_union(polygons))


class PolygonSet:
    """Many polygons flattened into one edge array for fast point queries."""

    def __init__(self, polygons: Iterable[Polygon]) -> None:
        self.polygons: List[Polygon] = list(polygons)
        if self.polygons:
            self._edges = np.concatenate([p.edges for p in self.polygons])
            self._owner = np.repeat(
                np.arange(len(self.polygons)),
                [len(p.edges) for p in self.polygons],
            )
            self._boxes = np.array([p.bbox for p in self.polygons], dtype=float)
        else:
            self._edges = EMPTY_EDGES
            self._owner = np.zeros(0, dtype=int)
            self._boxes = np.zeros((0, 4), dtype=float)

    def __len__(self) -> int:
        return len(self.polygons)

    def contains(self, point: Point) -> bool:
        """True when *point* lies inside any member polygon."""
        if not self.polygons:
            return False
        boxes = self._boxes
        in_box = (
            (boxes[:, 0] <= point.x) & (point.x <= boxes[:, 2])
            & (boxes[:, 1] <= point.y) & (point.y <= boxes[:, 3])
        )
        if not in_box.any():
            return False
        edge_mask = in_box[self._owner]
        crossings = edge_crossings(
            np.array([[point.x, point.y]]), self._edges[edge_mask]
        )[0]
        counts = np.bincount(
            self._owner[edge_mask][crossings], minlength=len(self.polygons)
        )
        return bool((counts % 2 == 1).any())

    def distance(self, point: Point) -> float:
        """Distance to the nearest member boundary (``inf`` when empty)."""
        if not self.polygons:
            return math.inf
        return float(point_edge_distances(point.x, point.y, self._edges).min())


def exhaust(steps: Generator[Any, None, Any]) -> Any:
    """Run a chunked generator to completion and return its result."""
    while True:
        try:
            next(steps)
        except StopIteration as done:
            return done.value


def _split_points(seg: Segment, offsets: np.ndarray) -> List[Point]:
    """Endpoints plus interior cut points, without near-duplicates."""
    cuts = [seg.p1]
    for t in np.unique(offsets):
        p = Point(lerp(seg.p1.x, seg.p2.x, float(t)), lerp(seg.p1.y, seg.p2.y, float(t)))
        if not p.equals(cuts[-1]):
            cuts.append(p)
    if len(cuts) > 1 and cuts[-1].equals(seg.p2):
        cuts.pop()
    cuts.append(seg.p2)
    return cuts


def iter_union(
    polygons: Sequence[Polygon],
    chunk_size: int = 250,
) -> Generator[Progress, None, List[Segment]]:
    """Chunked polygon union; yields ``(done, total)`` and returns the segments."""
    polys = list(polygons)
    total = len(polys)
    kept: List[Segment] = []
    if not polys:
        return kept

    boxes = np.array([p.bbox for p in polys], dtype=float)
    chunk_size = max(1, chunk_size)

    for i, poly in enumerate(polys):
        b = boxes[i]
        near = np.nonzero(
            (boxes[:, 0] <= b[2]) & (boxes[:, 2] >= b[0])
            & (boxes[:, 1] <= b[3]) & (boxes[:, 3] >= b[1])
        )[0]
        others = [polys[j] for j in near if j != i]

        if not others:
            kept.extend(poly.segments)
        else:
            other_edges = np.concatenate([o.edges for o in others])
            t, _, hit = intersection_params(poly.edges, other_edges)

            pieces: List[Segment] = []
            for k, seg in enumerate(poly.segments):
                offsets = t[k][hit[k]]
                offsets = offsets[(offsets > 0.0) & (offsets < 1.0)]
                cuts = _split_points(seg, offsets)
                pieces.extend(Segment(a, c) for a, c in zip(cuts, cuts[1:]))

            mids = np.array(
                [((s.p1.x + s.p2.x) / 2, (s.p1.y + s.p2.y) / 2) for s in pieces],
                dtype=float,
            )
            covered = np.zeros(len(pieces), dtype=bool)
            for other in others:
                covered |= other.contains_points(mids)
            kept.extend(s for s, c in zip(pieces, covered) if not c)

        if (i + 1) % chunk_size == 0:
            yield (i + 1, total)

    yield (total, total)
    return kept


__all__ = [
    "EPSILON",
    "Polygon",
    "PolygonSet",
    "exhaust",
    "iter_union",
]
