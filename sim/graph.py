#!/usr/bin/env python3
"""
sim/graph.py
============
User-authored road topology: a set of unique points joined by unique
undirected segments.

Invariants
----------
* every segment references points that are in :attr:`Graph.points`;
* no two points lie within ``snap_radius`` of each other;
* no duplicate or zero-length segments;
* removing a point removes every incident segment.

Mutations are synchronous.  Invalid requests return ``False`` (or the
already existing point) instead of raising.  Every successful mutation
bumps :attr:`Graph.revision` so derived data can tell when it is stale.
"""

from __future__ import annotations

import hashlib
import json
import logging
import math
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple

from geometry import EPSILON, Point, Segment

log = logging.getLogger("graph")

Cell = Tuple[int, int]


class Graph:
    """Points and segments with snap-on-add deduplication.

    Parameters
    ----------
    points : iterable of Point, optional
        Initial points (snapped against each other).
    segments : iterable of Segment, optional
        Initial segments; endpoints are added when missing.
    snap_radius : float
        Two points closer than this are considered the same node.
    """

    def __init__(
        self,
        points: Optional[Iterable[Point]] = None,
        segments: Optional[Iterable[Segment]] = None,
        snap_radius: float = EPSILON,
    ) -> None:
        self.snap_radius = max(float(snap_radius), 1e-9)
        self.points: List[Point] = []
        self.segments: List[Segment] = []
        self._segment_set: Set[Segment] = set()
        self._cells: Dict[Cell, List[Point]] = {}
        self.revision = 0

        for p in points or ():
            self.add_point(p)
        for s in segments or ():
            self.try_add_segment(s)

    def __repr__(self) -> str:
        return f"Graph(points={len(self.points)}, segments={len(self.segments)})"

    # ── Point index ───────────────────────────────────────────────────────

    def _cell(self, p: Point) -> Cell:
        size = self.snap_radius * 4
        return (math.floor(p.x / size), math.floor(p.y / size))

    def _index(self, p: Point) -> None:
        self._cells.setdefault(self._cell(p), []).append(p)

    def _unindex(self, p: Point) -> None:
        bucket = self._cells.get(self._cell(p), [])
        if p in bucket:
            bucket.remove(p)

    def find_point(self, point: Point) -> Optional[Point]:
        """Existing point within ``snap_radius`` of *point*, if any."""
        cx, cy = self._cell(point)
        best: Optional[Point] = None
        best_dist = self.snap_radius
        for dx in (-1, 0, 1):
            for dy in (-1, 0, 1):
                for p in self._cells.get((cx + dx, cy + dy), ()):
                    d = math.hypot(p.x - point.x, p.y - point.y)
                    if d <= best_dist:
                        best, best_dist = p, d
        return best

    # ── Points ────────────────────────────────────────────────────────────

    def contains_point(self, point: Point) -> bool:
        return self.find_point(point) is not None

    def add_point(self, point: Point) -> Point:
        """Insert *point* unless a node already sits there.

        Returns
        -------
        Point
            The canonical node: the existing one when snapped, else *point*.
        """
        existing = self.find_point(point)
        if existing is not None:
            return existing
        self.points.append(point)
        self._index(point)
        self.revision += 1
        return point

    def try_add_point(self, point: Point) -> bool:
        if self.contains_point(point):
            return False
        self.add_point(point)
        return True

    def remove_point(self, point: Point) -> bool:
        """Remove the node at *point* and every segment touching it."""
        node = self.find_point(point)
        if node is None:
            return False
        for seg in self.segments_with_point(node):
            self._drop_segment(seg)
        self.points.remove(node)
        self._unindex(node)
        self.revision += 1
        return True

    def move_point(self, point: Point, to: Point) -> Optional[Point]:
        """Relocate a node, re-targeting its incident segments.

        Segments that would collapse to zero length are removed.
        Returns the node's new identity, or ``None`` if *point* is unknown
        or *to* collides with another node.
        """
        node = self.find_point(point)
        if node is None:
            return None
        clash = self.find_point(to)
        if clash is not None and clash != node:
            return None

        incident = self.segments_with_point(node)
        for seg in incident:
            self._drop_segment(seg)
        idx = self.points.index(node)
        self._unindex(node)
        self.points[idx] = to
        self._index(to)
        for seg in incident:
            other = seg.p2 if seg.p1 == node else seg.p1
            self._append_segment(Segment(to, other))
        self.revision += 1
        return to

    # ── Segments ──────────────────────────────────────────────────────────

    def contains_segment(self, seg: Segment) -> bool:
        return seg in self._segment_set

    def _append_segment(self, seg: Segment) -> bool:
        if seg.p1.equals(seg.p2, self.snap_radius) or seg in self._segment_set:
            return False
        self.segments.append(seg)
        self._segment_set.add(seg)
        return True

    def _drop_segment(self, seg: Segment) -> None:
        self.segments.remove(seg)
        self._segment_set.discard(seg)

    def try_add_segment(self, seg: Segment) -> bool:
        """Add *seg*, snapping its endpoints onto existing nodes.

        Rejected (``False``) when the endpoints coincide or an equal
        segment already exists.
        """
        a = self.find_point(seg.p1) or seg.p1
        b = self.find_point(seg.p2) or seg.p2
        if a.equals(b, self.snap_radius):
            return False
        candidate = Segment(a, b)
        if candidate in self._segment_set:
            return False
        a = self.add_point(a)
        b = self.add_point(b)
        self._append_segment(Segment(a, b))
        self.revision += 1
        return True

    def remove_segment(self, seg: Segment) -> bool:
        if seg not in self._segment_set:
            return False
        self._drop_segment(seg)
        self.revision += 1
        return True

    def segments_with_point(self, point: Point) -> List[Segment]:
        return [seg for seg in self.segments if seg.includes(point)]

    def degree(self, point: Point) -> int:
        node = self.find_point(point)
        if node is None:
            return 0
        return len(self.segments_with_point(node))

    def intersections(self) -> List[Point]:
        """Nodes with more than two incident segments."""
        counts: Dict[Point, int] = {}
        for seg in self.segments:
            counts[seg.p1] = counts.get(seg.p1, 0) + 1
            counts[seg.p2] = counts.get(seg.p2, 0) + 1
        return [p for p in self.points if counts.get(p, 0) > 2]

    def dispose(self) -> None:
        self.points.clear()
        self.segments.clear()
        self._segment_set.clear()
        self._cells.clear()
        self.revision += 1

    # ── Serialisation ─────────────────────────────────────────────────────

    def as_dict(self) -> Dict[str, Any]:
        return {
            "points": [p.as_dict() for p in self.points],
            "segments": [s.as_dict() for s in self.segments],
        }

    def hash(self) -> str:
        """Content signature, stable across processes."""
        payload = json.dumps(self.as_dict(), sort_keys=True)
        return hashlib.sha1(payload.encode("utf-8")).hexdigest()

    @classmethod
    def from_dict(cls, data: Dict[str, Any], snap_radius: float = EPSILON) -> "Graph":
        """Rebuild a graph from ``{"points": [...], "segments": [...]}``.

        This is also the shape produced by map importers.  Malformed
        entries are skipped.
        """
        graph = cls(snap_radius=snap_radius)
        for raw in data.get("points") or []:
            try:
                graph.add_point(Point.from_dict(raw))
            except (KeyError, TypeError, ValueError):
                log.debug("Skipping malformed point %r", raw)
        skipped = 0
        for raw in data.get("segments") or []:
            try:
                seg = Segment.from_dict(raw)
            except (KeyError, TypeError, ValueError):
                skipped += 1
                continue
            if not graph.try_add_segment(seg):
                skipped += 1
        if skipped:
            log.debug("Skipped %d invalid or duplicate segments on load", skipped)
        return graph
