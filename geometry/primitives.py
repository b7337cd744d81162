"""
geometry/primitives.py
======================
Immutable value types shared by the whole project.

A :class:`Point` doubles as a 2-D vector.  :class:`Segment` equality
ignores endpoint order, so ``Segment(a, b) == Segment(b, a)``.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Dict, Tuple

EPSILON: float = 1e-3
"""Tolerance for near-duplicate points and near-zero-length segments."""


class DegenerateGeometryError(ValueError):
    """Raised when a primitive cannot be built from the given input."""


@dataclass(frozen=True)
class Point:
    """2-D point / vector with exact value equality."""

    x: float
    y: float

    def __post_init__(self) -> None:
        # Integer input would otherwise serialise as 0 instead of 0.0.
        object.__setattr__(self, "x", float(self.x))
        object.__setattr__(self, "y", float(self.y))

    def equals(self, other: "Point", eps: float = EPSILON) -> bool:
        """Coordinate equality within *eps* (used for graph dedup)."""
        return abs(self.x - other.x) <= eps and abs(self.y - other.y) <= eps

    def as_tuple(self) -> Tuple[float, float]:
        return (self.x, self.y)

    def as_dict(self) -> Dict[str, float]:
        return {"x": self.x, "y": self.y}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Point":
        return cls(float(data["x"]), float(data["y"]))


@dataclass(frozen=True, eq=False)
class Segment:
    """Undirected edge between two points."""

    p1: Point
    p2: Point

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Segment):
            return NotImplemented
        return (self.p1 == other.p1 and self.p2 == other.p2) or (
            self.p1 == other.p2 and self.p2 == other.p1
        )

    def __hash__(self) -> int:
        return hash(frozenset((self.p1, self.p2)))

    # ── Measures ──────────────────────────────────────────────────────────

    def length(self) -> float:
        return math.hypot(self.p2.x - self.p1.x, self.p2.y - self.p1.y)

    def midpoint(self) -> Point:
        return Point((self.p1.x + self.p2.x) / 2, (self.p1.y + self.p2.y) / 2)

    def direction_vector(self) -> Point:
        """Unit vector from ``p1`` to ``p2`` (zero vector when degenerate)."""
        length = self.length()
        if length == 0.0:
            return Point(0.0, 0.0)
        return Point((self.p2.x - self.p1.x) / length, (self.p2.y - self.p1.y) / length)

    def includes(self, point: Point) -> bool:
        """True when *point* is one of the endpoints."""
        return self.p1 == point or self.p2 == point

    def project_point(self, point: Point) -> Tuple[Point, float]:
        """Orthogonal projection of *point* on the carrier line.

        Returns
        -------
        tuple
            ``(projected_point, offset)`` where ``offset`` is the
            fraction along the segment (0 at ``p1``, 1 at ``p2``).
        """
        bx = self.p2.x - self.p1.x
        by = self.p2.y - self.p1.y
        len_sq = bx * bx + by * by
        if len_sq == 0.0:
            return self.p1, 0.0
        offset = ((point.x - self.p1.x) * bx + (point.y - self.p1.y) * by) / len_sq
        return Point(self.p1.x + bx * offset, self.p1.y + by * offset), offset

    def distance_to_point(self, point: Point) -> float:
        proj, offset = self.project_point(point)
        if 0.0 < offset < 1.0:
            return math.hypot(point.x - proj.x, point.y - proj.y)
        return min(
            math.hypot(point.x - self.p1.x, point.y - self.p1.y),
            math.hypot(point.x - self.p2.x, point.y - self.p2.y),
        )

    # ── Serialisation ─────────────────────────────────────────────────────

    def as_dict(self) -> Dict[str, Any]:
        return {"p1": self.p1.as_dict(), "p2": self.p2.as_dict()}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Segment":
        return cls(Point.from_dict(data["p1"]), Point.from_dict(data["p2"]))


@dataclass(frozen=True)
class Touch:
    """Intersection result: hit location and fraction along the first segment."""

    x: float
    y: float
    offset: float
