#!/usr/bin/env python3
"""
sim/items.py
============
Generated scenery.  Both item types are a footprint polygon plus a
visual-only height; only the footprint matters for collisions.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Dict

from geometry import Point, Polygon
from geometry.ops import lerp, translate

_TREE_RING_POINTS = 32


@dataclass
class Building:
    base: Polygon
    height: float = 200.0

    def as_dict(self) -> Dict[str, Any]:
        return {"base": self.base.as_dict(), "height": self.height}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Building":
        return cls(Polygon.from_dict(data["base"]), float(data.get("height", 200.0)))


def tree_base(center: Point, size: float) -> Polygon:
    """Irregular canopy ring; deterministic for a given centre and size."""
    rad = size / 2
    points = []
    for k in range(_TREE_RING_POINTS):
        a = 2 * math.pi * k / _TREE_RING_POINTS
        wobble = math.cos(((a + center.x) * size) % 17) ** 2
        points.append(translate(center, a, rad * lerp(0.5, 1.0, wobble)))
    return Polygon(points)


@dataclass
class Tree:
    center: Point
    size: float
    height: float = 200.0
    base: Polygon = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self.base = tree_base(self.center, self.size)

    def as_dict(self) -> Dict[str, Any]:
        return {"center": self.center.as_dict(), "size": self.size, "height": self.height}

    @classmethod
    def from_dict(cls, data: Dict[str, Any], default_size: float = 160.0) -> "Tree":
        return cls(
            Point.from_dict(data["center"]),
            float(data.get("size", default_size)),
            float(data.get("height", 200.0)),
        )
