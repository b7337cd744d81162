"""
geometry/envelope.py
====================
Capsule-shaped polygon built around a segment ("skeleton").

``roundness`` is the number of arc steps per half-turn at each end;
``roundness <= 1`` produces a plain rectangle.
"""

from __future__ import annotations

import math
from typing import Any, Dict

from .ops import angle, subtract, translate
from .polygon import Polygon
from .primitives import EPSILON, DegenerateGeometryError, Segment


class Envelope:
    """Polygon of constant half-width ``width / 2`` around *skeleton*.

    Parameters
    ----------
    skeleton : Segment
        Spine of the capsule.
    width : float
        Full width of the capsule.
    roundness : int
        Arc resolution of each rounded end.

    Raises
    ------
    DegenerateGeometryError
        For a zero-length skeleton or a non-positive width.
    """

    def __init__(self, skeleton: Segment, width: float, roundness: int = 1) -> None:
        if skeleton.length() < EPSILON:
            raise DegenerateGeometryError("envelope skeleton has zero length")
        if width <= 0:
            raise DegenerateGeometryError(f"envelope width must be positive, got {width}")
        self.skeleton = skeleton
        self.width = float(width)
        self.roundness = int(roundness)
        self.poly = self._generate_polygon()

    def _generate_polygon(self) -> Polygon:
        p1 = self.skeleton.p1
        p2 = self.skeleton.p2
        radius = self.width / 2
        alpha = angle(subtract(p1, p2))
        alpha_ccw = alpha - math.pi / 2

        steps = max(1, self.roundness)
        step = math.pi / steps
        points = [translate(p1, alpha_ccw + k * step, radius) for k in range(steps + 1)]
        points += [
            translate(p2, math.pi + alpha_ccw + k * step, radius)
            for k in range(steps + 1)
        ]
        return Polygon(points)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "skeleton": self.skeleton.as_dict(),
            "width": self.width,
            "roundness": self.roundness,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Envelope":
        return cls(
            Segment.from_dict(data["skeleton"]),
            float(data["width"]),
            int(data.get("roundness", 1)),
        )
