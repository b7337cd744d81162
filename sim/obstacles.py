#!/usr/bin/env python3
"""
sim/obstacles.py
================
Static hazards dropped on the road.  An obstacle is an axis-aligned
rectangle centred on its position; agents perceive its edges and crash
into its footprint.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict

from geometry import Point, Polygon

log = logging.getLogger("obstacles")


class ObstacleKind(Enum):
    GENERIC = "generic"
    POTHOLE = "pothole"
    SPEEDBUMP = "speedbump"
    CONSTRUCTION = "construction"
    COW = "cow"
    AUTORICKSHAW = "autorickshaw"
    VENDOR = "vendor"
    DEBRIS = "debris"

    @classmethod
    def parse(cls, tag: Any) -> "ObstacleKind":
        try:
            return cls(str(tag).lower())
        except ValueError:
            log.warning("Unknown obstacle type %r, loading as generic", tag)
            return cls.GENERIC


@dataclass
class Obstacle:
    center: Point
    width: float = 40.0
    height: float = 40.0
    kind: ObstacleKind = ObstacleKind.GENERIC

    @property
    def poly(self) -> Polygon:
        hw = self.width / 2
        hh = self.height / 2
        cx, cy = self.center.x, self.center.y
        return Polygon([
            Point(cx - hw, cy - hh),
            Point(cx + hw, cy - hh),
            Point(cx + hw, cy + hh),
            Point(cx - hw, cy + hh),
        ])

    def as_dict(self) -> Dict[str, Any]:
        return {
            "center": self.center.as_dict(),
            "width": self.width,
            "height": self.height,
            "type": self.kind.value,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Obstacle":
        return cls(
            center=Point.from_dict(data["center"]),
            width=float(data.get("width", 40.0)),
            height=float(data.get("height", 40.0)),
            kind=ObstacleKind.parse(data.get("type", "generic")),
        )
