#!/usr/bin/env python3
"""
sim/markings.py
===============
Road markings: positioned, oriented, sized annotations on the network.

Every marking shares the same payload (centre, direction, width,
height); the :class:`MarkingKind` tag selects the variant.  Only
``LIGHT`` carries extra state, its current :class:`LightState`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional

from geometry import Envelope, Point, Polygon, Segment
from geometry.ops import angle, normalize, translate

log = logging.getLogger("markings")


class MarkingKind(Enum):
    """Closed set of marking variants; the value is the serialised tag."""

    START = "start"
    TARGET = "target"
    LIGHT = "light"
    STOP = "stop"
    YIELD = "yield"
    CROSSING = "crossing"
    PARKING = "parking"
    GENERIC = "marking"

    @classmethod
    def parse(cls, tag: Any) -> "MarkingKind":
        try:
            return cls(str(tag).lower())
        except ValueError:
            log.warning("Unknown marking type %r, loading as generic", tag)
            return cls.GENERIC


class LightState(Enum):
    OFF = "off"
    GREEN = "green"
    YELLOW = "yellow"
    RED = "red"


@dataclass
class Marking:
    """One marking on the road network.

    ``direction`` is normalised on construction.  ``light_state`` is
    meaningful for ``LIGHT`` only and stays ``None`` for other kinds.
    """

    kind: MarkingKind
    center: Point
    direction: Point
    width: float
    height: float
    light_state: Optional[LightState] = field(default=None)

    def __post_init__(self) -> None:
        self.direction = normalize(self.direction)
        if self.direction == Point(0.0, 0.0):
            self.direction = Point(0.0, -1.0)
        if self.kind is MarkingKind.LIGHT and self.light_state is None:
            self.light_state = LightState.OFF
        if self.kind is not MarkingKind.LIGHT:
            self.light_state = None

    @property
    def support(self) -> Segment:
        """Spine along ``direction`` of length ``height`` through the centre."""
        heading = angle(self.direction)
        return Segment(
            translate(self.center, heading, self.height / 2),
            translate(self.center, heading, -self.height / 2),
        )

    @property
    def poly(self) -> Polygon:
        return Envelope(self.support, self.width, 0).poly

    def as_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "type": self.kind.value,
            "center": self.center.as_dict(),
            "direction": self.direction.as_dict(),
            "width": self.width,
            "height": self.height,
        }
        if self.light_state is not None:
            data["state"] = self.light_state.value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Marking":
        kind = MarkingKind.parse(data.get("type", "marking"))
        direction = data.get("direction") or data.get("directionVector") or {"x": 0, "y": -1}
        state = None
        if kind is MarkingKind.LIGHT:
            try:
                state = LightState(data.get("state", "off"))
            except ValueError:
                state = LightState.OFF
        return cls(
            kind=kind,
            center=Point.from_dict(data["center"]),
            direction=Point.from_dict(direction),
            width=float(data.get("width", 50.0)),
            height=float(data.get("height", 50.0)),
            light_state=state,
        )
