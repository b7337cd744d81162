#!/usr/bin/env python3
"""
sim/sensor.py
=============
Ray-fan perception.

Rays fan out from the agent position across ``ray_spread`` centred on
its heading.  Each reading is the nearest hit along the ray
(:class:`~geometry.Touch` with ``offset`` in ``[0, 1]``) or ``None``
when the ray is clear.  :meth:`Sensor.inputs` normalises readings for
the controller: ``1 - offset`` (closer is larger) with clear rays at
``0.0``, the value of a hit at maximum distance.
"""

from __future__ import annotations

import math
from typing import Any, List, Optional

import numpy as np

from geometry import Point, Segment, Touch
from geometry.ops import intersection_params, lerp

from .policy import SensorPolicy


class Sensor:
    """Fixed ray fan; stateless apart from the last rays and readings."""

    def __init__(self, policy: Optional[SensorPolicy] = None) -> None:
        self.policy = policy or SensorPolicy()
        self.ray_count = self.policy.ray_count
        self.ray_length = self.policy.ray_length
        self.ray_spread = self.policy.ray_spread
        self.rays: List[Segment] = []
        self.readings: List[Optional[Touch]] = []

    def update(self, car: Any, edges: np.ndarray) -> None:
        """Recast every ray from *car*'s pose against *edges* (``(n, 4)``)."""
        self.rays = self._cast_rays(car.x, car.y, car.angle)
        self.readings = self._read(edges)

    def _cast_rays(self, x: float, y: float, heading: float) -> List[Segment]:
        rays = []
        start = Point(x, y)
        for i in range(self.ray_count):
            t = 0.5 if self.ray_count == 1 else i / (self.ray_count - 1)
            a = lerp(self.ray_spread / 2, -self.ray_spread / 2, t) + heading
            end = Point(x - math.sin(a) * self.ray_length, y - math.cos(a) * self.ray_length)
            rays.append(Segment(start, end))
        return rays

    def _read(self, edges: np.ndarray) -> List[Optional[Touch]]:
        if not self.rays or len(edges) == 0:
            return [None] * len(self.rays)
        rays = np.array([(r.p1.x, r.p1.y, r.p2.x, r.p2.y) for r in self.rays], dtype=float)
        t, _, hit = intersection_params(rays, edges)
        offsets = np.where(hit, t, np.inf).min(axis=1)

        readings: List[Optional[Touch]] = []
        for ray, offset in zip(self.rays, offsets):
            if math.isinf(offset):
                readings.append(None)
            else:
                readings.append(Touch(
                    lerp(ray.p1.x, ray.p2.x, float(offset)),
                    lerp(ray.p1.y, ray.p2.y, float(offset)),
                    float(offset),
                ))
        return readings

    def inputs(self) -> List[float]:
        """Controller inputs, one per ray, in ``[0, 1]``."""
        return [0.0 if r is None else 1.0 - r.offset for r in self.readings]
