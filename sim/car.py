#!/usr/bin/env python3
"""
sim/car.py
==========
The learning agent.

A :class:`Car` is either *active* or *damaged*; damage is terminal for
the current generation.  Each :meth:`Car.update` moves the car, rebuilds
its collision polygon, checks damage (off-road first, then collision),
refreshes the sensor and, when a controller is attached, derives next
tick's :class:`Controls` from the network outputs.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Optional, Sequence, Union

import numpy as np

from geometry import Point, Polygon, Segment
from geometry.ops import any_crossing, segments_to_array

from .physics import advance, apply_throttle, car_polygon, steer
from .policy import CarPolicy, SensorPolicy
from .sensor import Sensor

log = logging.getLogger("car")

Edges = Union[np.ndarray, Sequence[Segment]]


class DamageType(Enum):
    OFF_ROAD = "off-road"
    COLLISION = "collision"
    STAGNATION = "stagnation"


@dataclass
class Controls:
    forward: bool = False
    left: bool = False
    right: bool = False
    reverse: bool = False

    @classmethod
    def from_outputs(cls, outputs: Sequence[float]) -> "Controls":
        """Map ``[forward, left, right, reverse]`` activations; positive means pressed."""
        values = [float(v) > 0.0 for v in outputs]
        values += [False] * (4 - len(values))
        return cls(*values[:4])


def _as_edges(edges: Edges) -> np.ndarray:
    if isinstance(edges, np.ndarray):
        return edges
    return segments_to_array(list(edges))


class Car:
    """Kinematic agent with a collision polygon and an optional controller.

    Parameters
    ----------
    x, y : float
        Centre position.
    angle : float
        Heading in radians (see :mod:`sim.physics`).
    brain : object or None
        Controller exposing ``feed_forward(inputs) -> outputs``.
    policy : CarPolicy or None
        Size and kinematic increments.
    sensor_policy : SensorPolicy or None
        Ray layout; a sensor is always attached.
    car_id : str
        Label used by the UI and logs.
    """

    def __init__(
        self,
        x: float,
        y: float,
        angle: float = 0.0,
        brain: Any = None,
        policy: Optional[CarPolicy] = None,
        sensor_policy: Optional[SensorPolicy] = None,
        car_id: str = "",
    ) -> None:
        self.id = car_id
        self.x = x
        self.y = y
        self.angle = angle
        self.speed = 0.0
        self.policy = policy or CarPolicy()
        self.width = self.policy.width
        self.height = self.policy.height

        self.damage_type: Optional[DamageType] = None
        self.reached_target = False
        self.ticks = 0

        self.brain = brain
        self.sensor = Sensor(sensor_policy)
        self.controls = Controls()
        self.polygon: Polygon = car_polygon(x, y, angle, self.width, self.height)

    def __repr__(self) -> str:
        state = self.damage_type.value if self.damage_type else "active"
        return f"Car({self.id!r}, x={self.x:.1f}, y={self.y:.1f}, speed={self.speed:.2f}, {state})"

    @property
    def damaged(self) -> bool:
        return self.damage_type is not None

    @property
    def active(self) -> bool:
        return self.damage_type is None and not self.reached_target

    @property
    def position(self) -> Point:
        return Point(self.x, self.y)

    def mark_damaged(self, damage: DamageType) -> None:
        """Enter the terminal damaged state (first cause wins)."""
        if self.damage_type is None:
            self.damage_type = damage
            self.speed = 0.0
            log.debug("%s damaged: %s", self.id or "car", damage.value)

    def update(
        self,
        road_borders: Edges,
        traffic: Sequence[Polygon] = (),
        on_road: Optional[Callable[[Point], bool]] = None,
        sensor_edges: Optional[Edges] = None,
    ) -> None:
        """Advance one tick.

        Parameters
        ----------
        road_borders : array or sequence of Segment
            Border edges that damage the car on contact.
        traffic : sequence of Polygon
            Other footprints (obstacles, other cars) that damage on contact.
        on_road : callable or None
            Road membership test for the car centre; skipped when ``None``.
        sensor_edges : array or sequence of Segment, optional
            What the rays see; defaults to the borders plus *traffic* edges.
        """
        borders = _as_edges(road_borders)
        if self.active:
            self._move()
            self.polygon = car_polygon(self.x, self.y, self.angle, self.width, self.height)
            damage = self._assess_damage(borders, traffic, on_road)
            if damage is not None:
                self.mark_damaged(damage)
            self.ticks += 1

        if sensor_edges is None:
            parts = [borders] + [p.edges for p in traffic]
            seen = np.concatenate(parts) if len(parts) > 1 else borders
        else:
            seen = _as_edges(sensor_edges)
        self.sensor.update(self, seen)

        if self.brain is not None and self.active:
            outputs = self.brain.feed_forward(self.sensor.inputs())
            self.controls = Controls.from_outputs(outputs)

    def _move(self) -> None:
        c = self.controls
        self.speed = apply_throttle(self.speed, c.forward, c.reverse, self.policy)
        self.angle = steer(self.angle, self.speed, c.left, c.right, self.policy.steer_rate)
        self.x, self.y = advance(self.x, self.y, self.angle, self.speed)

    def _assess_damage(
        self,
        borders: np.ndarray,
        traffic: Sequence[Polygon],
        on_road: Optional[Callable[[Point], bool]],
    ) -> Optional[DamageType]:
        if on_road is not None and not on_road(self.position):
            return DamageType.OFF_ROAD
        if any_crossing(self.polygon.edges, borders):
            return DamageType.COLLISION
        for poly in traffic:
            if self.polygon.intersects_poly(poly):
                return DamageType.COLLISION
        return None

    def as_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "x": self.x,
            "y": self.y,
            "angle": self.angle,
            "speed": self.speed,
            "damaged": self.damaged,
            "damage_type": self.damage_type.value if self.damage_type else None,
            "reached_target": self.reached_target,
            "polygon": [p.as_tuple() for p in self.polygon.points],
        }
