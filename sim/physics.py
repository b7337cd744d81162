#!/usr/bin/env python3
"""
sim/physics.py
==============
Low-level kinematic helpers used by :mod:`sim.car`.

Heading convention: ``angle = 0`` points towards −y (screen "up"), and
positive angles turn counter-clockwise on screen.  A car at heading
``a`` moving at ``speed`` advances by ``(-sin(a), -cos(a)) * speed``.

Keeping these in a separate module avoids circular imports and makes unit
testing straightforward.
"""

from __future__ import annotations

import math
from typing import Tuple

from geometry import Point, Polygon

from .policy import CarPolicy


def apply_throttle(speed: float, forward: bool, reverse: bool, policy: CarPolicy) -> float:
    """Accelerate, clamp to the forward / reverse caps, then apply friction.

    Parameters
    ----------
    speed : float
        Current signed speed (negative while reversing).
    forward, reverse : bool
        Throttle controls held this tick.
    policy : CarPolicy
        Increments and caps.
    """
    if forward:
        speed += policy.acceleration
    if reverse:
        speed -= policy.acceleration

    if speed > policy.max_speed:
        speed = policy.max_speed
    if speed < -policy.max_speed / 2:
        speed = -policy.max_speed / 2

    if speed > 0:
        speed -= policy.friction
    if speed < 0:
        speed += policy.friction
    if abs(speed) < policy.friction:
        speed = 0.0
    return speed


def steer(angle: float, speed: float, left: bool, right: bool, rate: float) -> float:
    """Turn only while moving; the direction flips when reversing."""
    if speed == 0.0:
        return angle
    flip = 1.0 if speed > 0 else -1.0
    if left:
        angle += rate * flip
    if right:
        angle -= rate * flip
    return angle


def advance(x: float, y: float, angle: float, speed: float) -> Tuple[float, float]:
    return x - math.sin(angle) * speed, y - math.cos(angle) * speed


def heading_for(direction: Point) -> float:
    """Heading whose motion vector points along *direction*."""
    return math.atan2(-direction.x, -direction.y)


def car_polygon(x: float, y: float, angle: float, width: float, height: float) -> Polygon:
    """Rectangle of the given size centred on ``(x, y)`` and rotated by *angle*."""
    rad = math.hypot(width, height) / 2
    alpha = math.atan2(width, height)
    corners = (angle - alpha, angle + alpha, math.pi + angle - alpha, math.pi + angle + alpha)
    return Polygon([Point(x - math.sin(a) * rad, y - math.cos(a) * rad) for a in corners])
