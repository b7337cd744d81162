"""
geometry/ops.py
===============
Vector helpers and segment intersection.

Scalar helpers operate on :class:`~geometry.primitives.Point`.  The
vectorised helpers operate on ``(n, 4)`` float arrays of edges laid out
as ``[x1, y1, x2, y2]`` so that sensors and polygon queries can test
one segment against thousands of edges in a single numpy pass.
"""

from __future__ import annotations

import math
from typing import Iterable, Optional, Sequence, Tuple

import numpy as np

from .primitives import EPSILON, Point, Segment, Touch

# ── Scalar vector helpers ─────────────────────────────────────────────────────


def lerp(a: float, b: float, t: float) -> float:
    return a + (b - a) * t


def inv_lerp(a: float, b: float, v: float) -> float:
    return (v - a) / (b - a)


def add(p1: Point, p2: Point) -> Point:
    return Point(p1.x + p2.x, p1.y + p2.y)


def subtract(p1: Point, p2: Point) -> Point:
    return Point(p1.x - p2.x, p1.y - p2.y)


def scale(p: Point, scaler: float) -> Point:
    return Point(p.x * scaler, p.y * scaler)


def average(p1: Point, p2: Point) -> Point:
    return Point((p1.x + p2.x) / 2, (p1.y + p2.y) / 2)


def dot(p1: Point, p2: Point) -> float:
    return p1.x * p2.x + p1.y * p2.y


def magnitude(p: Point) -> float:
    return math.hypot(p.x, p.y)


def normalize(p: Point) -> Point:
    mag = magnitude(p)
    if mag == 0.0:
        return Point(0.0, 0.0)
    return scale(p, 1.0 / mag)


def perpendicular(p: Point) -> Point:
    return Point(-p.y, p.x)


def distance(p1: Point, p2: Point) -> float:
    return math.hypot(p1.x - p2.x, p1.y - p2.y)


def angle(p: Point) -> float:
    return math.atan2(p.y, p.x)


def translate(loc: Point, angle_rad: float, offset: float) -> Point:
    return Point(
        loc.x + math.cos(angle_rad) * offset,
        loc.y + math.sin(angle_rad) * offset,
    )


def get_nearest_point(
    loc: Point,
    points: Iterable[Point],
    threshold: float = math.inf,
) -> Optional[Point]:
    """Closest of *points* to *loc* strictly within *threshold*, or ``None``."""
    nearest: Optional[Point] = None
    min_dist = threshold
    for point in points:
        dist = distance(point, loc)
        if dist < min_dist:
            min_dist = dist
            nearest = point
    return nearest


def get_nearest_segment(
    loc: Point,
    segments: Iterable[Segment],
    threshold: float = math.inf,
) -> Optional[Segment]:
    nearest: Optional[Segment] = None
    min_dist = threshold
    for seg in segments:
        dist = seg.distance_to_point(loc)
        if dist < min_dist:
            min_dist = dist
            nearest = seg
    return nearest


def get_intersection(a: Point, b: Point, c: Point, d: Point) -> Optional[Touch]:
    """Intersection of segments *ab* and *cd*.

    The returned :class:`Touch` carries the fraction along *ab*.
    Parallel or non-overlapping segments return ``None``.
    """
    t_top = (d.x - c.x) * (a.y - c.y) - (d.y - c.y) * (a.x - c.x)
    u_top = (c.y - a.y) * (a.x - b.x) - (c.x - a.x) * (a.y - b.y)
    bottom = (d.y - c.y) * (b.x - a.x) - (d.x - c.x) * (b.y - a.y)

    if abs(bottom) > EPSILON:
        t = t_top / bottom
        u = u_top / bottom
        if 0.0 <= t <= 1.0 and 0.0 <= u <= 1.0:
            return Touch(lerp(a.x, b.x, t), lerp(a.y, b.y, t), t)
    return None


# ── Vectorised edge queries ───────────────────────────────────────────────────

EMPTY_EDGES = np.zeros((0, 4), dtype=float)


def segments_to_array(segments: Sequence[Segment]) -> np.ndarray:
    """Pack *segments* into an ``(n, 4)`` edge array."""
    if not segments:
        return EMPTY_EDGES
    return np.array(
        [(s.p1.x, s.p1.y, s.p2.x, s.p2.y) for s in segments], dtype=float
    )


def points_to_edges(points: Sequence[Tuple[float, float]]) -> np.ndarray:
    """Closed ring of *points* as an ``(n, 4)`` edge array."""
    xy = np.asarray(points, dtype=float).reshape(-1, 2)
    if len(xy) < 2:
        return EMPTY_EDGES
    return np.hstack([xy, np.roll(xy, -1, axis=0)])


def intersection_params(
    a: np.ndarray, b: np.ndarray
) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Pairwise intersection parameters of edges *a* (n) against *b* (m).

    Returns
    -------
    tuple
        ``(t, u, hit)`` arrays of shape ``(n, m)``; ``t`` is the fraction
        along the *a* edge, ``u`` along the *b* edge, ``hit`` marks the
        pairs that actually touch.
    """
    ax, ay, bx, by = (a[:, i, None] for i in range(4))
    cx, cy, dx, dy = (b[None, :, i] for i in range(4))

    t_top = (dx - cx) * (ay - cy) - (dy - cy) * (ax - cx)
    u_top = (cy - ay) * (ax - bx) - (cx - ax) * (ay - by)
    bottom = (dy - cy) * (bx - ax) - (dx - cx) * (by - ay)

    valid = np.abs(bottom) > EPSILON
    safe = np.where(valid, bottom, 1.0)
    t = t_top / safe
    u = u_top / safe
    hit = valid & (t >= 0.0) & (t <= 1.0) & (u >= 0.0) & (u <= 1.0)
    return t, u, hit


def cast_ray(start: Point, end: Point, edges: np.ndarray) -> Optional[Touch]:
    """Nearest hit of the segment *start*→*end* against *edges*."""
    if len(edges) == 0:
        return None
    ray = np.array([[start.x, start.y, end.x, end.y]], dtype=float)
    t, _, hit = intersection_params(ray, edges)
    if not hit.any():
        return None
    offsets = np.where(hit[0], t[0], np.inf)
    best = float(offsets.min())
    return Touch(lerp(start.x, end.x, best), lerp(start.y, end.y, best), best)


def any_crossing(a: np.ndarray, b: np.ndarray) -> bool:
    """True when any edge of *a* touches any edge of *b*."""
    if len(a) == 0 or len(b) == 0:
        return False
    return bool(intersection_params(a, b)[2].any())


def point_edge_distances(x: float, y: float, edges: np.ndarray) -> np.ndarray:
    """Distance from ``(x, y)`` to every edge of *edges*."""
    x1, y1, x2, y2 = edges[:, 0], edges[:, 1], edges[:, 2], edges[:, 3]
    dx = x2 - x1
    dy = y2 - y1
    len_sq = dx * dx + dy * dy
    t = ((x - x1) * dx + (y - y1) * dy) / np.where(len_sq > 0.0, len_sq, 1.0)
    t = np.clip(np.where(len_sq > 0.0, t, 0.0), 0.0, 1.0)
    return np.hypot(x1 + t * dx - x, y1 + t * dy - y)


def edge_crossings(xy: np.ndarray, edges: np.ndarray) -> np.ndarray:
    """Ray-casting crossing matrix: points ``(p, 2)`` against edges ``(e, 4)``.

    Entry ``[i, j]`` is true when a horizontal ray from point *i* towards
    +x crosses edge *j*.  Summing a row over one polygon's edges and taking
    the parity gives point-in-polygon.
    """
    px = xy[:, 0, None]
    py = xy[:, 1, None]
    x1, y1, x2, y2 = (edges[None, :, i] for i in range(4))
    straddle = (y1 > py) != (y2 > py)
    dy = np.where(straddle, y2 - y1, 1.0)
    x_cross = (x2 - x1) * (py - y1) / dy + x1
    return straddle & (px < x_cross)
