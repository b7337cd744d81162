"""
geometry: 2-D geometry kernel
==============================

Modules
-------
primitives
    :class:`Point`, :class:`Segment`, :class:`Touch` value types.
ops
    Vector arithmetic, scalar and vectorised segment intersection,
    nearest-point lookups.
polygon
    :class:`Polygon` containment / distance queries and boundary union.
envelope
    :class:`Envelope` capsule polygon around a segment.
"""

from .primitives import EPSILON, DegenerateGeometryError, Point, Segment, Touch
from .polygon import Polygon, PolygonSet, exhaust
from .envelope import Envelope

__all__ = [
    "EPSILON",
    "DegenerateGeometryError",
    "Point",
    "Segment",
    "Touch",
    "Polygon",
    "PolygonSet",
    "Envelope",
    "exhaust",
]
