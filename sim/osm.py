#!/usr/bin/env python3
"""
sim/osm.py
==========
OpenStreetMap / Overpass JSON import.

:func:`parse_roads` turns an Overpass ``{"elements": [...]}`` payload
into a :class:`~sim.graph.Graph`.  Nodes are projected onto a local
plane (north up, ``y`` growing southwards); ways tagged as pedestrian or
cycle paths are skipped.  Fetching the payload is left to the caller.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any, Dict, List, Tuple

from geometry import Point, Segment
from geometry.ops import inv_lerp

from .graph import Graph

log = logging.getLogger("osm")

METRES_PER_DEGREE = 111000.0
SCALE = 5.0

NON_ROAD_TYPES = ("footway", "cycleway", "path", "steps", "bridleway", "corridor")
MAJOR_ROAD_TYPES = ("motorway", "trunk", "primary", "secondary")


@dataclass(frozen=True)
class ImportPolicy:
    """Caps for city-scale payloads."""

    sample_above_nodes: int = 60000
    """Node count that switches to the sampled import."""

    max_nodes: int = 40000
    max_ways: int = 15000


def is_road(tags: Dict[str, Any]) -> bool:
    highway = str(tags.get("highway") or "")
    if not highway or highway in NON_ROAD_TYPES:
        return False
    return not any(t in highway for t in ("footway", "cycleway", "path"))


def _bounds(nodes: List[Dict[str, Any]]) -> Tuple[float, float, float, float]:
    lats = [float(n["lat"]) for n in nodes]
    lons = [float(n["lon"]) for n in nodes]
    return min(lats), max(lats), min(lons), max(lons)


def _sample(nodes: List[Dict[str, Any]], ways: List[Dict[str, Any]], policy: ImportPolicy):
    if len(nodes) > policy.max_nodes:
        step = math.ceil(len(nodes) / policy.max_nodes)
        log.info("Sampling nodes %d -> every %dth", len(nodes), step)
        nodes = nodes[::step]
    if len(ways) > policy.max_ways:
        major = [w for w in ways if (w.get("tags") or {}).get("highway") in MAJOR_ROAD_TYPES]
        major_ids = {id(w) for w in major}
        minor = [
            w for w in ways
            if (w.get("tags") or {}).get("highway") and id(w) not in major_ids
        ]
        room = max(0, policy.max_ways - len(major))
        minor = minor[:: max(1, math.ceil(len(minor) / room))][:room] if room else []
        log.info("Sampling ways %d -> %d major + %d minor", len(ways), len(major), len(minor))
        ways = major + minor
    return nodes, ways


def parse_roads(data: Dict[str, Any], policy: ImportPolicy = ImportPolicy()) -> Graph:
    """Build a road graph from an Overpass JSON payload.

    Parameters
    ----------
    data : dict
        ``{"elements": [...]}`` with ``node`` (``id``, ``lat``, ``lon``)
        and ``way`` (``nodes``, ``tags``) elements.
    policy : ImportPolicy
        Sampling caps for very large payloads.

    Returns
    -------
    Graph
        Empty when the payload holds no nodes.
    """
    elements = data.get("elements") or []
    nodes = [e for e in elements if e.get("type") == "node"]
    ways = [e for e in elements if e.get("type") == "way"]
    log.info("OSM payload: %d nodes, %d ways", len(nodes), len(ways))

    if not nodes:
        log.warning("No nodes found in OSM data")
        return Graph()
    if len(nodes) > policy.sample_above_nodes:
        nodes, ways = _sample(nodes, ways, policy)

    min_lat, max_lat, min_lon, max_lon = _bounds(nodes)
    delta_lat = max_lat - min_lat
    delta_lon = max_lon - min_lon
    height = delta_lat * METRES_PER_DEGREE * SCALE
    aspect = delta_lon / delta_lat if delta_lat > 0 else 0.0
    width = height * aspect * math.cos(math.radians(max_lat))
    log.info("OSM area: %.0fm x %.0fm", width, height)

    points: Dict[Any, Point] = {}
    for node in nodes:
        y = inv_lerp(max_lat, min_lat, float(node["lat"])) * height if delta_lat > 0 else 0.0
        x = inv_lerp(min_lon, max_lon, float(node["lon"])) * width if delta_lon > 0 else 0.0
        points[node["id"]] = Point(x, y)

    graph = Graph()
    for point in points.values():
        graph.add_point(point)
    for way in ways:
        refs = way.get("nodes") or []
        if len(refs) < 2 or not is_road(way.get("tags") or {}):
            continue
        for a, b in zip(refs, refs[1:]):
            p1, p2 = points.get(a), points.get(b)
            if p1 is not None and p2 is not None:
                graph.try_add_segment(Segment(p1, p2))

    log.info("Imported %d points and %d segments", len(graph.points), len(graph.segments))
    return graph
