#!/usr/bin/env python3
"""Road surface, borders, lane guides, scenery, markings and obstacles (mixin)."""

from __future__ import annotations

from typing import Any, Dict, Mapping

import pygame


class WorldRenderer:
    """Mixin that draws the world draw-data produced by :meth:`World.draw_data`."""

    def draw_world(self, surface: pygame.Surface, data: Mapping[str, Any]) -> None:
        self.draw_roads(surface, data)
        self.draw_markings(surface, data)
        self.draw_obstacles(surface, data)
        self.draw_scenery(surface, data)

    # ------------------------------------------------------------------ #
    #  Roads                                                               #
    # ------------------------------------------------------------------ #

    def draw_roads(self, surface: pygame.Surface, data: Mapping[str, Any]) -> None:
        cam = self.camera
        for ring in data.get("envelopes", ()):
            pts = self._screen_points(cam, ring)
            if self._on_screen(pts, self.width, self.height):
                pygame.draw.polygon(surface, self.ROAD_COLOR, pts)

        border_w = max(1, int(4 * cam.zoom))
        for a, b in data.get("road_borders", ()):
            pa, pb = self._screen_points(cam, (a, b))
            pygame.draw.line(surface, self.BORDER_COLOR, pa, pb, border_w)

        dash = max(2, int(self.LANE_DASH_PX * cam.zoom * 2))
        for a, b in data.get("lane_guides", ()):
            pa, pb = self._screen_points(cam, (a, b))
            self.draw_dashed_line(surface, self.LANE_DASH_COLOR, pa, pb, dash, max(1, int(2 * cam.zoom)))

    # ------------------------------------------------------------------ #
    #  Markings / obstacles                                                #
    # ------------------------------------------------------------------ #

    def draw_markings(self, surface: pygame.Surface, data: Mapping[str, Any]) -> None:
        cam = self.camera
        for marking in data.get("markings", ()):
            pts = self._screen_points(cam, marking["poly"])
            if not self._on_screen(pts, self.width, self.height):
                continue
            color = self.MARKING_COLORS.get(marking["kind"], self.MARKING_COLORS["marking"])
            self.draw_alpha_polygon(surface, (*color, self.MARKING_ALPHA), pts)
            if marking["kind"] == "light":
                self._draw_light(surface, marking)

    def _draw_light(self, surface: pygame.Surface, marking: Dict[str, Any]) -> None:
        state = marking.get("state") or "off"
        sx, sy = self.camera.world_to_screen(*marking["center"])
        radius = max(2, int(8 * self.camera.zoom))
        pygame.draw.circle(surface, self.LIGHT_STATE_COLORS.get(state, (80, 80, 80)),
                           (int(sx), int(sy)), radius)

    def draw_obstacles(self, surface: pygame.Surface, data: Mapping[str, Any]) -> None:
        cam = self.camera
        for obstacle in data.get("obstacles", ()):
            pts = self._screen_points(cam, obstacle["poly"])
            if self._on_screen(pts, self.width, self.height):
                pygame.draw.polygon(surface, self.OBSTACLE_COLOR, pts)
                pygame.draw.polygon(surface, (0, 0, 0), pts, 1)

    # ------------------------------------------------------------------ #
    #  Buildings / trees                                                   #
    # ------------------------------------------------------------------ #

    def draw_scenery(self, surface: pygame.Surface, data: Mapping[str, Any]) -> None:
        cam = self.camera
        for building in data.get("buildings", ()):
            pts = self._screen_points(cam, building["base"])
            if not self._on_screen(pts, self.width, self.height):
                continue
            shadow = [(x + 3, y + 3) for x, y in pts]
            self.draw_alpha_polygon(surface, (0, 0, 0, 40), shadow)
            pygame.draw.polygon(surface, self.BUILDING_COLOR, pts)
            pygame.draw.polygon(surface, self.BUILDING_EDGE_COLOR, pts, 1)

        for tree in data.get("trees", ()):
            pts = self._screen_points(cam, tree["base"])
            if not self._on_screen(pts, self.width, self.height):
                continue
            pygame.draw.polygon(surface, self.TREE_COLOR, pts)
            pygame.draw.polygon(surface, self.TREE_EDGE_COLOR, pts, 1)
