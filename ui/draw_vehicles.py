#!/usr/bin/env python3
"""Car polygons and the followed car's sensor rays (mixin)."""

from __future__ import annotations

from typing import Any, Mapping, Sequence

import pygame


class VehicleRenderer:
    """Mixin that draws every car of the current generation."""

    def draw_vehicles(self, surface: pygame.Surface, vehicles: Sequence[Mapping[str, Any]]) -> None:
        best = None
        for vehicle in vehicles:
            if vehicle.get("best"):
                best = vehicle
                continue
            self.draw_vehicle(surface, vehicle)
        # Followed car on top.
        if best is not None:
            self.draw_sensor(surface, best)
            self.draw_vehicle(surface, best)

    def draw_vehicle(self, surface: pygame.Surface, vehicle: Mapping[str, Any]) -> None:
        pts = self._screen_points(self.camera, vehicle["polygon"])
        if not self._on_screen(pts, self.width, self.height):
            return
        if vehicle.get("damaged"):
            self.draw_alpha_polygon(surface, (*self.DAMAGED_COLOR, self.DAMAGED_ALPHA), pts)
            return
        color = tuple(vehicle.get("color") or self.DEFAULT_VEHICLE_COLORS[0])
        if vehicle.get("best"):
            pygame.draw.polygon(surface, color, pts)
            pygame.draw.polygon(surface, (235, 235, 235), pts, 1)
        else:
            self.draw_alpha_polygon(surface, (*color, self.CAR_ALPHA // 2), pts)

    def draw_sensor(self, surface: pygame.Surface, vehicle: Mapping[str, Any]) -> None:
        cam = self.camera
        for start, end, hit in vehicle.get("rays", ()):
            ps, pe = self._screen_points(cam, (start, end))
            if hit is None:
                pygame.draw.line(surface, self.RAY_COLOR, ps, pe, 1)
                continue
            (ph,) = self._screen_points(cam, (hit,))
            pygame.draw.line(surface, self.RAY_COLOR, ps, ph, 1)
            pygame.draw.line(surface, self.RAY_HIT_COLOR, ph, pe, 1)
