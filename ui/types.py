"""
ui/types.py
===========
Lightweight data containers used across every UI module.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

ColorRGB = Tuple[int, int, int]
ColorRGBA = Tuple[int, int, int, int]


@dataclass
class Camera:
    """Viewport mapping world coordinates to screen pixels.

    World and screen share orientation (``y`` grows downwards), so the
    mapping is a translation plus a uniform zoom.
    """
    screen_w: int
    screen_h: int
    world_x: float = 0.0
    world_y: float = 0.0
    zoom: float = 0.5

    def world_to_screen(self, wx: float, wy: float) -> Tuple[float, float]:
        sx = self.screen_w / 2 + (wx - self.world_x) * self.zoom
        sy = self.screen_h / 2 + (wy - self.world_y) * self.zoom
        return sx, sy

    def screen_to_world(self, sx: float, sy: float) -> Tuple[float, float]:
        wx = (sx - self.screen_w / 2) / self.zoom + self.world_x
        wy = (sy - self.screen_h / 2) / self.zoom + self.world_y
        return wx, wy

    def pan(self, dx_px: float, dy_px: float) -> None:
        self.world_x += dx_px / self.zoom
        self.world_y += dy_px / self.zoom

    def follow(self, wx: float, wy: float, smoothing: float) -> None:
        """Ease the centre towards ``(wx, wy)``; *smoothing* in ``(0, 1]``."""
        self.world_x += (wx - self.world_x) * smoothing
        self.world_y += (wy - self.world_y) * smoothing

    def fit(self, bounds: Tuple[float, float, float, float], margin: float = 0.9) -> None:
        """Centre on ``(min_x, min_y, max_x, max_y)`` and zoom so it fills the view."""
        min_x, min_y, max_x, max_y = bounds
        self.world_x = (min_x + max_x) / 2
        self.world_y = (min_y + max_y) / 2
        span_x = max(max_x - min_x, 1.0)
        span_y = max(max_y - min_y, 1.0)
        self.zoom = margin * min(self.screen_w / span_x, self.screen_h / span_y)
