#!/usr/bin/env python3

from .types import Camera, ColorRGB, ColorRGBA
from .constants import ViewConstants
from .helpers import ViewHelpers
from .draw_world import WorldRenderer
from .draw_vehicles import VehicleRenderer
from .hud import HudRenderer
from .pygame_view import PygameWorldView, run_pygame_view

__all__ = [
    "Camera",
    "ColorRGB",
    "ColorRGBA",
    "ViewConstants",
    "ViewHelpers",
    "WorldRenderer",
    "VehicleRenderer",
    "HudRenderer",
    "PygameWorldView",
    "run_pygame_view",
]
