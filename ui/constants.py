#!/usr/bin/env python3
"""Visual constants shared across all renderers."""

from __future__ import annotations

from typing import Dict, Sequence, Tuple

from .types import ColorRGB


class ViewConstants:
    """Mixin providing every visual / layout constant."""

    BG_COLOR: ColorRGB = (44, 124, 72)
    ROAD_COLOR: ColorRGB = (60, 60, 64)
    BORDER_COLOR: ColorRGB = (235, 235, 235)
    LANE_DASH_COLOR: ColorRGB = (245, 245, 245)
    BUILDING_COLOR: ColorRGB = (196, 186, 170)
    BUILDING_EDGE_COLOR: ColorRGB = (120, 110, 100)
    TREE_COLOR: ColorRGB = (30, 92, 48)
    TREE_EDGE_COLOR: ColorRGB = (20, 60, 32)
    OBSTACLE_COLOR: ColorRGB = (255, 136, 0)
    HUD_BG_COLOR: ColorRGB = (22, 22, 22)
    HUD_BORDER_COLOR: ColorRGB = (42, 42, 42)
    WARNING_COLOR: ColorRGB = (255, 60, 60)
    DAMAGED_COLOR: ColorRGB = (128, 128, 128)
    RAY_COLOR: ColorRGB = (255, 220, 0)
    RAY_HIT_COLOR: ColorRGB = (255, 60, 60)

    MARKING_COLORS: Dict[str, ColorRGB] = {
        "start": (0, 200, 255),
        "target": (255, 0, 200),
        "light": (40, 40, 40),
        "stop": (220, 30, 30),
        "yield": (250, 250, 250),
        "crossing": (250, 250, 250),
        "parking": (40, 90, 220),
        "marking": (200, 200, 200),
    }

    LIGHT_STATE_COLORS: Dict[str, ColorRGB] = {
        "green": (0, 255, 127),
        "yellow": (255, 210, 0),
        "red": (255, 60, 60),
        "off": (80, 80, 80),
    }

    MARKING_ALPHA = 150
    CAR_ALPHA = 200
    DAMAGED_ALPHA = 70
    LANE_DASH_PX = 12
    HUD_BLINK_MS = 500

    ZOOM_MIN = 0.05
    ZOOM_MAX = 4.0
    ZOOM_STEP = 1.15
    PAN_STEP_PX = 60
    FOLLOW_SMOOTHING = 0.1

    DEFAULT_VEHICLE_COLORS: Sequence[ColorRGB] = (
        (86, 168, 255),
        (255, 88, 88),
        (100, 226, 170),
        (246, 191, 90),
        (180, 120, 255),
        (255, 160, 100),
    )

    LEGEND_ITEMS: Sequence[Tuple[str, ColorRGB]] = (
        ("START", (0, 200, 255)),
        ("TARGET", (255, 0, 200)),
        ("OBSTACLE", (255, 136, 0)),
        ("DAMAGED", (128, 128, 128)),
        ("SENSOR", (255, 220, 0)),
    )

    SCREENSHOT_DIR = "screenshots"
