#!/usr/bin/env python3
"""
config.py
=========
Application-wide configuration constants.

Values can be overridden via environment variables (see :mod:`main`).
This module is a thin, import-safe leaf; it never imports from
other project packages.
"""

# ── World generation defaults ────────────────────────────────────────────────
DEFAULT_ROAD_WIDTH: float = 100.0
DEFAULT_ROAD_ROUNDNESS: int = 10
DEFAULT_BUILDING_WIDTH: float = 150.0
DEFAULT_BUILDING_MIN_LENGTH: float = 150.0
DEFAULT_SPACING: float = 50.0
DEFAULT_TREE_SIZE: float = 160.0
DEFAULT_DRIVING_SIDE: str = "left"

# ── Traffic lights ───────────────────────────────────────────────────────────
LIGHT_FRAMES_PER_TICK: int = 60
LIGHT_GREEN_TICKS: int = 2
LIGHT_YELLOW_TICKS: int = 1

# ── Training defaults ────────────────────────────────────────────────────────
DEFAULT_POPULATION: int = 100
DEFAULT_HIDDEN_NEURONS: int = 6
DEFAULT_GENERATIONS: int = 20

# ── UI defaults ──────────────────────────────────────────────────────────────
WINDOW_WIDTH: int = 1200
WINDOW_HEIGHT: int = 800
TARGET_FPS: int = 60
STEPS_PER_FRAME: int = 1

# ── Storage (relative to project root) ───────────────────────────────────────
STORE_REL_DIR: str = "saves"
HISTORY_CSV_NAME: str = "training_history.csv"
