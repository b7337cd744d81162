#!/usr/bin/env python3
"""
Main view class: combines all UI mixins into one runnable Pygame window.

Module layout
─────────────
    ui/
    ├── types.py           – ColorRGB, ColorRGBA, Camera
    ├── constants.py       – ViewConstants mixin (all class-level constants)
    ├── helpers.py         – ViewHelpers mixin  (static utilities)
    ├── draw_world.py      – WorldRenderer mixin (roads, markings, scenery)
    ├── draw_vehicles.py   – VehicleRenderer mixin (cars, sensor rays)
    ├── hud.py             – HudRenderer mixin  (HUD, legend, debug, splash)
    └── pygame_view.py     – PygameWorldView (this file – main loop)
"""

from __future__ import annotations

import os
from datetime import datetime
from typing import Any, Dict, List, Optional

import pygame

from .constants import ViewConstants
from .draw_vehicles import VehicleRenderer
from .draw_world import WorldRenderer
from .helpers import ViewHelpers
from .hud import HudRenderer
from .types import Camera


class PygameWorldView(
    ViewConstants,
    ViewHelpers,
    WorldRenderer,
    VehicleRenderer,
    HudRenderer,
):
    """Driving-world visualiser powered by Pygame.

    The view owns the frame clock: every frame it calls ``bridge.step()``
    once, then renders the bridge's draw-data.  It never touches the
    world or the trainer directly.
    """

    def __init__(self, bridge: Any, width: int = 1200, height: int = 800, fps: int = 60):
        self.bridge = bridge
        self.width = width
        self.height = height
        self.fps = fps

        self.screen: Optional[pygame.Surface] = None
        self.clock: Optional[pygame.time.Clock] = None
        self.font_small: Optional[pygame.font.Font] = None
        self.font_tiny: Optional[pygame.font.Font] = None
        self.font_title: Optional[pygame.font.Font] = None

        self.camera = Camera(width, height)
        self.time_seconds = 0.0

        # UI state
        self.paused = False
        self.show_debug = False
        self.show_legend = True
        self.show_splash = True
        self.follow = True
        self._fitted = False
        self._screenshot_flash_until = 0.0

    # ------------------------------------------------------------------ #
    #  Resize                                                              #
    # ------------------------------------------------------------------ #
    def _handle_resize(self, new_w: int, new_h: int) -> None:
        self.width = max(400, new_w)
        self.height = max(300, new_h)
        self.camera.screen_w = self.width
        self.camera.screen_h = self.height
        self.screen = pygame.display.set_mode(
            (self.width, self.height), pygame.RESIZABLE
        )

    # ------------------------------------------------------------------ #
    #  Screenshot                                                          #
    # ------------------------------------------------------------------ #
    def _take_screenshot(self) -> None:
        if self.screen is None:
            return
        os.makedirs(self.SCREENSHOT_DIR, exist_ok=True)
        stamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        path = os.path.join(self.SCREENSHOT_DIR, f"world_{stamp}.png")
        pygame.image.save(self.screen, path)
        self._screenshot_flash_until = self.time_seconds + 0.35

    # ------------------------------------------------------------------ #
    #  Camera                                                              #
    # ------------------------------------------------------------------ #
    def _fit_world(self, data: Dict[str, Any]) -> None:
        points = [p for ring in data.get("envelopes", ()) for p in ring]
        bounds = self._bounds(points)
        if bounds is not None:
            self.camera.fit(bounds)
            self._fitted = True

    def _follow_best(self, vehicles: List[Dict[str, Any]]) -> None:
        for vehicle in vehicles:
            if vehicle.get("best"):
                self.camera.follow(vehicle["x"], vehicle["y"], self.FOLLOW_SMOOTHING)
                return

    def _set_paused(self, paused: bool) -> None:
        self.paused = paused
        self.bridge.set_paused(paused)

    def _handle_key(self, key: int) -> None:
        cam = self.camera
        if key == pygame.K_SPACE:
            self._set_paused(not self.paused)
        elif key == pygame.K_F3:
            self.show_debug = not self.show_debug
        elif key == pygame.K_l:
            self.show_legend = not self.show_legend
        elif key == pygame.K_f:
            self.follow = not self.follow
        elif key == pygame.K_r:
            self.bridge.reset()
            self._fitted = False
            self.follow = True
            self._set_paused(False)
        elif key == pygame.K_F12:
            self._take_screenshot()
        elif key in (pygame.K_EQUALS, pygame.K_PLUS, pygame.K_KP_PLUS):
            cam.zoom = min(self.ZOOM_MAX, cam.zoom * self.ZOOM_STEP)
        elif key in (pygame.K_MINUS, pygame.K_KP_MINUS):
            cam.zoom = max(self.ZOOM_MIN, cam.zoom / self.ZOOM_STEP)
        elif key in (pygame.K_LEFT, pygame.K_RIGHT, pygame.K_UP, pygame.K_DOWN):
            self.follow = False
            dx = {pygame.K_LEFT: -1, pygame.K_RIGHT: 1}.get(key, 0)
            dy = {pygame.K_UP: -1, pygame.K_DOWN: 1}.get(key, 0)
            cam.pan(dx * self.PAN_STEP_PX, dy * self.PAN_STEP_PX)

    # ------------------------------------------------------------------ #
    #  Main loop                                                           #
    # ------------------------------------------------------------------ #
    def run(self) -> None:
        pygame.init()
        pygame.display.set_caption("DRIVING WORLD")
        self.screen = pygame.display.set_mode(
            (self.width, self.height), pygame.RESIZABLE
        )
        self.clock = pygame.time.Clock()
        self.font_small = self._load_font(13, bold=False)
        self.font_tiny = self._load_font(11, bold=False)
        self.font_title = self._load_font(28, bold=True)

        running = True
        while running:
            delta_time = self.clock.tick(self.fps) / 1000.0
            self.time_seconds += delta_time

            # ---- events ------------------------------------------------- #
            for event in pygame.event.get():
                if event.type == pygame.QUIT:
                    running = False
                elif event.type == pygame.VIDEORESIZE:
                    self._handle_resize(event.w, event.h)
                elif event.type == pygame.KEYDOWN:
                    if self.show_splash:
                        self.show_splash = False
                        continue
                    self._handle_key(event.key)

            # ---- splash ------------------------------------------------- #
            if self.show_splash:
                self.screen.fill(self.HUD_BG_COLOR)
                self._draw_splash(self.screen, self.time_seconds)
                pygame.display.flip()
                continue

            # ---- simulation step ---------------------------------------- #
            self.bridge.step()
            finished = self.bridge.is_finished()

            data = self.bridge.get_world_draw_data()
            vehicles = self.bridge.get_vehicles()
            status = self.bridge.get_status()

            if not self._fitted:
                self._fit_world(data)
            if self.follow and not self.paused:
                self._follow_best(vehicles)

            # ---- render ------------------------------------------------- #
            self.screen.fill(self.BG_COLOR)
            self.draw_world(self.screen, data)
            self.draw_vehicles(self.screen, vehicles)

            # HUD layers (drawn on top, unzoomed)
            self.draw_hud(self.screen, status, vehicles, self.time_seconds)
            if self.show_legend:
                self._draw_legend(self.screen)
            if self.show_debug:
                self._draw_debug_overlay(self.screen, status, delta_time)
            if self.paused:
                self._draw_pause_banner(self.screen)
            elif finished:
                self._draw_pause_banner(self.screen, "FINISHED")
            if self.time_seconds < self._screenshot_flash_until:
                flash = pygame.Surface(
                    (self.width, self.height), pygame.SRCALPHA
                )
                flash.fill((255, 255, 255, 40))
                self.screen.blit(flash, (0, 0))

            pygame.display.flip()

        pygame.quit()


# ---------------------------------------------------------------------- #
#  Convenience entry point                                                 #
# ---------------------------------------------------------------------- #
def run_pygame_view(
    bridge: Any, width: int = 1200, height: int = 800, fps: int = 60
) -> None:
    view = PygameWorldView(bridge=bridge, width=width, height=height, fps=fps)
    view.run()


if __name__ == "__main__":
    raise SystemExit(
        "pygame_view.py needs a SimBridge. Run `python main.py` "
        "or `python demo.py`."
    )
