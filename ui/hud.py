#!/usr/bin/env python3
"""HUD panel, legend, debug overlay, splash screen, and pause banner (mixin)."""

from __future__ import annotations

from typing import Any, Mapping, Sequence

import pygame


class HudRenderer:
    """Mixin that draws every overlay / HUD element."""

    # ------------------------------------------------------------------ #
    #  Main HUD panel                                                      #
    # ------------------------------------------------------------------ #

    def draw_hud(
        self,
        surface: pygame.Surface,
        status: Mapping[str, Any],
        vehicles: Sequence[Mapping[str, Any]],
        tick: float,
    ) -> None:
        if self.font_small is None or self.font_tiny is None:
            return

        damaged = sum(1 for v in vehicles if v.get("damaged"))
        reached = sum(1 for v in vehicles if v.get("reached_target"))
        best_fitness = status.get("best_fitness")
        lines = [
            f"PHASE      {str(status.get('phase', '')).upper()}",
            f"GENERATION {status.get('generation', 0)}",
            f"TICK       {status.get('tick', 0)}",
            f"ACTIVE     {status.get('active', 0)} / {status.get('population', 0)}",
            f"DAMAGED    {damaged}",
            f"REACHED    {reached}",
            f"BEST       {'-' if best_fitness is None else f'{best_fitness:.1f}'}",
        ]
        progress = status.get("progress")
        if progress:
            phase, done, total = progress
            lines.append(f"BUILD      {phase} {done}/{total}")

        row_h = 16
        panel = pygame.Rect(16, self.height - 16 - (len(lines) * row_h + 34), 260,
                            len(lines) * row_h + 34)
        pygame.draw.rect(surface, self.HUD_BG_COLOR, panel, border_radius=6)
        pygame.draw.rect(surface, self.HUD_BORDER_COLOR, panel, width=1, border_radius=6)

        title = self.font_small.render("TRAINING", True, (180, 180, 180))
        surface.blit(title, (panel.x + 10, panel.y + 6))
        y = panel.y + 26
        for line in lines:
            surface.blit(self.font_tiny.render(line, True, (240, 240, 240)), (panel.x + 10, y))
            y += row_h

        error = status.get("error")
        blink_on = int((tick * 1000) // self.HUD_BLINK_MS) % 2 == 0
        if error and blink_on:
            warn = self.font_tiny.render(str(error)[:80], True, self.WARNING_COLOR)
            surface.blit(warn, (16, 16 if not self.show_debug else 130))

    # ------------------------------------------------------------------ #
    #  Splash screen                                                       #
    # ------------------------------------------------------------------ #

    def _draw_splash(self, surface: pygame.Surface, tick: float) -> None:
        if self.font_title is None or self.font_small is None:
            return
        title = self.font_title.render("DRIVING WORLD", True, (240, 240, 240))
        surface.blit(
            title,
            title.get_rect(center=(self.width // 2, self.height // 2 - 30)),
        )
        if int(tick * 2) % 2 == 0:
            prompt = self.font_small.render("Press any key to start", True, (160, 160, 160))
            surface.blit(
                prompt,
                prompt.get_rect(center=(self.width // 2, self.height // 2 + 20)),
            )
        lines = [
            "SPACE  Pause/Resume",
            "+ / -  Zoom in/out",
            "ARROWS Pan (stops following)",
            "F      Follow best car",
            "R      Restart training",
            "L      Toggle legend",
            "F3     Debug overlay",
            "F12    Screenshot",
        ]
        y = self.height // 2 + 60
        for line in lines:
            t = self.font_tiny.render(line, True, (200, 200, 200)) if self.font_tiny else None
            if t:
                surface.blit(t, t.get_rect(center=(self.width // 2, y)))
                y += 16

    # ------------------------------------------------------------------ #
    #  Legend                                                               #
    # ------------------------------------------------------------------ #

    def _draw_legend(self, surface: pygame.Surface) -> None:
        if self.font_tiny is None:
            return
        x = self.width - 120
        y = self.height - 16 - len(self.LEGEND_ITEMS) * 18 - 8
        box_w, box_h = 112, len(self.LEGEND_ITEMS) * 18 + 10
        pygame.draw.rect(
            surface, self.HUD_BG_COLOR, (x - 6, y - 4, box_w, box_h), border_radius=4
        )
        pygame.draw.rect(
            surface, self.HUD_BORDER_COLOR, (x - 6, y - 4, box_w, box_h), width=1, border_radius=4
        )
        for label, color in self.LEGEND_ITEMS:
            pygame.draw.circle(surface, color, (x + 4, y + 6), 4)
            text = self.font_tiny.render(label, True, (200, 200, 200))
            surface.blit(text, (x + 14, y))
            y += 18

    # ------------------------------------------------------------------ #
    #  Debug / FPS overlay                                                 #
    # ------------------------------------------------------------------ #

    def _draw_debug_overlay(
        self, surface: pygame.Surface, status: Mapping[str, Any], dt: float
    ) -> None:
        if self.font_tiny is None:
            return
        fps = self.clock.get_fps() if self.clock else 0.0
        cam = self.camera
        lines = [
            f"FPS  {fps:.1f}",
            f"DT   {dt * 1000:.1f} ms",
            f"ZOOM {cam.zoom:.2f}x",
            f"CAM  {cam.world_x:.0f},{cam.world_y:.0f}",
            f"RES  {self.width}x{self.height}",
            f"TIME {self.time_seconds:.1f}s",
            f"STORE {status.get('store') or '-'}",
        ]
        x, y = 16, 16
        for line in lines:
            text = self.font_tiny.render(line, True, (0, 255, 127))
            surface.blit(text, (x, y))
            y += 14

    # ------------------------------------------------------------------ #
    #  Pause banner                                                        #
    # ------------------------------------------------------------------ #

    def _draw_pause_banner(self, surface: pygame.Surface, label: str = "PAUSED") -> None:
        overlay = pygame.Surface((self.width, self.height), pygame.SRCALPHA)
        overlay.fill((0, 0, 0, 100))
        surface.blit(overlay, (0, 0))
        if self.font_title:
            text = self.font_title.render(label, True, (220, 220, 220))
            surface.blit(text, text.get_rect(center=(self.width // 2, self.height // 2)))
