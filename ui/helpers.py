"""
ui/helpers.py
=============
Pure utility functions shared across UI modules: world → screen point
lists, alpha-surface drawing, fonts and text.
"""

from __future__ import annotations

from typing import List, Optional, Sequence, Tuple

import pygame

from .types import Camera

Point2 = Tuple[float, float]


class ViewHelpers:
    """Mixin of static drawing utilities."""

    # ── Fonts / text ──────────────────────────────────────────────────────

    @staticmethod
    def _load_font(size: int, bold: bool = False) -> pygame.font.Font:
        return pygame.font.SysFont("consolas,dejavusansmono,monospace", size, bold=bold)

    @staticmethod
    def render_text(
        surface: pygame.Surface,
        font: pygame.font.Font,
        text: str,
        pos: Tuple[int, int],
        color: Tuple[int, ...] = (230, 230, 235),
        anchor: str = "topleft",
    ) -> pygame.Rect:
        """Render text with flexible *anchor* ('topleft', 'center', 'midright' …)."""
        img = font.render(text, True, color)
        rect = img.get_rect(**{anchor: pos})
        surface.blit(img, rect)
        return rect

    # ── Coordinates ───────────────────────────────────────────────────────

    @staticmethod
    def _screen_points(cam: Camera, points: Sequence[Point2]) -> List[Tuple[int, int]]:
        out = []
        for x, y in points:
            sx, sy = cam.world_to_screen(x, y)
            out.append((int(sx), int(sy)))
        return out

    @staticmethod
    def _on_screen(pts: Sequence[Tuple[int, int]], width: int, height: int) -> bool:
        """Cheap bbox cull for a screen-space point list."""
        if not pts:
            return False
        xs = [p[0] for p in pts]
        ys = [p[1] for p in pts]
        return max(xs) >= 0 and min(xs) <= width and max(ys) >= 0 and min(ys) <= height

    # ── Alpha drawing ─────────────────────────────────────────────────────

    @staticmethod
    def draw_alpha_polygon(
        target: pygame.Surface,
        color: Tuple[int, ...],
        pts: Sequence[Tuple[int, int]],
    ) -> None:
        """Draw a semi-transparent polygon (colour tuple with 4 channels)."""
        if len(pts) < 3:
            return
        xs = [p[0] for p in pts]
        ys = [p[1] for p in pts]
        x0, y0 = min(xs), min(ys)
        w, h = max(xs) - x0 + 1, max(ys) - y0 + 1
        if w <= 0 or h <= 0 or w * h > 4_000_000:
            return
        tmp = pygame.Surface((w, h), pygame.SRCALPHA)
        pygame.draw.polygon(tmp, color, [(x - x0, y - y0) for x, y in pts])
        target.blit(tmp, (x0, y0))

    @staticmethod
    def draw_dashed_line(
        surface: pygame.Surface,
        color: Tuple[int, ...],
        a: Tuple[int, int],
        b: Tuple[int, int],
        dash: int,
        width: int = 1,
    ) -> None:
        va, vb = pygame.Vector2(a), pygame.Vector2(b)
        length = va.distance_to(vb)
        if length < 1 or dash < 1:
            return
        step = (vb - va) / length
        pos = 0.0
        while pos < length:
            end = min(pos + dash, length)
            pygame.draw.line(surface, color, va + step * pos, va + step * end, width)
            pos += dash * 2

    @staticmethod
    def _bounds(points: Sequence[Point2]) -> Optional[Tuple[float, float, float, float]]:
        if not points:
            return None
        xs = [p[0] for p in points]
        ys = [p[1] for p in points]
        return min(xs), min(ys), max(xs), max(ys)
