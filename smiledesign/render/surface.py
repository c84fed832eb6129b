# SPDX-License-Identifier: Apache-2.0
"""Transparent BGRA drawing surface used by the overlay renderers."""
from __future__ import annotations

import colorsys
from typing import Iterable, Optional, Sequence, Tuple

import cv2
import numpy as np

Color = Tuple[int, int, int, int]
Point = Tuple[float, float]

FONT = cv2.FONT_HERSHEY_SIMPLEX
# Hershey simplex glyph height at scale 1.0, in pixels
_FONT_PX = 22.0


def rgba(r: int, g: int, b: int, a: float = 1.0) -> Color:
    return (int(b), int(g), int(r), int(round(a * 255)))


def hsl(h: float, s: float, l: float, a: float = 1.0) -> Color:
    """CSS-style ``hsl()`` colour; ``s`` and ``l`` are fractions."""
    r, g, b = colorsys.hls_to_rgb(h / 360.0, l, s)
    return rgba(round(r * 255), round(g * 255), round(b * 255), a)


class Surface:
    """BGRA image with canvas-like drawing calls.

    With ``mirrored=True`` every x coordinate is reflected about the
    vertical centre line, matching a front-facing camera preview. Text
    positions are mirrored, glyphs are not.
    """

    def __init__(self, width: int, height: int, mirrored: bool = False):
        self.mirrored = mirrored
        self.image = np.zeros((height, width, 4), dtype=np.uint8)

    @property
    def width(self) -> int:
        return self.image.shape[1]

    @property
    def height(self) -> int:
        return self.image.shape[0]

    def ensure_size(self, width: int, height: int) -> bool:
        """Reallocate when the frame size changed; return True if it did."""
        if (width, height) == (self.width, self.height):
            return False
        self.image = np.zeros((height, width, 4), dtype=np.uint8)
        return True

    def clear(self) -> None:
        self.image[:] = 0

    def _pt(self, x: float, y: float) -> Tuple[int, int]:
        if self.mirrored:
            x = self.width - x
        return int(round(x)), int(round(y))

    def line(
        self,
        start: Point,
        end: Point,
        color: Color,
        thickness: int = 1,
        dash: Optional[Tuple[float, float]] = None,
    ) -> None:
        if dash is None:
            cv2.line(self.image, self._pt(*start), self._pt(*end), color, thickness, cv2.LINE_AA)
            return
        for a, b in _dash_segments(start, end, dash):
            cv2.line(self.image, self._pt(*a), self._pt(*b), color, thickness, cv2.LINE_AA)

    def polyline(self, points: Sequence[Point], color: Color, thickness: int = 1) -> None:
        if len(points) < 2:
            return
        pts = np.array([self._pt(x, y) for x, y in points], dtype=np.int32).reshape(-1, 1, 2)
        cv2.polylines(self.image, [pts], False, color, thickness, cv2.LINE_AA)

    def circle(self, center: Point, radius: int, color: Color) -> None:
        cv2.circle(self.image, self._pt(*center), radius, color, -1, cv2.LINE_AA)

    def rect(self, x: float, y: float, w: float, h: float, color: Color) -> None:
        x0, x1 = (self.width - x - w, self.width - x) if self.mirrored else (x, x + w)
        cv2.rectangle(
            self.image,
            (int(round(x0)), int(round(y))),
            (int(round(x1)) - 1, int(round(y + h)) - 1),
            color,
            -1,
        )

    def text(self, label: str, x: float, y: float, color: Color, size_px: float = 12, center: bool = True) -> None:
        scale = size_px / _FONT_PX
        px, py = self._pt(x, y)
        if center:
            (tw, _), _ = cv2.getTextSize(label, FONT, scale, 1)
            px -= tw // 2
        cv2.putText(self.image, label, (px, py), FONT, scale, color, 1, cv2.LINE_AA)


def _dash_segments(start: Point, end: Point, dash: Tuple[float, float]) -> Iterable[Tuple[Point, Point]]:
    (x0, y0), (x1, y1) = start, end
    length = float(np.hypot(x1 - x0, y1 - y0))
    on, off = dash
    if length == 0 or on <= 0:
        return
    ux, uy = (x1 - x0) / length, (y1 - y0) / length
    pos = 0.0
    while pos < length:
        stop = min(pos + on, length)
        yield (x0 + ux * pos, y0 + uy * pos), (x0 + ux * stop, y0 + uy * stop)
        pos += on + off
