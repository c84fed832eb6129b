# SPDX-License-Identifier: Apache-2.0
"""Face-mesh landmark indices used by the DSD analysis.

Indices follow the 478-point MediaPipe Face Mesh topology (468 mesh points
plus the refined iris points). Several points deliberately serve more than
one measurement; the mouth corners double as canine tips, for example.
"""
from __future__ import annotations

from typing import Any, Iterable, List, Mapping, NamedTuple, Sequence


class Landmark(NamedTuple):
    """Normalized landmark; ``x`` and ``y`` are fractions of the frame size."""

    x: float
    y: float
    z: float = 0.0


LANDMARK_COUNT = 478

NOSE_BASE = 2
BROW = 10
LIP_TOP = 12
UPPER_LIP = 13
LOWER_LIP = 14
MOUTH_LEFT = 61
MOUTH_RIGHT = 291
CHIN = 152
LEFT_TEETH_MID = 84
RIGHT_TEETH_MID = 314
LEFT_PUPIL = 468
RIGHT_PUPIL = 473

# commissure to commissure along the lower lip
LOWER_LIP_CONTOUR = (61, 146, 91, 181, 84, 17, 314, 405, 321, 375, 291)
UPPER_INNER_LIP = (78, 191, 80, 81, 82, 13, 312, 311, 310, 415, 308)
ANTERIOR_TEETH = (82, 83, 84, 13, 314, 315, 316)

LandmarkSet = Sequence[Any]

# what a lookup on a short or malformed landmark list can raise
LOOKUP_ERRORS = (IndexError, KeyError, AttributeError, TypeError, ValueError, ArithmeticError)


def point(landmarks: LandmarkSet, idx: int) -> Landmark:
    """Return landmark ``idx`` as a :class:`Landmark`.

    Accepts objects exposing ``x``/``y`` (MediaPipe ``NormalizedLandmark``,
    pydantic points), ``{"x", "y"[, "z"]}`` mappings and plain
    ``(x, y[, z])`` sequences.
    """
    p = landmarks[idx]
    if isinstance(p, Mapping):
        return Landmark(float(p["x"]), float(p["y"]), float(p.get("z") or 0.0))
    if hasattr(p, "x"):
        return Landmark(float(p.x), float(p.y), float(getattr(p, "z", 0.0) or 0.0))
    if len(p) > 2:
        return Landmark(float(p[0]), float(p[1]), float(p[2]))
    return Landmark(float(p[0]), float(p[1]))


def as_landmarks(points: Iterable[Any]) -> List[Landmark]:
    """Convert an iterable of landmark-like items to a list of :class:`Landmark`."""
    items = list(points)
    return [point(items, i) for i in range(len(items))]


def to_pixels(p: Landmark, width: float, height: float) -> tuple[float, float]:
    return p.x * width, p.y * height
