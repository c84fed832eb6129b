# SPDX-License-Identifier: Apache-2.0
"""The five DSD overlay renderers.

Each renderer is a stateless draw procedure over a :class:`Surface`; the
render loop clears the surface before calling them every frame.
"""
from __future__ import annotations

from typing import Callable, Dict, List, Optional

from smiledesign.analysis import landmarks as lm
from smiledesign.analysis.landmarks import LandmarkSet, point
from smiledesign.logging_utils import get_logger
from smiledesign.render.surface import Surface, hsl, rgba
from smiledesign.schemas import AnalysisResult

LOGGER = get_logger(__name__)

CYAN = hsl(180, 1.0, 0.5)
YELLOW = hsl(50, 1.0, 0.5)
RED = hsl(0, 1.0, 0.5)
GREEN = hsl(120, 1.0, 0.5)
FAINT_GREY = rgba(200, 200, 200, 0.2)
TOOTH_AXIS = rgba(100, 200, 255, 0.3)
REFERENCE_GREEN = rgba(0, 200, 100, 0.4)
DOT_HIGH = rgba(255, 100, 100, 0.6)
DOT_MEDIUM = rgba(255, 200, 100, 0.6)
DOT_LOW = rgba(100, 255, 100, 0.6)
LABEL = rgba(255, 255, 255, 0.9)
BAR_LABEL = rgba(255, 255, 255, 0.8)

Renderer = Callable[[Surface, LandmarkSet, int, int, Optional[AnalysisResult]], None]


def _px(landmarks: LandmarkSet, idx: int, w: int, h: int, dy: float = 0.0) -> tuple[float, float]:
    p = point(landmarks, idx)
    return p.x * w, (p.y + dy) * h


def draw_facial_guides(
    surface: Surface, landmarks: LandmarkSet, w: int, h: int, analysis: Optional[AnalysisResult] = None
) -> None:
    brow, chin = _px(landmarks, lm.BROW, w, h), _px(landmarks, lm.CHIN, w, h)
    pupils = _px(landmarks, lm.LEFT_PUPIL, w, h), _px(landmarks, lm.RIGHT_PUPIL, w, h)
    ref_y = point(landmarks, lm.UPPER_LIP).y * h
    surface.line(brow, chin, CYAN, 2)
    surface.line(*pupils, YELLOW, 2)
    surface.line((0, ref_y), (w, ref_y), FAINT_GREY, 1, dash=(5, 5))


def draw_dental_guides(
    surface: Surface, landmarks: LandmarkSet, w: int, h: int, analysis: Optional[AnalysisResult] = None
) -> None:
    surface.polyline([_px(landmarks, i, w, h) for i in lm.LOWER_LIP_CONTOUR], CYAN, 2)
    surface.line(_px(landmarks, lm.MOUTH_LEFT, w, h), _px(landmarks, lm.MOUTH_RIGHT, w, h), YELLOW, 2)
    surface.line(
        _px(landmarks, lm.UPPER_LIP, w, h, dy=-0.15),
        _px(landmarks, lm.LOWER_LIP, w, h, dy=0.15),
        CYAN,
        2,
    )
    for idx in lm.ANTERIOR_TEETH:
        surface.line(_px(landmarks, idx, w, h, dy=-0.08), _px(landmarks, idx, w, h, dy=0.08), TOOTH_AXIS, 1)


def margin_color(deviation: float):
    if deviation > 5:
        return DOT_HIGH
    if deviation > 2:
        return DOT_MEDIUM
    return DOT_LOW


def draw_gingival_analysis(
    surface: Surface, landmarks: LandmarkSet, w: int, h: int, analysis: Optional[AnalysisResult] = None
) -> None:
    contour = [point(landmarks, i) for i in lm.UPPER_INNER_LIP]
    reference = point(landmarks, lm.UPPER_LIP).y

    surface.polyline([(p.x * w, p.y * h) for p in contour], RED, 2)
    surface.line(
        (contour[0].x * w, reference * h),
        (contour[-1].x * w, reference * h),
        REFERENCE_GREEN,
        1,
        dash=(3, 3),
    )
    for p in contour:
        surface.circle((p.x * w, p.y * h), 4, margin_color(abs(p.y - reference) * 100))


def draw_measurement_annotations(
    surface: Surface, landmarks: LandmarkSet, w: int, h: int, analysis: Optional[AnalysisResult] = None
) -> None:
    if analysis is None:
        return
    m = analysis.measurements
    x, y = _px(landmarks, lm.UPPER_LIP, w, h, dy=0.05)
    surface.text(f"W/L: {m.central_incisors_wl_ratio:.0f}%", x, y, LABEL)
    x, y = _px(landmarks, lm.LOWER_LIP, w, h, dy=0.08)
    surface.text(f"Fullness: {m.smile_fullness:.0f}%", x, y, LABEL)
    x, y = _px(landmarks, lm.NOSE_BASE, w, h, dy=0.1)
    surface.text(f"Symmetry: {m.gingival_symmetry:.0f}%", x, y, LABEL)


def deviation_metrics(analysis: AnalysisResult) -> List[Dict[str, float | str]]:
    m = analysis.measurements
    return [
        {"label": "W/L", "val": m.central_incisors_wl_ratio, "ideal": 78, "range": 15},
        {"label": "GR-L", "val": m.golden_ratio_lateral, "ideal": 62, "range": 8},
        {"label": "Symm", "val": m.gingival_symmetry, "ideal": 95, "range": 10},
        {"label": "SFA", "val": 100 - min(m.smile_arc_deviation, 50), "ideal": 90, "range": 20},
    ]


def deviation_color(value: float, ideal: float, tolerance: float):
    deviation = abs(value - ideal)
    if deviation > tolerance * 0.5:
        return RED
    if deviation > tolerance * 0.25:
        return YELLOW
    return GREEN


def draw_deviation_indicators(
    surface: Surface, landmarks: LandmarkSet, w: int, h: int, analysis: Optional[AnalysisResult] = None
) -> None:
    if analysis is None:
        return
    center_x = w * 0.5
    top_y = h * 0.05
    for i, metric in enumerate(deviation_metrics(analysis)):
        x = center_x - 120 + i * 80
        surface.rect(x, top_y, 60, 3, deviation_color(metric["val"], metric["ideal"], metric["range"]))
        surface.text(str(metric["label"]), x + 30, top_y + 16, BAR_LABEL, size_px=11)
        surface.text(f"{metric['val']:.0f}%", x + 30, top_y + 27, BAR_LABEL, size_px=11)


# drawing order of the overlay layers
RENDERERS: List[tuple[str, Renderer]] = [
    ("facial_guides", draw_facial_guides),
    ("dental_guides", draw_dental_guides),
    ("gingival", draw_gingival_analysis),
    ("measurements", draw_measurement_annotations),
    ("deviation", draw_deviation_indicators),
]


def draw_overlays(
    surface: Surface,
    landmarks: LandmarkSet,
    w: int,
    h: int,
    analysis: Optional[AnalysisResult] = None,
    toggles: Optional[object] = None,
) -> List[str]:
    """Draw every layer enabled on ``toggles`` (all of them when omitted).

    A layer whose landmarks are missing (a 468-point mesh has no pupils, for
    instance) is skipped and the remaining layers still draw. Returns the
    names of the skipped layers.
    """
    failed = []
    for name, renderer in RENDERERS:
        if toggles is not None and not getattr(toggles, name):
            continue
        try:
            renderer(surface, landmarks, w, h, analysis)
        except lm.LOOKUP_ERRORS as exc:
            LOGGER.debug("overlay layer skipped", layer=name, error=repr(exc))
            failed.append(name)
    return failed
