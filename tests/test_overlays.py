from __future__ import annotations

import numpy as np
import pytest

from smiledesign.render.overlays import (
    DOT_HIGH,
    DOT_LOW,
    DOT_MEDIUM,
    GREEN,
    RED,
    RENDERERS,
    YELLOW,
    deviation_color,
    deviation_metrics,
    draw_deviation_indicators,
    draw_facial_guides,
    draw_measurement_annotations,
    draw_overlays,
    margin_color,
)
from smiledesign.render.surface import Surface, hsl, rgba

from conftest import HEIGHT, WIDTH


def test_colour_helpers():
    assert rgba(255, 0, 0) == (0, 0, 255, 255)
    assert hsl(120, 1.0, 0.5) == (0, 255, 0, 255)
    assert rgba(200, 200, 200, 0.2)[3] == 51


def test_renderer_order_matches_toggles():
    assert [name for name, _ in RENDERERS] == [
        "facial_guides",
        "dental_guides",
        "gingival",
        "measurements",
        "deviation",
    ]


def test_deviation_colour_bands():
    assert deviation_color(78, 78, 15) == GREEN
    assert deviation_color(82, 78, 15) == YELLOW  # 4 > 3.75
    assert deviation_color(86, 78, 15) == RED  # 8 > 7.5
    assert deviation_color(81.75, 78, 15) == GREEN


def test_margin_dot_colours():
    assert margin_color(6) == DOT_HIGH
    assert margin_color(3) == DOT_MEDIUM
    assert margin_color(2) == DOT_LOW


def test_deviation_metrics(reference_analysis):
    metrics = deviation_metrics(reference_analysis)
    assert [m["label"] for m in metrics] == ["W/L", "GR-L", "Symm", "SFA"]
    assert metrics[3]["val"] == pytest.approx(100)


def test_deviation_bars_position(reference_landmarks, reference_analysis):
    surface = Surface(WIDTH, HEIGHT)
    draw_deviation_indicators(surface, reference_landmarks, WIDTH, HEIGHT, reference_analysis)
    # first bar: W/L 100 vs 78 is outside half the range
    assert tuple(surface.image[25, 230]) == RED
    assert tuple(surface.image[25, 270]) == (0, 0, 0, 0)


def test_mirrored_bars_flip_horizontally(reference_landmarks, reference_analysis):
    surface = Surface(WIDTH, HEIGHT, mirrored=True)
    draw_deviation_indicators(surface, reference_landmarks, WIDTH, HEIGHT, reference_analysis)
    assert tuple(surface.image[25, 410]) == RED
    assert tuple(surface.image[25, 230]) != RED


def test_annotations_need_an_analysis(reference_landmarks):
    surface = Surface(WIDTH, HEIGHT)
    draw_measurement_annotations(surface, reference_landmarks, WIDTH, HEIGHT, None)
    draw_deviation_indicators(surface, reference_landmarks, WIDTH, HEIGHT, None)
    assert not surface.image.any()


def test_facial_midline_is_drawn(reference_landmarks):
    surface = Surface(WIDTH, HEIGHT)
    draw_facial_guides(surface, reference_landmarks, WIDTH, HEIGHT)
    column = surface.image[100:400, 320, 3]
    assert (column > 0).all()


def test_redraw_after_clear_is_identical(reference_landmarks, reference_analysis):
    surface = Surface(WIDTH, HEIGHT)
    draw_overlays(surface, reference_landmarks, WIDTH, HEIGHT, reference_analysis)
    first = surface.image.copy()
    surface.clear()
    draw_overlays(surface, reference_landmarks, WIDTH, HEIGHT, reference_analysis)
    assert np.array_equal(first, surface.image)


def test_mesh_without_irises_skips_only_facial_guides(reference_landmarks, reference_analysis):
    surface = Surface(WIDTH, HEIGHT)
    skipped = draw_overlays(surface, reference_landmarks[:468], WIDTH, HEIGHT, reference_analysis)
    assert skipped == ["facial_guides"]
    # the midline is not half drawn before the pupil lookup fails
    assert surface.image[150, 320, 3] == 0
    # later layers still draw
    assert surface.image[..., 3].any()


def test_dashed_line_has_gaps():
    surface = Surface(100, 10)
    surface.line((0, 5), (100, 5), RED, 1, dash=(5, 10))
    row = surface.image[5, :, 3]
    assert row[2] > 0
    assert row[10] == 0
    assert row[17] > 0
