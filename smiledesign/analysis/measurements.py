# SPDX-License-Identifier: Apache-2.0
"""Geometric DSD measurements derived from one set of face landmarks."""
from __future__ import annotations

import math
from typing import Any, Dict

from smiledesign.analysis import landmarks as lm
from smiledesign.analysis.landmarks import LandmarkSet, point
from smiledesign.logging_utils import get_logger
from smiledesign.schemas import Measurements, SmilePathway

LOGGER = get_logger(__name__)

# normalized-unit to approximate millimetre scale
MM_SCALE = 10.0
CENTRAL_SHARE = 0.35
LATERAL_SHARE = 0.25
CANINE_SHARE = 0.20
SMILE_EXPANSION = 0.15
INTERCANINE_SCALE = 0.15


def _defaults() -> Dict[str, Any]:
    return Measurements().model_dump()


def _finite(values: Dict[str, Any], defaults: Dict[str, Any]) -> Dict[str, Any]:
    """Replace non-finite numbers (NaN input coordinates) with field defaults."""
    clean: Dict[str, Any] = {}
    for key, value in values.items():
        if isinstance(value, float) and not math.isfinite(value):
            clean[key] = defaults[key]
        elif isinstance(value, list) and not all(math.isfinite(v) for v in value):
            clean[key] = defaults[key]
        else:
            clean[key] = value
    return clean


def compute_measurements(landmarks: LandmarkSet, width: int, height: int) -> Measurements:
    """Derive the DSD measurement record for one frame.

    ``landmarks`` are normalized to [0, 1]; ``width``/``height`` are the
    pixel dimensions of the frame they were detected on. Lookup or numeric
    failures stop the derivation: fields computed so far are kept, the
    remaining ones stay at their clinical defaults. Never raises.
    """
    defaults = _defaults()
    values = dict(defaults)
    w, h = float(width), float(height)

    try:
        brow = point(landmarks, lm.BROW)
        chin = point(landmarks, lm.CHIN)
        upper = point(landmarks, lm.UPPER_LIP)
        lower = point(landmarks, lm.LOWER_LIP)
        left = point(landmarks, lm.MOUTH_LEFT)
        right = point(landmarks, lm.MOUTH_RIGHT)

        facial_mid_x = (brow.x + chin.x) / 2
        values["facial_midline_deviation"] = abs((facial_mid_x - 0.5) * MM_SCALE)
        values["midline_deviation"] = abs((upper.x - facial_mid_x) * MM_SCALE)

        mouth_width = abs(right.x - left.x) * w
        mouth_height = abs(lower.y - upper.y) * h

        central = mouth_width * CENTRAL_SHARE
        wl_ratio = min(max(central / (mouth_height or 1) * 100, 50.0), 100.0)
        values["central_incisors_wl_ratio"] = wl_ratio

        lateral = mouth_width * LATERAL_SHARE
        canine = mouth_width * CANINE_SHARE
        if central:
            values["golden_ratio_lateral"] = lateral / central * 100
        if lateral:
            values["golden_ratio_canine"] = canine / lateral * 100
        values["red_proportion"] = wl_ratio

        arc = [point(landmarks, i) for i in lm.LOWER_LIP_CONTOUR]
        arc_dev = sum(abs(cur.y - prev.y) for prev, cur in zip(arc, arc[1:]))
        values["smile_arc_deviation"] = min(arc_dev * 50, 100.0)

        margins = [abs(point(landmarks, i).y - upper.y) * 100 for i in lm.UPPER_INNER_LIP]
        values["gingival_margin_dev"] = margins
        values["gingival_symmetry"] = gingival_symmetry(margins)

        face_height = abs(brow.y - chin.y) * h
        values["smile_fullness"] = mouth_height / (face_height or 1) * 100

        # signed span minus its magnitude: zero unless the corners are swapped
        cheek_width = (right.x - left.x) * w
        values["buccal_corridors"] = (cheek_width - mouth_width) / 2 / 10

        canine_expected_x = left.x + (right.x - left.x) * 0.15
        values["canine_position_dev"] = abs((right.x - canine_expected_x) * 100)

        teeth = [point(landmarks, i) for i in lm.ANTERIOR_TEETH]
        values["tooth_tilt"] = [0.0] + [
            abs(math.degrees(math.atan2(cur.y - prev.y, cur.x - prev.x)))
            for prev, cur in zip(teeth, teeth[1:])
        ]

        left_mid = point(landmarks, lm.LEFT_TEETH_MID)
        right_mid = point(landmarks, lm.RIGHT_TEETH_MID)
        left_edge = (left.y + left_mid.y) / 2
        right_edge = (right.y + right_mid.y) / 2
        values["occlusal_plane_cant"] = abs((left_edge - right_edge) * 100)

        mean_y = sum(t.y for t in teeth) / len(teeth)
        values["incisor_edge_positions"] = [min(abs(t.y - mean_y) * 100, 50.0) for t in teeth]

        support_span = 0.3 * h
        if support_span:
            values["lip_support_score"] = min(mouth_width / support_span * 100, 100.0)

        values["profile_analysis_needed"] = True

        lower_face = abs(upper.y - chin.y) * h
        total_face = abs(brow.y - chin.y) * h
        values["vertical_dimension_ratio"] = lower_face / total_face * 100 if total_face > 0 else 50.0

        curvature = sum(
            abs((prev.y + nxt.y) / 2 - cur.y) for prev, cur, nxt in zip(arc, arc[1:], arc[2:])
        )
        values["smile_convexity_score"] = min(curvature * 500, 100.0)

        values["tooth_visibility_at_rest"] = min(abs(lower.y - upper.y) * 200, 30.0)

        # single-frame analysis: the rest position is the current upper lip
        rest_upper = point(landmarks, lm.UPPER_LIP)
        lip_lift = abs(upper.y - rest_upper.y) * h
        values["smile_animation_pathway"] = smile_pathway(mouth_width * SMILE_EXPANSION, lip_lift)

        values["intercanine_width"] = abs(left.x - right.x) * w * INTERCANINE_SCALE
    except lm.LOOKUP_ERRORS as exc:
        LOGGER.warning("measurement failed", error=repr(exc))

    return Measurements(**_finite(values, defaults))


def gingival_symmetry(margins: list[float]) -> float:
    """Score 0-100 comparing the first three margins with the mirrored last three."""
    left = margins[:3]
    right = list(reversed(margins[3:]))
    diff = sum(abs(a - b) for a, b in zip(left, right))
    return max(0.0, 100 - diff * 5)


def smile_pathway(horizontal: float, vertical: float) -> SmilePathway:
    if horizontal > vertical * 2:
        return SmilePathway.HORIZONTAL
    if vertical > horizontal * 2:
        return SmilePathway.VERTICAL
    return SmilePathway.BALANCED
