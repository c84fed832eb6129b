# SPDX-License-Identifier: Apache-2.0
"""Harmony score, clinical recommendations and smile classification."""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Callable, Dict, List, Tuple

from smiledesign.analysis.landmarks import LandmarkSet
from smiledesign.analysis.measurements import compute_measurements
from smiledesign.schemas import AnalysisResult, Measurements, SmilePathway

IDEAL_WL_RATIO = 78.0
IDEAL_GOLDEN_RATIO = 62.0
GINGIVAL_SYMMETRY_FLOOR = 80.0

DEFAULT_RECOMMENDATION = "✓ Smile analysis within esthetic parameters - Maintenance plan recommended"
BALANCED_CLASSIFICATION = "Balanced Smile Characteristics"

# Static per-metric confidence. Not derived from the frame: the detector
# exposes no per-landmark visibility to build it from.
MEASUREMENT_CONFIDENCE: Dict[str, int] = {
    "W/L": 92,
    "GR-L": 88,
    "Sym": 85,
    "Cant": 87,
    "VDO": 90,
    "Conv": 83,
    "RestTooth": 86,
    "Pathway": 89,
    "IcW": 91,
}

Rule = Tuple[Callable[[Measurements], bool], Callable[[Measurements], str]]

RULES: List[Rule] = [
    (
        lambda m: m.facial_midline_deviation > 2,
        lambda m: "⚠ Facial midline deviation >2mm - Consider orthodontic midline correction",
    ),
    (
        lambda m: abs(m.midline_deviation) > 1.5,
        lambda m: "⚠ Dental-facial midline discrepancy - Plan anterior repositioning",
    ),
    (
        lambda m: abs(m.central_incisors_wl_ratio - IDEAL_WL_RATIO) > 12,
        lambda m: (
            f"⚠ Central incisor W/L ratio {m.central_incisors_wl_ratio:.0f}% (ideal 78%)"
            " - Dimensional adjustment needed"
        ),
    ),
    (
        lambda m: abs(m.golden_ratio_lateral - IDEAL_GOLDEN_RATIO) > 10,
        lambda m: "⚠ Golden ratio deviation - Consider lateral incisor width adjustment",
    ),
    (
        lambda m: m.gingival_symmetry < GINGIVAL_SYMMETRY_FLOOR,
        lambda m: f"⚠ Gingival asymmetry {m.gingival_symmetry:.0f}% - Plan periodontal contouring",
    ),
    (
        lambda m: m.smile_arc_deviation > 40,
        lambda m: "⚠ Smile arc deviation - Orthodontic or restorative correction indicated",
    ),
    (
        lambda m: m.buccal_corridors > 4.5,
        lambda m: (
            "⚠ Excessive buccal corridors - Consider smile arc expansion via implants or orthodontics"
        ),
    ),
    (
        lambda m: m.smile_fullness < 60,
        lambda m: "⚠ Limited smile fullness - Evaluate VDO and posterior support",
    ),
    (
        lambda m: m.smile_fullness > 100,
        lambda m: "⚠ Excessive gingival display - Consider orthognathic surgery or lip reposition",
    ),
    (
        lambda m: m.occlusal_plane_cant > 2,
        lambda m: f"⚠ Occlusal plane cant {m.occlusal_plane_cant:.1f}° - Plan orthodontic plane correction",
    ),
    (
        lambda m: max(m.incisor_edge_positions, default=0.0) > 5,
        lambda m: "⚠ Incisor edge step detected - Individual tooth repositioning indicated",
    ),
    (
        lambda m: m.lip_support_score < 70,
        lambda m: "⚠ Limited lip support - Evaluate vertical dimension and posterior support",
    ),
    (
        lambda m: m.vertical_dimension_ratio < 42 or m.vertical_dimension_ratio > 48,
        lambda m: (
            f"⚠ VDO Ratio {m.vertical_dimension_ratio:.1f}% (ideal 43-45%)"
            " - Evaluate posterior support and VDO"
        ),
    ),
    (
        lambda m: m.smile_convexity_score < 50,
        lambda m: "⚠ Smile line lacks convexity - Consider orthodontic smile arc correction",
    ),
    (
        lambda m: m.tooth_visibility_at_rest > 25,
        lambda m: f"⚠ {m.tooth_visibility_at_rest:.0f}% tooth show at rest - Typical gummy smile presentation",
    ),
    (
        lambda m: m.smile_animation_pathway == SmilePathway.VERTICAL,
        lambda m: "△ Smile shows primarily vertical movement - May benefit from buccal corridor expansion",
    ),
]

CLASSIFIERS: List[Tuple[Callable[[Measurements], bool], str]] = [
    (lambda m: m.smile_fullness > 80, "High/Gummy Smile"),
    (lambda m: m.smile_fullness < 50, "Low Smile"),
    (lambda m: m.buccal_corridors > 4, "Buccal Corridors Present"),
    (lambda m: m.gingival_symmetry < GINGIVAL_SYMMETRY_FLOOR, "Asymmetrical Gingiva"),
]


@dataclass(frozen=True)
class Score:
    overall_harmony: int
    recommendations: List[str]
    classification_notes: str
    confidence: Dict[str, int]


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def harmony_deviations(m: Measurements) -> List[float]:
    """The six deviations averaged into the harmony score."""
    gingival_shortfall = (
        GINGIVAL_SYMMETRY_FLOOR - m.gingival_symmetry
        if m.gingival_symmetry < GINGIVAL_SYMMETRY_FLOOR
        else 0.0
    )
    return [
        min(m.facial_midline_deviation, 50.0),
        abs(m.central_incisors_wl_ratio - IDEAL_WL_RATIO) / IDEAL_WL_RATIO * 100,
        abs(m.golden_ratio_lateral - IDEAL_GOLDEN_RATIO) / IDEAL_GOLDEN_RATIO * 100,
        abs(m.golden_ratio_canine - IDEAL_GOLDEN_RATIO) / IDEAL_GOLDEN_RATIO * 100,
        gingival_shortfall,
        min(m.smile_arc_deviation, 50.0),
    ]


def overall_harmony(m: Measurements) -> int:
    """Harmony score in [0, 100] for any measurement record."""
    deviations = harmony_deviations(m)
    raw = 100 - sum(deviations) / len(deviations)
    if math.isnan(raw):
        return 0
    return _round_half_up(min(max(raw, 0.0), 100.0))


def recommendations(m: Measurements) -> List[str]:
    fired = [message(m) for check, message in RULES if check(m)]
    return fired or [DEFAULT_RECOMMENDATION]


def classify(m: Measurements) -> str:
    labels = [label for check, label in CLASSIFIERS if check(m)]
    return " | ".join(labels) if labels else BALANCED_CLASSIFICATION


def score(m: Measurements) -> Score:
    return Score(
        overall_harmony=overall_harmony(m),
        recommendations=recommendations(m),
        classification_notes=classify(m),
        confidence=dict(MEASUREMENT_CONFIDENCE),
    )


def build_result(m: Measurements) -> AnalysisResult:
    s = score(m)
    return AnalysisResult(
        measurements=m,
        overall_harmony=s.overall_harmony,
        clinical_recommendations=s.recommendations,
        classification_notes=s.classification_notes,
        measurement_confidence=s.confidence,
    )


def analyze(landmarks: LandmarkSet, width: int, height: int) -> AnalysisResult:
    """Run the measurement and scoring stages for one face."""
    return build_result(compute_measurements(landmarks, width, height))
