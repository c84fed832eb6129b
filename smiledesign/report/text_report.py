# SPDX-License-Identifier: Apache-2.0
"""Plain-text clinical DSD report."""
from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Callable, List, Optional, Tuple

from jinja2 import Environment, FileSystemLoader, select_autoescape

from smiledesign import __version__
from smiledesign.analysis.scoring import GINGIVAL_SYMMETRY_FLOOR, IDEAL_GOLDEN_RATIO, IDEAL_WL_RATIO
from smiledesign.logging_utils import get_logger
from smiledesign.schemas import AnalysisResult, Measurements

LOGGER = get_logger(__name__)
TEMPLATES_DIR = Path(__file__).resolve().parent / "templates"
RULE = "═" * 63
DEFAULT_TITLE = "Clinical DSD Analysis Report"

MAINTENANCE_SUGGESTION = (
    "→ Maintenance: Continue existing treatment plan. Periodic DSD monitoring recommended."
)

# literature the clinical notes cite
CLINICAL_REFERENCES = [
    "Snow's Golden Percentage (1999)",
    "Ward's RED Proportion (2001)",
    "Preston proportions",
    "Peer-reviewed literature on smile esthetics",
]
DISCLAIMER = (
    "This tool is a clinical aid. Professional examination and\n"
    "patient assessment are essential. Use in conjunction with clinical judgment."
)

env = Environment(
    loader=FileSystemLoader(str(TEMPLATES_DIR)),
    autoescape=select_autoescape(["html", "xml"]),
    trim_blocks=True,
    lstrip_blocks=True,
    keep_trailing_newline=True,
)

SUGGESTIONS: List[Tuple[Callable[[Measurements], bool], str]] = [
    (
        lambda m: abs(m.central_incisors_wl_ratio - IDEAL_WL_RATIO) > 12,
        "→ Cosmetic/Prosthodontic: Veneers, crowns, or composite restorations to achieve W/L ratio optimization",
    ),
    (
        lambda m: m.gingival_symmetry < GINGIVAL_SYMMETRY_FLOOR,
        "→ Periodontics: Gingival contouring, osseous contouring, or gingivectomy for symmetry",
    ),
    (
        lambda m: abs(m.midline_deviation) > 1.5,
        "→ Orthodontics: Anterior tooth repositioning for midline alignment",
    ),
    (
        lambda m: m.smile_fullness < 60,
        "→ Prosthodontics/Orthodontics: Vertical dimension adjustment; evaluate posterior support",
    ),
    (
        lambda m: m.smile_fullness > 100,
        "→ Periodontics/Oral Surgery: Gingival contouring or lip repositioning for excess display",
    ),
    (
        lambda m: m.buccal_corridors > 4.5,
        "→ Implant/Orthodontic: Buccal corridor reduction via implants or orthodontic smile expansion",
    ),
    (
        lambda m: abs(m.golden_ratio_lateral - IDEAL_GOLDEN_RATIO) > 10,
        "→ Cosmetic Dentistry: Lateral incisor width adjustment via veneers or orthodontics",
    ),
]


def harmony_verdict(harmony: int) -> str:
    if harmony >= 85:
        return "✓ EXCELLENT"
    if harmony >= 70:
        return "△ ACCEPTABLE"
    return "⚠ REQUIRES ATTENTION"


def fullness_class(fullness: float) -> str:
    if fullness > 80:
        return "High/Gummy Smile"
    if fullness < 50:
        return "Low Smile"
    return "Normal Smile"


def treatment_plan_suggestions(analysis: AnalysisResult) -> List[str]:
    """Specialty referrals implied by the measurements, in a fixed order."""
    m = analysis.measurements
    lines = [text for check, text in SUGGESTIONS if check(m)]
    return lines or [MAINTENANCE_SUGGESTION]


def render_text_report(
    analysis: AnalysisResult,
    generated_at: Optional[datetime] = None,
    title: str = DEFAULT_TITLE,
) -> str:
    generated_at = generated_at or datetime.now()
    template = env.get_template("clinical_report.txt.j2")
    return template.render(
        analysis=analysis,
        generated_at=generated_at.strftime("%Y-%m-%d %H:%M:%S"),
        title=title,
        rule=RULE,
        version=__version__,
        verdict=harmony_verdict(analysis.overall_harmony),
        fullness_class=fullness_class(analysis.measurements.smile_fullness),
        suggestions=treatment_plan_suggestions(analysis),
        references=CLINICAL_REFERENCES,
        disclaimer=DISCLAIMER,
    )


def write_text_report(path: Path, analysis: AnalysisResult, title: str = DEFAULT_TITLE) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(render_text_report(analysis, title=title), encoding="utf-8")
    LOGGER.info("report written", path=str(path))
    return path
