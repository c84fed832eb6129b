# SPDX-License-Identifier: Apache-2.0
"""PDF rendition of the clinical DSD report."""
from __future__ import annotations

import io
from datetime import datetime
from pathlib import Path
from typing import List, Optional
from xml.sax.saxutils import escape

import numpy as np
from PIL import Image
from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import inch
from reportlab.platypus import Image as RLImage
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from smiledesign.logging_utils import get_logger
from smiledesign.report.text_report import (
    CLINICAL_REFERENCES,
    DEFAULT_TITLE,
    DISCLAIMER,
    fullness_class,
    harmony_verdict,
    treatment_plan_suggestions,
)
from smiledesign.schemas import AnalysisResult, ClinicSettings

LOGGER = get_logger(__name__)

# the base-14 PDF fonts have no glyphs for these
_SYMBOLS = ("✓", "⚠", "△", "→")


def _plain(text: str) -> str:
    for sym in _SYMBOLS:
        text = text.replace(sym, "")
    return escape(text.strip())


def get_styles():
    styles = getSampleStyleSheet()
    styles.add(ParagraphStyle(
        name="ReportTitle",
        parent=styles["Title"],
        fontSize=20,
        spaceAfter=18,
        alignment=TA_CENTER,
        textColor=colors.HexColor("#0e7490"),
    ))
    styles.add(ParagraphStyle(
        name="SectionHeader",
        parent=styles["Heading2"],
        fontSize=13,
        spaceBefore=14,
        spaceAfter=6,
        textColor=colors.HexColor("#1f2937"),
    ))
    styles.add(ParagraphStyle(
        name="Footer",
        parent=styles["Normal"],
        fontSize=8,
        alignment=TA_CENTER,
        textColor=colors.grey,
    ))
    return styles


def build_header(styles, title: str, settings: ClinicSettings, generated_at: datetime):
    return [
        Paragraph(escape(title), styles["ReportTitle"]),
        Paragraph(
            f"{escape(settings.clinic_name)} | {escape(settings.doctor_name)} "
            f"({escape(settings.license_number)})",
            styles["Normal"],
        ),
        Paragraph(f"Generated: {generated_at:%Y-%m-%d %H:%M:%S}", styles["Normal"]),
        Spacer(1, 12),
    ]


def build_summary(styles, analysis: AnalysisResult):
    return [
        Paragraph("Overall Harmony Score", styles["SectionHeader"]),
        Paragraph(
            f"<b>{analysis.overall_harmony}/100</b> {_plain(harmony_verdict(analysis.overall_harmony))}",
            styles["Normal"],
        ),
        Paragraph("Smile Classification", styles["SectionHeader"]),
        Paragraph(escape(analysis.classification_notes), styles["Normal"]),
    ]


def _status(ok: bool) -> str:
    return "OK" if ok else "Review"


def build_measurement_table(styles, analysis: AnalysisResult):
    m = analysis.measurements
    rows = [
        ["Measurement", "Value", "Reference", "Status"],
        ["Facial midline deviation", f"{m.facial_midline_deviation:.2f} mm", "< 2 mm", _status(m.facial_midline_deviation < 2)],
        ["Dental midline deviation", f"{m.midline_deviation:.2f} mm", "< 1.5 mm", _status(m.midline_deviation < 1.5)],
        ["Central incisor W/L", f"{m.central_incisors_wl_ratio:.1f} %", "75-80 %", _status(abs(m.central_incisors_wl_ratio - 78) <= 5)],
        ["Lateral/central ratio", f"{m.golden_ratio_lateral:.1f} %", "54-66 %", _status(abs(m.golden_ratio_lateral - 62) <= 8)],
        ["Canine/lateral ratio", f"{m.golden_ratio_canine:.1f} %", "54-66 %", _status(abs(m.golden_ratio_canine - 62) <= 8)],
        ["RED proportion", f"{m.red_proportion:.1f} %", "62-80 %", _status(62 <= m.red_proportion <= 80)],
        ["Gingival symmetry", f"{m.gingival_symmetry:.1f}/100", "> 85", _status(m.gingival_symmetry > 85)],
        ["Smile arc score", f"{100 - min(m.smile_arc_deviation, 50):.0f}/100", "", ""],
        ["Smile fullness", f"{m.smile_fullness:.1f} %", fullness_class(m.smile_fullness), _status(50 <= m.smile_fullness <= 80)],
        ["Buccal corridors", f"{m.buccal_corridors:.2f} mm", "2-4 mm", _status(2 <= m.buccal_corridors <= 4)],
        ["Canine position deviation", f"{m.canine_position_dev:.2f} mm", "", ""],
        ["Occlusal plane cant", f"{m.occlusal_plane_cant:.1f} deg", "< 2 deg", _status(m.occlusal_plane_cant <= 2)],
        ["Lip support", f"{m.lip_support_score:.0f}/100", ">= 70", _status(m.lip_support_score >= 70)],
        ["VDO ratio", f"{m.vertical_dimension_ratio:.1f} %", "43-45 %", _status(42 <= m.vertical_dimension_ratio <= 48)],
        ["Smile convexity", f"{m.smile_convexity_score:.0f}/100", ">= 50", _status(m.smile_convexity_score >= 50)],
        ["Tooth display at rest", f"{m.tooth_visibility_at_rest:.0f} %", "<= 25 %", _status(m.tooth_visibility_at_rest <= 25)],
        ["Animation pathway", m.smile_animation_pathway.value, "", ""],
        ["Intercanine width", f"{m.intercanine_width:.1f} mm", "", ""],
    ]
    table = Table(rows, colWidths=[2.4 * inch, 1.3 * inch, 1.5 * inch, 0.9 * inch])
    table.setStyle(TableStyle([
        ("BACKGROUND", (0, 0), (-1, 0), colors.HexColor("#e0f2fe")),
        ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
        ("FONTSIZE", (0, 0), (-1, -1), 9),
        ("GRID", (0, 0), (-1, -1), 0.25, colors.grey),
        ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
    ]))
    return [Paragraph("Measurements", styles["SectionHeader"]), table]


def tooth_rows(analysis: AnalysisResult) -> List[List[str]]:
    """Per-tooth gingival margins, inclinations and incisor edge offsets."""
    m = analysis.measurements
    columns = (m.gingival_margin_dev, m.tooth_tilt, m.incisor_edge_positions)
    rows = [["Tooth", "Gingival margin", "Inclination", "Incisor edge"]]
    for i in range(max(len(c) for c in columns)):
        margin, tilt, edge = (c[i] if i < len(c) else None for c in columns)
        rows.append([
            str(i + 1),
            "" if margin is None else f"{margin:.2f} mm",
            "" if tilt is None else f"{tilt:.1f} deg ({_status(tilt < 10)})",
            "" if edge is None else f"{edge:.1f}",
        ])
    return rows


def build_tooth_table(styles, analysis: AnalysisResult):
    table = Table(tooth_rows(analysis), colWidths=[0.8 * inch, 1.6 * inch, 1.8 * inch, 1.4 * inch])
    table.setStyle(TableStyle([
        ("BACKGROUND", (0, 0), (-1, 0), colors.HexColor("#e0f2fe")),
        ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
        ("FONTSIZE", (0, 0), (-1, -1), 9),
        ("GRID", (0, 0), (-1, -1), 0.25, colors.grey),
    ]))
    return [Paragraph("Per-Tooth Analysis", styles["SectionHeader"]), table]


def build_recommendations(styles, analysis: AnalysisResult):
    elements = [Paragraph("Clinical Recommendations", styles["SectionHeader"])]
    for i, rec in enumerate(analysis.clinical_recommendations, 1):
        elements.append(Paragraph(f"{i}. {_plain(rec)}", styles["Normal"]))
    elements.append(Paragraph("Treatment Plan Suggestions", styles["SectionHeader"]))
    for line in treatment_plan_suggestions(analysis):
        elements.append(Paragraph(_plain(line), styles["Normal"]))
    return elements


def build_image(styles, image: np.ndarray, max_width: float = 5.5 * inch):
    """Embed a BGR snapshot scaled to ``max_width``."""
    rgb = Image.fromarray(np.ascontiguousarray(image[:, :, 2::-1]))
    buf = io.BytesIO()
    rgb.save(buf, format="PNG")
    buf.seek(0)
    w, h = rgb.size
    scale = min(1.0, max_width / w)
    return [
        Paragraph("Snapshot", styles["SectionHeader"]),
        RLImage(buf, width=w * scale, height=h * scale),
    ]


def build_clinical_notes(styles):
    elements = [
        Paragraph("Clinical Notes", styles["SectionHeader"]),
        Paragraph(
            "This analysis is based on peer-reviewed DSD protocols and validated against:",
            styles["Normal"],
        ),
    ]
    for ref in CLINICAL_REFERENCES:
        elements.append(Paragraph(f"- {escape(ref)}", styles["Normal"]))
    return elements


def build_footer(styles):
    disclaimer = " ".join(DISCLAIMER.split())
    return [
        Spacer(1, 18),
        Paragraph(
            f"Disclaimer: {escape(disclaimer)}",
            styles["Footer"],
        ),
    ]


def render_pdf_report(
    path: Path,
    analysis: AnalysisResult,
    settings: Optional[ClinicSettings] = None,
    image: Optional[np.ndarray] = None,
    title: str = DEFAULT_TITLE,
    generated_at: Optional[datetime] = None,
) -> Path:
    """Write the clinical report as a PDF, with the flattened snapshot when given."""
    settings = settings or ClinicSettings()
    generated_at = generated_at or datetime.now()
    path.parent.mkdir(parents=True, exist_ok=True)

    doc = SimpleDocTemplate(
        str(path),
        pagesize=A4,
        rightMargin=0.75 * inch,
        leftMargin=0.75 * inch,
        topMargin=0.75 * inch,
        bottomMargin=0.75 * inch,
        title=title,
    )
    styles = get_styles()
    story: List = []
    story.extend(build_header(styles, title, settings, generated_at))
    story.extend(build_summary(styles, analysis))
    story.extend(build_measurement_table(styles, analysis))
    story.extend(build_tooth_table(styles, analysis))
    story.extend(build_recommendations(styles, analysis))
    if image is not None:
        story.extend(build_image(styles, image))
    story.extend(build_clinical_notes(styles))
    story.extend(build_footer(styles))
    doc.build(story)

    LOGGER.info("pdf report written", path=str(path))
    return path
