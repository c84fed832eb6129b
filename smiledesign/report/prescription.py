# SPDX-License-Identifier: Apache-2.0
"""Dental lab prescription text."""
from __future__ import annotations

from datetime import date
from typing import Optional, Sequence

from jinja2 import Template

from smiledesign.schemas import ClinicSettings, PatientRecord

ALL_SPECS = [
    "Central Incisor Width Adjustment",
    "Lateral Incisor Width Modification",
    "Canine Positioning",
    "Gingival Contouring",
    "Smile Arc Correction",
    "Buccal Corridor Expansion",
    "Veneer Preparation",
    "Implant Positioning",
    "Periodontal Therapy",
    "Orthodontic Alignment",
]

DEFAULT_SPECS = [
    "Central Incisor Width Adjustment",
    "Gingival Contouring",
    "Smile Arc Correction",
]

PRESCRIPTION_TEMPLATE = Template(
    """DIGITAL SMILE DESIGN LAB PRESCRIPTION

Patient: {{ patient_name }}
Doctor: {{ settings.doctor_name }}
Clinic: {{ settings.clinic_name }}
Date: {{ today }}
Age: [Patient Age]
Gender: [Patient Gender]

CLINICAL SPECIFICATIONS:
{% for spec in specs %}
• {{ spec }}
{% endfor %}

DESIGN PARAMETERS:
• Central Incisor W/L Ratio: 78% (target)
• Golden Proportion: 1.618:1:0.618
• Gingival Symmetry: >85%
• Smile Convexity: >70
• VDO Ratio: 43-45%
• Intercanine Width: Arch matched

MATERIAL RECOMMENDATIONS:
• Restoration Type: Ceramic Veneers / All-Ceramic Crowns
• Shade Selection: VITA Shade Guide / Spectrophotometer
• Contour: Replicate natural emergence profile
• Surface Texture: Match natural tooth anatomy

QUALITY ASSURANCE:
✓ All measurements within DSD guidelines
✓ Clinical photography required at delivery
✓ Try-in approval mandatory before cementation
✓ Patient satisfaction sign-off

Lab Notes:
Create restorations that achieve >85/100 harmony score based on digital smile design protocol.

Approved by: {{ settings.doctor_name }}
License: {{ settings.license_number }}
Contact: {{ settings.contact_info }}""",
    trim_blocks=True,
    lstrip_blocks=True,
)


def render_prescription(
    patient: Optional[PatientRecord] = None,
    specs: Optional[Sequence[str]] = None,
    settings: Optional[ClinicSettings] = None,
    today: Optional[date] = None,
) -> str:
    specs = list(DEFAULT_SPECS if specs is None else specs)
    unknown = [s for s in specs if s not in ALL_SPECS]
    if unknown:
        raise ValueError(f"unknown specification(s): {', '.join(unknown)}")
    return PRESCRIPTION_TEMPLATE.render(
        patient_name=patient.patient_name if patient else "No Patient Selected",
        settings=settings or ClinicSettings(),
        today=(today or date.today()).isoformat(),
        specs=specs,
    )


def prescription_filename(patient: Optional[PatientRecord] = None) -> str:
    name = patient.patient_name if patient and patient.patient_name else "Patient"
    return f"DSD_Prescription_{name}.txt"
