# SPDX-License-Identifier: Apache-2.0
"""Records exchanged between the analysis core and its collaborators.

JSON payloads keep the camelCase field names used by the stored snapshots
and backups; Python code uses the snake_case attribute names.
"""
from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from smiledesign.utils.io import read_json, write_json


class SmilePathway(str, Enum):
    HORIZONTAL = "Horizontal-Dominant"
    VERTICAL = "Vertical-Dominant"
    BALANCED = "Balanced"


class Measurements(BaseModel):
    """DSD measurements of one frame.

    Every field carries a clinically neutral default so that a record is
    always complete, even when only part of the face was measurable.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    facial_midline_deviation: float = Field(0.0, alias="facialMidlineDeviation")
    central_incisors_wl_ratio: float = Field(78.0, alias="centralIncisorsWLRatio")
    golden_ratio_lateral: float = Field(62.0, alias="goldenRatioLateral")
    golden_ratio_canine: float = Field(62.0, alias="goldenRatioCanine")
    red_proportion: float = Field(70.0, alias="redProportion")
    smile_arc_deviation: float = Field(0.0, alias="smileArcDeviation")
    gingival_margin_dev: List[float] = Field(
        default_factory=lambda: [0.0] * 6, alias="gingivalMarginDev"
    )
    gingival_symmetry: float = Field(95.0, alias="gingivalSymmetry")
    midline_deviation: float = Field(0.0, alias="midlineDeviation")
    smile_fullness: float = Field(85.0, alias="smileFullness")
    canine_position_dev: float = Field(0.0, alias="caninePositionDev")
    buccal_corridors: float = Field(2.5, alias="buccalCorridors")
    tooth_tilt: List[float] = Field(default_factory=lambda: [0.0] * 6, alias="toothTilt")
    occlusal_plane_cant: float = Field(0.0, alias="occlusalPlaneCant")
    incisor_edge_positions: List[float] = Field(
        default_factory=lambda: [0.0] * 6, alias="incisorEdgePositions"
    )
    lip_support_score: float = Field(85.0, alias="lipSupportScore")
    profile_analysis_needed: bool = Field(True, alias="profileAnalysisNeeded")
    vertical_dimension_ratio: float = Field(50.0, alias="verticalDimensionRatio")
    smile_convexity_score: float = Field(70.0, alias="smileConvexityScore")
    tooth_visibility_at_rest: float = Field(0.0, alias="toothVisibilityAtRest")
    smile_animation_pathway: SmilePathway = Field(
        SmilePathway.BALANCED, alias="smileAnimationPathway"
    )
    intercanine_width: float = Field(35.0, alias="intercanineWidth")


class AnalysisResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    measurements: Measurements
    overall_harmony: int = Field(alias="overallHarmony", ge=0, le=100)
    clinical_recommendations: List[str] = Field(alias="clinicalRecommendations")
    classification_notes: str = Field(alias="classificationNotes")
    measurement_confidence: Dict[str, int] = Field(alias="measurementConfidence")

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")

    def to_json(self, path: Path) -> None:
        write_json(path, self.to_payload())

    @classmethod
    def from_json(cls, path: Path) -> "AnalysisResult":
        return cls.model_validate(read_json(path))


class LandmarkPoint(BaseModel):
    x: float
    y: float
    z: float = 0.0


class AnalyzeRequest(BaseModel):
    landmarks: List[LandmarkPoint]
    width: int = Field(ge=0)
    height: int = Field(ge=0)


class Snapshot(BaseModel):
    id: int
    date: str
    time: str
    image: str
    analysis: Optional[AnalysisResult] = None


class PatientRecord(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: int
    date: str = ""
    patient_name: str = Field("", alias="patientName")
    harmony: float = 0.0
    measurements: Dict[str, Any] = Field(default_factory=dict)
    notes: str = ""


class PlanTargets(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    wl_ratio: float = Field(78.0, alias="wlRatio")
    golden_ratio: float = Field(62.0, alias="goldenRatio")
    gingival_sym: float = Field(85.0, alias="gingivalSym")
    smile_convexity: float = Field(70.0, alias="smileConvexity")
    vdo_ratio: float = Field(45.0, alias="vdoRatio")


class TreatmentPlan(BaseModel):
    id: int
    date: str
    measurements: PlanTargets
    harmony: str


class ClinicSettings(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    clinic_name: str = Field("Dental Clinic", alias="clinicName")
    doctor_name: str = Field("Dr. Smith", alias="doctorName")
    license_number: str = Field("DDS-12345", alias="licenseNumber")
    contact_info: str = Field("info@clinic.com", alias="contactInfo")
    theme: Literal["dark", "light"] = "dark"


class Backup(BaseModel):
    """Whole-store backup document. Sections left out are not restored."""

    settings: Optional[ClinicSettings] = None
    patients: Optional[List[PatientRecord]] = None
    snapshots: Optional[List[Snapshot]] = None
    plans: Optional[List[TreatmentPlan]] = None
    timestamp: str = ""


def dump(model: BaseModel) -> Dict[str, Any]:
    """JSON-ready dict with the stored (camelCase) field names."""
    return model.model_dump(by_alias=True, mode="json")
