# SPDX-License-Identifier: Apache-2.0
"""Treatment planning, clinic dashboard and patient comparison."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional, Union

from smiledesign.datastore.store import JsonStore
from smiledesign.logging_utils import get_logger
from smiledesign.schemas import PatientRecord, PlanTargets, Snapshot, TreatmentPlan

LOGGER = get_logger(__name__)

# target value per planner metric
PLAN_IDEALS = {
    "wl_ratio": 78.0,
    "golden_ratio": 62.0,
    "gingival_sym": 90.0,
    "smile_convexity": 75.0,
    "vdo_ratio": 45.0,
}

COMPARISON_METRICS: Dict[str, str] = {
    "centralIncisorsWLRatio": "W/L Ratio",
    "goldenRatioLateral": "Golden Ratio",
    "gingivalSymmetry": "Gingival Sym",
    "smileConvexityScore": "Convexity",
    "verticalDimensionRatio": "VDO Ratio",
}


def plan_harmony(targets: PlanTargets) -> float:
    """Harmony of a planned outcome: 100 minus the mean relative deviation in %."""
    deviations = [
        abs(getattr(targets, name) - ideal) / ideal * 100 for name, ideal in PLAN_IDEALS.items()
    ]
    return max(0.0, 100 - sum(deviations) / len(deviations))


def plan_specs(targets: PlanTargets) -> List[str]:
    specs = []
    if targets.wl_ratio < 75:
        specs.append("⚠ Central incisor width expansion needed")
    if targets.golden_ratio < 60:
        specs.append("⚠ Lateral incisor width adjustment required")
    if targets.gingival_sym < 80:
        specs.append("⚠ Periodontal contouring for symmetry")
    if targets.smile_convexity < 60:
        specs.append("⚠ Smile arc orthodontic correction")
    if targets.vdo_ratio > 48:
        specs.append("⚠ Excessive vertical dimension - posterior support evaluation")
    return specs


def targets_for(patient: Optional[PatientRecord]) -> PlanTargets:
    """Planner start values from an archived patient; missing or zero values use the defaults."""
    if patient is None:
        return PlanTargets()
    defaults = PlanTargets().model_dump(by_alias=True)
    stored = patient.measurements or {}
    return PlanTargets.model_validate({k: stored.get(k) or v for k, v in defaults.items()})


def save_plan(store: JsonStore, targets: PlanTargets, now: Optional[datetime] = None) -> TreatmentPlan:
    now = now or datetime.now()
    plan = TreatmentPlan(
        id=int(now.timestamp() * 1000),
        date=now.strftime("%Y-%m-%d"),
        measurements=targets,
        harmony=f"{plan_harmony(targets):.0f}",
    )
    store.add_plan(plan)
    LOGGER.info("treatment plan saved", id=plan.id, harmony=plan.harmony)
    return plan


@dataclass(frozen=True)
class DashboardStats:
    total_patients: int
    treatment_plans: int
    average_harmony: str
    analysis_scans: int
    recent: List[PatientRecord]


def dashboard_stats(store: JsonStore) -> DashboardStats:
    archive = store.patients()
    if archive:
        average = f"{sum(p.harmony for p in archive) / len(archive):.0f}"
    else:
        average = "—"
    return DashboardStats(
        total_patients=len(archive),
        treatment_plans=len(store.plans()),
        average_harmony=average,
        analysis_scans=len(archive),
        recent=list(reversed(archive[-5:])),
    )


@dataclass(frozen=True)
class MetricDelta:
    metric: str
    label: str
    before: float
    after: float

    @property
    def delta(self) -> float:
        return self.after - self.before

    @property
    def improved(self) -> bool:
        return self.delta > 0


def _metric(patient: PatientRecord, key: str) -> float:
    value: Union[float, int, None] = patient.measurements.get(key)
    return float(value or 0)


def compare_patients(first: PatientRecord, second: PatientRecord) -> List[MetricDelta]:
    """Per-metric change from ``first`` to ``second``; missing values count as 0."""
    return [
        MetricDelta(key, label, _metric(first, key), _metric(second, key))
        for key, label in COMPARISON_METRICS.items()
    ]


# smile simulator: latest snapshot against the ideal DSD state
IDEAL_TARGETS = PlanTargets(**PLAN_IDEALS)
# used when no analyzed snapshot exists
SIMULATOR_DEFAULTS = PlanTargets(
    wl_ratio=72.0, golden_ratio=58.0, gingival_sym=75.0, smile_convexity=65.0, vdo_ratio=48.0
)
SIMULATOR_METRICS = [
    ("W/L Ratio", "wl_ratio", "%"),
    ("Golden Ratio", "golden_ratio", "%"),
    ("Gingival Symmetry", "gingival_sym", "%"),
    ("Smile Convexity", "smile_convexity", ""),
    ("VDO Ratio", "vdo_ratio", "%"),
]


def snapshot_targets(snapshot: Optional[Snapshot]) -> PlanTargets:
    """Planner view of a snapshot's analysis."""
    if snapshot is None or snapshot.analysis is None:
        return SIMULATOR_DEFAULTS
    m = snapshot.analysis.measurements
    return PlanTargets(
        wl_ratio=m.central_incisors_wl_ratio,
        golden_ratio=m.golden_ratio_lateral,
        gingival_sym=m.gingival_symmetry,
        smile_convexity=m.smile_convexity_score,
        vdo_ratio=m.vertical_dimension_ratio,
    )


@dataclass(frozen=True)
class Simulation:
    snapshot: Optional[Snapshot]
    current: PlanTargets
    ideal: PlanTargets = field(default_factory=lambda: IDEAL_TARGETS)

    @property
    def current_harmony(self) -> float:
        return plan_harmony(self.current)

    @property
    def ideal_harmony(self) -> float:
        return plan_harmony(self.ideal)


def smile_simulation(store: JsonStore, snapshot_id: Optional[int] = None) -> Simulation:
    """Compare a stored snapshot (the latest by default) with the ideal state.

    Raises ``KeyError`` when ``snapshot_id`` names no stored snapshot.
    """
    if snapshot_id is None:
        snapshot = store.latest_snapshot()
    else:
        snapshot = next((s for s in store.snapshots() if s.id == snapshot_id), None)
        if snapshot is None:
            raise KeyError(snapshot_id)
    return Simulation(snapshot, snapshot_targets(snapshot))
