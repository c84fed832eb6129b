from __future__ import annotations

from datetime import datetime

import numpy as np
import pytest

from smiledesign.export import take_snapshot
from smiledesign.planning import (
    IDEAL_TARGETS,
    SIMULATOR_DEFAULTS,
    compare_patients,
    dashboard_stats,
    plan_harmony,
    plan_specs,
    save_plan,
    smile_simulation,
    snapshot_targets,
    targets_for,
)
from smiledesign.schemas import PatientRecord, PlanTargets


def test_ideal_plan_harmony():
    targets = PlanTargets(wlRatio=78, goldenRatio=62, gingivalSym=90, smileConvexity=75, vdoRatio=45)
    assert plan_harmony(targets) == pytest.approx(100)


def test_default_plan_harmony():
    # gingival 85 vs 90 and convexity 70 vs 75
    expected = 100 - (5 / 90 * 100 + 5 / 75 * 100) / 5
    assert plan_harmony(PlanTargets()) == pytest.approx(expected)


def test_plan_harmony_floor():
    assert plan_harmony(PlanTargets(wlRatio=1000, goldenRatio=1000)) == 0


def test_plan_specs():
    assert plan_specs(PlanTargets()) == []
    specs = plan_specs(PlanTargets(wlRatio=70, goldenRatio=59, gingivalSym=79, smileConvexity=59, vdoRatio=49))
    assert specs == [
        "⚠ Central incisor width expansion needed",
        "⚠ Lateral incisor width adjustment required",
        "⚠ Periodontal contouring for symmetry",
        "⚠ Smile arc orthodontic correction",
        "⚠ Excessive vertical dimension - posterior support evaluation",
    ]
    assert plan_specs(PlanTargets(wlRatio=75, vdoRatio=48)) == []


def test_save_plan_formats_harmony(store):
    plan = save_plan(store, PlanTargets(), now=datetime(2026, 2, 3))
    assert plan.harmony == "98"
    assert plan.date == "2026-02-03"
    assert store.plans() == [plan]
    assert store.get("treatmentPlans")[0]["measurements"]["wlRatio"] == 78


def test_targets_from_patient():
    patient = PatientRecord(id=1, measurements={"wlRatio": 70, "vdoRatio": 0})
    targets = targets_for(patient)
    assert targets.wl_ratio == 70
    assert targets.vdo_ratio == 45
    assert targets_for(None) == PlanTargets()


def test_dashboard_stats(store):
    assert dashboard_stats(store).average_harmony == "—"
    for i, harmony in enumerate([80, 90, 95, 70, 60, 85], 1):
        store.add_patient(PatientRecord(id=i, patientName=f"P{i}", harmony=harmony))
    save_plan(store, PlanTargets())

    stats = dashboard_stats(store)
    assert stats.total_patients == 6
    assert stats.analysis_scans == 6
    assert stats.treatment_plans == 1
    assert stats.average_harmony == "80"
    assert [p.patient_name for p in stats.recent] == ["P6", "P5", "P4", "P3", "P2"]


def test_compare_patients():
    before = PatientRecord(id=1, measurements={"centralIncisorsWLRatio": 70, "gingivalSymmetry": 90})
    after = PatientRecord(id=2, measurements={"centralIncisorsWLRatio": 77.5, "gingivalSymmetry": 85})
    deltas = {d.metric: d for d in compare_patients(before, after)}

    assert list(deltas) == [
        "centralIncisorsWLRatio",
        "goldenRatioLateral",
        "gingivalSymmetry",
        "smileConvexityScore",
        "verticalDimensionRatio",
    ]
    assert deltas["centralIncisorsWLRatio"].delta == pytest.approx(7.5)
    assert deltas["centralIncisorsWLRatio"].improved
    assert not deltas["gingivalSymmetry"].improved
    assert deltas["goldenRatioLateral"].delta == 0
    assert deltas["goldenRatioLateral"].label == "Golden Ratio"


def _snap(store, analysis, minute):
    frame = np.zeros((8, 8, 3), dtype=np.uint8)
    overlay = np.zeros((8, 8, 4), dtype=np.uint8)
    return take_snapshot(store, frame, overlay, analysis, now=datetime(2026, 3, 1, 9, minute))


def test_simulation_without_snapshots(store):
    sim = smile_simulation(store)
    assert sim.snapshot is None
    assert sim.current == SIMULATOR_DEFAULTS
    assert sim.ideal == IDEAL_TARGETS
    assert sim.ideal_harmony == pytest.approx(100)
    expected = 100 - (6 / 78 * 100 + 4 / 62 * 100 + 15 / 90 * 100 + 10 / 75 * 100 + 3 / 45 * 100) / 5
    assert sim.current_harmony == pytest.approx(expected)
    assert f"{sim.current_harmony:.0f}" == "90"


def test_simulation_uses_latest_snapshot(store, reference_analysis):
    _snap(store, reference_analysis, 0)
    latest = _snap(store, reference_analysis, 1)
    sim = smile_simulation(store)
    assert sim.snapshot == latest

    m = reference_analysis.measurements
    assert sim.current == PlanTargets(
        wlRatio=m.central_incisors_wl_ratio,
        goldenRatio=m.golden_ratio_lateral,
        gingivalSym=m.gingival_symmetry,
        smileConvexity=m.smile_convexity_score,
        vdoRatio=m.vertical_dimension_ratio,
    )
    assert sim.current_harmony == pytest.approx(plan_harmony(sim.current))
    assert sim.current_harmony < sim.ideal_harmony


def test_simulation_of_named_snapshot(store, reference_analysis):
    first = _snap(store, reference_analysis, 0)
    _snap(store, reference_analysis, 1)
    assert smile_simulation(store, first.id).snapshot == first
    with pytest.raises(KeyError):
        smile_simulation(store, 42)


def test_snapshot_targets_without_analysis():
    assert snapshot_targets(None) == SIMULATOR_DEFAULTS
