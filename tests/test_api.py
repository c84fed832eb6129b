from __future__ import annotations

from datetime import datetime

import numpy as np
import pytest
from fastapi.testclient import TestClient

from smiledesign.api.server import app
from smiledesign.export import take_snapshot

client = TestClient(app)


@pytest.fixture
def body(reference_landmarks):
    return {
        "landmarks": [{"x": p.x, "y": p.y, "z": p.z} for p in reference_landmarks],
        "width": 640,
        "height": 480,
    }


def test_health():
    res = client.get("/health")
    assert res.status_code == 200
    assert res.json()["status"] == "ok"


def test_analyze(body):
    res = client.post("/analyze", json=body)
    assert res.status_code == 200, res.text
    data = res.json()
    assert data["overallHarmony"] == 88
    assert data["measurements"]["smileAnimationPathway"] == "Horizontal-Dominant"
    assert len(data["clinicalRecommendations"]) == 4


def test_analyze_rejects_negative_size(body):
    body["width"] = -1
    assert client.post("/analyze", json=body).status_code == 422


def test_report(body):
    res = client.post("/report", json=body)
    assert res.status_code == 200
    assert res.headers["content-type"].startswith("text/plain")
    assert "88/100 ✓ EXCELLENT" in res.text


def test_snapshots(store, reference_analysis):
    assert client.get("/snapshots").json() == []
    base = np.zeros((8, 8, 3), dtype=np.uint8)
    take_snapshot(store, base, np.zeros((8, 8, 4), dtype=np.uint8), reference_analysis, now=datetime(2026, 1, 1))
    snaps = client.get("/snapshots").json()
    assert len(snaps) == 1
    assert snaps[0]["analysis"]["overallHarmony"] == 88


def test_delete_snapshot_endpoint(store, reference_analysis):
    base = np.zeros((8, 8, 3), dtype=np.uint8)
    snap = take_snapshot(store, base, np.zeros((8, 8, 4), dtype=np.uint8), reference_analysis, now=datetime(2026, 1, 1))
    assert client.delete(f"/snapshots/{snap.id}").json() == {"deleted": snap.id}
    assert store.snapshots() == []
    assert client.delete(f"/snapshots/{snap.id}").status_code == 404


def test_backup_endpoints(store, reference_analysis):
    backup = client.get("/backup").json()
    assert backup["settings"]["clinicName"] == "Dental Clinic"

    res = client.post("/backup/import", json={"patients": "nope"})
    assert res.status_code == 400

    res = client.post("/backup/import", json={"patients": [{"id": 1, "patientName": "Jane Doe"}]})
    assert res.json() == {"restored": ["patients"]}
    assert store.patients()[0].patient_name == "Jane Doe"


def test_websocket_analyze(body):
    with client.websocket_connect("/ws/analyze") as ws:
        ws.send_json(body)
        assert ws.receive_json()["overallHarmony"] == 88
        ws.send_text("not json")
        assert ws.receive_json() == {"error": "invalid json"}
        ws.send_json({"width": 10})
        assert "error" in ws.receive_json()
