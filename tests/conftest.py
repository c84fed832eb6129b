from __future__ import annotations

from pathlib import Path
from typing import List

import pytest

from smiledesign.analysis.landmarks import LANDMARK_COUNT, Landmark
from smiledesign.analysis.scoring import analyze
from smiledesign.datastore.store import JsonStore
from smiledesign.schemas import AnalysisResult

WIDTH, HEIGHT = 640, 480

# A neutral face: every point at mouth level, with brow, chin, mouth corners
# and the inner lips placed explicitly.
REFERENCE_POINTS = {
    10: (0.5, 0.1),
    152: (0.5, 0.9),
    61: (0.4, 0.62),
    291: (0.6, 0.62),
    13: (0.5, 0.6),
    14: (0.5, 0.64),
}


def make_landmarks(overrides=None) -> List[Landmark]:
    points = [Landmark(0.5, 0.62) for _ in range(LANDMARK_COUNT)]
    for idx, (x, y) in {**REFERENCE_POINTS, **(overrides or {})}.items():
        points[idx] = Landmark(x, y)
    return points


@pytest.fixture
def reference_landmarks() -> List[Landmark]:
    return make_landmarks()


@pytest.fixture
def reference_analysis(reference_landmarks) -> AnalysisResult:
    return analyze(reference_landmarks, WIDTH, HEIGHT)


@pytest.fixture
def store_path(tmp_path, monkeypatch) -> Path:
    path = tmp_path / "store.json"
    monkeypatch.setenv("SMILEDESIGN_STORE", str(path))
    return path


@pytest.fixture
def store(store_path) -> JsonStore:
    return JsonStore(store_path)
