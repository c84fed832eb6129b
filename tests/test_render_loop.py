from __future__ import annotations

import numpy as np
import pytest
from structlog.testing import capture_logs

from smiledesign.config import Config
from smiledesign.realtime.loop import (
    DETECTOR_NOTICE,
    HarmonyEaser,
    LoopState,
    OverlayToggles,
    RenderLoop,
)
from smiledesign.vision.detector import DetectorInitError

from conftest import HEIGHT, WIDTH, make_landmarks


class FakeSource:
    def __init__(self, frames, front_facing=False):
        self.frames = list(frames)
        self.front_facing = front_facing

    def read(self):
        if not self.frames:
            return np.zeros((HEIGHT, WIDTH, 3), dtype=np.uint8)
        return self.frames.pop(0)


class FakeDetector:
    def __init__(self, faces=None, fail_first=False):
        self.faces = faces if faces is not None else [make_landmarks()]
        self.fail_first = fail_first
        self.timestamps = []
        self.closed = 0

    def detect(self, frame, timestamp_ms):
        self.timestamps.append(timestamp_ms)
        if self.fail_first and len(self.timestamps) == 1:
            raise RuntimeError("transient runtime failure")
        return self.faces

    def close(self):
        self.closed += 1


class Clock:
    def __init__(self, now=0.0):
        self.now = now

    def __call__(self):
        return self.now


def frame():
    return np.zeros((HEIGHT, WIDTH, 3), dtype=np.uint8)


def make_loop(detector=None, source=None, toggles=None, clock=None):
    detector = detector or FakeDetector()
    loop = RenderLoop(
        source or FakeSource([]),
        lambda: detector,
        toggles=toggles,
        config=Config(),
        clock=clock or Clock(),
    )
    return loop, detector


def test_stays_idle_and_retries_on_fixed_delay():
    attempts = []

    def failing_factory():
        attempts.append(1)
        raise DetectorInitError("model missing")

    clock = Clock()
    loop = RenderLoop(FakeSource([]), failing_factory, config=Config(), clock=clock)

    assert loop.step() is None
    assert loop.state is LoopState.IDLE
    assert loop.notice == DETECTOR_NOTICE
    assert len(attempts) == 1

    clock.now = 0.2
    loop.step()
    assert len(attempts) == 1

    clock.now = 0.6
    loop.step()
    assert len(attempts) == 2
    assert loop.state is LoopState.IDLE


def test_recovers_once_detector_loads():
    detector = FakeDetector()
    calls = []

    def flaky_factory():
        calls.append(1)
        if len(calls) == 1:
            raise DetectorInitError("not yet")
        return detector

    clock = Clock()
    loop = RenderLoop(FakeSource([]), flaky_factory, config=Config(), clock=clock)
    loop.step()
    clock.now = 1.0
    out = loop.step()

    assert loop.state is LoopState.RUNNING
    assert loop.notice is None
    assert out is not None and out.analysis is not None


def test_step_analyzes_and_draws():
    loop, _ = make_loop()
    out = loop.step()

    assert out.base.shape == (HEIGHT, WIDTH, 4)
    assert out.overlay.shape == (HEIGHT, WIDTH, 4)
    assert out.analysis.overall_harmony == 88
    assert loop.latest is out.analysis
    assert out.overlay[:, :, 3].any()
    assert (out.base[:, :, 3] == 255).all()


def test_timestamps_strictly_increase_with_frozen_clock():
    loop, detector = make_loop(clock=Clock(5.0))
    for _ in range(4):
        loop.step()
    assert detector.timestamps == [5000, 5001, 5002, 5003]


def test_missing_and_empty_frames_are_skipped():
    source = FakeSource([None, np.zeros((0, 0, 3), dtype=np.uint8)])
    loop, detector = make_loop(source=source)
    assert loop.step() is None
    assert loop.step() is None
    assert detector.timestamps == []


def test_front_facing_source_is_mirrored():
    img = frame()
    img[:, 0] = 255
    loop, _ = make_loop(source=FakeSource([img], front_facing=True))
    out = loop.step()
    assert (out.base[:, -1, :3] == 255).all()
    assert (out.base[:, 0, :3] == 0).all()


def test_surfaces_follow_frame_size():
    small = np.zeros((120, 160, 3), dtype=np.uint8)
    loop, _ = make_loop(source=FakeSource([frame(), small]))
    assert loop.step().base.shape[:2] == (HEIGHT, WIDTH)
    assert loop.step().overlay.shape[:2] == (120, 160)


def test_no_face_leaves_overlay_clear():
    loop, _ = make_loop(detector=FakeDetector(faces=[]))
    out = loop.step()
    assert out.analysis is None
    assert not out.overlay.any()


def test_latest_survives_frames_without_faces():
    detector = FakeDetector()
    loop, _ = make_loop(detector=detector)
    first = loop.step().analysis
    detector.faces = []
    out = loop.step()
    assert out.analysis is first
    assert not out.overlay.any()


def test_disabled_toggles_draw_nothing():
    toggles = OverlayToggles(False, False, False, False, False)
    loop, _ = make_loop(toggles=toggles)
    out = loop.step()
    assert out.analysis is not None
    assert not out.overlay.any()


def test_toggle_flips_one_layer():
    toggles = OverlayToggles()
    assert toggles.toggle("gingival") is False
    assert toggles.gingival is False
    assert toggles.toggle("gingival") is True
    with pytest.raises(KeyError):
        toggles.toggle("sparkles")


def test_run_survives_iteration_errors():
    loop, detector = make_loop(detector=FakeDetector(fail_first=True))
    outputs = []
    count = loop.run(outputs.append, max_frames=3)
    assert count == 3
    assert outputs[0] is None
    assert outputs[1] is not None


def test_cancel_from_callback_stops_run():
    loop, _ = make_loop()
    seen = []

    def on_frame(out):
        seen.append(out)
        if len(seen) == 2:
            loop.cancel()

    loop.run(on_frame)
    assert len(seen) == 2
    assert loop.step() is None


def test_callback_returning_false_stops_run():
    loop, _ = make_loop()
    assert loop.run(lambda out: False) == 1


def test_close_releases_detector_once():
    loop, detector = make_loop()
    with loop:
        loop.step()
    loop.close()
    assert detector.closed == 1


def test_close_before_start_is_safe():
    loop, detector = make_loop()
    loop.close()
    loop.close()
    assert detector.closed == 0
    assert loop.run() == 0


def test_harmony_easer_converges():
    easer = HarmonyEaser()
    assert easer.update(100) == 15
    for _ in range(60):
        value = easer.update(100)
    assert value == 100
    assert easer.update(None) == 0


def test_mesh_without_irises_keeps_frames():
    face = make_landmarks()[:468]
    loop, _ = make_loop(detector=FakeDetector(faces=[face]))
    outputs = []
    with capture_logs() as logs:
        loop.run(outputs.append, max_frames=3)

    assert all(out is not None for out in outputs)
    assert outputs[-1].analysis is loop.latest
    assert loop.latest is not None
    assert outputs[-1].overlay[..., 3].any()
    skipped = [e for e in logs if e["event"] == "overlay layer skipped"]
    assert len(skipped) == 1
    assert skipped[0]["layer"] == "facial_guides"
    assert skipped[0]["log_level"] == "warning"
    assert not [e for e in logs if e["event"] == "frame iteration failed"]
