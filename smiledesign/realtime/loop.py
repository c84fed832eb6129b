# SPDX-License-Identifier: Apache-2.0
"""Per-frame driver: capture, detect, analyze and draw overlays.

The loop is single threaded. One call to :meth:`RenderLoop.step` handles one
frame; :meth:`RenderLoop.run` repeats it and yields to the host (window
refresh, key handling) between iterations through its ``on_frame`` callback.
Slow frames are not queued; the next read simply returns a newer frame.
"""
from __future__ import annotations

import time
from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Callable, List, Optional, Protocol, Set

import numpy as np

from smiledesign.analysis.landmarks import Landmark
from smiledesign.analysis.scoring import analyze
from smiledesign.config import Config, OverlayConfig
from smiledesign.logging_utils import get_logger
from smiledesign.render.overlays import draw_overlays
from smiledesign.render.surface import Surface
from smiledesign.schemas import AnalysisResult
from smiledesign.vision.detector import DetectorInitError, LandmarkDetector

LOGGER = get_logger(__name__)

DETECTOR_NOTICE = "Failed to load AR engine. Retrying."


class FrameSource(Protocol):
    front_facing: bool

    def read(self) -> Optional[np.ndarray]:
        ...


class LoopState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"


@dataclass
class OverlayToggles:
    """Which overlay layers are drawn; passed to every iteration."""

    facial_guides: bool = True
    dental_guides: bool = True
    gingival: bool = True
    measurements: bool = True
    deviation: bool = True

    @classmethod
    def from_config(cls, config: OverlayConfig) -> "OverlayToggles":
        return cls(**config.model_dump())

    def names(self) -> List[str]:
        return [f.name for f in fields(self)]

    def toggle(self, name: str) -> bool:
        if name not in self.names():
            raise KeyError(name)
        setattr(self, name, not getattr(self, name))
        return getattr(self, name)


@dataclass
class FrameOutput:
    base: np.ndarray
    overlay: np.ndarray
    analysis: Optional[AnalysisResult]
    faces: List[List[Landmark]] = field(default_factory=list)


class HarmonyEaser:
    """Eases the displayed harmony value towards the latest score."""

    def __init__(self, factor: float = 0.15):
        self.factor = factor
        self.value = 0.0

    def update(self, target: Optional[int]) -> int:
        if target is None:
            self.value = 0.0
            return 0
        self.value += (target - self.value) * self.factor
        if abs(target - self.value) < 1:
            self.value = float(target)
        return int(round(self.value))


class RenderLoop:
    """Idle until the detector is available, then analyze frame after frame."""

    def __init__(
        self,
        source: FrameSource,
        detector_factory: Callable[[], LandmarkDetector],
        toggles: Optional[OverlayToggles] = None,
        config: Optional[Config] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.config = config or Config()
        self.source = source
        self.toggles = toggles or OverlayToggles.from_config(self.config.overlays)
        self.state = LoopState.IDLE
        self.latest: Optional[AnalysisResult] = None
        self.notice: Optional[str] = None
        self.base = Surface(0, 0)
        self.overlay = Surface(0, 0)
        self._factory = detector_factory
        self._detector: Optional[LandmarkDetector] = None
        self._clock = clock
        self._next_attempt = 0.0
        self._last_ts = -1
        self._skipped_layers: Set[str] = set()
        self._cancelled = False
        self._closed = False

    # ---------- detector lifecycle ----------
    def _ensure_detector(self) -> bool:
        if self._detector is not None:
            return True
        now = self._clock()
        if now < self._next_attempt:
            return False
        try:
            self._detector = self._factory()
        except DetectorInitError as exc:
            self._next_attempt = now + self.config.detector.retry_delay_s
            if self.notice is None:
                self.notice = DETECTOR_NOTICE
                LOGGER.warning("detector init failed", error=str(exc))
            return False
        self.notice = None
        self.state = LoopState.RUNNING
        LOGGER.info("render loop running")
        return True

    def _timestamp_ms(self) -> int:
        ts = int(self._clock() * 1000)
        if ts <= self._last_ts:
            ts = self._last_ts + 1
        self._last_ts = ts
        return ts

    # ---------- iteration ----------
    def step(self) -> Optional[FrameOutput]:
        """Process one frame; ``None`` when the frame was skipped."""
        if self._cancelled or not self._ensure_detector():
            return None
        frame = self.source.read()
        if frame is None or frame.size == 0:
            return None
        h, w = frame.shape[:2]
        if w == 0 or h == 0:
            return None

        mirrored = bool(getattr(self.source, "front_facing", False))
        self.base.ensure_size(w, h)
        self.overlay.ensure_size(w, h)
        self.base.mirrored = self.overlay.mirrored = mirrored

        faces = self._detector.detect(frame, self._timestamp_ms())

        self.base.image[:, :, :3] = frame[:, ::-1, :3] if mirrored else frame[:, :, :3]
        self.base.image[:, :, 3] = 255
        self.overlay.clear()

        for face in faces:
            result = analyze(face, w, h)
            self.latest = result
            for layer in draw_overlays(self.overlay, face, w, h, result, self.toggles):
                if layer not in self._skipped_layers:
                    self._skipped_layers.add(layer)
                    LOGGER.warning("overlay layer skipped", layer=layer, landmarks=len(face))

        return FrameOutput(self.base.image, self.overlay.image, self.latest, faces)

    def run(self, on_frame: Optional[Callable[[Optional[FrameOutput]], bool]] = None, max_frames: Optional[int] = None) -> int:
        """Loop until cancelled, ``on_frame`` returns False or ``max_frames`` ran."""
        count = 0
        while not self._cancelled:
            if max_frames is not None and count >= max_frames:
                break
            try:
                output = self.step()
            except Exception:
                LOGGER.exception("frame iteration failed")
                output = None
            count += 1
            if on_frame is not None and on_frame(output) is False:
                break
        return count

    # ---------- teardown ----------
    def cancel(self) -> None:
        self._cancelled = True

    def close(self) -> None:
        """Stop the loop and release the detector exactly once."""
        self.cancel()
        if self._closed:
            return
        self._closed = True
        if self._detector is not None:
            self._detector.close()
            self._detector = None
        LOGGER.info("render loop closed")

    def __enter__(self) -> "RenderLoop":
        return self

    def __exit__(self, *exc) -> None:
        self.close()
