# SPDX-License-Identifier: Apache-2.0
"""Interactive OpenCV window around the render loop."""
from __future__ import annotations

import time
from pathlib import Path
from typing import Optional

import cv2
import numpy as np

from smiledesign.config import Config
from smiledesign.datastore.store import JsonStore
from smiledesign.export import NoAnalysisError, composite, take_snapshot
from smiledesign.logging_utils import get_logger
from smiledesign.realtime.loop import FrameOutput, HarmonyEaser, RenderLoop
from smiledesign.report.text_report import write_text_report
from smiledesign.schemas import Snapshot
from smiledesign.vision.capture import CameraSource
from smiledesign.vision.detector import create_detector

LOGGER = get_logger(__name__)

WINDOW = "smiledesign"
ESC = 27

# key -> overlay toggle
TOGGLE_KEYS = {
    ord("1"): "facial_guides",
    ord("2"): "dental_guides",
    ord("3"): "gingival",
    ord("4"): "measurements",
    ord("5"): "deviation",
}


def badge_color(harmony: int):
    if harmony >= 85:
        return (80, 200, 80)
    if harmony >= 70:
        return (0, 200, 255)
    return (60, 60, 230)


def draw_hud(frame: np.ndarray, harmony: Optional[int], notice: Optional[str]) -> None:
    if notice:
        cv2.putText(frame, notice, (16, 32), cv2.FONT_HERSHEY_SIMPLEX, 0.7, (60, 60, 230), 2, cv2.LINE_AA)
        return
    if harmony is None:
        cv2.putText(frame, "Analyzing...", (16, 32), cv2.FONT_HERSHEY_SIMPLEX, 0.7, (220, 220, 220), 2, cv2.LINE_AA)
        return
    cv2.putText(
        frame, f"Harmony {harmony}/100", (16, 32), cv2.FONT_HERSHEY_SIMPLEX, 0.8,
        badge_color(harmony), 2, cv2.LINE_AA,
    )


class LiveSession:
    """Owns the camera, the loop and the store for one window session."""

    def __init__(self, config: Config):
        self.config = config
        self.store = JsonStore(config.store.path)
        self.out_dir = Path(config.report.out_dir)
        self.camera = CameraSource(config.capture)
        self.loop = RenderLoop(
            self.camera,
            lambda: create_detector(config.detector, video=True),
            config=config,
        )
        self.easer = HarmonyEaser()
        self.last: Optional[FrameOutput] = None
        self._last_stamp = 0

    def _stamp_ms(self) -> int:
        """Millisecond timestamp, unique within the session."""
        self._last_stamp = max(int(time.time() * 1000), self._last_stamp + 1)
        return self._last_stamp

    def snapshot(self) -> Optional[Snapshot]:
        if self.last is None:
            LOGGER.warning("snapshot skipped", reason="no frame yet")
            return None
        try:
            return take_snapshot(
                self.store, self.last.base, self.last.overlay, self.loop.latest, out_dir=self.out_dir
            )
        except NoAnalysisError:
            LOGGER.warning("snapshot skipped", reason="no analysis yet")
            return None

    def report(self) -> Optional[Path]:
        if self.loop.latest is None:
            LOGGER.warning("report skipped", reason="no analysis yet")
            return None
        name = f"dsd-report-{self._stamp_ms()}.txt"
        return write_text_report(self.out_dir / name, self.loop.latest, title=self.config.report.title)

    def handle_key(self, key: int) -> bool:
        """Apply a key press; False ends the session."""
        if key in (ord("q"), ESC):
            return False
        if key in TOGGLE_KEYS:
            name = TOGGLE_KEYS[key]
            LOGGER.info("overlay toggled", overlay=name, enabled=self.loop.toggles.toggle(name))
        elif key == ord("c"):
            self.camera.front_facing = not self.camera.front_facing
        elif key == ord("s"):
            self.snapshot()
        elif key == ord("r"):
            self.report()
        return True

    def on_frame(self, output: Optional[FrameOutput]) -> bool:
        if output is not None:
            self.last = output
        if self.last is not None:
            shown = composite(self.last.base, self.last.overlay)
        else:
            shown = np.zeros((360, 640, 3), dtype=np.uint8)
        latest = self.loop.latest
        harmony = self.easer.update(latest.overall_harmony) if latest else None
        draw_hud(shown, harmony, self.loop.notice)
        cv2.imshow(WINDOW, shown)
        key = cv2.waitKey(1) & 0xFF
        if key == 0xFF:
            return True
        return self.handle_key(key)

    def run(self) -> None:
        LOGGER.info("live session started", camera=self.config.capture.camera_index)
        with self.camera, self.loop:
            self.loop.run(self.on_frame)
        cv2.destroyAllWindows()
