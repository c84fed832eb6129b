# SPDX-License-Identifier: Apache-2.0
"""Frame sources for the render loop."""
from __future__ import annotations

from pathlib import Path
from typing import Optional

import cv2
import numpy as np

from smiledesign.config import CaptureConfig
from smiledesign.logging_utils import get_logger

LOGGER = get_logger(__name__)


class CameraSource:
    """OpenCV camera capture, opened on first read."""

    def __init__(self, config: CaptureConfig):
        self.index = config.camera_index
        self.front_facing = config.front_facing
        self.width = config.width
        self.height = config.height
        self._cap: Optional[cv2.VideoCapture] = None

    def _open(self) -> cv2.VideoCapture:
        cap = cv2.VideoCapture(self.index)
        cap.set(cv2.CAP_PROP_FRAME_WIDTH, self.width)
        cap.set(cv2.CAP_PROP_FRAME_HEIGHT, self.height)
        if not cap.isOpened():
            LOGGER.warning("camera unavailable", index=self.index)
        return cap

    def read(self) -> Optional[np.ndarray]:
        """Return the next BGR frame, or ``None`` when none is ready."""
        if self._cap is None:
            self._cap = self._open()
        ok, frame = self._cap.read()
        if not ok or frame is None:
            return None
        return frame

    def release(self) -> None:
        if self._cap is not None:
            self._cap.release()
            self._cap = None

    def __enter__(self) -> "CameraSource":
        return self

    def __exit__(self, *exc) -> None:
        self.release()


def load_image(path: Path) -> np.ndarray:
    img = cv2.imread(str(path), cv2.IMREAD_COLOR)
    if img is None:
        raise FileNotFoundError(f"cannot read image: {path}")
    return img
