# SPDX-License-Identifier: Apache-2.0
"""Face landmark detection behind a narrow ``detect(frame, timestamp)`` interface."""
from __future__ import annotations

from pathlib import Path
from typing import List, Protocol

import cv2
import numpy as np

from smiledesign.analysis.landmarks import Landmark
from smiledesign.config import DetectorConfig
from smiledesign.logging_utils import get_logger

LOGGER = get_logger(__name__)


class DetectorInitError(RuntimeError):
    """The landmark runtime or its model assets could not be loaded."""


class LandmarkDetector(Protocol):
    def detect(self, frame: np.ndarray, timestamp_ms: int) -> List[List[Landmark]]:
        """Return one landmark list per detected face in a BGR ``frame``."""

    def close(self) -> None:
        """Release the underlying runtime resources."""


class MediaPipeLandmarker:
    """MediaPipe Face Landmarker (478 points, refined irises).

    ``video=True`` runs the task in VIDEO mode, which requires strictly
    increasing timestamps; still images use IMAGE mode and ignore them.
    """

    def __init__(self, config: DetectorConfig, video: bool = True):
        model = Path(config.model_path)
        if not model.exists():
            raise DetectorInitError(f"face landmarker model not found: {model}")
        try:
            import mediapipe as mp
            from mediapipe.tasks import python as mp_tasks
            from mediapipe.tasks.python import vision
        except ImportError as exc:
            raise DetectorInitError(f"mediapipe unavailable: {exc}") from exc

        delegate = (
            mp_tasks.BaseOptions.Delegate.GPU
            if config.delegate.upper() == "GPU"
            else mp_tasks.BaseOptions.Delegate.CPU
        )
        options = vision.FaceLandmarkerOptions(
            base_options=mp_tasks.BaseOptions(model_asset_path=str(model), delegate=delegate),
            running_mode=vision.RunningMode.VIDEO if video else vision.RunningMode.IMAGE,
            num_faces=config.num_faces,
            output_face_blendshapes=False,
        )
        try:
            self._landmarker = vision.FaceLandmarker.create_from_options(options)
        except (RuntimeError, ValueError) as exc:
            raise DetectorInitError(f"face landmarker failed to start: {exc}") from exc
        self._mp = mp
        self._video = video
        LOGGER.info("landmarker ready", model=str(model), video=video)

    def detect(self, frame: np.ndarray, timestamp_ms: int = 0) -> List[List[Landmark]]:
        rgb = cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)
        image = self._mp.Image(image_format=self._mp.ImageFormat.SRGB, data=np.ascontiguousarray(rgb))
        if self._video:
            result = self._landmarker.detect_for_video(image, int(timestamp_ms))
        else:
            result = self._landmarker.detect(image)
        return [
            [Landmark(p.x, p.y, p.z) for p in face]
            for face in (result.face_landmarks or [])
        ]

    def close(self) -> None:
        self._landmarker.close()


def create_detector(config: DetectorConfig, video: bool = True) -> MediaPipeLandmarker:
    return MediaPipeLandmarker(config, video=video)
