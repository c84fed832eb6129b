# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

import os
from pathlib import Path

from pydantic import BaseModel, Field
import yaml


class CaptureConfig(BaseModel):
    camera_index: int = 0
    front_facing: bool = True
    width: int = 1280
    height: int = 720


class DetectorConfig(BaseModel):
    model_path: str = "models/face_landmarker.task"
    num_faces: int = 1
    retry_delay_s: float = 0.5
    delegate: str = "CPU"


class OverlayConfig(BaseModel):
    facial_guides: bool = True
    dental_guides: bool = True
    gingival: bool = True
    measurements: bool = True
    deviation: bool = True


class StoreConfig(BaseModel):
    path: str = "data/smiledesign.json"


class ReportConfig(BaseModel):
    out_dir: str = "outputs"
    title: str = "Clinical DSD Analysis Report"


class Config(BaseModel):
    capture: CaptureConfig = Field(default_factory=CaptureConfig)
    detector: DetectorConfig = Field(default_factory=DetectorConfig)
    overlays: OverlayConfig = Field(default_factory=OverlayConfig)
    store: StoreConfig = Field(default_factory=StoreConfig)
    report: ReportConfig = Field(default_factory=ReportConfig)


def _env_flag(value: str) -> bool:
    return value.strip().lower() in {"1", "true", "yes", "on"}


def load_config(path: Path | None = None) -> Config:
    path = path or Path(__file__).with_name("config.yaml")
    if path.exists():
        data = yaml.safe_load(path.read_text()) or {}
        cfg = Config(**data)
    else:
        cfg = Config()

    # environment overrides
    store = os.getenv("SMILEDESIGN_STORE")
    if store:
        cfg.store.path = store
    model = os.getenv("SMILEDESIGN_MODEL")
    if model:
        cfg.detector.model_path = model
    camera = os.getenv("SMILEDESIGN_CAMERA")
    if camera:
        cfg.capture.camera_index = int(camera)
    if os.getenv("SMILEDESIGN_FRONT_FACING") is not None:
        cfg.capture.front_facing = _env_flag(os.getenv("SMILEDESIGN_FRONT_FACING", ""))
    return cfg
