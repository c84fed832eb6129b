# SPDX-License-Identifier: Apache-2.0
"""Flattened snapshot images and their persistence."""
from __future__ import annotations

import base64
from datetime import datetime
from pathlib import Path
from typing import Optional

import cv2
import numpy as np

from smiledesign.datastore.store import JsonStore
from smiledesign.logging_utils import get_logger
from smiledesign.schemas import AnalysisResult, Snapshot
from smiledesign.utils.io import ensure_dir

LOGGER = get_logger(__name__)

_MIME = {"jpeg": ("image/jpeg", ".jpg"), "jpg": ("image/jpeg", ".jpg"), "png": ("image/png", ".png")}


class NoAnalysisError(RuntimeError):
    """Raised when an export is requested before any face was analyzed."""


def require_analysis(analysis: Optional[AnalysisResult]) -> AnalysisResult:
    if analysis is None:
        raise NoAnalysisError("no analysis available yet")
    return analysis


def composite(base: np.ndarray, overlay: np.ndarray) -> np.ndarray:
    """Alpha-blend a BGRA overlay onto a BGR(A) frame; returns BGR uint8."""
    if base.shape[:2] != overlay.shape[:2]:
        raise ValueError(f"size mismatch: {base.shape[:2]} vs {overlay.shape[:2]}")
    frame = base[:, :, :3].astype(np.float32)
    alpha = overlay[:, :, 3:4].astype(np.float32) / 255.0
    out = frame * (1.0 - alpha) + overlay[:, :, :3].astype(np.float32) * alpha
    return np.clip(out + 0.5, 0, 255).astype(np.uint8)


def _format(fmt: str) -> tuple[str, str]:
    try:
        return _MIME[fmt.lower()]
    except KeyError:
        raise ValueError(f"unsupported image format: {fmt}") from None


def encode_image(image: np.ndarray, fmt: str = "jpeg") -> bytes:
    _, ext = _format(fmt)
    ok, buf = cv2.imencode(ext, image)
    if not ok:
        raise ValueError("image encoding failed")
    return buf.tobytes()


def to_data_uri(image: np.ndarray, fmt: str = "jpeg") -> str:
    mime, _ = _format(fmt)
    data = base64.b64encode(encode_image(image, fmt)).decode("ascii")
    return f"data:{mime};base64,{data}"


def decode_data_uri(uri: str) -> np.ndarray:
    """Inverse of :func:`to_data_uri`; returns a BGR image."""
    _, _, payload = uri.partition("base64,")
    buf = np.frombuffer(base64.b64decode(payload), dtype=np.uint8)
    img = cv2.imdecode(buf, cv2.IMREAD_COLOR)
    if img is None:
        raise ValueError("data URI does not hold an image")
    return img


def take_snapshot(
    store: JsonStore,
    base: np.ndarray,
    overlay: np.ndarray,
    analysis: Optional[AnalysisResult],
    now: Optional[datetime] = None,
    out_dir: Optional[Path] = None,
) -> Snapshot:
    """Flatten frame + overlay and append it to the stored snapshots.

    With ``out_dir`` the flattened frame is also written there as
    ``dsd-snapshot-<id>.png``.
    """
    analysis = require_analysis(analysis)
    now = now or datetime.now()
    flat = composite(base, overlay)
    snapshot = Snapshot(
        id=int(now.timestamp() * 1000),
        date=now.strftime("%Y-%m-%d"),
        time=now.strftime("%H:%M:%S"),
        image=to_data_uri(flat),
        analysis=analysis,
    )
    store.add_snapshot(snapshot)
    if out_dir is not None:
        path = ensure_dir(Path(out_dir)) / f"dsd-snapshot-{snapshot.id}.png"
        cv2.imwrite(str(path), flat)
        LOGGER.info("snapshot image written", path=str(path))
    LOGGER.info("snapshot saved", id=snapshot.id, harmony=analysis.overall_harmony)
    return snapshot


COMPARISON_TILE = 400
# BGR washes laid over the current and ideal halves
CURRENT_TINT = (38, 38, 220)
IDEAL_TINT = (94, 197, 34)


def comparison_image(image: np.ndarray, current_harmony: float, ideal_harmony: float) -> np.ndarray:
    """Side-by-side current (red wash) and ideal (green wash) panels, 800x400 BGR."""
    tile = cv2.resize(
        np.ascontiguousarray(image[:, :, :3]), (COMPARISON_TILE, COMPARISON_TILE), interpolation=cv2.INTER_AREA
    )
    panels = []
    for tint, label in (
        (CURRENT_TINT, f"Current: {current_harmony:.0f}/100"),
        (IDEAL_TINT, f"Ideal: {ideal_harmony:.0f}/100"),
    ):
        wash = np.empty_like(tile)
        wash[:] = tint
        panel = cv2.addWeighted(tile, 0.4, wash, 0.6, 0)
        cv2.putText(panel, label, (10, 30), cv2.FONT_HERSHEY_SIMPLEX, 0.6, (255, 255, 255), 1, cv2.LINE_AA)
        panels.append(panel)
    return np.hstack(panels)


def write_comparison(
    out_dir: Path,
    image: np.ndarray,
    current_harmony: float,
    ideal_harmony: float,
    now: Optional[datetime] = None,
) -> Path:
    now = now or datetime.now()
    path = ensure_dir(Path(out_dir)) / f"smile-comparison-{int(now.timestamp() * 1000)}.png"
    cv2.imwrite(str(path), comparison_image(image, current_harmony, ideal_harmony))
    LOGGER.info("comparison written", path=str(path))
    return path
