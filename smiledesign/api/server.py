# SPDX-License-Identifier: Apache-2.0
"""HTTP and websocket access to the analysis core."""
from __future__ import annotations

import json
from typing import Any, Dict, List

from fastapi import FastAPI, HTTPException, WebSocket, WebSocketDisconnect
from fastapi.responses import PlainTextResponse
from pydantic import ValidationError

from smiledesign import __version__
from smiledesign.analysis.scoring import analyze
from smiledesign.config import load_config
from smiledesign.datastore.store import BackupError, JsonStore
from smiledesign.logging_utils import get_logger
from smiledesign.report.text_report import render_text_report
from smiledesign.schemas import AnalysisResult, AnalyzeRequest, dump

LOGGER = get_logger(__name__)

app = FastAPI(title="smiledesign", version=__version__)


def get_store() -> JsonStore:
    return JsonStore(load_config().store.path)


def _analyze(req: AnalyzeRequest) -> AnalysisResult:
    return analyze(req.landmarks, req.width, req.height)


@app.get("/health")
async def health() -> Dict[str, str]:
    return {"status": "ok", "version": __version__}


@app.post("/analyze")
async def analyze_endpoint(req: AnalyzeRequest) -> Dict[str, Any]:
    return _analyze(req).to_payload()


@app.post("/report", response_class=PlainTextResponse)
async def report_endpoint(req: AnalyzeRequest) -> str:
    return render_text_report(_analyze(req), title=load_config().report.title)


@app.get("/snapshots")
async def snapshots_endpoint() -> List[Dict[str, Any]]:
    return [dump(s) for s in get_store().snapshots()]


@app.delete("/snapshots/{snapshot_id}")
async def delete_snapshot(snapshot_id: int) -> Dict[str, Any]:
    if not get_store().delete_snapshot(snapshot_id):
        raise HTTPException(status_code=404, detail=f"snapshot {snapshot_id} not found")
    return {"deleted": snapshot_id}


@app.post("/backup/import")
async def import_backup(payload: Dict[str, Any]) -> Dict[str, Any]:
    try:
        restored = get_store().import_backup(payload)
    except BackupError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return {"restored": restored}


@app.get("/backup")
async def export_backup() -> Dict[str, Any]:
    return get_store().export_backup()


@app.websocket("/ws/analyze")
async def ws_analyze(ws: WebSocket):
    await ws.accept()
    try:
        while True:
            msg = await ws.receive_text()
            try:
                req = AnalyzeRequest.model_validate(json.loads(msg))
            except json.JSONDecodeError:
                await ws.send_json({"error": "invalid json"})
                continue
            except ValidationError as exc:
                await ws.send_json({"error": f"expected landmarks, width and height ({exc.error_count()} errors)"})
                continue
            await ws.send_json(_analyze(req).to_payload())
    except WebSocketDisconnect:
        LOGGER.info("websocket closed")
