# SPDX-License-Identifier: Apache-2.0
"""Flat key/value persistence in a single JSON document.

Values are stored under the same keys the clinic front end used, so backups
exchanged with it stay compatible: ``capturedSnapshots``, ``patientArchive``,
``treatmentPlans`` and ``clinicSettings``.
"""
from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from smiledesign.logging_utils import get_logger
from smiledesign.schemas import (
    Backup,
    ClinicSettings,
    PatientRecord,
    Snapshot,
    TreatmentPlan,
    dump,
)
from smiledesign.utils.io import read_json, write_json

LOGGER = get_logger(__name__)

SNAPSHOTS_KEY = "capturedSnapshots"
PATIENTS_KEY = "patientArchive"
PLANS_KEY = "treatmentPlans"
SETTINGS_KEY = "clinicSettings"

# backup section -> store key
BACKUP_SECTIONS = {
    "settings": SETTINGS_KEY,
    "patients": PATIENTS_KEY,
    "snapshots": SNAPSHOTS_KEY,
    "plans": PLANS_KEY,
}


class StoreError(RuntimeError):
    """Persistence I/O problem."""


class BackupError(StoreError):
    """A backup document could not be parsed or validated."""


class JsonStore:
    def __init__(self, path: Path | str):
        self.path = Path(path)

    # ---------- raw key/value ----------
    def _load(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            data = read_json(self.path)
        except (OSError, json.JSONDecodeError) as exc:
            raise StoreError(f"cannot read store {self.path}: {exc}") from exc
        if not isinstance(data, dict):
            raise StoreError(f"store {self.path} is not a JSON object")
        return data

    def _save(self, data: Dict[str, Any]) -> None:
        try:
            write_json(self.path, data)
        except OSError as exc:
            raise StoreError(f"cannot write store {self.path}: {exc}") from exc

    def get(self, key: str, default: Any = None) -> Any:
        return self._load().get(key, default)

    def set(self, key: str, value: Any) -> None:
        data = self._load()
        data[key] = value
        self._save(data)

    def remove(self, *keys: str) -> None:
        data = self._load()
        for key in keys:
            data.pop(key, None)
        self._save(data)

    def _append(self, key: str, record: Dict[str, Any]) -> None:
        items = self.get(key, [])
        items.append(record)
        self.set(key, items)

    # ---------- typed collections ----------
    def snapshots(self) -> List[Snapshot]:
        return [Snapshot.model_validate(s) for s in self.get(SNAPSHOTS_KEY, [])]

    def add_snapshot(self, snapshot: Snapshot) -> None:
        self._append(SNAPSHOTS_KEY, dump(snapshot))

    def delete_snapshot(self, snapshot_id: int) -> bool:
        """Remove the snapshot with ``snapshot_id``; False when none matched."""
        items = self.get(SNAPSHOTS_KEY, [])
        kept = [s for s in items if s.get("id") != snapshot_id]
        if len(kept) == len(items):
            return False
        self.set(SNAPSHOTS_KEY, kept)
        LOGGER.info("snapshot deleted", id=snapshot_id)
        return True

    def latest_snapshot(self) -> Optional[Snapshot]:
        snaps = self.snapshots()
        return snaps[-1] if snaps else None

    def patients(self) -> List[PatientRecord]:
        return [PatientRecord.model_validate(p) for p in self.get(PATIENTS_KEY, [])]

    def add_patient(self, patient: PatientRecord) -> None:
        self._append(PATIENTS_KEY, dump(patient))

    def find_patient(self, name: str) -> Optional[PatientRecord]:
        for patient in self.patients():
            if patient.patient_name == name:
                return patient
        return None

    def plans(self) -> List[TreatmentPlan]:
        return [TreatmentPlan.model_validate(p) for p in self.get(PLANS_KEY, [])]

    def add_plan(self, plan: TreatmentPlan) -> None:
        self._append(PLANS_KEY, dump(plan))

    def settings(self) -> ClinicSettings:
        raw = self.get(SETTINGS_KEY)
        return ClinicSettings.model_validate(raw) if raw else ClinicSettings()

    def save_settings(self, settings: ClinicSettings) -> None:
        self.set(SETTINGS_KEY, dump(settings))

    # ---------- backup ----------
    def export_backup(self, now: Optional[datetime] = None) -> Dict[str, Any]:
        """Whole-store backup document (settings always present)."""
        data = self._load()
        now = now or datetime.now(timezone.utc)
        backup = {
            "settings": data.get(SETTINGS_KEY) or dump(ClinicSettings()),
            "patients": data.get(PATIENTS_KEY, []),
            "snapshots": data.get(SNAPSHOTS_KEY, []),
            "plans": data.get(PLANS_KEY, []),
            "timestamp": now.isoformat().replace("+00:00", "Z"),
        }
        LOGGER.info(
            "backup exported",
            patients=len(backup["patients"]),
            snapshots=len(backup["snapshots"]),
            plans=len(backup["plans"]),
        )
        return backup

    def write_backup(self, path: Path) -> Path:
        write_json(path, self.export_backup())
        return path

    def import_backup(self, payload: str | bytes | Dict[str, Any]) -> List[str]:
        """Replace each section present in ``payload``; return the restored sections.

        The document is validated before anything is written, so a corrupt
        backup leaves the store untouched.
        """
        if isinstance(payload, (str, bytes)):
            try:
                payload = json.loads(payload)
            except (json.JSONDecodeError, UnicodeDecodeError) as exc:
                raise BackupError(f"invalid backup file: {exc}") from exc
        if not isinstance(payload, dict):
            raise BackupError("invalid backup file: expected a JSON object")
        try:
            Backup.model_validate(payload)
        except ValidationError as exc:
            raise BackupError(f"invalid backup file: {exc.error_count()} invalid field(s)") from exc

        data = self._load()
        restored = []
        for section, key in BACKUP_SECTIONS.items():
            if payload.get(section) is not None:
                data[key] = payload[section]
                restored.append(section)
        self._save(data)
        LOGGER.info("backup imported", sections=restored)
        return restored

    def read_backup(self, path: Path) -> List[str]:
        try:
            text = Path(path).read_text(encoding="utf-8")
        except OSError as exc:
            raise BackupError(f"cannot read backup {path}: {exc}") from exc
        return self.import_backup(text)

    def clear_patient_data(self) -> None:
        """Remove archive, snapshots and plans; clinic settings are kept."""
        self.remove(PATIENTS_KEY, SNAPSHOTS_KEY, PLANS_KEY)
        LOGGER.info("patient data cleared")
