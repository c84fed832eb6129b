# SPDX-License-Identifier: Apache-2.0
"""CLI entrypoints."""
from __future__ import annotations

import json
from pathlib import Path
from typing import List, Optional

import cv2
import typer
from rich.console import Console
from rich.table import Table

from smiledesign.analysis.landmarks import as_landmarks
from smiledesign.analysis.scoring import analyze
from smiledesign.config import load_config
from smiledesign.datastore.store import BackupError, JsonStore
from smiledesign.export import (
    NoAnalysisError,
    composite,
    decode_data_uri,
    require_analysis,
    write_comparison,
)
from smiledesign.logging_utils import configure_logging
from smiledesign.planning import (
    SIMULATOR_METRICS,
    compare_patients,
    dashboard_stats,
    plan_harmony,
    plan_specs,
    save_plan,
    smile_simulation,
    targets_for,
)
from smiledesign.render.overlays import draw_overlays
from smiledesign.render.surface import Surface
from smiledesign.report.pdf import render_pdf_report
from smiledesign.report.prescription import prescription_filename, render_prescription
from smiledesign.report.text_report import write_text_report
from smiledesign.utils.io import ensure_dir, read_json
from smiledesign.vision.capture import load_image
from smiledesign.vision.detector import DetectorInitError, create_detector

app = typer.Typer(help="Digital Smile Design analysis tools.")
console = Console()


@app.callback()
def main(log_level: Optional[str] = typer.Option(None, "--log-level", help="DEBUG, INFO, WARNING or ERROR")):
    if log_level:
        configure_logging(log_level)


def _store() -> JsonStore:
    return JsonStore(load_config().store.path)


def _fail(message: str) -> None:
    console.print(f"[bold red]{message}[/]")
    raise typer.Exit(code=1)


@app.command()
def live(
    camera: Optional[int] = typer.Option(None, help="Camera index"),
    rear: bool = typer.Option(False, "--rear", help="Rear-facing camera (no mirroring)"),
):
    """Open the live analysis window."""
    from smiledesign.live import LiveSession

    cfg = load_config()
    if camera is not None:
        cfg.capture.camera_index = camera
    if rear:
        cfg.capture.front_facing = False
    LiveSession(cfg).run()


@app.command("analyze-image")
def analyze_image(image: Path, out: Path = typer.Option(Path("outputs/image"), help="Output directory")):
    """Detect, analyze and annotate a still photograph."""
    cfg = load_config()
    frame = load_image(image)
    try:
        detector = create_detector(cfg.detector, video=False)
    except DetectorInitError as exc:
        _fail(str(exc))
    try:
        faces = detector.detect(frame)
    finally:
        detector.close()
    if not faces:
        _fail(f"No face detected in {image}")

    h, w = frame.shape[:2]
    result = analyze(faces[0], w, h)
    overlay = Surface(w, h)
    skipped = draw_overlays(overlay, faces[0], w, h, result, cfg.overlays)
    if skipped:
        console.print(f"[yellow]Overlay layers skipped (missing landmarks): {', '.join(skipped)}[/]")

    ensure_dir(out)
    result.to_json(out / "analysis.json")
    cv2.imwrite(str(out / "overlay.png"), composite(frame, overlay.image))
    write_text_report(out / "report.txt", result, title=cfg.report.title)
    console.print(f"Harmony [bold]{result.overall_harmony}/100[/] - {result.classification_notes}")
    console.print(f"Results stored in {out}")


@app.command("analyze-landmarks")
def analyze_landmarks(
    file: Path,
    width: int = typer.Option(..., min=0),
    height: int = typer.Option(..., min=0),
):
    """Analyze a JSON landmark list (no detector needed)."""
    data = read_json(file)
    points = data["landmarks"] if isinstance(data, dict) else data
    result = analyze(as_landmarks(points), width, height)
    typer.echo(json.dumps(result.to_payload(), indent=2, ensure_ascii=False))


@app.command()
def report(
    pdf: bool = typer.Option(False, "--pdf", help="Also write a PDF with the snapshot image"),
    out: Optional[Path] = typer.Option(None, help="Output directory"),
):
    """Clinical report for the latest stored snapshot."""
    cfg = load_config()
    store = JsonStore(cfg.store.path)
    snap = store.latest_snapshot()
    try:
        analysis = require_analysis(snap.analysis if snap else None)
    except NoAnalysisError:
        console.print("[yellow]No analysis available. Take a snapshot first.[/]")
        raise typer.Exit(code=1)

    out_dir = out or Path(cfg.report.out_dir)
    txt = write_text_report(out_dir / f"dsd-report-{snap.id}.txt", analysis, title=cfg.report.title)
    console.print(f"Report written to {txt}")
    if pdf:
        image = decode_data_uri(snap.image) if snap.image else None
        path = render_pdf_report(
            out_dir / f"dsd-report-{snap.id}.pdf", analysis, store.settings(), image, title=cfg.report.title
        )
        console.print(f"PDF written to {path}")


@app.command()
def snapshots(delete: Optional[int] = typer.Option(None, "--delete", help="Delete the snapshot with this ID")):
    """List stored snapshots, or delete one."""
    store = _store()
    if delete is not None:
        if not store.delete_snapshot(delete):
            _fail(f"Snapshot {delete} not found")
        console.print(f"Snapshot {delete} deleted")
        return
    table = Table(title="Captured Snapshots")
    table.add_column("ID", style="cyan")
    table.add_column("Date")
    table.add_column("Time")
    table.add_column("Harmony", style="green")
    table.add_column("Classification")
    for snap in store.snapshots():
        harmony = f"{snap.analysis.overall_harmony}/100" if snap.analysis else "-"
        notes = snap.analysis.classification_notes if snap.analysis else ""
        table.add_row(str(snap.id), snap.date, snap.time, harmony, notes)
    console.print(table)


@app.command()
def backup(out: Path):
    """Export settings, patients, snapshots and plans to a JSON file."""
    _store().write_backup(out)
    console.print(f"[green]Backup written to {out}[/]")


@app.command()
def restore(file: Path):
    """Restore a backup file; sections present in it replace stored data."""
    try:
        sections = _store().read_backup(file)
    except BackupError as exc:
        _fail(str(exc))
    console.print(f"[green]Restored: {', '.join(sections) or 'nothing'}[/]")


@app.command()
def clear(yes: bool = typer.Option(False, "--yes", help="Skip confirmation")):
    """Delete all patient data, snapshots and plans."""
    if not yes and not typer.confirm("This will delete all patient data, snapshots, and plans. Continue?"):
        raise typer.Exit(code=1)
    _store().clear_patient_data()
    console.print("Patient data cleared.")


@app.command()
def plan(
    wl: Optional[float] = typer.Option(None, "--wl", help="Central incisor W/L ratio %"),
    golden: Optional[float] = typer.Option(None, "--golden", help="Golden ratio %"),
    gingival: Optional[float] = typer.Option(None, "--gingival", help="Gingival symmetry"),
    convexity: Optional[float] = typer.Option(None, "--convexity", help="Smile convexity"),
    vdo: Optional[float] = typer.Option(None, "--vdo", help="VDO ratio %"),
    patient: Optional[str] = typer.Option(None, help="Start from an archived patient"),
    save: bool = typer.Option(False, "--save", help="Store the plan"),
):
    """Treatment planner: harmony of a target outcome and the work it implies."""
    store = _store()
    base = targets_for(store.find_patient(patient) if patient else None)
    overrides = {
        "wl_ratio": wl,
        "golden_ratio": golden,
        "gingival_sym": gingival,
        "smile_convexity": convexity,
        "vdo_ratio": vdo,
    }
    targets = base.model_copy(update={k: v for k, v in overrides.items() if v is not None})
    console.print(f"Projected harmony: [bold]{plan_harmony(targets):.0f}/100[/]")
    specs = plan_specs(targets)
    for spec in specs:
        console.print(spec)
    if not specs:
        console.print("[green]✓ Targets within DSD guidelines[/]")
    if save:
        saved = save_plan(store, targets)
        console.print(f"Treatment plan {saved.id} saved")


@app.command()
def simulate(
    snapshot: Optional[int] = typer.Option(None, help="Snapshot ID (defaults to the latest)"),
    export: bool = typer.Option(False, "--export", help="Write a current vs ideal comparison PNG"),
    out: Optional[Path] = typer.Option(None, help="Output directory"),
):
    """Smile simulator: a snapshot's metrics against the ideal DSD state."""
    cfg = load_config()
    try:
        sim = smile_simulation(JsonStore(cfg.store.path), snapshot)
    except KeyError:
        _fail(f"Snapshot {snapshot} not found")

    table = Table(title="Current vs Ideal")
    table.add_column("Metric")
    table.add_column("Current", style="red")
    table.add_column("Ideal", style="green")
    for label, name, unit in SIMULATOR_METRICS:
        table.add_row(label, f"{getattr(sim.current, name):.1f}{unit}", f"{getattr(sim.ideal, name):.0f}{unit}")
    console.print(table)
    console.print(f"Current harmony: [bold]{sim.current_harmony:.0f}/100[/]")
    console.print(f"Ideal harmony: [bold]{sim.ideal_harmony:.0f}/100[/]")

    if export:
        if sim.snapshot is None or not sim.snapshot.image:
            _fail("No snapshot to compare. Take a snapshot first.")
        path = write_comparison(
            out or Path(cfg.report.out_dir),
            decode_data_uri(sim.snapshot.image),
            sim.current_harmony,
            sim.ideal_harmony,
        )
        console.print(f"Comparison written to {path}")


@app.command()
def prescription(
    patient: Optional[str] = typer.Option(None, help="Archived patient name"),
    spec: Optional[List[str]] = typer.Option(None, help="Clinical specification (repeatable)"),
    out: Optional[Path] = typer.Option(None, help="Directory to write the prescription to"),
):
    """Dental lab prescription text."""
    store = _store()
    record = store.find_patient(patient) if patient else None
    if patient and record is None:
        _fail(f"Patient not found: {patient}")
    try:
        text = render_prescription(record, spec or None, store.settings())
    except ValueError as exc:
        _fail(str(exc))
    if out:
        ensure_dir(out)
        path = out / prescription_filename(record)
        path.write_text(text, encoding="utf-8")
        console.print(f"Prescription written to {path}")
    else:
        typer.echo(text)


@app.command()
def dashboard():
    """Clinic summary: patients, plans and average harmony."""
    stats = dashboard_stats(_store())
    table = Table(title="Clinical Dashboard")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("Total Patients", str(stats.total_patients))
    table.add_row("Treatment Plans", str(stats.treatment_plans))
    table.add_row("Avg. Harmony Score", f"{stats.average_harmony}/100")
    table.add_row("Analysis Scans", str(stats.analysis_scans))
    console.print(table)
    for p in stats.recent:
        console.print(f"• {p.patient_name} ({p.date}) {p.harmony:.0f}/100")


@app.command()
def compare(first: str, second: str):
    """Compare the measurements of two archived patients."""
    store = _store()
    a, b = store.find_patient(first), store.find_patient(second)
    if a is None or b is None:
        _fail(f"Patient not found: {first if a is None else second}")
    table = Table(title=f"{first} → {second}")
    table.add_column("Metric", style="cyan")
    table.add_column(first)
    table.add_column(second)
    table.add_column("Change")
    for d in compare_patients(a, b):
        colour = "green" if d.improved else "red"
        sign = "+" if d.improved else ""
        table.add_row(d.label, f"{d.before:.1f}", f"{d.after:.1f}", f"[{colour}]{sign}{d.delta:.1f}[/]")
    console.print(table)
    console.print(f"Harmony: {a.harmony:.0f} vs {b.harmony:.0f}")


@app.command()
def serve(host: str = "127.0.0.1", port: int = 8000):
    """Run the HTTP API."""
    import uvicorn

    uvicorn.run("smiledesign.api.server:app", host=host, port=port)


if __name__ == "__main__":  # pragma: no cover
    app()
