from __future__ import annotations

from smiledesign.config import Config, load_config


def test_packaged_defaults(monkeypatch):
    for var in ("SMILEDESIGN_STORE", "SMILEDESIGN_MODEL", "SMILEDESIGN_CAMERA", "SMILEDESIGN_FRONT_FACING"):
        monkeypatch.delenv(var, raising=False)
    cfg = load_config()
    assert cfg == Config()
    assert cfg.detector.retry_delay_s == 0.5
    assert cfg.overlays.gingival is True


def test_yaml_file(tmp_path, monkeypatch):
    monkeypatch.delenv("SMILEDESIGN_STORE", raising=False)
    path = tmp_path / "config.yaml"
    path.write_text("overlays:\n  deviation: false\nreport:\n  title: Smile Lab\n")
    cfg = load_config(path)
    assert cfg.overlays.deviation is False
    assert cfg.overlays.facial_guides is True
    assert cfg.report.title == "Smile Lab"


def test_missing_file_uses_defaults(tmp_path, monkeypatch):
    monkeypatch.delenv("SMILEDESIGN_CAMERA", raising=False)
    assert load_config(tmp_path / "nope.yaml").capture.camera_index == 0


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("SMILEDESIGN_STORE", "/tmp/dsd.json")
    monkeypatch.setenv("SMILEDESIGN_MODEL", "assets/face.task")
    monkeypatch.setenv("SMILEDESIGN_CAMERA", "2")
    monkeypatch.setenv("SMILEDESIGN_FRONT_FACING", "no")
    cfg = load_config()
    assert cfg.store.path == "/tmp/dsd.json"
    assert cfg.detector.model_path == "assets/face.task"
    assert cfg.capture.camera_index == 2
    assert cfg.capture.front_facing is False


def test_log_level_filters(capsys):
    from smiledesign.logging_utils import configure_logging, get_logger

    log = get_logger("smiledesign.sample")
    configure_logging("warning")
    try:
        log.info("hidden")
        log.warning("shown", value=1)
        out = capsys.readouterr().out
        assert "hidden" not in out
        assert '"component": "sample"' in out
    finally:
        configure_logging("INFO")
