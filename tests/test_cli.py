from __future__ import annotations

import json
import logging
from collections.abc import Iterator
from pathlib import Path

import pytest

from wellness_insights.main import EXIT_BAD_INPUT, main


@pytest.fixture(autouse=True)
def restore_root_logging() -> Iterator[None]:
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture()
def config_path(tmp_path: Path) -> Path:
    return tmp_path / "config.toml"


@pytest.fixture()
def input_path(tmp_path: Path) -> Path:
    path = tmp_path / "input.json"
    payload = {
        "product_usage_history": [{"date": "2026-03-10", "product_id": "p1", "completed": True, "time_logged": "08:15"}],
        "modality_sessions": [],
        "progress_notes": [{"date": "2026-03-10", "biomarkers": {"Energy": 6}}],
    }
    path.write_text(json.dumps(payload), encoding="utf-8")
    return path


def _run(capsys: pytest.CaptureFixture[str], *argv: str) -> tuple[int, object]:
    code = main(list(argv))
    out = capsys.readouterr().out
    return code, json.loads(out) if out.strip() else None


def test_init_creates_config_and_database(config_path: Path) -> None:
    assert main(["init", "--config", str(config_path)]) == 0
    assert config_path.exists()
    assert (config_path.parent / "wellness_insights.db").exists()


def test_generate_prints_report(capsys: pytest.CaptureFixture[str], config_path: Path, input_path: Path) -> None:
    code, report = _run(capsys, "generate", "--config", str(config_path), "--user-id", "user-1", "--input", str(input_path))

    assert code == 0
    assert isinstance(report, dict)
    assert report["user_id"] == "user-1"
    assert report["insights"] == []
    assert report["analysis_window"]["days_analyzed"] == 14


def test_generate_caches_report(capsys: pytest.CaptureFixture[str], config_path: Path, input_path: Path) -> None:
    _run(capsys, "generate", "--config", str(config_path), "--user-id", "user-1", "--input", str(input_path))

    code, stats = _run(capsys, "cache-stats", "--config", str(config_path))

    assert code == 0
    assert isinstance(stats, dict)
    assert stats["total_entries"] == 1
    assert stats["valid_entries"] == 1


def test_generate_without_cache_leaves_cache_empty(
    capsys: pytest.CaptureFixture[str], config_path: Path, input_path: Path
) -> None:
    code, _ = _run(
        capsys, "generate", "--config", str(config_path), "--user-id", "user-1", "--input", str(input_path), "--no-cache"
    )
    assert code == 0

    _, stats = _run(capsys, "cache-stats", "--config", str(config_path))
    assert isinstance(stats, dict)
    assert stats["total_entries"] == 0


def test_generate_from_demo_data(capsys: pytest.CaptureFixture[str], config_path: Path) -> None:
    code, report = _run(capsys, "generate", "--config", str(config_path), "--user-id", "demo", "--demo", "--no-cache")

    assert code == 0
    assert isinstance(report, dict)
    assert len(report["insights"]) <= 3


def test_generate_rejects_malformed_input(capsys: pytest.CaptureFixture[str], config_path: Path, tmp_path: Path) -> None:
    bad = tmp_path / "bad.json"
    bad.write_text(json.dumps({"product_usage_history": [{"date": "yesterday"}]}), encoding="utf-8")

    code, out = _run(capsys, "generate", "--config", str(config_path), "--user-id", "user-1", "--input", str(bad))

    assert code == EXIT_BAD_INPUT
    assert out is None


def test_generate_rejects_missing_input(capsys: pytest.CaptureFixture[str], config_path: Path, tmp_path: Path) -> None:
    code, _ = _run(
        capsys, "generate", "--config", str(config_path), "--user-id", "user-1", "--input", str(tmp_path / "absent.json")
    )
    assert code == EXIT_BAD_INPUT


def test_cache_clear_for_one_user(capsys: pytest.CaptureFixture[str], config_path: Path, input_path: Path) -> None:
    for user_id in ("user-1", "user-2"):
        _run(capsys, "generate", "--config", str(config_path), "--user-id", user_id, "--input", str(input_path))

    assert main(["cache-clear", "--config", str(config_path), "--user-id", "user-1"]) == 0
    _, stats = _run(capsys, "cache-stats", "--config", str(config_path))
    assert isinstance(stats, dict)
    assert stats["total_entries"] == 1

    assert main(["cache-clear", "--config", str(config_path)]) == 0
    _, stats = _run(capsys, "cache-stats", "--config", str(config_path))
    assert isinstance(stats, dict)
    assert stats["total_entries"] == 0


def test_cleanup_reports_removed_count(capsys: pytest.CaptureFixture[str], config_path: Path, input_path: Path) -> None:
    _run(capsys, "generate", "--config", str(config_path), "--user-id", "user-1", "--input", str(input_path))

    code, result = _run(capsys, "cleanup", "--config", str(config_path))

    assert code == 0
    assert result == {"removed": 0}


def test_validation_failure_log_omits_health_data(
    capsys: pytest.CaptureFixture[str], config_path: Path, tmp_path: Path
) -> None:
    bad = tmp_path / "bad.json"
    payload = {"progress_notes": [{"date": "2026-03-10", "biomarkers": {"Mood": "low"}, "notes": "panic attack at work"}]}
    bad.write_text(json.dumps(payload), encoding="utf-8")

    code = main(["generate", "--config", str(config_path), "--user-id", "user-1", "--input", str(bad)])
    err = capsys.readouterr().err

    assert code == EXIT_BAD_INPUT
    assert "insight input failed validation" in err
    assert "progress_notes.0.biomarkers.Mood" in err
    assert "panic attack" not in err
    assert "low" not in err
