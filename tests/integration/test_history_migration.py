"""Integration tests for history carried across suite runs."""

from pathlib import Path

from artifact_capture.config import CaptureConfig
from artifact_capture.history import MARKER_FILE
from artifact_capture.router import LifecycleRouter
from artifact_capture.sinks import NullAttachmentSink


def _router(tmp_path: Path) -> LifecycleRouter:
    config = CaptureConfig(
        results_dir=tmp_path / "allure-results",
        report_dir=tmp_path / "allure-report",
        headless=True,
    )
    return LifecycleRouter.from_config(config, NullAttachmentSink())


def _snapshot(directory: Path) -> dict[str, bytes]:
    return {
        str(path.relative_to(directory)): path.read_bytes()
        for path in sorted(directory.rglob("*"))
        if path.is_file()
    }


def test_previous_history_replaces_stale_history(tmp_path: Path) -> None:
    """The previous report's history replaces whatever was in the results."""
    report_history = tmp_path / "allure-report" / "history"
    report_history.mkdir(parents=True)
    for name in ("history.json", "history-trend.json", "duration-trend.json"):
        (report_history / name).write_text(f'{{"name": "{name}"}}')
    results_history = tmp_path / "allure-results" / "history"
    results_history.mkdir(parents=True)
    (results_history / "stale.json").write_text("{}")

    _router(tmp_path).on_suite_start("ui-suite", 0)

    assert _snapshot(results_history) == _snapshot(report_history)


def test_migration_is_idempotent(tmp_path: Path) -> None:
    """Starting the suite twice leaves the same history."""
    report_history = tmp_path / "allure-report" / "history"
    (report_history / "nested").mkdir(parents=True)
    (report_history / "history.json").write_bytes(b"\x00\x01binary")
    (report_history / "nested" / "categories-trend.json").write_text("[]")
    results_history = tmp_path / "allure-results" / "history"

    _router(tmp_path).on_suite_start("ui-suite", 0)
    first = _snapshot(results_history)
    _router(tmp_path).on_suite_start("ui-suite", 0)

    assert _snapshot(results_history) == first == _snapshot(report_history)


def test_first_run_leaves_marker(tmp_path: Path) -> None:
    """Without a previous report the next run still finds a history directory."""
    router = _router(tmp_path)

    router.on_suite_start("ui-suite", 0)
    router.on_suite_finish()

    results = tmp_path / "allure-results"
    assert (results / "history" / MARKER_FILE).exists()
    assert (results / "environment.properties").exists()
