"""Tests for the run orchestrator."""

from datetime import datetime, timedelta, timezone

import pytest

from funrotate.config import Interval, RotationTarget
from funrotate.log_rotation import FilesystemError, PatternError, RotationEngine
from funrotate.runner import run_rotation
from funrotate.state import RotationStateStore

NOW = datetime(2024, 5, 10, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def engine() -> RotationEngine:
    return RotationEngine(clock=lambda: NOW)


@pytest.fixture
def store(tmp_path) -> RotationStateStore:
    return RotationStateStore(tmp_path / ".last_rotation")


class TestRunRotation:
    def test_rotates_due_target(self, tmp_path, store, engine) -> None:
        log = tmp_path / "app.log"
        log.write_text("hello\n")
        target = RotationTarget(path=str(log), interval=Interval.DAILY, max_generations=3)

        results = run_rotation([target], store, engine)

        assert [r.status for r in results] == ["rotated"]
        assert results[0].rotated_at == NOW
        assert store.last_rotation_time(str(log)) == NOW
        assert store.dirty is True
        assert (tmp_path / "app.log.1").read_text() == "hello\n"

    def test_skips_target_not_due(self, tmp_path, store, engine) -> None:
        log = tmp_path / "app.log"
        log.write_text("small")
        target = RotationTarget(path=str(log), interval=Interval.WEEKLY, size_threshold=100)
        store.update(str(log), NOW - timedelta(days=1))

        results = run_rotation([target], store, engine)

        assert results[0].status == "skipped"
        assert log.read_text() == "small"
        assert not (tmp_path / "app.log.1").exists()

    def test_failure_scoped_to_target(self, tmp_path, store, engine) -> None:
        missing = RotationTarget(path=str(tmp_path / "gone.log"), interval=Interval.WEEKLY)
        store.update(missing.path, NOW)
        log = tmp_path / "app.log"
        log.write_text("data")
        ok = RotationTarget(path=str(log), interval=Interval.DAILY)

        results = run_rotation([missing, ok], store, engine)

        assert [r.status for r in results] == ["failed", "rotated"]
        assert "gone.log" in results[0].detail
        assert results[0].failed

    def test_fail_fast_propagates(self, tmp_path, store, engine) -> None:
        missing = RotationTarget(path=str(tmp_path / "gone.log"), interval=Interval.WEEKLY)
        store.update(missing.path, NOW)
        with pytest.raises(FilesystemError):
            run_rotation([missing], store, engine, fail_fast=True)

    def test_pattern_error_propagates(self, tmp_path, store, engine) -> None:
        target = RotationTarget(path=str(tmp_path / "*.log"))
        with pytest.raises(PatternError):
            run_rotation([target], store, engine)

    def test_dry_run_leaves_everything(self, tmp_path, store, engine) -> None:
        log = tmp_path / "app.log"
        log.write_text("hello\n")
        target = RotationTarget(path=str(log))

        results = run_rotation([target], store, engine, dry_run=True)

        assert results[0].status == "due"
        assert log.read_text() == "hello\n"
        assert store.dirty is False

    def test_nothing_to_rotate(self, tmp_path, store, engine) -> None:
        target = RotationTarget(path=str(tmp_path / "absent.log"), interval=Interval.DAILY)

        results = run_rotation([target], store, engine)

        assert results[0].status == "noop"
        assert store.last_rotation_time(target.path) is None
        assert store.dirty is False
