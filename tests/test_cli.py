"""Integration tests for CLI commands."""

from pathlib import Path

import pytest
from typer.testing import CliRunner

from funrotate import __version__
from funrotate.cli import app

runner = CliRunner()


@pytest.fixture(autouse=True)
def in_tmp(tmp_path: Path, monkeypatch) -> Path:
    monkeypatch.chdir(tmp_path)
    return tmp_path


def write_config(tmp_path: Path, body: str) -> Path:
    path = tmp_path / "funrotate.yaml"
    path.write_text(body)
    return path


def single_target_config(tmp_path: Path, **fields) -> Path:
    settings = {"interval": "daily", "strategy": "copytruncate", "max_files": 3, **fields}
    lines = ["files:", "  - path: app.log"]
    lines += [f"    {k}: {v}" for k, v in settings.items()]
    return write_config(tmp_path, "\n".join(lines) + "\n")


class TestVersion:
    def test_version(self) -> None:
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output


class TestRun:
    def test_rotates_and_saves_state(self, tmp_path: Path) -> None:
        log = tmp_path / "app.log"
        log.write_text("old contents\n")
        single_target_config(tmp_path)

        result = runner.invoke(app, ["run"])

        assert result.exit_code == 0
        assert log.read_text() == ""
        assert (tmp_path / "app.log.1").read_text() == "old contents\n"
        state = (tmp_path / ".last_rotation").read_text()
        assert state.startswith("path,last_rotation\napp.log,")

    def test_second_run_not_due(self, tmp_path: Path) -> None:
        log = tmp_path / "app.log"
        log.write_text("first\n")
        config = single_target_config(tmp_path, size=1000)
        runner.invoke(app, ["run", "--config", str(config)])

        log.write_text("second\n")
        result = runner.invoke(app, ["run", "--config", str(config)])

        assert result.exit_code == 0
        assert log.read_text() == "second\n"
        assert (tmp_path / "app.log.1").read_text() == "first\n"

    def test_dry_run(self, tmp_path: Path) -> None:
        log = tmp_path / "app.log"
        log.write_text("keep\n")
        config = single_target_config(tmp_path)

        result = runner.invoke(app, ["run", "--config", str(config), "--dry-run"])

        assert result.exit_code == 0
        assert log.read_text() == "keep\n"
        assert not (tmp_path / ".last_rotation").exists()

    def test_state_override(self, tmp_path: Path) -> None:
        (tmp_path / "app.log").write_text("x\n")
        config = single_target_config(tmp_path)
        state = tmp_path / "custom.csv"

        result = runner.invoke(app, ["run", "--config", str(config), "--state", str(state)])

        assert result.exit_code == 0
        assert state.exists()
        assert not (tmp_path / ".last_rotation").exists()

    def test_missing_config_exits_1(self, tmp_path: Path) -> None:
        result = runner.invoke(app, ["run", "--config", str(tmp_path / "nope.yaml")])
        assert result.exit_code == 1

    def test_corrupt_state_exits_1(self, tmp_path: Path) -> None:
        (tmp_path / "app.log").write_text("x\n")
        config = single_target_config(tmp_path)
        (tmp_path / ".last_rotation").write_text('"a"b,2024-01-01 00:00\n')

        result = runner.invoke(app, ["run", "--config", str(config)])

        assert result.exit_code == 1
        assert (tmp_path / "app.log").read_text() == "x\n"

    def test_target_failure_exits_2(self, tmp_path: Path) -> None:
        (tmp_path / "app.log").write_text("data\n")
        config = write_config(
            tmp_path,
            "files:\n"
            "  - path: gone.log\n"
            "    interval: weekly\n"
            "  - path: app.log\n"
            "    interval: daily\n",
        )
        (tmp_path / ".last_rotation").write_text("gone.log,2999-01-01 00:00\n")

        result = runner.invoke(app, ["run", "--config", str(config)])

        assert result.exit_code == 2
        assert (tmp_path / "app.log.1").read_text() == "data\n"
        assert "app.log," in (tmp_path / ".last_rotation").read_text()

    def test_fail_fast_exits_1_and_keeps_state(self, tmp_path: Path) -> None:
        (tmp_path / "app.log").write_text("data\n")
        config = write_config(
            tmp_path,
            "files:\n"
            "  - path: app.log\n"
            "    interval: daily\n"
            "  - path: gone.log\n"
            "    interval: weekly\n",
        )
        (tmp_path / ".last_rotation").write_text("gone.log,2999-01-01 00:00\n")

        result = runner.invoke(app, ["run", "--config", str(config), "--fail-fast"])

        assert result.exit_code == 1
        assert "app.log," in (tmp_path / ".last_rotation").read_text()


class TestStatus:
    def test_status_lists_targets(self, tmp_path: Path) -> None:
        (tmp_path / "app.log").write_text("x\n")
        config = single_target_config(tmp_path)
        result = runner.invoke(app, ["status", "--config", str(config)])
        assert result.exit_code == 0
        assert "app.log" in result.output
        assert "never" in result.output

    def test_status_missing_file(self, tmp_path: Path) -> None:
        config = single_target_config(tmp_path)
        (tmp_path / ".last_rotation").write_text("app.log,2999-01-01 00:00\n")
        result = runner.invoke(app, ["status", "--config", str(config)])
        assert result.exit_code == 0
        assert "missing" in result.output


class TestCheck:
    def test_valid(self, tmp_path: Path) -> None:
        config = single_target_config(tmp_path)
        result = runner.invoke(app, ["check", "--config", str(config)])
        assert result.exit_code == 0
        assert "valid" in result.output

    def test_invalid(self, tmp_path: Path) -> None:
        config = single_target_config(tmp_path, interval="yearly")
        result = runner.invoke(app, ["check", "--config", str(config)])
        assert result.exit_code == 1
        assert "interval" in result.output
