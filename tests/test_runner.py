"""Tests for :class:`confedit.services.runner.ConfigurationRunner`."""

from __future__ import annotations

import asyncio
import os
import subprocess
import sys
from pathlib import Path
from types import SimpleNamespace
from typing import Any

import pytest

from confedit.errors import RunError, RunErrorKind
from confedit.services import runner as runner_module
from confedit.services.preferences import Preferences
from confedit.services.runner import ConfigurationRunner, RunResult


def _runner(**fields: Any) -> ConfigurationRunner:
    preferences = Preferences(**fields)
    return ConfigurationRunner(lambda: preferences)


def test_build_command_substitutes_placeholder(tmp_path: Path) -> None:
    config = tmp_path / "config.xml"
    runner = _runner(run_executable="gcam", run_arguments=["-C", "{config}"])

    assert runner.build_command(config) == ["gcam", "-C", str(config)]


def test_build_command_appends_path_without_placeholder(tmp_path: Path) -> None:
    config = tmp_path / "config.xml"
    runner = _runner(run_executable="gcam", run_arguments=["--quiet"])

    assert runner.build_command(config) == ["gcam", "--quiet", str(config)]


def test_missing_executable(tmp_path: Path) -> None:
    with pytest.raises(RunError) as excinfo:
        _runner(run_executable="  ").build_command(tmp_path / "config.xml")
    assert excinfo.value.kind is RunErrorKind.NOT_CONFIGURED


def test_working_directory_defaults_to_config_parent(tmp_path: Path) -> None:
    config = tmp_path / "sub" / "config.xml"
    assert _runner(run_executable="gcam").working_directory(config) == tmp_path / "sub"
    assert _runner(run_executable="gcam", working_directory=str(tmp_path)).working_directory(config) == tmp_path


def test_run_success(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    calls: list[dict[str, Any]] = []

    def fake_run(command: list[str], **kwargs: Any) -> SimpleNamespace:
        calls.append({"command": command, **kwargs})
        return SimpleNamespace(returncode=0, stdout="done\n")

    monkeypatch.setattr(runner_module.subprocess, "run", fake_run)
    config = tmp_path / "config.xml"

    result = _runner(run_executable="gcam").run(config)

    assert result == RunResult(command=("gcam", "-C", str(config)), returncode=0, output="done\n")
    assert calls[0]["cwd"] == str(tmp_path)
    assert calls[0]["stderr"] == subprocess.STDOUT


def test_run_non_zero_exit(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setattr(
        runner_module.subprocess,
        "run",
        lambda command, **kwargs: SimpleNamespace(returncode=2, stdout="x" * 5000),
    )

    with pytest.raises(RunError) as excinfo:
        _runner(run_executable="gcam").run(tmp_path / "config.xml")

    assert excinfo.value.kind is RunErrorKind.PROCESS_FAILED
    assert excinfo.value.returncode == 2
    assert len(excinfo.value.output) == 4000


def test_run_launch_failure(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    def fake_run(command: list[str], **kwargs: Any) -> None:
        raise FileNotFoundError(2, "No such file or directory")

    monkeypatch.setattr(runner_module.subprocess, "run", fake_run)

    with pytest.raises(RunError) as excinfo:
        _runner(run_executable="missing-binary").run(tmp_path / "config.xml")
    assert excinfo.value.kind is RunErrorKind.LAUNCH_FAILED


def test_run_async_with_real_process(tmp_path: Path) -> None:
    config = tmp_path / "config.xml"
    config.write_text("<Configuration/>", encoding="utf-8")
    runner = _runner(
        run_executable=sys.executable,
        run_arguments=["-c", "import sys; print(open(sys.argv[1]).read())", "{config}"],
    )

    result = asyncio.run(runner.run_async(config))

    assert result.returncode == 0
    assert "<Configuration/>" in result.output


def test_run_async_failure(tmp_path: Path) -> None:
    runner = _runner(run_executable=sys.executable, run_arguments=["-c", "raise SystemExit(4)", "{config}"])

    with pytest.raises(RunError) as excinfo:
        asyncio.run(runner.run_async(tmp_path / "config.xml"))
    assert excinfo.value.returncode == 4


@pytest.mark.skipif(sys.platform == "win32", reason="signal-zero probing of a pid is POSIX only")
def test_cancelled_run_async_stops_the_process(tmp_path: Path) -> None:
    pid_file = tmp_path / "pid"
    runner = _runner(
        run_executable=sys.executable,
        run_arguments=[
            "-c",
            "import os, sys, time; open(sys.argv[1], 'w').write(str(os.getpid())); time.sleep(30)",
            str(pid_file),
        ],
    )

    async def scenario() -> int:
        task = asyncio.ensure_future(runner.run_async(tmp_path / "config.xml"))
        for _ in range(200):
            if pid_file.exists() and pid_file.read_text():
                break
            await asyncio.sleep(0.05)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        return int(pid_file.read_text())

    pid = asyncio.run(scenario())

    with pytest.raises(ProcessLookupError):
        os.kill(pid, 0)
