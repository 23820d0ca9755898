"""Launches the external program that consumes a saved configuration."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Sequence

from ..errors import RunError, RunErrorKind
from .preferences import CONFIG_PLACEHOLDER, Preferences

LOGGER = logging.getLogger(__name__)
_OUTPUT_TAIL_CHARS = 4_000


@dataclass(slots=True, frozen=True)
class RunResult:
    """Outcome of a completed run."""

    command: tuple[str, ...]
    returncode: int
    output: str = ""


class ConfigurationRunner:
    """Builds and executes the run command configured in preferences."""

    def __init__(self, preferences_provider: Callable[[], Preferences]) -> None:
        self._preferences_provider = preferences_provider

    def build_command(self, config_path: Path) -> list[str]:
        """Return the argv for running ``config_path``.

        Raises:
            RunError: ``NOT_CONFIGURED`` when no executable is set.
        """
        preferences = self._preferences_provider()
        executable = (preferences.run_executable or "").strip()
        if not executable:
            raise RunError(
                RunErrorKind.NOT_CONFIGURED,
                "No run executable is configured in the preferences",
                path=config_path,
            )
        arguments = list(preferences.run_arguments or [])
        if any(CONFIG_PLACEHOLDER in argument for argument in arguments):
            arguments = [argument.replace(CONFIG_PLACEHOLDER, str(config_path)) for argument in arguments]
        else:
            arguments.append(str(config_path))
        return [str(Path(executable).expanduser()), *arguments]

    def working_directory(self, config_path: Path) -> Path:
        configured = self._preferences_provider().working_directory
        if configured:
            return Path(configured).expanduser()
        return config_path.parent

    def run(self, config_path: Path) -> RunResult:
        """Run synchronously and wait for the process to exit.

        Raises:
            RunError: When the process cannot be launched or exits non-zero.
        """
        command = self.build_command(config_path)
        cwd = self.working_directory(config_path)
        LOGGER.info("Running %s (cwd=%s)", command, cwd)
        try:
            completed = subprocess.run(
                command,
                cwd=str(cwd),
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                check=False,
            )
        except OSError as exc:
            raise RunError(
                RunErrorKind.LAUNCH_FAILED,
                f"Could not launch {command[0]}: {exc.strerror or exc}",
                path=config_path,
            ) from exc
        return self._finish(command, completed.returncode, completed.stdout or "", config_path)

    async def run_async(self, config_path: Path) -> RunResult:
        """Run without blocking the event loop."""

        command = self.build_command(config_path)
        cwd = self.working_directory(config_path)
        LOGGER.info("Running %s (cwd=%s)", command, cwd)
        try:
            process = await asyncio.create_subprocess_exec(
                *command,
                cwd=str(cwd),
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT,
            )
        except OSError as exc:
            raise RunError(
                RunErrorKind.LAUNCH_FAILED,
                f"Could not launch {command[0]}: {exc.strerror or exc}",
                path=config_path,
            ) from exc
        try:
            stdout, _ = await process.communicate()
        except asyncio.CancelledError:
            LOGGER.warning("Run of %s cancelled; stopping process %s", config_path, process.pid)
            await _terminate(process)
            raise
        output = stdout.decode("utf-8", errors="replace") if stdout else ""
        return self._finish(command, process.returncode or 0, output, config_path)

    def _finish(
        self,
        command: Sequence[str],
        returncode: int,
        output: str,
        config_path: Path,
    ) -> RunResult:
        tail = output[-_OUTPUT_TAIL_CHARS:]
        if returncode != 0:
            LOGGER.warning("Run of %s exited with status %s", config_path, returncode)
            raise RunError(
                RunErrorKind.PROCESS_FAILED,
                f"{Path(command[0]).name} exited with status {returncode}",
                path=config_path,
                returncode=returncode,
                output=tail,
            )
        LOGGER.info("Run of %s completed", config_path)
        return RunResult(command=tuple(command), returncode=returncode, output=tail)


async def _terminate(process: asyncio.subprocess.Process) -> None:
    if process.returncode is None:
        with contextlib.suppress(ProcessLookupError):
            process.kill()
    await process.wait()


__all__ = ["ConfigurationRunner", "RunResult"]
