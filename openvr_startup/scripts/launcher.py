from __future__ import annotations

import enum
import logging
import os
import subprocess
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Sequence


logger = logging.getLogger(__name__)

DEFAULT_PATTERN = "*.cmd"


class ScriptPhase(str, enum.Enum):
    BOOT = "boot"
    START = "start"
    STOP = "stop"


@dataclass(frozen=True, slots=True)
class ScriptDirectories:
    boot: Path
    start: Path
    stop: Path

    def for_phase(self, phase: ScriptPhase) -> Path:
        return {
            ScriptPhase.BOOT: self.boot,
            ScriptPhase.START: self.start,
            ScriptPhase.STOP: self.stop,
        }[phase]


def interpreter_command(script: Path) -> list[str]:
    """Command line that runs `script` through the platform command interpreter."""

    if sys.platform == "win32":
        system_root = os.environ.get("SystemRoot", r"C:\Windows")
        comspec = os.environ.get("ComSpec") or os.path.join(system_root, "System32", "cmd.exe")
        # subprocess.list2cmdline quotes the path as a single argument.
        return [comspec, "/C", str(script)]
    return ["/bin/sh", str(script)]


def spawn_detached(argv: Sequence[str]) -> None:
    """Start a child process without a window, without I/O capture, without waiting."""

    kwargs: dict = {
        "stdin": subprocess.DEVNULL,
        "close_fds": True,
    }
    if sys.platform == "win32":
        kwargs["creationflags"] = subprocess.CREATE_NO_WINDOW
        startupinfo = subprocess.STARTUPINFO()
        startupinfo.dwFlags |= subprocess.STARTF_USESHOWWINDOW
        startupinfo.wShowWindow = subprocess.SW_HIDE
        kwargs["startupinfo"] = startupinfo
    else:
        kwargs["start_new_session"] = True

    # Fire-and-forget: the Popen handle is dropped on purpose.
    subprocess.Popen(list(argv), **kwargs)  # noqa: S603


class ScriptLauncher:
    """Discovers phase scripts and launches them fire-and-forget.

    Listing is non-recursive and sorted by name. Querying a directory creates it
    when it does not exist yet.
    """

    def __init__(
        self,
        *,
        pattern: str = DEFAULT_PATTERN,
        spawn: Callable[[Sequence[str]], None] = spawn_detached,
        command_for: Callable[[Path], list[str]] = interpreter_command,
    ):
        self.pattern = pattern
        self._spawn = spawn
        self._command_for = command_for

    def list_scripts(self, directory: Path) -> list[Path]:
        directory.mkdir(parents=True, exist_ok=True)
        return sorted(p for p in directory.glob(self.pattern) if p.is_file())

    def has_scripts(self, directory: Path) -> bool:
        try:
            return bool(self.list_scripts(directory))
        except OSError as e:
            logger.error("scripts_list_failed", extra={"directory": str(directory), "error": str(e)})
            return False

    def run_scripts(self, directory: Path) -> int:
        """Launch every matching script in `directory`; returns how many were found.

        Listing or launch failures are logged and reported as zero scripts run.
        """

        try:
            scripts = self.list_scripts(directory)
            logger.info("scripts_found", extra={"directory": str(directory), "count": len(scripts)})
            for script in scripts:
                path = script.resolve()
                logger.info("script_executing", extra={"script": str(path)})
                self._spawn(self._command_for(path))
        except (OSError, ValueError, subprocess.SubprocessError) as e:
            logger.error(
                "scripts_load_failed",
                extra={"directory": str(directory), "error": str(e)},
            )
            return 0

        if not scripts:
            logger.info(
                "scripts_none_found",
                extra={"directory": str(directory), "pattern": self.pattern},
            )
        return len(scripts)
