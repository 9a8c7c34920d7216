from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Callable

from openvr_startup.io import console
from openvr_startup.runtime.coordinator import CoordinatorState, LifecycleCoordinator


logger = logging.getLogger(__name__)

DEFAULT_FORCE_QUIT_GRACE_S = 2.0


def first_run_instructions(*, pattern: str, start_dir: str, stop_dir: str) -> list[str]:
    return [
        "",
        "This app automatically sets itself to auto-launch with SteamVR.",
        "",
        f"When it runs it will in turn run all {pattern} files in the {start_dir} folder.",
        "",
        f"If there are {pattern} files in {stop_dir} it will stay and run those on shutdown.",
        "",
        "This message is only shown once, to see it again delete the log file.",
        "",
        "Press [Enter] in this window to continue execution.",
        "If there are shutdown scripts the window will remain in the task bar.",
    ]


class HostShell:
    """Foreground side of the process.

    Starts the worker, shows first-run guidance, raises the ready signal, and
    offers a manual force-quit. It only ever writes the `ready` and `cancel`
    latches, and learns about completion through `done`.
    """

    def __init__(
        self,
        coordinator: LifecycleCoordinator,
        *,
        log_path: Path,
        pattern: str,
        force_quit_grace_s: float = DEFAULT_FORCE_QUIT_GRACE_S,
        read_line: Callable[[str], str | None] = console.read_line,
        minimize: Callable[[], bool] = console.minimize_window,
    ):
        self.coordinator = coordinator
        self.log_path = log_path
        self.pattern = pattern
        self.force_quit_grace_s = force_quit_grace_s
        self._read_line = read_line
        self._minimize = minimize
        self.worker: threading.Thread | None = None
        self.prompt_thread: threading.Thread | None = None

    @property
    def state(self) -> CoordinatorState:
        return self.coordinator.state

    def is_first_run(self) -> bool:
        return not self.log_path.exists()

    def show_first_run(self) -> None:
        dirs = self.state.directories
        console.print_info("")
        console.print_info("========================")
        console.print_info(" First Run Instructions ")
        console.print_info("========================")
        for line in first_run_instructions(pattern=self.pattern, start_dir=str(dirs.start), stop_dir=str(dirs.stop)):
            console.print_line(line)
        self._read_line("")

    def _force_quit_prompt(self) -> None:
        if self.state.done.wait(self.force_quit_grace_s):
            return
        console.print_line("")
        console.print_line("Press [Enter] to force quit")
        if self._read_line("") is None:
            # No console input available; only the lifecycle can end the process.
            logger.debug("force_quit_unavailable")
            return
        if self.state.cancel.cancel():
            logger.info("force_quit_requested")

    def start_worker(self) -> bool:
        try:
            self.worker = self.coordinator.start_thread()
        except RuntimeError as e:
            logger.error("worker_start_failed", extra={"error": str(e)})
            return False
        return True

    def run(self) -> bool:
        """Drive the foreground until the worker reports done.

        Returns False if the worker could not be started.
        """

        if not self.start_worker():
            return False

        if self.is_first_run():
            self.show_first_run()

        self.state.ready.set()
        logger.info("shell_ready")
        self._minimize()

        self.prompt_thread = threading.Thread(target=self._force_quit_prompt, name="force-quit-prompt", daemon=True)
        self.prompt_thread.start()

        self.state.done.wait()
        if self.worker is not None:
            self.worker.join(timeout=self.state.poll_interval_s * 10)
        return True
