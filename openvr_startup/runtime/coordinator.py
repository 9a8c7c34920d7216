"""Lifecycle coordinator: the background worker's state machine.

BOOTING -> CONNECTING -> RUNNING_START -> [WAITING_FOR_QUIT -> RUNNING_STOP]
-> SHUTTING_DOWN -> DONE

Connecting and waiting for the shell's ready signal form one joined barrier;
the signals may arrive in either order. Completion is published on
`state.done`; the worker never exits the process itself.
"""

from __future__ import annotations

import enum
import logging
import threading
from dataclasses import dataclass, field
from typing import Protocol

from openvr_startup.core.latch import CancellationToken, Latch
from openvr_startup.io import console
from openvr_startup.observability.logging import set_state
from openvr_startup.scripts.launcher import ScriptDirectories, ScriptPhase
from openvr_startup.vr.connector import ConnectionOutcome


logger = logging.getLogger(__name__)

DEFAULT_CONNECT_POLL_S = 0.1


class LifecycleState(str, enum.Enum):
    BOOTING = "BOOTING"
    CONNECTING = "CONNECTING"
    RUNNING_START = "RUNNING_START"
    WAITING_FOR_QUIT = "WAITING_FOR_QUIT"
    RUNNING_STOP = "RUNNING_STOP"
    SHUTTING_DOWN = "SHUTTING_DOWN"
    DONE = "DONE"


class ConnectorLike(Protocol):
    def try_connect(self) -> ConnectionOutcome: ...

    def release(self) -> bool: ...


class LauncherLike(Protocol):
    def run_scripts(self, directory) -> int: ...  # noqa: ANN001

    def has_scripts(self, directory) -> bool: ...  # noqa: ANN001


class MonitorLike(Protocol):
    def wait_for_quit(self, cancel: CancellationToken) -> None: ...


@dataclass
class CoordinatorState:
    """Everything the worker shares with the foreground shell.

    Only the latches cross threads; each is set-once.
    """

    directories: ScriptDirectories
    poll_interval_s: float = DEFAULT_CONNECT_POLL_S
    ready: Latch = field(default_factory=lambda: Latch("ready"))
    connected: Latch = field(default_factory=lambda: Latch("connected"))
    cancel: CancellationToken = field(default_factory=CancellationToken)
    done: Latch = field(default_factory=lambda: Latch("done"))


class LifecycleCoordinator:
    def __init__(
        self,
        state: CoordinatorState,
        *,
        connector: ConnectorLike,
        launcher: LauncherLike,
        monitor: MonitorLike,
    ):
        self.state = state
        self.connector = connector
        self.launcher = launcher
        self.monitor = monitor
        self.lifecycle_state = LifecycleState.BOOTING
        self.history: list[LifecycleState] = []
        self.script_counts: dict[ScriptPhase, int] = {}

    def _enter(self, new_state: LifecycleState) -> None:
        self.lifecycle_state = new_state
        self.history.append(new_state)
        set_state(new_state.value)
        logger.debug("lifecycle_state", extra={"lifecycle_state": new_state.value})

    def _run_phase(self, phase: ScriptPhase) -> int:
        console.print_line(f"Running {phase.name} scripts")
        count = self.launcher.run_scripts(self.state.directories.for_phase(phase))
        self.script_counts[phase] = count
        return count

    def start_thread(self) -> threading.Thread:
        thread = threading.Thread(target=self.run, name="lifecycle-worker", daemon=True)
        thread.start()
        return thread

    def run(self) -> None:
        """Worker body. Always ends with `state.done` set."""

        try:
            self._enter(LifecycleState.BOOTING)
            self._run_phase(ScriptPhase.BOOT)

            self._enter(LifecycleState.CONNECTING)
            self._connect_and_run()
        except Exception:  # noqa: BLE001
            logger.exception("lifecycle_worker_failed")
        finally:
            self._shutdown()

    def _connect_and_run(self) -> None:
        st = self.state
        while not st.cancel.is_cancelled:
            if not st.connected.is_set:
                outcome = self.connector.try_connect()
                if outcome.ok:
                    st.connected.set()

            if st.connected.is_set and st.ready.is_set:
                self._run_lifecycle()
                st.cancel.cancel()
                break

            st.cancel.sleep(st.poll_interval_s)

        logger.info("lifecycle_loop_exited", extra={"connected": st.connected.is_set, "ready": st.ready.is_set})

    def _run_lifecycle(self) -> None:
        self._enter(LifecycleState.RUNNING_START)
        self._run_phase(ScriptPhase.START)

        # Decided once, right after START; stop scripts added later are not seen.
        if not self.launcher.has_scripts(self.state.directories.stop):
            logger.info("no_stop_scripts")
            return

        self._enter(LifecycleState.WAITING_FOR_QUIT)
        self.monitor.wait_for_quit(self.state.cancel)

        self._enter(LifecycleState.RUNNING_STOP)
        self._run_phase(ScriptPhase.STOP)

    def _shutdown(self) -> None:
        self._enter(LifecycleState.SHUTTING_DOWN)
        # Whatever ended the loop, the lifecycle is over for everyone.
        self.state.cancel.cancel()
        try:
            if self.state.connected.is_set:
                self.connector.release()
        finally:
            self._enter(LifecycleState.DONE)
            self.state.done.set()
