from __future__ import annotations

import logging

from openvr_startup.core.errors import VrRuntimeError
from openvr_startup.core.latch import CancellationToken
from openvr_startup.io import console
from openvr_startup.vr.runtime import VrEvent, VrRuntime


logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL_S = 1.0


class EventMonitor:
    """Watches the runtime's pull-only event queue for a quit notification.

    The runtime exposes no callback, so this is a timed poll with a
    drain-until-empty step per pass.
    """

    def __init__(self, runtime: VrRuntime, *, poll_interval_s: float = DEFAULT_POLL_INTERVAL_S):
        self.runtime = runtime
        self.poll_interval_s = poll_interval_s
        self.passes = 0

    def drain(self) -> list[VrEvent]:
        """Pull every queued event. A failing pull keeps what was drained so far."""

        batch: list[VrEvent] = []
        try:
            while True:
                event = self.runtime.poll_next_event()
                if event is None:
                    break
                batch.append(event)
        except VrRuntimeError as e:
            console.print_error(f"Could not get new events: {e.message}")
            logger.error("event_drain_failed", extra={"error_type": e.error_type, "error": e.message})
        return batch

    def handle_batch(self, batch: list[VrEvent], cancel: CancellationToken) -> bool:
        """Acknowledge and cancel on the first quit event. Returns True if one was seen."""

        for event in batch:
            if not event.is_quit:
                continue
            try:
                self.runtime.acknowledge_quit()
            except VrRuntimeError as e:
                logger.error("openvr_quit_ack_failed", extra={"error_type": e.error_type, "error": e.message})
            console.print_line("OpenVR exiting...")
            logger.info("openvr_quit_received", extra={"event": event.name or event.event_type})
            cancel.cancel()
            return True
        return False

    def wait_for_quit(self, cancel: CancellationToken) -> None:
        """Block until `cancel` is set, by a quit event or by anyone else."""

        console.print_line("This window remains to wait for the shutdown of SteamVR to run additional scripts on exit.")
        logger.info("wait_for_quit_started", extra={"poll_interval_s": self.poll_interval_s})

        while not cancel.is_cancelled:
            self.passes += 1
            batch = self.drain()
            if batch:
                logger.debug("events_drained", extra={"count": len(batch), "pass": self.passes})
            self.handle_batch(batch, cancel)
            cancel.sleep(self.poll_interval_s)

        console.print_line("WaitForQuit finished")
        logger.info("wait_for_quit_finished", extra={"passes": self.passes})
