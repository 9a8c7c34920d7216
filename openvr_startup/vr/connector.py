from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from openvr_startup.core.errors import VrRuntimeError
from openvr_startup.vr.runtime import VrRuntime


logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ConnectionOutcome:
    ok: bool
    reason: str | None = None

    @classmethod
    def success(cls) -> ConnectionOutcome:
        return cls(ok=True)

    @classmethod
    def failure(cls, reason: str) -> ConnectionOutcome:
        return cls(ok=False, reason=reason)


class Connector:
    """Establishes the runtime session and registers the app on first contact.

    Callers gate repeat attempts on their own connected latch; `try_connect()`
    itself does not remember success.
    """

    def __init__(self, runtime: VrRuntime, *, app_key: str, manifest_path: Path):
        self.runtime = runtime
        self.app_key = app_key
        self.manifest_path = manifest_path
        self._ever_connected = False
        self.attempts = 0

    @property
    def ever_connected(self) -> bool:
        return self._ever_connected

    def try_connect(self) -> ConnectionOutcome:
        self.attempts += 1
        try:
            self.runtime.init()
        except VrRuntimeError as e:
            logger.warning(
                "openvr_init_failed",
                extra={"error_type": e.error_type, "error": e.message, "attempt": self.attempts},
            )
            return ConnectionOutcome.failure(e.error_type)

        self._ever_connected = True
        logger.info("openvr_init_success", extra={"attempt": self.attempts})
        self.ensure_registered()
        return ConnectionOutcome.success()

    def ensure_registered(self) -> None:
        """Add the app manifest and enable auto-launch unless already registered.

        Each step is best-effort; a failure is logged and the next step still runs.
        """

        try:
            if self.runtime.is_application_registered(self.app_key):
                logger.debug("app_already_registered", extra={"app_key": self.app_key})
                return
        except VrRuntimeError as e:
            logger.error(
                "app_registration_check_failed",
                extra={"app_key": self.app_key, "error_type": e.error_type, "error": e.message},
            )

        manifest = self.manifest_path.resolve()
        try:
            self.runtime.register_manifest(manifest)
            logger.info("app_manifest_installed", extra={"manifest": str(manifest)})
        except VrRuntimeError as e:
            logger.error(
                "app_manifest_failed",
                extra={"manifest": str(manifest), "error_type": e.error_type, "error": e.message},
            )

        try:
            self.runtime.set_auto_launch(self.app_key, True)
            logger.info("app_auto_launch_enabled", extra={"app_key": self.app_key})
        except VrRuntimeError as e:
            logger.error(
                "app_auto_launch_failed",
                extra={"app_key": self.app_key, "error_type": e.error_type, "error": e.message},
            )

    def release(self) -> bool:
        """Shut the session down if one was ever established."""

        if not self._ever_connected:
            return False
        try:
            self.runtime.shutdown()
        except VrRuntimeError as e:
            logger.error("openvr_shutdown_failed", extra={"error_type": e.error_type, "error": e.message})
            return False
        logger.info("openvr_shutdown")
        return True
