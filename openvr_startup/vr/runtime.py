"""Boundary to the external VR runtime.

The rest of the app talks to `VrRuntime`; `OpenVrRuntime` is the pyopenvr
implementation. `openvr` is imported lazily so the package (and its tests) load
on machines without SteamVR.
"""

from __future__ import annotations

import collections
import enum
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, Mapping, Protocol

from openvr_startup.core.errors import VrRuntimeError


logger = logging.getLogger(__name__)


class VrEventKind(str, enum.Enum):
    QUIT = "quit"
    OTHER = "other"


@dataclass(frozen=True, slots=True)
class VrEvent:
    kind: VrEventKind
    event_type: int = 0
    name: str = ""

    @property
    def is_quit(self) -> bool:
        return self.kind is VrEventKind.QUIT


class VrRuntime(Protocol):
    """What the lifecycle needs from the runtime session.

    Failing calls raise `VrRuntimeError`.
    """

    def init(self) -> None: ...

    def is_application_registered(self, app_key: str) -> bool: ...

    def register_manifest(self, manifest_path: Path) -> None: ...

    def set_auto_launch(self, app_key: str, enabled: bool) -> None: ...

    def poll_next_event(self) -> VrEvent | None: ...

    def acknowledge_quit(self) -> None: ...

    def shutdown(self) -> None: ...


def _error_name(exc: BaseException) -> str:
    return type(exc).__name__


class OpenVrRuntime:
    """`VrRuntime` over pyopenvr."""

    def __init__(self, *, application_type: str = "overlay"):
        self.application_type = application_type
        self._openvr: Any = None
        self._system: Any = None

    def _module(self) -> Any:
        if self._openvr is None:
            try:
                import openvr
            except ImportError as e:
                raise VrRuntimeError("ImportError", f"pyopenvr is not available: {e}") from e
            self._openvr = openvr
        return self._openvr

    def _require_system(self) -> Any:
        if self._system is None:
            raise VrRuntimeError("NotInitialized", "OpenVR session is not initialized")
        return self._system

    def _app_type(self, ovr: Any) -> int:
        return {
            "overlay": ovr.VRApplication_Overlay,
            "background": ovr.VRApplication_Background,
            "utility": ovr.VRApplication_Utility,
        }[self.application_type]

    def init(self) -> None:
        ovr = self._module()
        try:
            self._system = ovr.init(self._app_type(ovr))
        except ovr.error_code.OpenVRError as e:
            raise VrRuntimeError(_error_name(e), str(e)) from e

    def is_application_registered(self, app_key: str) -> bool:
        ovr = self._module()
        try:
            return bool(ovr.VRApplications().isApplicationInstalled(app_key))
        except ovr.error_code.OpenVRError as e:
            raise VrRuntimeError(_error_name(e), str(e)) from e

    def register_manifest(self, manifest_path: Path) -> None:
        ovr = self._module()
        try:
            ovr.VRApplications().addApplicationManifest(str(manifest_path), False)
        except ovr.error_code.OpenVRError as e:
            raise VrRuntimeError(_error_name(e), str(e)) from e

    def set_auto_launch(self, app_key: str, enabled: bool) -> None:
        ovr = self._module()
        try:
            ovr.VRApplications().setApplicationAutoLaunch(app_key, enabled)
        except ovr.error_code.OpenVRError as e:
            raise VrRuntimeError(_error_name(e), str(e)) from e

    def poll_next_event(self) -> VrEvent | None:
        ovr = self._module()
        system = self._require_system()
        raw = ovr.VREvent_t()
        try:
            if not system.pollNextEvent(raw):
                return None
        except (ovr.error_code.OpenVRError, OSError) as e:
            raise VrRuntimeError(_error_name(e), str(e)) from e

        event_type = int(raw.eventType)
        kind = VrEventKind.QUIT if event_type == ovr.VREvent_Quit else VrEventKind.OTHER
        return VrEvent(kind=kind, event_type=event_type, name=self._event_name(event_type))

    def _event_name(self, event_type: int) -> str:
        try:
            return str(self._system.getEventTypeNameFromEnum(event_type))
        except Exception:  # noqa: BLE001
            return str(event_type)

    def acknowledge_quit(self) -> None:
        self._require_system().acknowledgeQuit_Exiting()

    def shutdown(self) -> None:
        if self._openvr is None:
            return
        self._openvr.shutdown()
        self._system = None


QUIT_EVENT = VrEvent(kind=VrEventKind.QUIT, event_type=700, name="VREvent_Quit")


class FakeVrRuntime:
    """Offline stand-in for SteamVR (`--fake`, and tests).

    - `init()` fails `fail_attempts` times before succeeding.
    - `scheduled` maps a drain pass number (1-based) to the events queued for it.
    - `fail_drain_passes` makes the first pull of those passes raise.
    """

    def __init__(
        self,
        *,
        fail_attempts: int = 0,
        registered: bool = False,
        scheduled: Mapping[int, Iterable[VrEvent]] | None = None,
        fail_drain_passes: Iterable[int] = (),
        fail_manifest: bool = False,
        fail_auto_launch: bool = False,
    ):
        self.fail_attempts = fail_attempts
        self.registered = registered
        self.scheduled = {k: list(v) for k, v in (scheduled or {}).items()}
        self.fail_drain_passes = set(fail_drain_passes)
        self.fail_manifest = fail_manifest
        self.fail_auto_launch = fail_auto_launch

        self.init_calls = 0
        self.initialized = False
        self.manifests: list[Path] = []
        self.auto_launch: dict[str, bool] = {}
        self.drain_passes = 0
        self.acknowledged = 0
        self.shutdowns = 0
        self._pending: collections.deque[VrEvent] = collections.deque()
        self._draining = False

    @classmethod
    def quitting_after(cls, passes: int, **kwargs: Any) -> FakeVrRuntime:
        return cls(scheduled={passes: [QUIT_EVENT]}, **kwargs)

    def init(self) -> None:
        self.init_calls += 1
        if self.init_calls <= self.fail_attempts:
            raise VrRuntimeError("InitError_Init_NoServerForBackgroundApp", "SteamVR is not running (fake)")
        self.initialized = True

    def is_application_registered(self, app_key: str) -> bool:
        return self.registered

    def register_manifest(self, manifest_path: Path) -> None:
        if self.fail_manifest:
            raise VrRuntimeError("ApplicationError_InvalidManifest", f"cannot add {manifest_path} (fake)")
        self.manifests.append(manifest_path)

    def set_auto_launch(self, app_key: str, enabled: bool) -> None:
        if self.fail_auto_launch:
            raise VrRuntimeError("ApplicationError_UnknownApplication", f"unknown app {app_key} (fake)")
        self.auto_launch[app_key] = enabled

    def queue(self, *events: VrEvent) -> None:
        self._pending.extend(events)

    def poll_next_event(self) -> VrEvent | None:
        if not self.initialized:
            raise VrRuntimeError("NotInitialized", "OpenVR session is not initialized")
        if not self._draining:
            self._draining = True
            self.drain_passes += 1
            if self.drain_passes in self.fail_drain_passes:
                self._draining = False
                raise VrRuntimeError("EventPollFailed", "event queue unavailable (fake)")
            self._pending.extend(self.scheduled.get(self.drain_passes, []))
        if self._pending:
            return self._pending.popleft()
        self._draining = False
        return None

    def acknowledge_quit(self) -> None:
        self.acknowledged += 1

    def shutdown(self) -> None:
        self.shutdowns += 1
        self.initialized = False
