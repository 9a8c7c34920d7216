"""OpenVR session boundary: runtime adapter, connector and event monitor."""

from __future__ import annotations

from openvr_startup.vr.connector import ConnectionOutcome, Connector
from openvr_startup.vr.events import EventMonitor
from openvr_startup.vr.runtime import FakeVrRuntime, OpenVrRuntime, VrEvent, VrEventKind, VrRuntime

__all__ = [
    "ConnectionOutcome",
    "Connector",
    "EventMonitor",
    "FakeVrRuntime",
    "OpenVrRuntime",
    "VrEvent",
    "VrEventKind",
    "VrRuntime",
]
