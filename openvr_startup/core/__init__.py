"""Project core.

Stable, non-domain-specific building blocks: errors and synchronization
primitives shared by the worker and the foreground shell.
"""

from __future__ import annotations

from openvr_startup.core.errors import ConfigError, OpenVrStartupError, VrRuntimeError
from openvr_startup.core.latch import CancellationToken, Latch

__all__ = [
    "CancellationToken",
    "ConfigError",
    "Latch",
    "OpenVrStartupError",
    "VrRuntimeError",
]
