"""OpenVR startup companion.

Runs user scripts when the process boots, when SteamVR becomes available, and
when SteamVR shuts down.
"""

from __future__ import annotations

__all__ = [
    "__version__",
]

__version__ = "0.1.0"
