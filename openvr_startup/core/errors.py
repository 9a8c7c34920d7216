from __future__ import annotations


class OpenVrStartupError(Exception):
    """Base exception for this project."""


class ConfigError(OpenVrStartupError):
    """Raised when configuration is invalid or incomplete."""

    def __init__(self, message: str, *, path: str | None = None):
        super().__init__(f"{path}: {message}" if path else message)
        self.path = path


class VrRuntimeError(OpenVrStartupError):
    """A call across the VR runtime boundary failed.

    `error_type` carries the runtime's own error name (e.g. an EVRInitError
    member) so log lines stay greppable against the OpenVR docs.
    """

    def __init__(self, error_type: str, message: str | None = None):
        super().__init__(message or error_type)
        self.error_type = error_type
        self.message = message or error_type
