"""Configuration loading and schema.

- YAML-first configuration under configs/*.yaml
- Strict ${ENV_VAR} expansion (missing/empty env vars are errors)
- Typed, validated view in `AppConfig`
"""

from __future__ import annotations

from openvr_startup.config.loader import load_app_config, load_config, resolve_profile_configs
from openvr_startup.config.model import (
    AppConfig,
    LogConfig,
    OpenVrConfig,
    ScriptsConfig,
    TimingConfig,
)
from openvr_startup.core.errors import ConfigError

__all__ = [
    "AppConfig",
    "ConfigError",
    "LogConfig",
    "OpenVrConfig",
    "ScriptsConfig",
    "TimingConfig",
    "load_app_config",
    "load_config",
    "resolve_profile_configs",
]
