from __future__ import annotations

from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Mapping

from openvr_startup.core.errors import ConfigError


_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
_APPLICATION_TYPES = {"overlay", "background", "utility"}


def _section(raw: Mapping[str, Any], key: str) -> Mapping[str, Any]:
    value = raw.get(key)
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise ConfigError("must be a mapping", path=key)
    return value


def _str(d: Mapping[str, Any], key: str, default: str, *, path: str) -> str:
    value = d.get(key, default)
    if value is None:
        return default
    if not isinstance(value, (str, int, float)) or not str(value).strip():
        raise ConfigError("must be a non-empty string", path=f"{path}.{key}")
    return str(value)


def _positive_float(d: Mapping[str, Any], key: str, default: float, *, path: str) -> float:
    try:
        value = float(d.get(key, default))
    except (TypeError, ValueError) as e:
        raise ConfigError("must be a number", path=f"{path}.{key}") from e
    if value <= 0:
        raise ConfigError("must be > 0", path=f"{path}.{key}")
    return value


@dataclass(frozen=True)
class OpenVrConfig:
    app_key: str = "openvr_startup.companion"
    manifest_path: str = "./app.vrmanifest"
    application_type: str = "overlay"


@dataclass(frozen=True)
class ScriptsConfig:
    boot_dir: str = "./boot"
    start_dir: str = "./start"
    stop_dir: str = "./stop"
    pattern: str = "*.cmd"


@dataclass(frozen=True)
class LogConfig:
    path: str = "./openvr_startup.log"
    max_lines: int = 100
    level: str = "INFO"


@dataclass(frozen=True)
class TimingConfig:
    connect_poll_s: float = 0.1
    event_poll_s: float = 1.0
    force_quit_grace_s: float = 2.0


@dataclass(frozen=True)
class AppConfig:
    openvr: OpenVrConfig = field(default_factory=OpenVrConfig)
    scripts: ScriptsConfig = field(default_factory=ScriptsConfig)
    log: LogConfig = field(default_factory=LogConfig)
    timing: TimingConfig = field(default_factory=TimingConfig)

    @property
    def log_path(self) -> Path:
        return Path(self.log.path)

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> AppConfig:
        """Build a validated config from an expanded YAML mapping.

        Unknown keys are ignored; missing keys fall back to defaults.
        """

        ovr_raw = _section(raw, "openvr")
        app_type = _str(ovr_raw, "application_type", OpenVrConfig.application_type, path="openvr").lower()
        if app_type not in _APPLICATION_TYPES:
            raise ConfigError(
                f"unsupported application type {app_type!r}; expected one of {sorted(_APPLICATION_TYPES)}",
                path="openvr.application_type",
            )
        openvr = OpenVrConfig(
            app_key=_str(ovr_raw, "app_key", OpenVrConfig.app_key, path="openvr"),
            manifest_path=_str(ovr_raw, "manifest_path", OpenVrConfig.manifest_path, path="openvr"),
            application_type=app_type,
        )

        scripts_raw = _section(raw, "scripts")
        scripts = ScriptsConfig(
            boot_dir=_str(scripts_raw, "boot_dir", ScriptsConfig.boot_dir, path="scripts"),
            start_dir=_str(scripts_raw, "start_dir", ScriptsConfig.start_dir, path="scripts"),
            stop_dir=_str(scripts_raw, "stop_dir", ScriptsConfig.stop_dir, path="scripts"),
            pattern=_str(scripts_raw, "pattern", ScriptsConfig.pattern, path="scripts"),
        )
        if "/" in scripts.pattern or "\\" in scripts.pattern:
            raise ConfigError("must be a file name pattern, not a path", path="scripts.pattern")

        log_raw = _section(raw, "log")
        try:
            max_lines = int(log_raw.get("max_lines", LogConfig.max_lines))
        except (TypeError, ValueError) as e:
            raise ConfigError("must be an integer", path="log.max_lines") from e
        if max_lines < 1:
            raise ConfigError("must be >= 1", path="log.max_lines")
        level = _str(log_raw, "level", LogConfig.level, path="log").upper()
        if level not in _LOG_LEVELS:
            raise ConfigError(f"unknown log level {level!r}", path="log.level")
        log = LogConfig(
            path=_str(log_raw, "path", LogConfig.path, path="log"),
            max_lines=max_lines,
            level=level,
        )

        timing_raw = _section(raw, "timing")
        timing = TimingConfig(
            connect_poll_s=_positive_float(timing_raw, "connect_poll_s", TimingConfig.connect_poll_s, path="timing"),
            event_poll_s=_positive_float(timing_raw, "event_poll_s", TimingConfig.event_poll_s, path="timing"),
            force_quit_grace_s=_positive_float(
                timing_raw, "force_quit_grace_s", TimingConfig.force_quit_grace_s, path="timing"
            ),
        )

        return cls(openvr=openvr, scripts=scripts, log=log, timing=timing)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)
