"""YAML config loading with strict ${ENV_VAR} expansion.

Profiles are layered (`app.yaml`, then `dev.yaml`). Every merged key remembers
the file that last set it, so an unresolved placeholder is reported against the
file that actually holds it rather than the whole profile.
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, MutableMapping, Sequence

import yaml
from dotenv import load_dotenv

from openvr_startup.config.model import AppConfig
from openvr_startup.core.errors import ConfigError


_ENV_PLACEHOLDER_RE = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)\}")

CONFIGS_DIR_NAME = "configs"


@dataclass(frozen=True, slots=True)
class _UnresolvedEnvRef:
    var_name: str
    source_file: str
    key_path: str
    reason: str  # "missing" | "empty"


def _child_path(key_path: str, key: Any) -> str:
    return f"{key_path}.{key}" if key_path else str(key)


def _merge_fragment(
    base: MutableMapping[str, Any],
    overlay: Mapping[str, Any],
    *,
    source_file: str,
    sources: dict[str, str],
    key_path: str = "",
) -> MutableMapping[str, Any]:
    """Merge `overlay` into `base`, recording `source_file` for every key it sets.

    Nested mappings merge; any other value replaces what was there.
    """

    for key, value in overlay.items():
        path = _child_path(key_path, key)
        if isinstance(value, Mapping) and isinstance(base.get(key), Mapping):
            base[key] = _merge_fragment(
                dict(base[key]), value, source_file=source_file, sources=sources, key_path=path
            )
        else:
            base[key] = value
            # A replaced subtree must not keep stale provenance from earlier files.
            for stale in [p for p in sources if p.startswith(f"{path}.") or p.startswith(f"{path}[")]:
                del sources[stale]
        sources[path] = source_file
    return base


def _source_of(key_path: str, sources: Mapping[str, str]) -> str:
    path = key_path
    while path:
        if path in sources:
            return sources[path]
        cut = max(path.rfind("."), path.rfind("["))
        path = path[:cut] if cut > 0 else ""
    return "<unknown>"


def _load_yaml(path: Path) -> Mapping[str, Any]:
    if not path.exists():
        raise ConfigError("Config file not found", path=str(path))
    try:
        text = path.read_text(encoding="utf-8")
        fragment = yaml.safe_load(text) if text.strip() else None
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"Failed to read YAML config: {e}", path=str(path)) from e

    if fragment is None:
        return {}
    if not isinstance(fragment, Mapping):
        raise ConfigError("Top-level YAML must be a mapping/dict", path=str(path))
    return fragment


def _expand_env_in_obj(
    obj: Any,
    *,
    key_path: str,
    sources: Mapping[str, str],
    unresolved: list[_UnresolvedEnvRef],
) -> Any:
    if isinstance(obj, str):
        def repl(match: re.Match[str]) -> str:
            name = match.group(1)
            value = os.getenv(name)
            if value:
                return value
            unresolved.append(
                _UnresolvedEnvRef(
                    var_name=name,
                    source_file=_source_of(key_path, sources),
                    key_path=key_path,
                    reason="missing" if value is None else "empty",
                )
            )
            return match.group(0)

        return _ENV_PLACEHOLDER_RE.sub(repl, obj)

    if isinstance(obj, Mapping):
        return {
            str(k): _expand_env_in_obj(v, key_path=_child_path(key_path, k), sources=sources, unresolved=unresolved)
            for k, v in obj.items()
        }

    if isinstance(obj, list):
        return [
            _expand_env_in_obj(v, key_path=f"{key_path}[{i}]", sources=sources, unresolved=unresolved)
            for i, v in enumerate(obj)
        ]

    return obj


def install_root(config_path: Path) -> Path:
    """Directory the app is installed in, given one of its config files.

    Configs conventionally live in `<install>/configs/`; a config file anywhere
    else is treated as sitting in the install directory itself.
    """

    parent = config_path.resolve().parent
    if parent.name == CONFIGS_DIR_NAME:
        return parent.parent
    return parent


def _default_dotenv(first_config: Path) -> Path:
    # SteamVR may start us with an unrelated working directory, so prefer the
    # `.env` shipped beside the install over one in the cwd.
    beside_install = install_root(first_config) / ".env"
    if beside_install.exists():
        return beside_install
    return Path.cwd() / ".env"


def load_config(
    paths: Path | Sequence[Path],
    *,
    load_dotenv_file: bool = True,
    dotenv_path: Path | None = None,
) -> dict[str, Any]:
    """Load YAML config files with strict ${ENV_VAR} expansion.

    Args:
        paths: One or more YAML files. Later files override earlier ones, and a
            placeholder overridden by a later file is never expanded.
        load_dotenv_file: Whether to load a .env file before expansion.
        dotenv_path: Optional explicit .env path. Defaults to the `.env` in the
            install root of the first config file, then the current directory.

    Raises:
        ConfigError: If a file is missing or invalid, or env expansion is unresolved.
    """

    file_list: list[Path] = [paths] if isinstance(paths, Path) else list(paths)
    if not file_list:
        raise ConfigError("No config files provided")

    if load_dotenv_file:
        # Best-effort; strictness is enforced by the expansion step.
        load_dotenv(dotenv_path or _default_dotenv(file_list[0]), override=False)

    merged: dict[str, Any] = {}
    sources: dict[str, str] = {}
    for p in file_list:
        _merge_fragment(merged, _load_yaml(p), source_file=str(p), sources=sources)

    unresolved: list[_UnresolvedEnvRef] = []
    expanded = _expand_env_in_obj(merged, key_path="", sources=sources, unresolved=unresolved)

    if unresolved:
        lines = ["Unresolved environment variables in config:"]
        for ref in unresolved:
            lines.append(f"- {ref.var_name} ({ref.reason}) at {ref.key_path or '<root>'} in {ref.source_file}")
        raise ConfigError("\n".join(lines))

    return expanded


def resolve_profile_configs(*, profile: str, configs_dir: Path) -> list[Path]:
    """Resolve the config file list for a profile.

    - profile=app -> [configs/app.yaml]
    - profile=dev -> [configs/app.yaml, configs/dev.yaml]
    """

    if profile == "app":
        return [configs_dir / "app.yaml"]
    if profile == "dev":
        return [configs_dir / "app.yaml", configs_dir / "dev.yaml"]
    raise ConfigError(f"Unknown profile: {profile}")


def load_app_config(
    paths: Path | Sequence[Path],
    *,
    load_dotenv_file: bool = True,
) -> AppConfig:
    """Load and validate config files into an `AppConfig`."""

    return AppConfig.from_mapping(load_config(paths, load_dotenv_file=load_dotenv_file))
