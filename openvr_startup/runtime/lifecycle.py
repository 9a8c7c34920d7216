from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from pathlib import Path
from typing import NoReturn, Sequence

from openvr_startup import __version__
from openvr_startup.config.loader import load_app_config, resolve_profile_configs
from openvr_startup.config.model import AppConfig
from openvr_startup.core.errors import ConfigError
from openvr_startup.io import console
from openvr_startup.observability.logging import LogCache, configure_logging
from openvr_startup.runtime.coordinator import CoordinatorState, LifecycleCoordinator
from openvr_startup.runtime.shell import HostShell
from openvr_startup.scripts.launcher import ScriptDirectories, ScriptLauncher
from openvr_startup.vr.connector import Connector
from openvr_startup.vr.events import EventMonitor
from openvr_startup.vr.runtime import FakeVrRuntime, OpenVrRuntime, VrRuntime


logger = logging.getLogger(__name__)

APP_NAME = "OpenVR Startup"


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="openvr-startup",
        description="Run scripts when SteamVR boots, starts and stops.",
    )

    parser.add_argument(
        "--log-level",
        default=None,
        help="Logging level (e.g. DEBUG, INFO, WARNING); overrides log.level",
    )
    parser.add_argument(
        "--fake",
        action="store_true",
        help="Use an offline SteamVR stand-in (connects on the 4th try, quits on the 5th event poll)",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    group = parser.add_mutually_exclusive_group()
    group.add_argument(
        "--config",
        type=Path,
        help="Path to a YAML config file (skips profile resolution)",
    )
    group.add_argument(
        "--profile",
        choices=["app", "dev"],
        default="app",
        help="Config profile under ./configs (app loads app.yaml; dev overlays dev.yaml)",
    )

    sub = parser.add_subparsers(dest="command")

    run_p = sub.add_parser("run", help="Run the boot/start/stop lifecycle")
    run_p.set_defaults(command="run")

    print_p = sub.add_parser("print-config", help="Load and print the expanded config")
    print_p.set_defaults(command="print-config")

    return parser


def _load(ns: argparse.Namespace) -> tuple[AppConfig, list[Path]]:
    if ns.config is not None:
        return load_app_config([ns.config]), [ns.config]

    paths = resolve_profile_configs(profile=ns.profile, configs_dir=Path.cwd() / "configs")
    if not paths[0].exists():
        # SteamVR may start us from a directory without configs/.
        return AppConfig(), []
    return load_app_config(paths), paths


def build_coordinator(cfg: AppConfig, *, runtime: VrRuntime | None = None) -> LifecycleCoordinator:
    """Wire the worker's collaborators from config."""

    if runtime is None:
        runtime = OpenVrRuntime(application_type=cfg.openvr.application_type)
    state = CoordinatorState(
        directories=ScriptDirectories(
            boot=Path(cfg.scripts.boot_dir),
            start=Path(cfg.scripts.start_dir),
            stop=Path(cfg.scripts.stop_dir),
        ),
        poll_interval_s=cfg.timing.connect_poll_s,
    )
    return LifecycleCoordinator(
        state,
        connector=Connector(
            runtime,
            app_key=cfg.openvr.app_key,
            manifest_path=Path(cfg.openvr.manifest_path),
        ),
        launcher=ScriptLauncher(pattern=cfg.scripts.pattern),
        monitor=EventMonitor(runtime, poll_interval_s=cfg.timing.event_poll_s),
    )


def run_app(
    cfg: AppConfig,
    cache: LogCache,
    *,
    runtime: VrRuntime | None = None,
    shell_factory=HostShell,  # noqa: ANN001
) -> int:
    """Run the lifecycle to completion and persist the log. Always returns 0."""

    coordinator = build_coordinator(cfg, runtime=runtime)
    shell = shell_factory(
        coordinator,
        log_path=cfg.log_path,
        pattern=cfg.scripts.pattern,
        force_quit_grace_s=cfg.timing.force_quit_grace_s,
    )
    try:
        shell.run()
    finally:
        logger.info("application_exiting", extra={"log_path": str(cfg.log_path)})
        try:
            cache.write_to_file(cfg.log_path, cfg.log.max_lines)
        except OSError as e:
            console.print_error(f"Could not write log file {cfg.log_path}: {e}")
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    """CLI entrypoint referenced by pyproject.toml."""

    argv_list = list(argv) if argv is not None else sys.argv[1:]

    # Default to `run` when no subcommand is provided.
    known = {"run", "print-config"}
    if not any(a in known for a in argv_list) and not any(a in {"-h", "--help", "--version"} for a in argv_list):
        argv_list = [*argv_list, "run"]

    parser = _build_parser()
    try:
        ns = parser.parse_args(argv_list)
    except SystemExit as e:
        code = e.code
        return int(code) if isinstance(code, int) else 1

    cache = LogCache()
    try:
        configure_logging(level=ns.log_level or "INFO", cache=cache)
        cfg, config_paths = _load(ns)
        cache.set_capacity(cfg.log.max_lines)
        configure_logging(level=ns.log_level or cfg.log.level, cache=cache)
        logger.info("config_loaded", extra={"config_files": [str(p) for p in config_paths] or ["<defaults>"]})

        if ns.command == "print-config":
            sys.stdout.write(json.dumps(cfg.to_dict(), ensure_ascii=False, indent=2))
            sys.stdout.write("\n")
            return 0

        console.set_title(APP_NAME)
        logger.info("application_starting", extra={"version": __version__})
        runtime = FakeVrRuntime.quitting_after(5, fail_attempts=3) if ns.fake else None
        return run_app(cfg, cache, runtime=runtime)

    except ConfigError as e:
        logger.error("config_error", extra={"error": str(e)})
        sys.stderr.write(f"ConfigError: {e}\n")
        return 2
    except Exception as e:  # noqa: BLE001
        logger.exception("fatal_error")
        sys.stderr.write(f"Fatal error: {e}\n")
        return 1


def entrypoint(argv: Sequence[str] | None = None) -> NoReturn:
    """Process entrypoint: run `main()` and end the process with its exit code.

    The force-quit prompt is a daemon thread that may still be blocked reading
    stdin, holding the stdin buffer lock; normal interpreter finalization would
    abort on that lock. Streams and logging are flushed, then the process exits
    without finalization.
    """

    code = main(argv)
    logging.shutdown()
    for stream in (sys.stdout, sys.stderr):
        try:
            stream.flush()
        except (OSError, ValueError):
            # Closed or broken stream; there is nowhere left to report to.
            continue
    os._exit(code)


if __name__ == "__main__":
    entrypoint()
