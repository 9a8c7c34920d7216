from __future__ import annotations

from pathlib import Path

import pytest

from openvr_startup.config import AppConfig, ConfigError, load_app_config, load_config, resolve_profile_configs
from openvr_startup.config.loader import install_root


REPO_ROOT = Path(__file__).resolve().parents[1]


def test_load_config_expands_env_vars(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("VR_SCRIPTS_HOME", "D:/vr")

    cfg_path = tmp_path / "app.yaml"
    cfg_path.write_text(
        """
scripts:
  start_dir: ${VR_SCRIPTS_HOME}/start
  extra:
    - on-${VR_SCRIPTS_HOME}
""".lstrip(),
        encoding="utf-8",
    )

    cfg = load_config(cfg_path, load_dotenv_file=False)
    assert cfg["scripts"]["start_dir"] == "D:/vr/start"
    assert cfg["scripts"]["extra"][0] == "on-D:/vr"


def test_load_config_missing_env_var_is_error(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("VR_SCRIPTS_HOME", raising=False)

    cfg_path = tmp_path / "app.yaml"
    cfg_path.write_text("scripts:\n  boot_dir: ${VR_SCRIPTS_HOME}/boot\n", encoding="utf-8")

    with pytest.raises(ConfigError) as ei:
        load_config(cfg_path, load_dotenv_file=False)

    msg = str(ei.value)
    assert "VR_SCRIPTS_HOME" in msg
    assert "missing" in msg
    assert "scripts.boot_dir" in msg


def test_load_config_empty_env_var_is_error(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("VR_SCRIPTS_HOME", "")

    cfg_path = tmp_path / "app.yaml"
    cfg_path.write_text("scripts:\n  boot_dir: ${VR_SCRIPTS_HOME}/boot\n", encoding="utf-8")

    with pytest.raises(ConfigError) as ei:
        load_config(cfg_path, load_dotenv_file=False)

    assert "empty" in str(ei.value)


def test_dotenv_supplies_variables(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("VR_LOG_DIR", raising=False)
    dotenv = tmp_path / ".env"
    dotenv.write_text("VR_LOG_DIR=C:/logs\n", encoding="utf-8")
    cfg_path = tmp_path / "app.yaml"
    cfg_path.write_text("log:\n  path: ${VR_LOG_DIR}/startup.log\n", encoding="utf-8")

    cfg = load_config(cfg_path, dotenv_path=dotenv)
    assert cfg["log"]["path"] == "C:/logs/startup.log"
    monkeypatch.delenv("VR_LOG_DIR", raising=False)


def test_later_files_override_earlier(tmp_path: Path) -> None:
    base = tmp_path / "app.yaml"
    base.write_text("log:\n  level: INFO\n  max_lines: 100\n", encoding="utf-8")
    overlay = tmp_path / "dev.yaml"
    overlay.write_text("log:\n  level: DEBUG\n", encoding="utf-8")

    cfg = load_app_config([base, overlay], load_dotenv_file=False)
    assert cfg.log.level == "DEBUG"
    assert cfg.log.max_lines == 100


def test_missing_file_is_error(tmp_path: Path) -> None:
    with pytest.raises(ConfigError) as ei:
        load_config(tmp_path / "nope.yaml", load_dotenv_file=False)
    assert "nope.yaml" in str(ei.value)


def test_top_level_must_be_mapping(tmp_path: Path) -> None:
    cfg_path = tmp_path / "app.yaml"
    cfg_path.write_text("- a\n- b\n", encoding="utf-8")

    with pytest.raises(ConfigError):
        load_config(cfg_path, load_dotenv_file=False)


def test_empty_file_means_defaults(tmp_path: Path) -> None:
    cfg_path = tmp_path / "app.yaml"
    cfg_path.write_text("", encoding="utf-8")

    assert load_app_config(cfg_path, load_dotenv_file=False) == AppConfig()


@pytest.mark.parametrize(
    ("raw", "path"),
    [
        ({"timing": {"connect_poll_s": 0}}, "timing.connect_poll_s"),
        ({"timing": {"event_poll_s": "soon"}}, "timing.event_poll_s"),
        ({"log": {"max_lines": 0}}, "log.max_lines"),
        ({"log": {"level": "LOUD"}}, "log.level"),
        ({"scripts": {"pattern": ""}}, "scripts.pattern"),
        ({"scripts": {"pattern": "sub/*.cmd"}}, "scripts.pattern"),
        ({"openvr": {"application_type": "scene"}}, "openvr.application_type"),
        ({"openvr": "overlay"}, "openvr"),
    ],
)
def test_invalid_values_are_rejected(raw: dict, path: str) -> None:
    with pytest.raises(ConfigError) as ei:
        AppConfig.from_mapping(raw)
    assert ei.value.path == path


def test_resolve_profiles(tmp_path: Path) -> None:
    assert resolve_profile_configs(profile="app", configs_dir=tmp_path) == [tmp_path / "app.yaml"]
    assert resolve_profile_configs(profile="dev", configs_dir=tmp_path) == [
        tmp_path / "app.yaml",
        tmp_path / "dev.yaml",
    ]
    with pytest.raises(ConfigError):
        resolve_profile_configs(profile="prod", configs_dir=tmp_path)


def test_repo_configs_loadable() -> None:
    configs = REPO_ROOT / "configs"
    cfg = load_app_config(resolve_profile_configs(profile="app", configs_dir=configs), load_dotenv_file=False)
    assert cfg == AppConfig()

    dev = load_app_config(resolve_profile_configs(profile="dev", configs_dir=configs), load_dotenv_file=False)
    assert dev.log.level == "DEBUG"
    assert dev.scripts == cfg.scripts


def test_unresolved_placeholder_names_the_file_that_holds_it(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.delenv("VR_LOG_DIR", raising=False)
    base = tmp_path / "app.yaml"
    base.write_text("log:\n  level: INFO\n", encoding="utf-8")
    overlay = tmp_path / "dev.yaml"
    overlay.write_text("log:\n  path: ${VR_LOG_DIR}/dev.log\n", encoding="utf-8")

    with pytest.raises(ConfigError) as ei:
        load_config([base, overlay], load_dotenv_file=False)

    msg = str(ei.value)
    assert f"log.path in {overlay}" in msg
    assert str(base) not in msg


def test_placeholder_overridden_by_later_file_is_not_expanded(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.delenv("VR_SCRIPTS_HOME", raising=False)
    base = tmp_path / "app.yaml"
    base.write_text("scripts:\n  stop_dir: ${VR_SCRIPTS_HOME}/stop\n  pattern: '*.cmd'\n", encoding="utf-8")
    overlay = tmp_path / "dev.yaml"
    overlay.write_text("scripts:\n  stop_dir: ./stop\n", encoding="utf-8")

    cfg = load_config([base, overlay], load_dotenv_file=False)
    assert cfg["scripts"] == {"stop_dir": "./stop", "pattern": "*.cmd"}


def test_dotenv_beside_install_is_preferred_over_cwd(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("VR_LOG_DIR", raising=False)
    install = tmp_path / "install"
    (install / "configs").mkdir(parents=True)
    (install / ".env").write_text("VR_LOG_DIR=C:/install-logs\n", encoding="utf-8")
    cfg_path = install / "configs" / "app.yaml"
    cfg_path.write_text("log:\n  path: ${VR_LOG_DIR}/startup.log\n", encoding="utf-8")

    elsewhere = tmp_path / "steamvr"
    elsewhere.mkdir()
    (elsewhere / ".env").write_text("VR_LOG_DIR=C:/cwd-logs\n", encoding="utf-8")
    monkeypatch.chdir(elsewhere)

    cfg = load_config(cfg_path)
    assert cfg["log"]["path"] == "C:/install-logs/startup.log"
    monkeypatch.delenv("VR_LOG_DIR", raising=False)


def test_install_root(tmp_path: Path) -> None:
    assert install_root(tmp_path / "configs" / "app.yaml") == tmp_path.resolve()
    assert install_root(tmp_path / "custom.yaml") == tmp_path.resolve()
