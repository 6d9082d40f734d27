from __future__ import annotations

import json
from pathlib import Path

from wgpanel.services.settings import (
    ENV_COMMAND_TIMEOUT,
    ENV_CONFIG_DIR,
    ENV_USE_SUDO,
    AppSettings,
    SettingsService,
)


def test_settings_defaults_when_file_missing(tmp_path) -> None:
    service = SettingsService(storage_path=tmp_path / "settings.json")

    settings = service.resolve(env={})

    assert settings.config_dir == Path("/etc/wireguard")
    assert settings.command_timeout_seconds == 30.0
    assert settings.use_sudo is False
    assert settings.poll_interval_ms == 80


def test_settings_round_trip_through_file(tmp_path) -> None:
    service = SettingsService(storage_path=tmp_path / "nested" / "settings.json")
    service.save(AppSettings(config_dir=tmp_path / "wg", command_timeout_seconds=5, use_sudo=True))

    loaded = service.load()

    assert loaded.config_dir == tmp_path / "wg"
    assert loaded.command_timeout_seconds == 5
    assert loaded.use_sudo is True


def test_settings_malformed_file_falls_back_to_defaults(tmp_path) -> None:
    path = tmp_path / "settings.json"
    path.write_text(json.dumps({"command_timeout_seconds": -4}), encoding="utf-8")
    assert SettingsService(storage_path=path).load() == AppSettings()

    path.write_text("{broken", encoding="utf-8")
    assert SettingsService(storage_path=path).load() == AppSettings()


def test_settings_precedence_cli_over_env_over_file(tmp_path) -> None:
    path = tmp_path / "settings.json"
    path.write_text(
        json.dumps({"config_dir": str(tmp_path / "file"), "command_timeout_seconds": 10, "use_sudo": False}),
        encoding="utf-8",
    )
    service = SettingsService(storage_path=path)
    env = {
        ENV_CONFIG_DIR: str(tmp_path / "env"),
        ENV_COMMAND_TIMEOUT: "20",
        ENV_USE_SUDO: "yes",
    }

    from_env = service.resolve(env=env)
    assert from_env.config_dir == tmp_path / "env"
    assert from_env.command_timeout_seconds == 20
    assert from_env.use_sudo is True

    from_cli = service.resolve(
        cli={"config_dir": tmp_path / "cli", "command_timeout_seconds": None},
        env=env,
    )
    assert from_cli.config_dir == tmp_path / "cli"
    assert from_cli.command_timeout_seconds == 20


def test_settings_ignore_invalid_environment_values(tmp_path) -> None:
    service = SettingsService(storage_path=tmp_path / "settings.json")

    settings = service.resolve(env={ENV_COMMAND_TIMEOUT: "soon", ENV_USE_SUDO: "maybe"})

    assert settings.command_timeout_seconds == 30.0
    assert settings.use_sudo is False
