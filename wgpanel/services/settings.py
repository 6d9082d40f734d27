from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Mapping

from pydantic import BaseModel, Field, ValidationError

from wgpanel.services.paths import DEFAULT_CONFIG_DIR, settings_path


ENV_CONFIG_DIR = "WGPANEL_CONFIG_DIR"
ENV_COMMAND_TIMEOUT = "WGPANEL_COMMAND_TIMEOUT"
ENV_USE_SUDO = "WGPANEL_USE_SUDO"


class AppSettings(BaseModel):
    config_dir: Path = DEFAULT_CONFIG_DIR
    command_timeout_seconds: float = Field(default=30.0, gt=0)
    use_sudo: bool = False
    poll_interval_ms: int = Field(default=80, ge=10, le=1000)


class SettingsService:
    def __init__(self, storage_path: Path | None = None) -> None:
        self.storage_path = storage_path or settings_path()

    @staticmethod
    def _coerce_bool(raw: object, default: bool) -> bool:
        if isinstance(raw, bool):
            return raw
        text = str(raw).strip().lower()
        if text in {"1", "true", "yes", "on"}:
            return True
        if text in {"0", "false", "no", "off"}:
            return False
        return default

    def _read_store(self) -> dict[str, Any]:
        if not self.storage_path.exists():
            return {}
        try:
            raw = json.loads(self.storage_path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError):
            return {}
        return dict(raw) if isinstance(raw, dict) else {}

    def load(self) -> AppSettings:
        try:
            return AppSettings.model_validate(self._read_store())
        except ValidationError:
            return AppSettings()

    def save(self, settings: AppSettings) -> None:
        self.storage_path.parent.mkdir(parents=True, exist_ok=True)
        self.storage_path.write_text(
            json.dumps(settings.model_dump(mode="json"), indent=2, sort_keys=True),
            encoding="utf-8",
        )

    def resolve(
        self,
        *,
        cli: Mapping[str, Any] | None = None,
        env: Mapping[str, str] | None = None,
    ) -> AppSettings:
        """Layer settings: CLI over environment over the settings file over defaults."""
        environ = os.environ if env is None else env
        merged = self.load().model_dump()

        raw_dir = (environ.get(ENV_CONFIG_DIR) or "").strip()
        if raw_dir:
            merged["config_dir"] = Path(raw_dir).expanduser()
        raw_timeout = (environ.get(ENV_COMMAND_TIMEOUT) or "").strip()
        if raw_timeout:
            try:
                timeout = float(raw_timeout)
            except ValueError:
                timeout = 0.0
            if timeout > 0:
                merged["command_timeout_seconds"] = timeout
        raw_sudo = environ.get(ENV_USE_SUDO)
        if raw_sudo is not None:
            merged["use_sudo"] = self._coerce_bool(raw_sudo, bool(merged["use_sudo"]))

        for key, value in (cli or {}).items():
            if value is not None:
                merged[key] = value
        return AppSettings.model_validate(merged)
