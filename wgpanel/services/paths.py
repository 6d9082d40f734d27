from __future__ import annotations

import os
import sys
from pathlib import Path


DEFAULT_CONFIG_DIR = Path("/etc/wireguard")


def app_root() -> Path:
    if getattr(sys, "frozen", False) and hasattr(sys, "_MEIPASS"):
        return Path(sys._MEIPASS) / "wgpanel"  # type: ignore[attr-defined]
    return Path(__file__).resolve().parents[1]


def templates_dir() -> Path:
    return app_root() / "templates"


def schemas_dir() -> Path:
    return templates_dir() / "schemas"


def user_data_dir() -> Path:
    appdata = os.getenv("APPDATA")
    if appdata:
        return Path(appdata) / "wgpanel"
    return Path.home() / ".wgpanel"


def settings_path() -> Path:
    return user_data_dir() / "settings.json"


def action_log_path() -> Path:
    return user_data_dir() / "logs" / "actions.log"
