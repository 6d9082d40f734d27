from __future__ import annotations

import sys
from pathlib import Path

from wgpanel.domain.models import Environment
from wgpanel.services.paths import DEFAULT_CONFIG_DIR


def permission_hint(retry_step: str, platform: str | None = None) -> str:
    """Remediation text for a write that was refused by the filesystem."""
    current = platform or sys.platform
    if current.startswith("win"):
        instructions = (
            "Please run as Administrator:\n"
            "Right-click Command Prompt -> 'Run as administrator'\n"
            "Then run: wgpanel"
        )
    else:
        instructions = "Please run with administrator privileges:\nsudo wgpanel"
    return f"{instructions}\n\nThen {retry_step} again."


class ConfigStore:
    """File access for templates and merged configs in the WireGuard directory."""

    def __init__(self, config_dir: Path | None = None) -> None:
        self.config_dir = Path(config_dir or DEFAULT_CONFIG_DIR).expanduser()

    def template_path(self, env: Environment) -> Path:
        return self.config_dir / f"{env.interface_name}-template.conf"

    def config_path(self, env: Environment) -> Path:
        return self.config_dir / f"{env.interface_name}.conf"

    @staticmethod
    def exists(path: Path) -> bool:
        try:
            return path.is_file()
        except OSError:
            return False

    @staticmethod
    def read_lines(path: Path) -> list[str]:
        return path.read_text(encoding="utf-8").splitlines()

    def write_lines(self, path: Path, lines: list[str]) -> None:
        self.write_text(path, "".join(f"{line}\n" for line in lines))

    def write_text(self, path: Path, content: str) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
