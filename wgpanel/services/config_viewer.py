from __future__ import annotations

from wgpanel.domain.models import Environment
from wgpanel.services.config_store import ConfigStore


REDACTED = "[HIDDEN]"
SECRET_KEYS = ("PrivateKey", "PresharedKey", "PublicKey")


class ConfigViewError(Exception):
    """Raised when a merged config cannot be read for display."""


def redact_config(content: str) -> str:
    """Display form of a config: no key material, one AllowedIPs range per line."""
    shown: list[str] = []
    for raw_line in content.splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        key, sep, value = line.partition("=")
        if line.startswith(SECRET_KEYS):
            if sep:
                shown.append(f"{key.strip()} = {REDACTED}")
        elif line.startswith("AllowedIPs"):
            if sep:
                shown.append(f"{key.strip()} =")
                shown.extend(f"  {item.strip()}" for item in value.split(",") if item.strip())
        else:
            shown.append(line)
    return "\n".join(shown)


class ConfigViewer:
    def __init__(self, store: ConfigStore) -> None:
        self.store = store

    def read(self, env: Environment) -> str:
        path = self.store.config_path(env)
        try:
            content = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise ConfigViewError(f"Failed to read config file {path}: {exc}") from exc
        return redact_config(content)
