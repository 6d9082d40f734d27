from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Iterable, Mapping

from wgpanel.domain.models import Environment
from wgpanel.services.action_log import ActionLogService
from wgpanel.services.config_store import ConfigStore, permission_hint


class MergeErrorKind(str, Enum):
    FILE_NOT_FOUND = "file_not_found"
    NO_ENDPOINT_FOUND = "no_endpoint_found"
    UNRECOGNIZED_ENDPOINT = "unrecognized_endpoint"
    TEMPLATE_MISSING = "template_missing"
    TEMPLATE_MALFORMED = "template_malformed"
    PERMISSION_DENIED = "permission_denied"
    READ_FAILED = "read_failed"
    WRITE_FAILED = "write_failed"


class ConfigMergeError(Exception):
    """Raised when a user config cannot be merged into a managed config."""

    def __init__(self, kind: MergeErrorKind, message: str) -> None:
        super().__init__(message)
        self.kind = kind


def extract_endpoint(lines: Iterable[str]) -> str | None:
    """Third whitespace field of the first line mentioning `Endpoint`."""
    for line in lines:
        if "Endpoint" not in line:
            continue
        fields = line.split()
        if len(fields) >= 3:
            return fields[2]
    return None


def classify_endpoint(endpoint: str, endpoints: Mapping[Environment, str]) -> Environment | None:
    for env, constant in endpoints.items():
        if endpoint == constant:
            return env
    return None


def extract_directive_line(lines: Iterable[str], key: str) -> str | None:
    for line in lines:
        if line.startswith(key):
            return line
    return None


def merge_lines(user_lines: Iterable[str], dns_line: str, allowed_ips_line: str) -> list[str]:
    """Swap the routing policy lines for the template ones, keep everything else in order."""
    merged: list[str] = []
    for line in user_lines:
        if line.startswith("AllowedIPs"):
            merged.append(allowed_ips_line)
        elif line.startswith("DNS"):
            merged.append(dns_line)
        else:
            merged.append(line)
    return merged


class ConfigMerger:
    """Merges a user's tunnel credentials with the operator template for its environment."""

    def __init__(
        self,
        store: ConfigStore,
        endpoints: Mapping[Environment, str],
        *,
        action_log: ActionLogService | None = None,
    ) -> None:
        self.store = store
        self.endpoints = dict(endpoints)
        self.action_log = action_log or ActionLogService()

    def process_user_config(self, path: str | Path) -> Environment:
        source = Path(path).expanduser()
        try:
            env = self._process(source)
        except ConfigMergeError as exc:
            self.action_log.log_event(
                "merge",
                phase="failed",
                source=str(source),
                kind=exc.kind.value,
            )
            raise
        self.action_log.log_event("merge", phase="done", source=str(source), environment=env.value)
        return env

    def _process(self, source: Path) -> Environment:
        if not self.store.exists(source):
            raise ConfigMergeError(
                MergeErrorKind.FILE_NOT_FOUND,
                f"User config file not found: {source}",
            )
        user_lines = self._read(source)

        endpoint = extract_endpoint(user_lines)
        if endpoint is None:
            raise ConfigMergeError(
                MergeErrorKind.NO_ENDPOINT_FOUND,
                f"No Endpoint found in config file: {source}",
            )

        env = classify_endpoint(endpoint, self.endpoints)
        if env is None:
            raise ConfigMergeError(
                MergeErrorKind.UNRECOGNIZED_ENDPOINT,
                f"The config you specified ({source}) is not a recognized VPN configuration.\n"
                "Please check with the operator.",
            )

        template_path = self.store.template_path(env)
        if not self.store.exists(template_path):
            raise ConfigMergeError(
                MergeErrorKind.TEMPLATE_MISSING,
                f"Template file not found: {template_path}. Run the initial setup first.",
            )
        template_lines = self._read(template_path)
        dns_line = extract_directive_line(template_lines, "DNS")
        allowed_ips_line = extract_directive_line(template_lines, "AllowedIPs")
        if dns_line is None or allowed_ips_line is None:
            missing = "DNS" if dns_line is None else "AllowedIPs"
            raise ConfigMergeError(
                MergeErrorKind.TEMPLATE_MALFORMED,
                f"Template {template_path} has no {missing} line.",
            )

        merged = merge_lines(user_lines, dns_line, allowed_ips_line)
        output_path = self.store.config_path(env)
        try:
            self.store.write_lines(output_path, merged)
        except PermissionError as exc:
            raise ConfigMergeError(
                MergeErrorKind.PERMISSION_DENIED,
                "Insufficient permissions to write config files.\n\n"
                + permission_hint("select 'Update Configuration'"),
            ) from exc
        except OSError as exc:
            raise ConfigMergeError(
                MergeErrorKind.WRITE_FAILED,
                f"Failed to write {output_path}: {exc}",
            ) from exc
        return env

    def _read(self, path: Path) -> list[str]:
        try:
            return self.store.read_lines(path)
        except PermissionError as exc:
            raise ConfigMergeError(
                MergeErrorKind.PERMISSION_DENIED,
                f"Insufficient permissions to read {path}.\n\n"
                + permission_hint("select 'Update Configuration'"),
            ) from exc
        except UnicodeDecodeError as exc:
            raise ConfigMergeError(
                MergeErrorKind.READ_FAILED,
                f"{path} is not a UTF-8 text file. Save it as plain UTF-8 and try again.",
            ) from exc
        except OSError as exc:
            raise ConfigMergeError(
                MergeErrorKind.READ_FAILED,
                f"Failed to read {path}: {exc}",
            ) from exc
