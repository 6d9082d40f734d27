from __future__ import annotations

import re
from datetime import datetime, timedelta, timezone

from wgpanel.domain.models import Environment, TunnelSession


BYTE_UNITS: dict[str, int] = {
    "B": 1,
    "KiB": 1024,
    "MiB": 1024**2,
    "GiB": 1024**3,
}

_BYTE_SIZE_PATTERN = re.compile(
    r"^\s*(\d+(?:\.\d+)?)\s*(B|KiB|MiB|GiB)?(?:\s+(?:received|sent))?\s*$"
)
_HANDSHAKE_PART_PATTERN = re.compile(r"^(\d+)\s+(second|minute)s?$")
_HANDSHAKE_UNITS = {"second": 1, "minute": 60}


def _value_after(line: str, prefix: str) -> str | None:
    stripped = line.strip()
    if not stripped.startswith(prefix):
        return None
    return stripped[len(prefix):].strip()


def parse_interface_names(output: str, prefix: str) -> list[str]:
    """Managed interface names in the order the tool listed them."""
    names: list[str] = []
    for line in output.splitlines():
        name = _value_after(line, "interface:")
        if not name or not name.startswith(prefix) or name in names:
            continue
        names.append(name)
    return names


def parse_byte_size(text: str) -> int | None:
    match = _BYTE_SIZE_PATTERN.match(text)
    if match is None:
        return None
    value = float(match.group(1))
    multiplier = BYTE_UNITS[match.group(2) or "B"]
    return int(value * multiplier)


def parse_transfer(text: str) -> tuple[int, int]:
    """Parse `<value> <unit> [received], <value> <unit> [sent]`; bad sides count as 0."""
    parts = text.split(",")
    if len(parts) < 2:
        return 0, 0
    received = parse_byte_size(parts[0].strip()) or 0
    sent = parse_byte_size(parts[1].strip()) or 0
    return received, sent


def parse_handshake(text: str, now: datetime | None = None) -> datetime | None:
    """Turn `45 seconds` / `3 minutes` (optionally `1 minute, 5 seconds ago`) into a timestamp.

    Anything else, hours and days included, yields None.
    """
    phrase = text.strip()
    if phrase.endswith(" ago"):
        phrase = phrase[: -len(" ago")].strip()
    if not phrase:
        return None

    total_seconds = 0
    for part in phrase.split(","):
        match = _HANDSHAKE_PART_PATTERN.match(part.strip())
        if match is None:
            return None
        total_seconds += int(match.group(1)) * _HANDSHAKE_UNITS[match.group(2)]

    reference = now or datetime.now(timezone.utc)
    return reference - timedelta(seconds=total_seconds)


def parse_interface_detail(
    interface_name: str,
    output: str,
    now: datetime | None = None,
) -> TunnelSession:
    endpoint: str | None = None
    last_handshake: datetime | None = None
    bytes_received = 0
    bytes_sent = 0

    for line in output.splitlines():
        value = _value_after(line, "endpoint:")
        if value is not None:
            endpoint = value or None
            continue
        value = _value_after(line, "latest handshake:")
        if value is not None:
            last_handshake = parse_handshake(value, now=now)
            continue
        value = _value_after(line, "transfer:")
        if value is not None:
            bytes_received, bytes_sent = parse_transfer(value)

    return TunnelSession(
        connected=True,
        environment=Environment.from_interface_name(interface_name),
        interface_name=interface_name,
        endpoint=endpoint,
        last_handshake=last_handshake,
        bytes_received=bytes_received,
        bytes_sent=bytes_sent,
    )


def format_bytes(value: int) -> str:
    if value < 1024:
        return f"{value} B"
    size = float(value)
    for unit in ("KiB", "MiB", "GiB", "TiB"):
        size /= 1024
        if size < 1024 or unit == "TiB":
            return f"{size:.1f} {unit}"
    return f"{value} B"
