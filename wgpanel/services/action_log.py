from __future__ import annotations

import json
from collections import deque
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from wgpanel.services.paths import action_log_path


# wg-quick output can run to pages; keep each entry on one readable line.
MAX_FIELD_CHARS = 2000


def _clip(value: Any) -> Any:
    if isinstance(value, str) and len(value) > MAX_FIELD_CHARS:
        return value[:MAX_FIELD_CHARS] + f"... [{len(value) - MAX_FIELD_CHARS} more chars]"
    return value


class ActionLogService:
    """Append-only record of tunnel operations, one JSON object per line.

    Every start, stop, reconcile, merge and setup step lands here so that
    `wgpanel history` can answer "what did the panel do to my tunnels".
    """

    def __init__(self, log_path: Path | None = None) -> None:
        if log_path is None:
            log_path = action_log_path()
        self.log_path = log_path.expanduser()

    def log_event(self, action: str, **fields: Any) -> None:
        payload: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "action": action,
        }
        payload.update({key: _clip(value) for key, value in fields.items()})
        self._append_json_line(payload)

    def recent(self, limit: int = 50, action: str | None = None) -> list[dict[str, Any]]:
        """Newest-last entries, skipping lines that are not JSON objects."""
        if limit <= 0:
            return []
        entries: deque[dict[str, Any]] = deque(maxlen=limit)
        try:
            with self.log_path.open("r", encoding="utf-8", errors="replace") as handle:
                for line in handle:
                    try:
                        entry = json.loads(line)
                    except json.JSONDecodeError:
                        continue
                    if not isinstance(entry, dict):
                        continue
                    if action is not None and entry.get("action") != action:
                        continue
                    entries.append(entry)
        except FileNotFoundError:
            return []
        return list(entries)

    def _append_json_line(self, payload: dict[str, Any]) -> None:
        try:
            self.log_path.parent.mkdir(parents=True, exist_ok=True)
            with self.log_path.open("a", encoding="utf-8") as handle:
                handle.write(json.dumps(payload, sort_keys=True, default=str) + "\n")
        except OSError:
            # Logging must never break a tunnel operation.
            return


def format_entry(entry: dict[str, Any]) -> str:
    timestamp = str(entry.get("timestamp", "?"))
    action = str(entry.get("action", "?"))
    phase = entry.get("phase")
    head = f"{timestamp}  {action}" + (f" {phase}" if phase else "")
    details = [
        f"{key}={value}"
        for key, value in sorted(entry.items())
        if key not in ("timestamp", "action", "phase", "output") and value is not None
    ]
    line = "  ".join([head, *details]) if details else head
    output = str(entry.get("output") or "").strip()
    if not output:
        return line
    return "\n".join([line, *(f"    {text}" for text in output.splitlines())])
