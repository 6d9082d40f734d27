from __future__ import annotations

import json

from wgpanel.services.action_log import MAX_FIELD_CHARS, ActionLogService, format_entry


def test_action_log_service_writes_json_lines(tmp_path) -> None:
    log_path = tmp_path / "logs" / "actions.log"
    service = ActionLogService(log_path=log_path)

    service.log_event("start", phase="done", interface="julo-prod")
    service.log_event("probe", phase="reconcile", kept="julo-prod", brought_down=["julo-nonprod"])

    lines = log_path.read_text(encoding="utf-8").splitlines()
    assert len(lines) == 2

    first = json.loads(lines[0])
    second = json.loads(lines[1])
    assert first["action"] == "start"
    assert first["phase"] == "done"
    assert first["interface"] == "julo-prod"
    assert "timestamp" in first
    assert second["action"] == "probe"
    assert second["brought_down"] == ["julo-nonprod"]


def test_action_log_service_ignores_unwritable_location(tmp_path) -> None:
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory", encoding="utf-8")
    service = ActionLogService(log_path=blocker / "logs" / "actions.log")

    service.log_event("stop", phase="done")

    assert blocker.read_text(encoding="utf-8") == "not a directory"


def test_action_log_service_serializes_non_json_values(tmp_path) -> None:
    log_path = tmp_path / "actions.log"
    service = ActionLogService(log_path=log_path)

    service.log_event("install_templates", config_dir=tmp_path)

    entry = json.loads(log_path.read_text(encoding="utf-8"))
    assert entry["config_dir"] == str(tmp_path)


def test_action_log_clips_long_tool_output(tmp_path) -> None:
    log_path = tmp_path / "actions.log"
    service = ActionLogService(log_path=log_path)

    service.log_event("start", phase="failed", interface="julo-prod", output="x" * (MAX_FIELD_CHARS + 500))

    entry = json.loads(log_path.read_text(encoding="utf-8"))
    assert entry["output"].startswith("x" * MAX_FIELD_CHARS)
    assert entry["output"].endswith("... [500 more chars]")
    assert entry["interface"] == "julo-prod"


def test_recent_returns_newest_entries_and_filters_by_action(tmp_path) -> None:
    log_path = tmp_path / "actions.log"
    service = ActionLogService(log_path=log_path)
    for index in range(5):
        service.log_event("start", phase="done", attempt=index)
        service.log_event("stop", phase="done", attempt=index)
    with log_path.open("a", encoding="utf-8") as handle:
        handle.write("not json\n[1, 2]\n")

    latest = service.recent(3)
    starts = service.recent(2, action="start")

    assert [(entry["action"], entry["attempt"]) for entry in latest] == [("stop", 3), ("start", 4), ("stop", 4)]
    assert [entry["attempt"] for entry in starts] == [3, 4]
    assert service.recent(0) == []


def test_recent_without_log_file_is_empty(tmp_path) -> None:
    assert ActionLogService(log_path=tmp_path / "missing.log").recent() == []


def test_format_entry_puts_output_under_summary_line() -> None:
    entry = {
        "timestamp": "2026-03-01T12:00:00+00:00",
        "action": "stop",
        "phase": "failed",
        "interface": "julo-nonprod",
        "returncode": 1,
        "error": None,
        "output": "RTNETLINK answers: Operation not permitted\nline two\n",
    }

    assert format_entry(entry).splitlines() == [
        "2026-03-01T12:00:00+00:00  stop failed  interface=julo-nonprod  returncode=1",
        "    RTNETLINK answers: Operation not permitted",
        "    line two",
    ]
