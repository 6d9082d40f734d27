from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Callable, Union

from wgpanel.domain.models import Environment, TaskKind, TaskResult, TunnelSession
from wgpanel.services.wg_status import format_bytes


MENU_ITEMS: tuple[str, ...] = (
    "start_prod",
    "start_nonprod",
    "stop",
    "refresh",
    "update_config",
    "view_config",
    "quit",
)
MENU_LABELS: dict[str, str] = {
    "start_prod": "Start Production VPN",
    "start_nonprod": "Start Non-Production VPN",
    "stop": "Stop VPN",
    "refresh": "Refresh Status",
    "update_config": "Update VPN Configuration",
    "view_config": "View Configuration",
    "quit": "Quit",
}
START_ITEMS: dict[str, Environment] = {
    "start_prod": Environment.PRODUCTION,
    "start_nonprod": Environment.NON_PRODUCTION,
}
ACTIVITY_LIMIT = 200


@dataclass(frozen=True)
class PanelState:
    session: TunnelSession = field(default_factory=TunnelSession.disconnected)
    cursor: int = 0
    loading: bool = False
    message: str = ""
    browsing: bool = False
    activity: tuple[str, ...] = ()
    config_view: str = ""
    quit_requested: bool = False


@dataclass(frozen=True)
class TaskRequest:
    kind: TaskKind
    payload: Any = None


@dataclass(frozen=True)
class CursorMoved:
    delta: int


@dataclass(frozen=True)
class MenuActivated:
    item: str | None = None


@dataclass(frozen=True)
class PathSelected:
    path: str


@dataclass(frozen=True)
class BrowserCancelled:
    pass


@dataclass(frozen=True)
class TaskCompleted:
    result: TaskResult


@dataclass(frozen=True)
class TaskRejected:
    kind: TaskKind


PanelEvent = Union[
    CursorMoved, MenuActivated, PathSelected, BrowserCancelled, TaskCompleted, TaskRejected
]
Transition = tuple[PanelState, Union[TaskRequest, None]]


def is_disabled(state: PanelState, item: str) -> bool:
    session = state.session
    env = START_ITEMS.get(item)
    if env is not None:
        return session.connected and session.environment is env
    if item == "stop":
        return not session.connected
    return False


def _log(state: PanelState, *entries: str) -> tuple[str, ...]:
    activity = state.activity + tuple(entry for entry in entries if entry)
    return activity[-ACTIVITY_LIMIT:]


def _first_line(text: str) -> str:
    for line in text.splitlines():
        if line.strip():
            return line.strip()
    return text.strip()


def _on_menu(state: PanelState, event: MenuActivated) -> Transition:
    item = event.item or MENU_ITEMS[state.cursor]
    if item == "quit":
        return replace(state, quit_requested=True), None
    if state.loading or state.browsing or item not in MENU_LABELS:
        return state, None
    if is_disabled(state, item):
        return replace(state, message=f"{MENU_LABELS[item]} is not available right now."), None

    env = START_ITEMS.get(item)
    if env is not None:
        verb = "Switching to" if state.session.connected else "Starting"
        return (
            replace(state, loading=True, message=f"{verb} {env.label} VPN..."),
            TaskRequest(TaskKind.START, env.value),
        )
    if item == "stop":
        return replace(state, loading=True, message="Stopping VPN..."), TaskRequest(TaskKind.STOP)
    if item == "refresh":
        return (
            replace(state, loading=True, message="Checking VPN status..."),
            TaskRequest(TaskKind.PROBE),
        )
    if item == "update_config":
        return (
            replace(
                state,
                browsing=True,
                message="Select a .conf file to merge.",
                activity=_log(state, "Configuration update started..."),
            ),
            None,
        )
    if item == "view_config":
        env = state.session.environment or Environment.PRODUCTION
        return (
            replace(state, loading=True, message=f"Loading {env.label} configuration..."),
            TaskRequest(TaskKind.READ_CONFIG, env.value),
        )
    return state, None


def _on_path(state: PanelState, event: PathSelected) -> Transition:
    if state.loading or not state.browsing:
        return state, None
    path = event.path.strip()
    if not path.lower().endswith(".conf"):
        return replace(state, message="Please select a .conf file"), None
    return (
        replace(
            state,
            browsing=False,
            loading=True,
            message="Updating configuration...",
            activity=_log(state, f"Processing config: {path}"),
        ),
        TaskRequest(TaskKind.MERGE, path),
    )


def _success_message(result: TaskResult) -> str:
    if result.kind is TaskKind.START:
        return f"{Environment(result.payload).label} VPN started successfully!"
    if result.kind is TaskKind.STOP:
        return "VPN stopped successfully!"
    if result.kind is TaskKind.MERGE:
        return f"Configuration updated successfully! ({Environment(result.payload).label})"
    if result.kind is TaskKind.READ_CONFIG:
        return f"Showing {Environment(result.payload).label} configuration."
    return "Status updated"


def _failure_message(result: TaskResult) -> str:
    if result.kind is TaskKind.START:
        try:
            label = Environment(result.payload).label
        except ValueError:
            label = "the"
        return f"Failed to start {label} VPN: {_first_line(result.error)}"
    if result.kind is TaskKind.STOP:
        return f"Failed to stop VPN: {_first_line(result.error)}"
    if result.kind is TaskKind.MERGE:
        return f"Configuration update failed: {_first_line(result.error)}"
    if result.kind is TaskKind.READ_CONFIG:
        return f"Could not show configuration: {_first_line(result.error)}"
    return f"Error checking status: {_first_line(result.error)}"


def _on_result(state: PanelState, event: TaskCompleted) -> Transition:
    result = event.result
    next_state = replace(state, loading=result.refresh_scheduled)
    if not result.ok:
        message = _failure_message(result)
        details = [line for line in (result.error + "\n" + result.output).splitlines() if line.strip()]
        return (
            replace(next_state, message=message, activity=_log(state, message, *details[1:])),
            None,
        )

    message = _success_message(result)
    if result.kind is TaskKind.PROBE:
        session = result.session or TunnelSession.disconnected()
        return replace(next_state, session=session, message=message), None
    if result.kind is TaskKind.READ_CONFIG:
        return replace(next_state, config_view=result.content, message=message), None
    return replace(next_state, message=message, activity=_log(state, message)), None


def reduce(state: PanelState, event: PanelEvent) -> Transition:
    """Pure panel transition: the next state plus at most one task to dispatch."""
    if isinstance(event, CursorMoved):
        cursor = min(max(state.cursor + event.delta, 0), len(MENU_ITEMS) - 1)
        return replace(state, cursor=cursor), None
    if isinstance(event, MenuActivated):
        return _on_menu(state, event)
    if isinstance(event, PathSelected):
        return _on_path(state, event)
    if isinstance(event, BrowserCancelled):
        if not state.browsing:
            return state, None
        return (
            replace(
                state,
                browsing=False,
                message="",
                activity=_log(state, "Configuration update cancelled"),
            ),
            None,
        )
    if isinstance(event, TaskCompleted):
        return _on_result(state, event)
    if isinstance(event, TaskRejected):
        return (
            replace(
                state,
                loading=False,
                message=f"Another operation is still running; {event.kind.value} was not started.",
            ),
            None,
        )
    return state, None


Listener = Callable[[PanelState], None]


class PanelStore:
    """Holds the one authoritative panel state and notifies subscribers on change."""

    def __init__(self, state: PanelState | None = None) -> None:
        self._state = state or PanelState()
        self._listeners: list[Listener] = []

    def snapshot(self) -> PanelState:
        return self._state

    def subscribe(self, listener: Listener) -> None:
        if listener not in self._listeners:
            self._listeners.append(listener)

    def unsubscribe(self, listener: Listener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def dispatch(self, event: PanelEvent) -> TaskRequest | None:
        next_state, request = reduce(self._state, event)
        if next_state != self._state:
            self._publish(next_state)
        return request

    def _publish(self, next_state: PanelState) -> None:
        self._state = next_state
        for listener in list(self._listeners):
            listener(self._state)


def describe_session(session: TunnelSession, now: datetime | None = None) -> list[str]:
    if not session.connected:
        return ["Status: Disconnected"]
    env = session.environment.label if session.environment is not None else "Unknown"
    lines = [f"Status: Connected to {env} ({session.interface_name})"]
    if session.endpoint:
        lines.append(f"Endpoint: {session.endpoint}")
    if session.last_handshake is not None:
        reference = now or datetime.now(session.last_handshake.tzinfo)
        seconds = max(0, int((reference - session.last_handshake).total_seconds()))
        lines.append(f"Last Handshake: {seconds}s ago")
    if session.bytes_received or session.bytes_sent:
        lines.append(
            f"Data: down {format_bytes(session.bytes_received)}  up {format_bytes(session.bytes_sent)}"
        )
    return lines
