from __future__ import annotations

import threading
from queue import Empty, SimpleQueue
from typing import Any, Callable

from wgpanel.domain.models import Environment, TaskKind, TaskResult
from wgpanel.services.action_log import ActionLogService
from wgpanel.services.backend import TunnelBackend
from wgpanel.services.session_controller import SessionControlError


Spawner = Callable[[Callable[[], None], str], None]

REFRESH_AFTER = frozenset({TaskKind.START, TaskKind.STOP, TaskKind.MERGE})


def spawn_daemon_thread(target: Callable[[], None], name: str) -> None:
    threading.Thread(target=target, name=name, daemon=True).start()


class TaskScheduler:
    """Runs one backend call at a time off the render loop.

    Results are queued by the worker and handed to the render loop by `poll()`.
    A new task is refused until the previous result has been polled, so there
    is never more than one background call in flight.
    """

    def __init__(
        self,
        backend: TunnelBackend,
        *,
        action_log: ActionLogService | None = None,
        spawn: Spawner | None = None,
    ) -> None:
        self.backend = backend
        self.action_log = action_log or ActionLogService()
        self._spawn = spawn or spawn_daemon_thread
        self._results: SimpleQueue[TaskResult] = SimpleQueue()
        self._in_flight: TaskKind | None = None

    @property
    def busy(self) -> bool:
        return self._in_flight is not None

    @property
    def in_flight(self) -> TaskKind | None:
        return self._in_flight

    def dispatch(self, kind: TaskKind, payload: Any = None) -> bool:
        if self._in_flight is not None:
            self.action_log.log_event(
                "task",
                phase="rejected",
                kind=kind.value,
                in_flight=self._in_flight.value,
            )
            return False
        self._in_flight = kind

        def _run() -> None:
            self._results.put(self._execute(kind, payload))

        self._spawn(_run, f"wgpanel-{kind.value}")
        return True

    def poll(self) -> TaskResult | None:
        if self._in_flight is None:
            return None
        try:
            result = self._results.get_nowait()
        except Empty:
            return None
        self._in_flight = None
        self.action_log.log_event(
            "task",
            phase="done" if result.ok else "failed",
            kind=result.kind.value,
            error=result.error or None,
        )

        if result.ok and result.kind in REFRESH_AFTER:
            self.dispatch(TaskKind.PROBE)
            result = result.model_copy(update={"refresh_scheduled": True})
        return result

    def _execute(self, kind: TaskKind, payload: Any) -> TaskResult:
        try:
            if kind is TaskKind.PROBE:
                return TaskResult(kind=kind, ok=True, session=self.backend.probe())
            if kind is TaskKind.START:
                env = Environment(payload)
                self.backend.start(env)
                return TaskResult(kind=kind, ok=True, payload=env)
            if kind is TaskKind.STOP:
                self.backend.stop()
                return TaskResult(kind=kind, ok=True)
            if kind is TaskKind.MERGE:
                env = self.backend.merge_config(str(payload))
                return TaskResult(kind=kind, ok=True, payload=env)
            if kind is TaskKind.READ_CONFIG:
                env = Environment(payload)
                content = self.backend.read_config(env)
                return TaskResult(kind=kind, ok=True, payload=env, content=content)
            raise ValueError(f"Unsupported task kind: {kind}")
        except SessionControlError as exc:
            return TaskResult(
                kind=kind,
                ok=False,
                payload=payload,
                error=str(exc),
                output=exc.output,
            )
        except Exception as exc:  # noqa: BLE001
            return TaskResult(kind=kind, ok=False, payload=payload, error=str(exc))
