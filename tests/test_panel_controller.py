from __future__ import annotations

from pathlib import Path
from typing import Callable

from wgpanel.domain.models import Environment, TaskKind, TunnelSession
from wgpanel.services.action_log import ActionLogService
from wgpanel.services.task_scheduler import TaskScheduler
from wgpanel.ui.app_state import MenuActivated, PanelStore, PathSelected
from wgpanel.ui.panel_controller import PanelController


class _FakeBackend:
    def __init__(self) -> None:
        self.calls: list[str] = []
        self.session = TunnelSession.disconnected()

    def probe(self) -> TunnelSession:
        self.calls.append("probe")
        return self.session

    def start(self, env: Environment) -> None:
        self.calls.append(f"start:{env.value}")
        self.session = TunnelSession(connected=True, environment=env, interface_name=env.interface_name)

    def stop(self) -> None:
        self.calls.append("stop")
        self.session = TunnelSession.disconnected()

    def merge_config(self, path: str | Path) -> Environment:
        self.calls.append(f"merge:{path}")
        return Environment.PRODUCTION

    def read_config(self, env: Environment) -> str:
        self.calls.append(f"read:{env.value}")
        return ""


class _DeferredSpawn:
    def __init__(self) -> None:
        self.pending: list[Callable[[], None]] = []

    def __call__(self, target: Callable[[], None], name: str) -> None:
        self.pending.append(target)

    def run_all(self) -> None:
        while self.pending:
            self.pending.pop(0)()


def _controller(tmp_path) -> tuple[PanelController, _FakeBackend, _DeferredSpawn]:  # noqa: ANN001
    backend = _FakeBackend()
    spawn = _DeferredSpawn()
    scheduler = TaskScheduler(
        backend,
        action_log=ActionLogService(log_path=tmp_path / "actions.log"),
        spawn=spawn,
    )
    return PanelController(PanelStore(), scheduler), backend, spawn


def test_start_dispatches_initial_probe(tmp_path) -> None:
    controller, backend, spawn = _controller(tmp_path)

    controller.start()
    assert controller.state.loading is True

    spawn.run_all()
    assert controller.tick() is True
    assert controller.state.loading is False
    assert backend.calls == ["probe"]


def test_start_then_refresh_runs_strictly_in_sequence(tmp_path) -> None:
    controller, backend, spawn = _controller(tmp_path)

    controller.handle(MenuActivated("start_prod"))
    # Input while the start is outstanding is dropped.
    controller.handle(MenuActivated("refresh"))
    assert len(spawn.pending) == 1

    spawn.run_all()
    controller.tick()
    assert controller.state.message == "Production VPN started successfully!"
    assert controller.state.loading is True
    assert controller.scheduler.in_flight is TaskKind.PROBE

    spawn.run_all()
    controller.tick()
    assert controller.state.loading is False
    assert controller.state.session.environment is Environment.PRODUCTION
    assert backend.calls == ["start:prod", "probe"]


def test_tick_consumes_at_most_one_result(tmp_path) -> None:
    controller, _backend, spawn = _controller(tmp_path)

    assert controller.tick() is False
    controller.handle(MenuActivated("stop"))
    assert spawn.pending == []

    controller.handle(MenuActivated("update_config"))
    controller.handle(PathSelected("/tmp/user.conf"))
    spawn.run_all()
    assert controller.tick() is True
    assert controller.tick() is False
    assert controller.state.message == "Configuration updated successfully! (Production)"
    assert controller.state.loading is True
    assert controller.scheduler.in_flight is TaskKind.PROBE


def test_config_update_refreshes_session_afterwards(tmp_path) -> None:
    controller, backend, spawn = _controller(tmp_path)
    backend.session = TunnelSession(
        connected=True,
        environment=Environment.PRODUCTION,
        interface_name="julo-prod",
    )

    controller.handle(MenuActivated("update_config"))
    controller.handle(PathSelected("/tmp/user.conf"))
    spawn.run_all()
    controller.tick()
    spawn.run_all()
    controller.tick()

    assert backend.calls == ["merge:/tmp/user.conf", "probe"]
    assert controller.state.loading is False
    assert controller.state.session.environment is Environment.PRODUCTION
