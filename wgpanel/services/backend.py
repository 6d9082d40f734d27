from __future__ import annotations

from pathlib import Path
from typing import Protocol

from wgpanel.domain.models import Environment, TunnelSession
from wgpanel.services.action_log import ActionLogService
from wgpanel.services.config_merger import ConfigMerger
from wgpanel.services.config_store import ConfigStore
from wgpanel.services.config_viewer import ConfigViewer
from wgpanel.services.session_controller import SessionController
from wgpanel.services.session_probe import SessionProbe
from wgpanel.services.settings import AppSettings
from wgpanel.services.setup_service import SetupService
from wgpanel.services.template_catalog import TemplateCatalogService
from wgpanel.services.wireguard_cli import WireGuardCLI


class TunnelBackend(Protocol):
    def probe(self) -> TunnelSession: ...

    def start(self, env: Environment) -> None: ...

    def stop(self) -> None: ...

    def merge_config(self, path: str | Path) -> Environment: ...

    def read_config(self, env: Environment) -> str: ...


class WireGuardBackend:
    """Tunnel backend driving wg/wg-quick against the configured directory."""

    def __init__(
        self,
        probe: SessionProbe,
        controller: SessionController,
        merger: ConfigMerger,
        viewer: ConfigViewer,
        setup: SetupService,
    ) -> None:
        self.session_probe = probe
        self.controller = controller
        self.merger = merger
        self.viewer = viewer
        self.setup = setup

    @classmethod
    def from_settings(
        cls,
        settings: AppSettings,
        *,
        action_log: ActionLogService | None = None,
        catalog: TemplateCatalogService | None = None,
    ) -> "WireGuardBackend":
        log = action_log or ActionLogService()
        templates = catalog or TemplateCatalogService()
        cli = WireGuardCLI(timeout=settings.command_timeout_seconds, use_sudo=settings.use_sudo)
        store = ConfigStore(settings.config_dir)
        probe = SessionProbe(cli, action_log=log)
        merger = ConfigMerger(store, templates.endpoints(), action_log=log)
        return cls(
            probe=probe,
            controller=SessionController(cli, probe, action_log=log),
            merger=merger,
            viewer=ConfigViewer(store),
            setup=SetupService(store, templates, merger, action_log=log),
        )

    def probe(self) -> TunnelSession:
        return self.session_probe.probe()

    def start(self, env: Environment) -> None:
        self.controller.start(env)

    def stop(self) -> None:
        self.controller.stop()

    def merge_config(self, path: str | Path) -> Environment:
        return self.merger.process_user_config(path)

    def read_config(self, env: Environment) -> str:
        return self.viewer.read(env)
