from __future__ import annotations

from pathlib import Path

from wgpanel.domain.models import Environment, SetupStatus
from wgpanel.services.action_log import ActionLogService
from wgpanel.services.config_merger import ConfigMerger, ConfigMergeError, MergeErrorKind
from wgpanel.services.config_store import ConfigStore, permission_hint
from wgpanel.services.template_catalog import TemplateCatalogService


class SetupError(Exception):
    """Raised when template installation or first-time setup fails."""


class SetupService:
    """One-time installation of templates plus the initial config merges."""

    def __init__(
        self,
        store: ConfigStore,
        catalog: TemplateCatalogService,
        merger: ConfigMerger,
        *,
        action_log: ActionLogService | None = None,
    ) -> None:
        self.store = store
        self.catalog = catalog
        self.merger = merger
        self.action_log = action_log or ActionLogService()

    def check_status(self) -> SetupStatus:
        missing: list[str] = []
        found: dict[Path, bool] = {}
        for env in Environment:
            for path in (self.store.template_path(env), self.store.config_path(env)):
                exists = self.store.exists(path)
                found[path] = exists
                if not exists:
                    missing.append(path.name)
        return SetupStatus(
            has_templates=all(found[self.store.template_path(env)] for env in Environment),
            has_prod_config=found[self.store.config_path(Environment.PRODUCTION)],
            has_nonprod_config=found[self.store.config_path(Environment.NON_PRODUCTION)],
            missing_files=missing,
        )

    def install_templates(self) -> list[Path]:
        """Write both templates, replacing whatever is there."""
        written: list[Path] = []
        for env in Environment:
            path = self.store.template_path(env)
            content = self.catalog.render(env)
            try:
                self.store.write_text(path, content)
            except PermissionError as exc:
                raise SetupError(
                    "Insufficient permissions to install templates and config files.\n\n"
                    + permission_hint("run the initial setup")
                ) from exc
            except OSError as exc:
                raise SetupError(f"Failed to install {env.label} template: {exc}") from exc
            written.append(path)
        self.action_log.log_event(
            "install_templates",
            config_dir=str(self.store.config_dir),
            files=[path.name for path in written],
        )
        return written

    def run_setup(
        self,
        prod_config: str | Path | None = None,
        nonprod_config: str | Path | None = None,
    ) -> list[Environment]:
        self.install_templates()
        merged: list[Environment] = []
        for label, source in (("production", prod_config), ("non-production", nonprod_config)):
            if not source:
                continue
            try:
                merged.append(self.merger.process_user_config(source))
            except ConfigMergeError as exc:
                if exc.kind is MergeErrorKind.PERMISSION_DENIED:
                    raise SetupError(
                        "Insufficient permissions to install templates and config files.\n\n"
                        + permission_hint("run the initial setup")
                    ) from exc
                raise SetupError(f"Failed to process {label} config: {exc}") from exc
        return merged
