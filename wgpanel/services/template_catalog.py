from __future__ import annotations

import json
from pathlib import Path

from jinja2 import Environment as JinjaEnvironment
from jinja2 import FileSystemLoader, StrictUndefined
from jsonschema import Draft202012Validator
from pydantic import ValidationError

from wgpanel.domain.models import ConfigTemplate, Environment
from wgpanel.services.paths import schemas_dir as default_schemas_dir
from wgpanel.services.paths import templates_dir as default_templates_dir


TEMPLATE_FILE = "tunnel_template.conf.j2"
KEY_PLACEHOLDER = "x" * 40


class TemplateCatalogError(Exception):
    """Raised when the embedded template catalog cannot be loaded."""


class TemplateCatalogService:
    """Operator templates shipped with the package, one per environment."""

    def __init__(
        self,
        template_root: Path | None = None,
        schema_root: Path | None = None,
    ) -> None:
        self.template_root = template_root or default_templates_dir()
        self.schema_root = schema_root or default_schemas_dir()
        self._validator = Draft202012Validator(
            self._read_json(self.schema_root / "catalog.schema.json")
        )
        self._templates: dict[Environment, ConfigTemplate] | None = None
        self.env = JinjaEnvironment(
            loader=FileSystemLoader(str(self.template_root)),
            autoescape=False,
            keep_trailing_newline=True,
            undefined=StrictUndefined,
        )

    @staticmethod
    def _read_json(path: Path) -> dict:
        try:
            with path.open("r", encoding="utf-8") as handle:
                data = json.load(handle)
        except (OSError, json.JSONDecodeError) as exc:
            raise TemplateCatalogError(f"Failed to read {path.name}: {exc}") from exc
        if not isinstance(data, dict):
            raise TemplateCatalogError(f"{path.name} must contain a JSON object.")
        return data

    def _load(self) -> dict[Environment, ConfigTemplate]:
        data = self._read_json(self.template_root / "catalog.json")
        errors = list(self._validator.iter_errors(data))
        if errors:
            raise TemplateCatalogError(
                f"Template catalog schema validation failed: {errors[0].message}"
            )
        templates: dict[Environment, ConfigTemplate] = {}
        for entry in data["templates"]:
            try:
                template = ConfigTemplate.model_validate(entry)
            except ValidationError as exc:
                raise TemplateCatalogError(f"Invalid template entry: {exc}") from exc
            if template.environment in templates:
                raise TemplateCatalogError(
                    f"Duplicate template for environment '{template.environment.value}'."
                )
            templates[template.environment] = template
        missing = [env.value for env in Environment if env not in templates]
        if missing:
            raise TemplateCatalogError(f"Template catalog is missing: {', '.join(missing)}")
        return templates

    def templates(self) -> dict[Environment, ConfigTemplate]:
        if self._templates is None:
            self._templates = self._load()
        return dict(self._templates)

    def get(self, env: Environment) -> ConfigTemplate:
        return self.templates()[env]

    def endpoints(self) -> dict[Environment, str]:
        return {env: template.endpoint for env, template in self.templates().items()}

    def render(self, env: Environment) -> str:
        template = self.get(env)
        return self.env.get_template(TEMPLATE_FILE).render(
            template=template,
            placeholder=KEY_PLACEHOLDER,
        )
