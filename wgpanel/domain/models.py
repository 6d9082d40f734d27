from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, model_validator


INTERFACE_PREFIX = "julo-"


class Environment(str, Enum):
    PRODUCTION = "prod"
    NON_PRODUCTION = "nonprod"

    @property
    def label(self) -> str:
        if self is Environment.PRODUCTION:
            return "Production"
        return "Non-Production"

    @classmethod
    def from_text(cls, raw: str) -> "Environment":
        text = str(raw or "").strip().lower().replace("_", "-")
        aliases = {
            "prod": cls.PRODUCTION,
            "production": cls.PRODUCTION,
            "nonprod": cls.NON_PRODUCTION,
            "non-prod": cls.NON_PRODUCTION,
            "non-production": cls.NON_PRODUCTION,
        }
        env = aliases.get(text)
        if env is None:
            raise ValueError(f"Unknown environment '{raw}'. Use 'prod' or 'nonprod'.")
        return env

    @property
    def interface_name(self) -> str:
        return f"{INTERFACE_PREFIX}{self.value}"

    @classmethod
    def from_interface_name(cls, name: str) -> "Environment | None":
        # "nonprod" contains "prod", so it has to be checked first.
        if cls.NON_PRODUCTION.value in name:
            return cls.NON_PRODUCTION
        if cls.PRODUCTION.value in name:
            return cls.PRODUCTION
        return None


class TunnelSession(BaseModel):
    """Observed tunnel state, recomputed on every probe."""

    connected: bool = False
    environment: Environment | None = None
    interface_name: str = ""
    endpoint: str | None = None
    last_handshake: datetime | None = None
    bytes_received: int = Field(default=0, ge=0)
    bytes_sent: int = Field(default=0, ge=0)

    @model_validator(mode="after")
    def _disconnected_carries_nothing(self) -> "TunnelSession":
        if self.connected:
            return self
        if (
            self.environment is not None
            or self.interface_name
            or self.endpoint is not None
            or self.last_handshake is not None
            or self.bytes_received
            or self.bytes_sent
        ):
            raise ValueError("A disconnected session cannot carry interface details.")
        return self

    @classmethod
    def disconnected(cls) -> "TunnelSession":
        return cls()


class ConfigTemplate(BaseModel):
    environment: Environment
    interface_name: str = Field(min_length=1)
    endpoint: str = Field(min_length=1)
    dns: str = Field(min_length=1)
    allowed_ips: list[str] = Field(min_length=1)
    public_key: str = Field(min_length=1)
    mtu: int = Field(default=1200, gt=0)
    persistent_keepalive: int = Field(default=10, ge=0)

    @model_validator(mode="after")
    def _interface_matches_environment(self) -> "ConfigTemplate":
        expected = self.environment.interface_name
        if self.interface_name != expected:
            raise ValueError(
                f"Template for '{self.environment.value}' must use interface '{expected}', "
                f"got '{self.interface_name}'."
            )
        return self

    @property
    def dns_line(self) -> str:
        return f"DNS = {self.dns}"

    @property
    def allowed_ips_line(self) -> str:
        return f"AllowedIPs = {', '.join(self.allowed_ips)}"

    @property
    def template_filename(self) -> str:
        return f"{self.interface_name}-template.conf"

    @property
    def config_filename(self) -> str:
        return f"{self.interface_name}.conf"


class SetupStatus(BaseModel):
    has_templates: bool = False
    has_prod_config: bool = False
    has_nonprod_config: bool = False
    missing_files: list[str] = Field(default_factory=list)

    @property
    def needs_setup(self) -> bool:
        return not self.has_templates or not (self.has_prod_config or self.has_nonprod_config)


class TaskKind(str, Enum):
    PROBE = "probe"
    START = "start"
    STOP = "stop"
    MERGE = "merge"
    READ_CONFIG = "read_config"


class TaskResult(BaseModel):
    kind: TaskKind
    ok: bool
    payload: Any = None
    session: TunnelSession | None = None
    content: str = ""
    error: str = ""
    output: str = ""
    refresh_scheduled: bool = False
