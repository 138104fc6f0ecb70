"""Centralized configuration for network-domain-sync using Pydantic Settings."""

import json
from pathlib import Path
from typing import Annotated, Any, Literal

from pydantic import AliasChoices, BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


_TRUTHY_VALUES = {"1", "true", "yes", "on"}
_FALSY_VALUES = {"", "0", "false", "no", "off"}

NotifySpec = bool | str | dict[str, str]


class ObservabilityCollectorConfig(BaseModel):
    """Configuration for OTLP trace export."""

    model_config = {"extra": "forbid"}

    enabled: Annotated[
        bool,
        Field(
            description="Enable OTLP trace export to an external collector",
        ),
    ] = False

    otlp_protocol: Annotated[
        Literal["http", "grpc"],
        Field(
            description="OTLP transport protocol",
        ),
    ] = "grpc"

    collector_endpoint: Annotated[
        str,
        Field(
            description="OTLP collector endpoint (HTTP uses /v1/traces)",
            examples=["http://localhost:4317", "http://localhost:4318/v1/traces"],
        ),
    ] = "http://localhost:4317"

    headers: Annotated[
        dict[str, str],
        Field(
            description="Optional headers to include with OTLP requests",
        ),
    ] = Field(default_factory=dict)

    timeout_seconds: Annotated[
        int,
        Field(
            ge=1,
            le=60,
            description="OTLP exporter timeout in seconds",
        ),
    ] = 10

    grpc_insecure: Annotated[
        bool,
        Field(
            description="Allow insecure gRPC (plaintext) connections",
        ),
    ] = True


class MigrationSettings(BaseSettings):
    """Strictly typed configuration for one migration run.

    Migration fields also accept their legacy ``wp-config`` constant names
    (``NETWORK_LOCAL_DOMAIN``, ``SITE_ID_CURRENT_SITE``, ...)
    so existing ``wp-config``-derived environments keep working. Values are
    read once, when the settings object is built.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        validate_default=True,
        env_nested_delimiter="__",
        extra="ignore",  # Ignore extra env vars not defined in model
        populate_by_name=True,
    )

    # Required for the engine to do anything
    target_domain: str = Field(
        default="",
        validation_alias=AliasChoices("target_domain", "network_local_domain"),
        description="Domain the environment is actually served from (e.g. 'staging.example.com')",
    )
    network_id: int | None = Field(
        default=None,
        ge=1,
        validation_alias=AliasChoices("network_id", "site_id_current_site"),
        description="Identifier of the network row to reconcile",
    )
    disabled: bool = Field(
        default=False,
        validation_alias=AliasChoices("domain_sync_disabled", "network_local_domain_disable"),
        description="Skip the migration entirely",
    )

    # Rewrite behaviour
    admin_email: str = Field(
        default="",
        validation_alias=AliasChoices("admin_email", "wp_admin_email"),
        description="Overwrite the network admin email option before rewriting",
    )
    url_scheme: Literal["", "http", "https"] = Field(
        default="",
        validation_alias=AliasChoices("url_scheme", "network_local_domain_scheme"),
        description="Force this scheme onto every rewritten URL; empty keeps the stored scheme",
    )
    strip_www: bool = Field(
        default=False,
        validation_alias=AliasChoices("strip_www", "network_local_strip_www"),
        description="Drop a leading 'www.' label from tenant domains before substitution",
    )

    # Notification
    notify: NotifySpec = Field(
        default=False,
        validation_alias=AliasChoices("notify", "network_local_update_notify"),
        description="true, a destination email address, or a JSON object with email/subject/message overrides",
    )
    smtp_host: str = Field(default="localhost", description="SMTP relay host")
    smtp_port: int = Field(default=25, ge=1, le=65535, description="SMTP relay port")
    smtp_username: str = Field(default="", description="SMTP login user (empty disables login)")
    smtp_password: str = Field(default="", description="SMTP login password")
    smtp_starttls: bool = Field(default=False, description="Upgrade the SMTP connection with STARTTLS")
    smtp_sender: str = Field(default="", description="From address; defaults to domain-sync@<target domain>")

    # Observability
    log_level: str = Field(default="info", description="Logging level")
    log_json: bool = Field(default=True, description="Emit structured JSON logs")
    observability: ObservabilityCollectorConfig = Field(default_factory=ObservabilityCollectorConfig)
    metrics_textfile: Path | None = Field(
        default=None,
        description="Write Prometheus metrics to this file after the run (node-exporter textfile collector)",
    )

    @field_validator("target_domain", mode="before")
    @classmethod
    def _normalize_target_domain(cls, value: Any) -> Any:
        if value is None:
            return ""
        if isinstance(value, str):
            return value.strip().lower()
        return value

    @field_validator("url_scheme", mode="before")
    @classmethod
    def _normalize_scheme(cls, value: Any) -> Any:
        if value is None:
            return ""
        if isinstance(value, str):
            return value.strip().lower()
        return value

    @field_validator("admin_email", mode="before")
    @classmethod
    def _strip_admin_email(cls, value: Any) -> Any:
        if value is None:
            return ""
        if isinstance(value, str):
            return value.strip()
        return value

    @field_validator("notify", mode="before")
    @classmethod
    def _coerce_notify(cls, value: Any) -> Any:
        if value is None:
            return False
        if not isinstance(value, str):
            return value
        stripped = value.strip()
        if stripped.lower() in _TRUTHY_VALUES:
            return True
        if stripped.lower() in _FALSY_VALUES:
            return False
        if stripped.startswith("{"):
            try:
                return json.loads(stripped)
            except ValueError:
                return stripped
        return stripped

    def notifications_enabled(self) -> bool:
        return bool(self.notify)

    def get_smtp_sender(self) -> str:
        return self.smtp_sender or f"domain-sync@{self.target_domain or 'localhost'}"
