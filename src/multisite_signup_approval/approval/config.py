"""Configuration for the site request workflow.

Configuration is loaded from:
- environment variables
- and a local `.env` file (if present)

The only required value is `NETWORK_DOMAIN`: every requested site name is
turned into a subdomain of it.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ApprovalSettings(BaseSettings):
    """Settings for the approval workflow and its front ends.

    Environment variables:
    - NETWORK_DOMAIN        (required)
    - NETWORK_ADMIN_EMAIL   (optional)
    - LOG_LEVEL             (optional)
    - APPROVAL_STATE_PATH   (optional)

    Notes:
        Pydantic-settings supports overriding the env file in tests via:
        `ApprovalSettings(_env_file=path_to_env)`.
    """

    network_domain: str = Field(
        default="",
        validation_alias="NETWORK_DOMAIN",
        description="Primary domain of the network; sites are created as subdomains of it",
    )
    network_admin_email: str = Field(
        default="",
        validation_alias="NETWORK_ADMIN_EMAIL",
        description="Address notified about new site requests (empty disables the email)",
    )
    site_url_scheme: Literal["http", "https"] = Field(
        default="https",
        validation_alias="SITE_URL_SCHEME",
        description="Scheme used for site URLs sent to approved requesters",
    )

    log_level: str = Field(
        default="INFO",
        validation_alias="LOG_LEVEL",
        description="Root logging level",
    )

    approval_state_path: Path = Field(
        default=Path("approval_state"),
        validation_alias="APPROVAL_STATE_PATH",
        description="Directory where site requests (and local identities/sites) are persisted",
    )
    claim_ttl_seconds: float = Field(
        default=300.0,
        gt=0,
        validation_alias="APPROVAL_CLAIM_TTL_SECONDS",
        description=(
            "How long an in-flight approval may hold a request before the claim is "
            "considered abandoned (e.g. the process died while provisioning)."
        ),
    )

    backend: Literal["local", "network"] = Field(
        default="local",
        validation_alias="APPROVAL_BACKEND",
        description=(
            "Where identities and sites live. 'local' keeps them in JSON files next to the "
            "request state; 'network' talks to a network-management REST API."
        ),
    )
    network_api_url: str = Field(
        default="",
        validation_alias="NETWORK_API_URL",
        description="Base URL of the network-management API (backend=network)",
    )
    network_api_token: str = Field(
        default="",
        validation_alias="NETWORK_API_TOKEN",
        description="Bearer token for the network-management API (backend=network)",
    )

    notifier: Literal["log", "smtp"] = Field(
        default="log",
        validation_alias="APPROVAL_NOTIFIER",
        description="How emails are delivered: 'log' only records them, 'smtp' sends them",
    )
    smtp_host: str = Field(default="", validation_alias="SMTP_HOST")
    smtp_port: int = Field(default=465, validation_alias="SMTP_PORT", ge=1, le=65535)
    smtp_user: str = Field(default="", validation_alias="SMTP_USER")
    smtp_password: str = Field(default="", validation_alias="SMTP_PASSWORD")
    smtp_from: str = Field(
        default="",
        validation_alias="SMTP_FROM",
        description="Sender address; falls back to SMTP_USER",
    )
    smtp_use_ssl: bool = Field(
        default=True,
        validation_alias="SMTP_USE_SSL",
        description="Use implicit TLS (SMTP_SSL). When false, STARTTLS is attempted.",
    )

    # REST adapter. Admin routes are disabled until a token is configured.
    admin_token: str = Field(default="", validation_alias="APPROVAL_ADMIN_TOKEN")
    cors_origins: str = Field(
        default="http://localhost:5173,http://127.0.0.1:5173",
        validation_alias="APPROVAL_CORS_ORIGINS",
        description="Comma-separated list of allowed CORS origins.",
    )

    model_config = SettingsConfigDict(
        env_prefix="",
        env_file=".env",
        extra="ignore",
    )

    @model_validator(mode="after")
    def _require_network_domain(self) -> ApprovalSettings:
        if not self.network_domain.strip():
            raise ValueError("NETWORK_DOMAIN is required")
        if self.backend == "network" and not self.network_api_url.strip():
            raise ValueError("NETWORK_API_URL is required when APPROVAL_BACKEND=network")
        return self

    @property
    def requests_state_file(self) -> Path:
        """Path where site request records are persisted."""

        return self.approval_state_path / "requests.json"

    @property
    def identities_state_file(self) -> Path:
        """Path where local identities are persisted (backend=local)."""

        return self.approval_state_path / "identities.json"

    @property
    def sites_state_file(self) -> Path:
        """Path where locally provisioned sites are persisted (backend=local)."""

        return self.approval_state_path / "sites.json"

    def parsed_cors_origins(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]
