"""
Keyplan Config - Configuration models.

Pydantic models for type-safe configuration.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field

DEFAULT_SCOPES = [
    "openid",
    "profile",
    "email",
    "manage_account",
    "provisioning",
    "access_vault",
    "group_admin",
    "global_admin",
]


class AuthenticationConfig(BaseModel):
    """OAuth2 client used for the device authorization flow."""

    issuer: str = Field(default="", description="Base URL of the KeyHub instance")
    client_id: str = Field(default="", description="OAuth2 client id")
    client_secret: str | None = Field(default=None, description="OAuth2 client secret")
    scopes: list[str] = Field(default_factory=lambda: list(DEFAULT_SCOPES), description="Requested scopes")
    vault_recovery_record_uuid: str | None = Field(
        default=None, description="Vault record holding the vault recovery key"
    )


class HttpConfig(BaseModel):
    """HTTP client settings."""

    timeout: float = Field(default=30.0, gt=0, le=600, description="Request timeout in seconds")
    verify_ssl: bool = Field(default=True, description="Verify TLS certificates")
    device_flow_timeout: int = Field(
        default=600, ge=30, le=3600, description="Max seconds to wait for a device login"
    )


class LoggingConfig(BaseModel):
    """Logging settings."""

    log_dir: Path = Field(default=Path.home() / ".keyplan" / "logs", description="Log directory")
    app_log_name: str = Field(default="app.log", description="Application log filename")
    audit_log_name: str = Field(default="audit.log", description="Audit log filename")
    file_level: Literal["trace", "debug", "info", "warning", "error"] = Field(
        default="debug", description="File log level"
    )
    console_level: Literal["trace", "debug", "info", "warning", "error"] = Field(
        default="warning", description="Console log level"
    )
    console_enabled: bool = Field(default=False, description="Log to stderr without --verbose")
    json_logs: bool = Field(default=False, description="JSON formatted file logs")
    max_size_mb: int = Field(default=10, ge=1, le=100, description="Max log file size in MB")
    retention_days: int = Field(default=7, ge=1, le=90, description="Log retention in days")


class Config(BaseModel):
    """Complete Keyplan configuration."""

    auth: AuthenticationConfig = Field(default_factory=AuthenticationConfig)
    http: HttpConfig = Field(default_factory=HttpConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
