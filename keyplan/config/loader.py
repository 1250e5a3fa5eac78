"""
Keyplan Config - Configuration loading.

Priority:
1. Environment variables (KEYPLAN_*)
2. Config file (~/.keyplan/config.yaml or --config)
3. Defaults

The OAuth2 client secret may also come from the system keyring.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml
from loguru import logger
from pydantic import ValidationError

from keyplan.config.models import Config
from keyplan.core.exceptions import ConfigurationError, MissingSettingError
from keyplan.secrets.store import CLIENT_SECRET_NAME, SecretStore

CONFIG_FILE = Path.home() / ".keyplan" / "config.yaml"

# Environment variable -> (section, key)
ENV_MAPPINGS: dict[str, tuple[str, str]] = {
    "KEYPLAN_ISSUER": ("auth", "issuer"),
    "KEYPLAN_CLIENT_ID": ("auth", "client_id"),
    "KEYPLAN_CLIENT_SECRET": ("auth", "client_secret"),
    "KEYPLAN_VAULT_RECOVERY_RECORD": ("auth", "vault_recovery_record_uuid"),
    "KEYPLAN_HTTP_TIMEOUT": ("http", "timeout"),
    "KEYPLAN_VERIFY_SSL": ("http", "verify_ssl"),
    "KEYPLAN_LOG_DIR": ("logging", "log_dir"),
    "KEYPLAN_LOG_LEVEL": ("logging", "console_level"),
    "KEYPLAN_LOG_FILE_LEVEL": ("logging", "file_level"),
    "KEYPLAN_LOG_JSON": ("logging", "json_logs"),
}


def load_config(
    path: Path | None = None,
    environ: Mapping[str, str] | None = None,
    secrets: SecretStore | None = None,
) -> Config:
    """
    Load configuration from file, environment and keyring.

    Args:
        path: Config file; defaults to ~/.keyplan/config.yaml
        environ: Environment to read overrides from (defaults to os.environ)
        secrets: Secret store consulted for the client secret

    Returns:
        Validated configuration

    Raises:
        ConfigurationError: If the file cannot be parsed or values are invalid
    """
    path = path or CONFIG_FILE
    environ = os.environ if environ is None else environ
    data = _read_file(path)

    for env_var, (section, key) in ENV_MAPPINGS.items():
        value = environ.get(env_var)
        if value is not None:
            if not isinstance(data.get(section), dict):
                data[section] = {}
            data[section][key] = value

    try:
        config = Config.model_validate(data)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}", {"path": str(path)}) from e

    if not config.auth.client_secret:
        store = secrets or SecretStore()
        config.auth.client_secret = store.get(CLIENT_SECRET_NAME)

    return config


def require_auth_settings(config: Config) -> None:
    """
    Check the settings needed to log in are present.

    Raises:
        MissingSettingError: For the first missing setting
    """
    if not config.auth.issuer:
        raise MissingSettingError("auth.issuer (KEYPLAN_ISSUER)")
    if not config.auth.client_id:
        raise MissingSettingError("auth.client_id (KEYPLAN_CLIENT_ID)")


def _read_file(path: Path) -> dict[str, Any]:
    if not path.exists():
        logger.debug(f"No config file at {path}, using defaults")
        return {}
    try:
        with open(path) as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigurationError(f"Unable to read config file {path}: {e}", {"path": str(path)}) from e
    if not isinstance(data, dict):
        raise ConfigurationError(f"Config file {path} must contain a mapping", {"path": str(path)})
    return data
