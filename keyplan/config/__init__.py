"""
Keyplan Config - Configuration management.
"""

from keyplan.config.loader import CONFIG_FILE, load_config, require_auth_settings
from keyplan.config.models import (
    DEFAULT_SCOPES,
    AuthenticationConfig,
    Config,
    HttpConfig,
    LoggingConfig,
)

__all__ = [
    "AuthenticationConfig",
    "CONFIG_FILE",
    "Config",
    "DEFAULT_SCOPES",
    "HttpConfig",
    "LoggingConfig",
    "load_config",
    "require_auth_settings",
]
