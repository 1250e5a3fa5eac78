"""
Keyplan Secrets - Secret store implementation.

Uses keyring for secure storage (macOS Keychain, Windows Credential Manager,
Linux Secret Service) with in-memory fallback.
"""

from __future__ import annotations

from dataclasses import dataclass, field

import keyring
from keyring.errors import KeyringError
from loguru import logger

# Service name for keyring
SERVICE_NAME = "keyplan"

# Secret holding the OAuth2 client secret
CLIENT_SECRET_NAME = "client_secret"


@dataclass
class SecretStore:
    """
    Secure secret storage.

    Uses the system keyring if available, otherwise falls back to in-memory storage.
    """

    service: str = SERVICE_NAME
    _keyring_available: bool = field(default=False, init=False)
    _memory_store: dict[str, str] = field(default_factory=dict, init=False)

    def __post_init__(self) -> None:
        """Check keyring availability."""
        self._keyring_available = self._check_keyring()
        if not self._keyring_available:
            logger.warning("⚠️ Keyring unavailable - using in-memory storage (secrets lost on exit)")

    def _check_keyring(self) -> bool:
        """Check if a usable keyring backend is configured."""
        try:
            backend = keyring.get_keyring()
        except KeyringError as e:
            logger.debug(f"Keyring test failed: {e}")
            return False
        # The fail backend has priority 0 and refuses every operation
        return getattr(backend, "priority", 0) > 0

    @property
    def is_secure(self) -> bool:
        """Check if using secure storage (keyring)."""
        return self._keyring_available

    def set(self, name: str, value: str) -> None:
        """
        Store a secret.

        Args:
            name: Secret name.
            value: Secret value.
        """
        if self._keyring_available:
            keyring.set_password(self.service, name, value)
        else:
            self._memory_store[name] = value
        logger.debug(f"🔒 Secret '{name}' stored")

    def get(self, name: str) -> str | None:
        """
        Retrieve a secret.

        Args:
            name: Secret name.

        Returns:
            Secret value or None if not found.
        """
        if self._keyring_available:
            try:
                return keyring.get_password(self.service, name)
            except KeyringError as e:
                logger.debug(f"Failed to read secret '{name}': {e}")
                return None
        return self._memory_store.get(name)

    def remove(self, name: str) -> bool:
        """
        Remove a secret.

        Args:
            name: Secret name.

        Returns:
            True if secret was removed, False if not found.
        """
        if not self._keyring_available:
            return self._memory_store.pop(name, None) is not None
        try:
            keyring.delete_password(self.service, name)
        except KeyringError as e:
            logger.debug(f"Failed to remove secret '{name}': {e}")
            return False
        logger.debug(f"🔒 Secret '{name}' removed")
        return True

    def has(self, name: str) -> bool:
        """Check if a secret exists."""
        return self.get(name) is not None
