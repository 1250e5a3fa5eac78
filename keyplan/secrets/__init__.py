"""
Keyplan Secrets - Keyring backed secret storage.
"""

from keyplan.secrets.store import CLIENT_SECRET_NAME, SERVICE_NAME, SecretStore

__all__ = ["CLIENT_SECRET_NAME", "SERVICE_NAME", "SecretStore"]
