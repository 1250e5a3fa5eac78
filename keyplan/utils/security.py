"""
Security utilities for Keyplan.
"""
import re
from typing import List, Optional

# JSON keys whose values never reach a log sink
_SENSITIVE_JSON_KEYS = [
    "access_token", "refresh_token", "id_token", "client_secret", "device_code",
    "privateKey", "password", "secret", "token", "file",
]


def redact_sensitive_info(text: str, extra_secrets: Optional[List[str]] = None) -> Optional[str]:
    """
    Redact sensitive information (tokens, vault keys, secrets) from text for logging.

    Patterns redacted:
    - Authorization headers: Bearer <token>, Basic <credentials>
    - JSON or dict key-value pairs: "privateKey": "...", 'access_token': '...'
    - Form/query parameters: client_secret=..., device_code=...
    - Known secrets provided in extra_secrets

    Args:
        text: Original text with potential sensitive data
        extra_secrets: Optional list of specific secret values to redact

    Returns:
        Text with sensitive values replaced by [REDACTED]
    """
    if not text:
        return text

    redacted = text

    # 1. Known secrets first, longest first to avoid partial matches
    if extra_secrets:
        sorted_secrets = sorted([s for s in extra_secrets if s], key=len, reverse=True)
        for secret in sorted_secrets:
            if len(secret) < 3:
                continue
            redacted = redacted.replace(secret, "[REDACTED]")

    # 2. Authorization headers
    redacted = re.sub(r"(\b(?:Bearer|Basic)\s+)[A-Za-z0-9\-._~+/=]+", r"\1[REDACTED]", redacted)

    # 3. JSON / repr style pairs, either quote style
    for key in _SENSITIVE_JSON_KEYS:
        redacted = re.sub(
            rf"""(['"]{key}['"]\s*:\s*)(['"])(.*?)(\2)""",
            r"\1\2[REDACTED]\4",
            redacted,
        )

    # 4. Form and query parameters
    for key in ("client_secret", "device_code", "access_token", "refresh_token", "code"):
        redacted = re.sub(rf"(\b{key}=)[^&\s]+", r"\1[REDACTED]", redacted)

    return redacted
