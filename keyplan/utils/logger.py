"""
Centralized logging for Keyplan.

Provides:
- Rotated application log under ~/.keyplan/logs
- Separate audit log for directory changes
- Sensitive data redaction on every record
- Console output only when verbose

Modules log through ``from loguru import logger``; this module only
configures the sinks.
"""
import json
import os
import sys
from pathlib import Path
from typing import Any, Optional

from loguru import logger

from keyplan.utils.security import redact_sensitive_info


def use_emoji_logs() -> bool:
    """
    Check if emoji prefixes should be used in log messages.

    Returns True unless KEYPLAN_LOG_EMOJI is set to "0" or "false".
    """
    value = os.environ.get("KEYPLAN_LOG_EMOJI", "1").lower()
    return value not in ("0", "false", "no", "off")


# Mapping of emoji prefixes to ASCII alternatives
_EMOJI_TO_ASCII = {
    "🔄": "[RETRY]",
    "⚠️": "[WARN]",
    "✅": "[OK]",
    "❌": "[ERROR]",
    "🔐": "[AUTH]",
    "📋": "[PLAN]",
}


def log_prefix(emoji: str) -> str:
    """
    Return the appropriate log prefix based on KEYPLAN_LOG_EMOJI.

    Args:
        emoji: The emoji to use when emoji logs are enabled.

    Returns:
        The emoji if enabled, otherwise the ASCII equivalent
        (or empty string if no mapping exists).
    """
    if use_emoji_logs():
        return emoji
    return _EMOJI_TO_ASCII.get(emoji, "")


def _is_audit(record) -> bool:
    return bool(record["extra"].get("audit"))


def setup_logger(verbose: bool = False, config: Optional[Any] = None) -> None:
    """
    Configure loguru sinks.

    Rules:
    1. FILE: Always log to <log_dir>/app.log (rotated).
    2. AUDIT: Audit events also go to <log_dir>/audit.log.
    3. CONSOLE: Only if verbose or enabled in config; the UI owns stderr otherwise.

    Args:
        verbose: Enable console logging at DEBUG
        config: Optional LoggingConfig override (for testing)
    """
    logger.remove()

    if config is None:
        from keyplan.config.models import LoggingConfig
        config = LoggingConfig()

    log_dir = Path(config.log_dir).expanduser()
    log_dir.mkdir(parents=True, exist_ok=True)

    def format_record(record):
        """Plain or JSON file format."""
        if config.json_logs:
            log_entry = {
                "timestamp": record["time"].isoformat(),
                "level": record["level"].name,
                "message": record["message"],
                "module": record["name"],
                "function": record["function"],
                "line": record["line"],
            }
            # Braces would be taken as format fields by loguru
            return json.dumps(log_entry).replace("{", "{{").replace("}", "}}") + "\n"
        return "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}\n"

    logger.add(
        log_dir / config.app_log_name,
        rotation=f"{config.max_size_mb} MB",
        retention=f"{config.retention_days} days",
        level=config.file_level.upper(),
        format=format_record,
        compression="gz",
        enqueue=True,
    )

    logger.add(
        log_dir / config.audit_log_name,
        rotation=f"{config.max_size_mb} MB",
        retention=f"{config.retention_days} days",
        level="INFO",
        format="{time:YYYY-MM-DD HH:mm:ss} | {message}\n",
        filter=_is_audit,
        enqueue=True,
    )

    if verbose or config.console_enabled:
        console_format = (
            "<green>{time:HH:mm:ss}</green> | "
            "<level>{level: <8}</level> | "
            "<cyan>{name}</cyan>:<cyan>{line}</cyan> - "
            "<level>{message}</level>"
        )
        logger.add(
            sys.stderr,
            format=console_format,
            level="DEBUG" if verbose else config.console_level.upper(),
            colorize=True,
        )

    def redaction_filter(record):
        """Redact sensitive info from all logs."""
        try:
            record["message"] = redact_sensitive_info(record["message"])
        except Exception:
            record["message"] = "[REDACTED]"

    logger.configure(patcher=redaction_filter)
