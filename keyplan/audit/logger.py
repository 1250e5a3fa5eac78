"""
Keyplan Audit - Logger implementation.

Records every planned, executed and skipped directory change. Events go
through loguru bound with ``audit=True`` so the audit sink configured in
``setup_logger`` picks them up next to the normal application log.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, Any

from loguru import logger

if TYPE_CHECKING:
    from keyplan.action.base import Action


class AuditEventType(str, Enum):
    """Types of audit events."""

    PLAN_COLLECTED = "plan_collected"
    PLAN_CONFIRMED = "plan_confirmed"
    PLAN_DECLINED = "plan_declined"
    ACTION_EXECUTED = "action_executed"
    ACTION_FAILED = "action_failed"
    ACTION_SKIPPED = "action_skipped"
    PRINCIPAL_AUTHENTICATED = "principal_authenticated"


@dataclass
class AuditEvent:
    """An audit event record.

    Attributes:
        event_type: Type of the event.
        action: Description of the directory change.
        user: Principal performing the change, if known.
        details: Additional event details.
        success: Whether the change succeeded.
        timestamp: When the event occurred.
        event_id: Unique event identifier.
    """

    event_type: AuditEventType
    action: str
    user: str | None = None
    details: dict[str, Any] = field(default_factory=dict)
    success: bool = True
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    event_id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for structured sinks."""
        return {
            "event_id": self.event_id,
            "event_type": self.event_type.value,
            "action": self.action,
            "user": self.user,
            "details": self.details,
            "success": self.success,
            "timestamp": self.timestamp.isoformat(),
        }

    def to_log_line(self) -> str:
        """Format as a log line."""
        status = "OK" if self.success else "FAIL"
        user_str = f" by {self.user}" if self.user else ""
        return f"[{self.event_type.value}] {status}: {self.action}{user_str}"


class AuditLogger:
    """Audit logger for directory changes.

    Example:
        >>> audit = AuditLogger()
        >>> audit.log_plan(plan)
        >>> audit.log_executed(action)
    """

    def __init__(self, enabled: bool = True) -> None:
        self.enabled = enabled
        self.events: list[AuditEvent] = []

    def log(self, event: AuditEvent) -> None:
        """Log an audit event."""
        if not self.enabled:
            return

        self.events.append(event)
        level = "INFO" if event.success else "WARNING"
        logger.bind(audit=True, audit_event=event.to_dict()).log(
            level, f"AUDIT: {event.to_log_line()}"
        )

    def log_plan(self, plan: list[Action]) -> None:
        """Log the collected plan, one event per step."""
        self.log(AuditEvent(
            event_type=AuditEventType.PLAN_COLLECTED,
            action=f"{len(plan)} steps",
            details={"steps": [str(a) for a in plan]},
        ))

    def log_confirmation(self, confirmed: bool, steps: int) -> None:
        """Log the operator's go/no-go decision."""
        self.log(AuditEvent(
            event_type=AuditEventType.PLAN_CONFIRMED if confirmed else AuditEventType.PLAN_DECLINED,
            action=f"{steps} steps",
            success=confirmed,
        ))

    def log_executed(self, action: Action, attempts: int = 1) -> None:
        """Log a successfully applied change."""
        self.log(AuditEvent(
            event_type=AuditEventType.ACTION_EXECUTED,
            action=str(action),
            details={"key": action.key, "attempts": attempts},
        ))

    def log_failed(self, action: Action, error: Exception) -> None:
        """Log a failed attempt."""
        self.log(AuditEvent(
            event_type=AuditEventType.ACTION_FAILED,
            action=str(action),
            details={"key": action.key, "error": str(error)},
            success=False,
        ))

    def log_skipped(self, action: Action) -> None:
        """Log a change the operator chose to skip."""
        self.log(AuditEvent(
            event_type=AuditEventType.ACTION_SKIPPED,
            action=str(action),
            details={"key": action.key},
            success=False,
        ))

    def log_principal(self, username: str, role: str) -> None:
        """Log a successful login."""
        self.log(AuditEvent(
            event_type=AuditEventType.PRINCIPAL_AUTHENTICATED,
            action=role,
            user=username,
        ))
