"""
Keyplan Audit - Audit trail of directory changes.
"""

from keyplan.audit.logger import AuditEvent, AuditEventType, AuditLogger

__all__ = ["AuditEvent", "AuditEventType", "AuditLogger"]
