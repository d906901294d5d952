"""
Audit logging for registry mutations.

Tracks workspace creation and updates, member lifecycle changes, settings
changes and legacy backfills. Audit failures are logged and never fail the
operation being audited.
"""

import logging
from typing import Optional, Dict, Any
from datetime import datetime
from enum import Enum

from .datetime_utils import get_local_now

logger = logging.getLogger(__name__)


class AuditAction(str, Enum):
    """Types of auditable actions."""
    # Workspaces
    WORKSPACE_CREATE = "workspace_create"
    WORKSPACE_UPDATE = "workspace_update"
    SETTINGS_UPDATE = "settings_update"

    # Members
    MEMBER_CREATE = "member_create"
    MEMBER_UPDATE = "member_update"
    MEMBER_REACTIVATE = "member_reactivate"
    MEMBER_DEACTIVATE = "member_deactivate"

    # Data operations
    LEGACY_BACKFILL = "legacy_backfill"
    REPORT_GENERATE = "report_generate"

    # Security
    AUTH_FAILURE = "auth_failure"


class AuditLevel(str, Enum):
    """Severity levels for audit events."""
    INFO = "info"
    WARNING = "warning"
    CRITICAL = "critical"


async def log_audit_event(
    action: AuditAction,
    user_id: Optional[str] = None,
    workspace_id: Optional[str] = None,
    entity_type: Optional[str] = None,
    entity_id: Optional[str] = None,
    details: Optional[Dict[str, Any]] = None,
    level: AuditLevel = AuditLevel.INFO,
    timestamp: Optional[datetime] = None,
) -> bool:
    """
    Log an audit event to the database and the system log.

    Call this after the mutating session has committed; it opens its own
    session.

    Args:
        action: Type of action performed
        user_id: Email of the user performing the action
        workspace_id: Workspace the change belongs to
        entity_type: Type of entity affected (workspace, member, settings)
        entity_id: ID of affected entity
        details: Additional context (changed fields, counts)
        level: Severity level
        timestamp: Local time of the change; defaults to now in the server timezone

    Returns:
        True if logged successfully
    """
    try:
        from ..database.repositories import get_audit_repository

        await get_audit_repository().create(
            action=action.value,
            user_id=user_id,
            workspace_id=workspace_id,
            entity_type=entity_type,
            entity_id=entity_id,
            details=details or {},
            level=level.value,
            timestamp=timestamp or get_local_now(),
        )

        log_message = f"AUDIT: {action.value} by {user_id or 'system'}"
        if entity_type and entity_id:
            log_message += f" on {entity_type}:{entity_id}"

        if level == AuditLevel.CRITICAL:
            logger.critical(log_message, extra={"audit": True, "details": details})
        elif level == AuditLevel.WARNING:
            logger.warning(log_message, extra={"audit": True, "details": details})
        else:
            logger.info(log_message, extra={"audit": True, "details": details})

        return True

    except Exception as e:
        # Never fail the operation due to audit logging failure
        logger.error(f"Failed to log audit event: {e}")
        return False
