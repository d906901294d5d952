"""
Audit log repository.

Stores registry mutations (workspace, member and settings changes) with
who made them and a small JSON payload of what changed.
"""

import logging
from typing import Optional, List, Dict, Any
from datetime import datetime

from sqlalchemy import select

from ..models import AuditLogDB
from .base import BaseRepository

logger = logging.getLogger(__name__)


class AuditRepository(BaseRepository):
    """Repository for audit log operations."""

    async def create(
        self,
        action: str,
        user_id: Optional[str] = None,
        workspace_id: Optional[str] = None,
        entity_type: Optional[str] = None,
        entity_id: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        level: str = "info",
        timestamp: Optional[datetime] = None,
    ) -> AuditLogDB:
        async with self.db.session() as session:
            entry = AuditLogDB(
                action=action,
                user_id=user_id,
                workspace_id=workspace_id,
                entity_type=entity_type,
                entity_id=entity_id,
                details=details or {},
                level=level,
            )
            if timestamp is not None:
                entry.timestamp = timestamp
            session.add(entry)
            await session.flush()
            return entry

    async def list_for_workspace(self, workspace_id: str, limit: int = 100) -> List[AuditLogDB]:
        """Most recent audit entries for a workspace."""
        async with self.db.session() as session:
            result = await session.execute(
                select(AuditLogDB)
                .where(AuditLogDB.workspace_id == workspace_id)
                .order_by(AuditLogDB.timestamp.desc(), AuditLogDB.id.desc())
                .limit(limit)
            )
            return list(result.scalars().all())


_audit_repository: Optional[AuditRepository] = None


def get_audit_repository() -> AuditRepository:
    global _audit_repository
    if _audit_repository is None:
        _audit_repository = AuditRepository()
    return _audit_repository
