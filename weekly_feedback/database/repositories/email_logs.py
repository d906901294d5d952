"""
Email log repository.

Append-only record of every outbound email attempt with its outcome.
"""

import logging
from typing import Optional, List
from datetime import datetime

from sqlalchemy import select, func

from ..models import EmailLogDB
from .base import BaseRepository
from ...utils.datetime_utils import get_local_now

logger = logging.getLogger(__name__)

BODY_PREVIEW_LENGTH = 100


class EmailLogRepository(BaseRepository):
    """Repository for email send log entries."""

    async def create(
        self,
        workspace_id: str,
        recipient_email: str,
        email_type: str,
        subject: str,
        body: str = "",
        status: str = "sent",
        recipient_name: Optional[str] = None,
        message_id: Optional[str] = None,
        error_message: Optional[str] = None,
        sent_at: Optional[datetime] = None,
    ) -> EmailLogDB:
        async with self.db.session() as session:
            entry = EmailLogDB(
                workspace_id=workspace_id,
                recipient_email=recipient_email,
                recipient_name=recipient_name,
                email_type=email_type,
                subject=subject,
                body_preview=(body or "")[:BODY_PREVIEW_LENGTH],
                status=status,
                message_id=message_id,
                error_message=error_message,
                sent_at=sent_at or get_local_now(),
            )
            session.add(entry)
            await session.flush()
            return entry

    async def list_for_workspace(
        self,
        workspace_id: str,
        status: Optional[str] = None,
        limit: int = 200,
    ) -> List[EmailLogDB]:
        """Most recent log entries first."""
        async with self.db.session() as session:
            query = (
                select(EmailLogDB)
                .where(EmailLogDB.workspace_id == workspace_id)
                .order_by(EmailLogDB.sent_at.desc(), EmailLogDB.id)
                .limit(limit)
            )
            if status:
                query = query.where(EmailLogDB.status == status)
            result = await session.execute(query)
            return list(result.scalars().all())

    async def count_by_status(self, workspace_id: str) -> dict:
        async with self.db.session() as session:
            result = await session.execute(
                select(EmailLogDB.status, func.count(EmailLogDB.id))
                .where(EmailLogDB.workspace_id == workspace_id)
                .group_by(EmailLogDB.status)
            )
            return {status: count for status, count in result.all()}

    async def get_stats(self, since: datetime, workspace_id: Optional[str] = None) -> dict:
        """Total log entries and those sent after `since` (naive local time)."""
        async with self.db.session() as session:
            total_query = select(func.count(EmailLogDB.id))
            recent_query = select(func.count(EmailLogDB.id)).where(EmailLogDB.sent_at > since)
            if workspace_id:
                total_query = total_query.where(EmailLogDB.workspace_id == workspace_id)
                recent_query = recent_query.where(EmailLogDB.workspace_id == workspace_id)

            total = (await session.execute(total_query)).scalar() or 0
            recent = (await session.execute(recent_query)).scalar() or 0

        return {"total": total, "last_24h": recent}


_email_log_repository: Optional[EmailLogRepository] = None


def get_email_log_repository() -> EmailLogRepository:
    global _email_log_repository
    if _email_log_repository is None:
        _email_log_repository = EmailLogRepository()
    return _email_log_repository
