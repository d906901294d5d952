"""
Report repository.

One report per (workspace, week, year); regenerating replaces it in place.
"""

import logging
from typing import Optional, List, Dict, Any
from datetime import datetime

from sqlalchemy import select, func

from ..models import ReportDB, new_id
from .base import BaseRepository
from ...utils.datetime_utils import Period, get_local_now

logger = logging.getLogger(__name__)


class ReportRepository(BaseRepository):
    """Repository for generated report operations."""

    async def upsert(
        self,
        workspace_id: str,
        period: Period,
        content: str,
        analysis: Optional[Dict[str, Any]] = None,
        generated_by: Optional[str] = None,
        report_format: str = "markdown",
        used_fallback: bool = False,
        submission_count: int = 0,
        now: Optional[datetime] = None,
    ) -> ReportDB:
        async with self.db.session() as session:
            stmt = self.insert(ReportDB).values(
                id=new_id(),
                workspace_id=workspace_id,
                week_number=period.week,
                year=period.year,
                content=content,
                format=report_format,
                analysis=analysis,
                used_fallback=used_fallback,
                submission_count=submission_count,
                generated_at=now or get_local_now(),
                generated_by=generated_by,
            )
            stmt = stmt.on_conflict_do_update(
                index_elements=["workspace_id", "week_number", "year"],
                set_={
                    "content": stmt.excluded.content,
                    "format": stmt.excluded.format,
                    "analysis": stmt.excluded.analysis,
                    "used_fallback": stmt.excluded.used_fallback,
                    "submission_count": stmt.excluded.submission_count,
                    "generated_at": stmt.excluded.generated_at,
                    "generated_by": stmt.excluded.generated_by,
                },
            )
            await session.execute(stmt)

            result = await session.execute(
                select(ReportDB)
                .where(
                    ReportDB.workspace_id == workspace_id,
                    ReportDB.week_number == period.week,
                    ReportDB.year == period.year,
                )
                .execution_options(populate_existing=True)
            )
            report = result.scalar_one()
            logger.info(f"Saved report {report.id} for workspace {workspace_id} ({period})")
            return report

    async def get(self, workspace_id: str, period: Period) -> Optional[ReportDB]:
        async with self.db.session() as session:
            result = await session.execute(
                select(ReportDB).where(
                    ReportDB.workspace_id == workspace_id,
                    ReportDB.week_number == period.week,
                    ReportDB.year == period.year,
                )
            )
            return result.scalar_one_or_none()

    async def list_for_workspace(self, workspace_id: str, limit: int = 52) -> List[ReportDB]:
        """Reports newest period first."""
        async with self.db.session() as session:
            result = await session.execute(
                select(ReportDB)
                .where(ReportDB.workspace_id == workspace_id)
                .order_by(ReportDB.year.desc(), ReportDB.week_number.desc())
                .limit(limit)
            )
            return list(result.scalars().all())

    async def get_stats(self, workspace_id: Optional[str] = None) -> Dict[str, int]:
        async with self.db.session() as session:
            query = select(func.count(ReportDB.id))
            if workspace_id:
                query = query.where(ReportDB.workspace_id == workspace_id)
            result = await session.execute(query)
            return {"total": result.scalar() or 0}


_report_repository: Optional[ReportRepository] = None


def get_report_repository() -> ReportRepository:
    global _report_repository
    if _report_repository is None:
        _report_repository = ReportRepository()
    return _report_repository
