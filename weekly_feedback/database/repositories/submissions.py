"""
Submission repository.

The period-scoped fact table:
- One row per (workspace, member, week, year), written with a single
  INSERT ... ON CONFLICT DO UPDATE so concurrent resubmissions converge
- Period reads enriched with member name and email, newest first
- Weekly status: active members outer-joined against a period
- Legacy reconciliation: the pre-workspace `submissions` table is matched to
  workspace members by email, either unioned at read time (opt-in) or copied
  forward by an insert-if-absent backfill
"""

import logging
from typing import Optional, List, Dict, Any, Set, Tuple
from datetime import datetime

from sqlalchemy import select, func, and_

from ..models import (
    SubmissionDB,
    WorkspaceMemberDB,
    LegacySubmissionDB,
    LegacyTeamMemberDB,
    new_id,
)
from .base import BaseRepository
from ...models.submission import (
    ANSWER_FIELDS,
    GENERATED_FIELDS,
    MemberStatus,
    SubmissionView,
    WeeklyStatus,
)
from ...utils.datetime_utils import Period, get_local_now, is_valid_period

logger = logging.getLogger(__name__)

UNIQUE_KEY = ["workspace_id", "workspace_member_id", "week_number", "year"]
STORED_FIELDS = ANSWER_FIELDS + GENERATED_FIELDS


def _view(row, member: WorkspaceMemberDB, source: str = "workspace") -> SubmissionView:
    return SubmissionView(
        id=row.id,
        workspace_id=member.workspace_id,
        member_id=member.id,
        member_name=member.name,
        member_email=member.email,
        member_first_name=member.first_name,
        week_number=row.week_number,
        year=row.year,
        submitted_at=row.submitted_at,
        source=source,
        **{name: getattr(row, name) for name in STORED_FIELDS},
    )


class SubmissionRepository(BaseRepository):
    """Repository for weekly submission operations."""

    async def upsert(
        self,
        workspace_id: str,
        member_id: str,
        period: Period,
        fields: Dict[str, Any],
        now: Optional[datetime] = None,
    ) -> SubmissionDB:
        """
        Insert or overwrite the member's row for the period.

        Every stored field is replaced (missing ones become NULL) and
        submitted_at is refreshed. Callers validate the period first; the
        table's CHECK constraints back that up.
        """
        values = {name: fields.get(name) for name in STORED_FIELDS}

        async with self.db.session() as session:
            stmt = self.insert(SubmissionDB).values(
                id=new_id(),
                workspace_id=workspace_id,
                workspace_member_id=member_id,
                week_number=period.week,
                year=period.year,
                submitted_at=now or get_local_now(),
                **values,
            )
            overwrite = {name: getattr(stmt.excluded, name) for name in STORED_FIELDS}
            overwrite["submitted_at"] = stmt.excluded.submitted_at
            stmt = stmt.on_conflict_do_update(index_elements=UNIQUE_KEY, set_=overwrite)
            await session.execute(stmt)

            result = await session.execute(
                select(SubmissionDB)
                .where(
                    SubmissionDB.workspace_id == workspace_id,
                    SubmissionDB.workspace_member_id == member_id,
                    SubmissionDB.week_number == period.week,
                    SubmissionDB.year == period.year,
                )
                .execution_options(populate_existing=True)
            )
            submission = result.scalar_one()

            logger.info(
                f"Upserted submission {submission.id} for member {member_id} "
                f"in workspace {workspace_id} ({period})"
            )
            return submission

    async def get_for_member(
        self,
        workspace_id: str,
        member_id: str,
        period: Period,
        include_legacy: bool = False,
    ) -> Optional[SubmissionView]:
        """One member's submission for a period, or None."""
        async with self.db.session() as session:
            result = await session.execute(
                select(SubmissionDB, WorkspaceMemberDB)
                .join(WorkspaceMemberDB, WorkspaceMemberDB.id == SubmissionDB.workspace_member_id)
                .where(
                    SubmissionDB.workspace_id == workspace_id,
                    SubmissionDB.workspace_member_id == member_id,
                    SubmissionDB.week_number == period.week,
                    SubmissionDB.year == period.year,
                )
            )
            row = result.first()
            if row:
                return _view(row[0], row[1])

            if not include_legacy:
                return None

            legacy = await session.execute(
                self._legacy_query(workspace_id, period)
                .where(WorkspaceMemberDB.id == member_id)
            )
            row = legacy.first()
            return _view(row[0], row[1], source="legacy") if row else None

    async def get_for_period(
        self,
        workspace_id: str,
        period: Period,
        include_legacy: bool = False,
    ) -> List[SubmissionView]:
        """
        All submissions for a period, newest first.

        With include_legacy, legacy rows are added only for workspace members
        who have no workspace row for the period; workspace data always wins.
        """
        async with self.db.session() as session:
            result = await session.execute(
                select(SubmissionDB, WorkspaceMemberDB)
                .join(WorkspaceMemberDB, WorkspaceMemberDB.id == SubmissionDB.workspace_member_id)
                .where(
                    SubmissionDB.workspace_id == workspace_id,
                    SubmissionDB.week_number == period.week,
                    SubmissionDB.year == period.year,
                )
            )
            views = [_view(submission, member) for submission, member in result.all()]

            if include_legacy:
                legacy = await session.execute(
                    self._legacy_query(workspace_id, period)
                    .where(WorkspaceMemberDB.id.not_in(self._submitted_member_ids(workspace_id, period)))
                )
                views.extend(_view(row, member, source="legacy") for row, member in legacy.all())

        views.sort(key=lambda v: (v.submitted_at is not None, v.submitted_at, v.id), reverse=True)
        return views

    async def get_weekly_status(
        self,
        workspace_id: str,
        period: Period,
        include_legacy: bool = False,
    ) -> WeeklyStatus:
        """Outer-join active members against the period's submissions."""
        async with self.db.session() as session:
            result = await session.execute(
                select(WorkspaceMemberDB, SubmissionDB.submitted_at)
                .outerjoin(
                    SubmissionDB,
                    and_(
                        SubmissionDB.workspace_member_id == WorkspaceMemberDB.id,
                        SubmissionDB.workspace_id == workspace_id,
                        SubmissionDB.week_number == period.week,
                        SubmissionDB.year == period.year,
                    ),
                )
                .where(
                    WorkspaceMemberDB.workspace_id == workspace_id,
                    WorkspaceMemberDB.is_active.is_(True),
                )
                .order_by(WorkspaceMemberDB.name, WorkspaceMemberDB.email)
            )
            rows = result.all()

            legacy_submitted: Dict[str, Any] = {}
            if include_legacy:
                legacy = await session.execute(self._legacy_query(workspace_id, period))
                legacy_submitted = {member.id: row.submitted_at for row, member in legacy.all()}

        members = []
        for member, submitted_at in rows:
            if submitted_at is None and member.id in legacy_submitted:
                submitted_at = legacy_submitted[member.id]
            members.append(MemberStatus(
                member_id=member.id,
                email=member.email,
                name=member.name,
                first_name=member.first_name,
                role=member.role,
                has_submitted=submitted_at is not None,
                submitted_at=submitted_at,
            ))

        submitted = sum(1 for m in members if m.has_submitted)
        return WeeklyStatus(
            week_number=period.week,
            year=period.year,
            total=len(members),
            submitted=submitted,
            pending=len(members) - submitted,
            members=members,
        )

    async def get_stats(self, period: Period, workspace_id: Optional[str] = None) -> Dict[str, int]:
        """Submission counts overall and for the given period."""
        async with self.db.session() as session:
            total_query = select(func.count(SubmissionDB.id))
            period_query = select(func.count(SubmissionDB.id)).where(
                SubmissionDB.week_number == period.week,
                SubmissionDB.year == period.year,
            )
            if workspace_id:
                total_query = total_query.where(SubmissionDB.workspace_id == workspace_id)
                period_query = period_query.where(SubmissionDB.workspace_id == workspace_id)

            total = (await session.execute(total_query)).scalar() or 0
            this_week = (await session.execute(period_query)).scalar() or 0

        return {"total": total, "this_week": this_week}

    # ==================== LEGACY ====================

    @staticmethod
    def _submitted_member_ids(workspace_id: str, period: Period):
        return (
            select(SubmissionDB.workspace_member_id)
            .where(
                SubmissionDB.workspace_id == workspace_id,
                SubmissionDB.week_number == period.week,
                SubmissionDB.year == period.year,
            )
        )

    @staticmethod
    def _legacy_query(workspace_id: str, period: Optional[Period] = None):
        """Legacy submissions joined to workspace members by case-insensitive email."""
        query = (
            select(LegacySubmissionDB, WorkspaceMemberDB)
            .join(LegacyTeamMemberDB, LegacyTeamMemberDB.id == LegacySubmissionDB.team_member_id)
            .join(
                WorkspaceMemberDB,
                func.lower(WorkspaceMemberDB.email) == func.lower(LegacyTeamMemberDB.email),
            )
            .where(WorkspaceMemberDB.workspace_id == workspace_id)
        )
        if period is not None:
            query = query.where(
                LegacySubmissionDB.week_number == period.week,
                LegacySubmissionDB.year == period.year,
            )
        return query

    async def backfill_from_legacy(self, workspace_id: str, now: Optional[datetime] = None) -> int:
        """
        Copy legacy submissions for this workspace's members into the
        workspace table.

        Insert-only: rows whose (workspace, member, week, year) key already
        exists are left untouched, so re-running inserts nothing new.

        Returns:
            Number of rows inserted
        """
        now = now or get_local_now()
        inserted = 0
        async with self.db.session() as session:
            existing_rows = await session.execute(
                select(
                    SubmissionDB.workspace_member_id,
                    SubmissionDB.week_number,
                    SubmissionDB.year,
                ).where(SubmissionDB.workspace_id == workspace_id)
            )
            existing: Set[Tuple[str, int, int]] = {tuple(row) for row in existing_rows.all()}

            candidates = await session.execute(self._legacy_query(workspace_id))
            for legacy, member in candidates.all():
                key = (member.id, legacy.week_number, legacy.year)
                if key in existing:
                    continue
                if not is_valid_period(legacy.week_number, legacy.year):
                    logger.warning(
                        f"Skipping legacy submission {legacy.id}: invalid period "
                        f"{legacy.week_number}/{legacy.year}"
                    )
                    continue

                stmt = self.insert(SubmissionDB).values(
                    id=new_id(),
                    workspace_id=workspace_id,
                    workspace_member_id=member.id,
                    week_number=legacy.week_number,
                    year=legacy.year,
                    submitted_at=legacy.submitted_at or now,
                    **{name: getattr(legacy, name) for name in STORED_FIELDS},
                ).on_conflict_do_nothing(index_elements=UNIQUE_KEY)
                await session.execute(stmt)

                existing.add(key)
                inserted += 1

        logger.info(f"Legacy backfill for workspace {workspace_id}: {inserted} rows inserted")
        return inserted


_submission_repository: Optional[SubmissionRepository] = None


def get_submission_repository() -> SubmissionRepository:
    global _submission_repository
    if _submission_repository is None:
        _submission_repository = SubmissionRepository()
    return _submission_repository
