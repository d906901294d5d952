"""
Workspace member repository.

Members are unique per (workspace, email). Deactivation is a soft delete
through is_active so submission history stays intact.
"""

import logging
from typing import Optional, List, Dict, Any
from datetime import datetime

from sqlalchemy import select, update, func
from sqlalchemy.exc import IntegrityError

from ..models import WorkspaceMemberDB
from ..exceptions import DatabaseConstraintError, EntityNotFoundError
from .base import BaseRepository
from ...utils.datetime_utils import get_local_now

logger = logging.getLogger(__name__)


class MemberRepository(BaseRepository):
    """Repository for workspace member operations."""

    async def create(
        self,
        workspace_id: str,
        email: str,
        name: str,
        first_name: Optional[str] = None,
        role: str = "member",
        now: Optional[datetime] = None,
    ) -> WorkspaceMemberDB:
        try:
            async with self.db.session() as session:
                now = now or get_local_now()
                member = WorkspaceMemberDB(
                    workspace_id=workspace_id,
                    email=email,
                    name=name,
                    first_name=first_name,
                    role=role,
                    is_active=True,
                    created_at=now,
                    updated_at=now,
                )
                session.add(member)
                await session.flush()

                logger.info(f"Created member {email} in workspace {workspace_id}")
                return member

        except IntegrityError as e:
            logger.error(f"Constraint violation creating member {email}: {e}")
            raise DatabaseConstraintError(
                f"Member {email} already exists in workspace {workspace_id}",
                constraint="workspace_members.workspace_id_email",
            )

    async def get_by_id(self, workspace_id: str, member_id: str) -> Optional[WorkspaceMemberDB]:
        """Get a member, scoped to its workspace."""
        async with self.db.session() as session:
            result = await session.execute(
                select(WorkspaceMemberDB).where(
                    WorkspaceMemberDB.id == member_id,
                    WorkspaceMemberDB.workspace_id == workspace_id,
                )
            )
            return result.scalar_one_or_none()

    async def get_by_email(self, workspace_id: str, email: str) -> Optional[WorkspaceMemberDB]:
        """Get a member by email regardless of active flag (case-insensitive)."""
        async with self.db.session() as session:
            result = await session.execute(
                select(WorkspaceMemberDB).where(
                    WorkspaceMemberDB.workspace_id == workspace_id,
                    func.lower(WorkspaceMemberDB.email) == email.lower(),
                )
            )
            return result.scalar_one_or_none()

    async def list_for_workspace(
        self,
        workspace_id: str,
        include_inactive: bool = False,
    ) -> List[WorkspaceMemberDB]:
        async with self.db.session() as session:
            query = (
                select(WorkspaceMemberDB)
                .where(WorkspaceMemberDB.workspace_id == workspace_id)
                .order_by(WorkspaceMemberDB.name, WorkspaceMemberDB.email)
            )
            if not include_inactive:
                query = query.where(WorkspaceMemberDB.is_active.is_(True))
            result = await session.execute(query)
            return list(result.scalars().all())

    async def count_active(self, workspace_id: str) -> int:
        async with self.db.session() as session:
            result = await session.execute(
                select(func.count(WorkspaceMemberDB.id)).where(
                    WorkspaceMemberDB.workspace_id == workspace_id,
                    WorkspaceMemberDB.is_active.is_(True),
                )
            )
            return result.scalar() or 0

    async def get_stats(self, workspace_id: Optional[str] = None) -> Dict[str, int]:
        """Member counts, for one workspace or across all of them."""
        async with self.db.session() as session:
            query = select(WorkspaceMemberDB.is_active, func.count(WorkspaceMemberDB.id))
            if workspace_id:
                query = query.where(WorkspaceMemberDB.workspace_id == workspace_id)
            result = await session.execute(query.group_by(WorkspaceMemberDB.is_active))
            counts = {bool(active): count for active, count in result.all()}

        active = counts.get(True, 0)
        inactive = counts.get(False, 0)
        return {"total": active + inactive, "active": active, "inactive": inactive}

    async def update(
        self,
        workspace_id: str,
        member_id: str,
        updates: Dict[str, Any],
        now: Optional[datetime] = None,
    ) -> WorkspaceMemberDB:
        """Apply field updates and bump updated_at."""
        async with self.db.session() as session:
            updates = dict(updates)
            updates["updated_at"] = now or get_local_now()

            result = await session.execute(
                update(WorkspaceMemberDB)
                .where(
                    WorkspaceMemberDB.id == member_id,
                    WorkspaceMemberDB.workspace_id == workspace_id,
                )
                .values(**updates)
            )
            if result.rowcount == 0:
                raise EntityNotFoundError(f"Member {member_id} not found in workspace {workspace_id}")

            refreshed = await session.execute(
                select(WorkspaceMemberDB)
                .where(WorkspaceMemberDB.id == member_id)
                .execution_options(populate_existing=True)
            )
            return refreshed.scalar_one()


_member_repository: Optional[MemberRepository] = None


def get_member_repository() -> MemberRepository:
    global _member_repository
    if _member_repository is None:
        _member_repository = MemberRepository()
    return _member_repository
