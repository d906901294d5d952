"""
Workspace repository.

Stores tenant containers:
- Manager identity (unique email)
- Ordered allowed-domain list
- Active/inactive status (workspaces are never hard-deleted)
- The per-workspace settings row, created together with the workspace
"""

import logging
from typing import Optional, List, Dict, Any
from datetime import datetime

from sqlalchemy import select, update, func
from sqlalchemy.exc import IntegrityError

from ..models import WorkspaceDB, WorkspaceMemberDB, WorkspaceSettingsDB
from ..exceptions import DatabaseConstraintError, EntityNotFoundError
from .base import BaseRepository
from ...utils.datetime_utils import get_local_now

logger = logging.getLogger(__name__)


class WorkspaceRepository(BaseRepository):
    """Repository for workspace operations."""

    async def create(
        self,
        manager_email: str,
        manager_name: str,
        allowed_domains: List[str],
        name: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> WorkspaceDB:
        """Create a workspace and its default settings row in one transaction."""
        try:
            async with self.db.session() as session:
                now = now or get_local_now()
                workspace = WorkspaceDB(
                    name=name,
                    manager_email=manager_email,
                    manager_name=manager_name,
                    allowed_domains=list(allowed_domains),
                    status="active",
                    created_at=now,
                    updated_at=now,
                )
                session.add(workspace)
                await session.flush()

                session.add(WorkspaceSettingsDB(
                    workspace_id=workspace.id,
                    created_at=now,
                    updated_at=now,
                ))
                await session.flush()

                logger.info(f"Created workspace {workspace.id} for {manager_email}")
                return workspace

        except IntegrityError as e:
            logger.error(f"Constraint violation creating workspace for {manager_email}: {e}")
            raise DatabaseConstraintError(
                f"Workspace already exists for manager {manager_email}",
                constraint="workspaces.manager_email",
            )

    async def get_by_id(self, workspace_id: str) -> Optional[WorkspaceDB]:
        async with self.db.session() as session:
            result = await session.execute(
                select(WorkspaceDB).where(WorkspaceDB.id == workspace_id)
            )
            return result.scalar_one_or_none()

    async def get_by_manager_email(self, email: str) -> Optional[WorkspaceDB]:
        """Get the workspace managed by an email (case-insensitive)."""
        async with self.db.session() as session:
            result = await session.execute(
                select(WorkspaceDB).where(func.lower(WorkspaceDB.manager_email) == email.lower())
            )
            return result.scalar_one_or_none()

    async def list_all(self, active_only: bool = False) -> List[WorkspaceDB]:
        async with self.db.session() as session:
            query = select(WorkspaceDB).order_by(WorkspaceDB.created_at, WorkspaceDB.id)
            if active_only:
                query = query.where(WorkspaceDB.status == "active")
            result = await session.execute(query)
            return list(result.scalars().all())

    async def list_for_email(self, email: str) -> List[WorkspaceDB]:
        """Workspaces where the email is manager or an active member."""
        email = email.lower()
        async with self.db.session() as session:
            member_of = (
                select(WorkspaceMemberDB.workspace_id)
                .where(
                    func.lower(WorkspaceMemberDB.email) == email,
                    WorkspaceMemberDB.is_active.is_(True),
                )
            )
            result = await session.execute(
                select(WorkspaceDB)
                .where(
                    (func.lower(WorkspaceDB.manager_email) == email)
                    | (WorkspaceDB.id.in_(member_of))
                )
                .order_by(WorkspaceDB.created_at, WorkspaceDB.id)
            )
            return list(result.scalars().all())

    async def update(
        self,
        workspace_id: str,
        updates: Dict[str, Any],
        now: Optional[datetime] = None,
    ) -> WorkspaceDB:
        """Apply field updates and bump updated_at."""
        async with self.db.session() as session:
            updates = dict(updates)
            updates["updated_at"] = now or get_local_now()

            result = await session.execute(
                update(WorkspaceDB)
                .where(WorkspaceDB.id == workspace_id)
                .values(**updates)
            )
            if result.rowcount == 0:
                raise EntityNotFoundError(f"Workspace {workspace_id} not found")

            refreshed = await session.execute(
                select(WorkspaceDB)
                .where(WorkspaceDB.id == workspace_id)
                .execution_options(populate_existing=True)
            )
            return refreshed.scalar_one()

    async def member_counts(self) -> Dict[str, int]:
        """Active member count per workspace id."""
        async with self.db.session() as session:
            result = await session.execute(
                select(WorkspaceMemberDB.workspace_id, func.count(WorkspaceMemberDB.id))
                .where(WorkspaceMemberDB.is_active.is_(True))
                .group_by(WorkspaceMemberDB.workspace_id)
            )
            return {workspace_id: count for workspace_id, count in result.all()}


_workspace_repository: Optional[WorkspaceRepository] = None


def get_workspace_repository() -> WorkspaceRepository:
    global _workspace_repository
    if _workspace_repository is None:
        _workspace_repository = WorkspaceRepository()
    return _workspace_repository
