"""
Workspace settings repository.

Each workspace has exactly one settings row, created with the workspace.
Rows missing for older workspaces are created on first read.
"""

import logging
from typing import Optional, Dict, Any
from datetime import datetime

from sqlalchemy import select, update

from ..models import WorkspaceSettingsDB
from .base import BaseRepository
from ...utils.datetime_utils import get_local_now

logger = logging.getLogger(__name__)


class SettingsRepository(BaseRepository):
    """Repository for per-workspace notification settings."""

    async def get_or_create(self, workspace_id: str, now: Optional[datetime] = None) -> WorkspaceSettingsDB:
        async with self.db.session() as session:
            result = await session.execute(
                select(WorkspaceSettingsDB).where(WorkspaceSettingsDB.workspace_id == workspace_id)
            )
            row = result.scalar_one_or_none()
            if row is not None:
                return row

            now = now or get_local_now()
            stmt = self.insert(WorkspaceSettingsDB).values(
                workspace_id=workspace_id,
                created_at=now,
                updated_at=now,
            ).on_conflict_do_nothing(index_elements=["workspace_id"])
            await session.execute(stmt)

            result = await session.execute(
                select(WorkspaceSettingsDB).where(WorkspaceSettingsDB.workspace_id == workspace_id)
            )
            logger.info(f"Created default settings for workspace {workspace_id}")
            return result.scalar_one()

    async def update(
        self,
        workspace_id: str,
        updates: Dict[str, Any],
        now: Optional[datetime] = None,
    ) -> WorkspaceSettingsDB:
        now = now or get_local_now()
        await self.get_or_create(workspace_id, now=now)

        async with self.db.session() as session:
            updates = dict(updates)
            updates["updated_at"] = now
            await session.execute(
                update(WorkspaceSettingsDB)
                .where(WorkspaceSettingsDB.workspace_id == workspace_id)
                .values(**updates)
            )
            result = await session.execute(
                select(WorkspaceSettingsDB)
                .where(WorkspaceSettingsDB.workspace_id == workspace_id)
                .execution_options(populate_existing=True)
            )
            return result.scalar_one()


_settings_repository: Optional[SettingsRepository] = None


def get_settings_repository() -> SettingsRepository:
    global _settings_repository
    if _settings_repository is None:
        _settings_repository = SettingsRepository()
    return _settings_repository
