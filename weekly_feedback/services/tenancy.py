"""
Tenant registry.

Owns workspaces and their members:
- Domain-based admission (global allow-list for new workspaces, the
  workspace's own list for members)
- Manager and super-admin designation
- Active/inactive lifecycle (workspaces and members are never hard-deleted)
- Per-workspace notification settings
"""

import logging
from dataclasses import dataclass
from typing import Optional, List, Dict, Any
from datetime import datetime

from ..database.exceptions import DatabaseConstraintError, EntityNotFoundError
from ..database.models import WorkspaceDB, WorkspaceMemberDB, WorkspaceSettingsDB
from ..database.repositories import (
    get_member_repository,
    get_settings_repository,
    get_workspace_repository,
)
from ..exceptions import (
    DomainNotAllowed,
    MemberExists,
    MemberNotFound,
    NotAuthorized,
    ValidationFailed,
    WorkspaceNotFound,
)
from ..runtime import RuntimeConfig
from ..utils.audit_logger import AuditAction, log_audit_event
from ..utils.datetime_utils import get_local_now
from ..utils.validation import (
    VALID_STATUSES,
    is_domain_allowed,
    normalize_domains,
    normalize_email,
    validate_day,
    validate_domain,
    validate_email,
    validate_role,
    validate_time,
)

logger = logging.getLogger(__name__)

MEMBER_FIELDS = ("name", "first_name", "role", "is_active")
WORKSPACE_FIELDS = ("name", "manager_name", "allowed_domains", "status")
SETTINGS_FIELDS = (
    "weekly_prompt_enabled",
    "weekly_reminder_enabled",
    "prompt_day",
    "prompt_time",
    "reminder_day",
    "reminder_time",
    "email_from_name",
)


@dataclass
class WorkspaceAccess:
    """The caller's standing in one workspace."""
    workspace: WorkspaceDB
    email: str
    member: Optional[WorkspaceMemberDB] = None
    is_manager: bool = False
    is_super_admin: bool = False

    @property
    def can_manage(self) -> bool:
        return self.is_manager or self.is_super_admin


class TenantRegistry:
    """Workspace and member lifecycle."""

    def __init__(self, config: RuntimeConfig):
        self.config = config
        self.workspaces = get_workspace_repository()
        self.members = get_member_repository()
        self.settings = get_settings_repository()

    def now(self) -> datetime:
        """Current local time in the configured timezone."""
        return get_local_now(self.config.timezone)

    async def _audit(self, action: AuditAction, **kwargs) -> bool:
        return await log_audit_event(action, timestamp=self.now(), **kwargs)

    # ==================== IDENTITY ====================

    def is_super_admin(self, email: str) -> bool:
        return self.config.is_super_admin(email)

    @staticmethod
    def is_manager(workspace: WorkspaceDB, email: str) -> bool:
        return normalize_email(workspace.manager_email) == normalize_email(email)

    # ==================== WORKSPACES ====================

    async def resolve_or_create_workspace(self, email: str, name: str) -> WorkspaceDB:
        """
        Return the workspace this email manages, creating it on first sign-in.

        Raises:
            DomainNotAllowed: no workspace yet and the domain is not allow-listed
        """
        email = normalize_email(email)
        existing = await self.workspaces.get_by_manager_email(email)
        if existing:
            return existing

        if not self.config.is_domain_allowed(email):
            raise DomainNotAllowed(email)

        try:
            workspace = await self.workspaces.create(
                manager_email=email,
                manager_name=name or email.split("@")[0],
                allowed_domains=list(self.config.allowed_domains),
                now=self.now(),
            )
        except DatabaseConstraintError:
            # Concurrent first sign-in; the other request created it
            workspace = await self.workspaces.get_by_manager_email(email)
            if workspace is None:
                raise
            return workspace

        await self._audit(
            AuditAction.WORKSPACE_CREATE,
            user_id=email,
            workspace_id=workspace.id,
            entity_type="workspace",
            entity_id=workspace.id,
            details={"allowed_domains": workspace.allowed_domains},
        )
        return workspace

    async def list_accessible_workspaces(self, email: str) -> List[WorkspaceDB]:
        """Managed or member-of workspaces; every workspace for a super-admin."""
        if self.is_super_admin(email):
            return await self.workspaces.list_all()
        return await self.workspaces.list_for_email(normalize_email(email))

    async def get_workspace(self, workspace_id: str) -> WorkspaceDB:
        workspace = await self.workspaces.get_by_id(workspace_id)
        if workspace is None:
            raise WorkspaceNotFound(workspace_id)
        return workspace

    async def get_access(
        self,
        workspace_id: str,
        email: str,
        allow_domain_join: bool = False,
    ) -> WorkspaceAccess:
        """
        Resolve the caller's access to a workspace.

        Managers, super-admins and active members have access. With
        allow_domain_join, anyone from one of the workspace's domains does too
        (self-service onboarding on first submission).

        Raises:
            WorkspaceNotFound, NotAuthorized
        """
        email = normalize_email(email)
        workspace = await self.get_workspace(workspace_id)
        member = await self.members.get_by_email(workspace_id, email)

        access = WorkspaceAccess(
            workspace=workspace,
            email=email,
            member=member,
            is_manager=self.is_manager(workspace, email),
            is_super_admin=self.is_super_admin(email),
        )

        if access.can_manage or (member is not None and member.is_active):
            return access
        if allow_domain_join and is_domain_allowed(email, workspace.allowed_domains):
            return access

        raise NotAuthorized("You do not have access to this workspace")

    async def update_workspace(
        self,
        workspace_id: str,
        changes: Dict[str, Any],
        actor: Optional[str] = None,
    ) -> WorkspaceDB:
        """Update name, manager name, allowed domains or status."""
        updates = {k: v for k, v in changes.items() if k in WORKSPACE_FIELDS and v is not None}
        if not updates:
            raise ValidationFailed("No valid fields to update", code="EMPTY_UPDATE")

        if "allowed_domains" in updates:
            domains = normalize_domains(updates["allowed_domains"])
            invalid = [d for d in domains if not validate_domain(d)]
            if invalid or not domains:
                raise ValidationFailed(
                    "Allowed domains must be a non-empty list of valid domains",
                    code="INVALID_DOMAIN",
                    details={"invalid": invalid},
                )
            updates["allowed_domains"] = domains

        if "status" in updates and updates["status"] not in VALID_STATUSES:
            raise ValidationFailed(f"Invalid status: {updates['status']}", code="INVALID_STATUS")

        try:
            workspace = await self.workspaces.update(workspace_id, updates, now=self.now())
        except EntityNotFoundError:
            raise WorkspaceNotFound(workspace_id)

        await self._audit(
            AuditAction.WORKSPACE_UPDATE,
            user_id=actor,
            workspace_id=workspace_id,
            entity_type="workspace",
            entity_id=workspace_id,
            details={"fields": sorted(updates.keys())},
        )
        return workspace

    # ==================== MEMBERS ====================

    async def list_members(self, workspace_id: str, include_inactive: bool = False) -> List[WorkspaceMemberDB]:
        await self.get_workspace(workspace_id)
        return await self.members.list_for_workspace(workspace_id, include_inactive=include_inactive)

    async def count_active_members(self, workspace_id: str) -> int:
        return await self.members.count_active(workspace_id)

    async def add_member(
        self,
        workspace_id: str,
        email: str,
        name: str,
        role: str = "member",
        first_name: Optional[str] = None,
        actor: Optional[str] = None,
    ) -> WorkspaceMemberDB:
        """
        Explicitly add a member.

        Raises:
            ValidationFailed: malformed email or role
            DomainNotAllowed: email domain not in the workspace's allow-list
            MemberExists: an active member already has this email
        """
        email = normalize_email(email)
        if not validate_email(email):
            raise ValidationFailed(f"Invalid email: {email}", code="INVALID_EMAIL")
        if not validate_role(role):
            raise ValidationFailed(f"Invalid role: {role}", code="INVALID_ROLE")

        workspace = await self.get_workspace(workspace_id)
        if not is_domain_allowed(email, workspace.allowed_domains):
            raise DomainNotAllowed(email)

        existing = await self.members.get_by_email(workspace_id, email)
        if existing is not None and existing.is_active:
            raise MemberExists(email)

        if existing is not None:
            member = await self.members.update(workspace_id, existing.id, {
                "name": name,
                "first_name": first_name,
                "role": role,
                "is_active": True,
            }, now=self.now())
            action = AuditAction.MEMBER_REACTIVATE
        else:
            try:
                member = await self.members.create(
                    workspace_id=workspace_id,
                    email=email,
                    name=name,
                    first_name=first_name,
                    role=role,
                    now=self.now(),
                )
            except DatabaseConstraintError:
                raise MemberExists(email)
            action = AuditAction.MEMBER_CREATE

        await self._audit(
            action,
            user_id=actor,
            workspace_id=workspace_id,
            entity_type="member",
            entity_id=member.id,
            details={"email": email, "role": role},
        )
        return member

    async def find_or_create_member(
        self,
        workspace_id: str,
        email: str,
        name: str,
        first_name: Optional[str] = None,
    ) -> WorkspaceMemberDB:
        """
        Self-service onboarding at submission time.

        Reactivates a soft-deleted member and refreshes a changed name instead
        of failing.
        """
        email = normalize_email(email)
        existing = await self.members.get_by_email(workspace_id, email)

        if existing is not None:
            updates = {}
            if not existing.is_active:
                updates["is_active"] = True
            if name and name != existing.name:
                updates["name"] = name
            if first_name and first_name != existing.first_name:
                updates["first_name"] = first_name
            if not updates:
                return existing

            member = await self.members.update(workspace_id, existing.id, updates, now=self.now())
            if "is_active" in updates:
                await self._audit(
                    AuditAction.MEMBER_REACTIVATE,
                    user_id=email,
                    workspace_id=workspace_id,
                    entity_type="member",
                    entity_id=member.id,
                )
            return member

        try:
            member = await self.members.create(
                workspace_id=workspace_id,
                email=email,
                name=name or email.split("@")[0],
                first_name=first_name,
                now=self.now(),
            )
        except DatabaseConstraintError:
            member = await self.members.get_by_email(workspace_id, email)
            if member is None:
                raise
            return member

        await self._audit(
            AuditAction.MEMBER_CREATE,
            user_id=email,
            workspace_id=workspace_id,
            entity_type="member",
            entity_id=member.id,
            details={"email": email, "self_service": True},
        )
        return member

    async def update_member(
        self,
        workspace_id: str,
        member_id: str,
        changes: Dict[str, Any],
        actor: Optional[str] = None,
    ) -> WorkspaceMemberDB:
        updates = {k: v for k, v in changes.items() if k in MEMBER_FIELDS and v is not None}
        if not updates:
            raise ValidationFailed("No valid fields to update", code="EMPTY_UPDATE")
        if "role" in updates and not validate_role(updates["role"]):
            raise ValidationFailed(f"Invalid role: {updates['role']}", code="INVALID_ROLE")

        try:
            member = await self.members.update(workspace_id, member_id, updates, now=self.now())
        except EntityNotFoundError:
            raise MemberNotFound(member_id)

        await self._audit(
            AuditAction.MEMBER_UPDATE,
            user_id=actor,
            workspace_id=workspace_id,
            entity_type="member",
            entity_id=member_id,
            details={"fields": sorted(updates.keys())},
        )
        return member

    async def deactivate_member(
        self,
        workspace_id: str,
        member_id: str,
        actor: Optional[str] = None,
    ) -> WorkspaceMemberDB:
        """Soft delete; submission history is kept."""
        try:
            member = await self.members.update(workspace_id, member_id, {"is_active": False}, now=self.now())
        except EntityNotFoundError:
            raise MemberNotFound(member_id)

        await self._audit(
            AuditAction.MEMBER_DEACTIVATE,
            user_id=actor,
            workspace_id=workspace_id,
            entity_type="member",
            entity_id=member_id,
            details={"email": member.email},
        )
        return member

    # ==================== SETTINGS ====================

    async def get_settings(self, workspace_id: str) -> WorkspaceSettingsDB:
        await self.get_workspace(workspace_id)
        return await self.settings.get_or_create(workspace_id, now=self.now())

    async def update_settings(
        self,
        workspace_id: str,
        changes: Dict[str, Any],
        actor: Optional[str] = None,
    ) -> WorkspaceSettingsDB:
        """
        Update cadence and sender name.

        Raises:
            ValidationFailed: INVALID_DAY, INVALID_TIME or EMPTY_UPDATE
        """
        updates = {k: v for k, v in changes.items() if k in SETTINGS_FIELDS and v is not None}
        if not updates:
            raise ValidationFailed("No valid fields to update", code="EMPTY_UPDATE")

        for field in ("prompt_day", "reminder_day"):
            if field in updates:
                if not validate_day(updates[field]):
                    raise ValidationFailed(f"Invalid day: {updates[field]}", code="INVALID_DAY")
                updates[field] = updates[field].strip().lower()

        for field in ("prompt_time", "reminder_time"):
            if field in updates and not validate_time(updates[field]):
                raise ValidationFailed(
                    f"Invalid time (expected HH:MM): {updates[field]}", code="INVALID_TIME"
                )

        await self.get_workspace(workspace_id)
        row = await self.settings.update(workspace_id, updates, now=self.now())

        await self._audit(
            AuditAction.SETTINGS_UPDATE,
            user_id=actor,
            workspace_id=workspace_id,
            entity_type="settings",
            entity_id=workspace_id,
            details={"fields": sorted(updates.keys())},
        )
        return row
