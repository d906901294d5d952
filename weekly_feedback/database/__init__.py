"""
Database module for Weekly Feedback.

Handles:
- Workspaces, members and their settings
- Weekly submissions and generated reports
- Email send logs and audit logs
- Read-only access to the legacy single-team tables
"""

from .connection import (
    get_database,
    set_database,
    Database,
    init_database,
    close_database,
)
from .models import (
    Base,
    WorkspaceDB,
    WorkspaceMemberDB,
    SubmissionDB,
    ReportDB,
    WorkspaceSettingsDB,
    EmailLogDB,
    AuditLogDB,
    LegacyTeamMemberDB,
    LegacySubmissionDB,
)

__all__ = [
    "get_database",
    "set_database",
    "Database",
    "init_database",
    "close_database",
    "Base",
    "WorkspaceDB",
    "WorkspaceMemberDB",
    "SubmissionDB",
    "ReportDB",
    "WorkspaceSettingsDB",
    "EmailLogDB",
    "AuditLogDB",
    "LegacyTeamMemberDB",
    "LegacySubmissionDB",
]
