"""
Repository classes for database operations.
Each repository handles CRUD and queries for its entity type.
"""

from .audit import AuditRepository, get_audit_repository
from .workspaces import WorkspaceRepository, get_workspace_repository
from .members import MemberRepository, get_member_repository
from .submissions import SubmissionRepository, get_submission_repository
from .reports import ReportRepository, get_report_repository
from .email_logs import EmailLogRepository, get_email_log_repository
from .settings import SettingsRepository, get_settings_repository

__all__ = [
    "AuditRepository",
    "get_audit_repository",
    "WorkspaceRepository",
    "get_workspace_repository",
    "MemberRepository",
    "get_member_repository",
    "SubmissionRepository",
    "get_submission_repository",
    "ReportRepository",
    "get_report_repository",
    "EmailLogRepository",
    "get_email_log_repository",
    "SettingsRepository",
    "get_settings_repository",
]
