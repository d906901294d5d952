"""
Services for business logic.
"""

from .tenancy import TenantRegistry, WorkspaceAccess
from .submissions import SubmissionStore, Identity
from .reports import ReportGenerator
from .notifications import NotificationScheduler, BatchResult

__all__ = [
    "TenantRegistry",
    "WorkspaceAccess",
    "SubmissionStore",
    "Identity",
    "ReportGenerator",
    "NotificationScheduler",
    "BatchResult",
]
