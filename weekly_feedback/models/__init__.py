from .submission import SubmissionFields, SubmissionView, MemberStatus, WeeklyStatus
from .report import (
    ReportAnalysis,
    ReportResult,
    RiskAlert,
    Recognition,
    TrendIndicator,
    TeamOverview,
    MemberSummary,
)

__all__ = [
    "SubmissionFields",
    "SubmissionView",
    "MemberStatus",
    "WeeklyStatus",
    "ReportAnalysis",
    "ReportResult",
    "RiskAlert",
    "Recognition",
    "TrendIndicator",
    "TeamOverview",
    "MemberSummary",
]
