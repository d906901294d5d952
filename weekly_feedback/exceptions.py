"""
Typed errors raised by the service layer.

Every error carries:
- message: human-readable text
- code: machine-readable code returned in the API envelope
- details: optional extra context
- status_code: HTTP status used by the web layer
"""

from typing import Any, Dict, Optional


class FeedbackError(Exception):
    """Base class for expected, typed failures."""

    status_code: int = 500
    default_code: str = "INTERNAL_ERROR"

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.code = code or self.default_code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Error part of the response envelope."""
        result = {"code": self.code, "message": self.message}
        if self.details:
            result["details"] = self.details
        return result


# ==================== 400 ====================

class ValidationFailed(FeedbackError):
    status_code = 400
    default_code = "INVALID_REQUEST"


class MissingFields(ValidationFailed):
    default_code = "MISSING_FIELDS"

    def __init__(self, fields, message: Optional[str] = None):
        fields = list(fields)
        super().__init__(
            message or f"Missing required fields: {', '.join(fields)}",
            details={"fields": fields},
        )


class InvalidPeriod(ValidationFailed):
    default_code = "INVALID_PERIOD"

    def __init__(self, week: Any, year: Any):
        super().__init__(
            f"Invalid period: week {week} of {year}",
            details={"week": week, "year": year},
        )


class DomainNotAllowed(ValidationFailed):
    default_code = "INVALID_DOMAIN"

    def __init__(self, email: str):
        super().__init__(
            f"Email domain not allowed: {email}",
            details={"email": email},
        )


class NoSubmissions(ValidationFailed):
    default_code = "NO_SUBMISSIONS"

    def __init__(self, week: int, year: int):
        super().__init__(
            f"No submissions found for week {week}, {year}",
            details={"week": week, "year": year},
        )


# ==================== 401 / 403 ====================

class AuthenticationFailed(FeedbackError):
    status_code = 401
    default_code = "INVALID_TOKEN"


class NotAuthorized(FeedbackError):
    status_code = 403
    default_code = "NOT_AUTHORIZED"


# ==================== 404 ====================

class NotFound(FeedbackError):
    status_code = 404
    default_code = "NOT_FOUND"


class WorkspaceNotFound(NotFound):
    default_code = "WORKSPACE_NOT_FOUND"

    def __init__(self, workspace_id: Any):
        super().__init__(f"Workspace not found: {workspace_id}", details={"workspace_id": workspace_id})


class MemberNotFound(NotFound):
    default_code = "MEMBER_NOT_FOUND"

    def __init__(self, member: Any):
        super().__init__(f"Team member not found: {member}", details={"member": member})


class ReportNotFound(NotFound):
    default_code = "REPORT_NOT_FOUND"

    def __init__(self, week: int, year: int):
        super().__init__(
            f"No report for week {week}, {year}",
            details={"week": week, "year": year},
        )


# ==================== 409 ====================

class Conflict(FeedbackError):
    status_code = 409
    default_code = "CONFLICT"


class MemberExists(Conflict):
    default_code = "MEMBER_EXISTS"

    def __init__(self, email: str):
        super().__init__(f"Team member already exists: {email}", details={"email": email})


# ==================== 5xx ====================

class SendFailed(FeedbackError):
    status_code = 502
    default_code = "SEND_FAILED"


class EmailNotConfigured(FeedbackError):
    status_code = 503
    default_code = "EMAIL_NOT_CONFIGURED"

    def __init__(self, message: str = "Email sending is not configured"):
        super().__init__(message)
