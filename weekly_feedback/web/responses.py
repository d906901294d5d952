"""
Response envelope and exception handlers.

Every response is {"success": true, "data": ...} or
{"success": false, "error": {"code", "message", "details"?}}.
"""

import logging
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from ..database.models import AuditLogDB, EmailLogDB, WorkspaceDB, WorkspaceMemberDB, WorkspaceSettingsDB
from ..exceptions import FeedbackError
from ..utils.datetime_utils import to_aware_utc

logger = logging.getLogger(__name__)

HTTP_ERROR_CODES = {
    400: "INVALID_REQUEST",
    401: "INVALID_TOKEN",
    403: "NOT_AUTHORIZED",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    409: "CONFLICT",
}


def ok(data: Any = None, status_code: int = 200) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": True, "data": data})


def error_response(
    status_code: int,
    code: str,
    message: str,
    details: Optional[Dict[str, Any]] = None,
) -> JSONResponse:
    error = {"code": code, "message": message}
    if details:
        error["details"] = details
    return JSONResponse(status_code=status_code, content={"success": False, "error": error})


def _iso(dt) -> Optional[str]:
    value = to_aware_utc(dt)
    return value.isoformat() if value else None


# ==================== SERIALIZERS ====================

def workspace_to_dict(workspace: WorkspaceDB, member_count: Optional[int] = None) -> Dict[str, Any]:
    result = {
        "id": workspace.id,
        "name": workspace.display_name,
        "manager_email": workspace.manager_email,
        "manager_name": workspace.manager_name,
        "allowed_domains": list(workspace.allowed_domains or []),
        "status": workspace.status,
        "created_at": _iso(workspace.created_at),
        "updated_at": _iso(workspace.updated_at),
    }
    if member_count is not None:
        result["member_count"] = member_count
    return result


def member_to_dict(member: WorkspaceMemberDB) -> Dict[str, Any]:
    return {
        "id": member.id,
        "workspace_id": member.workspace_id,
        "email": member.email,
        "name": member.name,
        "first_name": member.first_name,
        "role": member.role,
        "is_active": member.is_active,
        "created_at": _iso(member.created_at),
        "updated_at": _iso(member.updated_at),
    }


def settings_to_dict(row: WorkspaceSettingsDB) -> Dict[str, Any]:
    return {
        "workspace_id": row.workspace_id,
        "weekly_prompt_enabled": row.weekly_prompt_enabled,
        "weekly_reminder_enabled": row.weekly_reminder_enabled,
        "prompt_day": row.prompt_day,
        "prompt_time": row.prompt_time,
        "reminder_day": row.reminder_day,
        "reminder_time": row.reminder_time,
        "email_from_name": row.email_from_name,
        "updated_at": _iso(row.updated_at),
    }


def email_log_to_dict(entry: EmailLogDB) -> Dict[str, Any]:
    return {
        "id": entry.id,
        "recipient_email": entry.recipient_email,
        "recipient_name": entry.recipient_name,
        "email_type": entry.email_type,
        "subject": entry.subject,
        "body_preview": entry.body_preview,
        "status": entry.status,
        "message_id": entry.message_id,
        "error_message": entry.error_message,
        "sent_at": _iso(entry.sent_at),
    }


def audit_log_to_dict(entry: AuditLogDB) -> Dict[str, Any]:
    return {
        "id": entry.id,
        "action": entry.action,
        "user_id": entry.user_id,
        "entity_type": entry.entity_type,
        "entity_id": entry.entity_id,
        "details": entry.details or {},
        "level": entry.level,
        "timestamp": _iso(entry.timestamp),
    }


# ==================== HANDLERS ====================

def _is_email_error(error) -> bool:
    return any(isinstance(part, str) and "email" in part for part in error.get("loc", ()))


def _validation_code(errors) -> str:
    if any(e.get("type") == "missing" for e in errors):
        return "MISSING_FIELDS"
    if any(_is_email_error(e) for e in errors):
        return "INVALID_EMAIL"
    return "INVALID_REQUEST"


async def feedback_error_handler(request: Request, exc: FeedbackError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.code} {exc.message}")
    else:
        logger.info(f"{request.method} {request.url.path} -> {exc.status_code} {exc.code}")
    return error_response(exc.status_code, exc.code, exc.message, exc.details)


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    fields = {
        ".".join(str(part) for part in e.get("loc", ()) if part != "body"): e.get("msg", "")
        for e in errors
    }
    code = _validation_code(errors)
    message = "Missing required fields" if code == "MISSING_FIELDS" else "Invalid request"
    return error_response(400, code, message, {"fields": fields})


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    code = HTTP_ERROR_CODES.get(exc.status_code, "INTERNAL_ERROR" if exc.status_code >= 500 else "ERROR")
    return error_response(exc.status_code, code, str(exc.detail))


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Global exception handler."""
    logger.error(f"Unhandled exception on {request.method} {request.url.path}: {exc}", exc_info=True)
    return error_response(500, "INTERNAL_ERROR", "Internal server error")


def install_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(FeedbackError, feedback_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
