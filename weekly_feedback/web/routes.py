"""
HTTP API routes.

All routes live under /api and return the {success, data|error} envelope.
Workspace-scoped routes resolve the caller's access first; mutations that
change the team, settings or reports additionally require the manager (or a
super-admin).
"""

import logging
from datetime import timedelta
from typing import Optional

from fastapi import APIRouter, Depends, Query

from ..ai.analysis import SubmissionInsights
from ..database.repositories import (
    get_audit_repository,
    get_email_log_repository,
    get_member_repository,
    get_report_repository,
    get_submission_repository,
)
from ..exceptions import NotAuthorized, NotFound, SendFailed
from ..integrations.google_identity import VerifiedUser, verify_google_token
from ..models.api_validation import (
    AdminEmailSendRequest,
    BulkEmailRequest,
    EmailSendRequest,
    MemberCreate,
    MemberUpdate,
    ReportGenerateRequest,
    SettingsUpdate,
    SubmissionCreate,
    TokenVerifyRequest,
    WorkspaceUpdate,
)
from ..runtime import RuntimeConfig, get_runtime_config
from ..scheduler.jobs import CYCLES, get_scheduler_manager
from ..services.notifications import NotificationScheduler
from ..services.reports import ReportGenerator
from ..services.submissions import SubmissionStore, validate_period
from ..services.tenancy import TenantRegistry, WorkspaceAccess
from ..utils.datetime_utils import Period, current_period, get_local_now
from .auth import get_current_user, identity_of, require_super_admin
from .responses import (
    audit_log_to_dict,
    email_log_to_dict,
    member_to_dict,
    ok,
    settings_to_dict,
    workspace_to_dict,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")


# ============================================================================
# Dependencies
# ============================================================================

def get_registry(config: RuntimeConfig = Depends(get_runtime_config)) -> TenantRegistry:
    return TenantRegistry(config)


async def get_workspace_access(
    workspace_id: str,
    user: VerifiedUser = Depends(get_current_user),
    registry: TenantRegistry = Depends(get_registry),
) -> WorkspaceAccess:
    return await registry.get_access(workspace_id, user.email)


def require_manager(access: WorkspaceAccess = Depends(get_workspace_access)) -> WorkspaceAccess:
    if not access.can_manage:
        raise NotAuthorized("Only the workspace manager can do this", "NOT_MANAGER")
    return access


def resolve_period(week: Optional[int], year: Optional[int], config: RuntimeConfig) -> Period:
    """Explicit week/year where given, the current period fills whichever is missing."""
    if week is not None and year is not None:
        return validate_period(week, year)
    current = current_period(tz_name=config.timezone)
    return validate_period(
        week if week is not None else current.week,
        year if year is not None else current.year,
    )


# ============================================================================
# Auth
# ============================================================================

@router.post("/auth/verify")
async def auth_verify(
    body: TokenVerifyRequest,
    config: RuntimeConfig = Depends(get_runtime_config),
    registry: TenantRegistry = Depends(get_registry),
):
    """Verify a Google ID token; first sign-in from an allowed domain creates a workspace."""
    user = await verify_google_token(body.token, config)

    workspaces = await registry.list_accessible_workspaces(user.email)
    if not workspaces and config.is_domain_allowed(user.email):
        workspace = await registry.resolve_or_create_workspace(user.email, user.name)
        workspaces = [workspace]
        logger.info(f"Created workspace {workspace.id} for {user.email}")

    is_super_admin = registry.is_super_admin(user.email)
    logger.info(f"Auth verified for {user.email}: {len(workspaces)} workspaces, super_admin={is_super_admin}")

    return ok({
        "user": user.to_dict(),
        "is_super_admin": is_super_admin,
        "workspaces": [workspace_to_dict(w) for w in workspaces],
    })


# ============================================================================
# Workspaces
# ============================================================================

@router.get("/workspaces")
async def list_workspaces(
    user: VerifiedUser = Depends(get_current_user),
    registry: TenantRegistry = Depends(get_registry),
):
    workspaces = await registry.list_accessible_workspaces(user.email)
    return ok({"workspaces": [workspace_to_dict(w) for w in workspaces]})


@router.get("/workspaces/{workspace_id}")
async def get_workspace(
    access: WorkspaceAccess = Depends(get_workspace_access),
    registry: TenantRegistry = Depends(get_registry),
):
    workspace_settings = await registry.get_settings(access.workspace.id)
    return ok({
        "workspace": workspace_to_dict(access.workspace),
        "settings": settings_to_dict(workspace_settings),
        "is_manager": access.is_manager,
        "is_super_admin": access.is_super_admin,
    })


@router.put("/workspaces/{workspace_id}")
async def update_workspace(
    body: WorkspaceUpdate,
    access: WorkspaceAccess = Depends(require_manager),
    registry: TenantRegistry = Depends(get_registry),
):
    workspace = await registry.update_workspace(
        access.workspace.id, body.model_dump(exclude_none=True), actor=access.email
    )
    return ok({"workspace": workspace_to_dict(workspace)})


@router.get("/workspaces/{workspace_id}/status")
async def weekly_status(
    access: WorkspaceAccess = Depends(get_workspace_access),
    config: RuntimeConfig = Depends(get_runtime_config),
    registry: TenantRegistry = Depends(get_registry),
):
    store = SubmissionStore(config, registry=registry)
    status = await store.get_weekly_status(access.workspace.id)
    logger.info(
        f"Status for workspace {access.workspace.id}: {status.submitted}/{status.total} submitted"
    )
    return ok(status.model_dump(mode="json"))


# ============================================================================
# Submissions
# ============================================================================

@router.get("/workspaces/{workspace_id}/submissions")
async def list_submissions(
    week: Optional[int] = Query(None),
    year: Optional[int] = Query(None),
    access: WorkspaceAccess = Depends(get_workspace_access),
    config: RuntimeConfig = Depends(get_runtime_config),
    registry: TenantRegistry = Depends(get_registry),
):
    period = resolve_period(week, year, config)
    store = SubmissionStore(config, registry=registry)
    submissions = await store.get_submissions_for_period(access.workspace.id, period)
    return ok({
        "week_number": period.week,
        "year": period.year,
        "submissions": [s.model_dump(mode="json") for s in submissions],
    })


@router.get("/workspaces/{workspace_id}/submissions/previous")
async def previous_submission(
    workspace_id: str,
    user: VerifiedUser = Depends(get_current_user),
    config: RuntimeConfig = Depends(get_runtime_config),
    registry: TenantRegistry = Depends(get_registry),
):
    """Last week's answers for the caller, used to pre-fill the form."""
    access = await registry.get_access(workspace_id, user.email, allow_domain_join=True)
    if access.member is None:
        return ok({"found": False})

    store = SubmissionStore(config, registry=registry)
    submission = await store.get_previous_submission(workspace_id, access.member.id)
    if submission is None:
        return ok({"found": False})

    return ok({
        "found": True,
        "week_number": submission.week_number,
        "year": submission.year,
        "accomplishments": submission.accomplishments,
        "blockers": submission.blockers,
        "priorities": submission.priorities,
        "shoutouts": submission.shoutouts,
    })


@router.post("/workspaces/{workspace_id}/submissions")
async def submit_feedback(
    workspace_id: str,
    body: SubmissionCreate,
    user: VerifiedUser = Depends(get_current_user),
    config: RuntimeConfig = Depends(get_runtime_config),
    registry: TenantRegistry = Depends(get_registry),
):
    """Create or replace the caller's submission for the current week."""
    access = await registry.get_access(workspace_id, user.email, allow_domain_join=True)
    store = SubmissionStore(config, registry=registry, insights=SubmissionInsights.from_config(config))

    submission = await store.submit(access, identity_of(user), body.model_dump(exclude_none=True))
    return ok({
        "submission": submission.model_dump(mode="json"),
        "week_number": submission.week_number,
        "year": submission.year,
        "ai_question": submission.ai_question,
    }, status_code=201)


# ============================================================================
# Reports
# ============================================================================

@router.post("/workspaces/{workspace_id}/report")
async def generate_report(
    body: Optional[ReportGenerateRequest] = None,
    access: WorkspaceAccess = Depends(require_manager),
    config: RuntimeConfig = Depends(get_runtime_config),
    registry: TenantRegistry = Depends(get_registry),
):
    body = body or ReportGenerateRequest()
    period = resolve_period(body.week, body.year, config)
    generator = ReportGenerator(config, registry=registry)

    report = await generator.generate_report(access.workspace.id, period, generated_by=access.email)
    return ok({"report": report.model_dump(mode="json", by_alias=True)})


@router.get("/workspaces/{workspace_id}/reports")
async def list_reports(
    access: WorkspaceAccess = Depends(get_workspace_access),
    config: RuntimeConfig = Depends(get_runtime_config),
    registry: TenantRegistry = Depends(get_registry),
):
    generator = ReportGenerator(config, registry=registry)
    reports = await generator.list_reports(access.workspace.id)
    return ok({"reports": [r.model_dump(mode="json", by_alias=True) for r in reports]})


@router.get("/workspaces/{workspace_id}/reports/{week}/{year}")
async def get_report(
    week: int,
    year: int,
    access: WorkspaceAccess = Depends(get_workspace_access),
    config: RuntimeConfig = Depends(get_runtime_config),
    registry: TenantRegistry = Depends(get_registry),
):
    period = validate_period(week, year)
    generator = ReportGenerator(config, registry=registry)
    report = await generator.get_report(access.workspace.id, period)
    return ok({"report": report.model_dump(mode="json", by_alias=True)})


# ============================================================================
# Settings
# ============================================================================

@router.get("/workspaces/{workspace_id}/settings")
async def get_settings(
    access: WorkspaceAccess = Depends(get_workspace_access),
    registry: TenantRegistry = Depends(get_registry),
):
    row = await registry.get_settings(access.workspace.id)
    return ok({"settings": settings_to_dict(row)})


@router.put("/workspaces/{workspace_id}/settings")
async def update_settings(
    body: SettingsUpdate,
    access: WorkspaceAccess = Depends(require_manager),
    registry: TenantRegistry = Depends(get_registry),
):
    row = await registry.update_settings(
        access.workspace.id, body.model_dump(exclude_none=True), actor=access.email
    )
    return ok({"settings": settings_to_dict(row)})


# ============================================================================
# Team
# ============================================================================

@router.get("/workspaces/{workspace_id}/team")
async def list_team(
    include_inactive: bool = Query(False, alias="includeInactive"),
    access: WorkspaceAccess = Depends(get_workspace_access),
    registry: TenantRegistry = Depends(get_registry),
):
    members = await registry.list_members(access.workspace.id, include_inactive=include_inactive)
    return ok({"members": [member_to_dict(m) for m in members]})


@router.post("/workspaces/{workspace_id}/team")
async def add_team_member(
    body: MemberCreate,
    access: WorkspaceAccess = Depends(require_manager),
    registry: TenantRegistry = Depends(get_registry),
):
    member = await registry.add_member(
        access.workspace.id,
        email=body.email,
        name=body.name,
        role=body.role,
        first_name=body.first_name,
        actor=access.email,
    )
    return ok({"member": member_to_dict(member)}, status_code=201)


@router.put("/workspaces/{workspace_id}/team/{member_id}")
async def update_team_member(
    member_id: str,
    body: MemberUpdate,
    access: WorkspaceAccess = Depends(require_manager),
    registry: TenantRegistry = Depends(get_registry),
):
    member = await registry.update_member(
        access.workspace.id, member_id, body.model_dump(exclude_none=True), actor=access.email
    )
    return ok({"member": member_to_dict(member)})


@router.delete("/workspaces/{workspace_id}/team/{member_id}")
async def remove_team_member(
    member_id: str,
    access: WorkspaceAccess = Depends(require_manager),
    registry: TenantRegistry = Depends(get_registry),
):
    member = await registry.deactivate_member(access.workspace.id, member_id, actor=access.email)
    return ok({"member": member_to_dict(member)})


# ============================================================================
# Email
# ============================================================================

async def _send_single(
    notifier: NotificationScheduler,
    access: WorkspaceAccess,
    body: EmailSendRequest,
):
    result = await notifier.send_chase(
        access.workspace, body.email, body.type, subject=body.subject, body=body.body
    )
    if not result.success:
        raise SendFailed(f"Failed to send email to {body.email}", details={"error": result.error})
    return ok({"sent": True, "email": body.email, "message_id": result.message_id})


@router.post("/workspaces/{workspace_id}/email/send")
async def send_email(
    body: EmailSendRequest,
    access: WorkspaceAccess = Depends(require_manager),
    config: RuntimeConfig = Depends(get_runtime_config),
    registry: TenantRegistry = Depends(get_registry),
):
    notifier = NotificationScheduler(config, registry=registry)
    return await _send_single(notifier, access, body)


@router.post("/workspaces/{workspace_id}/email/bulk")
async def send_bulk_email(
    body: BulkEmailRequest,
    access: WorkspaceAccess = Depends(require_manager),
    config: RuntimeConfig = Depends(get_runtime_config),
    registry: TenantRegistry = Depends(get_registry),
):
    notifier = NotificationScheduler(config, registry=registry)
    batch = await notifier.send_bulk_chase(
        access.workspace, body.emails, subject=body.subject, body=body.body
    )
    return ok(batch.to_dict())


@router.post("/workspaces/{workspace_id}/email/{cycle}")
async def run_email_cycle(
    cycle: str,
    access: WorkspaceAccess = Depends(require_manager),
    config: RuntimeConfig = Depends(get_runtime_config),
    registry: TenantRegistry = Depends(get_registry),
):
    """Send this week's prompt or reminder for one workspace now."""
    notifier = NotificationScheduler(config, registry=registry)
    if cycle == "prompt":
        batch = await notifier.send_prompt(access.workspace)
    elif cycle == "reminder":
        batch = await notifier.send_reminder(access.workspace)
    else:
        raise NotFound(f"Unknown email cycle: {cycle}")
    return ok(batch.to_dict())


@router.get("/workspaces/{workspace_id}/email/logs")
async def list_email_logs(
    status: Optional[str] = Query(None),
    limit: int = Query(100, ge=1, le=500),
    access: WorkspaceAccess = Depends(require_manager),
):
    repo = get_email_log_repository()
    entries = await repo.list_for_workspace(access.workspace.id, status=status, limit=limit)
    counts = await repo.count_by_status(access.workspace.id)
    return ok({"logs": [email_log_to_dict(e) for e in entries], "counts": counts})


@router.get("/workspaces/{workspace_id}/audit")
async def list_audit_log(
    limit: int = Query(100, ge=1, le=500),
    access: WorkspaceAccess = Depends(require_manager),
):
    """Registry changes for the workspace, newest first."""
    entries = await get_audit_repository().list_for_workspace(access.workspace.id, limit=limit)
    return ok({"entries": [audit_log_to_dict(e) for e in entries]})


# ============================================================================
# Super admin
# ============================================================================

@router.get("/super/workspaces")
async def super_list_workspaces(
    user: VerifiedUser = Depends(require_super_admin),
    registry: TenantRegistry = Depends(get_registry),
):
    workspaces = await registry.workspaces.list_all()
    counts = await registry.workspaces.member_counts()
    return ok({"workspaces": [workspace_to_dict(w, counts.get(w.id, 0)) for w in workspaces]})


@router.get("/super/submissions")
async def super_list_submissions(
    week: Optional[int] = Query(None),
    year: Optional[int] = Query(None),
    user: VerifiedUser = Depends(require_super_admin),
    config: RuntimeConfig = Depends(get_runtime_config),
    registry: TenantRegistry = Depends(get_registry),
):
    """Every workspace's submissions for one period, tagged with the workspace."""
    period = resolve_period(week, year, config)
    store = SubmissionStore(config, registry=registry)

    submissions = []
    for workspace in await registry.workspaces.list_all():
        for view in await store.get_submissions_for_period(workspace.id, period):
            entry = view.model_dump(mode="json")
            entry["workspace_name"] = workspace.display_name
            submissions.append(entry)

    logger.info(f"Super admin {user.email} listed {len(submissions)} submissions for {period}")
    return ok({
        "week_number": period.week,
        "year": period.year,
        "submissions": submissions,
    })


@router.get("/health/stats")
async def health_stats(
    workspace_id: Optional[str] = Query(None, alias="workspaceId"),
    user: VerifiedUser = Depends(require_super_admin),
    config: RuntimeConfig = Depends(get_runtime_config),
    registry: TenantRegistry = Depends(get_registry),
):
    """Row counts across all workspaces, or one when workspaceId is given."""
    if workspace_id:
        await registry.get_workspace(workspace_id)

    period = current_period(tz_name=config.timezone)
    since = get_local_now(config.timezone) - timedelta(days=1)

    stats = {
        "workspace_id": workspace_id,
        "members": await get_member_repository().get_stats(workspace_id),
        "submissions": await get_submission_repository().get_stats(period, workspace_id),
        "reports": await get_report_repository().get_stats(workspace_id),
        "email_logs": await get_email_log_repository().get_stats(since, workspace_id),
        "current_week": period.week,
        "current_year": period.year,
    }
    logger.info(
        f"Health stats for {workspace_id or 'all workspaces'}: "
        f"{stats['members']['active']} active members, "
        f"{stats['submissions']['this_week']} submissions this week"
    )
    return ok(stats)


@router.post("/workspaces/{workspace_id}/backfill")
async def backfill_legacy(
    workspace_id: str,
    user: VerifiedUser = Depends(require_super_admin),
    config: RuntimeConfig = Depends(get_runtime_config),
    registry: TenantRegistry = Depends(get_registry),
):
    store = SubmissionStore(config, registry=registry)
    inserted = await store.backfill_from_legacy(workspace_id, actor=user.email)
    return ok({"workspace_id": workspace_id, "inserted": inserted})


@router.post("/admin/email/send")
async def admin_send_email(
    body: AdminEmailSendRequest,
    user: VerifiedUser = Depends(get_current_user),
    config: RuntimeConfig = Depends(get_runtime_config),
    registry: TenantRegistry = Depends(get_registry),
):
    """Single send with the workspace named in the body."""
    access = await registry.get_access(body.workspace_id, user.email)
    if not access.can_manage:
        raise NotAuthorized("Only the workspace manager can do this", "NOT_MANAGER")
    notifier = NotificationScheduler(config, registry=registry)
    return await _send_single(notifier, access, body)


@router.post("/super/jobs/{job_id}")
async def trigger_job(job_id: str, user: VerifiedUser = Depends(require_super_admin)):
    """Manually trigger a scheduled job."""
    scheduler = get_scheduler_manager()
    if job_id not in CYCLES or not scheduler.trigger_job(job_id):
        raise NotFound(f"Job {job_id} not found or scheduler not running")
    return ok({"triggered": job_id})
