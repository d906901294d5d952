"""
Submission store.

Write path: validate the period and required answers, resolve the member,
optionally enrich with a summary and follow-up question, then upsert on the
(workspace, member, week, year) key.

Read path: period listings, weekly status, previous-week recall, and the
idempotent legacy backfill.
"""

import logging
from dataclasses import dataclass
from typing import Optional, List, Mapping, Any

from ..ai.analysis import SubmissionInsights
from ..database.repositories import get_submission_repository
from ..exceptions import InvalidPeriod, MissingFields, NotAuthorized
from ..models.submission import REQUIRED_FIELDS, SubmissionFields, SubmissionView, WeeklyStatus
from ..runtime import RuntimeConfig
from ..utils.audit_logger import AuditAction, log_audit_event
from ..utils.datetime_utils import Period, current_period, is_valid_period, previous_period
from ..utils.validation import is_domain_allowed
from .tenancy import TenantRegistry, WorkspaceAccess

logger = logging.getLogger(__name__)


@dataclass
class Identity:
    """A verified caller."""
    email: str
    name: str = ""
    first_name: Optional[str] = None


def validate_period(week: Any, year: Any) -> Period:
    """Coerce and bounds-check a week/year pair."""
    try:
        period = Period(int(week), int(year))
    except (TypeError, ValueError):
        raise InvalidPeriod(week, year)
    if not is_valid_period(period.week, period.year):
        raise InvalidPeriod(week, year)
    return period


def missing_required(fields: Mapping[str, Any]) -> List[str]:
    return [name for name in REQUIRED_FIELDS if not (fields.get(name) or "").strip()]


class SubmissionStore:
    """Period-scoped submission operations for one runtime config."""

    def __init__(
        self,
        config: RuntimeConfig,
        registry: Optional[TenantRegistry] = None,
        insights: Optional[SubmissionInsights] = None,
    ):
        self.config = config
        self.registry = registry or TenantRegistry(config)
        self.insights = insights
        self.repository = get_submission_repository()

    @property
    def include_legacy(self) -> bool:
        return self.config.legacy_read_merge

    async def upsert_submission(
        self,
        workspace_id: str,
        member_id: str,
        period: Period,
        fields: Mapping[str, Any],
    ) -> SubmissionView:
        """
        Create or replace a member's submission for a period.

        Raises:
            InvalidPeriod: week/year out of range
        """
        period = validate_period(*period)
        values = SubmissionFields(**{k: v for k, v in fields.items() if v is not None}).stored_values()

        await self.repository.upsert(workspace_id, member_id, period, values, now=self.registry.now())
        view = await self.repository.get_for_member(workspace_id, member_id, period)
        return view

    async def submit(
        self,
        access: WorkspaceAccess,
        identity: Identity,
        fields: Mapping[str, Any],
        period: Optional[Period] = None,
    ) -> SubmissionView:
        """
        Self-service submission for the caller's current period.

        Raises:
            NotAuthorized: caller is not a member and their domain is not allowed
            MissingFields: accomplishments, blockers or priorities empty
        """
        workspace = access.workspace
        if access.member is None and not is_domain_allowed(identity.email, workspace.allowed_domains):
            raise NotAuthorized("You are not authorized to submit to this workspace")

        missing = missing_required(fields)
        if missing:
            raise MissingFields(missing, "Accomplishments, blockers, and priorities are required")

        member = await self.registry.find_or_create_member(
            workspace.id,
            identity.email,
            identity.name,
            identity.first_name,
        )

        values = dict(fields)
        if self.insights is not None:
            try:
                summary, question = await self.insights.generate(
                    values.get("accomplishments", ""),
                    values.get("blockers", ""),
                    values.get("priorities", ""),
                )
                values["ai_summary"] = summary
                values["ai_question"] = question
            except Exception as e:
                logger.warning(f"Submission insights failed for {identity.email}: {e}")

        period = period or current_period(tz_name=self.config.timezone)
        view = await self.upsert_submission(workspace.id, member.id, period, values)

        logger.info(
            f"Submission {view.id} saved for {identity.email} in workspace {workspace.id} ({period})"
        )
        return view

    async def get_submissions_for_period(
        self,
        workspace_id: str,
        period: Optional[Period] = None,
    ) -> List[SubmissionView]:
        """Newest first; empty when the period has no data."""
        period = period or current_period(tz_name=self.config.timezone)
        return await self.repository.get_for_period(
            workspace_id, period, include_legacy=self.include_legacy
        )

    async def get_weekly_status(
        self,
        workspace_id: str,
        period: Optional[Period] = None,
    ) -> WeeklyStatus:
        period = period or current_period(tz_name=self.config.timezone)
        return await self.repository.get_weekly_status(
            workspace_id, period, include_legacy=self.include_legacy
        )

    async def get_previous_submission(
        self,
        workspace_id: str,
        member_id: str,
    ) -> Optional[SubmissionView]:
        """The member's submission for last week, for recall and pre-fill."""
        period = previous_period(tz_name=self.config.timezone)
        return await self.repository.get_for_member(
            workspace_id, member_id, period, include_legacy=self.include_legacy
        )

    async def backfill_from_legacy(self, workspace_id: str, actor: Optional[str] = None) -> int:
        """Copy legacy rows forward; safe to re-run."""
        await self.registry.get_workspace(workspace_id)
        now = self.registry.now()
        inserted = await self.repository.backfill_from_legacy(workspace_id, now=now)

        await log_audit_event(
            AuditAction.LEGACY_BACKFILL,
            user_id=actor,
            workspace_id=workspace_id,
            entity_type="workspace",
            entity_id=workspace_id,
            details={"inserted": inserted},
            timestamp=now,
        )
        return inserted
