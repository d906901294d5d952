"""
Report generator.

Aggregates a workspace's submissions for one period into a structured
analysis, renders it to Markdown and upserts it on (workspace, week, year).
NoSubmissions is the only failure; every analysis backend problem degrades
to the deterministic fallback.
"""

import logging
from typing import Optional, List

from ..ai.analysis import AnalysisRequest, ResilientAnalyzer, finalize_analysis
from ..database.models import ReportDB
from ..database.repositories import get_report_repository
from ..exceptions import NoSubmissions, ReportNotFound
from ..models.report import ReportAnalysis, ReportResult
from ..runtime import RuntimeConfig
from ..utils.audit_logger import AuditAction, log_audit_event
from ..utils.datetime_utils import Period, current_period, get_local_now
from .report_renderer import render_markdown
from .submissions import SubmissionStore
from .tenancy import TenantRegistry

logger = logging.getLogger(__name__)


def to_result(report: ReportDB) -> ReportResult:
    analysis = ReportAnalysis.model_validate(report.analysis) if report.analysis else None
    return ReportResult(
        id=report.id,
        workspace_id=report.workspace_id,
        week_number=report.week_number,
        year=report.year,
        content=report.content,
        format=report.format,
        analysis=analysis or ReportAnalysis(executive_summary=""),
        used_fallback=bool(report.used_fallback),
        submission_count=report.submission_count or 0,
        generated_at=report.generated_at,
        generated_by=report.generated_by,
    )


class ReportGenerator:
    """Builds, renders and persists weekly reports."""

    def __init__(
        self,
        config: RuntimeConfig,
        analyzer: Optional[ResilientAnalyzer] = None,
        registry: Optional[TenantRegistry] = None,
        store: Optional[SubmissionStore] = None,
    ):
        self.config = config
        self.analyzer = analyzer or ResilientAnalyzer.from_config(config)
        self.registry = registry or TenantRegistry(config)
        self.store = store or SubmissionStore(config, registry=self.registry)
        self.reports = get_report_repository()

    async def generate_report(
        self,
        workspace_id: str,
        period: Optional[Period] = None,
        generated_by: Optional[str] = None,
    ) -> ReportResult:
        """
        Generate (or regenerate) the report for a period, default current.

        Raises:
            WorkspaceNotFound: unknown workspace
            NoSubmissions: nothing submitted for the period; no report is written
        """
        workspace = await self.registry.get_workspace(workspace_id)
        period = period or current_period(tz_name=self.config.timezone)

        submissions = await self.store.get_submissions_for_period(workspace_id, period)
        if not submissions:
            raise NoSubmissions(period.week, period.year)

        now = get_local_now(self.config.timezone)
        active_members = await self.registry.count_active_members(workspace_id)
        # Deactivated members may still have submitted this week
        total_members = max(active_members, len(submissions))

        request = AnalysisRequest(
            submissions=submissions,
            total_members=total_members,
            workspace_name=workspace.display_name,
            period=period,
            generated_at=now,
        )
        analysis, used_fallback = await self.analyzer.analyze(request)
        analysis = finalize_analysis(
            analysis, submitted=len(submissions), total=total_members, now=now
        )

        content = render_markdown(analysis, period, workspace.display_name)

        report = await self.reports.upsert(
            workspace_id=workspace_id,
            period=period,
            content=content,
            analysis=analysis.to_wire(),
            generated_by=generated_by,
            used_fallback=used_fallback,
            submission_count=len(submissions),
            now=now,
        )

        logger.info(
            f"Generated report for workspace {workspace_id} ({period}): "
            f"{len(submissions)}/{total_members} submitted, fallback={used_fallback}"
        )
        await log_audit_event(
            AuditAction.REPORT_GENERATE,
            user_id=generated_by,
            workspace_id=workspace_id,
            entity_type="report",
            entity_id=report.id,
            details={"week": period.week, "year": period.year, "fallback": used_fallback},
            timestamp=now,
        )

        result = to_result(report)
        result.analysis = analysis
        return result

    async def list_reports(self, workspace_id: str) -> List[ReportResult]:
        await self.registry.get_workspace(workspace_id)
        return [to_result(r) for r in await self.reports.list_for_workspace(workspace_id)]

    async def get_report(self, workspace_id: str, period: Period) -> ReportResult:
        report = await self.reports.get(workspace_id, period)
        if report is None:
            raise ReportNotFound(period.week, period.year)
        return to_result(report)
