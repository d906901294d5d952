"""
Weekly analysis strategies.

- RemoteAnalysisBackend: asks DeepSeek for the structured analysis
- FallbackAnalysisBackend: builds it deterministically from the raw text
- ResilientAnalyzer: tries the remote backend and switches to the fallback
  on any failure, timeout or malformed output

The same shape is used for per-submission insights (summary + follow-up
question) through SubmissionInsights.
"""

import abc
import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Tuple

from pydantic import ValidationError

from .deepseek import DeepSeekClient, AnalysisUnavailable
from .prompts import PromptTemplates, submission_rate
from ..models.report import (
    RISK_CATEGORIES,
    MemberSummary,
    Recognition,
    ReportAnalysis,
    TeamOverview,
    TrendIndicator,
)
from ..models.submission import SubmissionView
from ..runtime import RuntimeConfig
from ..utils.datetime_utils import Period, get_local_now

logger = logging.getLogger(__name__)


@dataclass
class AnalysisRequest:
    """Everything a backend needs to analyse one workspace-period."""
    submissions: List[SubmissionView]
    total_members: int
    workspace_name: str
    period: Period
    generated_at: Optional[datetime] = None


def _lines(text: Optional[str]) -> List[str]:
    return [line.strip() for line in (text or "").split("\n") if line.strip()]


def _first_line(text: Optional[str], limit: int) -> str:
    return (text or "").split("\n")[0][:limit]


class AnalysisBackend(abc.ABC):
    """Strategy interface: analyse a period's submissions."""

    name = "backend"

    @abc.abstractmethod
    async def analyze(self, request: AnalysisRequest) -> ReportAnalysis:
        ...


class RemoteAnalysisBackend(AnalysisBackend):
    """Analysis produced by the DeepSeek chat API in JSON mode."""

    name = "deepseek"

    def __init__(self, client: DeepSeekClient):
        self.client = client
        self.prompts = PromptTemplates()

    @property
    def is_configured(self) -> bool:
        return self.client.is_configured

    async def analyze(self, request: AnalysisRequest) -> ReportAnalysis:
        if not self.is_configured:
            raise AnalysisUnavailable("Analysis backend not configured")

        payload = await self.client.complete_json(
            system_prompt=self.prompts.REPORT_SYSTEM_PROMPT,
            user_prompt=self.prompts.report_prompt(
                submissions=request.submissions,
                period=request.period,
                workspace_name=request.workspace_name,
                total_members=request.total_members,
            ),
        )
        try:
            return ReportAnalysis.model_validate(payload)
        except ValidationError as e:
            raise AnalysisUnavailable(f"Response did not match the analysis schema: {e}") from e


class FallbackAnalysisBackend(AnalysisBackend):
    """
    Deterministic analysis from straight field excerpts.

    Makes no risk judgement and involves no model; the only varying field is
    generated_at.
    """

    name = "fallback"

    async def analyze(self, request: AnalysisRequest) -> ReportAnalysis:
        return self.build(request)

    def build(self, request: AnalysisRequest) -> ReportAnalysis:
        submissions = request.submissions
        count = len(submissions)
        total = request.total_members
        rate = submission_rate(count, total)
        period = request.period

        highlights = [
            f"{s.member_name}: {_first_line(s.accomplishments, 100) or 'Submitted update'}"
            for s in submissions
            if s.accomplishments
        ][:5]

        recognitions = [
            Recognition(recipient="See details", from_=s.member_name, reason=s.shoutouts.strip()[:200])
            for s in submissions
            if s.shoutouts and s.shoutouts.strip()
        ]

        if rate >= 80:
            direction = "up"
        elif rate >= 60:
            direction = "stable"
        else:
            direction = "down"

        members = [
            MemberSummary(
                member_id=s.member_id,
                member_name=s.member_name,
                member_email=s.member_email,
                summary=_first_line(s.accomplishments, 150) or "Submitted weekly update",
                key_accomplishments=_lines(s.accomplishments)[:3],
                progress_on_previous_priorities=s.previous_week_progress or None,
                blockers=_lines(s.blockers),
                priorities=_lines(s.priorities),
                shoutouts_given=[s.shoutouts.strip()] if s.shoutouts and s.shoutouts.strip() else [],
                sentiment="neutral",
                risk_flags=[],
            )
            for s in submissions
        ]

        if count < total:
            follow_up = f"Follow up with {total - count} team members who haven't submitted"
        else:
            follow_up = "All team members have submitted - great participation!"

        return ReportAnalysis(
            executive_summary=(
                f"Week {period.week} of {period.year} report generated with {count} out of "
                f"{total} team members submitting ({rate}% response rate). AI analysis was "
                f"unavailable - please review individual submissions below for details."
            ),
            key_highlights=highlights,
            team_recognition=recognitions,
            risks=[],
            trends=[TrendIndicator(
                metric="Submission Rate",
                direction=direction,
                description=f"{rate}% of team submitted this week",
            )],
            team_overview=TeamOverview(
                submission_rate=rate,
                total_members=total,
                submitted_count=count,
                common_themes=["See individual submissions for details"],
                overall_sentiment="neutral",
            ),
            member_summaries=members,
            recommended_actions=[
                follow_up,
                "Review individual blockers and provide support where needed",
            ],
            generated_at=request.generated_at or get_local_now(),
        )


class ResilientAnalyzer:
    """Runs the primary strategy and switches to the fallback when it fails."""

    def __init__(
        self,
        primary: Optional[AnalysisBackend],
        fallback: Optional[FallbackAnalysisBackend] = None,
        timeout_seconds: float = 60.0,
    ):
        self.primary = primary
        self.fallback = fallback or FallbackAnalysisBackend()
        self.timeout_seconds = timeout_seconds

    @classmethod
    def from_config(cls, config: RuntimeConfig) -> "ResilientAnalyzer":
        return cls(
            primary=RemoteAnalysisBackend(DeepSeekClient(config)),
            timeout_seconds=config.analysis_timeout_seconds,
        )

    async def analyze(self, request: AnalysisRequest) -> Tuple[ReportAnalysis, bool]:
        """
        Returns:
            (analysis, used_fallback)
        """
        if self.primary is not None:
            try:
                analysis = await asyncio.wait_for(
                    self.primary.analyze(request),
                    timeout=self.timeout_seconds,
                )
                logger.info(
                    f"{self.primary.name} analysis completed for {request.period}: "
                    f"{len(analysis.risks)} risks, {len(analysis.trends)} trends"
                )
                return analysis, False
            except asyncio.TimeoutError:
                logger.warning(
                    f"{self.primary.name} analysis timed out after {self.timeout_seconds}s, using fallback"
                )
            except Exception as e:
                logger.warning(f"{self.primary.name} analysis unavailable, using fallback: {e}")

        return await self.fallback.analyze(request), True


def finalize_analysis(
    analysis: ReportAnalysis,
    submitted: int,
    total: int,
    now: Optional[datetime] = None,
) -> ReportAnalysis:
    """
    Drop risks outside the three known categories and pin the overview
    counts to what was actually fetched.
    """
    kept = [r for r in analysis.risks if r.category in RISK_CATEGORIES]
    dropped = len(analysis.risks) - len(kept)
    if dropped:
        logger.warning(f"Discarded {dropped} risk entries with unknown categories")

    overview = analysis.team_overview.model_copy(update={
        "submitted_count": submitted,
        "total_members": total,
        "submission_rate": submission_rate(submitted, total),
    })
    return analysis.model_copy(update={
        "risks": kept,
        "team_overview": overview,
        "generated_at": analysis.generated_at or now or get_local_now(),
    })


# ==================== SUBMISSION INSIGHTS ====================

FOLLOW_UP_QUESTIONS = (
    "What support do you need to achieve your priorities for next week?",
    "Is there anything blocking your progress that the team should know about?",
    "How can we help you be more effective next week?",
    "Are there any dependencies or risks you're concerned about?",
    "What would make next week more successful for you?",
)
BLOCKER_QUESTION = "How can the team help you overcome the blockers you mentioned?"


def simple_follow_up_question(blockers: Optional[str], priorities: Optional[str]) -> str:
    """Rule-based follow-up question used when no model is available."""
    if blockers and len(blockers.strip()) > 10:
        return BLOCKER_QUESTION
    index = len(priorities or "") % len(FOLLOW_UP_QUESTIONS)
    return FOLLOW_UP_QUESTIONS[index]


class SubmissionInsights:
    """Optional summary and follow-up question for a single submission."""

    def __init__(self, client: DeepSeekClient, timeout_seconds: float = 20.0):
        self.client = client
        self.timeout_seconds = timeout_seconds
        self.prompts = PromptTemplates()

    @classmethod
    def from_config(cls, config: RuntimeConfig) -> "SubmissionInsights":
        return cls(DeepSeekClient(config), timeout_seconds=min(config.analysis_timeout_seconds, 20.0))

    async def generate(
        self,
        accomplishments: str,
        blockers: str,
        priorities: str,
    ) -> Tuple[Optional[str], Optional[str]]:
        """
        Returns:
            (summary, question); summary is None when the model is unavailable
        """
        if not self.client.is_configured:
            return None, simple_follow_up_question(blockers, priorities)

        try:
            payload = await asyncio.wait_for(
                self.client.complete_json(
                    system_prompt=self.prompts.SUBMISSION_SYSTEM_PROMPT,
                    user_prompt=self.prompts.submission_insight_prompt(accomplishments, blockers, priorities),
                    temperature=0.5,
                    max_tokens=300,
                ),
                timeout=self.timeout_seconds,
            )
        except (asyncio.TimeoutError, AnalysisUnavailable) as e:
            logger.warning(f"Submission insight generation failed: {e}")
            return None, simple_follow_up_question(blockers, priorities)

        summary = payload.get("summary") or None
        question = payload.get("question") or simple_follow_up_question(blockers, priorities)
        return summary, question
