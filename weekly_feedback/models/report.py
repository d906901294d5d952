"""
Structured weekly analysis.

Field names are snake_case in Python and camelCase on the wire, matching the
JSON shape requested from the analysis backend and returned by the API.
"""

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


RISK_CATEGORIES = ("health_safety", "legal_compliance", "financial_budget")
RISK_CATEGORY_LABELS = {
    "health_safety": "Health & Safety",
    "legal_compliance": "Legal/Compliance",
    "financial_budget": "Financial/Budget",
}

Severity = Literal["low", "medium", "high", "critical"]
Sentiment = Literal["positive", "neutral", "concerned"]
Direction = Literal["up", "down", "stable"]


class AnalysisModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class Recognition(AnalysisModel):
    recipient: str
    from_: str = Field(alias="from")
    reason: str = ""


class RiskAlert(AnalysisModel):
    # Left as str so unknown categories survive parsing and are dropped afterwards
    category: str
    severity: Severity = "medium"
    title: str
    description: str = ""
    source: str = ""
    recommendation: Optional[str] = None

    @field_validator("severity", mode="before")
    @classmethod
    def lower_severity(cls, v):
        return v.lower() if isinstance(v, str) else v


class TrendIndicator(AnalysisModel):
    metric: str
    direction: Direction = "stable"
    description: str = ""
    percent_change: Optional[float] = None


class TeamOverview(AnalysisModel):
    submission_rate: int = 0
    total_members: int = 0
    submitted_count: int = 0
    common_themes: List[str] = Field(default_factory=list)
    overall_sentiment: Sentiment = "neutral"


class MemberSummary(AnalysisModel):
    member_id: str = ""
    member_name: str
    member_email: str = ""
    summary: str = ""
    key_accomplishments: List[str] = Field(default_factory=list)
    progress_on_previous_priorities: Optional[str] = None
    blockers: List[str] = Field(default_factory=list)
    priorities: List[str] = Field(default_factory=list)
    shoutouts_given: List[str] = Field(default_factory=list)
    sentiment: Sentiment = "neutral"
    risk_flags: List[str] = Field(default_factory=list)


class ReportAnalysis(AnalysisModel):
    executive_summary: str
    key_highlights: List[str] = Field(default_factory=list)
    team_recognition: List[Recognition] = Field(default_factory=list)
    risks: List[RiskAlert] = Field(default_factory=list)
    trends: List[TrendIndicator] = Field(default_factory=list)
    team_overview: TeamOverview = Field(default_factory=TeamOverview)
    member_summaries: List[MemberSummary] = Field(default_factory=list)
    recommended_actions: List[str] = Field(default_factory=list)
    generated_at: Optional[datetime] = None

    @field_validator("key_highlights")
    @classmethod
    def cap_highlights(cls, v: List[str]) -> List[str]:
        return v[:5]

    def to_wire(self) -> dict:
        """JSON-safe camelCase dict for storage and API responses."""
        return self.model_dump(mode="json", by_alias=True)


class ReportResult(BaseModel):
    """What generate_report hands back to its caller."""
    id: str
    workspace_id: str
    week_number: int
    year: int
    content: str
    format: str = "markdown"
    analysis: ReportAnalysis
    used_fallback: bool = False
    submission_count: int = 0
    generated_at: Optional[datetime] = None
    generated_by: Optional[str] = None
