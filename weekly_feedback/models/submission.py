"""
Read models for submissions and weekly status.

These are what the store hands to the report generator, the notification
scheduler and the API; database rows never leave the repositories.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from ..utils.datetime_utils import Period


ANSWER_FIELDS = (
    "accomplishments",
    "previous_week_progress",
    "blockers",
    "priorities",
    "shoutouts",
)
GENERATED_FIELDS = ("ai_summary", "ai_question", "ai_answer")
REQUIRED_FIELDS = ("accomplishments", "blockers", "priorities")


class SubmissionFields(BaseModel):
    """The writable part of a submission."""
    accomplishments: Optional[str] = None
    previous_week_progress: Optional[str] = None
    blockers: Optional[str] = None
    priorities: Optional[str] = None
    shoutouts: Optional[str] = None
    ai_summary: Optional[str] = None
    ai_question: Optional[str] = None
    ai_answer: Optional[str] = None

    def stored_values(self) -> dict:
        return {name: getattr(self, name) for name in ANSWER_FIELDS + GENERATED_FIELDS}


class SubmissionView(SubmissionFields):
    """A submission enriched with its member's identity."""
    id: str
    workspace_id: str
    member_id: str
    member_name: str
    member_email: str
    member_first_name: Optional[str] = None
    week_number: int
    year: int
    submitted_at: Optional[datetime] = None
    source: str = "workspace"  # "workspace" or "legacy"

    @property
    def period(self) -> Period:
        return Period(self.week_number, self.year)


class MemberStatus(BaseModel):
    member_id: str
    email: str
    name: str
    first_name: Optional[str] = None
    role: str = "member"
    has_submitted: bool = False
    submitted_at: Optional[datetime] = None


class WeeklyStatus(BaseModel):
    """Active members outer-joined against one period's submissions."""
    week_number: int
    year: int
    total: int = 0
    submitted: int = 0
    pending: int = 0
    members: List[MemberStatus] = Field(default_factory=list)

    @property
    def pending_members(self) -> List[MemberStatus]:
        return [m for m in self.members if not m.has_submitted]
