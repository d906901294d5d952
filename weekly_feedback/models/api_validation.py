"""
Pydantic models for API request bodies.

Bodies are accepted in camelCase (as sent by the web form) or snake_case.
Length limits keep single submissions and overrides within sane bounds.
"""

from typing import Optional, Literal, List
from pydantic import AliasChoices, BaseModel, ConfigDict, EmailStr, Field, field_validator
from pydantic.alias_generators import to_camel

MAX_ANSWER_LENGTH = 10000


class RequestModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def _strip(v):
    if isinstance(v, str):
        return v.strip()
    return v


# ============================================
# AUTH
# ============================================

class TokenVerifyRequest(RequestModel):
    token: str = Field(..., min_length=1)


# ============================================
# WORKSPACES & MEMBERS
# ============================================

class WorkspaceUpdate(RequestModel):
    name: Optional[str] = Field(None, max_length=200)
    manager_name: Optional[str] = Field(None, min_length=1, max_length=200)
    allowed_domains: Optional[List[str]] = None
    status: Optional[Literal["active", "inactive"]] = None


class MemberCreate(RequestModel):
    email: EmailStr
    name: str = Field(..., min_length=1, max_length=200)
    first_name: Optional[str] = Field(None, max_length=100)
    role: Literal["member", "admin"] = "member"

    @field_validator("name", "first_name")
    @classmethod
    def strip_names(cls, v):
        v = _strip(v)
        if v == "":
            raise ValueError("cannot be empty after stripping whitespace")
        return v


class MemberUpdate(RequestModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    first_name: Optional[str] = Field(None, max_length=100)
    role: Optional[Literal["member", "admin"]] = None
    is_active: Optional[bool] = Field(None, validation_alias=AliasChoices("active", "isActive", "is_active"))


class SettingsUpdate(RequestModel):
    weekly_prompt_enabled: Optional[bool] = None
    weekly_reminder_enabled: Optional[bool] = None
    prompt_day: Optional[str] = Field(None, max_length=10)
    prompt_time: Optional[str] = Field(None, max_length=5)
    reminder_day: Optional[str] = Field(None, max_length=10)
    reminder_time: Optional[str] = Field(None, max_length=5)
    email_from_name: Optional[str] = Field(None, min_length=1, max_length=100)


# ============================================
# SUBMISSIONS & REPORTS
# ============================================

class SubmissionCreate(RequestModel):
    """Required answers are checked by the service so the error names them all."""
    accomplishments: Optional[str] = Field(None, max_length=MAX_ANSWER_LENGTH)
    previous_week_progress: Optional[str] = Field(None, max_length=MAX_ANSWER_LENGTH)
    blockers: Optional[str] = Field(None, max_length=MAX_ANSWER_LENGTH)
    priorities: Optional[str] = Field(None, max_length=MAX_ANSWER_LENGTH)
    shoutouts: Optional[str] = Field(None, max_length=MAX_ANSWER_LENGTH)
    ai_answer: Optional[str] = Field(None, max_length=MAX_ANSWER_LENGTH)

    @field_validator("*")
    @classmethod
    def strip_answers(cls, v):
        return _strip(v)


class ReportGenerateRequest(RequestModel):
    week: Optional[int] = Field(None, validation_alias=AliasChoices("week", "weekNumber", "week_number"))
    year: Optional[int] = None


# ============================================
# EMAIL
# ============================================

class EmailSendRequest(RequestModel):
    email: EmailStr
    type: Literal["prompt", "reminder"] = "reminder"
    subject: Optional[str] = Field(None, max_length=500)
    body: Optional[str] = Field(None, max_length=MAX_ANSWER_LENGTH)


class AdminEmailSendRequest(EmailSendRequest):
    workspace_id: str = Field(..., min_length=1)


class BulkEmailRequest(RequestModel):
    emails: Optional[List[EmailStr]] = Field(None, max_length=500)
    subject: Optional[str] = Field(None, max_length=500)
    body: Optional[str] = Field(None, max_length=MAX_ANSWER_LENGTH)
