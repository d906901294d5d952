"""
SQLAlchemy models for the PostgreSQL database.

Schema includes:
- Workspaces (one per manager) with their allowed email domains
- Workspace members, soft-deleted through is_active
- Weekly submissions, unique per (workspace, member, week, year)
- Generated reports, unique per (workspace, week, year)
- Per-workspace notification settings
- Email send log (append-only)
- Audit log for registry mutations
- Legacy pre-workspace tables, read only by the backfill
"""

import enum
import uuid
from datetime import datetime
from typing import Optional, List

from sqlalchemy import (
    String,
    Text,
    Integer,
    Boolean,
    DateTime,
    ForeignKey,
    JSON,
    Index,
    UniqueConstraint,
    CheckConstraint,
)
from sqlalchemy.orm import DeclarativeBase, relationship, Mapped, mapped_column
from sqlalchemy.sql import func


def new_id() -> str:
    return str(uuid.uuid4())


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


# ==================== ENUMS ====================

class WorkspaceStatusEnum(str, enum.Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class MemberRoleEnum(str, enum.Enum):
    MEMBER = "member"
    ADMIN = "admin"


class ReportFormatEnum(str, enum.Enum):
    MARKDOWN = "markdown"
    HTML = "html"
    PLAIN = "plain"


class EmailTypeEnum(str, enum.Enum):
    PROMPT = "prompt"
    REMINDER = "reminder"
    CHASE = "chase"
    BULK_CHASE = "bulk_chase"
    REPORT = "report"


class EmailStatusEnum(str, enum.Enum):
    SENT = "sent"
    FAILED = "failed"
    BOUNCED = "bounced"
    DELIVERED = "delivered"


# ==================== WORKSPACES ====================

class WorkspaceDB(Base):
    """A tenant: one manager, an allow-list of domains, its own members and data."""
    __tablename__ = "workspaces"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)

    manager_email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    manager_name: Mapped[str] = mapped_column(String(200), nullable=False)

    # Ordered list of lower-cased domains
    allowed_domains: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)

    status: Mapped[str] = mapped_column(String(20), default=WorkspaceStatusEnum.ACTIVE.value)

    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now(), onupdate=func.now())

    members: Mapped[List["WorkspaceMemberDB"]] = relationship(
        "WorkspaceMemberDB", back_populates="workspace", cascade="all, delete-orphan"
    )
    submissions: Mapped[List["SubmissionDB"]] = relationship(
        "SubmissionDB", back_populates="workspace", cascade="all, delete-orphan"
    )
    reports: Mapped[List["ReportDB"]] = relationship(
        "ReportDB", back_populates="workspace", cascade="all, delete-orphan"
    )
    settings: Mapped[Optional["WorkspaceSettingsDB"]] = relationship(
        "WorkspaceSettingsDB", back_populates="workspace", cascade="all, delete-orphan", uselist=False
    )
    email_logs: Mapped[List["EmailLogDB"]] = relationship(
        "EmailLogDB", back_populates="workspace", cascade="all, delete-orphan"
    )

    __table_args__ = (
        CheckConstraint("status IN ('active', 'inactive')", name="ck_workspace_status"),
        Index("idx_workspaces_manager_email", "manager_email"),
        Index("idx_workspaces_status", "status"),
    )

    @property
    def display_name(self) -> str:
        return self.name or self.manager_name

    @property
    def is_active(self) -> bool:
        return self.status == WorkspaceStatusEnum.ACTIVE.value


class WorkspaceMemberDB(Base):
    """A person's membership in one workspace."""
    __tablename__ = "workspace_members"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    workspace_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("workspaces.id", ondelete="CASCADE"), nullable=False
    )

    email: Mapped[str] = mapped_column(String(255), nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    first_name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    role: Mapped[str] = mapped_column(String(20), default=MemberRoleEnum.MEMBER.value)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now(), onupdate=func.now())

    workspace: Mapped["WorkspaceDB"] = relationship("WorkspaceDB", back_populates="members")

    __table_args__ = (
        UniqueConstraint("workspace_id", "email", name="uq_workspace_member_email"),
        CheckConstraint("role IN ('member', 'admin')", name="ck_member_role"),
        Index("idx_workspace_members_workspace", "workspace_id"),
        Index("idx_workspace_members_email", "email"),
    )


# ==================== SUBMISSIONS ====================

class SubmissionDB(Base):
    """One member's answers for one ISO week."""
    __tablename__ = "workspace_submissions"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    workspace_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("workspaces.id", ondelete="CASCADE"), nullable=False
    )
    workspace_member_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("workspace_members.id", ondelete="CASCADE"), nullable=False
    )

    week_number: Mapped[int] = mapped_column(Integer, nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False)

    # Answers
    accomplishments: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    previous_week_progress: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    blockers: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    priorities: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    shoutouts: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Generated
    ai_summary: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    ai_question: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    ai_answer: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    submitted_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())

    workspace: Mapped["WorkspaceDB"] = relationship("WorkspaceDB", back_populates="submissions")
    member: Mapped["WorkspaceMemberDB"] = relationship("WorkspaceMemberDB")

    __table_args__ = (
        UniqueConstraint(
            "workspace_id", "workspace_member_id", "week_number", "year",
            name="uq_submission_member_period",
        ),
        CheckConstraint("week_number >= 1 AND week_number <= 53", name="ck_submission_week"),
        CheckConstraint("year >= 2020 AND year <= 2100", name="ck_submission_year"),
        Index("idx_workspace_submissions_workspace", "workspace_id"),
        Index("idx_workspace_submissions_member", "workspace_member_id"),
        Index("idx_workspace_submissions_week_year", "week_number", "year"),
    )


# ==================== REPORTS ====================

class ReportDB(Base):
    """Generated weekly report for one workspace."""
    __tablename__ = "workspace_reports"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    workspace_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("workspaces.id", ondelete="CASCADE"), nullable=False
    )

    week_number: Mapped[int] = mapped_column(Integer, nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False)

    content: Mapped[str] = mapped_column(Text, nullable=False)
    format: Mapped[str] = mapped_column(String(20), default=ReportFormatEnum.MARKDOWN.value)
    analysis: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    used_fallback: Mapped[bool] = mapped_column(Boolean, default=False)
    submission_count: Mapped[int] = mapped_column(Integer, default=0)

    generated_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())
    generated_by: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    workspace: Mapped["WorkspaceDB"] = relationship("WorkspaceDB", back_populates="reports")

    __table_args__ = (
        UniqueConstraint("workspace_id", "week_number", "year", name="uq_report_period"),
        CheckConstraint("week_number >= 1 AND week_number <= 53", name="ck_report_week"),
        CheckConstraint("year >= 2020 AND year <= 2100", name="ck_report_year"),
        CheckConstraint("format IN ('markdown', 'html', 'plain')", name="ck_report_format"),
        Index("idx_workspace_reports_workspace", "workspace_id"),
        Index("idx_workspace_reports_week_year", "week_number", "year"),
    )


# ==================== SETTINGS ====================

class WorkspaceSettingsDB(Base):
    """Per-workspace notification cadence and sender name."""
    __tablename__ = "workspace_settings"

    workspace_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("workspaces.id", ondelete="CASCADE"), primary_key=True
    )

    weekly_prompt_enabled: Mapped[bool] = mapped_column(Boolean, default=True)
    weekly_reminder_enabled: Mapped[bool] = mapped_column(Boolean, default=True)
    prompt_day: Mapped[str] = mapped_column(String(10), default="wednesday")
    prompt_time: Mapped[str] = mapped_column(String(5), default="09:00")
    reminder_day: Mapped[str] = mapped_column(String(10), default="thursday")
    reminder_time: Mapped[str] = mapped_column(String(5), default="17:00")
    email_from_name: Mapped[str] = mapped_column(String(100), default="Weekly Feedback")

    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now(), onupdate=func.now())

    workspace: Mapped["WorkspaceDB"] = relationship("WorkspaceDB", back_populates="settings")


# ==================== EMAIL LOG ====================

class EmailLogDB(Base):
    """One outbound email attempt, successful or not."""
    __tablename__ = "workspace_email_logs"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    workspace_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("workspaces.id", ondelete="CASCADE"), nullable=False
    )

    recipient_email: Mapped[str] = mapped_column(String(255), nullable=False)
    recipient_name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    email_type: Mapped[str] = mapped_column(String(20), nullable=False)
    subject: Mapped[str] = mapped_column(String(500), nullable=False)
    body_preview: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    status: Mapped[str] = mapped_column(String(20), default=EmailStatusEnum.SENT.value)
    message_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    error_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    sent_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())

    workspace: Mapped["WorkspaceDB"] = relationship("WorkspaceDB", back_populates="email_logs")

    __table_args__ = (
        CheckConstraint(
            "email_type IN ('prompt', 'reminder', 'chase', 'bulk_chase', 'report')",
            name="ck_email_type",
        ),
        CheckConstraint(
            "status IN ('sent', 'failed', 'bounced', 'delivered')",
            name="ck_email_status",
        ),
        Index("idx_workspace_email_logs_workspace", "workspace_id"),
        Index("idx_workspace_email_logs_sent_at", "sent_at"),
    )


# ==================== AUDIT LOG ====================

class AuditLogDB(Base):
    """Who changed what in the registry."""
    __tablename__ = "audit_logs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    action: Mapped[str] = mapped_column(String(50), nullable=False)
    user_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    workspace_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    entity_type: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    entity_id: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    details: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    level: Mapped[str] = mapped_column(String(20), default="info")

    timestamp: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())

    __table_args__ = (
        Index("idx_audit_workspace", "workspace_id"),
        Index("idx_audit_timestamp", "timestamp"),
    )


# ==================== LEGACY (pre-workspace) ====================

class LegacyTeamMemberDB(Base):
    """Single-team member list that predates workspaces."""
    __tablename__ = "team_members"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    first_name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    role: Mapped[str] = mapped_column(String(20), default="member")
    is_active: Mapped[bool] = mapped_column("active", Boolean, default=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())


class LegacySubmissionDB(Base):
    """Submission keyed by person only, with no workspace reference."""
    __tablename__ = "submissions"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    team_member_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("team_members.id", ondelete="CASCADE"), nullable=False
    )
    week_number: Mapped[int] = mapped_column(Integer, nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False)

    accomplishments: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    previous_week_progress: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    blockers: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    priorities: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    shoutouts: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    ai_summary: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    ai_question: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    ai_answer: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    submitted_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())

    __table_args__ = (
        UniqueConstraint("team_member_id", "week_number", "year", name="uq_legacy_submission_period"),
    )
