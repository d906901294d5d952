"""
Tests for API input validation models (api_validation.py).

Ensures the Pydantic validation rules and camelCase aliases work correctly.
"""

import pytest
from pydantic import ValidationError
from weekly_feedback.models.api_validation import (
    MAX_ANSWER_LENGTH,
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


class TestTokenVerifyRequest:

    def test_requires_token(self):
        with pytest.raises(ValidationError):
            TokenVerifyRequest(token="")


class TestMemberCreate:
    """Test member creation validation."""

    def test_valid_member(self):
        member = MemberCreate(email="ana@kubapay.com", name="  Ana Lopez ", firstName="Ana")
        assert member.name == "Ana Lopez"
        assert member.first_name == "Ana"
        assert member.role == "member"

    def test_invalid_email(self):
        with pytest.raises(ValidationError):
            MemberCreate(email="not-an-email", name="Ana")

    def test_blank_name(self):
        with pytest.raises(ValidationError):
            MemberCreate(email="ana@kubapay.com", name="   ")

    def test_invalid_role(self):
        with pytest.raises(ValidationError):
            MemberCreate(email="ana@kubapay.com", name="Ana", role="owner")


class TestMemberUpdate:

    @pytest.mark.parametrize("key", ["active", "isActive", "is_active"])
    def test_active_aliases(self, key):
        assert MemberUpdate(**{key: False}).is_active is False

    def test_partial_dump(self):
        assert MemberUpdate(name="Ana B").model_dump(exclude_none=True) == {"name": "Ana B"}


class TestWorkspaceUpdate:

    def test_camel_case(self):
        update = WorkspaceUpdate(managerName="Bea", allowedDomains=["kubapay.com"])
        assert update.model_dump(exclude_none=True) == {"manager_name": "Bea", "allowed_domains": ["kubapay.com"]}

    def test_invalid_status(self):
        with pytest.raises(ValidationError):
            WorkspaceUpdate(status="archived")


class TestSettingsUpdate:

    def test_camel_and_snake_case(self):
        assert SettingsUpdate(promptDay="monday").prompt_day == "monday"
        assert SettingsUpdate(prompt_day="monday").prompt_day == "monday"

    def test_time_too_long(self):
        with pytest.raises(ValidationError):
            SettingsUpdate(promptTime="09:00:00")


class TestSubmissionCreate:
    """Test submission validation."""

    def test_strips_answers(self):
        body = SubmissionCreate(accomplishments="  Shipped  ", previousWeekProgress=" Done ")
        assert body.accomplishments == "Shipped"
        assert body.previous_week_progress == "Done"

    def test_all_fields_optional(self):
        assert SubmissionCreate().model_dump(exclude_none=True) == {}

    def test_answer_length_limit(self):
        with pytest.raises(ValidationError):
            SubmissionCreate(accomplishments="x" * (MAX_ANSWER_LENGTH + 1))


class TestReportGenerateRequest:

    @pytest.mark.parametrize("key", ["week", "weekNumber", "week_number"])
    def test_week_aliases(self, key):
        assert ReportGenerateRequest(**{key: 7, "year": 2026}).week == 7

    def test_defaults(self):
        body = ReportGenerateRequest()
        assert (body.week, body.year) == (None, None)


class TestEmailRequests:

    def test_default_type(self):
        assert EmailSendRequest(email="ana@kubapay.com").type == "reminder"

    def test_unknown_type(self):
        with pytest.raises(ValidationError):
            EmailSendRequest(email="ana@kubapay.com", type="digest")

    def test_admin_send_requires_workspace(self):
        with pytest.raises(ValidationError):
            AdminEmailSendRequest(email="ana@kubapay.com")
        assert AdminEmailSendRequest(email="ana@kubapay.com", workspaceId="w1").workspace_id == "w1"

    def test_bulk_emails_validated(self):
        assert BulkEmailRequest().emails is None
        with pytest.raises(ValidationError):
            BulkEmailRequest(emails=["ana@kubapay.com", "nope"])
