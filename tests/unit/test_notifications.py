"""
Tests for the notification scheduler: prompts, reminders and chases.

Gmail is mocked at the session level; email logs go to the real test database.
"""

import pytest
from unittest.mock import AsyncMock, MagicMock

from weekly_feedback.database.repositories import get_email_log_repository
from weekly_feedback.exceptions import EmailNotConfigured
from weekly_feedback.integrations.gmail import GmailSender, SendResult
from weekly_feedback.services.notifications import BatchResult, NotificationScheduler
from weekly_feedback.services.submissions import SubmissionStore
from weekly_feedback.services.tenancy import TenantRegistry
from weekly_feedback.utils.datetime_utils import current_period

TEAM = [
    ("ana@kubapay.com", "Ana Lopez"),
    ("ben@kubapay.com", "Ben Ng"),
    ("cai@kubapay.com", "Cai Diaz"),
    ("dee@kubapay.com", "Dee Park"),
    ("eli@kubapay.com", "Eli Shaw"),
]


def fake_session(reject=()):
    """Gmail session that rejects the given recipients."""
    session = MagicMock()

    async def send(to_email, subject, body, from_name=None):
        if to_email in reject:
            return SendResult(success=False, error="Invalid To header")
        return SendResult(success=True, message_id=f"msg-{to_email}")

    session.send = AsyncMock(side_effect=send)
    return session


def fake_sender(session):
    sender = MagicMock(spec=GmailSender)
    sender.open_session = AsyncMock(return_value=session)
    return sender


@pytest.fixture
def registry(runtime_config):
    return TenantRegistry(runtime_config)


async def add_team(registry, workspace_id):
    return [await registry.add_member(workspace_id, email, name) for email, name in TEAM]


class TestReminders:

    @pytest.mark.asyncio
    async def test_one_rejected_recipient_does_not_stop_batch(self, workspace, registry, runtime_config):
        await add_team(registry, workspace.id)
        session = fake_session(reject={"cai@kubapay.com"})
        notifier = NotificationScheduler(runtime_config, sender=fake_sender(session), registry=registry)

        batch = await notifier.send_reminder(workspace)

        assert (batch.sent, batch.failed, batch.total) == (4, 1, 5)
        assert batch.errors == [("cai@kubapay.com", "Invalid To header")]
        assert batch.message == "Sent 4 of 5 emails (1 failed)"

        logs = await get_email_log_repository().list_for_workspace(workspace.id)
        assert len(logs) == 5
        assert {log.email_type for log in logs} == {"reminder"}
        failed = [log for log in logs if log.status == "failed"]
        assert [log.recipient_email for log in failed] == ["cai@kubapay.com"]

    @pytest.mark.asyncio
    async def test_session_opened_as_manager(self, workspace, registry, runtime_config):
        await add_team(registry, workspace.id)
        sender = fake_sender(fake_session())
        notifier = NotificationScheduler(runtime_config, sender=sender, registry=registry)

        await notifier.send_reminder(workspace)

        sender.open_session.assert_awaited_once_with("boss@kubapay.com")

    @pytest.mark.asyncio
    async def test_skips_members_who_submitted(self, workspace, registry, runtime_config, sample_answers):
        members = await add_team(registry, workspace.id)
        store = SubmissionStore(runtime_config, registry=registry)
        period = current_period(tz_name=runtime_config.timezone)
        for member in members[:4]:
            await store.upsert_submission(workspace.id, member.id, period, sample_answers)
        session = fake_session()
        notifier = NotificationScheduler(runtime_config, sender=fake_sender(session), registry=registry, store=store)

        batch = await notifier.send_reminder(workspace)

        assert (batch.sent, batch.total) == (1, 1)
        assert session.send.await_args.args[0] == "eli@kubapay.com"

    @pytest.mark.asyncio
    async def test_everyone_submitted(self, workspace, registry, runtime_config, sample_answers):
        members = await add_team(registry, workspace.id)
        store = SubmissionStore(runtime_config, registry=registry)
        period = current_period(tz_name=runtime_config.timezone)
        for member in members:
            await store.upsert_submission(workspace.id, member.id, period, sample_answers)
        sender = fake_sender(fake_session())
        notifier = NotificationScheduler(runtime_config, sender=sender, registry=registry, store=store)

        batch = await notifier.send_reminder(workspace)

        assert batch.total == 0
        assert batch.message == "Everyone has already submitted"
        sender.open_session.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_log_write_failure_counts_as_failure(self, workspace, registry, runtime_config):
        await add_team(registry, workspace.id)
        email_logs = MagicMock()
        email_logs.create = AsyncMock(side_effect=[None, RuntimeError("db down"), None, None, None])
        notifier = NotificationScheduler(
            runtime_config, sender=fake_sender(fake_session()), email_logs=email_logs, registry=registry,
        )

        batch = await notifier.send_reminder(workspace)

        assert (batch.sent, batch.failed) == (4, 1)
        assert batch.errors[0][1].startswith("Email log write failed")

    @pytest.mark.asyncio
    async def test_no_credentials(self, workspace, registry, runtime_config):
        await add_team(registry, workspace.id)
        notifier = NotificationScheduler(runtime_config, sender=GmailSender(runtime_config), registry=registry)

        with pytest.raises(EmailNotConfigured) as exc:
            await notifier.send_reminder(workspace)

        assert exc.value.status_code == 503
        assert await get_email_log_repository().list_for_workspace(workspace.id) == []


class TestPrompts:

    @pytest.mark.asyncio
    async def test_prompt_goes_to_active_members(self, workspace, registry, runtime_config):
        members = await add_team(registry, workspace.id)
        await registry.deactivate_member(workspace.id, members[0].id)
        await registry.update_settings(workspace.id, {"email_from_name": "Bea"})
        session = fake_session()
        notifier = NotificationScheduler(runtime_config, sender=fake_sender(session), registry=registry)

        batch = await notifier.send_prompt(workspace)

        assert (batch.sent, batch.total) == (4, 4)
        to_email, subject, body = session.send.await_args_list[0].args
        assert subject == "Weekly Feedback Time"
        assert "https://feedback.kubapay.com/" in body
        assert session.send.await_args_list[0].kwargs["from_name"] == "Bea"

    @pytest.mark.asyncio
    async def test_no_active_members(self, workspace, registry, runtime_config):
        notifier = NotificationScheduler(runtime_config, sender=fake_sender(fake_session()), registry=registry)

        batch = await notifier.send_prompt(workspace)

        assert batch.message == "No active team members"
        assert batch.to_dict()["errors"] == []


class TestChase:

    @pytest.mark.asyncio
    async def test_overrides_substitute_placeholders(self, workspace, registry, runtime_config):
        await registry.add_member(workspace.id, "ana@kubapay.com", "Ana Lopez")
        session = fake_session()
        notifier = NotificationScheduler(runtime_config, sender=fake_sender(session), registry=registry)

        result = await notifier.send_chase(
            workspace, "ANA@kubapay.com", subject="Hey $first_name", body="Form: $form_url",
        )

        assert result.success
        to_email, subject, body = session.send.await_args.args
        assert (to_email, subject, body) == ("ana@kubapay.com", "Hey Ana", "Form: https://feedback.kubapay.com/")
        logs = await get_email_log_repository().list_for_workspace(workspace.id)
        assert [log.email_type for log in logs] == ["chase"]

    @pytest.mark.asyncio
    async def test_unknown_template_uses_reminder(self, workspace, registry, runtime_config):
        session = fake_session()
        notifier = NotificationScheduler(runtime_config, sender=fake_sender(session), registry=registry)

        await notifier.send_chase(workspace, "new@kubapay.com", template="digest")

        _, subject, body = session.send.await_args.args
        assert subject == "Reminder: Weekly Feedback Due Today"
        assert body.startswith("Hi there,")

    @pytest.mark.asyncio
    async def test_failed_send_is_returned(self, workspace, registry, runtime_config):
        session = fake_session(reject={"ana@kubapay.com"})
        notifier = NotificationScheduler(runtime_config, sender=fake_sender(session), registry=registry)

        result = await notifier.send_chase(workspace, "ana@kubapay.com")

        assert not result.success
        assert result.error == "Invalid To header"

    @pytest.mark.asyncio
    async def test_bulk_chase_dedupes(self, workspace, registry, runtime_config):
        session = fake_session()
        notifier = NotificationScheduler(runtime_config, sender=fake_sender(session), registry=registry)

        batch = await notifier.send_bulk_chase(
            workspace, ["ana@kubapay.com", "ANA@kubapay.com", "ben@kubapay.com"],
        )

        assert (batch.sent, batch.total) == (2, 2)
        logs = await get_email_log_repository().list_for_workspace(workspace.id)
        assert {log.email_type for log in logs} == {"bulk_chase"}

    @pytest.mark.asyncio
    async def test_bulk_chase_defaults_to_pending(self, workspace, registry, runtime_config):
        await add_team(registry, workspace.id)
        notifier = NotificationScheduler(runtime_config, sender=fake_sender(fake_session()), registry=registry)

        batch = await notifier.send_bulk_chase(workspace)

        assert batch.total == 5


class TestBatchResult:

    def test_record_and_to_dict(self):
        batch = BatchResult(total=2)
        batch.record("a@kubapay.com", SendResult(success=True, message_id="1"))
        batch.record("b@kubapay.com", SendResult(success=False))

        assert batch.to_dict()["errors"] == [{"email": "b@kubapay.com", "error": "unknown error"}]
        assert (batch.sent, batch.failed) == (1, 1)
