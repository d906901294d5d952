"""
Notification scheduler.

Sends the weekly prompt, the reminder to pending members, and manual chases.

Each recipient is an independent unit: build the message, send it, and
record an email log row. A failure for one recipient (including a failed
log insert) is counted and the batch continues. One Gmail session is opened
per batch; missing credentials fail the whole batch with EmailNotConfigured.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional, List, Tuple, Iterable

from ..database.models import WorkspaceDB, EmailTypeEnum, EmailStatusEnum
from ..database.repositories import EmailLogRepository, get_email_log_repository, get_member_repository
from ..integrations.gmail import GmailSender, GmailSession, SendResult
from ..runtime import RuntimeConfig
from ..utils.email_templates import render_email
from ..utils.job_logging import log_email_operation
from ..utils.validation import first_name_of, normalize_email
from .submissions import SubmissionStore
from .tenancy import TenantRegistry

logger = logging.getLogger(__name__)

CHASE_TEMPLATES = ("prompt", "reminder")


@dataclass
class Recipient:
    email: str
    name: str = ""
    first_name: Optional[str] = None

    @property
    def greeting_name(self) -> str:
        return first_name_of(self.name, self.first_name)


@dataclass
class BatchResult:
    sent: int = 0
    failed: int = 0
    total: int = 0
    errors: List[Tuple[str, str]] = field(default_factory=list)
    message: str = ""

    def record(self, email: str, result: SendResult) -> None:
        if result.success:
            self.sent += 1
        else:
            self.failed += 1
            self.errors.append((email, result.error or "unknown error"))

    def to_dict(self) -> dict:
        return {
            "sent": self.sent,
            "failed": self.failed,
            "total": self.total,
            "errors": [{"email": email, "error": error} for email, error in self.errors],
            "message": self.message,
        }


class NotificationScheduler:
    """Prompt, reminder and chase emails for one workspace at a time."""

    def __init__(
        self,
        config: RuntimeConfig,
        sender: Optional[GmailSender] = None,
        email_logs: Optional[EmailLogRepository] = None,
        store: Optional[SubmissionStore] = None,
        registry: Optional[TenantRegistry] = None,
    ):
        self.config = config
        self.sender = sender or GmailSender(config)
        self.email_logs = email_logs or get_email_log_repository()
        self.registry = registry or TenantRegistry(config)
        self.store = store or SubmissionStore(config, registry=self.registry)

    async def _sender_name(self, workspace: WorkspaceDB) -> str:
        settings = await self.registry.get_settings(workspace.id)
        return settings.email_from_name or "Weekly Feedback"

    async def _deliver(
        self,
        session: GmailSession,
        workspace: WorkspaceDB,
        recipient: Recipient,
        email_type: str,
        template: str,
        sender_name: str,
        subject: Optional[str] = None,
        body: Optional[str] = None,
    ) -> SendResult:
        """Build, send and log one email. Never raises."""
        try:
            message = render_email(
                template,
                recipient.greeting_name,
                self.config.form_url,
                sender_name,
                subject=subject,
                body=body,
            )
        except Exception as e:
            result = SendResult(success=False, error=f"Could not build message: {e}")
            log_email_operation(workspace.id, email_type, recipient.email, False, error=result.error)
            return result

        result = await session.send(recipient.email, message.subject, message.body, from_name=sender_name)

        try:
            await self.email_logs.create(
                workspace_id=workspace.id,
                recipient_email=recipient.email,
                recipient_name=recipient.name or None,
                email_type=email_type,
                subject=message.subject,
                body=message.body,
                status=EmailStatusEnum.SENT.value if result.success else EmailStatusEnum.FAILED.value,
                message_id=result.message_id,
                error_message=result.error,
                sent_at=self.registry.now(),
            )
        except Exception as e:
            logger.error(f"Failed to record email log for {recipient.email}: {e}", exc_info=True)
            result = SendResult(
                success=False,
                message_id=result.message_id,
                error=f"Email log write failed: {e}",
            )

        log_email_operation(
            workspace.id, email_type, recipient.email, result.success,
            message_id=result.message_id, error=result.error,
        )
        return result

    async def _send_batch(
        self,
        workspace: WorkspaceDB,
        recipients: List[Recipient],
        email_type: str,
        template: str,
        subject: Optional[str] = None,
        body: Optional[str] = None,
    ) -> BatchResult:
        batch = BatchResult(total=len(recipients))
        if not recipients:
            return batch

        # Raises EmailNotConfigured before any recipient is attempted
        session = await self.sender.open_session(workspace.manager_email)
        sender_name = await self._sender_name(workspace)

        for recipient in recipients:
            result = await self._deliver(
                session, workspace, recipient, email_type, template, sender_name, subject, body
            )
            batch.record(recipient.email, result)

        batch.message = f"Sent {batch.sent} of {batch.total} emails"
        if batch.failed:
            batch.message += f" ({batch.failed} failed)"
        logger.info(f"{email_type} batch for workspace {workspace.id}: {batch.message}")
        return batch

    async def _pending_recipients(self, workspace: WorkspaceDB) -> List[Recipient]:
        status = await self.store.get_weekly_status(workspace.id)
        return [
            Recipient(email=m.email, name=m.name, first_name=m.first_name)
            for m in status.pending_members
        ]

    async def send_prompt(self, workspace: WorkspaceDB) -> BatchResult:
        """Weekly prompt to every active member."""
        members = await self.registry.list_members(workspace.id)
        recipients = [Recipient(email=m.email, name=m.name, first_name=m.first_name) for m in members]

        batch = await self._send_batch(workspace, recipients, EmailTypeEnum.PROMPT.value, "prompt")
        if not recipients:
            batch.message = "No active team members"
        return batch

    async def send_reminder(self, workspace: WorkspaceDB) -> BatchResult:
        """Reminder to members without a submission for the current period."""
        recipients = await self._pending_recipients(workspace)

        batch = await self._send_batch(workspace, recipients, EmailTypeEnum.REMINDER.value, "reminder")
        if not recipients:
            batch.message = "Everyone has already submitted"
        return batch

    async def _recipient_for(self, workspace: WorkspaceDB, email: str) -> Recipient:
        email = normalize_email(email)
        member = await get_member_repository().get_by_email(workspace.id, email)
        if member is None:
            return Recipient(email=email)
        return Recipient(email=member.email, name=member.name, first_name=member.first_name)

    async def send_chase(
        self,
        workspace: WorkspaceDB,
        email: str,
        template: str = "reminder",
        subject: Optional[str] = None,
        body: Optional[str] = None,
    ) -> SendResult:
        """
        Manual single-recipient send.

        Raises:
            EmailNotConfigured: no usable Gmail credentials
        """
        if template not in CHASE_TEMPLATES:
            template = "reminder"

        recipient = await self._recipient_for(workspace, email)
        session = await self.sender.open_session(workspace.manager_email)
        sender_name = await self._sender_name(workspace)

        return await self._deliver(
            session, workspace, recipient, EmailTypeEnum.CHASE.value, template, sender_name, subject, body
        )

    async def send_bulk_chase(
        self,
        workspace: WorkspaceDB,
        emails: Optional[Iterable[str]] = None,
        subject: Optional[str] = None,
        body: Optional[str] = None,
    ) -> BatchResult:
        """Chase the given addresses, or every pending member when none are given."""
        if emails is None:
            recipients = await self._pending_recipients(workspace)
        else:
            seen = set()
            recipients = []
            for email in emails:
                key = normalize_email(email)
                if key and key not in seen:
                    seen.add(key)
                    recipients.append(await self._recipient_for(workspace, key))

        batch = await self._send_batch(
            workspace, recipients, EmailTypeEnum.BULK_CHASE.value, "reminder", subject, body
        )
        if not recipients:
            batch.message = "Everyone has already submitted" if emails is None else "No recipients"
        return batch
