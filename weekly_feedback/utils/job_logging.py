"""
Structured log lines for email sends and scheduled jobs.

Keeps the per-recipient and per-batch messages in one format so batch runs
can be grepped by workspace and job.
"""

import logging
from typing import Optional

logger = logging.getLogger("weekly_feedback.jobs")


def log_email_operation(
    workspace_id: str,
    email_type: str,
    recipient: str,
    success: bool,
    message_id: Optional[str] = None,
    error: Optional[str] = None,
) -> None:
    """One line per recipient."""
    if success:
        logger.info(
            f"[email:{email_type}] workspace={workspace_id} to={recipient} "
            f"status=sent message_id={message_id or '-'}"
        )
    else:
        logger.warning(
            f"[email:{email_type}] workspace={workspace_id} to={recipient} "
            f"status=failed error={error or 'unknown'}"
        )


def log_scheduled_job(
    job_id: str,
    workspace_id: Optional[str],
    sent: int = 0,
    failed: int = 0,
    total: int = 0,
    skipped: bool = False,
    note: str = "",
) -> None:
    """Summary line per workspace for a batch run."""
    scope = workspace_id or "all"
    if skipped:
        logger.info(f"[job:{job_id}] workspace={scope} skipped {note}".rstrip())
        return

    level = logging.WARNING if failed else logging.INFO
    logger.log(
        level,
        f"[job:{job_id}] workspace={scope} sent={sent} failed={failed} total={total} {note}".rstrip(),
    )
