"""
Scheduler manager for the weekly email cycle.

Jobs:
- Weekly prompt (default Wednesday 9 AM) to every active member
- Weekly reminder (default Thursday 5 PM) to members who have not submitted

Each run resolves a fresh RuntimeConfig, walks the active workspaces and
skips any workspace whose settings disable that cycle.
"""

import logging
from datetime import datetime
from typing import Optional, Dict, Any

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
import pytz

from config import settings
from ..exceptions import EmailNotConfigured
from ..runtime import RuntimeConfig
from ..services.notifications import NotificationScheduler
from ..services.tenancy import TenantRegistry
from ..utils.job_logging import log_scheduled_job

logger = logging.getLogger(__name__)

WEEKLY_PROMPT = "weekly_prompt"
WEEKLY_REMINDER = "weekly_reminder"

# job id -> (settings flag, notifier method)
CYCLES = {
    WEEKLY_PROMPT: ("weekly_prompt_enabled", "send_prompt"),
    WEEKLY_REMINDER: ("weekly_reminder_enabled", "send_reminder"),
}


class SchedulerManager:
    """
    Manages the scheduled email jobs.
    """

    def __init__(self):
        self.scheduler: Optional[AsyncIOScheduler] = None
        self.timezone = pytz.timezone(settings.timezone)

    def start(self) -> None:
        """Start the scheduler with both weekly jobs."""
        self.scheduler = AsyncIOScheduler(timezone=self.timezone)

        self.scheduler.add_job(
            self._weekly_prompt_job,
            CronTrigger(
                day_of_week=settings.prompt_day,
                hour=settings.prompt_hour,
                minute=0,
                timezone=self.timezone
            ),
            id=WEEKLY_PROMPT,
            name="Weekly Feedback Prompt",
            replace_existing=True
        )

        self.scheduler.add_job(
            self._weekly_reminder_job,
            CronTrigger(
                day_of_week=settings.reminder_day,
                hour=settings.reminder_hour,
                minute=0,
                timezone=self.timezone
            ),
            id=WEEKLY_REMINDER,
            name="Weekly Feedback Reminder",
            replace_existing=True
        )

        self.scheduler.start()
        logger.info(
            f"Scheduler started: prompt {settings.prompt_day} {settings.prompt_hour}:00, "
            f"reminder {settings.reminder_day} {settings.reminder_hour}:00 ({settings.timezone})"
        )

    def stop(self) -> None:
        """Stop the scheduler."""
        if self.scheduler:
            self.scheduler.shutdown()
            logger.info("Scheduler stopped")

    async def _weekly_prompt_job(self) -> Dict[str, Any]:
        return await self.run_cycle(WEEKLY_PROMPT)

    async def _weekly_reminder_job(self) -> Dict[str, Any]:
        return await self.run_cycle(WEEKLY_REMINDER)

    async def run_cycle(self, job_id: str, config: Optional[RuntimeConfig] = None) -> Dict[str, Any]:
        """
        Run one cycle across all active workspaces.

        Returns:
            Per-workspace results keyed by workspace id
        """
        flag, method = CYCLES[job_id]
        config = config or RuntimeConfig.from_settings()
        registry = TenantRegistry(config)
        notifier = NotificationScheduler(config, registry=registry)

        logger.info(f"Running {job_id} job")
        results: Dict[str, Any] = {}

        try:
            workspaces = await registry.workspaces.list_all(active_only=True)
        except Exception as e:
            logger.error(f"Error loading workspaces for {job_id}: {e}", exc_info=True)
            return results

        for workspace in workspaces:
            try:
                workspace_settings = await registry.get_settings(workspace.id)
                if not getattr(workspace_settings, flag):
                    log_scheduled_job(job_id, workspace.id, skipped=True, note="(disabled)")
                    results[workspace.id] = {"skipped": True}
                    continue

                batch = await getattr(notifier, method)(workspace)
                log_scheduled_job(
                    job_id, workspace.id,
                    sent=batch.sent, failed=batch.failed, total=batch.total, note=batch.message,
                )
                results[workspace.id] = batch.to_dict()

            except EmailNotConfigured as e:
                logger.error(f"{job_id}: email not configured, stopping run: {e.message}")
                results[workspace.id] = {"error": e.code}
                break
            except Exception as e:
                logger.error(f"Error in {job_id} for workspace {workspace.id}: {e}", exc_info=True)
                results[workspace.id] = {"error": str(e)}

        logger.info(f"{job_id} job completed for {len(results)} workspaces")
        return results

    def trigger_job(self, job_id: str) -> bool:
        """Manually trigger a job."""
        if not self.scheduler:
            return False

        job = self.scheduler.get_job(job_id)
        if job:
            job.modify(next_run_time=datetime.now(self.timezone))
            return True

        return False

    def get_job_status(self) -> dict:
        """Get status of all scheduled jobs."""
        if not self.scheduler:
            return {}

        jobs = {}
        for job in self.scheduler.get_jobs():
            jobs[job.id] = {
                "name": job.name,
                "next_run": job.next_run_time.isoformat() if job.next_run_time else None,
                "trigger": str(job.trigger)
            }

        return jobs


# Singleton instance
scheduler_manager = SchedulerManager()


def get_scheduler_manager() -> SchedulerManager:
    """Get the scheduler manager instance."""
    return scheduler_manager
