"""APScheduler integration for in-process generation and status sweep triggers.

Optional: production deployments usually call the /cron endpoints from an
external cron provider instead. Both paths run the same BatchRunner, and both
are safe to overlap because generation is idempotent and the sweep uses
compare-and-set updates.
"""

import logging
from datetime import datetime, timezone
from typing import List

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from croniter import croniter

from opscadence.config import settings
from opscadence.constants.statuses import TriggerType
from opscadence.database import SessionLocal
from opscadence.services.batch_runner import BatchRunner

log = logging.getLogger(__name__)

GENERATION_JOB_ID = "generation_job"
STATUS_SWEEP_JOB_ID = "status_sweep_job"

# Global scheduler instance
scheduler = AsyncIOScheduler(timezone="UTC")


async def scheduled_generation_job():
    """Generate upcoming instances for every active cadence."""
    db = SessionLocal()
    try:
        result = BatchRunner(db).run_generation(trigger_type=TriggerType.SCHEDULED)
        log.info(f"Scheduled generation run #{result.run_id}: processed={result.processed}, generated={result.generated}")
    except Exception as e:
        log.error(f"Scheduled generation failed: {e}", exc_info=True)
    finally:
        db.close()


async def scheduled_status_sweep_job():
    """Advance instance statuses from wall-clock time."""
    db = SessionLocal()
    try:
        result = BatchRunner(db).run_status_sweep(trigger_type=TriggerType.SCHEDULED)
        log.info(f"Scheduled status sweep run #{result.run_id}: updated={result.updated_count}")
    except Exception as e:
        log.error(f"Scheduled status sweep failed: {e}", exc_info=True)
    finally:
        db.close()


JOBS = {
    GENERATION_JOB_ID: (scheduled_generation_job, lambda: settings.generation_cron),
    STATUS_SWEEP_JOB_ID: (scheduled_status_sweep_job, lambda: settings.status_sweep_cron),
}


def compute_next_runs(cron: str, count: int = 3, now: datetime = None) -> List[str]:
    """Compute next N UTC run times from a cron expression."""
    try:
        iter_obj = croniter(cron, now or datetime.now(timezone.utc))
        return [iter_obj.get_next(datetime).isoformat() for _ in range(count)]
    except Exception as e:
        log.warning(f"Failed to compute next runs for '{cron}': {e}")
        return []


def reschedule_job(job_id: str, cron: str):
    """Replace the trigger of one engine job without restarting the app."""
    func, _ = JOBS[job_id]
    if scheduler.get_job(job_id):
        scheduler.remove_job(job_id)
        log.info(f"Removed existing job: {job_id}")
    try:
        trigger = CronTrigger.from_crontab(cron, timezone="UTC")
    except ValueError as e:
        log.error(f"Failed to schedule job {job_id} with cron '{cron}': {e}")
        raise
    scheduler.add_job(
        func,
        trigger=trigger,
        id=job_id,
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )
    log.info(f"Scheduled {job_id}: cron='{cron}'")


def start_scheduler():
    """Register both engine jobs and start the APScheduler."""
    for job_id, (_, cron) in JOBS.items():
        reschedule_job(job_id, cron())

    if not scheduler.running:
        scheduler.start()
        log.info("APScheduler started successfully")


def shutdown_scheduler():
    """Shutdown the APScheduler gracefully."""
    if scheduler.running:
        scheduler.shutdown(wait=True)
        log.info("APScheduler shut down successfully")
