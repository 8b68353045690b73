"""Trigger endpoints for the periodic cron provider (and manual runs)."""

from typing import Annotated, Optional
import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from opscadence.auth import get_current_active_user, verify_cron_request
from opscadence.clock import Clock, get_clock
from opscadence.config import settings
from opscadence.constants.statuses import TriggerType
from opscadence.database import get_db
from opscadence.scheduler import GENERATION_JOB_ID, STATUS_SWEEP_JOB_ID, compute_next_runs
from opscadence.schemas.auth import User
from opscadence.schemas.engine import CronJobInfo, CronJobsResponse, GenerationRunResult, StatusSweepResult
from opscadence.services.batch_runner import BatchRunner

log = logging.getLogger(__name__)
router = APIRouter()


def _trigger_type(manual: bool) -> TriggerType:
    return TriggerType.MANUAL if manual else TriggerType.CRON


@router.api_route("/generate-instances", methods=["GET", "POST"], response_model=GenerationRunResult)
async def generate_instances(
    lookahead_hours: Optional[float] = Query(None, gt=0),
    manual: bool = Query(False, description="Record the run as an operator-initiated manual run"),
    source: str = Depends(verify_cron_request),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    """Generate upcoming instances for every active cadence. Safe to call repeatedly."""
    if lookahead_hours is not None and lookahead_hours > settings.max_lookahead_hours:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"lookahead_hours must not exceed {settings.max_lookahead_hours}"
        )
    log.info(f"Instance generation triggered via {source}{' (manual)' if manual else ''}")
    return BatchRunner(db, clock).run_generation(lookahead_hours, trigger_type=_trigger_type(manual))


@router.api_route("/update-instance-status", methods=["GET", "POST"], response_model=StatusSweepResult)
async def update_instance_status(
    manual: bool = Query(False, description="Record the run as an operator-initiated manual run"),
    source: str = Depends(verify_cron_request),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    """Sweep instance statuses: pending -> ready, ready/in_progress -> missed."""
    log.info(f"Instance status sweep triggered via {source}")
    return BatchRunner(db, clock).run_status_sweep(trigger_type=_trigger_type(manual))


@router.get("/jobs", response_model=CronJobsResponse)
async def read_jobs(
    clock: Clock = Depends(get_clock),
    current_user: Annotated[User, Depends(get_current_active_user)] = None
):
    """Configured engine crons and their next run times."""
    now = clock.now()
    return CronJobsResponse(
        scheduler_enabled=settings.scheduler_enabled,
        jobs=[
            CronJobInfo(
                job_id=GENERATION_JOB_ID,
                cron=settings.generation_cron,
                next_runs=compute_next_runs(settings.generation_cron, now=now),
            ),
            CronJobInfo(
                job_id=STATUS_SWEEP_JOB_ID,
                cron=settings.status_sweep_cron,
                next_runs=compute_next_runs(settings.status_sweep_cron, now=now),
            ),
        ],
    )
