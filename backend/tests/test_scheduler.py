from datetime import datetime, timezone
from unittest.mock import patch

import pytest

from opscadence import scheduler as scheduler_module
from opscadence.models.engine_run import EngineRun
from opscadence.scheduler import (
    GENERATION_JOB_ID,
    STATUS_SWEEP_JOB_ID,
    compute_next_runs,
    reschedule_job,
    scheduler,
)

NOW = datetime(2026, 3, 2, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def clean_scheduler():
    yield scheduler
    scheduler.remove_all_jobs()


def test_compute_next_runs_hourly():
    assert compute_next_runs("0 * * * *", now=NOW) == [
        "2026-03-02T13:00:00+00:00",
        "2026-03-02T14:00:00+00:00",
        "2026-03-02T15:00:00+00:00",
    ]


def test_compute_next_runs_invalid_cron():
    assert compute_next_runs("not a cron", now=NOW) == []


def test_reschedule_job_replaces_trigger(clean_scheduler):
    reschedule_job(GENERATION_JOB_ID, "0 * * * *")
    reschedule_job(GENERATION_JOB_ID, "30 2 * * *")

    jobs = [job for job in scheduler.get_jobs() if job.id == GENERATION_JOB_ID]
    assert len(jobs) == 1
    assert jobs[0].max_instances == 1
    assert jobs[0].coalesce is True


def test_reschedule_job_rejects_bad_cron(clean_scheduler):
    with pytest.raises(ValueError):
        reschedule_job(STATUS_SWEEP_JOB_ID, "every five minutes")


@pytest.mark.asyncio
async def test_scheduled_generation_job_records_run(db, session_factory, make_cadence):
    make_cadence()
    with patch.object(scheduler_module, "SessionLocal", session_factory):
        await scheduler_module.scheduled_generation_job()

    run = db.query(EngineRun).one()
    assert run.kind == "generation"
    assert run.trigger_type == "scheduled"


@pytest.mark.asyncio
async def test_scheduled_status_sweep_job_records_run(db, session_factory):
    with patch.object(scheduler_module, "SessionLocal", session_factory):
        await scheduler_module.scheduled_status_sweep_job()

    run = db.query(EngineRun).one()
    assert run.kind == "status_sweep"
    assert run.status == "completed"


@pytest.mark.asyncio
async def test_scheduled_job_swallows_errors(session_factory):
    with patch.object(scheduler_module, "SessionLocal", session_factory), \
            patch.object(scheduler_module, "BatchRunner", side_effect=RuntimeError("boom")):
        await scheduler_module.scheduled_generation_job()
