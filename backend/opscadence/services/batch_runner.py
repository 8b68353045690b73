from datetime import datetime
from typing import Optional

import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from opscadence.clock import Clock, system_clock
from opscadence.config import settings
from opscadence.constants.statuses import RunKind, RunStatus, TriggerType
from opscadence.models.cadence import Cadence
from opscadence.models.engine_run import EngineRun
from opscadence.schemas.engine import (
    CadenceGenerationResult,
    GenerationRunResult,
    ItemError,
    StatusSweepResult,
)
from opscadence.services.instance_generator import InstanceGenerator
from opscadence.services.status_updater import StatusUpdater

log = logging.getLogger(__name__)


class BatchRunner:
    """
    Drives the instance generator over every active cadence and the status
    updater over every workspace.

    Each entry point runs to completion and always returns a result object:
    a failing cadence or instance is recorded and the batch moves on. Nothing
    is retried here; the next trigger picks up whatever was left behind.
    """

    def __init__(
        self,
        db: Session,
        clock: Clock = system_clock,
        generator: Optional[InstanceGenerator] = None,
        updater: Optional[StatusUpdater] = None,
    ):
        self.db = db
        self.clock = clock
        self.generator = generator or InstanceGenerator(db, clock)
        self.updater = updater or StatusUpdater(db, clock)

    def _start_run(self, kind: RunKind, trigger_type: TriggerType, now: datetime) -> Optional[EngineRun]:
        try:
            run = EngineRun(
                kind=kind.value,
                trigger_type=trigger_type.value,
                start_time=now,
                status=RunStatus.RUNNING.value,
            )
            self.db.add(run)
            self.db.commit()
            return run
        except SQLAlchemyError as e:
            self.db.rollback()
            log.error(f"Could not record {kind.value} run start: {e}")
            return None

    def _finish_run(
        self,
        run: Optional[EngineRun],
        processed: int,
        changed: int,
        failed: int,
        error_message: Optional[str],
        details: dict,
        fatal: bool = False,
    ) -> Optional[int]:
        if run is None:
            return None
        try:
            if fatal:
                run.status = RunStatus.FAILED.value
            elif failed:
                run.status = RunStatus.PARTIAL.value
            else:
                run.status = RunStatus.COMPLETED.value
            run.end_time = self.clock.now()
            run.items_processed = processed
            run.items_changed = changed
            run.items_failed = failed
            run.error_message = error_message
            run.details = details
            self.db.commit()
            return run.id
        except SQLAlchemyError as e:
            self.db.rollback()
            log.error(f"Could not record run completion: {e}")
            return None

    def run_generation(
        self,
        lookahead_hours: Optional[float] = None,
        trigger_type: TriggerType = TriggerType.SCHEDULED,
    ) -> GenerationRunResult:
        """Generate upcoming instances for all active cadences."""
        if lookahead_hours is None:
            lookahead_hours = settings.generation_lookahead_hours
        now = self.clock.now()
        result = GenerationRunResult(lookahead_hours=lookahead_hours)
        run = self._start_run(RunKind.GENERATION, trigger_type, now)

        log.info(f"Starting instance generation (lookahead {lookahead_hours}h, trigger: {trigger_type.value})")

        try:
            cadences = self.db.query(Cadence).filter(Cadence.is_active == True).order_by(Cadence.id).all()
            # Plain tuples: per-instance rollbacks expire ORM state mid-batch
            targets = [(c.id, c.name) for c in cadences]
        except SQLAlchemyError as e:
            self.db.rollback()
            log.error(f"Failed to fetch cadences: {e}", exc_info=True)
            result.errors.append(ItemError(item_type="batch", message=f"Failed to fetch cadences: {e}"))
            result.run_id = self._finish_run(run, 0, 0, 1, str(e), result.model_dump(mode="json"), fatal=True)
            return result

        if not targets:
            log.info("No active cadences found")

        for cadence_id, cadence_name in targets:
            entry = CadenceGenerationResult(cadence_id=cadence_id, cadence_name=cadence_name)
            try:
                cadence = self.db.get(Cadence, cadence_id)
                if cadence is None or not cadence.is_active:
                    log.info(f"Cadence {cadence_id} removed or deactivated during run, skipping")
                    continue
                report = self.generator.generate(cadence, lookahead_hours, now=now)
                entry.instances_generated = len(report.created)
                entry.instances_existing = report.existing
                entry.item_errors = report.errors
                for message in report.errors:
                    result.errors.append(ItemError(item_type="instance", item_id=cadence_id, message=message))
                log.info(f"Generated {entry.instances_generated} instances for: {cadence_name}")
            except Exception as e:
                self.db.rollback()
                log.error(f"Error generating instances for cadence {cadence_id} ({cadence_name}): {e}", exc_info=True)
                entry.error = str(e)
                result.failed += 1
                result.errors.append(ItemError(item_type="cadence", item_id=cadence_id, message=str(e)))
            finally:
                result.processed += 1
                result.generated += entry.instances_generated
                result.results.append(entry)

        log.info(
            f"Generation complete: processed={result.processed}, generated={result.generated}, "
            f"failed={result.failed}"
        )
        result.run_id = self._finish_run(
            run,
            processed=result.processed,
            changed=result.generated,
            failed=len(result.errors),
            error_message=result.errors[0].message if result.errors else None,
            details={"lookahead_hours": lookahead_hours, "results": [r.model_dump(mode="json") for r in result.results]},
        )
        return result

    def run_status_sweep(self, trigger_type: TriggerType = TriggerType.SCHEDULED) -> StatusSweepResult:
        """Advance instance statuses against a single `now` snapshot."""
        now = self.clock.now()
        result = StatusSweepResult()
        run = self._start_run(RunKind.STATUS_SWEEP, trigger_type, now)

        log.info(f"Starting instance status sweep at {now.isoformat()} (trigger: {trigger_type.value})")

        try:
            report = self.updater.sweep(now=now)
        except SQLAlchemyError as e:
            self.db.rollback()
            log.error(f"Status sweep failed: {e}", exc_info=True)
            result.errors.append(ItemError(item_type="batch", message=f"Status sweep failed: {e}"))
            result.run_id = self._finish_run(run, 0, 0, 1, str(e), result.model_dump(mode="json"), fatal=True)
            return result

        result.updated_count = report.updated_count
        result.ready_count = report.ready
        result.missed_count = report.missed
        for instance_id, message in zip(report.failed_ids, report.errors):
            result.errors.append(ItemError(item_type="instance", item_id=instance_id, message=message))

        log.info(f"Status sweep complete: updated={result.updated_count} (ready={report.ready}, missed={report.missed})")
        result.run_id = self._finish_run(
            run,
            processed=report.ready + report.missed + len(report.errors),
            changed=result.updated_count,
            failed=len(report.errors),
            error_message=report.errors[0] if report.errors else None,
            details={"ready": report.ready, "missed": report.missed, "now": now.isoformat()},
        )
        return result
