from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import List, Optional

import logging

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from opscadence.clock import Clock, system_clock
from opscadence.constants.statuses import InstanceStatus
from opscadence.models.cadence import Cadence
from opscadence.models.instance import Instance
from opscadence.schemas.schedule import ScheduleConfig
from opscadence.services.occurrences import compute_occurrences, local_date

log = logging.getLogger(__name__)


@dataclass
class GenerationReport:
    """Outcome of generating one cadence's instances."""

    cadence_id: int
    cadence_name: str
    created: List[Instance] = field(default_factory=list)
    existing: int = 0
    errors: List[str] = field(default_factory=list)


class InstanceGenerator:
    """
    Materializes a cadence's upcoming occurrences as pending instances.

    Idempotent: occurrences that already have an instance are skipped, and the
    (cadence_id, scheduled_for) unique constraint turns a lost check-then-insert
    race into "already exists". Every instance is committed on its own so a
    failed insert never takes earlier ones down with it.
    """

    def __init__(self, db: Session, clock: Clock = system_clock):
        self.db = db
        self.clock = clock

    def _existing_slots(self, cadence_id: int, window_start: datetime, window_end: datetime) -> set:
        rows = self.db.query(Instance.scheduled_for).filter(
            Instance.cadence_id == cadence_id,
            Instance.scheduled_for >= window_start,
            Instance.scheduled_for < window_end,
        ).all()
        return {row.scheduled_for for row in rows}

    def _build_instance(self, cadence: Cadence, schedule: ScheduleConfig, scheduled_for: datetime, now: datetime) -> Instance:
        return Instance(
            workspace_id=cadence.workspace_id,
            cadence_id=cadence.id,
            form_id=cadence.form_id,
            instance_name=f"{cadence.name} - {local_date(scheduled_for, schedule.timezone).isoformat()}",
            scheduled_for=scheduled_for,
            due_at=scheduled_for + schedule.completion_window,
            status=InstanceStatus.PENDING.value,
            assigned_to=list(cadence.assigned_to or []),
            extra_metadata={
                "generated_at": now.isoformat(),
                "timezone": schedule.timezone,
                "source": "cadence",
            },
            created_at=now,
            updated_at=now,
        )

    def generate(self, cadence: Cadence, lookahead_hours: float, now: Optional[datetime] = None) -> GenerationReport:
        """
        Create the instances due in [now, now + lookahead_hours) that do not exist yet.

        Raises pydantic.ValidationError if the stored schedule is malformed and
        SQLAlchemyError if the existence lookup fails; per-instance insert
        failures are reported, not raised.
        """
        now = now or self.clock.now()
        report = GenerationReport(cadence_id=cadence.id, cadence_name=cadence.name)

        if not cadence.is_active:
            log.debug(f"Skipping inactive cadence {cadence.id} ({cadence.name})")
            return report

        schedule = ScheduleConfig.model_validate(cadence.schedule_config)
        window_end = now + timedelta(hours=lookahead_hours)
        occurrences = compute_occurrences(schedule, now, window_end)
        log.info(f"Cadence {cadence.id} ({cadence.name}): {len(occurrences)} occurrences in next {lookahead_hours}h")
        if not occurrences:
            return report

        existing = self._existing_slots(cadence.id, now, window_end)
        # Build everything up front: a rollback below expires the cadence object
        pending = []
        for scheduled_for in occurrences:
            if scheduled_for in existing:
                log.debug(f"Instance already exists for cadence {cadence.id} at {scheduled_for.isoformat()}, skipping")
                report.existing += 1
                continue
            pending.append(self._build_instance(cadence, schedule, scheduled_for, now))

        for instance in pending:
            slot = instance.scheduled_for.isoformat()
            try:
                self.db.add(instance)
                self.db.commit()
            except IntegrityError:
                self.db.rollback()
                log.debug(f"Instance for cadence {report.cadence_id} at {slot} created concurrently, treating as existing")
                report.existing += 1
                continue
            except SQLAlchemyError as e:
                self.db.rollback()
                log.error(f"Failed to create instance for cadence {report.cadence_id} at {slot}: {e}", exc_info=True)
                report.errors.append(f"{slot}: {e}")
                continue
            log.info(f"Created instance: {instance.instance_name} (ID: {instance.id})")
            report.created.append(instance)

        log.info(
            f"Cadence {report.cadence_id}: created {len(report.created)}, "
            f"existing {report.existing}, failed {len(report.errors)}"
        )
        return report
