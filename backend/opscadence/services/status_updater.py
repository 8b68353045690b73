from dataclasses import dataclass, field
from datetime import datetime
from typing import FrozenSet, List, Optional, Set

import logging

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from opscadence.clock import Clock, system_clock
from opscadence.constants.statuses import InstanceStatus, SWEEP_TRANSITIONS
from opscadence.models.instance import Instance

log = logging.getLogger(__name__)


@dataclass
class SweepReport:
    ready: int = 0
    missed: int = 0
    transitioned_ids: Set[int] = field(default_factory=set)
    errors: List[str] = field(default_factory=list)
    failed_ids: List[int] = field(default_factory=list)

    @property
    def updated_count(self) -> int:
        return len(self.transitioned_ids)


class StatusUpdater:
    """
    Ages instances from wall-clock time.

    pending -> ready once scheduled_for <= now, then ready/in_progress -> missed
    once due_at <= now. Every row is judged against the same `now` and updated
    with a compare-and-set on its current status, so user transitions that land
    mid-sweep (completed, skipped) are never overwritten.
    """

    def __init__(self, db: Session, clock: Clock = system_clock):
        self.db = db
        self.clock = clock

    def _candidates(self, sources: FrozenSet[InstanceStatus], column, now: datetime) -> List[int]:
        rows = self.db.query(Instance.id).filter(
            Instance.status.in_([s.value for s in sources]),
            column <= now,
        ).order_by(Instance.id).all()
        return [row.id for row in rows]

    def _transition(self, instance_id: int, sources: FrozenSet[InstanceStatus], target: InstanceStatus, now: datetime) -> bool:
        result = self.db.execute(
            update(Instance)
            .where(Instance.id == instance_id, Instance.status.in_([s.value for s in sources]))
            .values(status=target.value, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        self.db.commit()
        return result.rowcount == 1

    def _apply(self, report: SweepReport, target: InstanceStatus, column, now: datetime) -> int:
        sources = SWEEP_TRANSITIONS[target]
        changed = 0
        for instance_id in self._candidates(sources, column, now):
            try:
                if self._transition(instance_id, sources, target, now):
                    changed += 1
                    report.transitioned_ids.add(instance_id)
                    log.trace(f"Instance {instance_id} -> {target.value}")
                else:
                    log.debug(f"Instance {instance_id} changed status concurrently, leaving as is")
            except SQLAlchemyError as e:
                self.db.rollback()
                log.error(f"Failed to move instance {instance_id} to {target.value}: {e}", exc_info=True)
                report.errors.append(f"instance {instance_id}: {e}")
                report.failed_ids.append(instance_id)
        return changed

    def sweep(self, now: Optional[datetime] = None) -> SweepReport:
        """Run one pass over all workspaces. Raises only if candidate selection fails."""
        now = now or self.clock.now()
        report = SweepReport()

        report.ready = self._apply(report, InstanceStatus.READY, Instance.scheduled_for, now)
        log.info(f"Updated {report.ready} pending -> ready")

        report.missed = self._apply(report, InstanceStatus.MISSED, Instance.due_at, now)
        log.info(f"Updated {report.missed} ready/in_progress -> missed")

        return report
