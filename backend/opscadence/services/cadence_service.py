"""Cadence lifecycle: creation, edits, deactivation, deletion and stats."""

from typing import List, Optional

import logging

from sqlalchemy import func
from sqlalchemy.orm import Session

from opscadence.clock import Clock, system_clock
from opscadence.config import settings
from opscadence.constants.statuses import InstanceStatus
from opscadence.models.cadence import Cadence
from opscadence.models.instance import Instance
from opscadence.schemas.cadence import CadenceCreate, CadenceStats, CadenceUpdate
from opscadence.services.instance_generator import GenerationReport, InstanceGenerator

log = logging.getLogger(__name__)

NULLABLE_FIELDS = ('description',)


class CadenceNotFound(ValueError):
    pass


def get_cadence(db: Session, cadence_id: int) -> Cadence:
    cadence = db.get(Cadence, cadence_id)
    if cadence is None:
        raise CadenceNotFound(f"Cadence {cadence_id} not found")
    return cadence


def list_cadences(
    db: Session,
    workspace_id: str,
    form_id: Optional[str] = None,
    is_active: Optional[bool] = None,
) -> List[Cadence]:
    query = db.query(Cadence).filter(Cadence.workspace_id == workspace_id)
    if form_id:
        query = query.filter(Cadence.form_id == form_id)
    if is_active is not None:
        query = query.filter(Cadence.is_active == is_active)
    return query.order_by(Cadence.created_at.desc(), Cadence.id.desc()).all()


def create_cadence(
    db: Session,
    payload: CadenceCreate,
    created_by: Optional[str],
    clock: Clock = system_clock,
) -> Cadence:
    """
    Persist a validated cadence and materialize its first instances.

    The initial generation covers settings.initial_lookahead_hours; if it fails
    the cadence is still created and the next scheduled run fills the gap.
    """
    now = clock.now()
    cadence = Cadence(
        workspace_id=payload.workspace_id,
        form_id=payload.form_id,
        name=payload.name,
        description=payload.description,
        schedule_config=payload.schedule_config.model_dump(mode="json"),
        notification_config=payload.notification_config,
        assigned_to=payload.assigned_to,
        is_active=payload.is_active,
        created_by=created_by,
        created_at=now,
        updated_at=now,
    )
    db.add(cadence)
    db.commit()
    db.refresh(cadence)
    log.info(f"Created cadence '{cadence.name}' (ID: {cadence.id}) in workspace {cadence.workspace_id}")

    if cadence.is_active:
        try:
            report = InstanceGenerator(db, clock).generate(cadence, settings.initial_lookahead_hours, now=now)
            log.info(f"Initial generation for cadence {report.cadence_id}: {len(report.created)} instances")
        except Exception as e:
            db.rollback()
            log.error(f"Error generating initial instances for cadence {cadence.id}: {e}", exc_info=True)
        db.refresh(cadence)

    return cadence


def update_cadence(db: Session, cadence: Cadence, update: CadenceUpdate, clock: Clock = system_clock) -> dict:
    """
    Apply a partial update and return the {field: {old, new}} changes.

    Already-materialized instances are left exactly as they are, including
    when the schedule changes or the cadence is deactivated.
    """
    changes = {}
    for key in sorted(update.model_fields_set):
        value = getattr(update, key)
        if value is None and key not in NULLABLE_FIELDS:
            continue
        if key == 'schedule_config':
            value = value.model_dump(mode="json")
        old = getattr(cadence, key)
        if old != value:
            changes[key] = {'old': old, 'new': value}
            setattr(cadence, key, value)

    if changes:
        cadence.updated_at = clock.now()
        db.commit()
        db.refresh(cadence)
        if 'is_active' in changes and not cadence.is_active:
            log.info(f"Cadence {cadence.id} deactivated; future generation stopped, existing instances kept")
        else:
            log.info(f"Cadence {cadence.id} updated: {', '.join(changes)}")
    return changes


def delete_cadence(db: Session, cadence: Cadence, delete_instances: bool = False) -> int:
    """
    Delete a cadence. Its instances are unlinked (kept for history) unless
    `delete_instances` is set. Returns the number of instances affected.
    """
    cadence_id = cadence.id
    query = db.query(Instance).filter(Instance.cadence_id == cadence_id)
    if delete_instances:
        affected = query.delete(synchronize_session=False)
    else:
        affected = query.update({Instance.cadence_id: None}, synchronize_session=False)
    db.delete(cadence)
    db.commit()
    log.info(
        f"Deleted cadence {cadence_id}; "
        f"{'deleted' if delete_instances else 'unlinked'} {affected} instances"
    )
    return affected


def cadence_stats(db: Session, cadence_id: int) -> CadenceStats:
    rows = db.query(Instance.status, func.count(Instance.id)).filter(
        Instance.cadence_id == cadence_id
    ).group_by(Instance.status).all()
    counts = {status: count for status, count in rows}

    stats = CadenceStats(
        total_instances=sum(counts.values()),
        pending_count=counts.get(InstanceStatus.PENDING.value, 0),
        ready_count=counts.get(InstanceStatus.READY.value, 0),
        in_progress_count=counts.get(InstanceStatus.IN_PROGRESS.value, 0),
        completed_count=counts.get(InstanceStatus.COMPLETED.value, 0),
        missed_count=counts.get(InstanceStatus.MISSED.value, 0),
        skipped_count=counts.get(InstanceStatus.SKIPPED.value, 0),
    )
    closed = stats.completed_count + stats.missed_count
    if closed:
        stats.completion_rate = round(stats.completed_count / closed, 4)
    return stats


def generate_for_cadence(
    db: Session,
    cadence: Cadence,
    lookahead_hours: float,
    clock: Clock = system_clock,
) -> GenerationReport:
    """Manual single-cadence generation with the same semantics as the batch run."""
    return InstanceGenerator(db, clock).generate(cadence, lookahead_hours)
