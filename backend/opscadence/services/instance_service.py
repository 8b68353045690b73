"""User-driven instance operations: listing, ad hoc creation and actions."""

from datetime import datetime
from typing import List, Optional

import logging

from sqlalchemy import update
from sqlalchemy.orm import Session

from opscadence.clock import Clock, system_clock
from opscadence.constants.statuses import (
    InstanceAction,
    InstanceStatus,
    USER_TRANSITIONS,
    explain_transition,
)
from opscadence.models.instance import Instance
from opscadence.schemas.instance import CalendarEvent, InstanceCreate, InstanceUpdate

log = logging.getLogger(__name__)


class InstanceNotFound(ValueError):
    pass


class InvalidTransition(ValueError):
    pass


def get_instance(db: Session, instance_id: int) -> Instance:
    instance = db.get(Instance, instance_id)
    if instance is None:
        raise InstanceNotFound(f"Instance {instance_id} not found")
    return instance


def list_instances(
    db: Session,
    workspace_id: str,
    status: Optional[InstanceStatus] = None,
    form_id: Optional[str] = None,
    cadence_id: Optional[int] = None,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    limit: int = 100,
) -> List[Instance]:
    query = db.query(Instance).filter(Instance.workspace_id == workspace_id)
    if status:
        query = query.filter(Instance.status == status.value)
    if form_id:
        query = query.filter(Instance.form_id == form_id)
    if cadence_id is not None:
        query = query.filter(Instance.cadence_id == cadence_id)
    if start:
        query = query.filter(Instance.scheduled_for >= start)
    if end:
        query = query.filter(Instance.scheduled_for <= end)
    return query.order_by(Instance.scheduled_for.asc(), Instance.id.asc()).limit(limit).all()


def to_calendar_event(instance: Instance) -> CalendarEvent:
    return CalendarEvent(
        id=instance.id,
        title=instance.instance_name,
        start=instance.scheduled_for,
        end=instance.due_at,
        status=instance.status,
        form_id=instance.form_id,
        instance_id=instance.id,
        cadence_id=instance.cadence_id,
    )


def create_manual_instance(db: Session, payload: InstanceCreate, created_by: Optional[str], clock: Clock = system_clock) -> Instance:
    """Create an ad hoc instance. Already actionable instances start out ready."""
    now = clock.now()
    status = InstanceStatus.READY if payload.scheduled_for <= now else InstanceStatus.PENDING
    metadata = dict(payload.metadata)
    metadata.update({"source": "manual", "created_by": created_by})
    instance = Instance(
        workspace_id=payload.workspace_id,
        cadence_id=None,
        form_id=payload.form_id,
        instance_name=payload.instance_name,
        scheduled_for=payload.scheduled_for,
        due_at=payload.due_at,
        status=status.value,
        assigned_to=payload.assigned_to,
        extra_metadata=metadata,
        created_at=now,
        updated_at=now,
    )
    db.add(instance)
    db.commit()
    db.refresh(instance)
    log.info(f"Created manual instance '{instance.instance_name}' (ID: {instance.id}, status: {status.value})")
    return instance


def apply_action(
    db: Session,
    instance: Instance,
    payload: InstanceUpdate,
    username: Optional[str],
    clock: Clock = system_clock,
) -> Instance:
    """
    Apply a user action (start, complete, skip, reset).

    The write is a compare-and-set on the status the action is allowed from,
    so a sweep that moved the instance after it was read is never overwritten.
    Raises InvalidTransition when the instance's current status does not allow it.
    """
    action = payload.action
    sources, target = USER_TRANSITIONS[action]
    current = InstanceStatus(instance.status)
    if current not in sources:
        raise InvalidTransition(explain_transition(action, current))

    now = clock.now()
    metadata = dict(instance.extra_metadata or {})
    if payload.metadata:
        metadata.update(payload.metadata)

    values = {
        Instance.status: target.value,
        Instance.updated_at: now,
    }
    if action == InstanceAction.START:
        values[Instance.started_at] = now
        if username:
            metadata["started_by"] = username
    elif action == InstanceAction.COMPLETE:
        values[Instance.completed_at] = now
        values[Instance.submission_id] = payload.submission_id
        values[Instance.completed_by] = username
    elif action == InstanceAction.SKIP:
        if payload.skip_reason:
            metadata["skip_reason"] = payload.skip_reason
        if username:
            metadata["skipped_by"] = username
    elif action == InstanceAction.RESET:
        values[Instance.started_at] = None
        values[Instance.completed_at] = None
        values[Instance.completed_by] = None
        values[Instance.submission_id] = None
    values[Instance.extra_metadata] = metadata

    result = db.execute(
        update(Instance)
        .where(Instance.id == instance.id, Instance.status.in_([s.value for s in sources]))
        .values(values)
        .execution_options(synchronize_session=False)
    )
    db.commit()
    db.refresh(instance)
    if result.rowcount != 1:
        log.info(f"Instance {instance.id} moved to '{instance.status}' before {action.value} was applied")
        raise InvalidTransition(explain_transition(action, InstanceStatus(instance.status)))

    log.info(f"Instance {instance.id}: {current.value} -> {target.value} ({action.value} by {username})")
    return instance
