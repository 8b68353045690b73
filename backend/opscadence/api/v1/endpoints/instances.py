from datetime import datetime
from typing import Annotated, Literal, Optional, Union
import logging

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy.orm import Session

from opscadence.auth import get_current_active_user
from opscadence.clock import Clock, get_clock
from opscadence.constants.statuses import InstanceStatus
from opscadence.database import get_db
from opscadence.schemas.auth import User
from opscadence.schemas.instance import (
    CalendarEventList,
    InstanceCreate,
    InstanceInDB,
    InstanceList,
    InstanceUpdate,
)
from opscadence.services import instance_service
from opscadence.services.instance_service import InstanceNotFound, InvalidTransition
from opscadence.utils.audit_logger import create_audit_log

log = logging.getLogger(__name__)
router = APIRouter()


def _get_or_404(db: Session, instance_id: int):
    try:
        return instance_service.get_instance(db, instance_id)
    except InstanceNotFound as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.get("/", response_model=Union[InstanceList, CalendarEventList])
async def read_instances(
    workspace_id: str = Query(..., min_length=1),
    status_filter: Optional[InstanceStatus] = Query(None, alias="status"),
    form_id: Optional[str] = None,
    cadence_id: Optional[int] = None,
    start_date: Optional[datetime] = Query(None, description="scheduled_for >= start_date"),
    end_date: Optional[datetime] = Query(None, description="scheduled_for <= end_date"),
    limit: int = Query(100, ge=1, le=1000),
    view: Optional[Literal['list', 'calendar']] = None,
    db: Session = Depends(get_db),
    current_user: Annotated[User, Depends(get_current_active_user)] = None
):
    """List instances of a workspace ordered by scheduled time; `view=calendar` returns calendar events."""
    for bound in (start_date, end_date):
        if bound is not None and bound.tzinfo is None:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="start_date and end_date must include a UTC offset"
            )
    instances = instance_service.list_instances(
        db,
        workspace_id,
        status=status_filter,
        form_id=form_id,
        cadence_id=cadence_id,
        start=start_date,
        end=end_date,
        limit=limit,
    )
    if view == 'calendar':
        events = [instance_service.to_calendar_event(i) for i in instances]
        return CalendarEventList(events=events, count=len(events))
    return InstanceList(instances=[InstanceInDB.model_validate(i) for i in instances], count=len(instances))


@router.post("/", response_model=InstanceInDB, status_code=status.HTTP_201_CREATED)
async def create_instance(
    http_request: Request,
    payload: InstanceCreate,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    current_user: Annotated[User, Depends(get_current_active_user)] = None
):
    """Create an ad hoc instance outside any cadence."""
    username = current_user.username if current_user else None
    instance = instance_service.create_manual_instance(db, payload, created_by=username, clock=clock)

    create_audit_log(
        db=db,
        request=http_request,
        action="instance_created",
        entity_type="instance",
        entity_id=instance.id,
        workspace_id=instance.workspace_id,
        user=username,
        details={"instance_name": instance.instance_name, "scheduled_for": instance.scheduled_for.isoformat()}
    )
    return InstanceInDB.model_validate(instance)


@router.get("/{instance_id}", response_model=InstanceInDB)
async def read_instance(
    instance_id: int,
    db: Session = Depends(get_db),
    current_user: Annotated[User, Depends(get_current_active_user)] = None
):
    """Get a single instance."""
    return InstanceInDB.model_validate(_get_or_404(db, instance_id))


@router.patch("/{instance_id}", response_model=InstanceInDB)
async def update_instance(
    http_request: Request,
    instance_id: int,
    update: InstanceUpdate,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    current_user: Annotated[User, Depends(get_current_active_user)] = None
):
    """Start, complete, skip or reset an instance."""
    instance = _get_or_404(db, instance_id)
    previous = instance.status
    username = current_user.username if current_user else None
    try:
        instance = instance_service.apply_action(db, instance, update, username, clock=clock)
    except InvalidTransition as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))

    create_audit_log(
        db=db,
        request=http_request,
        action=f"instance_{update.action.value}",
        entity_type="instance",
        entity_id=instance.id,
        workspace_id=instance.workspace_id,
        user=username,
        details={"from": previous, "to": instance.status, "submission_id": instance.submission_id}
    )
    return InstanceInDB.model_validate(instance)
