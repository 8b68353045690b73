"""Cadence endpoints: recurring task definitions and their instance previews."""

from datetime import timedelta
from typing import Annotated, Optional
import logging

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy.orm import Session

from opscadence.auth import get_current_active_user
from opscadence.clock import Clock, get_clock
from opscadence.config import settings
from opscadence.database import get_db
from opscadence.schemas.auth import User
from opscadence.schemas.cadence import (
    CadenceCreate,
    CadenceDetail,
    CadenceInDB,
    CadenceList,
    CadenceUpdate,
    OccurrencePreview,
)
from opscadence.schemas.engine import CadenceGenerationResult
from opscadence.schemas.schedule import ScheduleConfig
from opscadence.services import cadence_service
from opscadence.services.cadence_service import CadenceNotFound
from opscadence.services.occurrences import compute_occurrences
from opscadence.utils.audit_logger import create_audit_log

log = logging.getLogger(__name__)
router = APIRouter()


def _get_or_404(db: Session, cadence_id: int):
    try:
        return cadence_service.get_cadence(db, cadence_id)
    except CadenceNotFound as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.get("/", response_model=CadenceList)
async def read_cadences(
    workspace_id: str = Query(..., min_length=1),
    form_id: Optional[str] = None,
    is_active: Optional[bool] = None,
    db: Session = Depends(get_db),
    current_user: Annotated[User, Depends(get_current_active_user)] = None
):
    """List cadences of a workspace, newest first."""
    cadences = cadence_service.list_cadences(db, workspace_id, form_id=form_id, is_active=is_active)
    return CadenceList(cadences=cadences, count=len(cadences))


@router.post("/", response_model=CadenceInDB, status_code=status.HTTP_201_CREATED)
async def create_cadence(
    http_request: Request,
    payload: CadenceCreate,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    current_user: Annotated[User, Depends(get_current_active_user)] = None
):
    """Create a cadence and generate its first instances."""
    username = current_user.username if current_user else None
    cadence = cadence_service.create_cadence(db, payload, created_by=username, clock=clock)

    create_audit_log(
        db=db,
        request=http_request,
        action="cadence_created",
        entity_type="cadence",
        entity_id=cadence.id,
        workspace_id=cadence.workspace_id,
        user=username,
        details={"name": cadence.name, "schedule_config": cadence.schedule_config}
    )
    return cadence


@router.get("/{cadence_id}", response_model=CadenceDetail)
async def read_cadence(
    cadence_id: int,
    db: Session = Depends(get_db),
    current_user: Annotated[User, Depends(get_current_active_user)] = None
):
    """Get a cadence with its instance stats."""
    cadence = _get_or_404(db, cadence_id)
    return CadenceDetail(
        cadence=CadenceInDB.model_validate(cadence),
        stats=cadence_service.cadence_stats(db, cadence_id),
    )


@router.patch("/{cadence_id}", response_model=CadenceInDB)
async def update_cadence(
    http_request: Request,
    cadence_id: int,
    update: CadenceUpdate,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    current_user: Annotated[User, Depends(get_current_active_user)] = None
):
    """Update a cadence. Existing instances are never modified."""
    if not update.model_fields_set:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No fields to update")

    cadence = _get_or_404(db, cadence_id)
    changes = cadence_service.update_cadence(db, cadence, update, clock=clock)

    if changes:
        create_audit_log(
            db=db,
            request=http_request,
            action="cadence_deactivated" if changes.get('is_active', {}).get('new') is False else "cadence_updated",
            entity_type="cadence",
            entity_id=cadence.id,
            workspace_id=cadence.workspace_id,
            user=current_user.username if current_user else None,
            details={'changes': changes}
        )
    return cadence


@router.delete("/{cadence_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_cadence(
    http_request: Request,
    cadence_id: int,
    delete_instances: bool = False,
    db: Session = Depends(get_db),
    current_user: Annotated[User, Depends(get_current_active_user)] = None
):
    """Delete a cadence; its instances are unlinked unless delete_instances is set."""
    cadence = _get_or_404(db, cadence_id)
    workspace_id, name = cadence.workspace_id, cadence.name
    affected = cadence_service.delete_cadence(db, cadence, delete_instances=delete_instances)

    create_audit_log(
        db=db,
        request=http_request,
        action="cadence_deleted",
        entity_type="cadence",
        entity_id=cadence_id,
        workspace_id=workspace_id,
        user=current_user.username if current_user else None,
        details={"name": name, "delete_instances": delete_instances, "instances_affected": affected}
    )


@router.get("/{cadence_id}/occurrences", response_model=OccurrencePreview)
async def preview_occurrences(
    cadence_id: int,
    hours: float = Query(168, gt=0),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    current_user: Annotated[User, Depends(get_current_active_user)] = None
):
    """Preview the occurrences a cadence would produce in the next `hours`."""
    if hours > settings.max_lookahead_hours:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"hours must not exceed {settings.max_lookahead_hours}"
        )
    cadence = _get_or_404(db, cadence_id)
    schedule = ScheduleConfig.model_validate(cadence.schedule_config)
    now = clock.now()
    window_end = now + timedelta(hours=hours)
    return OccurrencePreview(
        cadence_id=cadence.id,
        timezone=schedule.timezone,
        window_start=now,
        window_end=window_end,
        occurrences=compute_occurrences(schedule, now, window_end),
    )


@router.post("/{cadence_id}/generate", response_model=CadenceGenerationResult)
async def generate_cadence_instances(
    http_request: Request,
    cadence_id: int,
    lookahead_hours: Optional[float] = Query(None, gt=0),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    current_user: Annotated[User, Depends(get_current_active_user)] = None
):
    """Manually generate instances for one cadence."""
    lookahead = lookahead_hours or settings.generation_lookahead_hours
    if lookahead > settings.max_lookahead_hours:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"lookahead_hours must not exceed {settings.max_lookahead_hours}"
        )
    cadence = _get_or_404(db, cadence_id)
    workspace_id = cadence.workspace_id
    report = cadence_service.generate_for_cadence(db, cadence, lookahead, clock=clock)

    create_audit_log(
        db=db,
        request=http_request,
        action="generation_triggered",
        entity_type="cadence",
        entity_id=cadence_id,
        workspace_id=workspace_id,
        user=current_user.username if current_user else None,
        details={"lookahead_hours": lookahead, "created": len(report.created), "existing": report.existing}
    )
    return CadenceGenerationResult(
        cadence_id=report.cadence_id,
        cadence_name=report.cadence_name,
        instances_generated=len(report.created),
        instances_existing=report.existing,
        item_errors=report.errors,
    )
