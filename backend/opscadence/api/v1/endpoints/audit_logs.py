from typing import List, Annotated, Optional
from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.orm import Session

from opscadence.database import get_db
from opscadence.models.audit_log import AuditLog
from opscadence.schemas.audit import AuditLogInDB
from opscadence.schemas.auth import User
from opscadence.auth import get_current_active_user

router = APIRouter()


@router.get("/", response_model=List[AuditLogInDB])
async def read_audit_logs(
    skip: int = 0,
    limit: int = 100,
    workspace_id: Optional[str] = Query(None, description="Filter by workspace"),
    action: Optional[str] = Query(None, description="Filter by specific action"),
    entity_type: Optional[str] = Query(None, description="'cadence' or 'instance'"),
    user: Optional[str] = Query(None, description="Filter by username"),
    current_user: Annotated[User, Depends(get_current_active_user)] = None,
    db: Session = Depends(get_db)
):
    """Retrieve audit logs with optional filters, newest first."""
    query = db.query(AuditLog).order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
    if workspace_id:
        query = query.filter(AuditLog.workspace_id == workspace_id)
    if action:
        query = query.filter(AuditLog.action == action)
    if entity_type:
        query = query.filter(AuditLog.entity_type == entity_type)
    if user:
        query = query.filter(AuditLog.user == user)
    return query.offset(skip).limit(limit).all()


@router.get("/{log_id}", response_model=AuditLogInDB)
async def read_audit_log(
    log_id: int,
    current_user: Annotated[User, Depends(get_current_active_user)] = None,
    db: Session = Depends(get_db)
):
    """Retrieve a single audit log by ID."""
    db_log = db.get(AuditLog, log_id)
    if db_log is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Audit log not found")
    return db_log
