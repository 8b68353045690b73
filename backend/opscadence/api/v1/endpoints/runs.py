from typing import Annotated, List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from opscadence.auth import get_current_active_user
from opscadence.constants.statuses import RunKind, RunStatus
from opscadence.database import get_db
from opscadence.models.engine_run import EngineRun
from opscadence.schemas.auth import User
from opscadence.schemas.run import EngineRunResponse

router = APIRouter()


@router.get("/", response_model=List[EngineRunResponse])
async def read_runs(
    skip: int = 0,
    limit: int = 20,
    kind: Optional[RunKind] = None,
    run_status: Optional[RunStatus] = None,
    db: Session = Depends(get_db),
    current_user: Annotated[User, Depends(get_current_active_user)] = None
):
    """History of generation and status sweep runs, newest first."""
    q = db.query(EngineRun).order_by(EngineRun.start_time.desc(), EngineRun.id.desc())
    if kind:
        q = q.filter(EngineRun.kind == kind.value)
    if run_status:
        q = q.filter(EngineRun.status == run_status.value)
    return q.offset(skip).limit(limit).all()


@router.get("/{run_id}", response_model=EngineRunResponse)
async def read_run(
    run_id: int,
    db: Session = Depends(get_db),
    current_user: Annotated[User, Depends(get_current_active_user)] = None
):
    run = db.get(EngineRun, run_id)
    if run is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Run not found")
    return run
