"""Cadence schemas for API requests and responses."""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from opscadence.schemas.schedule import ScheduleConfig


def default_notification_config() -> Dict[str, Any]:
    return {
        "recipients": [],
        "notify_on_ready": True,
        "notify_on_missed": True,
        "reminder_minutes_before_deadline": [60, 15],
    }


class CadenceBase(BaseModel):
    form_id: str = Field(..., min_length=1, max_length=64, description="Target form")
    name: str = Field(..., min_length=1, max_length=255, description="Human name, used as instance name prefix")
    description: Optional[str] = None
    schedule_config: ScheduleConfig
    notification_config: Dict[str, Any] = Field(default_factory=default_notification_config)
    assigned_to: List[str] = Field(default_factory=list, description="User IDs copied onto generated instances")
    is_active: bool = True


class CadenceCreate(CadenceBase):
    workspace_id: str = Field(..., min_length=1, max_length=64)


class CadenceUpdate(BaseModel):
    """Partial update - all fields optional. Schedule edits never touch existing instances."""

    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    schedule_config: Optional[ScheduleConfig] = None
    notification_config: Optional[Dict[str, Any]] = None
    assigned_to: Optional[List[str]] = None
    is_active: Optional[bool] = None


class CadenceInDB(CadenceBase):
    id: int
    workspace_id: str
    created_by: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class CadenceStats(BaseModel):
    total_instances: int = 0
    pending_count: int = 0
    ready_count: int = 0
    in_progress_count: int = 0
    completed_count: int = 0
    missed_count: int = 0
    skipped_count: int = 0
    completion_rate: float = 0.0


class CadenceDetail(BaseModel):
    cadence: CadenceInDB
    stats: CadenceStats


class CadenceList(BaseModel):
    cadences: List[CadenceInDB]
    count: int


class OccurrencePreview(BaseModel):
    cadence_id: int
    timezone: str
    window_start: datetime
    window_end: datetime
    occurrences: List[datetime]
