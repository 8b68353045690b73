from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, model_validator

from opscadence.constants.statuses import InstanceAction, InstanceStatus


class InstanceCreate(BaseModel):
    """Manual (ad hoc) instance not tied to a cadence occurrence."""

    workspace_id: str = Field(..., min_length=1, max_length=64)
    form_id: str = Field(..., min_length=1, max_length=64)
    instance_name: str = Field(..., min_length=1, max_length=255)
    scheduled_for: datetime
    due_at: datetime
    assigned_to: List[str] = Field(default_factory=list)
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode='after')
    def validate_window(self) -> 'InstanceCreate':
        if self.scheduled_for.tzinfo is None or self.due_at.tzinfo is None:
            raise ValueError('scheduled_for and due_at must include a UTC offset')
        if self.due_at < self.scheduled_for:
            raise ValueError('due_at must not be before scheduled_for')
        return self


class InstanceUpdate(BaseModel):
    action: InstanceAction = Field(..., description="start, complete, skip or reset")
    submission_id: Optional[str] = Field(None, max_length=64, description="Required for complete")
    skip_reason: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None

    @model_validator(mode='after')
    def validate_submission(self) -> 'InstanceUpdate':
        if self.action == InstanceAction.COMPLETE and not self.submission_id:
            raise ValueError('submission_id required for complete action')
        return self


class InstanceInDB(BaseModel):
    id: int
    workspace_id: str
    cadence_id: Optional[int] = None
    form_id: str
    instance_name: str
    scheduled_for: datetime
    due_at: datetime
    status: InstanceStatus
    submission_id: Optional[str] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    completed_by: Optional[str] = None
    assigned_to: List[str] = Field(default_factory=list)
    metadata: Dict[str, Any] = Field(
        default_factory=dict,
        validation_alias=AliasChoices('extra_metadata', 'metadata'),
    )
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class InstanceList(BaseModel):
    instances: List[InstanceInDB]
    count: int


class CalendarEvent(BaseModel):
    id: int
    title: str
    start: datetime
    end: datetime
    status: InstanceStatus
    form_id: str
    instance_id: int
    cadence_id: Optional[int] = None


class CalendarEventList(BaseModel):
    events: List[CalendarEvent]
    count: int
