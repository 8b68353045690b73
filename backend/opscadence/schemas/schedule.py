"""Recurrence definition schema shared by cadences and the occurrence calculator."""

from datetime import date, time as dt_time, timedelta
from typing import List, Optional
from zoneinfo import ZoneInfo

from dateutil.rrule import rrulestr
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from opscadence.constants.statuses import SchedulePattern, ScheduleType

ALL_WEEKDAYS = [1, 2, 3, 4, 5, 6, 7]


class ScheduleConfig(BaseModel):
    """Immutable recurrence definition. `time` is local to `timezone`."""

    model_config = ConfigDict(frozen=True, use_enum_values=False)

    type: ScheduleType = Field(default=ScheduleType.RECURRING, description="Recurrence type")
    pattern: SchedulePattern = Field(..., description="Recurrence pattern")
    time: str = Field(..., description="Local time of day (HH:mm)")
    timezone: str = Field(..., description="IANA timezone the time is expressed in")
    days_of_week: List[int] = Field(default_factory=lambda: list(ALL_WEEKDAYS), description="ISO weekdays, Monday=1")
    completion_window_hours: float = Field(default=24, ge=0, description="Hours from scheduled_for to due_at")
    day_of_month: int = Field(default=1, ge=1, le=31, description="Day for monthly/quarterly patterns, clamped to month end")
    rrule: Optional[str] = Field(None, description="RFC 5545 RRULE body for the custom pattern")
    start_date: Optional[date] = Field(None, description="First valid date (inclusive)")
    end_date: Optional[date] = Field(None, description="Last valid date (inclusive); null is open-ended")

    @field_validator('time')
    @classmethod
    def validate_time(cls, v: str) -> str:
        """Validate HH:mm local time."""
        parts = v.split(':')
        if len(parts) != 2 or not all(p.isdigit() and len(p) == 2 for p in parts):
            raise ValueError(f'Invalid time (expected HH:mm): {v}')
        hours, minutes = int(parts[0]), int(parts[1])
        if hours > 23 or minutes > 59:
            raise ValueError(f'Invalid time (expected HH:mm): {v}')
        return v

    @field_validator('timezone')
    @classmethod
    def validate_timezone(cls, v: str) -> str:
        """Validate timezone string."""
        try:
            ZoneInfo(v)
        except Exception:
            raise ValueError(f'Invalid timezone: {v}')
        return v

    @field_validator('days_of_week')
    @classmethod
    def validate_days_of_week(cls, v: List[int]) -> List[int]:
        for day in v:
            if day < 1 or day > 7:
                raise ValueError(f'Invalid day of week (expected 1-7): {day}')
        return sorted(set(v))

    @model_validator(mode='after')
    def validate_consistency(self) -> 'ScheduleConfig':
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValueError('end_date must not be before start_date')
        if self.pattern == SchedulePattern.WEEKLY and not self.days_of_week:
            raise ValueError('weekly pattern requires at least one day_of_week')
        if self.type == ScheduleType.ONE_TIME and not self.start_date:
            raise ValueError('one_time schedule requires start_date')
        if self.pattern == SchedulePattern.CUSTOM:
            if not self.rrule:
                raise ValueError('custom pattern requires an rrule')
            if not self.start_date:
                raise ValueError('custom pattern requires start_date')
            try:
                rrulestr(self.rrule, ignoretz=True)
            except (ValueError, TypeError) as e:
                raise ValueError(f'Invalid rrule: {e}')
        return self

    @property
    def local_time(self) -> dt_time:
        hours, minutes = self.time.split(':')
        return dt_time(int(hours), int(minutes))

    @property
    def completion_window(self) -> timedelta:
        return timedelta(hours=self.completion_window_hours)

    @property
    def zone(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)
