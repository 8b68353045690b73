"""Occurrence calculation for cadence schedules.

Pure functions only: no I/O, no clock reads. Given a ScheduleConfig and a
half-open window of absolute instants, return the ordered UTC instants at
which the cadence is due.

Local time policy:
- `time` is read as wall-clock time in the schedule's timezone on each date.
- A wall time skipped by a spring-forward transition is moved forward by the
  length of the gap (02:30 on a 02:00 -> 03:00 day becomes 03:30).
- A wall time repeated by a fall-back transition resolves to its first,
  earlier occurrence.
- Monthly and quarterly days past the end of a month clamp to its last day.
"""

from datetime import date, datetime, time, timedelta, timezone
from typing import Iterable, List
from zoneinfo import ZoneInfo

from dateutil.rrule import DAILY, MONTHLY, WEEKLY, rrule, rrulestr

import logging

from opscadence.constants.statuses import SchedulePattern, ScheduleType
from opscadence.schemas.schedule import ScheduleConfig

log = logging.getLogger(__name__)


def localize(day: date, at: time, tz: ZoneInfo) -> datetime:
    """Resolve a local wall-clock time on `day` to an aware UTC instant."""
    # fold=0 picks the pre-transition offset: earlier instant in an overlap,
    # shifted forward by the gap length inside a gap.
    local = datetime.combine(day, at).replace(tzinfo=tz, fold=0)
    instant = local.astimezone(timezone.utc)
    if instant.astimezone(tz).replace(tzinfo=None) != local.replace(tzinfo=None):
        log.trace(
            f"Local time {local.replace(tzinfo=None).isoformat()} does not exist in {tz.key}; "
            f"rolled forward to {instant.astimezone(tz).isoformat()}"
        )
    return instant


def local_date(instant: datetime, timezone_name: str) -> date:
    """Calendar date of an instant as seen in the given timezone."""
    return instant.astimezone(ZoneInfo(timezone_name)).date()


def _midnight(day: date) -> datetime:
    return datetime.combine(day, time.min)


def _weekday_filter(schedule: ScheduleConfig) -> List[int]:
    # dateutil counts Monday as 0
    return [d - 1 for d in schedule.days_of_week]


def _month_days(schedule: ScheduleConfig) -> tuple:
    # (day, -1) with bysetpos=1 yields min(day, last day of month)
    if schedule.day_of_month == 1:
        return (1,)
    return (schedule.day_of_month, -1)


def _quarter_anchor(schedule: ScheduleConfig, first_day: date) -> date:
    if schedule.start_date:
        return schedule.start_date.replace(day=1)
    return date(first_day.year, 1, 1)


def candidate_dates(schedule: ScheduleConfig, first_day: date, last_day: date) -> Iterable[date]:
    """Local calendar dates in [first_day, last_day] matching the schedule pattern."""
    if schedule.type == ScheduleType.EVENT_BASED:
        return []

    if schedule.type == ScheduleType.ONE_TIME:
        if first_day <= schedule.start_date <= last_day:
            return [schedule.start_date]
        return []

    pattern = schedule.pattern
    after, before = _midnight(first_day), _midnight(last_day)

    if pattern == SchedulePattern.DAILY:
        weekdays = _weekday_filter(schedule)
        rule = rrule(
            DAILY,
            dtstart=after,
            until=before,
            byweekday=weekdays if len(weekdays) < 7 else None,
        )
    elif pattern == SchedulePattern.WEEKLY:
        rule = rrule(WEEKLY, dtstart=after, until=before, byweekday=_weekday_filter(schedule))
    elif pattern == SchedulePattern.MONTHLY:
        rule = rrule(MONTHLY, dtstart=after, until=before, bymonthday=_month_days(schedule), bysetpos=1)
    elif pattern == SchedulePattern.QUARTERLY:
        anchor = _quarter_anchor(schedule, first_day)
        rule = rrule(
            MONTHLY,
            interval=3,
            dtstart=_midnight(anchor),
            until=before,
            bymonthday=_month_days(schedule),
            bysetpos=1,
        )
    elif pattern == SchedulePattern.CUSTOM:
        rule = rrulestr(schedule.rrule, dtstart=_midnight(schedule.start_date), ignoretz=True)
    else:
        raise ValueError(f"Unsupported pattern: {pattern}")

    # Custom rules may carry BYHOUR/BYMINUTE, so expand up to the end of last_day
    end_of_last_day = _midnight(last_day + timedelta(days=1))
    dates = []
    for occurrence in rule.between(after, end_of_last_day, inc=True):
        day = occurrence.date()
        if day <= last_day and day not in dates:
            dates.append(day)
    return dates


def compute_occurrences(
    schedule: ScheduleConfig,
    window_start: datetime,
    window_end: datetime,
) -> List[datetime]:
    """
    Return the sorted, distinct UTC instants in [window_start, window_end) at
    which the schedule is due.

    Dates outside [start_date, end_date] are excluded. An empty or inverted
    window, or one without any matching date, yields an empty list.
    """
    if window_start.tzinfo is None or window_end.tzinfo is None:
        raise ValueError("compute_occurrences requires aware datetimes")
    if window_end <= window_start:
        return []

    tz = schedule.zone
    # Pad by a day each side: the local date of a window edge can differ from
    # its UTC date, and DST shifts can move an occurrence across midnight.
    first_day = window_start.astimezone(tz).date() - timedelta(days=1)
    last_day = window_end.astimezone(tz).date() + timedelta(days=1)
    if schedule.start_date and schedule.start_date > first_day:
        first_day = schedule.start_date
    if schedule.end_date and schedule.end_date < last_day:
        last_day = schedule.end_date
    if first_day > last_day:
        return []

    at = schedule.local_time
    occurrences = set()
    for day in candidate_dates(schedule, first_day, last_day):
        instant = localize(day, at, tz)
        if window_start <= instant < window_end:
            log.trace(f"Occurrence {day.isoformat()} {schedule.time} {schedule.timezone} -> {instant.isoformat()}")
            occurrences.add(instant)

    return sorted(occurrences)


def preview_occurrences(schedule: ScheduleConfig, now: datetime, hours: float) -> List[datetime]:
    """Occurrences in the next `hours` from `now`, for UI previews."""
    return compute_occurrences(schedule, now, now + timedelta(hours=hours))
