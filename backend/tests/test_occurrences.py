from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest

from opscadence.schemas.schedule import ScheduleConfig
from opscadence.services.occurrences import (
    compute_occurrences,
    local_date,
    localize,
    preview_occurrences,
)

UTC = timezone.utc
MONDAY = datetime(2026, 6, 1, 0, 0, tzinfo=UTC)


def utc(*args):
    return datetime(*args, tzinfo=UTC)


def schedule(**overrides):
    data = {"pattern": "daily", "time": "09:00", "timezone": "UTC"}
    data.update(overrides)
    return ScheduleConfig(**data)


def test_daily_local_time_converted_to_utc():
    config = schedule(timezone="America/New_York")
    # EDT is UTC-4 in June
    assert compute_occurrences(config, MONDAY, MONDAY + timedelta(hours=24)) == [utc(2026, 6, 1, 13, 0)]


def test_daily_every_day_in_window():
    result = compute_occurrences(schedule(), MONDAY, MONDAY + timedelta(days=3))
    assert result == [utc(2026, 6, 1, 9), utc(2026, 6, 2, 9), utc(2026, 6, 3, 9)]


def test_daily_honours_days_of_week():
    result = compute_occurrences(schedule(days_of_week=[6, 7]), MONDAY, MONDAY + timedelta(days=7))
    assert result == [utc(2026, 6, 6, 9), utc(2026, 6, 7, 9)]


def test_weekly_weekdays_over_one_week():
    config = schedule(pattern="weekly", days_of_week=[1, 2, 3, 4, 5])
    result = compute_occurrences(config, MONDAY, MONDAY + timedelta(days=7))
    assert len(result) == 5
    assert [r.date() for r in result] == [date(2026, 6, d) for d in range(1, 6)]


def test_window_start_inclusive_end_exclusive():
    start = utc(2026, 6, 1, 9, 0)
    end = utc(2026, 6, 2, 9, 0)
    assert compute_occurrences(schedule(), start, end) == [start]


def test_empty_or_inverted_window():
    assert compute_occurrences(schedule(), MONDAY, MONDAY) == []
    assert compute_occurrences(schedule(), MONDAY, MONDAY - timedelta(hours=1)) == []


def test_naive_window_rejected():
    with pytest.raises(ValueError):
        compute_occurrences(schedule(), datetime(2026, 6, 1), datetime(2026, 6, 2))


def test_start_and_end_dates_bound_occurrences():
    config = schedule(start_date="2026-06-03", end_date="2026-06-05")
    result = compute_occurrences(config, MONDAY, MONDAY + timedelta(days=10))
    assert [r.date() for r in result] == [date(2026, 6, 3), date(2026, 6, 4), date(2026, 6, 5)]


def test_window_entirely_after_end_date():
    config = schedule(end_date="2026-05-01")
    assert compute_occurrences(config, MONDAY, MONDAY + timedelta(days=10)) == []


def test_monthly_clamps_to_last_day_of_month():
    config = schedule(pattern="monthly", day_of_month=31, time="10:00")
    result = compute_occurrences(config, utc(2026, 2, 1), utc(2026, 5, 1))
    assert result == [utc(2026, 2, 28, 10), utc(2026, 3, 31, 10), utc(2026, 4, 30, 10)]


def test_monthly_mid_month_day():
    config = schedule(pattern="monthly", day_of_month=15)
    result = compute_occurrences(config, utc(2026, 1, 1), utc(2026, 4, 1))
    assert result == [utc(2026, 1, 15, 9), utc(2026, 2, 15, 9), utc(2026, 3, 15, 9)]


def test_quarterly_without_start_date_uses_calendar_quarters():
    config = schedule(pattern="quarterly", time="08:00")
    result = compute_occurrences(config, utc(2026, 1, 15), utc(2026, 12, 31))
    assert result == [utc(2026, 4, 1, 8), utc(2026, 7, 1, 8), utc(2026, 10, 1, 8)]


def test_quarterly_anchored_on_start_date_month():
    config = schedule(pattern="quarterly", day_of_month=15, start_date="2026-02-15")
    result = compute_occurrences(config, utc(2026, 1, 1), utc(2027, 1, 1))
    assert [r.date() for r in result] == [
        date(2026, 2, 15), date(2026, 5, 15), date(2026, 8, 15), date(2026, 11, 15)
    ]


def test_custom_rrule():
    config = schedule(
        pattern="custom",
        rrule="FREQ=WEEKLY;INTERVAL=2;BYDAY=MO",
        start_date="2026-06-01",
        time="10:00",
    )
    result = compute_occurrences(config, MONDAY, utc(2026, 7, 1))
    assert result == [utc(2026, 6, 1, 10), utc(2026, 6, 15, 10), utc(2026, 6, 29, 10)]


def test_custom_rrule_with_byhour_keeps_end_date_occurrence():
    config = schedule(
        pattern="custom",
        rrule="FREQ=DAILY;BYHOUR=10",
        start_date="2026-06-01",
        end_date="2026-06-03",
        time="10:00",
    )
    result = compute_occurrences(config, MONDAY, utc(2026, 6, 10))
    assert result == [utc(2026, 6, 1, 10), utc(2026, 6, 2, 10), utc(2026, 6, 3, 10)]


def test_one_time_single_occurrence():
    config = schedule(type="one_time", start_date="2026-06-03", time="14:00")
    assert compute_occurrences(config, MONDAY, MONDAY + timedelta(days=7)) == [utc(2026, 6, 3, 14)]
    assert compute_occurrences(config, utc(2026, 6, 4), utc(2026, 6, 10)) == []


def test_event_based_has_no_occurrences():
    config = schedule(type="event_based")
    assert compute_occurrences(config, MONDAY, MONDAY + timedelta(days=30)) == []


def test_spring_forward_gap_rolls_forward():
    # 2026-03-08 02:30 does not exist in New York; it becomes 03:30 EDT
    config = schedule(time="02:30", timezone="America/New_York")
    result = compute_occurrences(config, utc(2026, 3, 8), utc(2026, 3, 9))
    assert result == [utc(2026, 3, 8, 7, 30)]
    assert result[0].astimezone(ZoneInfo("America/New_York")).time() == time(3, 30)


def test_fall_back_overlap_uses_earlier_instant():
    # 2026-11-01 01:30 happens twice in New York; the EDT one wins
    config = schedule(time="01:30", timezone="America/New_York")
    result = compute_occurrences(config, utc(2026, 11, 1), utc(2026, 11, 2))
    assert result == [utc(2026, 11, 1, 5, 30)]


def test_results_sorted_distinct_and_inside_window():
    config = schedule(timezone="Asia/Tokyo", time="00:30")
    start = utc(2026, 6, 1, 3, 17)
    end = start + timedelta(days=20)
    result = compute_occurrences(config, start, end)
    assert len(result) == 20
    assert result == sorted(set(result))
    assert all(start <= r < end for r in result)
    assert all(r.tzinfo is not None and r.utcoffset() == timedelta(0) for r in result)


def test_localize_and_local_date():
    tz = ZoneInfo("Europe/Brussels")
    assert localize(date(2026, 1, 10), time(9, 0), tz) == utc(2026, 1, 10, 8, 0)
    assert local_date(utc(2026, 1, 10, 23, 30), "Europe/Brussels") == date(2026, 1, 11)


def test_preview_occurrences():
    assert preview_occurrences(schedule(), MONDAY, 48) == [utc(2026, 6, 1, 9), utc(2026, 6, 2, 9)]


def test_new_york_morning_before_dst_ends():
    config = schedule(timezone="America/New_York")
    start = utc(2025, 10, 28, 0, 0)
    assert compute_occurrences(config, start, start + timedelta(hours=24)) == [utc(2025, 10, 28, 13, 0)]
