# device_stats/utils/time_utils.py

import calendar
from datetime import date, datetime, time, timedelta, timezone
from typing import List, Tuple


def round_minutes(value: float) -> float:
    # 소수점 2자리
    return round(value, 2)


def ensure_utc(ts: datetime) -> datetime:
    """Naive datetimes are taken to be UTC already."""
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def elapsed_minutes(start: datetime, end: datetime) -> float:
    seconds = (ensure_utc(end) - ensure_utc(start)).total_seconds()
    return round_minutes(seconds / 60)


def minutes_to_next_hour(ts: datetime) -> float:
    hour_start = ts.replace(minute=0, second=0, microsecond=0)
    return (hour_start + timedelta(hours=1) - ts).total_seconds() / 60


def next_hour_start(ts: datetime) -> datetime:
    return ts.replace(minute=0, second=0, microsecond=0) + timedelta(hours=1)


def bucket_local_time(utc_day: date, utc_hour: int, timezone_offset: float) -> datetime:
    # UTC 날짜 + 시간 → 사용자 시간대의 (naive) 시각
    return datetime.combine(utc_day, time(hour=utc_hour)) + timedelta(hours=timezone_offset)


def local_today(now: datetime, timezone_offset: float) -> date:
    return (ensure_utc(now) + timedelta(hours=timezone_offset)).date()


def daily_query_dates(local_date: date, timezone_offset: float) -> List[date]:
    # 사용자 날짜의 0시를 UTC로 변환 → 1~2개의 UTC 날짜
    utc_start = datetime.combine(local_date, time.min) - timedelta(hours=timezone_offset)
    utc_end = utc_start + timedelta(hours=24)

    dates = [utc_start.date()]
    if utc_end.date() != utc_start.date():
        dates.append(utc_end.date())
    return dates


def range_query_dates(local_start: date, local_end: date, timezone_offset: float) -> List[date]:
    """Every UTC date touching [local_start - offset, local_end - offset + 24h)."""
    offset = timedelta(hours=timezone_offset)
    utc_start = datetime.combine(local_start, time.min) - offset
    utc_end = datetime.combine(local_end, time.min) - offset + timedelta(hours=24)

    last = (utc_end - timedelta(microseconds=1)).date()
    current = utc_start.date()
    dates = []
    while current <= last:
        dates.append(current)
        current += timedelta(days=1)
    return dates


def iter_dates(start: date, end: date) -> List[date]:
    return [start + timedelta(days=i) for i in range((end - start).days + 1)]


def week_range(today: date, week_offset: int) -> Tuple[date, date]:
    # 월요일 ~ 일요일
    monday = today - timedelta(days=today.weekday()) + timedelta(weeks=week_offset)
    sunday = monday + timedelta(days=6)
    if week_offset == 0 and sunday > today:
        sunday = today
    return monday, sunday


def month_range(today: date, month_offset: int) -> Tuple[date, date]:
    month_index = today.year * 12 + (today.month - 1) + month_offset
    year, month = divmod(month_index, 12)
    month += 1

    first = date(year, month, 1)
    last = date(year, month, calendar.monthrange(year, month)[1])
    if month_offset == 0 and last > today:
        last = today
    return first, last
