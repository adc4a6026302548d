# device_stats/services/stats_query.py

from datetime import date, datetime
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from device_stats.config import HOURS_PER_DAY
from device_stats.schemas.stats import (
    DailyStats,
    DateRange,
    DeviceStatus,
    MonthlyStats,
    RangeStats,
    WeeklyStats,
)
from device_stats.services import hourly_store
from device_stats.services.switch_log import SwitchLog
from device_stats.utils.time_utils import (
    bucket_local_time,
    daily_query_dates,
    iter_dates,
    local_today,
    month_range,
    range_query_dates,
    round_minutes,
    week_range,
)


def get_devices(switch_log: SwitchLog) -> List[DeviceStatus]:
    devices = []
    for device_id in switch_log.devices():
        latest = switch_log.latest(device_id)
        battery = switch_log.latest_battery(device_id)

        devices.append(DeviceStatus(
            device=device_id,
            current_app=latest.app_name,
            running=latest.running,
            running_since=latest.timestamp,
            battery_level=battery.level,
            is_charging=battery.is_charging,
            battery_timestamp=battery.timestamp,
        ))
    return devices


def get_daily_stats(db: Session, device_id: str, local_date: date, timezone_offset: float = 0) -> DailyStats:
    # 사용자 날짜가 걸치는 UTC 날짜 (1~2개)
    records = hourly_store.find_day_records(db, device_id, daily_query_dates(local_date, timezone_offset))

    result = DailyStats(timezone_offset=timezone_offset)

    for record in records:
        app_name = record.app_name

        for utc_hour, minutes in enumerate(record.hourly_minutes):
            if minutes == 0:
                continue

            local_ts = bucket_local_time(record.date, utc_hour, timezone_offset)
            if local_ts.date() != local_date:
                continue

            # 대상 날짜에 기여하는 버킷이 있을 때만 앱 항목 생성
            if app_name not in result.app_stats:
                result.app_stats[app_name] = 0.0
                result.app_hourly_stats[app_name] = [0.0] * HOURS_PER_DAY

            local_hour = local_ts.hour
            result.hourly_stats[local_hour] += minutes
            result.app_hourly_stats[app_name][local_hour] += minutes
            result.app_stats[app_name] += minutes
            result.total_usage += minutes

    # 부동소수점 누적 오차 정리
    result.total_usage = round_minutes(result.total_usage)
    result.hourly_stats = [round_minutes(m) for m in result.hourly_stats]
    result.app_stats = {app: round_minutes(m) for app, m in result.app_stats.items()}
    result.app_hourly_stats = {
        app: [round_minutes(m) for m in hours] for app, hours in result.app_hourly_stats.items()
    }
    return result


def _collect_range(
    db: Session,
    device_id: str,
    app_name: Optional[str],
    start: date,
    end: date,
    timezone_offset: float,
) -> RangeStats:
    days = [d.isoformat() for d in iter_dates(start, end)] if start <= end else []
    wanted = set(days)

    daily_totals: Dict[str, float] = {d: 0.0 for d in days}
    app_daily: Dict[str, Dict[str, float]] = {}

    records = hourly_store.find_day_records(db, device_id, range_query_dates(start, end, timezone_offset)) if days else []

    for record in records:
        for utc_hour, minutes in enumerate(record.hourly_minutes):
            if minutes == 0:
                continue

            local_day = bucket_local_time(record.date, utc_hour, timezone_offset).date().isoformat()
            if local_day not in wanted:
                continue

            if record.app_name not in app_daily:
                app_daily[record.app_name] = {d: 0.0 for d in days}

            daily_totals[local_day] += minutes
            app_daily[record.app_name][local_day] += minutes

    daily_totals = {d: round_minutes(m) for d, m in daily_totals.items()}
    app_daily = {
        app: {d: round_minutes(m) for d, m in per_day.items()} for app, per_day in app_daily.items()
    }

    # 앱 지정 시 해당 앱만 (daily_totals는 전체 앱 기준 유지)
    if app_name:
        app_daily = {app_name: app_daily.get(app_name, {})}

    return RangeStats(
        timezone_offset=timezone_offset,
        daily_totals=daily_totals,
        app_daily_stats=app_daily,
    )


def get_weekly_app_stats(
    db: Session,
    device_id: str,
    app_name: Optional[str],
    week_offset: int,
    timezone_offset: float,
    now: datetime,
) -> WeeklyStats:
    start, end = week_range(local_today(now, timezone_offset), week_offset)
    stats = _collect_range(db, device_id, app_name, start, end, timezone_offset)

    return WeeklyStats(
        week_offset=week_offset,
        week_range=DateRange(start=start.isoformat(), end=end.isoformat()),
        **stats.model_dump(),
    )


def get_monthly_app_stats(
    db: Session,
    device_id: str,
    app_name: Optional[str],
    month_offset: int,
    timezone_offset: float,
    now: datetime,
) -> MonthlyStats:
    start, end = month_range(local_today(now, timezone_offset), month_offset)
    stats = _collect_range(db, device_id, app_name, start, end, timezone_offset)

    return MonthlyStats(
        month_offset=month_offset,
        month_range=DateRange(start=start.isoformat(), end=end.isoformat()),
        **stats.model_dump(),
    )
