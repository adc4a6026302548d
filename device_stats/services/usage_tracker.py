# device_stats/services/usage_tracker.py

import logging
from datetime import date, datetime
from typing import Callable, List, Optional

from sqlalchemy.exc import SQLAlchemyError

from device_stats.config import LOG_LEVEL
from device_stats.database import SessionLocal
from device_stats.schemas.stats import DailyStats, DeviceStatus, MonthlyStats, WeeklyStats
from device_stats.schemas.usage import (
    BatteryReading,
    DistributionResult,
    IngestReport,
    StatsRequest,
    SwitchEvent,
)
from device_stats.services import stats_query
from device_stats.services.distributor import distribute_minutes
from device_stats.services.switch_log import SwitchLog
from device_stats.utils.time_utils import ensure_utc, local_today, utc_now

# Logger Setup
logging.basicConfig(level=LOG_LEVEL)
logger = logging.getLogger(__name__)


class UsageTracker:
    """
    Entry point for device reports and usage queries.

    Every call opens its own DB session from `session_factory`. `clock`
    supplies "now" whenever the caller does not pass it explicitly.
    """

    def __init__(
        self,
        session_factory: Callable = SessionLocal,
        switch_log: Optional[SwitchLog] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.session_factory = session_factory
        self.switch_log = switch_log or SwitchLog()
        self.clock = clock

    def _now(self, now: Optional[datetime]) -> datetime:
        return ensure_utc(now) if now is not None else ensure_utc(self.clock())

    # --- Ingest ---

    def record_usage(
        self,
        device_id: str,
        app_name: Optional[str],
        running: bool,
        now: Optional[datetime] = None,
    ) -> Optional[DistributionResult]:
        # 같은 디바이스의 전환 기록 갱신과 분배가 섞이지 않도록 락 유지
        with self.switch_log.lock_for(device_id):
            # 시각은 락 안에서 읽어야 기록 순서와 일치함
            now = self._now(now)
            interval = self.switch_log.record_switch(device_id, app_name, running, now)
            if interval is None or interval.minutes <= 0:
                return None

            db = self.session_factory()
            try:
                result = distribute_minutes(db, device_id, interval.app_name, interval.start, interval.minutes)
            except SQLAlchemyError as e:
                db.rollback()
                logger.error(f"Failed to store usage for device {device_id} ({interval.app_name}): {e}")
                raise
            finally:
                db.close()

        if result.truncated:
            logger.warning(
                f"Usage for device {device_id} ({interval.app_name}) truncated, "
                f"{result.discarded} of {result.requested} minutes discarded"
            )
        return result

    def record_battery(
        self,
        device_id: str,
        level: float,
        is_charging: bool = False,
        now: Optional[datetime] = None,
    ) -> BatteryReading:
        return self.switch_log.record_battery(device_id, level, is_charging, self._now(now))

    def ingest(self, report: IngestReport, now: Optional[datetime] = None) -> Optional[DistributionResult]:
        now = self._now(now)

        # 유효 범위(1~100)의 배터리 값만 기록
        if report.has_valid_battery:
            self.record_battery(report.device, report.battery_level, report.is_charging, now)

        return self.record_usage(report.device, report.app_name, report.running, now)

    # --- Queries ---

    def get_devices(self) -> List[DeviceStatus]:
        return stats_query.get_devices(self.switch_log)

    def recent_switches(self, device_id: str) -> List[SwitchEvent]:
        return self.switch_log.recent(device_id)

    def get_daily_stats(self, device_id: str, local_date: date, timezone_offset: float = 0) -> DailyStats:
        db = self.session_factory()
        try:
            return stats_query.get_daily_stats(db, device_id, local_date, timezone_offset)
        finally:
            db.close()

    def daily_stats_for(self, device_id: str, request: StatsRequest, now: Optional[datetime] = None) -> DailyStats:
        # 날짜가 없으면 사용자 시간대의 오늘
        local_date = request.local_date or local_today(self._now(now), request.timezone_offset)
        return self.get_daily_stats(device_id, local_date, request.timezone_offset)

    def weekly_stats_for(self, device_id: str, request: StatsRequest, now: Optional[datetime] = None) -> WeeklyStats:
        return self.get_weekly_app_stats(
            device_id, request.app_name, request.offset, request.timezone_offset, now
        )

    def monthly_stats_for(self, device_id: str, request: StatsRequest, now: Optional[datetime] = None) -> MonthlyStats:
        return self.get_monthly_app_stats(
            device_id, request.app_name, request.offset, request.timezone_offset, now
        )

    def get_weekly_app_stats(
        self,
        device_id: str,
        app_name: Optional[str] = None,
        week_offset: int = 0,
        timezone_offset: float = 0,
        now: Optional[datetime] = None,
    ) -> WeeklyStats:
        db = self.session_factory()
        try:
            return stats_query.get_weekly_app_stats(
                db, device_id, app_name, week_offset, timezone_offset, self._now(now)
            )
        finally:
            db.close()

    def get_monthly_app_stats(
        self,
        device_id: str,
        app_name: Optional[str] = None,
        month_offset: int = 0,
        timezone_offset: float = 0,
        now: Optional[datetime] = None,
    ) -> MonthlyStats:
        db = self.session_factory()
        try:
            return stats_query.get_monthly_app_stats(
                db, device_id, app_name, month_offset, timezone_offset, self._now(now)
            )
        finally:
            db.close()
