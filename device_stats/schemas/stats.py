from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from device_stats.config import HOURS_PER_DAY


class StatsModel(BaseModel):
    # model_dump(by_alias=True) → camelCase (totalUsage, appStats ...)
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class DeviceStatus(StatsModel):
    device: str
    current_app: str
    running: bool
    running_since: Optional[datetime] = None
    battery_level: float = 0
    is_charging: bool = False
    battery_timestamp: Optional[datetime] = None


class DailyStats(StatsModel):
    total_usage: float = 0.0
    # 기여한 버킷이 있는 앱만 포함
    app_stats: Dict[str, float] = Field(default_factory=dict)
    hourly_stats: List[float] = Field(default_factory=lambda: [0.0] * HOURS_PER_DAY)
    app_hourly_stats: Dict[str, List[float]] = Field(default_factory=dict)
    timezone_offset: float = 0


class DateRange(StatsModel):
    start: str  # YYYY-MM-DD
    end: str


class RangeStats(StatsModel):
    timezone_offset: float = 0
    daily_totals: Dict[str, float] = Field(default_factory=dict)
    app_daily_stats: Dict[str, Dict[str, float]] = Field(default_factory=dict)


class WeeklyStats(RangeStats):
    week_offset: int
    week_range: DateRange


class MonthlyStats(RangeStats):
    month_offset: int
    month_range: DateRange
