from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from device_stats.config import HOURS_PER_DAY


class SwitchEvent(BaseModel):
    app_name: str
    timestamp: Optional[datetime] = None
    running: bool


class BatteryReading(BaseModel):
    level: float = 0
    is_charging: bool = False
    timestamp: Optional[datetime] = None


class UsageInterval(BaseModel):
    # 직전 실행 앱의 사용 구간 (분배 대상)
    app_name: str
    start: datetime
    minutes: float


class DayUsageRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    device_id: str
    date: date  # UTC 날짜
    app_name: str
    hourly_minutes: List[float]

    @field_validator("hourly_minutes")
    @classmethod
    def check_bucket_count(cls, v):
        if len(v) != HOURS_PER_DAY:
            raise ValueError(f"hourly_minutes must have {HOURS_PER_DAY} buckets")
        return [float(m) for m in v]

    @classmethod
    def empty(cls, device_id: str, day: date, app_name: str) -> "DayUsageRecord":
        return cls(
            device_id=device_id,
            date=day,
            app_name=app_name,
            hourly_minutes=[0.0] * HOURS_PER_DAY,
        )


class DistributionResult(BaseModel):
    requested: float
    distributed: float = 0.0
    discarded: float = 0.0
    truncated: bool = False  # 최대 일수 제한으로 중단된 경우


class IngestReport(BaseModel):
    # 디바이스 보고 payload
    device: str = Field(min_length=1)
    app_name: Optional[str] = None
    running: bool = True
    battery_level: Optional[float] = None
    is_charging: bool = False

    @model_validator(mode="after")
    def require_app_when_running(self):
        if self.running and not self.app_name:
            raise ValueError("Missing app_name when running is true")
        return self

    @property
    def has_valid_battery(self) -> bool:
        return self.battery_level is not None and 0 < self.battery_level <= 100


class StatsRequest(BaseModel):
    timezone_offset: float = Field(default=0, ge=-12, le=12)
    local_date: Optional[date] = None
    offset: int = 0
    app_name: Optional[str] = None
