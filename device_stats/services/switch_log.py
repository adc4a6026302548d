# device_stats/services/switch_log.py

import threading
from collections import deque
from datetime import datetime
from typing import Deque, Dict, List, Optional

from device_stats.config import (
    SWITCH_LOG_SIZE,
    BATTERY_HISTORY_SIZE,
    IDLE_APP_NAME,
    UNKNOWN_APP_NAME,
)
from device_stats.schemas.usage import SwitchEvent, BatteryReading, UsageInterval
from device_stats.utils.time_utils import ensure_utc, elapsed_minutes


class SwitchLog:
    """
    In-memory record of recent app switches and battery readings per device.

    Events are kept most-recent-first. Nothing here is persisted; the interval
    returned by record_switch is what the caller hands to the distributor.
    """

    def __init__(self, max_events: int = SWITCH_LOG_SIZE, battery_history: int = BATTERY_HISTORY_SIZE):
        self.max_events = max_events
        self.battery_history_size = battery_history

        self._switches: Dict[str, Deque[SwitchEvent]] = {}
        self._battery: Dict[str, Deque[BatteryReading]] = {}

        # 디바이스별 락 (락 생성 자체는 _guard로 보호)
        self._locks: Dict[str, threading.RLock] = {}
        self._guard = threading.Lock()

    def lock_for(self, device_id: str) -> threading.RLock:
        with self._guard:
            lock = self._locks.get(device_id)
            if lock is None:
                lock = threading.RLock()
                self._locks[device_id] = lock
            return lock

    def _events(self, device_id: str) -> Deque[SwitchEvent]:
        with self._guard:
            return self._switches.setdefault(device_id, deque(maxlen=self.max_events))

    def record_switch(
        self,
        device_id: str,
        app_name: Optional[str],
        running: bool,
        now: datetime,
    ) -> Optional[UsageInterval]:
        if running is not False and not app_name:
            raise ValueError("app_name is required when running is true")

        now = ensure_utc(now)

        with self.lock_for(device_id):
            events = self._events(device_id)
            head = events[0] if events else None

            interval = None
            if head is not None and head.running:
                interval = UsageInterval(
                    app_name=head.app_name,
                    start=head.timestamp,
                    minutes=elapsed_minutes(head.timestamp, now),
                )

            if running is False:
                # 실행 중이던 마지막 기록을 종료 처리 후 대기 기록 추가
                if head is not None and head.running:
                    events[0] = head.model_copy(update={"running": False})
                events.appendleft(SwitchEvent(app_name=IDLE_APP_NAME, timestamp=now, running=False))
            else:
                events.appendleft(SwitchEvent(app_name=app_name, timestamp=now, running=True))

            # deque(maxlen)이 가장 오래된 기록을 제거함
            return interval

    def latest(self, device_id: str) -> SwitchEvent:
        events = self._switches.get(device_id)
        if not events:
            return SwitchEvent(app_name=UNKNOWN_APP_NAME, timestamp=None, running=False)
        return events[0]

    def recent(self, device_id: str) -> List[SwitchEvent]:
        with self.lock_for(device_id):
            return list(self._switches.get(device_id, ()))

    def recent_all(self) -> Dict[str, List[SwitchEvent]]:
        return {device_id: self.recent(device_id) for device_id in self.devices()}

    def devices(self) -> List[str]:
        with self._guard:
            return list(self._switches.keys())

    # --- Battery ---

    def record_battery(self, device_id: str, level: float, is_charging: bool, now: datetime) -> BatteryReading:
        reading = BatteryReading(level=level, is_charging=is_charging, timestamp=ensure_utc(now))
        with self.lock_for(device_id):
            with self._guard:
                history = self._battery.setdefault(device_id, deque(maxlen=self.battery_history_size))
            history.append(reading)
        return reading

    def latest_battery(self, device_id: str) -> BatteryReading:
        history = self._battery.get(device_id)
        if not history:
            return BatteryReading()
        return history[-1]

    def battery_history(self, device_id: str) -> List[BatteryReading]:
        with self.lock_for(device_id):
            return list(self._battery.get(device_id, ()))
