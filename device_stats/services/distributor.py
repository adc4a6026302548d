# device_stats/services/distributor.py

import logging
from datetime import datetime

from sqlalchemy.orm import Session

from device_stats.config import BUCKET_CAPACITY_MINUTES, MAX_DISTRIBUTION_DAYS
from device_stats.schemas.usage import DistributionResult
from device_stats.services import hourly_store
from device_stats.utils.time_utils import (
    ensure_utc,
    round_minutes,
    minutes_to_next_hour,
    next_hour_start,
)

logger = logging.getLogger(__name__)


def distribute_minutes(
    db: Session,
    device_id: str,
    app_name: str,
    start: datetime,
    total_minutes: float,
    max_days: int = MAX_DISTRIBUTION_DAYS,
) -> DistributionResult:
    """
    Spread `total_minutes` of usage starting at `start` over UTC hour buckets.

    Each bucket holds at most BUCKET_CAPACITY_MINUTES. Time that does not fit
    spills into the following hours (and days). The walk stops once the
    cursor is more than `max_days` whole days past `start`; whatever is left
    at that point is discarded and reported in the result.
    """
    start = ensure_utc(start)
    remaining = round_minutes(max(0.0, total_minutes))
    result = DistributionResult(requested=remaining)

    cursor = start

    while remaining > 0:
        if (cursor - start).days > max_days:
            logger.warning(
                f"Distribution exceeded {max_days} days, discarding {remaining} minutes "
                f"(device: {device_id}, app: {app_name})"
            )
            result.truncated = True
            result.discarded = remaining
            break

        # 1) 현재 커서의 UTC 날짜/시간, 다음 정시까지 남은 분
        day = cursor.date()
        hour = cursor.hour
        wanted = round_minutes(min(remaining, minutes_to_next_hour(cursor)))

        # 2) 버킷에 더하기 (저장소가 최신 값을 다시 읽고 용량으로 제한)
        take = 0.0
        if wanted > 0:
            take = hourly_store.add_to_bucket(
                db, device_id, day, app_name, hour, wanted, BUCKET_CAPACITY_MINUTES
            )

        if take > 0:
            result.distributed = round_minutes(result.distributed + take)
            remaining = round_minutes(remaining - take)
            if remaining < 0.01:
                remaining = 0

        if remaining <= 0:
            break

        # 3) 정시 도달 또는 버킷이 가득 참 → 다음 시간으로 (23시 이후는 다음 날)
        cursor = next_hour_start(cursor)

    return result
