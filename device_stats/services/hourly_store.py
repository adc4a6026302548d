# device_stats/services/hourly_store.py

from datetime import date
from typing import Iterable, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from device_stats.config import BUCKET_CAPACITY_MINUTES, HOURS_PER_DAY
from device_stats.models.daily_stat import DailyStat
from device_stats.schemas.usage import DayUsageRecord
from device_stats.utils.time_utils import round_minutes


def _query_one(db: Session, device_id: str, utc_day: date, app_name: str, for_update: bool = False):
    query = db.query(DailyStat).filter(
        DailyStat.device_id == device_id,
        DailyStat.date == utc_day,
        DailyStat.app_name == app_name,
    )
    if for_update:
        # SQLite는 FOR UPDATE를 무시함
        query = query.with_for_update()
    return query.first()


def get_day_record(
    db: Session,
    device_id: str,
    utc_day: date,
    app_name: str,
    for_update: bool = False,
) -> Optional[DayUsageRecord]:
    row = _query_one(db, device_id, utc_day, app_name, for_update)
    if row is None:
        return None
    return DayUsageRecord.model_validate(row)


def find_day_records(
    db: Session,
    device_id: str,
    dates: Iterable[date],
    app_name: Optional[str] = None,
) -> List[DayUsageRecord]:
    dates = list(dates)
    if not dates:
        return []

    query = db.query(DailyStat).filter(
        DailyStat.device_id == device_id,
        DailyStat.date.in_(dates),
    )
    if app_name:
        query = query.filter(DailyStat.app_name == app_name)

    rows = query.order_by(DailyStat.date, DailyStat.app_name).all()
    return [DayUsageRecord.model_validate(r) for r in rows]


def upsert_day_record(db: Session, record: DayUsageRecord) -> DayUsageRecord:
    row = _query_one(db, record.device_id, record.date, record.app_name, for_update=True)

    if row is None:
        row = DailyStat(
            device_id=record.device_id,
            date=record.date,
            app_name=record.app_name,
        )
        db.add(row)

    # JSON 컬럼은 새 리스트를 할당해야 변경이 감지됨
    row.hourly_minutes = list(record.hourly_minutes)
    db.commit()

    return record


def add_to_bucket(
    db: Session,
    device_id: str,
    utc_day: date,
    app_name: str,
    hour: int,
    minutes: float,
    capacity: float = BUCKET_CAPACITY_MINUTES,
) -> float:
    """
    Add up to `minutes` to one hour bucket and return how much actually fit.

    The row is re-read with FOR UPDATE and written back in the same
    transaction, so writes made by other sessions since the last call are
    kept. A bucket never goes past `capacity`.
    """
    for attempt in range(2):
        row = _query_one(db, device_id, utc_day, app_name, for_update=True)
        if row is None:
            row = DailyStat(
                device_id=device_id,
                date=utc_day,
                app_name=app_name,
                hourly_minutes=[0.0] * HOURS_PER_DAY,
            )
            db.add(row)

        buckets = [float(m) for m in row.hourly_minutes]
        used = buckets[hour]
        added = round_minutes(min(minutes, max(0.0, capacity - used)))
        if added <= 0:
            # 가득 찬 버킷: 잠금만 해제
            db.rollback()
            return 0.0

        buckets[hour] = min(capacity, round_minutes(used + added))
        row.hourly_minutes = buckets
        try:
            db.commit()
        except IntegrityError:
            # 다른 세션이 같은 키의 행을 먼저 만든 경우 다시 읽어서 더함
            db.rollback()
            if attempt:
                raise
            continue
        return added
