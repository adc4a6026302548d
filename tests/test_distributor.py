from datetime import date, datetime, timedelta, timezone

import pytest

from device_stats.schemas.usage import DayUsageRecord
from device_stats.services import hourly_store
from device_stats.services.distributor import distribute_minutes


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


def buckets(db, day: date, app: str = "X", device: str = "dev1"):
    record = hourly_store.get_day_record(db, device, day, app)
    return record.hourly_minutes if record else [0.0] * 24


def test_within_single_hour(db):
    result = distribute_minutes(db, "dev1", "X", utc(2024, 1, 1, 10, 15), 20)

    hours = buckets(db, date(2024, 1, 1))
    assert hours[10] == 20
    assert sum(hours) == 20
    assert result.distributed == 20
    assert result.truncated is False


def test_splits_across_hour_boundary_with_seconds(db):
    distribute_minutes(db, "dev1", "X", utc(2024, 1, 1, 10, 45, 30), 30)

    hours = buckets(db, date(2024, 1, 1))
    assert hours[10] == 14.5
    assert hours[11] == 15.5


def test_splits_across_day_boundary(db):
    distribute_minutes(db, "dev1", "X", utc(2024, 1, 1, 23, 50), 30)

    assert buckets(db, date(2024, 1, 1))[23] == 10
    day2 = buckets(db, date(2024, 1, 2))
    assert day2[0] == 20
    assert sum(day2) == 20


def test_long_interval_sum_is_preserved(db):
    minutes = 3 * 24 * 60 + 37.25
    distribute_minutes(db, "dev1", "X", utc(2024, 1, 1, 5, 22, 45), minutes)

    total = 0.0
    for offset in range(5):
        hours = buckets(db, date(2024, 1, 1) + timedelta(days=offset))
        assert all(0 <= m <= 60 for m in hours)
        assert sum(hours) <= 1440
        total += sum(hours)

    assert total == pytest.approx(minutes, abs=0.02)


def test_full_bucket_spills_into_next_hour(db):
    full = DayUsageRecord.empty("dev1", date(2024, 1, 1), "X")
    full.hourly_minutes[10] = 60
    hourly_store.upsert_day_record(db, full)

    distribute_minutes(db, "dev1", "X", utc(2024, 1, 1, 10, 30), 20)

    hours = buckets(db, date(2024, 1, 1))
    assert hours[10] == 60
    assert hours[11] == 20


def test_partially_filled_bucket_caps_at_sixty(db):
    existing = DayUsageRecord.empty("dev1", date(2024, 1, 1), "X")
    existing.hourly_minutes[10] = 55
    hourly_store.upsert_day_record(db, existing)

    distribute_minutes(db, "dev1", "X", utc(2024, 1, 1, 10, 30), 20)

    hours = buckets(db, date(2024, 1, 1))
    assert hours[10] == 60
    assert hours[11] == 15


def test_accumulates_into_existing_record(db):
    distribute_minutes(db, "dev1", "X", utc(2024, 1, 1, 9, 0), 10.25)
    distribute_minutes(db, "dev1", "X", utc(2024, 1, 1, 9, 30), 10.5)

    assert buckets(db, date(2024, 1, 1))[9] == 20.75


def test_keeps_minutes_written_by_another_session_in_between(db, session_factory, monkeypatch):
    add_to_bucket = hourly_store.add_to_bucket
    calls = []

    def add_then_other_writer(*args, **kwargs):
        added = add_to_bucket(*args, **kwargs)
        calls.append(added)
        if len(calls) == 1:
            # 다른 세션이 첫 커밋 직후 같은 레코드의 11시에 7분을 기록
            other = session_factory()
            try:
                record = hourly_store.get_day_record(other, "dev1", date(2024, 1, 1), "X")
                record.hourly_minutes[11] += 7
                hourly_store.upsert_day_record(other, record)
            finally:
                other.close()
        return added

    monkeypatch.setattr(hourly_store, "add_to_bucket", add_then_other_writer)

    distribute_minutes(db, "dev1", "X", utc(2024, 1, 1, 10, 30), 40)

    hours = buckets(db, date(2024, 1, 1))
    assert hours[10] == 30
    assert hours[11] == 17


def test_bucket_filled_by_another_session_spills_remainder(db, session_factory, monkeypatch):
    add_to_bucket = hourly_store.add_to_bucket
    calls = []

    def add_then_fill_next_hour(*args, **kwargs):
        added = add_to_bucket(*args, **kwargs)
        calls.append(added)
        if len(calls) == 1:
            other = session_factory()
            try:
                record = hourly_store.get_day_record(other, "dev1", date(2024, 1, 1), "X")
                record.hourly_minutes[11] = 55
                hourly_store.upsert_day_record(other, record)
            finally:
                other.close()
        return added

    monkeypatch.setattr(hourly_store, "add_to_bucket", add_then_fill_next_hour)

    result = distribute_minutes(db, "dev1", "X", utc(2024, 1, 1, 10, 30), 45)

    hours = buckets(db, date(2024, 1, 1))
    assert hours[10] == 30
    assert hours[11] == 60
    assert hours[12] == 10
    assert result.distributed == 45


def test_apps_and_devices_are_kept_apart(db):
    distribute_minutes(db, "dev1", "X", utc(2024, 1, 1, 9, 0), 10)
    distribute_minutes(db, "dev1", "Y", utc(2024, 1, 1, 9, 0), 20)
    distribute_minutes(db, "dev2", "X", utc(2024, 1, 1, 9, 0), 30)

    assert buckets(db, date(2024, 1, 1), "X")[9] == 10
    assert buckets(db, date(2024, 1, 1), "Y")[9] == 20
    assert buckets(db, date(2024, 1, 1), "X", "dev2")[9] == 30


def test_zero_minutes_writes_nothing(db):
    result = distribute_minutes(db, "dev1", "X", utc(2024, 1, 1, 9, 0), 0)

    assert result.distributed == 0
    assert hourly_store.get_day_record(db, "dev1", date(2024, 1, 1), "X") is None


def test_safety_limit_discards_remainder(db):
    start = utc(2024, 1, 1, 0, 0)
    minutes = 40 * 24 * 60

    result = distribute_minutes(db, "dev1", "X", start, minutes, max_days=2)

    # days 0..2 are filled (cursor stops once it is more than 2 whole days in)
    assert result.truncated is True
    assert result.distributed == 3 * 24 * 60
    assert result.discarded == pytest.approx(minutes - 3 * 24 * 60)
    assert hourly_store.get_day_record(db, "dev1", date(2024, 1, 4), "X") is None


def test_safety_limit_is_logged(db, caplog):
    with caplog.at_level("WARNING"):
        distribute_minutes(db, "dev1", "X", utc(2024, 1, 1), 5 * 24 * 60, max_days=1)

    assert any("discarding" in r.message for r in caplog.records)
