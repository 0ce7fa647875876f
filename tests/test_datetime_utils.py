from datetime import date, datetime, timedelta, timezone
from pathlib import Path
import sys

sys.path.append(str(Path(__file__).resolve().parents[1]))

from datetime_utils import (
    ensure_utc,
    epoch_seconds,
    from_epoch,
    midnight_utc,
    parse_date,
    parse_rfc3339,
    to_rfc3339_utc,
)


def test_parse_rfc3339_offsets_and_fractions():
    assert parse_rfc3339("2026-02-10T09:00:00Z") == datetime(2026, 2, 10, 9, 0, tzinfo=timezone.utc)
    assert parse_rfc3339("2026-02-10T10:00:00-05:00") == datetime(2026, 2, 10, 15, 0, tzinfo=timezone.utc)
    parsed = parse_rfc3339("2026-02-10T09:00:00.123Z")
    assert parsed.microsecond == 123000


def test_parse_rfc3339_rejects_garbage():
    assert parse_rfc3339(None) is None
    assert parse_rfc3339("   ") is None
    assert parse_rfc3339("tomorrow") is None


def test_parse_date():
    assert parse_date("2026-02-12") == date(2026, 2, 12)
    assert parse_date("12.02.2026") is None
    assert parse_date("") is None


def test_naive_datetimes_are_treated_as_utc():
    naive = datetime(2026, 2, 10, 8, 0)
    assert ensure_utc(naive) == datetime(2026, 2, 10, 8, 0, tzinfo=timezone.utc)
    shifted = datetime(2026, 2, 10, 9, 0, tzinfo=timezone(timedelta(hours=1)))
    assert ensure_utc(shifted) == datetime(2026, 2, 10, 8, 0, tzinfo=timezone.utc)


def test_to_rfc3339_utc_drops_microseconds():
    value = datetime(2026, 2, 10, 8, 0, 5, 999, tzinfo=timezone.utc)
    assert to_rfc3339_utc(value) == "2026-02-10T08:00:05Z"
    assert to_rfc3339_utc(None) is None


def test_epoch_helpers():
    moment = datetime(2026, 2, 10, 8, 0, tzinfo=timezone.utc)
    assert from_epoch(epoch_seconds(moment)) == moment
    assert from_epoch(None) is None
    assert midnight_utc(date(2026, 2, 12)) == datetime(2026, 2, 12, tzinfo=timezone.utc)
