from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from warehouse_sync.domain.entities.sync import Watermark, WatermarkStatus
from warehouse_sync.shared.utils.datetime_utils import (
    cursor_sort_key,
    ensure_utc,
    epoch_seconds_to_iso,
    hours_between,
    max_cursor,
    parse_iso_datetime,
)

NOW = datetime(2025, 3, 10, 12, 0, tzinfo=timezone.utc)


def test_ensure_utc_assumes_naive_is_utc() -> None:
    assert ensure_utc(datetime(2025, 3, 10, 12, 0)) == NOW


def test_hours_between_mixed_offsets() -> None:
    later = datetime(2025, 3, 10, 12, 0, tzinfo=timezone(timedelta(hours=-3)))
    assert hours_between(NOW, later) == pytest.approx(3.0)


def test_epoch_seconds_to_iso() -> None:
    assert epoch_seconds_to_iso("1.7000000E9") == "2023-11-14T22:13:20.000000+00:00"


@pytest.mark.parametrize(
    "raw",
    ["2025-03-10T12:00:00Z", "2025-03-10 12:00:00 UTC", "2025-03-10T09:00:00-03:00"],
)
def test_parse_iso_datetime_variants(raw: str) -> None:
    assert parse_iso_datetime(raw) == NOW


def test_parse_iso_datetime_rejects_non_dates() -> None:
    assert parse_iso_datetime("A-1") is None


def test_cursor_sort_key_orders_numbers_numerically() -> None:
    assert cursor_sort_key("10") > cursor_sort_key("9")
    assert max_cursor("9", "10") == "10"


def test_max_cursor_ignores_empty_values() -> None:
    assert max_cursor(None, "2025-03-10T12:00:00Z") == "2025-03-10T12:00:00Z"
    assert max_cursor("2025-03-10T12:00:00Z", None) == "2025-03-10T12:00:00Z"
    assert max_cursor("2025-03-10T12:00:00Z", "") == "2025-03-10T12:00:00Z"


def test_max_cursor_keeps_current_when_candidate_is_older() -> None:
    assert max_cursor("2025-03-10T12:00:00Z", "2025-03-09T12:00:00Z") == "2025-03-10T12:00:00Z"


def test_watermark_transitions_keep_cursor_on_failure() -> None:
    wm = Watermark("T1", "orders", "shop_raw", "orders")
    done = wm.started(NOW).completed(NOW, "2025-03-03T10:00:00Z", 3)
    failed = done.started(NOW).failed(NOW, "x" * 5000)

    assert done.status == WatermarkStatus.COMPLETED
    assert failed.status == WatermarkStatus.FAILED
    assert failed.last_record_timestamp == "2025-03-03T10:00:00Z"
    assert failed.total_records_synced == 3
    assert len(failed.error_message) == 2000


def test_watermark_lock_expires_after_threshold() -> None:
    syncing = Watermark("T1", "orders", "shop_raw", "orders").started(NOW)

    assert syncing.is_locked(NOW + timedelta(hours=5, minutes=59), 6.0) is True
    assert syncing.is_locked(NOW + timedelta(hours=6), 6.0) is False
