"""
Tests del Transformer: mapeo declarativo, pass-through, transforms custom y
cursor candidato del lote.
"""
from __future__ import annotations

import pytest

from warehouse_sync.application.services.row_transformer import (
    conflict_column_for,
    resolve_transform_strategy,
    transform_rows,
)
from warehouse_sync.domain.entities.sync import (
    CustomTransform,
    DeclarativeTransform,
    PassThroughTransform,
)
from warehouse_sync.shared.exceptions.sync import SyncConfigError, TransformError


def test_declarative_mapping_keeps_only_mapped_fields(make_config) -> None:
    config = make_config(tenant_id="T", timestamp_field=None, field_mapping={"a": "x"})

    batch = transform_rows(config, [{"a": 1, "b": 2}])

    assert batch.records == [{"tenant_id": "T", "x": 1}]


def test_pass_through_copies_every_field(make_config) -> None:
    config = make_config(tenant_id="T", timestamp_field=None)

    batch = transform_rows(config, [{"a": 1, "b": 2}])

    assert batch.records == [{"tenant_id": "T", "a": 1, "b": 2}]


def test_mapped_field_missing_from_row_is_not_emitted(make_config) -> None:
    config = make_config(timestamp_field=None, field_mapping={"a": "x", "c": "z"})

    batch = transform_rows(config, [{"a": 1}])

    assert batch.records == [{"tenant_id": "T1", "x": 1}]


def test_source_tenant_id_is_overridden(make_config) -> None:
    config = make_config(timestamp_field=None)

    batch = transform_rows(config, [{"order_id": "A-1", "tenant_id": "OTHER"}])

    assert batch.records[0]["tenant_id"] == "T1"


def test_max_cursor_tracks_latest_timestamp(make_config) -> None:
    rows = [
        {"order_id": "A-2", "updated_at": "2025-03-02T10:00:00+00:00"},
        {"order_id": "A-3", "updated_at": "2025-03-03T10:00:00+00:00"},
        {"order_id": "A-1", "updated_at": "2025-03-01T10:00:00+00:00"},
        {"order_id": "A-4", "updated_at": None},
    ]

    batch = transform_rows(make_config(), rows)

    assert batch.max_cursor == "2025-03-03T10:00:00+00:00"
    assert len(batch.records) == 4


def test_max_cursor_compares_timestamps_chronologically(make_config) -> None:
    rows = [
        {"order_id": "A-1", "updated_at": "2025-03-03T09:00:00-03:00"},
        {"order_id": "A-2", "updated_at": "2025-03-03T11:00:00+00:00"},
    ]

    batch = transform_rows(make_config(), rows)

    assert batch.max_cursor == "2025-03-03T09:00:00-03:00"


def test_empty_batch_has_no_cursor(make_config) -> None:
    batch = transform_rows(make_config(), [])

    assert batch.records == []
    assert batch.max_cursor is None


def test_strategy_precedence(make_config) -> None:
    assert isinstance(resolve_transform_strategy(make_config()), PassThroughTransform)
    assert isinstance(
        resolve_transform_strategy(make_config(field_mapping={"a": "x"})),
        DeclarativeTransform,
    )
    custom = resolve_transform_strategy(
        make_config(field_mapping={"a": "x"}, custom_transform="unified_orders")
    )
    assert isinstance(custom, CustomTransform)
    assert custom.name == "unified_orders"


def test_unknown_custom_transform_raises_config_error(make_config) -> None:
    with pytest.raises(SyncConfigError):
        resolve_transform_strategy(make_config(custom_transform="nope"), registry={})


def test_custom_transform_errors_are_wrapped(make_config) -> None:
    def broken(row, config):
        return {"amount": float(row["amount"])}

    strategy = CustomTransform(name="broken", fn=broken)

    with pytest.raises(TransformError):
        transform_rows(make_config(), [{"amount": "n/a"}], strategy)


def test_conflict_column_follows_mapping_and_custom_override(make_config) -> None:
    config = make_config(field_mapping={"order_id": "external_order_id"})
    assert conflict_column_for(config, resolve_transform_strategy(config)) == "external_order_id"

    plain = make_config()
    assert conflict_column_for(plain, PassThroughTransform()) == "order_id"

    custom = CustomTransform(name="c", fn=lambda row, cfg: row, conflict_column="sku")
    assert conflict_column_for(plain, custom) == "sku"


def test_records_with_null_conflict_value_are_dropped(make_config) -> None:
    rows = [
        {"order_id": "A-1", "updated_at": "2025-03-01T10:00:00+00:00"},
        {"order_id": None, "updated_at": "2025-03-02T10:00:00+00:00"},
    ]

    batch = transform_rows(make_config(), rows)

    assert [r["order_id"] for r in batch.records] == ["A-1"]
    assert batch.max_cursor == "2025-03-02T10:00:00+00:00"
