"""
Tests del Extractor: construcción de la query incremental, aplanado de la
respuesta columnar y manejo de errores/backoff del cliente HTTP.
"""
from __future__ import annotations

from unittest.mock import MagicMock

import pytest
import requests

from warehouse_sync.infrastructure.external.bigquery.query_client import (
    BigQueryClient,
    build_incremental_query,
    flatten_query_rows,
)
from warehouse_sync.shared.exceptions.sync import ExtractionError, SyncConfigError


def _response(status_code: int, payload=None, headers=None, text: str = "") -> MagicMock:
    resp = MagicMock()
    resp.status_code = status_code
    resp.json.return_value = payload if payload is not None else {}
    resp.headers = headers or {}
    resp.text = text
    return resp


def _client(session: MagicMock, sleeps: list) -> BigQueryClient:
    return BigQueryClient("acme-analytics", session=session, page_size=5000, sleep=sleeps.append)


def test_first_query_has_no_filter_and_orders_by_timestamp(make_config) -> None:
    query = build_incremental_query(make_config(), project_id="acme-analytics", cursor=None)

    assert query == (
        "SELECT * FROM `acme-analytics.shop_raw.orders` ORDER BY updated_at ASC LIMIT 5000"
    )


def test_incremental_query_filters_by_cursor(make_config) -> None:
    query = build_incremental_query(
        make_config(),
        project_id="acme-analytics",
        cursor="2025-03-03T10:00:00.000000+00:00",
        page_size=100,
    )

    assert "WHERE updated_at > TIMESTAMP('2025-03-03T10:00:00.000000+00:00')" in query
    assert query.endswith("ORDER BY updated_at ASC LIMIT 100")


def test_query_without_timestamp_orders_by_primary_key(make_config) -> None:
    query = build_incremental_query(
        make_config(timestamp_field=None),
        project_id="acme-analytics",
        cursor="ignored",
    )

    assert "WHERE" not in query
    assert "ORDER BY order_id ASC" in query


def test_cursor_literal_is_escaped(make_config) -> None:
    query = build_incremental_query(make_config(), project_id="p", cursor="x') OR TRUE --")

    assert "TIMESTAMP('x\\') OR TRUE --')" in query


def test_invalid_table_identifier_is_rejected(make_config) -> None:
    with pytest.raises(SyncConfigError):
        build_incremental_query(make_config(table="orders`; DROP"), project_id="p", cursor=None)


def test_flatten_rows_maps_schema_names_and_types() -> None:
    payload = {
        "schema": {
            "fields": [
                {"name": "order_id", "type": "STRING"},
                {"name": "updated_at", "type": "TIMESTAMP"},
                {"name": "items", "type": "INTEGER"},
                {"name": "total", "type": "FLOAT"},
                {"name": "paid", "type": "BOOLEAN"},
                {"name": "tags", "type": "STRING", "mode": "REPEATED"},
                {
                    "name": "buyer",
                    "type": "RECORD",
                    "fields": [{"name": "name", "type": "STRING"}],
                },
            ]
        },
        "rows": [
            {
                "f": [
                    {"v": "A-1"},
                    {"v": "1.7000000E9"},
                    {"v": "3"},
                    {"v": "10.5"},
                    {"v": "true"},
                    {"v": [{"v": "vip"}, {"v": "promo"}]},
                    {"v": {"f": [{"v": "Ana"}]}},
                ]
            }
        ],
    }

    rows = flatten_query_rows(payload)

    assert rows == [
        {
            "order_id": "A-1",
            "updated_at": "2023-11-14T22:13:20.000000+00:00",
            "items": 3,
            "total": 10.5,
            "paid": True,
            "tags": ["vip", "promo"],
            "buyer": {"name": "Ana"},
        }
    ]


def test_flatten_rows_uses_positional_names_when_schema_is_short() -> None:
    payload = {"schema": {"fields": [{"name": "a"}]}, "rows": [{"f": [{"v": "1"}, {"v": "2"}]}]}

    assert flatten_query_rows(payload) == [{"a": "1", "col_1": "2"}]


def test_flatten_rows_without_rows_returns_empty() -> None:
    assert flatten_query_rows({"schema": {"fields": [{"name": "a"}]}}) == []


def test_extract_posts_query_with_bearer_token(make_config) -> None:
    session = MagicMock()
    session.post.return_value = _response(
        200,
        {
            "jobComplete": True,
            "schema": {"fields": [{"name": "order_id"}]},
            "rows": [{"f": [{"v": "A-1"}]}],
        },
    )
    client = _client(session, [])

    rows = client.extract(make_config(), cursor=None, access_token="ya29.abc")

    assert rows == [{"order_id": "A-1"}]
    args, kwargs = session.post.call_args
    assert args[0] == "https://bigquery.googleapis.com/bigquery/v2/projects/acme-analytics/queries"
    assert kwargs["headers"]["Authorization"] == "Bearer ya29.abc"
    assert kwargs["json"]["useLegacySql"] is False
    assert kwargs["json"]["maxResults"] == 5000


def test_error_shaped_response_raises_extraction_error() -> None:
    session = MagicMock()
    session.post.return_value = _response(200, {"error": {"code": 404, "message": "Not found: Table"}})

    with pytest.raises(ExtractionError) as exc_info:
        _client(session, []).run_query("SELECT 1", access_token="t")

    assert "Not found: Table" in exc_info.value.message


def test_incomplete_job_raises_extraction_error() -> None:
    session = MagicMock()
    session.post.return_value = _response(200, {"jobComplete": False})

    with pytest.raises(ExtractionError):
        _client(session, []).run_query("SELECT 1", access_token="t")


def test_client_error_is_not_retried() -> None:
    session = MagicMock()
    session.post.return_value = _response(403, text="Access Denied")
    sleeps: list = []

    with pytest.raises(ExtractionError):
        _client(session, sleeps).run_query("SELECT 1", access_token="t")

    assert session.post.call_count == 1
    assert sleeps == []


def test_rate_limit_is_retried_honoring_retry_after() -> None:
    session = MagicMock()
    session.post.side_effect = [
        _response(429, headers={"Retry-After": "2"}),
        _response(200, {"jobComplete": True, "rows": []}),
    ]
    sleeps: list = []

    assert _client(session, sleeps).run_query("SELECT 1", access_token="t") == []
    assert sleeps == [2.0]


def test_server_errors_exhaust_retries() -> None:
    session = MagicMock()
    session.post.return_value = _response(503, text="backendError")
    sleeps: list = []

    with pytest.raises(ExtractionError):
        _client(session, sleeps).run_query("SELECT 1", access_token="t")

    assert session.post.call_count == 4
    assert len(sleeps) == 3


def test_transport_error_raises_extraction_error() -> None:
    session = MagicMock()
    session.post.side_effect = requests.Timeout("read timeout")

    with pytest.raises(ExtractionError):
        _client(session, []).run_query("SELECT 1", access_token="t")
