"""
Watermark Store (Postgres): cursor y estado de sync por
(tenant, modelo, dataset, tabla).

Tabla: bigquery_sync_watermarks, PK compuesta
(tenant_id, data_model, dataset_id, table_id).
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from warehouse_sync.domain.entities.sync import Watermark, WatermarkKey, WatermarkStatus
from warehouse_sync.domain.repositories.sync_repositories import IWatermarkStore
from warehouse_sync.infrastructure.database.session import PostgresConnectionFactory
from warehouse_sync.shared.utils.datetime_utils import ensure_utc

_COLUMNS = """
    tenant_id, data_model, dataset_id, table_id, sync_status, last_sync_at,
    last_record_timestamp, total_records_synced, error_message, updated_at
"""

_KEY_FILTER = """
    tenant_id = %s
    AND data_model = %s
    AND dataset_id = %s
    AND table_id = %s
"""


def row_to_watermark(row: Dict[str, Any]) -> Watermark:
    last_sync_at = row.get("last_sync_at")
    updated_at = row.get("updated_at")
    return Watermark(
        tenant_id=str(row["tenant_id"]),
        model_name=row["data_model"],
        dataset=row["dataset_id"],
        table=row["table_id"],
        status=WatermarkStatus(row.get("sync_status") or WatermarkStatus.IDLE.value),
        last_sync_at=ensure_utc(last_sync_at) if last_sync_at else None,
        last_record_timestamp=row.get("last_record_timestamp"),
        total_records_synced=int(row.get("total_records_synced") or 0),
        error_message=row.get("error_message"),
        updated_at=ensure_utc(updated_at) if updated_at else None,
    )


class PostgresWatermarkStore(IWatermarkStore):
    def __init__(self, connections: PostgresConnectionFactory) -> None:
        self._connections = connections

    def get(self, tenant_id: str, model_name: str, dataset: str, table: str) -> Optional[Watermark]:
        with self._connections.connect() as conn, conn.cursor() as cur:
            cur.execute(
                f"SELECT {_COLUMNS} FROM bigquery_sync_watermarks WHERE {_KEY_FILTER}",
                (tenant_id, model_name, dataset, table),
            )
            row = cur.fetchone()
        return row_to_watermark(row) if row else None

    def upsert(self, watermark: Watermark) -> None:
        with self._connections.connect() as conn, conn.cursor() as cur:
            cur.execute(
                f"""
                INSERT INTO bigquery_sync_watermarks ({_COLUMNS})
                VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
                ON CONFLICT (tenant_id, data_model, dataset_id, table_id)
                DO UPDATE SET
                    sync_status = EXCLUDED.sync_status,
                    last_sync_at = EXCLUDED.last_sync_at,
                    last_record_timestamp = EXCLUDED.last_record_timestamp,
                    total_records_synced = EXCLUDED.total_records_synced,
                    error_message = EXCLUDED.error_message,
                    updated_at = EXCLUDED.updated_at
                """,
                (
                    *watermark.key,
                    watermark.status.value,
                    watermark.last_sync_at,
                    watermark.last_record_timestamp,
                    watermark.total_records_synced,
                    watermark.error_message,
                    watermark.updated_at,
                ),
            )

    def claim(self, watermark: Watermark, now: datetime, stale_after_hours: float) -> bool:
        """
        Gate de exclusión mutua: INSERT ... ON CONFLICT DO UPDATE ... WHERE.

        Si otra corrida dejó el watermark en 'syncing' hace menos de
        stale_after_hours, el UPDATE no aplica y RETURNING no devuelve fila.
        """
        now_utc = ensure_utc(now)
        stale_before = now_utc - timedelta(hours=stale_after_hours)
        with self._connections.connect() as conn, conn.cursor() as cur:
            cur.execute(
                """
                INSERT INTO bigquery_sync_watermarks
                    (tenant_id, data_model, dataset_id, table_id, sync_status,
                     total_records_synced, updated_at)
                VALUES (%s, %s, %s, %s, 'syncing', 0, %s)
                ON CONFLICT (tenant_id, data_model, dataset_id, table_id)
                DO UPDATE SET
                    sync_status = 'syncing',
                    error_message = NULL,
                    updated_at = EXCLUDED.updated_at
                WHERE bigquery_sync_watermarks.sync_status <> 'syncing'
                   OR bigquery_sync_watermarks.updated_at IS NULL
                   OR bigquery_sync_watermarks.updated_at <= %s
                RETURNING tenant_id
                """,
                (*watermark.key, now_utc, stale_before),
            )
            return cur.fetchone() is not None

    def list(self, tenant_id: Optional[str] = None) -> List[Watermark]:
        sql = f"SELECT {_COLUMNS} FROM bigquery_sync_watermarks"
        params: tuple = ()
        if tenant_id:
            sql += " WHERE tenant_id = %s"
            params = (tenant_id,)
        sql += " ORDER BY tenant_id, data_model"

        with self._connections.connect() as conn, conn.cursor() as cur:
            cur.execute(sql, params)
            rows = cur.fetchall()
        return [row_to_watermark(r) for r in rows]

    def reset(self, key: WatermarkKey, now: datetime) -> bool:
        with self._connections.connect() as conn, conn.cursor() as cur:
            cur.execute(
                f"""
                UPDATE bigquery_sync_watermarks
                SET last_record_timestamp = NULL,
                    last_sync_at = NULL,
                    sync_status = 'idle',
                    error_message = NULL,
                    updated_at = %s
                WHERE {_KEY_FILTER}
                  AND sync_status <> 'syncing'
                RETURNING tenant_id
                """,
                (ensure_utc(now), *key),
            )
            if cur.fetchone() is not None:
                return True

            # Sin fila actualizada: o no existe (nada que resetear) o está en 'syncing'.
            cur.execute(
                f"SELECT sync_status FROM bigquery_sync_watermarks WHERE {_KEY_FILTER}",
                key,
            )
            return cur.fetchone() is None
