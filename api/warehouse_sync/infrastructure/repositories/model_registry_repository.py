"""
Model Registry (Postgres): lectura de configuraciones de sync por tenant.
"""

from __future__ import annotations

import json
from datetime import datetime
from typing import Any, Dict, List, Optional

from loguru import logger

from warehouse_sync.domain.entities.sync import SyncConfig
from warehouse_sync.domain.repositories.sync_repositories import IModelRegistry
from warehouse_sync.infrastructure.database.session import PostgresConnectionFactory
from warehouse_sync.infrastructure.external.bigquery.model_presets import get_preset_field_mapping
from warehouse_sync.shared.utils.datetime_utils import ensure_utc

_SELECT_MODELS = """
    SELECT id, tenant_id, model_name, bigquery_dataset, bigquery_table,
           primary_key_field, timestamp_field, target_table, mapping_config,
           sync_frequency_hours, is_enabled, last_sync_at
    FROM bigquery_data_models
    WHERE is_enabled = true
"""


def row_to_sync_config(row: Dict[str, Any], *, default_frequency_hours: float = 24.0) -> SyncConfig:
    """
    Convierte una fila de bigquery_data_models a SyncConfig.

    - mapping_config puede venir como dict (json/jsonb) o string.
    - Sin field_mapping explícito se usa el preset del modelo (si existe).
    """
    mapping_config = row.get("mapping_config") or {}
    if isinstance(mapping_config, str):
        mapping_config = json.loads(mapping_config) if mapping_config.strip() else {}

    field_mapping = mapping_config.get("field_mapping") or get_preset_field_mapping(row["model_name"])
    last_sync_at = row.get("last_sync_at")
    frequency = row.get("sync_frequency_hours")

    return SyncConfig(
        id=row.get("id"),
        tenant_id=str(row["tenant_id"]),
        model_name=row["model_name"],
        dataset=row["bigquery_dataset"],
        table=row["bigquery_table"],
        primary_key_field=row["primary_key_field"],
        timestamp_field=row.get("timestamp_field") or None,
        target_table=row.get("target_table") or None,
        field_mapping=field_mapping or None,
        custom_transform=mapping_config.get("transform") or None,
        sync_frequency_hours=float(default_frequency_hours if frequency is None else frequency),
        enabled=bool(row.get("is_enabled", True)),
        last_sync_at=ensure_utc(last_sync_at) if last_sync_at else None,
    )


class PostgresModelRegistry(IModelRegistry):
    """
    Gestiona la tabla bigquery_data_models (solo lectura + bookkeeping).
    """

    def __init__(
        self,
        connections: PostgresConnectionFactory,
        *,
        default_frequency_hours: float = 24.0,
    ) -> None:
        self._connections = connections
        self._default_frequency_hours = default_frequency_hours

    def list_enabled(
        self,
        tenant_id: Optional[str] = None,
        model_name: Optional[str] = None,
    ) -> List[SyncConfig]:
        sql = _SELECT_MODELS
        params: list[Any] = []
        if tenant_id:
            sql += " AND tenant_id = %s"
            params.append(tenant_id)
        if model_name:
            sql += " AND model_name = %s"
            params.append(model_name)
        sql += " ORDER BY tenant_id, model_name"

        with self._connections.connect() as conn, conn.cursor() as cur:
            cur.execute(sql, tuple(params))
            rows = cur.fetchall()

        return [
            row_to_sync_config(row, default_frequency_hours=self._default_frequency_hours)
            for row in rows
        ]

    def touch_last_sync(self, config: SyncConfig, synced_at: datetime) -> None:
        with self._connections.connect() as conn, conn.cursor() as cur:
            if config.id is not None:
                cur.execute(
                    "UPDATE bigquery_data_models SET last_sync_at = %s WHERE id = %s",
                    (ensure_utc(synced_at), config.id),
                )
            else:
                cur.execute(
                    """
                    UPDATE bigquery_data_models
                    SET last_sync_at = %s
                    WHERE tenant_id = %s AND model_name = %s
                    """,
                    (ensure_utc(synced_at), config.tenant_id, config.model_name),
                )
        logger.debug(f"last_sync_at actualizado para {config.label()}")
