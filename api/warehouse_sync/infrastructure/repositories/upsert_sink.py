"""
Upsert Sink (Postgres): escritura idempotente en la tabla destino.

Re-aplicar el mismo lote no duplica filas: INSERT ... ON CONFLICT (pk)
DO UPDATE. Las filas se agrupan por conjunto de columnas para no pisar con
NULL campos ausentes en el origen.
"""

from __future__ import annotations

from typing import Any, Dict, List, Sequence, Tuple

import psycopg
from loguru import logger
from psycopg.types.json import Jsonb

from warehouse_sync.domain.repositories.sync_repositories import IUpsertSink
from warehouse_sync.infrastructure.database.session import PostgresConnectionFactory
from warehouse_sync.shared.exceptions.sync import SyncConfigError, WriteError
from warehouse_sync.shared.utils.identifiers import check_identifier


def _adapt(value: Any) -> Any:
    if isinstance(value, (dict, list)):
        return Jsonb(value)
    return value


def build_upsert_sql(
    target_schema: str,
    target_table: str,
    columns: Sequence[str],
    conflict_column: str,
) -> str:
    """
    Genera el INSERT ... ON CONFLICT para un conjunto de columnas.

    Si la única columna es el conflict target no hay nada que actualizar y se
    usa DO NOTHING.
    """
    quoted_cols = ", ".join(f'"{c}"' for c in columns)
    placeholders = ", ".join(["%s"] * len(columns))
    update_cols = [c for c in columns if c != conflict_column]

    if update_cols:
        set_sql = ", ".join(f'"{c}" = EXCLUDED."{c}"' for c in update_cols)
        on_conflict = f"DO UPDATE SET {set_sql}"
    else:
        on_conflict = "DO NOTHING"

    return (
        f'INSERT INTO "{target_schema}"."{target_table}" ({quoted_cols}) '
        f"VALUES ({placeholders}) "
        f'ON CONFLICT ("{conflict_column}") {on_conflict}'
    )


def group_by_columns(records: Sequence[Dict[str, Any]]) -> Dict[Tuple[str, ...], List[Dict[str, Any]]]:
    """Agrupa registros por su conjunto (ordenado por aparición) de columnas."""
    groups: Dict[Tuple[str, ...], List[Dict[str, Any]]] = {}
    for record in records:
        groups.setdefault(tuple(record.keys()), []).append(record)
    return groups


class PostgresUpsertSink(IUpsertSink):
    def __init__(self, connections: PostgresConnectionFactory, *, target_schema: str = "public") -> None:
        self._connections = connections
        self._target_schema = target_schema

    def upsert(
        self,
        target_table: str,
        conflict_column: str,
        records: Sequence[Dict[str, Any]],
    ) -> int:
        if not records:
            return 0

        groups = group_by_columns(records)
        try:
            schema = check_identifier(self._target_schema, "target_schema")
            table = check_identifier(target_table, "target_table")
            for columns in groups:
                for column in columns:
                    check_identifier(column, "column")
        except SyncConfigError as e:
            raise WriteError(e.message, details=e.details) from e

        missing_pk = [cols for cols in groups if conflict_column not in cols]
        if missing_pk:
            raise WriteError(
                f"Hay registros sin la columna de conflicto '{conflict_column}'",
                details={"target_table": target_table},
            )
        if any(record[conflict_column] is None for record in records):
            raise WriteError(
                f"Hay registros con '{conflict_column}' nulo",
                details={"target_table": target_table},
            )

        affected = 0
        try:
            with self._connections.connect() as conn, conn.cursor() as cur:
                for columns, rows in groups.items():
                    sql = build_upsert_sql(schema, table, columns, conflict_column)
                    values = [tuple(_adapt(row[c]) for c in columns) for row in rows]
                    cur.executemany(sql, values)
                    affected += cur.rowcount if cur.rowcount and cur.rowcount > 0 else len(rows)
        except psycopg.Error as e:
            raise WriteError(
                f"UPSERT en {schema}.{table} falló: {e}",
                details={"target_table": target_table},
            ) from e

        logger.debug(f"UPSERT {schema}.{table}: {affected} fila(s) afectada(s)")
        return affected
