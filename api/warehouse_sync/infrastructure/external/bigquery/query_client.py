"""
Extractor: cliente mínimo de la API REST de BigQuery (jobs.query).

Requisitos cubiertos:
- requests
- rate-limit/backoff (429, 5xx) dentro de una misma llamada HTTP
- query incremental por cursor con página acotada (LIMIT)
- aplanado de filas columnares (schema.fields + rows[].f[].v) a dicts
"""

from __future__ import annotations

import time
from typing import Any, Callable, Dict, List, Optional

import requests
from loguru import logger

from warehouse_sync.domain.entities.sync import SyncConfig
from warehouse_sync.shared.exceptions.sync import ExtractionError
from warehouse_sync.shared.utils.datetime_utils import epoch_seconds_to_iso
from warehouse_sync.shared.utils.identifiers import COLUMN_RE, WAREHOUSE_PATH_RE, check_identifier

DEFAULT_PAGE_SIZE = 5000


def _escape_literal(value: str) -> str:
    return value.replace("\\", "\\\\").replace("'", "\\'")


def build_incremental_query(
    config: SyncConfig,
    *,
    project_id: str,
    cursor: Optional[str],
    page_size: int = DEFAULT_PAGE_SIZE,
) -> str:
    """
    Construye la query incremental en Standard SQL.

    - Filtra por timestamp_field > cursor solo si hay campo y cursor previo.
    - Siempre ordena ascendente (timestamp o PK) para que una página
      recortada por LIMIT igual avance el cursor de forma monótona.
    """
    project = check_identifier(project_id, "project_id", WAREHOUSE_PATH_RE)
    dataset = check_identifier(config.dataset, "dataset", WAREHOUSE_PATH_RE)
    table = check_identifier(config.table, "table", WAREHOUSE_PATH_RE)
    order_field = check_identifier(config.order_field, "order_field", COLUMN_RE)

    query = f"SELECT * FROM `{project}.{dataset}.{table}`"
    if config.timestamp_field and cursor:
        query += f" WHERE {config.timestamp_field} > TIMESTAMP('{_escape_literal(cursor)}')"
    query += f" ORDER BY {order_field} ASC LIMIT {int(page_size)}"
    return query


def _coerce_cell(value: Any, schema_field: Dict[str, Any]) -> Any:
    """Convierte el valor 'v' de BigQuery según el tipo declarado en el schema."""
    if value is None:
        return None

    if schema_field.get("mode") == "REPEATED":
        item_field = {k: v for k, v in schema_field.items() if k != "mode"}
        return [_coerce_cell(item.get("v"), item_field) for item in value]

    field_type = (schema_field.get("type") or "").upper()
    if field_type in ("RECORD", "STRUCT"):
        nested_fields = schema_field.get("fields") or []
        return _flatten_row(value, nested_fields)
    if field_type == "TIMESTAMP":
        return epoch_seconds_to_iso(value)
    if field_type in ("INTEGER", "INT64"):
        return int(value)
    if field_type in ("FLOAT", "FLOAT64"):
        return float(value)
    if field_type in ("BOOLEAN", "BOOL"):
        return str(value).lower() == "true"
    return value


def _flatten_row(row: Dict[str, Any], fields: List[Dict[str, Any]]) -> Dict[str, Any]:
    obj: Dict[str, Any] = {}
    for index, cell in enumerate(row.get("f") or []):
        schema_field = fields[index] if index < len(fields) else {}
        name = schema_field.get("name") or f"col_{index}"
        obj[name] = _coerce_cell(cell.get("v"), schema_field)
    return obj


def flatten_query_rows(payload: Dict[str, Any]) -> List[Dict[str, Any]]:
    """
    Aplana la respuesta columnar de jobs.query a filas por nombre de campo.

    Si el schema no trae nombre para una posición se usa col_<index>.
    """
    rows = payload.get("rows") or []
    if not rows:
        return []
    fields = (payload.get("schema") or {}).get("fields") or []
    return [_flatten_row(row, fields) for row in rows]


class BigQueryClient:
    """
    Cliente HTTP de BigQuery. Expone extract() para el orquestador.

    Importante:
    - Un error aquí afecta solo al modelo en curso (ExtractionError).
    - No cachea tokens: el bearer llega en cada llamada.
    """

    def __init__(
        self,
        project_id: str,
        *,
        session: Optional[requests.Session] = None,
        base_url: str = "https://bigquery.googleapis.com/bigquery/v2",
        page_size: int = DEFAULT_PAGE_SIZE,
        timeout_s: int = 60,
        max_retries: int = 3,
        min_backoff_s: float = 0.8,
        max_backoff_s: float = 20.0,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._project_id = project_id
        self._base_url = base_url.rstrip("/")
        self._page_size = page_size
        self._timeout_s = timeout_s
        self._max_retries = max_retries
        self._min_backoff_s = min_backoff_s
        self._max_backoff_s = max_backoff_s
        self._session = session or requests.Session()
        self._sleep = sleep

    @property
    def project_id(self) -> str:
        return self._project_id

    def extract(
        self,
        config: SyncConfig,
        *,
        cursor: Optional[str],
        access_token: str,
    ) -> List[Dict[str, Any]]:
        """
        Ejecuta la query incremental de un modelo.

        Returns:
            Lista de filas (dict por nombre de columna), a lo sumo page_size
        """
        query = build_incremental_query(
            config,
            project_id=self._project_id,
            cursor=cursor,
            page_size=self._page_size,
        )
        logger.debug(f"Query {config.label()}: {query}")
        return self.run_query(query, access_token=access_token)

    def run_query(self, query: str, *, access_token: str) -> List[Dict[str, Any]]:
        url = f"{self._base_url}/projects/{self._project_id}/queries"
        body = {
            "query": query,
            "useLegacySql": False,
            "maxResults": self._page_size,
        }
        payload = self._request_json(url, body=body, access_token=access_token)

        error = payload.get("error")
        if error:
            message = error.get("message", error) if isinstance(error, dict) else error
            raise ExtractionError(f"BigQuery error: {message}", details={"error": error})
        if payload.get("jobComplete") is False:
            raise ExtractionError("La query de BigQuery no terminó dentro del timeout del endpoint")

        return flatten_query_rows(payload)

    def _request_json(self, url: str, *, body: Dict[str, Any], access_token: str) -> Dict[str, Any]:
        """
        POST con backoff para 429/5xx.

        Estrategia:
        - 429: respeta Retry-After si existe, si no exponencial.
        - 5xx: exponencial con jitter proporcional simple.
        - 4xx (no 429): error inmediato (query o permisos mal).
        """
        headers = {
            "Authorization": f"Bearer {access_token}",
            "Content-Type": "application/json",
        }

        for attempt in range(self._max_retries + 1):
            try:
                resp = self._session.post(url, json=body, headers=headers, timeout=self._timeout_s)
            except requests.RequestException as e:
                raise ExtractionError(f"BigQuery inaccesible: {e}") from e

            if 200 <= resp.status_code < 300:
                try:
                    return resp.json()
                except ValueError as e:
                    raise ExtractionError("BigQuery devolvió una respuesta no JSON") from e

            # Errores recuperables
            if resp.status_code == 429 or 500 <= resp.status_code < 600:
                if attempt >= self._max_retries:
                    raise ExtractionError(
                        f"BigQuery error {resp.status_code} tras {attempt} reintentos: {resp.text[:500]}"
                    )

                retry_after = resp.headers.get("Retry-After")
                if retry_after and retry_after.isdigit():
                    sleep_s = float(retry_after)
                else:
                    base = min(self._max_backoff_s, self._min_backoff_s * (2**attempt))
                    sleep_s = base + (0.15 * base)

                logger.warning(f"BigQuery {resp.status_code}, reintento {attempt + 1} en {sleep_s:.1f}s")
                self._sleep(sleep_s)
                continue

            # Errores no recuperables
            raise ExtractionError(
                f"BigQuery request falló {resp.status_code}: {resp.text[:500]}"
            )

        raise ExtractionError("BigQuery: reintentos agotados")
