"""
Excepciones del pipeline BigQuery -> Postgres.

Política de propagación:
- WarehouseAuthError aborta la corrida completa (sin token no hay modelo posible).
- ExtractionError / WriteError quedan aisladas al modelo que las produjo.
- SyncConfigError hace que el modelo se omita antes de extraer.
"""
from typing import Any, Dict, Optional

from warehouse_sync.shared.exceptions.base import AppException


class SyncException(AppException):
    """Excepción base para errores del motor de sincronización."""

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        error_code: str = "SYNC_ERROR",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message,
            status_code=status_code,
            error_code=error_code,
            details=details,
        )


class WarehouseAuthError(SyncException):
    """El intercambio JWT-bearer no devolvió access_token."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            status_code=502,
            error_code="WAREHOUSE_AUTH_ERROR",
            details=details,
        )


class ExtractionError(SyncException):
    """Respuesta no exitosa (o con forma de error) del endpoint de queries."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            status_code=502,
            error_code="EXTRACTION_ERROR",
            details=details,
        )


class TransformError(SyncException):
    """Un transform custom no pudo procesar una fila."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            status_code=500,
            error_code="TRANSFORM_ERROR",
            details=details,
        )


class WriteError(SyncException):
    """Fallo del UPSERT en la tabla destino."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            status_code=500,
            error_code="WRITE_ERROR",
            details=details,
        )


class SyncConfigError(SyncException):
    """Configuración de modelo o de proceso incompleta/inválida."""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(
            message=message,
            status_code=400,
            error_code="SYNC_CONFIG_ERROR",
            details={"field": field} if field else None,
        )
