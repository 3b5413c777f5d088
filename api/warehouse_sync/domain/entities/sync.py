"""
Entidades de dominio del motor de sincronización BigQuery -> Postgres.

Sin I/O: solo estructuras y reglas de transición del watermark.
"""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

from warehouse_sync.shared.utils.datetime_utils import ensure_utc, hours_between


class WatermarkStatus(str, Enum):
    """Estados posibles de un watermark."""
    IDLE = "idle"
    SYNCING = "syncing"
    COMPLETED = "completed"
    FAILED = "failed"


class SyncStatus(str, Enum):
    """Resultado de un modelo dentro de una corrida."""
    SUCCESS = "success"
    FAILED = "failed"
    SKIPPED = "skipped"


WatermarkKey = Tuple[str, str, str, str]


@dataclass(frozen=True)
class SyncConfig:
    """
    Configuración de un modelo (tenant x modelo) de sincronización.

    La crean/editan operadores fuera del motor; aquí es de solo lectura.
    """

    tenant_id: str
    model_name: str
    dataset: str
    table: str
    primary_key_field: str
    target_table: Optional[str] = None
    timestamp_field: Optional[str] = None
    field_mapping: Optional[Dict[str, str]] = None
    custom_transform: Optional[str] = None
    sync_frequency_hours: float = 24.0
    enabled: bool = True
    id: Optional[Any] = None
    last_sync_at: Optional[datetime] = None

    @property
    def watermark_key(self) -> WatermarkKey:
        return (self.tenant_id, self.model_name, self.dataset, self.table)

    @property
    def order_field(self) -> str:
        """Campo por el que se ordena la extracción (timestamp o PK)."""
        return self.timestamp_field or self.primary_key_field

    @property
    def conflict_column(self) -> str:
        """Columna destino que actúa como conflict target del UPSERT."""
        if self.field_mapping:
            return self.field_mapping.get(self.primary_key_field, self.primary_key_field)
        return self.primary_key_field

    def label(self) -> str:
        return f"{self.tenant_id}/{self.model_name}"


@dataclass
class Watermark:
    """
    Progreso persistido por (tenant, modelo, dataset, tabla).

    last_record_timestamp:
        cursor incremental; nunca retrocede en corridas exitosas y no se
        toca en corridas fallidas (la siguiente reintenta la misma ventana).
    """

    tenant_id: str
    model_name: str
    dataset: str
    table: str
    status: WatermarkStatus = WatermarkStatus.IDLE
    last_sync_at: Optional[datetime] = None
    last_record_timestamp: Optional[str] = None
    total_records_synced: int = 0
    error_message: Optional[str] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def for_config(cls, config: SyncConfig) -> "Watermark":
        return cls(
            tenant_id=config.tenant_id,
            model_name=config.model_name,
            dataset=config.dataset,
            table=config.table,
        )

    @property
    def key(self) -> WatermarkKey:
        return (self.tenant_id, self.model_name, self.dataset, self.table)

    def is_due(self, now: datetime, frequency_hours: float) -> bool:
        """True si ya pasó la frecuencia configurada desde el último sync."""
        if self.last_sync_at is None:
            return True
        return hours_between(self.last_sync_at, now) >= frequency_hours

    def is_locked(self, now: datetime, stale_after_hours: float) -> bool:
        """
        True si otra corrida tiene el modelo en 'syncing' y no está vencida.
        """
        if self.status != WatermarkStatus.SYNCING:
            return False
        if self.updated_at is None:
            return False
        return hours_between(self.updated_at, now) < stale_after_hours

    def started(self, now: datetime) -> "Watermark":
        return replace(
            self,
            status=WatermarkStatus.SYNCING,
            error_message=None,
            updated_at=ensure_utc(now),
        )

    def completed(self, now: datetime, cursor: Optional[str], records: int) -> "Watermark":
        return replace(
            self,
            status=WatermarkStatus.COMPLETED,
            last_sync_at=ensure_utc(now),
            last_record_timestamp=cursor,
            total_records_synced=self.total_records_synced + records,
            error_message=None,
            updated_at=ensure_utc(now),
        )

    def failed(self, now: datetime, message: str) -> "Watermark":
        return replace(
            self,
            status=WatermarkStatus.FAILED,
            error_message=message[:2000],
            updated_at=ensure_utc(now),
        )


# ---------------------------------------------------------------------------
# Estrategia de transformación: variante resuelta una vez por modelo
# ---------------------------------------------------------------------------

RowTransformFn = Callable[[Dict[str, Any], SyncConfig], Dict[str, Any]]


@dataclass(frozen=True)
class DeclarativeTransform:
    """Copia solo los campos mapeados (source -> target)."""
    mapping: Dict[str, str]


@dataclass(frozen=True)
class CustomTransform:
    """
    Función registrada por nombre que da forma a cada fila.

    conflict_column: columna destino que identifica la fila cuando el
    transform renombra la PK (si es None se usa la de la configuración).
    """
    name: str
    fn: RowTransformFn
    conflict_column: Optional[str] = None


@dataclass(frozen=True)
class PassThroughTransform:
    """Copia todos los campos tal cual."""


TransformStrategy = Union[DeclarativeTransform, CustomTransform, PassThroughTransform]


@dataclass
class TransformedBatch:
    """Registros listos para UPSERT y cursor candidato del lote."""

    records: List[Dict[str, Any]]
    max_cursor: Optional[str] = None


@dataclass(frozen=True)
class SyncResult:
    tenant_id: str
    model_name: str
    status: SyncStatus
    records_synced: int = 0
    error: Optional[str] = None


@dataclass
class SyncRunSummary:
    """Resumen agregado de una corrida del orquestador."""

    started_at: datetime
    finished_at: Optional[datetime] = None
    results: List[SyncResult] = field(default_factory=list)

    def _count(self, status: SyncStatus) -> int:
        return sum(1 for r in self.results if r.status == status)

    @property
    def synced_count(self) -> int:
        return self._count(SyncStatus.SUCCESS)

    @property
    def failed_count(self) -> int:
        return self._count(SyncStatus.FAILED)

    @property
    def skipped_count(self) -> int:
        return self._count(SyncStatus.SKIPPED)
