"""
DTOs del disparador manual y del estado de watermarks.
"""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, model_validator

from warehouse_sync.domain.entities.sync import SyncResult, SyncRunSummary, Watermark


class SyncTriggerRequestDTO(BaseModel):
    """
    Request del disparo manual. Sin body se sincronizan todos los modelos
    habilitados.
    """
    tenant_id: Optional[str] = Field(None, description="Restringe la corrida a un tenant")
    model_name: Optional[str] = Field(None, description="Restringe la corrida a un modelo")
    full_sync: bool = Field(False, description="Resetea el cursor antes de correr")

    @model_validator(mode="after")
    def full_sync_requires_target(self) -> "SyncTriggerRequestDTO":
        if self.full_sync and not (self.tenant_id and self.model_name):
            raise ValueError("full_sync requiere tenant_id y model_name")
        return self


class SyncResultDTO(BaseModel):
    tenant_id: str
    model_name: str
    status: str
    records_synced: int = 0
    error: Optional[str] = None

    @classmethod
    def from_entity(cls, result: SyncResult) -> "SyncResultDTO":
        return cls(
            tenant_id=result.tenant_id,
            model_name=result.model_name,
            status=result.status.value,
            records_synced=result.records_synced,
            error=result.error,
        )


class SyncRunResponseDTO(BaseModel):
    """Resumen agregado de una corrida."""

    success: bool
    synced_count: int
    failed_count: int
    skipped_count: int
    started_at: datetime
    finished_at: Optional[datetime] = None
    results: List[SyncResultDTO] = Field(default_factory=list)

    @classmethod
    def from_summary(cls, summary: SyncRunSummary) -> "SyncRunResponseDTO":
        return cls(
            success=True,
            synced_count=summary.synced_count,
            failed_count=summary.failed_count,
            skipped_count=summary.skipped_count,
            started_at=summary.started_at,
            finished_at=summary.finished_at,
            results=[SyncResultDTO.from_entity(r) for r in summary.results],
        )


class WatermarkDTO(BaseModel):
    tenant_id: str
    model_name: str
    dataset: str
    table: str
    status: str
    last_sync_at: Optional[datetime] = None
    last_record_timestamp: Optional[str] = None
    total_records_synced: int = 0
    error_message: Optional[str] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_entity(cls, watermark: Watermark) -> "WatermarkDTO":
        return cls(
            tenant_id=watermark.tenant_id,
            model_name=watermark.model_name,
            dataset=watermark.dataset,
            table=watermark.table,
            status=watermark.status.value,
            last_sync_at=watermark.last_sync_at,
            last_record_timestamp=watermark.last_record_timestamp,
            total_records_synced=watermark.total_records_synced,
            error_message=watermark.error_message,
            updated_at=watermark.updated_at,
        )
