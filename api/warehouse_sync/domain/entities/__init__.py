"""
Entidades del dominio.
"""
from warehouse_sync.domain.entities.sync import (
    CustomTransform,
    DeclarativeTransform,
    PassThroughTransform,
    SyncConfig,
    SyncResult,
    SyncRunSummary,
    SyncStatus,
    TransformedBatch,
    Watermark,
    WatermarkStatus,
)

__all__ = [
    "CustomTransform",
    "DeclarativeTransform",
    "PassThroughTransform",
    "SyncConfig",
    "SyncResult",
    "SyncRunSummary",
    "SyncStatus",
    "TransformedBatch",
    "Watermark",
    "WatermarkStatus",
]
