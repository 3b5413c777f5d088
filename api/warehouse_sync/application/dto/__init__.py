"""
Data Transfer Objects (DTOs) para la capa de aplicacion.
"""
from .sync_dto import (
    SyncTriggerRequestDTO,
    SyncResultDTO,
    SyncRunResponseDTO,
    WatermarkDTO,
)

__all__ = [
    "SyncTriggerRequestDTO",
    "SyncResultDTO",
    "SyncRunResponseDTO",
    "WatermarkDTO",
]
