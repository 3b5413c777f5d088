"""
Casos de uso de la aplicacion.
"""
from .warehouse_sync_use_cases import WarehouseSyncUseCases, build_from_settings

__all__ = ["WarehouseSyncUseCases", "build_from_settings"]
