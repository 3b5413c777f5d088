"""
Interfaces de persistencia del motor de sincronización.
Define el contrato que debe cumplir cualquier implementación (Postgres, memoria).
"""
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

from warehouse_sync.domain.entities.sync import SyncConfig, Watermark, WatermarkKey


class IModelRegistry(ABC):
    """
    Acceso de solo lectura a las configuraciones de sync por tenant.
    """

    @abstractmethod
    def list_enabled(
        self,
        tenant_id: Optional[str] = None,
        model_name: Optional[str] = None,
    ) -> List[SyncConfig]:
        """
        Retorna los modelos habilitados, opcionalmente filtrados.

        Args:
            tenant_id: Restringe a un tenant (disparo manual)
            model_name: Restringe a un modelo (disparo manual)

        Returns:
            List[SyncConfig]: Modelos con enabled = true
        """
        pass

    @abstractmethod
    def touch_last_sync(self, config: SyncConfig, synced_at: datetime) -> None:
        """Actualiza el campo de bookkeeping last_sync_at del modelo."""
        pass


class IWatermarkStore(ABC):
    """
    Progreso persistido por (tenant, modelo, dataset, tabla).
    """

    @abstractmethod
    def get(self, tenant_id: str, model_name: str, dataset: str, table: str) -> Optional[Watermark]:
        pass

    @abstractmethod
    def upsert(self, watermark: Watermark) -> None:
        """Inserta o actualiza por la clave compuesta (idempotente)."""
        pass

    @abstractmethod
    def claim(self, watermark: Watermark, now: datetime, stale_after_hours: float) -> bool:
        """
        Pasa el watermark a 'syncing' de forma atómica.

        Returns:
            bool: False si otra corrida ya lo tiene en 'syncing' y no está vencido
        """
        pass

    @abstractmethod
    def list(self, tenant_id: Optional[str] = None) -> List[Watermark]:
        pass

    @abstractmethod
    def reset(self, key: WatermarkKey, now: datetime) -> bool:
        """
        Limpia cursor y last_sync_at para forzar un re-sync completo.

        Returns:
            bool: False si el watermark está en 'syncing' (no se toca)
        """
        pass


class IUpsertSink(ABC):
    """
    Escritura idempotente (insert-or-update) en la tabla destino.
    """

    @abstractmethod
    def upsert(
        self,
        target_table: str,
        conflict_column: str,
        records: Sequence[Dict[str, Any]],
    ) -> int:
        """
        Returns:
            int: Filas afectadas
        """
        pass
