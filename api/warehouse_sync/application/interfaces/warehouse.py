"""
Contratos hacia el data warehouse (BigQuery).

Este contrato existe para:
- Que el orquestador no dependa de requests ni de la API REST directamente.
- Facilitar tests unitarios con fakes deterministas.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Protocol

from warehouse_sync.domain.entities.sync import SyncConfig


class AccessTokenProvider(Protocol):
    """Convierte la credencial del proceso en un bearer token de corta vida."""

    def mint(self) -> str:
        """
        Returns:
            str: access token

        Debe lanzar WarehouseAuthError si el intercambio no devuelve token.
        """


class WarehouseExtractor(Protocol):
    """Ejecuta la query incremental de un modelo y devuelve filas planas."""

    def extract(
        self,
        config: SyncConfig,
        *,
        cursor: Optional[str],
        access_token: str,
    ) -> List[Dict[str, Any]]:
        """
        Debe lanzar ExtractionError ante respuestas no exitosas.
        """
