"""
Dependencias para inyeccion de casos de uso.
"""
from typing import Optional

from fastapi import Depends, Header, Request

from warehouse_sync.application.use_cases.warehouse_sync_use_cases import WarehouseSyncUseCases
from warehouse_sync.core.config import settings
from warehouse_sync.infrastructure.security.trigger_token_verifier import TriggerTokenVerifier
from warehouse_sync.shared.exceptions.auth import UnauthorizedException
from warehouse_sync.shared.exceptions.sync import SyncException


def get_warehouse_sync_use_cases(request: Request) -> WarehouseSyncUseCases:
    """
    Dependencia para obtener el orquestador construido en el arranque.

    Raises:
        SyncException: si el motor no quedo configurado (credencial ausente)
    """
    use_cases = getattr(request.app.state, "sync_use_cases", None)
    if use_cases is None:
        raise SyncException(
            "El motor de sync no esta configurado (revisa GOOGLE_SERVICE_ACCOUNT_JSON)",
            status_code=503,
            error_code="SYNC_NOT_CONFIGURED",
        )
    return use_cases


def get_trigger_token_verifier() -> TriggerTokenVerifier:
    return TriggerTokenVerifier(settings.SYNC_TRIGGER_TOKEN)


def require_trigger_token(
    x_sync_token: Optional[str] = Header(None, alias="X-Sync-Token"),
    verifier: TriggerTokenVerifier = Depends(get_trigger_token_verifier),
) -> None:
    """Valida el header X-Sync-Token cuando hay token configurado."""
    if not verifier.verify(x_sync_token):
        raise UnauthorizedException("Token de sincronizacion invalido")
