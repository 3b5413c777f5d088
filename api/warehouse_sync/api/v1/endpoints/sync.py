"""
Endpoints para sincronizacion BigQuery -> PostgreSQL.
Permite disparar una corrida manual y consultar el estado de los watermarks.
"""
import asyncio
from typing import List, Optional

from fastapi import APIRouter, Body, Depends, Query, status
from loguru import logger

from warehouse_sync.api.v1.dependencies.use_case_deps import (
    get_warehouse_sync_use_cases,
    require_trigger_token,
)
from warehouse_sync.application.dto.sync_dto import (
    SyncRunResponseDTO,
    SyncTriggerRequestDTO,
    WatermarkDTO,
)
from warehouse_sync.application.use_cases.warehouse_sync_use_cases import WarehouseSyncUseCases


router = APIRouter(prefix="/sync", tags=["Sync"])


@router.post(
    "/warehouse",
    response_model=SyncRunResponseDTO,
    status_code=status.HTTP_200_OK,
    summary="Sincronizar BigQuery con PostgreSQL",
    dependencies=[Depends(require_trigger_token)],
)
async def sync_warehouse(
    request: Optional[SyncTriggerRequestDTO] = Body(default=None),
    use_cases: WarehouseSyncUseCases = Depends(get_warehouse_sync_use_cases),
) -> SyncRunResponseDTO:
    """
    Ejecuta una corrida del motor de sync.

    - Sin body: todos los modelos habilitados.
    - Con tenant_id / model_name: solo ese subconjunto.
    - full_sync=True: resetea el cursor del modelo antes de correr.

    Un error de autenticacion contra BigQuery aborta la corrida (502); los
    errores por modelo quedan en `results` con status `failed`.
    """
    request = request or SyncTriggerRequestDTO()
    logger.info(
        f"Disparo manual de sync (tenant={request.tenant_id or '*'}, "
        f"modelo={request.model_name or '*'}, full_sync={request.full_sync})"
    )

    # El motor es sincrono (requests + psycopg): corre en un thread aparte
    summary = await asyncio.to_thread(
        use_cases.run,
        request.tenant_id,
        request.model_name,
        request.full_sync,
    )
    return SyncRunResponseDTO.from_summary(summary)


@router.get(
    "/watermarks",
    response_model=List[WatermarkDTO],
    summary="Estado de sincronizacion por modelo",
)
async def list_watermarks(
    tenant_id: Optional[str] = Query(None, description="Filtra por tenant"),
    use_cases: WarehouseSyncUseCases = Depends(get_warehouse_sync_use_cases),
) -> List[WatermarkDTO]:
    watermarks = await asyncio.to_thread(use_cases.list_watermarks, tenant_id)
    return [WatermarkDTO.from_entity(w) for w in watermarks]
