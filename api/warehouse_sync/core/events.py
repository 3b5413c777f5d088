"""
Ciclo de vida de la aplicacion: arranque y cierre.

En el arranque:
- agrega el sink de archivo de loguru
- construye el orquestador (parsea la credencial UNA vez)
- programa la corrida periodica con APScheduler
"""
import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from fastapi import FastAPI
from loguru import logger

from warehouse_sync.application.use_cases.warehouse_sync_use_cases import (
    WarehouseSyncUseCases,
    build_from_settings,
)
from warehouse_sync.core.config import Settings, settings
from warehouse_sync.shared.exceptions.sync import SyncConfigError, SyncException

SCHEDULED_SYNC_JOB_ID = "warehouse_sync"


def configure_logging(config: Settings) -> None:
    """Agrega el sink de archivo con rotacion."""
    logger.add(
        config.LOG_FILE,
        rotation="500 MB",
        retention="10 days",
        level=config.LOG_LEVEL,
    )


def _build_use_cases(config: Settings) -> Optional[WarehouseSyncUseCases]:
    try:
        return build_from_settings(config)
    except SyncConfigError as e:
        logger.warning(f"CONFIG: {e.message} - el motor de sync queda deshabilitado")
        return None


async def run_scheduled_sync(use_cases: WarehouseSyncUseCases) -> None:
    """Job del scheduler: corrida completa sobre todos los modelos habilitados."""
    logger.info("Corrida programada de sync iniciada")
    try:
        summary = await asyncio.to_thread(use_cases.run)
    except SyncException as e:
        logger.error(f"Corrida programada abortada: {e.message}")
        return
    except Exception:
        logger.exception("Error inesperado en la corrida programada")
        return
    logger.info(
        f"Corrida programada finalizada: {summary.synced_count} ok, "
        f"{summary.failed_count} fallido(s), {summary.skipped_count} omitido(s)"
    )


def create_scheduler(use_cases: WarehouseSyncUseCases, interval_minutes: int) -> AsyncIOScheduler:
    """
    Programa la corrida periodica.

    max_instances=1 + coalesce: si una corrida se extiende, las ejecuciones
    atrasadas se colapsan en una sola en lugar de solaparse.
    """
    scheduler = AsyncIOScheduler(timezone="UTC")
    scheduler.add_job(
        run_scheduled_sync,
        trigger=IntervalTrigger(minutes=interval_minutes),
        args=[use_cases],
        id=SCHEDULED_SYNC_JOB_ID,
        max_instances=1,
        coalesce=True,
        replace_existing=True,
    )
    return scheduler


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Inicializa recursos al inicio y los libera al cerrar."""
    logger.info(f"Iniciando {settings.APP_NAME} v{settings.APP_VERSION}")
    logger.info(f"Entorno: {settings.ENVIRONMENT}")

    configure_logging(settings)

    use_cases = _build_use_cases(settings)
    app.state.sync_use_cases = use_cases
    app.state.scheduler = None

    if use_cases is not None and settings.SYNC_SCHEDULER_ENABLED:
        scheduler = create_scheduler(use_cases, settings.SYNC_SCHEDULE_INTERVAL_MINUTES)
        scheduler.start()
        app.state.scheduler = scheduler
        logger.info(f"Scheduler de sync activo: cada {settings.SYNC_SCHEDULE_INTERVAL_MINUTES} min")

    logger.success("Aplicacion iniciada correctamente")
    try:
        yield
    finally:
        logger.info("Cerrando aplicacion...")
        if app.state.scheduler is not None:
            app.state.scheduler.shutdown(wait=False)
            logger.info("Scheduler detenido")
        logger.success("Aplicacion cerrada correctamente")
