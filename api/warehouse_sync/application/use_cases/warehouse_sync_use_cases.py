"""
Orquestador del motor de sincronización BigQuery -> Postgres.

Una corrida:
1. Lista los modelos habilitados (o el par tenant/modelo pedido).
2. Descarta los inválidos o que aún no cumplen su frecuencia.
3. Obtiene UN access token para toda la corrida.
4. Procesa cada modelo en secuencia: gate -> extract -> transform -> upsert
   -> watermark. El fallo de un modelo no afecta a los demás.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Callable, List, Optional

from loguru import logger

from warehouse_sync.application.interfaces.warehouse import AccessTokenProvider, WarehouseExtractor
from warehouse_sync.application.services.row_transformer import (
    conflict_column_for,
    resolve_transform_strategy,
    transform_rows,
)
from warehouse_sync.domain.entities.sync import (
    SyncConfig,
    SyncResult,
    SyncRunSummary,
    SyncStatus,
    TransformStrategy,
    Watermark,
)
from warehouse_sync.domain.repositories.sync_repositories import (
    IModelRegistry,
    IUpsertSink,
    IWatermarkStore,
)
from warehouse_sync.shared.exceptions.sync import SyncConfigError, SyncException
from warehouse_sync.shared.utils.datetime_utils import hours_between, max_cursor, utc_now
from warehouse_sync.shared.utils.identifiers import COLUMN_RE, WAREHOUSE_PATH_RE, check_identifier

if TYPE_CHECKING:
    from warehouse_sync.core.config import Settings


@dataclass(frozen=True)
class _WorkItem:
    """Modelo elegible con su estrategia ya resuelta."""

    config: SyncConfig
    strategy: TransformStrategy
    conflict_column: str


def validate_sync_config(config: SyncConfig) -> None:
    """
    Verifica que el modelo tenga lo mínimo para sincronizar.

    Raises:
        SyncConfigError: campo requerido ausente o identificador inválido
    """
    for field_name in ("tenant_id", "model_name", "dataset", "table", "primary_key_field", "target_table"):
        if not getattr(config, field_name):
            raise SyncConfigError(f"Falta {field_name} en la configuración del modelo", field=field_name)

    check_identifier(config.dataset, "dataset", WAREHOUSE_PATH_RE)
    check_identifier(config.table, "table", WAREHOUSE_PATH_RE)
    check_identifier(config.target_table, "target_table")
    check_identifier(config.primary_key_field, "primary_key_field")
    if config.timestamp_field:
        check_identifier(config.timestamp_field, "timestamp_field")
    if config.sync_frequency_hours < 0:
        raise SyncConfigError("sync_frequency_hours no puede ser negativo", field="sync_frequency_hours")


class WarehouseSyncUseCases:
    """
    Casos de uso del motor de sync.

    Todas las dependencias se inyectan (credencial incluida, vía el token
    provider); el reloj también, para tests de throttling deterministas.
    """

    def __init__(
        self,
        *,
        token_provider: AccessTokenProvider,
        registry: IModelRegistry,
        watermarks: IWatermarkStore,
        extractor: WarehouseExtractor,
        sink: IUpsertSink,
        stale_after_hours: float = 6.0,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.token_provider = token_provider
        self.registry = registry
        self.watermarks = watermarks
        self.extractor = extractor
        self.sink = sink
        self.stale_after_hours = stale_after_hours
        self.clock = clock

    def run(
        self,
        tenant_id: Optional[str] = None,
        model_name: Optional[str] = None,
        full_sync: bool = False,
    ) -> SyncRunSummary:
        """
        Ejecuta una corrida completa.

        Args:
            tenant_id: Restringe la corrida a un tenant
            model_name: Restringe la corrida a un modelo
            full_sync: Resetea el watermark antes de correr (requiere tenant y modelo)

        Returns:
            SyncRunSummary con el resultado por modelo

        Raises:
            SyncConfigError: full_sync sin tenant/modelo
            WarehouseAuthError: no se pudo obtener access token (aborta la corrida)
        """
        if full_sync and not (tenant_id and model_name):
            raise SyncConfigError("full_sync requiere tenant_id y model_name", field="full_sync")

        summary = SyncRunSummary(started_at=self.clock())
        configs = self.registry.list_enabled(tenant_id=tenant_id, model_name=model_name)
        logger.info(f"Iniciando corrida de sync: {len(configs)} modelo(s) habilitado(s)")

        if full_sync:
            for config in configs:
                self._reset_watermark(config)

        work_items = self._plan(configs, summary)
        if not work_items:
            logger.info("Ningún modelo elegible en esta corrida")
            summary.finished_at = self.clock()
            return summary

        # Un solo token por corrida; WarehouseAuthError se propaga.
        access_token = self.token_provider.mint()

        for item in work_items:
            summary.results.append(self._sync_model(item, access_token))

        summary.finished_at = self.clock()
        logger.info(
            f"Corrida de sync finalizada: {summary.synced_count} ok, "
            f"{summary.failed_count} fallido(s), {summary.skipped_count} omitido(s)"
        )
        return summary

    def list_watermarks(self, tenant_id: Optional[str] = None) -> List[Watermark]:
        return self.watermarks.list(tenant_id)

    def _reset_watermark(self, config: SyncConfig) -> None:
        if self.watermarks.reset(config.watermark_key, self.clock()):
            logger.info(f"Watermark reseteado para full sync: {config.label()}")
        else:
            logger.warning(f"No se reseteó el watermark de {config.label()}: sincronización en curso")

    def _plan(self, configs: List[SyncConfig], summary: SyncRunSummary) -> List[_WorkItem]:
        """Valida y aplica throttling; los descartados quedan como skipped."""
        now = self.clock()
        items: List[_WorkItem] = []

        for config in configs:
            try:
                validate_sync_config(config)
                strategy = resolve_transform_strategy(config)
            except SyncConfigError as e:
                logger.warning(f"Omitiendo {config.label()}: {e.message}")
                summary.results.append(self._skipped(config, e.message))
                continue

            watermark = self.watermarks.get(*config.watermark_key)
            if watermark is not None and not watermark.is_due(now, config.sync_frequency_hours):
                elapsed = hours_between(watermark.last_sync_at, now)
                logger.info(
                    f"Omitiendo {config.label()}: sincronizado hace {elapsed:.1f}h "
                    f"(frecuencia: {config.sync_frequency_hours}h)"
                )
                summary.results.append(self._skipped(config, "Sincronizado recientemente"))
                continue

            items.append(
                _WorkItem(
                    config=config,
                    strategy=strategy,
                    conflict_column=conflict_column_for(config, strategy),
                )
            )
        return items

    def _sync_model(self, item: _WorkItem, access_token: str) -> SyncResult:
        config = item.config
        now = self.clock()

        if not self.watermarks.claim(Watermark.for_config(config), now, self.stale_after_hours):
            logger.warning(f"Omitiendo {config.label()}: otra corrida lo está sincronizando")
            return self._skipped(config, "Sincronización en curso")

        # Re-lectura tras el claim: el cursor previo puede haber avanzado.
        current = self.watermarks.get(*config.watermark_key) or Watermark.for_config(config)
        logger.info(f"Sincronizando {config.label()} desde cursor {current.last_record_timestamp or '(inicio)'}")

        try:
            rows = self.extractor.extract(
                config,
                cursor=current.last_record_timestamp,
                access_token=access_token,
            )
            batch = transform_rows(config, rows, item.strategy)
            written = self.sink.upsert(config.target_table, item.conflict_column, batch.records) if batch.records else 0
        except SyncException as e:
            return self._fail(config, current, e.message)
        except Exception as e:
            logger.exception(f"Error inesperado sincronizando {config.label()}")
            return self._fail(config, current, str(e) or e.__class__.__name__)

        finished = self.clock()
        cursor = max_cursor(current.last_record_timestamp, batch.max_cursor)
        self.watermarks.upsert(current.completed(finished, cursor, len(batch.records)))
        try:
            self.registry.touch_last_sync(config, finished)
        except Exception:
            # El watermark ya quedó completed; last_sync_at es solo informativo.
            logger.exception(f"No se pudo actualizar last_sync_at de {config.label()}")

        logger.success(f"{config.label()}: {len(batch.records)} registro(s) sincronizado(s) ({written} fila(s) afectadas)")
        return SyncResult(
            tenant_id=config.tenant_id,
            model_name=config.model_name,
            status=SyncStatus.SUCCESS,
            records_synced=len(batch.records),
        )

    def _fail(self, config: SyncConfig, current: Watermark, message: str) -> SyncResult:
        logger.error(f"Sync fallido para {config.label()}: {message}")
        self.watermarks.upsert(current.failed(self.clock(), message))
        return SyncResult(
            tenant_id=config.tenant_id,
            model_name=config.model_name,
            status=SyncStatus.FAILED,
            error=message,
        )

    @staticmethod
    def _skipped(config: SyncConfig, reason: str) -> SyncResult:
        return SyncResult(
            tenant_id=config.tenant_id,
            model_name=config.model_name,
            status=SyncStatus.SKIPPED,
            error=reason,
        )


def build_from_settings(settings: "Settings") -> WarehouseSyncUseCases:
    """
    Construye el orquestador con las implementaciones reales.

    La credencial se parsea aquí, una sola vez, y se inyecta en el minter.

    Raises:
        SyncConfigError: credencial ausente o inválida
    """
    import requests

    from warehouse_sync.infrastructure.database.session import PostgresConnectionFactory
    from warehouse_sync.infrastructure.external.bigquery.credentials import ServiceAccountCredential
    from warehouse_sync.infrastructure.external.bigquery.query_client import BigQueryClient
    from warehouse_sync.infrastructure.external.bigquery.token_minter import ServiceAccountTokenMinter
    from warehouse_sync.infrastructure.repositories.model_registry_repository import PostgresModelRegistry
    from warehouse_sync.infrastructure.repositories.upsert_sink import PostgresUpsertSink
    from warehouse_sync.infrastructure.repositories.watermark_repository import PostgresWatermarkStore

    credential = ServiceAccountCredential.from_json(
        settings.GOOGLE_SERVICE_ACCOUNT_JSON,
        project_id_fallback=settings.BIGQUERY_PROJECT_ID,
        scope=settings.BIGQUERY_SCOPE,
        token_uri=settings.OAUTH_TOKEN_URI,
    )
    session = requests.Session()
    connections = PostgresConnectionFactory(settings.effective_database_url)

    return WarehouseSyncUseCases(
        token_provider=ServiceAccountTokenMinter(
            credential,
            session=session,
            timeout_s=settings.HTTP_TIMEOUT_SECONDS,
        ),
        registry=PostgresModelRegistry(
            connections,
            default_frequency_hours=settings.SYNC_DEFAULT_FREQUENCY_HOURS,
        ),
        watermarks=PostgresWatermarkStore(connections),
        extractor=BigQueryClient(
            credential.project_id,
            session=session,
            base_url=settings.BIGQUERY_API_BASE_URL,
            page_size=settings.SYNC_PAGE_SIZE,
            timeout_s=settings.HTTP_TIMEOUT_SECONDS,
            max_retries=settings.HTTP_MAX_RETRIES,
        ),
        sink=PostgresUpsertSink(connections, target_schema=settings.SYNC_TARGET_SCHEMA),
        stale_after_hours=settings.SYNC_STALE_AFTER_HOURS,
    )
