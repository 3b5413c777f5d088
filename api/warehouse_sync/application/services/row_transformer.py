"""
Transformer: filas crudas del warehouse -> registros destino.

Reglas:
- tenant_id siempre se inyecta (y pisa cualquier tenant_id de origen).
- La estrategia (declarativa, custom o pass-through) se resuelve UNA vez por
  modelo, antes de procesar filas.
- El máximo del timestamp_field del lote es el cursor candidato; el
  orquestador solo lo confirma si el UPSERT fue exitoso.
- Registros con la columna de conflicto en NULL se descartan: ON CONFLICT
  no los reconoce y cada re-ejecución los insertaría de nuevo.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, Mapping, Optional

from loguru import logger

from warehouse_sync.application.services.custom_transforms import CUSTOM_TRANSFORMS
from warehouse_sync.domain.entities.sync import (
    CustomTransform,
    DeclarativeTransform,
    PassThroughTransform,
    SyncConfig,
    TransformedBatch,
    TransformStrategy,
)
from warehouse_sync.shared.exceptions.sync import SyncConfigError, TransformError
from warehouse_sync.shared.utils.datetime_utils import max_cursor


def resolve_transform_strategy(
    config: SyncConfig,
    registry: Optional[Mapping[str, CustomTransform]] = None,
) -> TransformStrategy:
    """
    Resuelve la estrategia del modelo.

    Precedencia: transform custom > mapeo declarativo > pass-through.

    Raises:
        SyncConfigError: si el transform custom no está registrado
    """
    registry = CUSTOM_TRANSFORMS if registry is None else registry
    if config.custom_transform:
        strategy = registry.get(config.custom_transform)
        if strategy is None:
            raise SyncConfigError(
                f"Transform custom no registrado: {config.custom_transform}",
                field="custom_transform",
            )
        return strategy
    if config.field_mapping:
        return DeclarativeTransform(mapping=dict(config.field_mapping))
    return PassThroughTransform()


def conflict_column_for(config: SyncConfig, strategy: TransformStrategy) -> str:
    """Columna destino que el UPSERT usa como conflict target."""
    if isinstance(strategy, CustomTransform) and strategy.conflict_column:
        return strategy.conflict_column
    if isinstance(strategy, DeclarativeTransform):
        return strategy.mapping.get(config.primary_key_field, config.primary_key_field)
    return config.primary_key_field


def _shape_row(row: Dict[str, Any], config: SyncConfig, strategy: TransformStrategy) -> Dict[str, Any]:
    if isinstance(strategy, DeclarativeTransform):
        shaped = {target: row[source] for source, target in strategy.mapping.items() if source in row}
    elif isinstance(strategy, CustomTransform):
        try:
            shaped = dict(strategy.fn(row, config))
        except (KeyError, TypeError, ValueError) as e:
            raise TransformError(
                f"Transform '{strategy.name}' falló: {e}",
                details={"transform": strategy.name},
            ) from e
    else:
        shaped = dict(row)

    record: Dict[str, Any] = {"tenant_id": config.tenant_id}
    record.update(shaped)
    record["tenant_id"] = config.tenant_id
    return record


def transform_rows(
    config: SyncConfig,
    rows: Iterable[Dict[str, Any]],
    strategy: Optional[TransformStrategy] = None,
) -> TransformedBatch:
    """
    Aplica la estrategia a todas las filas del lote.

    Args:
        config: Modelo en proceso
        rows: Filas planas del Extractor
        strategy: Estrategia ya resuelta (si None se resuelve aquí)

    Returns:
        TransformedBatch con registros y cursor candidato
    """
    if strategy is None:
        strategy = resolve_transform_strategy(config)

    conflict_column = conflict_column_for(config, strategy)
    records = []
    dropped = 0
    candidate: Optional[Any] = None
    for row in rows:
        record = _shape_row(row, config, strategy)
        if conflict_column in record and record[conflict_column] is None:
            dropped += 1
        else:
            records.append(record)
        if config.timestamp_field:
            candidate = max_cursor(candidate, row.get(config.timestamp_field))

    if dropped:
        logger.warning(
            f"{config.label()}: {dropped} fila(s) descartada(s) por '{conflict_column}' nulo"
        )

    return TransformedBatch(
        records=records,
        max_cursor=str(candidate) if candidate is not None else None,
    )
