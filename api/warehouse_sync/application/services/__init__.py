"""
Servicios de aplicacion.

Logica pura del pipeline (sin I/O): transformacion de filas y transforms
custom registrados por nombre.
"""
from warehouse_sync.application.services.custom_transforms import (
    CUSTOM_TRANSFORMS,
    normalize_order_status,
    register_transform,
)
from warehouse_sync.application.services.row_transformer import (
    conflict_column_for,
    resolve_transform_strategy,
    transform_rows,
)

__all__ = [
    # Transforms custom
    "CUSTOM_TRANSFORMS",
    "normalize_order_status",
    "register_transform",
    # Transformer
    "conflict_column_for",
    "resolve_transform_strategy",
    "transform_rows",
]
