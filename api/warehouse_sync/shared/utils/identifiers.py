"""
Validación de identificadores que se interpolan en SQL (BigQuery y Postgres).

Los nombres de dataset/tabla/columnas vienen de configuración editable por
operadores; se validan antes de construir cualquier query.
"""
import re

from warehouse_sync.shared.exceptions.sync import SyncConfigError

# Proyectos/datasets/tablas de BigQuery admiten guiones.
WAREHOUSE_PATH_RE = re.compile(r"^[A-Za-z0-9_\-]+$")
# Columnas (BigQuery y Postgres) y tablas destino.
COLUMN_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def check_identifier(value: str, field: str, pattern: re.Pattern = COLUMN_RE) -> str:
    """
    Retorna el identificador si es válido.

    Raises:
        SyncConfigError: si está vacío o contiene caracteres no permitidos
    """
    if not value or not pattern.match(value):
        raise SyncConfigError(f"Identificador inválido en '{field}': {value!r}", field=field)
    return value
