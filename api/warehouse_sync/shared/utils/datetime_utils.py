"""
Utilidades puras para fechas y cursores incrementales.

Se mantienen libres de I/O para poder testearlas fácilmente.
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional, Tuple


def utc_now() -> datetime:
    """Retorna la hora actual en UTC, como datetime aware."""
    return datetime.now(timezone.utc)


def ensure_utc(dt: datetime) -> datetime:
    """
    Normaliza datetime a UTC (aware).

    Postgres devuelve timestamptz con zona; los valores que llegan sin zona se
    asumen UTC para comparar/almacenar de forma consistente.
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def hours_between(earlier: datetime, later: datetime) -> float:
    """Horas transcurridas entre dos instantes (puede ser negativo)."""
    return (ensure_utc(later) - ensure_utc(earlier)).total_seconds() / 3600.0


def epoch_seconds_to_iso(raw: Any) -> str:
    """
    Convierte un TIMESTAMP de BigQuery (segundos epoch, p.ej. "1.7000000E9")
    a ISO-8601 UTC con microsegundos.
    """
    dt = datetime.fromtimestamp(float(raw), tz=timezone.utc)
    return dt.isoformat(timespec="microseconds")


def parse_iso_datetime(value: str) -> Optional[datetime]:
    """
    Parsea ISO-8601 tolerando sufijo 'Z', separador espacio y sufijo ' UTC'.

    Returns:
        datetime aware en UTC o None si el string no es una fecha.
    """
    text = value.strip()
    if text.endswith(" UTC"):
        text = text[:-4]
    text = text.replace("Z", "+00:00")
    try:
        return ensure_utc(datetime.fromisoformat(text))
    except ValueError:
        return None


def cursor_sort_key(value: Any) -> Tuple[int, Any]:
    """
    Clave de orden para valores de cursor heterogéneos.

    Fechas (ISO u objetos datetime) se comparan cronológicamente, números
    numéricamente y cualquier otro valor cae a comparación de strings.
    """
    if isinstance(value, datetime):
        return (0, ensure_utc(value))
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return (1, float(value))
    text = str(value)
    parsed = parse_iso_datetime(text)
    if parsed is not None:
        return (0, parsed)
    try:
        return (1, float(text))
    except ValueError:
        return (2, text)


def max_cursor(current: Optional[Any], candidate: Optional[Any]) -> Optional[Any]:
    """Retorna el mayor de dos cursores, ignorando vacíos."""
    if candidate is None or candidate == "":
        return current
    if current is None or current == "":
        return candidate
    return candidate if cursor_sort_key(candidate) > cursor_sort_key(current) else current
