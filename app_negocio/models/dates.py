# ==============================================================================
# FECHAS - Conversión y normalización
# ==============================================================================
# Todas las fechas se guardan como ISO-8601 en UTC.
# Las fechas sin zona horaria se interpretan como UTC.
# ==============================================================================

from datetime import date, datetime, timezone
from typing import Any, Optional


def utc_now() -> datetime:
    """Fecha y hora actual en UTC."""
    return datetime.now(timezone.utc)


def parse_datetime(value: Any) -> Optional[datetime]:
    """
    Convierte un valor a datetime con zona horaria.

    Acepta datetime, date, o string ISO ('2024-01-31', '2024-01-31T10:00:00Z').
    Retorna None si el valor está vacío o no se puede parsear.
    """
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, date):
        dt = datetime(value.year, value.month, value.day)
    else:
        try:
            dt = datetime.fromisoformat(str(value).strip().replace('Z', '+00:00'))
        except ValueError:
            return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def to_iso(value: Any) -> Optional[str]:
    """Normaliza un valor de fecha a string ISO en UTC (None si inválido)."""
    dt = parse_datetime(value)
    if dt is None:
        return None
    return dt.astimezone(timezone.utc).isoformat()
