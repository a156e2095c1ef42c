"""
Utilidades para normalizar valores de celda antes de compararlos.

Las tablas mezclan tipos: una misma fecha puede llegar como `datetime`
(aware o naive), como `date` o como string ISO/US. Para detectar duplicados
todo se reduce a un string normalizado: trim, minúsculas y, si parece
fecha, `YYYY-MM-DD` en UTC. Nunca se usa la zona horaria local, para que
el resultado no dependa de dónde corre el proceso.
"""
from __future__ import annotations

import re
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, Optional, Tuple


_ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_ISO_DATETIME_RE = re.compile(
    r"^(\d{4})-(\d{2})-(\d{2})[T ](\d{2}):(\d{2})(?::(\d{2})(?:\.(\d+))?)?(Z|[+-]\d{2}:?\d{2})?$",
    re.IGNORECASE,
)
_US_DATE_RE = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})$")


def utc_now() -> datetime:
    """Retorna la hora actual en UTC, como datetime aware."""
    return datetime.now(timezone.utc)


def ensure_utc(dt: datetime) -> datetime:
    """
    Normaliza datetime a UTC (aware).

    Un datetime naive se interpreta como UTC.
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def is_blank(value: Any) -> bool:
    """True si la celda está vacía (None o string solo con espacios)."""
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    return False


def _iso_datetime(match: "re.Match[str]") -> datetime:
    """
    Arma el datetime desde los grupos del regex ISO. Se evita
    `datetime.fromisoformat`, que en 3.10 no acepta `+HHMM` ni fracciones
    de más de 6 dígitos.
    """
    year, month, day, hour, minute, second, fraction, offset = match.groups()
    micro = int((fraction or "0")[:6].ljust(6, "0"))
    tz = None
    if offset:
        if offset.upper() == "Z":
            tz = timezone.utc
        else:
            digits = offset[1:].replace(":", "")
            delta = timedelta(hours=int(digits[:2]), minutes=int(digits[2:]))
            tz = timezone(-delta if offset[0] == "-" else delta)
    return datetime(
        int(year), int(month), int(day), int(hour), int(minute), int(second or 0), micro, tzinfo=tz
    )


def parse_date_like(text: str) -> Optional[date]:
    """
    Intenta interpretar un string como fecha de calendario (UTC).

    Acepta:
    - YYYY-MM-DD
    - YYYY-MM-DDTHH:MM[:SS[.fff]][Z|+HH:MM|+HHMM]
    - MM/DD/YYYY

    Returns:
        La fecha, o None si el string no parece una fecha válida.
    """
    candidate = text.strip()
    try:
        if _ISO_DATE_RE.match(candidate):
            return date.fromisoformat(candidate)
        iso = _ISO_DATETIME_RE.match(candidate)
        if iso:
            return ensure_utc(_iso_datetime(iso)).date()
        us = _US_DATE_RE.match(candidate)
        if us:
            month, day, year = (int(p) for p in us.groups())
            return date(year, month, day)
    except ValueError:
        return None
    return None


def cell_to_text(value: Any) -> str:
    """
    Representación textual de una celda, sin normalizar mayúsculas.

    Usada para identificadores y para mostrar valores en logs/auditoría.
    """
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, datetime):
        return ensure_utc(value).isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, Decimal) and value == value.to_integral_value():
        return str(value.to_integral_value())
    return str(value).strip()


def normalize_key_part(value: Any) -> str:
    """
    Forma normalizada de una celda para comparar claves.

    - vacío -> ""
    - datetime/date o string con forma de fecha -> YYYY-MM-DD (UTC)
    - resto -> texto recortado en minúsculas
    """
    if is_blank(value):
        return ""
    if isinstance(value, datetime):
        return ensure_utc(value).date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    text = cell_to_text(value)
    parsed = parse_date_like(text)
    if parsed is not None:
        return parsed.isoformat()
    return text.lower()


def sort_key(value: Any) -> Tuple[int, Any]:
    """
    Clave de orden para celdas de tipos mezclados.

    Números < fechas < texto < booleanos. Los vacíos se manejan aparte
    (siempre quedan al final, ver `sort_records`).
    """
    if isinstance(value, bool):
        return (3, value)
    if isinstance(value, (int, float, Decimal)):
        return (0, float(value))
    if isinstance(value, datetime):
        return (1, ensure_utc(value))
    if isinstance(value, date):
        return (1, datetime(value.year, value.month, value.day, tzinfo=timezone.utc))
    return (2, str(value).strip().lower())
