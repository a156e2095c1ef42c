"""
Record: fila de una tabla como lista 1-indexada y dispersa de celdas.

La columna `i` vive en la posición `i - 1`. Las lecturas pueden devolver
menos celdas que la columna más alta referenciada, así que todo acceso pasa
por `cell()` / `pad()` en lugar de indexar directamente.
"""
from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import List, Sequence, Union

from record_sync.shared.utils.date_utils import is_blank, sort_key


CellValue = Union[str, bool, int, float, Decimal, date, datetime, None]
Record = List[CellValue]

EMPTY: CellValue = ""


def cell(record: Sequence[CellValue], column: int) -> CellValue:
    """Valor de la columna 1-indexada, o EMPTY si la fila es más corta."""
    if column < 1 or column > len(record):
        return EMPTY
    value = record[column - 1]
    return EMPTY if value is None else value


def pad(record: Sequence[CellValue], width: int) -> Record:
    """Copia de la fila rellenada con EMPTY hasta `width` columnas."""
    padded = list(record)
    if len(padded) < width:
        padded.extend([EMPTY] * (width - len(padded)))
    return padded


def populated_width(record: Sequence[CellValue]) -> int:
    """Índice de la última columna con contenido (0 si la fila está vacía)."""
    for idx in range(len(record), 0, -1):
        if not is_blank(record[idx - 1]):
            return idx
    return 0


def sort_records(rows: Sequence[Sequence[CellValue]], column: int, ascending: bool = True) -> List[Record]:
    """
    Ordena filas por una columna. Orden estable; los vacíos quedan al final
    en ambos sentidos.
    """
    filled = [list(r) for r in rows if not is_blank(cell(r, column))]
    blanks = [list(r) for r in rows if is_blank(cell(r, column))]
    filled.sort(key=lambda r: sort_key(cell(r, column)), reverse=not ascending)
    return filled + blanks
