"""
Tablas en memoria.

Sirven para tests y para correr el API sin base de datos. Reproducen el
comportamiento de una hoja de cálculo:
- append rellena la fila hasta el ancho máximo existente
- las lecturas fuera de rango devuelven celdas vacías
- la fila 1 es el encabezado y nunca se reordena
"""
from __future__ import annotations

import threading
from typing import Dict, List, Optional, Sequence

from record_sync.domain.entities.record import EMPTY, CellValue, Record, pad, populated_width, sort_records
from record_sync.domain.repositories.table_repository import (
    FIRST_DATA_ROW,
    HEADER_ROW,
    ITableRepository,
    ITableStore,
)
from record_sync.shared.exceptions.sync import ConfigurationError


class InMemoryTable(ITableRepository):
    """Tabla respaldada por una lista de filas (fila 1 = encabezado)."""

    def __init__(self, name: str, header: Sequence[CellValue], rows: Optional[Sequence[Sequence[CellValue]]] = None):
        self._name = name
        self._rows: List[Record] = [list(header)]
        self._lock = threading.RLock()
        for row in rows or []:
            self._rows.append(list(row))

    @property
    def name(self) -> str:
        return self._name

    @property
    def rows(self) -> List[Record]:
        """Copia de todas las filas, encabezado incluido (para inspección en tests)."""
        with self._lock:
            return [list(r) for r in self._rows]

    def last_row(self) -> int:
        with self._lock:
            return len(self._rows)

    def last_column(self) -> int:
        with self._lock:
            return populated_width(self._rows[HEADER_ROW - 1]) if self._rows else 0

    def _max_width(self) -> int:
        return max((len(r) for r in self._rows), default=0)

    def read_row(self, row: int, width: int) -> Record:
        with self._lock:
            if row < 1 or row > len(self._rows):
                return [EMPTY] * width
            return pad(self._rows[row - 1][:width], width)

    def read_region(self, start_row: int, start_col: int, num_rows: int, num_cols: int) -> List[Record]:
        with self._lock:
            region: List[Record] = []
            for r in range(start_row, start_row + num_rows):
                current = self._rows[r - 1] if 1 <= r <= len(self._rows) else []
                region.append(pad(current[start_col - 1:start_col - 1 + num_cols], num_cols))
            return region

    def append_row(self, values: Sequence[CellValue]) -> int:
        with self._lock:
            self._rows.append(pad(values, self._max_width()))
            return len(self._rows)

    def write_region(self, start_row: int, start_col: int, values: Sequence[Sequence[CellValue]]) -> None:
        with self._lock:
            for i, row_values in enumerate(values):
                target = start_row + i
                while len(self._rows) < target:
                    self._rows.append([])
                current = pad(self._rows[target - 1], start_col - 1 + len(row_values))
                current[start_col - 1:start_col - 1 + len(row_values)] = list(row_values)
                self._rows[target - 1] = current

    def sort_rows(self, column: int, ascending: bool = True) -> None:
        with self._lock:
            header, data = self._rows[:FIRST_DATA_ROW - 1], self._rows[FIRST_DATA_ROW - 1:]
            self._rows = header + sort_records(data, column, ascending)


class InMemoryTableStore(ITableStore):
    """
    Almacén de InMemoryTable por nombre.

    Uso:
        store = InMemoryTableStore()
        store.add_table("forecast", ["ID", "Proyecto", "Estado"])
    """

    def __init__(self) -> None:
        self._tables: Dict[str, InMemoryTable] = {}
        self._lock = threading.Lock()

    def add_table(
        self,
        name: str,
        header: Sequence[CellValue],
        rows: Optional[Sequence[Sequence[CellValue]]] = None,
    ) -> InMemoryTable:
        table = InMemoryTable(name, header, rows)
        with self._lock:
            self._tables[name] = table
        return table

    def register(self, table: InMemoryTable) -> InMemoryTable:
        """Registra una tabla ya construida (p.ej. una subclase con fallos simulados)."""
        with self._lock:
            self._tables[table.name] = table
        return table

    def get_table(self, name: str) -> InMemoryTable:
        with self._lock:
            table = self._tables.get(name)
        if table is None:
            raise ConfigurationError(f"Tabla '{name}' no existe", details={"table": name})
        return table

    def table_names(self) -> List[str]:
        with self._lock:
            return sorted(self._tables)
