"""
Tablas persistidas en base de datos (SQLAlchemy).

Cada fila de cada tabla del flujo es un `TableRowModel`. Los errores de
SQLAlchemy se traducen a la taxonomía:
- OperationalError (conexión caída, lock de SQLite, timeout) -> TransientError
- resto de SQLAlchemyError -> DependencyError
"""
from __future__ import annotations

from contextlib import contextmanager
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, Iterator, List, Optional, Sequence

from loguru import logger
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from record_sync.domain.entities.record import CellValue, Record, cell, pad, populated_width, sort_records
from record_sync.domain.repositories.table_repository import (
    FIRST_DATA_ROW,
    HEADER_ROW,
    ITableRepository,
    ITableStore,
)
from record_sync.infrastructure.database.models import TableRowModel
from record_sync.infrastructure.database.session import session_scope
from record_sync.shared.exceptions.sync import ConfigurationError, DependencyError, TransientError


_TYPE_KEY = "__type__"


def encode_cell(value: CellValue) -> Any:
    """Convierte una celda a un valor serializable en JSON."""
    if isinstance(value, datetime):
        return {_TYPE_KEY: "datetime", "value": value.isoformat()}
    if isinstance(value, date):
        return {_TYPE_KEY: "date", "value": value.isoformat()}
    if isinstance(value, Decimal):
        return {_TYPE_KEY: "decimal", "value": str(value)}
    return value


def decode_cell(raw: Any) -> CellValue:
    """Inversa de `encode_cell`."""
    if isinstance(raw, dict) and _TYPE_KEY in raw:
        kind, value = raw[_TYPE_KEY], raw.get("value")
        if kind == "datetime":
            return datetime.fromisoformat(value)
        if kind == "date":
            return date.fromisoformat(value)
        if kind == "decimal":
            return Decimal(value)
    if raw is None:
        return ""
    return raw


def _decode_row(cells: Optional[Sequence[Any]]) -> Record:
    return [decode_cell(c) for c in (cells or [])]


def _encode_row(values: Sequence[CellValue]) -> List[Any]:
    return [encode_cell(v) for v in values]


class SqlTable(ITableRepository):
    """Tabla respaldada por filas `table_rows` con el mismo `table_name`."""

    def __init__(self, session_factory: sessionmaker, name: str) -> None:
        self._factory = session_factory
        self._name = name

    @property
    def name(self) -> str:
        return self._name

    @contextmanager
    def _session(self, operation: str) -> Iterator[Session]:
        try:
            with session_scope(self._factory) as session:
                yield session
        except OperationalError as e:
            raise TransientError(
                f"Error transitorio en '{self._name}.{operation}': {e}",
                operation=f"{self._name}.{operation}",
                cause=e,
            ) from e
        except SQLAlchemyError as e:
            raise DependencyError(
                f"Error de base de datos en '{self._name}.{operation}': {e}",
                operation=f"{self._name}.{operation}",
                cause=e,
            ) from e

    def _rows_between(self, session: Session, first: int, last: int) -> Dict[int, TableRowModel]:
        stmt = select(TableRowModel).where(
            TableRowModel.table_name == self._name,
            TableRowModel.row_index >= first,
            TableRowModel.row_index <= last,
        )
        return {m.row_index: m for m in session.scalars(stmt)}

    def _last_row(self, session: Session) -> int:
        stmt = select(func.max(TableRowModel.row_index)).where(TableRowModel.table_name == self._name)
        return session.scalar(stmt) or 0

    def _max_width(self, session: Session) -> int:
        stmt = select(TableRowModel.cells).where(TableRowModel.table_name == self._name)
        return max((len(c or []) for c in session.scalars(stmt)), default=0)

    def last_row(self) -> int:
        with self._session("last_row") as session:
            return self._last_row(session)

    def last_column(self) -> int:
        with self._session("last_column") as session:
            header = self._rows_between(session, HEADER_ROW, HEADER_ROW).get(HEADER_ROW)
            return populated_width(_decode_row(header.cells)) if header else 0

    def read_row(self, row: int, width: int) -> Record:
        with self._session("read_row") as session:
            model = self._rows_between(session, row, row).get(row)
            values = _decode_row(model.cells if model else [])
            return pad(values[:width], width)

    def read_region(self, start_row: int, start_col: int, num_rows: int, num_cols: int) -> List[Record]:
        with self._session("read_region") as session:
            found = self._rows_between(session, start_row, start_row + num_rows - 1)
            region: List[Record] = []
            for r in range(start_row, start_row + num_rows):
                values = _decode_row(found[r].cells) if r in found else []
                region.append([cell(values, c) for c in range(start_col, start_col + num_cols)])
            return region

    def append_row(self, values: Sequence[CellValue]) -> int:
        with self._session("append_row") as session:
            new_index = self._last_row(session) + 1
            row = pad(values, self._max_width(session))
            session.add(TableRowModel(table_name=self._name, row_index=new_index, cells=_encode_row(row)))
            return new_index

    def write_region(self, start_row: int, start_col: int, values: Sequence[Sequence[CellValue]]) -> None:
        with self._session("write_region") as session:
            found = self._rows_between(session, start_row, start_row + len(values) - 1)
            for i, row_values in enumerate(values):
                target = start_row + i
                model = found.get(target)
                current = _decode_row(model.cells if model else [])
                current = pad(current, start_col - 1 + len(row_values))
                current[start_col - 1:start_col - 1 + len(row_values)] = list(row_values)
                if model is None:
                    session.add(TableRowModel(table_name=self._name, row_index=target, cells=_encode_row(current)))
                else:
                    # Reasignar la lista completa para que el ORM detecte el cambio
                    model.cells = _encode_row(current)

    def sort_rows(self, column: int, ascending: bool = True) -> None:
        with self._session("sort_rows") as session:
            last = self._last_row(session)
            found = self._rows_between(session, FIRST_DATA_ROW, last)
            indices = sorted(found)
            ordered = sort_records([_decode_row(found[i].cells) for i in indices], column, ascending)
            for index, values in zip(indices, ordered):
                found[index].cells = _encode_row(values)
            logger.debug(f"'{self._name}' reordenada por columna {column} ({len(indices)} filas)")


class SqlTableStore(ITableStore):
    """
    Almacén de SqlTable.

    Una tabla "existe" si tiene fila de encabezado.
    """

    def __init__(self, session_factory: sessionmaker) -> None:
        self._factory = session_factory

    def create_table(self, name: str, header: Sequence[CellValue]) -> SqlTable:
        """Crea (o reemplaza) el encabezado de una tabla."""
        table = SqlTable(self._factory, name)
        table.write_region(HEADER_ROW, 1, [list(header)])
        return table

    def get_table(self, name: str) -> SqlTable:
        if name not in self.table_names():
            raise ConfigurationError(f"Tabla '{name}' no existe", details={"table": name})
        return SqlTable(self._factory, name)

    def table_names(self) -> List[str]:
        try:
            with session_scope(self._factory) as session:
                stmt = select(TableRowModel.table_name).where(TableRowModel.row_index == HEADER_ROW).distinct()
                return sorted(session.scalars(stmt))
        except SQLAlchemyError as e:
            raise DependencyError(f"No se pudo listar tablas: {e}", operation="table_names", cause=e) from e
