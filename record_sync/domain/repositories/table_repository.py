"""
Interfaz de las tablas de registros y del almacén que las agrupa.
Define el contrato que debe cumplir cualquier implementación.

Las implementaciones señalan fallos de I/O con DependencyError (o
TransientError si saben que el fallo es pasajero); el motor los reintenta.
"""
from abc import ABC, abstractmethod
from typing import List, Sequence

from record_sync.domain.entities.record import CellValue, Record


HEADER_ROW = 1
FIRST_DATA_ROW = 2


class ITableRepository(ABC):
    """
    Una tabla: fila 1 de encabezado y filas de datos a partir de la 2.
    Todas las coordenadas son 1-indexadas.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Nombre de la tabla."""

    @abstractmethod
    def last_row(self) -> int:
        """
        Índice de la última fila con datos (1 si solo hay encabezado,
        0 si la tabla está vacía).
        """

    @abstractmethod
    def last_column(self) -> int:
        """Columna más alta con contenido en el encabezado."""

    @abstractmethod
    def read_row(self, row: int, width: int) -> Record:
        """
        Lee las columnas 1..width de una fila.

        Returns:
            Record con exactamente `width` celdas (EMPTY donde no hay dato)
        """

    @abstractmethod
    def read_region(self, start_row: int, start_col: int, num_rows: int, num_cols: int) -> List[Record]:
        """Lee un rectángulo; cada fila retornada tiene `num_cols` celdas."""

    def read_column(self, column: int, start_row: int, num_rows: int) -> List[CellValue]:
        """Lee una columna en varias filas."""
        return [r[0] for r in self.read_region(start_row, column, num_rows, 1)]

    @abstractmethod
    def append_row(self, values: Sequence[CellValue]) -> int:
        """
        Agrega una fila al final.

        Returns:
            int: Índice de la nueva fila
        """

    @abstractmethod
    def write_region(self, start_row: int, start_col: int, values: Sequence[Sequence[CellValue]]) -> None:
        """Sobrescribe un rectángulo en su lugar."""

    @abstractmethod
    def sort_rows(self, column: int, ascending: bool = True) -> None:
        """Reordena todas las filas de datos (no el encabezado) por una columna."""


class ITableStore(ABC):
    """Almacén de tablas por nombre."""

    @abstractmethod
    def get_table(self, name: str) -> ITableRepository:
        """
        Obtiene una tabla por nombre.

        Raises:
            ConfigurationError: Si la tabla no existe
        """

    @abstractmethod
    def table_names(self) -> List[str]:
        """Nombres de las tablas disponibles."""
