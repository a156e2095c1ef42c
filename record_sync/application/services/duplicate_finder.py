"""
Búsqueda de un registro ya transferido en la tabla destino.

Algoritmo (ordenado, corta en el primer resultado):
1. Camino por ID primario: si hay ID y la configuración declara columna
   destino de ID, se escanea solo esa columna (trim, sensible a mayúsculas).
   El resultado es definitivo: un ID presente que no aparece es "no encontrado"
   y NO dispara la búsqueda por clave compuesta.
2. Clave compuesta: solo cuando no hay ID. Se lee en un solo batch el rango
   mínimo de columnas que cubre nombre + columnas extra, y se compara la
   tupla normalizada de cada fila. Gana la primera coincidencia.
3. Tabla sin filas de datos o sin coincidencias -> None.
"""
from __future__ import annotations

from typing import List, Optional, Sequence

from loguru import logger

from record_sync.application.services.identifier_resolver import IdentifierResolver
from record_sync.application.services.retry_executor import RetryExecutor
from record_sync.domain.entities.duplicate_key import CompoundKey, PrimaryKey
from record_sync.domain.entities.record import CellValue, cell
from record_sync.domain.entities.transfer_spec import DuplicateCheck, PrimaryKeyCheck
from record_sync.domain.repositories.table_repository import FIRST_DATA_ROW, ITableRepository
from record_sync.shared.exceptions.sync import ConfigurationError


class DuplicateFinder:
    """Localiza la fila destino que corresponde a un registro origen."""

    def __init__(self, retry: RetryExecutor, resolver: Optional[IdentifierResolver] = None) -> None:
        self._retry = retry
        self._resolver = resolver or IdentifierResolver()

    def find(
        self,
        destination: ITableRepository,
        primary_id: Optional[str],
        fallback_name: str,
        source_record: Sequence[CellValue],
        read_width: int,
        check: DuplicateCheck,
    ) -> Optional[int]:
        """
        Returns:
            Índice de la fila destino coincidente, o None si no existe
        """
        by_primary = bool(primary_id) and isinstance(check, PrimaryKeyCheck)
        if not by_primary and (not fallback_name or check.name_dest_col is None):
            return None
        # el ancho se valida aunque el destino esté vacío: el primer append ya usa esas columnas
        dest_cols = [] if by_primary else self._compound_dest_cols(destination, check)

        last_row = self._retry.run(destination.last_row, name=f"{destination.name}.last_row")
        num_rows = last_row - FIRST_DATA_ROW + 1
        if num_rows <= 0:
            return None

        if by_primary:
            return self._find_by_primary(destination, PrimaryKey.of(primary_id), check.dest_col, num_rows)

        key = self._resolver.build_compound_key(fallback_name, source_record, read_width, check)
        return self._find_by_compound(destination, key, check, dest_cols, num_rows)

    def _find_by_primary(
        self,
        destination: ITableRepository,
        key: PrimaryKey,
        dest_col: int,
        num_rows: int,
    ) -> Optional[int]:
        values = self._retry.run(
            lambda: destination.read_column(dest_col, FIRST_DATA_ROW, num_rows),
            name=f"{destination.name}.read_column",
        )
        for offset, value in enumerate(values):
            if PrimaryKey.of(value) == key:
                row = FIRST_DATA_ROW + offset
                logger.debug(f"Duplicado por ID '{key.value}' en {destination.name} fila {row}")
                return row
        return None

    def _compound_dest_cols(self, destination: ITableRepository, check: DuplicateCheck) -> List[int]:
        """Columnas destino de la clave compuesta; deben caber en el ancho poblado."""
        dest_cols: List[int] = [check.name_dest_col] + [p.dest_col for p in check.sorted_extra_pairs]
        populated = self._retry.run(destination.last_column, name=f"{destination.name}.last_column")
        outside = [c for c in dest_cols if c > populated]
        if outside:
            raise ConfigurationError(
                f"Columnas de clave compuesta {outside} fuera del ancho poblado de "
                f"'{destination.name}' ({populated} columnas)",
                details={"table": destination.name, "columns": outside, "width": populated},
            )
        return dest_cols

    def _find_by_compound(
        self,
        destination: ITableRepository,
        key: CompoundKey,
        check: DuplicateCheck,
        dest_cols: List[int],
        num_rows: int,
    ) -> Optional[int]:
        first_col = min(dest_cols)
        span = max(dest_cols) - first_col + 1
        region = self._retry.run(
            lambda: destination.read_region(FIRST_DATA_ROW, first_col, num_rows, span),
            name=f"{destination.name}.read_region",
        )

        for offset, row_values in enumerate(region):
            candidate = CompoundKey.of([cell(row_values, c - first_col + 1) for c in dest_cols])
            if candidate == key:
                row = FIRST_DATA_ROW + offset
                logger.debug(
                    f"Duplicado por clave compuesta '{key.render(check.separator)}' "
                    f"en {destination.name} fila {row}"
                )
                return row
        return None
