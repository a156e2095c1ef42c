"""
Resolución de la identidad de un registro origen.

Un valor cuenta como presente solo si su columna cae dentro de lo que
realmente se leyó (`read_width`) y, recortado, no está vacío.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence

from record_sync.domain.entities.duplicate_key import CompoundKey, PrimaryKey
from record_sync.domain.entities.record import CellValue, cell
from record_sync.domain.entities.transfer_spec import DuplicateCheck, PrimaryKeyCheck
from record_sync.shared.exceptions.sync import MissingIdentifierError
from record_sync.shared.utils.date_utils import cell_to_text, is_blank


@dataclass(frozen=True)
class ResolvedIdentity:
    """ID primario (si hay) y nombre de respaldo (puede ser "" si hay ID)."""

    primary_id: Optional[str]
    fallback_name: str

    @property
    def primary_key(self) -> Optional[PrimaryKey]:
        return PrimaryKey(self.primary_id) if self.primary_id else None


def present_value(record: Sequence[CellValue], column: Optional[int], read_width: int) -> Optional[str]:
    """Texto recortado de la celda, o None si no está presente."""
    if column is None or column > read_width:
        return None
    value = cell(record, column)
    if is_blank(value):
        return None
    text = cell_to_text(value).strip()
    return text or None


class IdentifierResolver:
    """Extrae ID primario y/o nombre de respaldo según la DuplicateCheck."""

    def resolve(
        self,
        record: Sequence[CellValue],
        check: DuplicateCheck,
        read_width: int,
        *,
        source_row: int = 0,
    ) -> ResolvedIdentity:
        """
        Args:
            record: Fila origen
            check: Configuración de detección de duplicados
            read_width: Columnas efectivamente leídas de la fila

        Raises:
            MissingIdentifierError: Si no hay ni ID primario ni nombre
        """
        primary_id = None
        if isinstance(check, PrimaryKeyCheck):
            primary_id = present_value(record, check.source_col, read_width)

        name = present_value(record, check.name_source_col, read_width)

        if primary_id is None and name is None:
            raise MissingIdentifierError(
                source_row,
                details={
                    "read_width": read_width,
                    "name_source_col": check.name_source_col,
                },
            )
        return ResolvedIdentity(primary_id=primary_id, fallback_name=name or "")

    def build_compound_key(
        self,
        fallback_name: str,
        record: Sequence[CellValue],
        read_width: int,
        check: DuplicateCheck,
    ) -> CompoundKey:
        """
        Clave compuesta a buscar: nombre + columnas extra en orden ascendente
        de columna origen. Las columnas fuera de `read_width` cuentan como vacías.
        """
        values: list[CellValue] = [fallback_name]
        for pair in check.sorted_extra_pairs:
            values.append(cell(record, pair.source_col) if pair.source_col <= read_width else "")
        return CompoundKey.of(values)
