"""
Proyección de columnas origen a una fila con forma de destino.
"""
from __future__ import annotations

from typing import Optional, Sequence

from loguru import logger

from record_sync.domain.entities.record import EMPTY, CellValue, Record, cell, pad
from record_sync.domain.entities.transfer_spec import ColumnPair


class FieldMapper:
    """
    Construye filas nuevas y fusiona columnas mapeadas en filas existentes.

    Una columna origen fuera de lo leído no aborta la transferencia: se
    registra un warning de configuración y la celda destino queda vacía.
    """

    def build(
        self,
        source_record: Sequence[CellValue],
        read_width: int,
        mapping: Sequence[ColumnPair],
        destination_width: int,
    ) -> Record:
        """
        Args:
            source_record: Fila origen
            read_width: Columnas efectivamente leídas del origen
            mapping: Pares (origen, destino)
            destination_width: Ancho actual de la tabla destino

        Returns:
            Fila de ancho max(destination_width, columna destino más alta)
        """
        width = max(destination_width, max((p.dest_col for p in mapping), default=0))
        row: Record = [EMPTY] * width
        for pair in mapping:
            if pair.source_col > read_width:
                logger.warning(
                    f"CONFIG: columna origen {pair.source_col} fuera de lo leído "
                    f"({read_width} columnas); destino {pair.dest_col} queda vacío"
                )
                continue
            row[pair.dest_col - 1] = cell(source_record, pair.source_col)
        return row

    def merge(
        self,
        existing: Sequence[CellValue],
        built: Sequence[CellValue],
        mapping: Sequence[ColumnPair],
        read_width: Optional[int] = None,
    ) -> Record:
        """
        Sobrescribe solo los índices mapeados de `existing`.

        El resto de columnas conserva su valor exacto. Si se pasa `read_width`,
        las columnas cuyo origen no se pudo leer tampoco se tocan (no se
        borra un dato existente por una lectura corta).
        """
        width = max(len(existing), max((p.dest_col for p in mapping), default=0))
        merged = pad(existing, width)
        for pair in mapping:
            if read_width is not None and pair.source_col > read_width:
                continue
            merged[pair.dest_col - 1] = cell(built, pair.dest_col)
        return merged
