"""
Identidad usada para detectar un registro ya transferido.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence, Tuple

from record_sync.domain.entities.record import CellValue
from record_sync.shared.utils.date_utils import cell_to_text, normalize_key_part


@dataclass(frozen=True)
class PrimaryKey:
    """ID primario. Se compara recortado pero sensible a mayúsculas."""

    value: str

    @classmethod
    def of(cls, raw: CellValue) -> "PrimaryKey":
        return cls(cell_to_text(raw).strip())

    def render(self, separator: str = "|") -> str:
        return self.value


@dataclass(frozen=True)
class CompoundKey:
    """
    Clave compuesta: tupla de partes ya normalizadas.

    Se compara por tupla y no por string concatenado, así un separador
    dentro de un valor no puede provocar colisiones.
    """

    parts: Tuple[str, ...]

    @classmethod
    def of(cls, values: Sequence[CellValue]) -> "CompoundKey":
        return cls(tuple(normalize_key_part(v) for v in values))

    def render(self, separator: str = "|") -> str:
        return separator.join(self.parts)
