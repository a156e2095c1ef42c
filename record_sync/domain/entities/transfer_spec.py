"""
Configuración inmutable de una tarea de transferencia origen -> destino.

Este módulo no realiza I/O: solo define configuración. Las tablas concretas
por flujo (forecast -> upcoming, etc.) se cargan desde JSON en
`record_sync.infrastructure.config.transfer_specs`.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Tuple, Union

from record_sync.shared.exceptions.sync import ConfigurationError


DEFAULT_KEY_SEPARATOR = "|"
DEFAULT_LOCK_NAME = "transfer"


@dataclass(frozen=True)
class ColumnPair:
    """Par (columna origen, columna destino), ambas 1-indexadas."""

    source_col: int
    dest_col: int

    def __post_init__(self) -> None:
        if self.source_col < 1 or self.dest_col < 1:
            raise ConfigurationError(
                f"Columnas deben ser >= 1 (origen={self.source_col}, destino={self.dest_col})"
            )


@dataclass(frozen=True)
class CompoundKeyCheck:
    """
    Detección de duplicados solo por clave compuesta.

    - name_source_col / name_dest_col: columna de nombre de proyecto
    - extra_pairs: columnas adicionales que forman la clave (p.ej. ubicación)
    - separator: solo para mostrar la clave en logs; la comparación es por tupla
    """

    name_source_col: int
    name_dest_col: int
    extra_pairs: Tuple[ColumnPair, ...] = ()
    separator: str = DEFAULT_KEY_SEPARATOR
    enabled: bool = True

    @property
    def sorted_extra_pairs(self) -> Tuple[ColumnPair, ...]:
        return tuple(sorted(self.extra_pairs, key=lambda p: p.source_col))


@dataclass(frozen=True)
class PrimaryKeyCheck:
    """
    Detección de duplicados por identificador primario (p.ej. un ID de CRM).

    Si la fila origen no trae ID, se cae a la clave compuesta usando
    `name_*` y `extra_pairs`. Sin columna de nombre, una fila sin ID no
    puede sincronizarse.
    """

    source_col: int
    dest_col: int
    name_source_col: Optional[int] = None
    name_dest_col: Optional[int] = None
    extra_pairs: Tuple[ColumnPair, ...] = ()
    separator: str = DEFAULT_KEY_SEPARATOR
    enabled: bool = True

    @property
    def sorted_extra_pairs(self) -> Tuple[ColumnPair, ...]:
        return tuple(sorted(self.extra_pairs, key=lambda p: p.source_col))


DuplicateCheck = Union[PrimaryKeyCheck, CompoundKeyCheck]


@dataclass(frozen=True)
class PostTransferActions:
    """Acciones posteriores a la escritura (hoy solo reordenar)."""

    sort: bool = False
    sort_column: int = 1
    ascending: bool = True


@dataclass(frozen=True)
class TransferSpec:
    """
    Una tarea de sincronización: qué columnas copiar, a qué tabla, y cómo
    detectar que el registro ya fue transferido.

    NOTA sobre el mapeo:
    - Es uno-a-uno. Dos columnas origen hacia la misma columna destino
      se rechazan con ConfigurationError.
    """

    name: str
    destination_table: str
    column_mapping: Tuple[ColumnPair, ...]
    source_table: Optional[str] = None
    duplicate_check: Optional[DuplicateCheck] = None
    sync_on_duplicate: bool = False
    post_actions: Optional[PostTransferActions] = None
    required_source_columns: Tuple[int, ...] = ()
    trigger_column: Optional[int] = None
    lock_name: str = DEFAULT_LOCK_NAME
    description: str = field(default="", compare=False)

    def __post_init__(self) -> None:
        if not self.column_mapping:
            raise ConfigurationError(f"Transferencia '{self.name}' sin columnas mapeadas")

        dest_cols = [p.dest_col for p in self.column_mapping]
        repeated = sorted({c for c in dest_cols if dest_cols.count(c) > 1})
        if repeated:
            raise ConfigurationError(
                f"Transferencia '{self.name}': columnas destino mapeadas más de una vez: {repeated}",
                details={"dest_cols": repeated},
            )

        check = self.duplicate_check
        if check is not None and len({p.dest_col for p in check.extra_pairs}) != len(check.extra_pairs):
            raise ConfigurationError(
                f"Transferencia '{self.name}': columnas destino repetidas en la clave compuesta"
            )

    @property
    def key_pairs(self) -> Tuple[ColumnPair, ...]:
        """Columnas de la clave de duplicados (ID, nombre, extras) como pares origen -> destino."""
        check = self.duplicate_check
        if check is None or not check.enabled:
            return ()
        pairs = []
        if isinstance(check, PrimaryKeyCheck):
            pairs.append(ColumnPair(check.source_col, check.dest_col))
        if check.name_source_col and check.name_dest_col:
            pairs.append(ColumnPair(check.name_source_col, check.name_dest_col))
        pairs.extend(check.extra_pairs)
        return tuple(pairs)

    @property
    def append_mapping(self) -> Tuple[ColumnPair, ...]:
        """
        Mapeo usado al agregar una fila: el configurado más las columnas de
        clave que no cubre. Sin ellas una re-entrega no encontraría la fila.
        """
        covered = {p.dest_col for p in self.column_mapping}
        extra = []
        for pair in self.key_pairs:
            if pair.dest_col not in covered:
                covered.add(pair.dest_col)
                extra.append(pair)
        return self.column_mapping + tuple(extra)

    @property
    def max_dest_column(self) -> int:
        """Columna destino más alta referenciada por el mapeo."""
        return max(p.dest_col for p in self.column_mapping)

    @property
    def max_source_column(self) -> int:
        """Columna origen más alta que el motor necesita leer."""
        cols = [p.source_col for p in self.column_mapping]
        cols.extend(self.required_source_columns)
        check = self.duplicate_check
        if check is not None:
            cols.extend(p.source_col for p in check.extra_pairs)
            if check.name_source_col:
                cols.append(check.name_source_col)
            if isinstance(check, PrimaryKeyCheck):
                cols.append(check.source_col)
        return max(cols)
