"""
DTOs de transferencias.

- TransferSpecDTO: esquema JSON de configuración (camelCase) y su
  conversión a la TransferSpec de dominio.
- EditEventDTO / TransferOutcomeDTO / AuditEntryDTO: contrato del API.
"""
from __future__ import annotations

from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from record_sync.domain.entities.audit import AuditEntry
from record_sync.domain.entities.transfer_spec import (
    DEFAULT_KEY_SEPARATOR,
    DEFAULT_LOCK_NAME,
    ColumnPair,
    CompoundKeyCheck,
    DuplicateCheck,
    PostTransferActions,
    PrimaryKeyCheck,
    TransferSpec,
)


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="forbid")


class DuplicateCheckDTO(_CamelModel):
    """
    Configuración de duplicados tal como viene del JSON.

    La variante de dominio se elige explícitamente: PrimaryKeyCheck si se
    declaran ambas columnas de ID, CompoundKeyCheck en otro caso.
    """

    enabled: bool = True
    primary_id_source_col: Optional[int] = Field(None, alias="primaryIdSourceCol", ge=1)
    primary_id_dest_col: Optional[int] = Field(None, alias="primaryIdDestCol", ge=1)
    name_source_col: Optional[int] = Field(None, alias="nameSourceCol", ge=1)
    name_dest_col: Optional[int] = Field(None, alias="nameDestCol", ge=1)
    compound_key_source_cols: List[int] = Field(default_factory=list, alias="compoundKeySourceCols")
    compound_key_dest_cols: List[int] = Field(default_factory=list, alias="compoundKeyDestCols")
    key_separator: str = Field(DEFAULT_KEY_SEPARATOR, alias="keySeparator", min_length=1)

    @model_validator(mode="after")
    def _check_columns(self) -> "DuplicateCheckDTO":
        if len(self.compound_key_source_cols) != len(self.compound_key_dest_cols):
            raise ValueError("compoundKeySourceCols y compoundKeyDestCols deben tener el mismo largo")
        if (self.primary_id_source_col is None) != (self.primary_id_dest_col is None):
            raise ValueError("primaryIdSourceCol y primaryIdDestCol van juntos")
        if (self.name_source_col is None) != (self.name_dest_col is None):
            raise ValueError("nameSourceCol y nameDestCol van juntos")
        if self.primary_id_source_col is None and self.name_source_col is None:
            raise ValueError("Sin ID primario, nameSourceCol/nameDestCol son obligatorios")
        return self

    def to_domain(self) -> DuplicateCheck:
        pairs = tuple(
            ColumnPair(s, d) for s, d in zip(self.compound_key_source_cols, self.compound_key_dest_cols)
        )
        if self.primary_id_source_col is not None and self.primary_id_dest_col is not None:
            return PrimaryKeyCheck(
                source_col=self.primary_id_source_col,
                dest_col=self.primary_id_dest_col,
                name_source_col=self.name_source_col,
                name_dest_col=self.name_dest_col,
                extra_pairs=pairs,
                separator=self.key_separator,
                enabled=self.enabled,
            )
        return CompoundKeyCheck(
            name_source_col=self.name_source_col,
            name_dest_col=self.name_dest_col,
            extra_pairs=pairs,
            separator=self.key_separator,
            enabled=self.enabled,
        )


class PostActionsDTO(_CamelModel):
    sort: bool = False
    sort_column: int = Field(1, alias="sortColumn", ge=1)
    ascending: bool = True


class TransferSpecDTO(_CamelModel):
    """Una entrada del archivo de transferencias."""

    name: str = Field(..., min_length=1)
    description: str = ""
    source_table: Optional[str] = Field(None, alias="sourceTable")
    destination_table: str = Field(..., alias="destinationTable", min_length=1)
    column_mapping: Dict[int, int] = Field(..., alias="columnMapping")
    required_source_columns: List[int] = Field(default_factory=list, alias="requiredSourceColumns")
    trigger_column: Optional[int] = Field(None, alias="triggerColumn", ge=1)
    duplicate_check: Optional[DuplicateCheckDTO] = Field(None, alias="duplicateCheck")
    sync_on_duplicate: bool = Field(False, alias="syncOnDuplicate")
    post_actions: Optional[PostActionsDTO] = Field(None, alias="postActions")
    lock_name: str = Field(DEFAULT_LOCK_NAME, alias="lockName", min_length=1)

    @field_validator("column_mapping")
    @classmethod
    def _one_to_one(cls, value: Dict[int, int]) -> Dict[int, int]:
        if not value:
            raise ValueError("columnMapping no puede estar vacío")
        if any(s < 1 or d < 1 for s, d in value.items()):
            raise ValueError("columnMapping usa columnas 1-indexadas (>= 1)")
        dest = list(value.values())
        if len(dest) != len(set(dest)):
            raise ValueError("columnMapping no puede mapear dos columnas origen a la misma columna destino")
        return value

    def to_domain(self) -> TransferSpec:
        return TransferSpec(
            name=self.name,
            description=self.description,
            source_table=self.source_table,
            destination_table=self.destination_table,
            column_mapping=tuple(ColumnPair(s, d) for s, d in sorted(self.column_mapping.items())),
            required_source_columns=tuple(self.required_source_columns),
            trigger_column=self.trigger_column,
            duplicate_check=self.duplicate_check.to_domain() if self.duplicate_check else None,
            sync_on_duplicate=self.sync_on_duplicate,
            post_actions=(
                PostTransferActions(
                    sort=self.post_actions.sort,
                    sort_column=self.post_actions.sort_column,
                    ascending=self.post_actions.ascending,
                )
                if self.post_actions
                else None
            ),
            lock_name=self.lock_name,
        )


class TransferSpecFileDTO(_CamelModel):
    """
    Archivo completo: transferencias y, opcionalmente, los encabezados de
    las tablas (para crearlas al iniciar si no existen).
    """

    tables: Dict[str, List[str]] = Field(default_factory=dict)
    transfers: List[TransferSpecDTO]


class EditEventDTO(BaseModel):
    """Evento de edición recibido por el API."""

    source_table: str = Field(..., description="Tabla donde ocurrió la edición")
    row: int = Field(..., ge=2, description="Fila editada (1 es el encabezado)")
    column: Optional[int] = Field(None, ge=1, description="Columna editada")
    correlation_id: Optional[str] = Field(None, description="ID de correlación (se genera si falta)")


class AuditEntryDTO(BaseModel):
    correlation_id: str
    action: str
    source_table: str
    source_row: int
    result: str
    primary_id: Optional[str] = None
    name: Optional[str] = None
    detail: Optional[str] = None
    error_message: Optional[str] = None
    destination_row: Optional[int] = None
    timestamp: str

    @classmethod
    def from_entry(cls, entry: AuditEntry) -> "AuditEntryDTO":
        return cls(
            correlation_id=entry.correlation_id,
            action=entry.action,
            source_table=entry.source_table,
            source_row=entry.source_row,
            result=entry.result.value,
            primary_id=entry.primary_id,
            name=entry.name,
            detail=entry.detail,
            error_message=entry.error_message,
            destination_row=entry.destination_row,
            timestamp=entry.timestamp.isoformat(),
        )


class TransferOutcomeDTO(BaseModel):
    """Resultado de un evento de edición."""

    ignored: bool = False
    audit: Optional[AuditEntryDTO] = None


class TransferSpecSummaryDTO(BaseModel):
    name: str
    description: str
    source_table: Optional[str] = None
    destination_table: str
    duplicate_check: Optional[str] = None
    sync_on_duplicate: bool

    @classmethod
    def from_spec(cls, spec: TransferSpec) -> "TransferSpecSummaryDTO":
        check = spec.duplicate_check
        return cls(
            name=spec.name,
            description=spec.description,
            source_table=spec.source_table,
            destination_table=spec.destination_table,
            duplicate_check=type(check).__name__ if check is not None and check.enabled else None,
            sync_on_duplicate=spec.sync_on_duplicate,
        )
