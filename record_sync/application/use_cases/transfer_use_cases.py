"""
Casos de uso de transferencia de registros entre tablas del flujo.

TransferEngine (una invocación por evento de edición):
    Validating -> AcquiringLock -> ResolvingDuplicate
        -> {Appending | Merging | SkippingDuplicate}
        -> PostActions -> Auditing -> Released

Garantías:
- Como máximo un camino de escritura (append o merge) por invocación.
- El lock cubre chequeo-escritura (desde la búsqueda de duplicados hasta
  el reordenamiento): dos invocaciones no pueden intercalarse y duplicar
  un append. La lectura y validación del origen van antes del lock.
- Re-entregar el mismo evento no agrega una segunda fila: lo impide el
  chequeo de duplicados, no una deduplicación de eventos.
- Exactamente una AuditEntry por invocación, en todos los caminos.
- El lock se libera siempre (finally).
"""
from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Optional

from loguru import logger

from record_sync.application.interfaces.audit_sink import IAuditSink
from record_sync.application.interfaces.transfer_lock import ILockProvider, ITransferLock
from record_sync.application.services.duplicate_finder import DuplicateFinder
from record_sync.application.services.error_handler import ErrorContext, ErrorHandler
from record_sync.application.services.field_mapper import FieldMapper
from record_sync.application.services.identifier_resolver import (
    IdentifierResolver,
    ResolvedIdentity,
    present_value,
)
from record_sync.application.services.retry_executor import RetryExecutor, RetryPolicy
from record_sync.domain.entities.audit import AuditEntry, TransferResult
from record_sync.domain.entities.record import Record, pad
from record_sync.domain.entities.transfer_spec import TransferSpec
from record_sync.domain.repositories.table_repository import (
    FIRST_DATA_ROW,
    ITableRepository,
    ITableStore,
)
from record_sync.shared.exceptions.domain import SpecNotFoundException
from record_sync.shared.exceptions.sync import (
    DependencyError,
    MissingIdentifierError,
    SyncException,
    ValidationError,
)


class TransferState(str, Enum):
    VALIDATING = "Validating"
    ACQUIRING_LOCK = "AcquiringLock"
    RESOLVING_DUPLICATE = "ResolvingDuplicate"
    APPENDING = "Appending"
    MERGING = "Merging"
    SKIPPING_DUPLICATE = "SkippingDuplicate"
    POST_ACTIONS = "PostActions"
    AUDITING = "Auditing"
    RELEASED = "Released"


@dataclass(frozen=True)
class EngineSettings:
    """Parámetros explícitos del motor (nada se lee de estado global)."""

    lock_timeout_s: float = 2.5
    lock_retries: int = 3
    lock_retry_pause_s: float = 0.5
    retry: RetryPolicy = RetryPolicy()


@dataclass(frozen=True)
class EditEvent:
    """Edición de una celda que dispara una transferencia."""

    source_table: str
    row: int
    column: Optional[int] = None
    correlation_id: Optional[str] = None


@dataclass(frozen=True)
class TransferOutcome:
    audit: AuditEntry
    identity: Optional[ResolvedIdentity] = None

    @property
    def result(self) -> TransferResult:
        return self.audit.result

    @property
    def destination_row(self) -> Optional[int]:
        return self.audit.destination_row


@dataclass(frozen=True)
class _PreparedRecord:
    """Fila origen ya leída y validada, lista para resolver duplicados."""

    destination: ITableRepository
    record: Record
    read_width: int


@dataclass
class _TransferRun:
    """Estado mutable de una invocación (no sale de este módulo)."""

    spec: TransferSpec
    event: EditEvent
    correlation_id: str
    state: TransferState = TransferState.VALIDATING
    lock_acquired: bool = False
    identity: Optional[ResolvedIdentity] = None
    destination_row: Optional[int] = None
    notes: List[str] = field(default_factory=list)

    def entry(
        self,
        result: TransferResult,
        detail: Optional[str] = None,
        error_message: Optional[str] = None,
    ) -> AuditEntry:
        parts = [detail] if detail else []
        parts.extend(self.notes)
        return AuditEntry(
            correlation_id=self.correlation_id,
            action=self.spec.name,
            source_table=self.event.source_table,
            source_row=self.event.row,
            result=result,
            primary_id=self.identity.primary_id if self.identity else None,
            name=(self.identity.fallback_name or None) if self.identity else None,
            detail="; ".join(parts) or None,
            error_message=error_message,
            destination_row=self.destination_row,
        )


class TransferEngine:
    """
    Orquestador de una transferencia origen -> destino.

    Uso:
        engine = TransferEngine(store=store, locks=TransferLockManager(),
                                audit_sink=AuditLogger(), error_handler=ErrorHandler())
        outcome = engine.run(spec, EditEvent(source_table="forecast", row=7))
    """

    def __init__(
        self,
        *,
        store: ITableStore,
        locks: ILockProvider,
        audit_sink: IAuditSink,
        error_handler: ErrorHandler,
        settings: EngineSettings = EngineSettings(),
        sleep: Callable[[float], None] = time.sleep,
        retry: Optional[RetryExecutor] = None,
    ) -> None:
        self._store = store
        self._locks = locks
        self._audit = audit_sink
        self._errors = error_handler
        self._settings = settings
        self._sleep = sleep
        self._retry = retry or RetryExecutor(settings.retry, sleep=sleep)
        self._resolver = IdentifierResolver()
        self._finder = DuplicateFinder(self._retry, self._resolver)
        self._mapper = FieldMapper()

    @property
    def audit_sink(self) -> IAuditSink:
        return self._audit

    def run(self, spec: TransferSpec, event: EditEvent) -> TransferOutcome:
        """
        Ejecuta la transferencia para una fila origen.

        Nunca lanza por errores de la taxonomía: el resultado queda en la
        AuditEntry del TransferOutcome.
        """
        run = _TransferRun(
            spec=spec,
            event=event,
            correlation_id=event.correlation_id or uuid.uuid4().hex,
        )
        lock = self._locks.get_lock(spec.lock_name)
        try:
            entry = self._execute(run, lock)
            run.state = TransferState.AUDITING
            self._emit(entry)
            return TransferOutcome(audit=entry, identity=run.identity)
        finally:
            if run.lock_acquired:
                self._release(lock, run)
            run.state = TransferState.RELEASED

    # ------------------------------------------------------------------
    # Estados
    # ------------------------------------------------------------------

    def _execute(self, run: _TransferRun, lock: ITransferLock) -> AuditEntry:
        try:
            prepared = self._validate(run)
            run.lock_acquired = self._acquire_lock(lock, run)
            if not run.lock_acquired:
                return run.entry(
                    TransferResult.SKIPPED_NO_LOCK,
                    f"lock '{lock.name}' ocupado tras {self._settings.lock_retries} intentos",
                )
            return self._transfer(run, prepared)
        except MissingIdentifierError as exc:
            self._report(exc, run)
            return run.entry(TransferResult.SKIPPED_MISSING_IDENTIFIER, error_message=exc.message)
        except ValidationError as exc:
            self._report(exc, run)
            return run.entry(TransferResult.ERROR, f"validación falló en {run.state.value}", exc.message)
        except Exception as exc:
            self._report(exc, run)
            return run.entry(TransferResult.ERROR, f"falló en {run.state.value}", str(exc))

    def _acquire_lock(self, lock: ITransferLock, run: _TransferRun) -> bool:
        run.state = TransferState.ACQUIRING_LOCK
        attempts = self._settings.lock_retries
        for attempt in range(1, attempts + 1):
            if lock.try_acquire(self._settings.lock_timeout_s):
                return True
            logger.warning(
                f"[{run.correlation_id[:8]}] Lock '{lock.name}' ocupado "
                f"(intento {attempt}/{attempts}, espera {self._settings.lock_timeout_s}s)"
            )
            if attempt < attempts:
                self._sleep(self._settings.lock_retry_pause_s)
        return False

    def _validate(self, run: _TransferRun) -> _PreparedRecord:
        """Lee la fila origen, verifica columnas requeridas y resuelve la identidad (sin lock)."""
        spec = run.spec
        run.state = TransferState.VALIDATING
        source = self._store.get_table(run.event.source_table)
        destination = self._store.get_table(spec.destination_table)

        record, read_width = self._read_source(source, run)
        self._check_required(record, read_width, run)

        check = spec.duplicate_check
        if check is not None and check.enabled:
            run.identity = self._resolver.resolve(record, check, read_width, source_row=run.event.row)
        return _PreparedRecord(destination=destination, record=record, read_width=read_width)

    def _transfer(self, run: _TransferRun, prepared: _PreparedRecord) -> AuditEntry:
        spec = run.spec
        destination = prepared.destination
        record = prepared.record
        read_width = prepared.read_width

        check = spec.duplicate_check
        found: Optional[int] = None
        run.state = TransferState.RESOLVING_DUPLICATE
        if run.identity is not None:
            found = self._finder.find(
                destination,
                run.identity.primary_id,
                run.identity.fallback_name,
                record,
                read_width,
                check,
            )

        if found is None:
            result, detail = self._append(destination, record, read_width, run)
        elif not spec.sync_on_duplicate:
            run.state = TransferState.SKIPPING_DUPLICATE
            run.destination_row = found
            logger.info(
                f"[{run.correlation_id[:8]}] {spec.name}: fila {run.event.row} ya existe en "
                f"{destination.name} (fila {found}); sin cambios"
            )
            return run.entry(TransferResult.SKIPPED_DUPLICATE, f"duplicado en fila {found}")
        else:
            result, detail = self._merge(destination, found, record, read_width, run)

        self._post_actions(destination, run)
        return run.entry(result, detail)

    def _read_source(self, source: ITableRepository, run: _TransferRun) -> tuple[Record, int]:
        """
        Lee la fila origen hasta la columna más alta referenciada, acotada
        por el ancho con encabezado. Retorna (fila rellenada, ancho leído).
        """
        needed = run.spec.max_source_column
        header_width = self._retry.run(source.last_column, name=f"{source.name}.last_column")
        read_width = min(header_width, needed)
        if read_width < 1:
            raise ValidationError(f"La tabla origen '{source.name}' no tiene encabezado")
        record = self._retry.run(
            lambda: source.read_row(run.event.row, read_width),
            name=f"{source.name}.read_row",
        )
        return pad(record, needed), read_width

    def _check_required(self, record: Record, read_width: int, run: _TransferRun) -> None:
        missing = [
            c for c in run.spec.required_source_columns if present_value(record, c, read_width) is None
        ]
        if missing:
            raise ValidationError(
                f"Fila {run.event.row} de '{run.event.source_table}' sin columnas requeridas {missing}",
                details={"missing_columns": missing},
            )

    def _append(
        self, destination: ITableRepository, record: Record, read_width: int, run: _TransferRun
    ) -> tuple[TransferResult, str]:
        run.state = TransferState.APPENDING
        dest_width = self._retry.run(destination.last_column, name=f"{destination.name}.last_column")
        new_row = self._mapper.build(record, read_width, run.spec.append_mapping, dest_width)
        run.destination_row = self._retry.run(
            lambda: destination.append_row(new_row),
            name=f"{destination.name}.append_row",
        )
        logger.info(
            f"[{run.correlation_id[:8]}] {run.spec.name}: fila {run.event.row} agregada a "
            f"{destination.name} (fila {run.destination_row})"
        )
        return TransferResult.SUCCESS, f"agregada en fila {run.destination_row}"

    def _merge(
        self,
        destination: ITableRepository,
        found: int,
        record: Record,
        read_width: int,
        run: _TransferRun,
    ) -> tuple[TransferResult, str]:
        run.state = TransferState.MERGING
        run.destination_row = found
        mapping = run.spec.column_mapping
        width = run.spec.max_dest_column

        built = self._mapper.build(record, read_width, mapping, 0)
        existing = self._retry.run(
            lambda: destination.read_row(found, width),
            name=f"{destination.name}.read_row",
        )
        existing = pad(existing, width)
        merged = self._mapper.merge(existing, built, mapping, read_width)

        if merged == existing:
            return TransferResult.SUCCESS_UPDATED, f"fila {found} ya estaba al día"

        self._retry.run(
            lambda: destination.write_region(found, 1, [merged]),
            name=f"{destination.name}.write_region",
        )
        changed = [i + 1 for i, (a, b) in enumerate(zip(existing, merged)) if a != b]
        logger.info(
            f"[{run.correlation_id[:8]}] {run.spec.name}: fila {found} de {destination.name} "
            f"actualizada (columnas {changed})"
        )
        return TransferResult.SUCCESS_UPDATED, f"actualizada fila {found} columnas {changed}"

    def _post_actions(self, destination: ITableRepository, run: _TransferRun) -> None:
        """
        Reordena el destino si está configurado. Un fallo aquí no invalida
        la escritura: se reporta como DependencyError no fatal.
        """
        actions = run.spec.post_actions
        if actions is None or not actions.sort:
            return
        run.state = TransferState.POST_ACTIONS
        try:
            last_row = self._retry.run(destination.last_row, name=f"{destination.name}.last_row")
            if last_row - FIRST_DATA_ROW + 1 <= 1:
                return
            self._retry.run(
                lambda: destination.sort_rows(actions.sort_column, actions.ascending),
                name=f"{destination.name}.sort_rows",
            )
            run.notes.append(
                f"reordenada por columna {actions.sort_column} "
                f"({'asc' if actions.ascending else 'desc'}); fila destino previa al orden"
            )
        except SyncException as exc:
            secondary = DependencyError(
                f"Reordenamiento de '{destination.name}' falló tras escritura exitosa",
                operation=f"{destination.name}.sort_rows",
                cause=exc,
            )
            self._report(secondary, run)
            run.notes.append("reordenamiento falló (no fatal)")

    # ------------------------------------------------------------------
    # Auxiliares
    # ------------------------------------------------------------------

    def _report(self, error: BaseException, run: _TransferRun) -> None:
        self._errors.handle(
            error,
            ErrorContext(
                correlation_id=run.correlation_id,
                function=f"TransferEngine.{run.state.value}",
                table=run.event.source_table,
                extras={
                    "action": run.spec.name,
                    "source_row": run.event.row,
                    "destination_table": run.spec.destination_table,
                },
            ),
        )

    def _emit(self, entry: AuditEntry) -> None:
        try:
            self._audit.emit(entry)
        except Exception:
            logger.exception(f"No se pudo emitir la auditoría de {entry.correlation_id}")

    def _release(self, lock: ITransferLock, run: _TransferRun) -> None:
        try:
            lock.release()
        except Exception:
            logger.exception(f"[{run.correlation_id[:8]}] Error liberando lock '{lock.name}'")
        finally:
            run.lock_acquired = False


class TransferService:
    """
    Registro de TransferSpecs por nombre; enruta eventos de edición al motor.
    """

    def __init__(self, engine: TransferEngine, specs: Dict[str, TransferSpec]) -> None:
        self.engine = engine
        self._specs = dict(specs)

    @property
    def specs(self) -> Dict[str, TransferSpec]:
        return dict(self._specs)

    def get_spec(self, name: str) -> TransferSpec:
        spec = self._specs.get(name)
        if spec is None:
            raise SpecNotFoundException(name, sorted(self._specs))
        return spec

    def handle_edit(self, spec_name: str, event: EditEvent) -> Optional[TransferOutcome]:
        """
        Ejecuta la transferencia si el evento aplica a la spec.

        Returns:
            TransferOutcome, o None si el evento se ignoró (otra tabla
            origen u otra columna disparadora).
        """
        spec = self.get_spec(spec_name)
        if spec.source_table and event.source_table != spec.source_table:
            logger.debug(
                f"{spec_name}: evento de '{event.source_table}' ignorado (origen es '{spec.source_table}')"
            )
            return None
        if spec.trigger_column is not None and event.column is not None and event.column != spec.trigger_column:
            logger.debug(f"{spec_name}: columna {event.column} no dispara (espera {spec.trigger_column})")
            return None
        return self.engine.run(spec, event)
