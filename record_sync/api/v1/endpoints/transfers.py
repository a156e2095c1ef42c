"""
Endpoints de transferencias entre tablas.

Las rutas son `def` (no async): el motor hace I/O bloqueante y espera
locks, asi que FastAPI las ejecuta en su threadpool.
"""
from typing import List

from fastapi import APIRouter, Depends, Query, status
from loguru import logger

from record_sync.api.v1.dependencies.transfer_deps import get_transfer_service
from record_sync.application.dto.transfer_dto import (
    AuditEntryDTO,
    EditEventDTO,
    TransferOutcomeDTO,
    TransferSpecSummaryDTO,
)
from record_sync.application.use_cases.transfer_use_cases import EditEvent, TransferService


router = APIRouter(prefix="/transfers", tags=["Transfers"])


@router.get(
    "",
    response_model=List[TransferSpecSummaryDTO],
    summary="Listar transferencias configuradas",
)
def list_transfers(
    service: TransferService = Depends(get_transfer_service),
) -> List[TransferSpecSummaryDTO]:
    """Retorna las transferencias configuradas, ordenadas por nombre."""
    specs = service.specs
    return [TransferSpecSummaryDTO.from_spec(specs[name]) for name in sorted(specs)]


@router.get(
    "/audit/recent",
    response_model=List[AuditEntryDTO],
    summary="Ultimas entradas de auditoria",
)
def recent_audit(
    limit: int = Query(default=50, ge=1, le=500),
    service: TransferService = Depends(get_transfer_service),
) -> List[AuditEntryDTO]:
    """
    Retorna las ultimas AuditEntry (la mas reciente primero).

    Solo disponible si el sink de auditoria conserva historial en memoria.
    """
    sink = service.engine.audit_sink
    recent = getattr(sink, "recent", None)
    if recent is None:
        return []
    return [AuditEntryDTO.from_entry(entry) for entry in recent(limit)]


@router.post(
    "/{spec_name}",
    response_model=TransferOutcomeDTO,
    status_code=status.HTTP_200_OK,
    summary="Procesar un evento de edicion",
)
def run_transfer(
    spec_name: str,
    payload: EditEventDTO,
    service: TransferService = Depends(get_transfer_service),
) -> TransferOutcomeDTO:
    """
    Ejecuta la transferencia `spec_name` para la fila editada.

    El resultado de negocio (incluidos errores de la transferencia) viaja en
    `audit.result`; el HTTP status solo es de error si la spec no existe o
    el request es invalido.
    """
    event = EditEvent(
        source_table=payload.source_table,
        row=payload.row,
        column=payload.column,
        correlation_id=payload.correlation_id,
    )
    outcome = service.handle_edit(spec_name, event)
    if outcome is None:
        logger.debug(f"{spec_name}: evento ignorado ({payload.source_table} fila {payload.row})")
        return TransferOutcomeDTO(ignored=True)
    return TransferOutcomeDTO(audit=AuditEntryDTO.from_entry(outcome.audit))
