"""
Clasificación centralizada de errores para logging y notificación.

- ValidationError -> WARNING, sin notificación
- Resto de la taxonomía (y excepciones ajenas) -> ERROR, con notificación

El handler nunca propaga: si algo falla dentro de él, se registra con
`logger.exception` y se sigue.
"""
from __future__ import annotations

import inspect
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from loguru import logger

from record_sync.application.interfaces.notifier import INotifier, NullNotifier
from record_sync.shared.exceptions.sync import ErrorKind, causal_chain, classify
from record_sync.shared.utils.date_utils import utc_now


class Severity(str, Enum):
    WARNING = "WARNING"
    ERROR = "ERROR"


# Debe cubrir todos los ErrorKind (se verifica en tests)
SEVERITY_BY_KIND: Dict[ErrorKind, Severity] = {
    ErrorKind.VALIDATION: Severity.WARNING,
    ErrorKind.CONFIGURATION: Severity.ERROR,
    ErrorKind.DEPENDENCY: Severity.ERROR,
    ErrorKind.TRANSIENT: Severity.ERROR,
}


@dataclass(frozen=True)
class ErrorContext:
    """Contexto de quien reporta el error."""

    correlation_id: Optional[str] = None
    function: Optional[str] = None
    table: Optional[str] = None
    extras: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ErrorReport:
    """Entrada estructurada resultante (lo que se loguea)."""

    timestamp: datetime
    severity: Severity
    kind: ErrorKind
    message: str
    chain: List[str]
    correlation_id: Optional[str]
    function: Optional[str]
    extras: Dict[str, Any]
    notified: bool = False

    def to_log_fields(self) -> Dict[str, Any]:
        return {
            "timestamp": self.timestamp.isoformat(),
            "severity": self.severity.value,
            "error_kind": self.kind.value,
            "error_message": self.message,
            "causal_chain": self.chain,
            "correlation_id": self.correlation_id,
            "function": self.function,
            "extras": self.extras,
        }


class ErrorHandler:
    """
    Uso:
        handler = ErrorHandler(notifier=TelegramNotifier(...))
        handler.handle(exc, ErrorContext(correlation_id=cid, table="forecast"))
    """

    def __init__(self, notifier: Optional[INotifier] = None) -> None:
        self._notifier = notifier or NullNotifier()

    def handle(self, error: BaseException, context: Optional[ErrorContext] = None) -> Optional[ErrorReport]:
        """
        Registra el error y, si corresponde, notifica.

        Returns:
            El ErrorReport emitido, o None si el propio handler falló.
        """
        try:
            ctx = context or ErrorContext()
            kind = classify(error)
            severity = SEVERITY_BY_KIND[kind]
            report = ErrorReport(
                timestamp=utc_now(),
                severity=severity,
                kind=kind,
                message=str(error),
                chain=causal_chain(error),
                correlation_id=ctx.correlation_id,
                function=ctx.function or _calling_function(),
                extras=dict(ctx.extras),
            )

            logger.bind(context="error", **report.to_log_fields()).log(
                severity.value,
                f"[{(ctx.correlation_id or '-')[:8]}] {kind.value} en {report.function}: {report.message}",
            )

            if severity is Severity.ERROR:
                subject = f"{kind.value} en {report.function or 'record_sync'}"
                notified = self._notifier.notify(subject, error, ctx.table)
                report = replace(report, notified=bool(notified))
            return report
        except Exception:
            logger.exception("ErrorHandler falló procesando un error")
            return None


def _calling_function() -> Optional[str]:
    """Nombre de la primera función fuera de este módulo en el stack."""
    for frame_info in inspect.stack()[2:]:
        if frame_info.filename != __file__:
            return frame_info.function
    return None
