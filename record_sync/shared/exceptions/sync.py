"""
Taxonomía cerrada de errores del motor de transferencia.

Tipos:
- ValidationError: input malo o incompleto (p.ej. registro sin identificador).
  Nunca se reintenta. Severidad WARNING.
- ConfigurationError: desalineación entre TransferSpec y el esquema real
  de la tabla. Nunca se reintenta. Severidad ERROR.
- DependencyError: fallo de I/O contra el almacén de registros. Se reintenta
  hasta el límite configurado y luego se propaga.
- TransientError: subtipo de DependencyError que se sabe transitorio
  (contención, timeouts de conexión).

Cada error lleva un `kind` (ErrorKind) para que el ErrorHandler despache
sin depender de isinstance en cascada.
"""
from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional

from record_sync.shared.exceptions.base import AppException


class ErrorKind(str, Enum):
    """Tipos de error conocidos por el motor."""

    VALIDATION = "ValidationError"
    CONFIGURATION = "ConfigurationError"
    DEPENDENCY = "DependencyError"
    TRANSIENT = "TransientError"


class SyncException(AppException):
    """
    Base de la taxonomía. Envuelve opcionalmente la causa original.

    `cause` se expone además como `__cause__` para que los tracebacks
    muestren la cadena completa.
    """

    kind: ErrorKind = ErrorKind.DEPENDENCY
    http_status: int = 500

    def __init__(
        self,
        message: str,
        *,
        cause: Optional[BaseException] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message,
            status_code=self.http_status,
            error_code=self.kind.name,
            details=details,
        )
        self.cause = cause
        if cause is not None:
            self.__cause__ = cause


class ValidationError(SyncException):
    """Input inválido o incompleto."""

    kind = ErrorKind.VALIDATION
    http_status = 422


class MissingIdentifierError(ValidationError):
    """El registro origen no tiene identificador primario ni nombre utilizable."""

    def __init__(self, source_row: int, details: Optional[Dict[str, Any]] = None):
        self.source_row = source_row
        super().__init__(
            f"La fila {source_row} no tiene identificador primario ni nombre de proyecto",
            details=details,
        )


class ConfigurationError(SyncException):
    """La TransferSpec no es consistente con el esquema de las tablas."""

    kind = ErrorKind.CONFIGURATION
    http_status = 500


class DependencyError(SyncException):
    """Fallo de I/O contra el almacén de registros."""

    kind = ErrorKind.DEPENDENCY
    http_status = 502

    def __init__(
        self,
        message: str,
        *,
        operation: Optional[str] = None,
        cause: Optional[BaseException] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.operation = operation
        merged = dict(details or {})
        if operation:
            merged.setdefault("operation", operation)
        super().__init__(message, cause=cause, details=merged)


class TransientError(DependencyError):
    """Fallo de dependencia que se sabe transitorio."""

    kind = ErrorKind.TRANSIENT
    http_status = 503


def classify(error: BaseException) -> ErrorKind:
    """
    Retorna el ErrorKind de cualquier excepción.

    Las excepciones ajenas a la taxonomía se tratan como DependencyError:
    si llegaron hasta aquí, vinieron de una dependencia.
    """
    if isinstance(error, SyncException):
        return error.kind
    return ErrorKind.DEPENDENCY


def causal_chain(error: BaseException) -> List[str]:
    """
    Recorre `cause` / `__cause__` / `__context__` y retorna la cadena
    como lista de "Tipo: mensaje", empezando por el error externo.
    """
    chain: List[str] = []
    seen: set[int] = set()
    current: Optional[BaseException] = error
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        chain.append(f"{type(current).__name__}: {current}")
        nxt = getattr(current, "cause", None)
        if nxt is None:
            nxt = current.__cause__ or current.__context__
        current = nxt
    return chain
