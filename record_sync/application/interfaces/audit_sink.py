"""
Interfaz del consumidor de entradas de auditoría.

El motor solo garantiza la emisión (una entrada por invocación); el
formato de persistencia lo decide la implementación.
"""

from __future__ import annotations

from typing import List, Optional, Protocol

from record_sync.domain.entities.audit import AuditEntry


class IAuditSink(Protocol):
    def emit(self, entry: AuditEntry) -> None:
        ...


class InMemoryAuditSink:
    """Acumula las entradas en una lista (tests y ejecuciones por CLI)."""

    def __init__(self) -> None:
        self.entries: List[AuditEntry] = []

    def emit(self, entry: AuditEntry) -> None:
        self.entries.append(entry)

    @property
    def last(self) -> Optional[AuditEntry]:
        return self.entries[-1] if self.entries else None
