"""
Entradas de auditoría: una por invocación del motor, en todos los caminos.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from record_sync.shared.utils.date_utils import utc_now


class TransferResult(str, Enum):
    """Código de resultado de una transferencia."""

    SUCCESS = "success"
    SUCCESS_UPDATED = "success-updated"
    SKIPPED_DUPLICATE = "skipped-duplicate"
    SKIPPED_NO_LOCK = "skipped-no-lock"
    SKIPPED_MISSING_IDENTIFIER = "skipped-missing-identifier"
    ERROR = "error"


@dataclass(frozen=True)
class AuditEntry:
    """Resultado inmutable de una invocación del motor."""

    correlation_id: str
    action: str
    source_table: str
    source_row: int
    result: TransferResult
    primary_id: Optional[str] = None
    name: Optional[str] = None
    detail: Optional[str] = None
    error_message: Optional[str] = None
    destination_row: Optional[int] = None
    timestamp: datetime = field(default_factory=utc_now)

    def to_dict(self) -> Dict[str, Any]:
        """Forma externa (camelCase) que consume el sink de auditoría."""
        return {
            "correlationId": self.correlation_id,
            "action": self.action,
            "sourceTable": self.source_table,
            "sourceRow": self.source_row,
            "primaryId": self.primary_id,
            "name": self.name,
            "detail": self.detail,
            "result": self.result.value,
            "errorMessage": self.error_message,
            "destinationRow": self.destination_row,
            "timestamp": self.timestamp.isoformat(),
        }
