"""
AuditLogger - registro estructurado de resultados de transferencias.

Cada invocación del motor emite exactamente una AuditEntry. Aquí se:
- escribe en loguru con `context="audit"` (y a un archivo diario si se
  inicializó un directorio)
- conserva en memoria las últimas N entradas para consulta desde la API
"""
import json
import threading
from collections import deque
from pathlib import Path
from typing import Any, Deque, Dict, List, Optional, Set

from loguru import logger

from record_sync.domain.entities.audit import AuditEntry, TransferResult


class AuditLogger:
    """
    Sink de auditoría basado en loguru.

    Uso:
        audit = AuditLogger(log_dir=Path("logs/audit_logs"))
        audit.emit(entry)
        audit.recent(limit=20)
    """

    FILE_TIMESTAMP_FORMAT = "%Y-%m-%d"

    # Directorios con handler ya registrado (evita duplicar sinks por instancia)
    _registered_dirs: Set[str] = set()
    _registry_lock = threading.Lock()

    def __init__(self, log_dir: Optional[Path] = None, keep_recent: int = 200):
        """
        Args:
            log_dir: Carpeta para el archivo de auditoría. None = solo loguru/memoria.
            keep_recent: Cuántas entradas conservar en memoria.
        """
        self._recent: Deque[AuditEntry] = deque(maxlen=keep_recent)
        self._lock = threading.Lock()
        self._logger = logger.bind(context="audit")
        if log_dir is not None:
            self._register_file_sink(Path(log_dir))

    @classmethod
    def _register_file_sink(cls, log_dir: Path) -> None:
        key = str(log_dir.resolve())
        with cls._registry_lock:
            if key in cls._registered_dirs:
                return
            log_dir.mkdir(parents=True, exist_ok=True)
            logger.add(
                str(log_dir / "audit_{time:YYYY-MM-DD}.log"),
                format="{time:YYYY-MM-DD HH:mm:ss.SSS} | {level} | {message}",
                filter=lambda record: record["extra"].get("context") == "audit",
                rotation="1 day",
                retention="30 days",
                level="DEBUG",
            )
            cls._registered_dirs.add(key)
        logger.info(f"AuditLogger escribiendo en {log_dir}")

    def emit(self, entry: AuditEntry) -> None:
        """
        Registra una entrada.

        Los skips esperables (sin lock, duplicado) van a INFO; `error` a ERROR;
        el identificador faltante a WARNING.
        """
        with self._lock:
            self._recent.append(entry)

        payload: Dict[str, Any] = entry.to_dict()
        level = self._level_for(entry.result)
        self._logger.log(
            level,
            f"[{entry.correlation_id[:8]}] {entry.action} fila {entry.source_row} -> "
            f"{entry.result.value} | {json.dumps(payload, default=str, ensure_ascii=False)}",
        )

    @staticmethod
    def _level_for(result: TransferResult) -> str:
        if result is TransferResult.ERROR:
            return "ERROR"
        if result is TransferResult.SKIPPED_MISSING_IDENTIFIER:
            return "WARNING"
        return "INFO"

    def recent(self, limit: int = 50) -> List[AuditEntry]:
        """Últimas entradas, la más reciente primero."""
        with self._lock:
            items = list(self._recent)
        items.reverse()
        return items[:limit]
