"""
Configuración de fixtures para pytest.
"""
from typing import Callable, List
from unittest.mock import Mock

import pytest
from loguru import logger

from record_sync.application.interfaces.audit_sink import InMemoryAuditSink
from record_sync.application.services.error_handler import ErrorHandler
from record_sync.application.services.retry_executor import RetryPolicy
from record_sync.application.use_cases.transfer_use_cases import EngineSettings, TransferEngine
from record_sync.infrastructure.locking.transfer_lock import TransferLockManager
from record_sync.infrastructure.tables.memory_table import InMemoryTableStore


SOURCE_HEADER = ["ID", "Proyecto", "Ubicación", "Campo X"]
DEST_HEADER = ["ID", "Proyecto", "Ubicación", "Campo X", "Notas"]


@pytest.fixture
def sleeps() -> List[float]:
    """Registra las esperas pedidas (nunca duerme de verdad)."""
    return []


@pytest.fixture
def fake_sleep(sleeps: List[float]) -> Callable[[float], None]:
    return sleeps.append


@pytest.fixture
def store() -> InMemoryTableStore:
    """Almacén con tabla origen 'forecast' y destino 'upcoming' vacío."""
    memory_store = InMemoryTableStore()
    memory_store.add_table("forecast", SOURCE_HEADER)
    memory_store.add_table("upcoming", DEST_HEADER)
    return memory_store


@pytest.fixture
def audit_sink() -> InMemoryAuditSink:
    return InMemoryAuditSink()


@pytest.fixture
def notifier() -> Mock:
    mock = Mock()
    mock.notify.return_value = True
    return mock


@pytest.fixture
def locks() -> TransferLockManager:
    return TransferLockManager()


@pytest.fixture
def engine_settings() -> EngineSettings:
    return EngineSettings(
        lock_timeout_s=0.01,
        lock_retries=2,
        lock_retry_pause_s=0.0,
        retry=RetryPolicy(max_attempts=3, initial_delay=0.0),
    )


@pytest.fixture
def engine(store, locks, audit_sink, notifier, engine_settings, fake_sleep) -> TransferEngine:
    return TransferEngine(
        store=store,
        locks=locks,
        audit_sink=audit_sink,
        error_handler=ErrorHandler(notifier),
        settings=engine_settings,
        sleep=fake_sleep,
    )


@pytest.fixture
def log_messages():
    """Captura los mensajes de loguru emitidos durante el test."""
    messages: List[str] = []
    sink_id = logger.add(lambda msg: messages.append(msg.record["message"]), level="DEBUG")
    yield messages
    logger.remove(sink_id)
