"""
Raiz de composicion: arma el TransferService a partir de Settings.

Es el unico lugar (junto con main/scripts) que lee configuracion; el resto
de los componentes recibe valores explicitos.
"""
from __future__ import annotations

from pathlib import Path
from typing import Dict, List, Optional

from loguru import logger

from record_sync.application.interfaces.notifier import INotifier, NullNotifier
from record_sync.application.interfaces.transfer_lock import ILockProvider
from record_sync.application.services.error_handler import ErrorHandler
from record_sync.application.services.retry_executor import RetryPolicy
from record_sync.application.use_cases.transfer_use_cases import (
    EngineSettings,
    TransferEngine,
    TransferService,
)
from record_sync.core.config import Settings
from record_sync.domain.repositories.table_repository import ITableStore
from record_sync.infrastructure.config.transfer_specs import TransferConfig, load_transfer_config
from record_sync.shared.exceptions.sync import ConfigurationError
from record_sync.shared.utils.audit_logger import AuditLogger


def engine_settings_from(settings: Settings) -> EngineSettings:
    return EngineSettings(
        lock_timeout_s=settings.LOCK_TIMEOUT_S,
        lock_retries=settings.LOCK_RETRIES,
        lock_retry_pause_s=settings.LOCK_RETRY_PAUSE_S,
        retry=RetryPolicy(
            max_attempts=settings.RETRY_MAX_ATTEMPTS,
            initial_delay=settings.RETRY_INITIAL_DELAY_S,
        ),
    )


def build_table_store(settings: Settings, table_headers: Dict[str, List[str]]) -> ITableStore:
    """
    Crea el almacen de tablas segun TABLE_BACKEND y siembra las tablas
    declaradas que aun no existen.
    """
    if settings.TABLE_BACKEND == "memory":
        from record_sync.infrastructure.tables.memory_table import InMemoryTableStore

        memory_store = InMemoryTableStore()
        for name, header in table_headers.items():
            memory_store.add_table(name, header)
        logger.info(f"Tablas en memoria: {', '.join(sorted(table_headers)) or '(ninguna)'}")
        return memory_store

    if settings.TABLE_BACKEND == "sql":
        from record_sync.infrastructure.database.session import (
            create_db_engine,
            create_session_factory,
            init_db,
        )
        from record_sync.infrastructure.tables.sql_table import SqlTableStore

        db_engine = create_db_engine(settings.DATABASE_URL, echo=settings.DB_ECHO)
        init_db(db_engine)
        sql_store = SqlTableStore(create_session_factory(db_engine))
        existing = set(sql_store.table_names())
        for name, header in table_headers.items():
            if name not in existing:
                sql_store.create_table(name, header)
                logger.info(f"Tabla '{name}' creada con {len(header)} columnas")
        return sql_store

    raise ConfigurationError(f"TABLE_BACKEND desconocido: {settings.TABLE_BACKEND}")


def build_lock_provider(settings: Settings) -> ILockProvider:
    if settings.LOCK_BACKEND == "memory":
        from record_sync.infrastructure.locking.transfer_lock import TransferLockManager

        return TransferLockManager()

    if settings.LOCK_BACKEND == "postgres":
        from record_sync.infrastructure.locking.pg_advisory_lock import PostgresAdvisoryLockProvider

        return PostgresAdvisoryLockProvider(settings.DATABASE_URL)

    raise ConfigurationError(f"LOCK_BACKEND desconocido: {settings.LOCK_BACKEND}")


def build_notifier(settings: Settings) -> INotifier:
    if settings.telegram_enabled:
        from record_sync.infrastructure.external.telegram.telegram_notifier import TelegramNotifier

        return TelegramNotifier(settings.TELEGRAM_BOT_TOKEN, settings.TELEGRAM_CHAT_ID)
    return NullNotifier()


def build_transfer_service(
    settings: Settings,
    *,
    config: Optional[TransferConfig] = None,
    store: Optional[ITableStore] = None,
) -> TransferService:
    """
    Arma motor + registro de specs.

    Args:
        settings: Configuracion resuelta
        config: Specs ya cargadas (por defecto se lee TRANSFER_SPECS_FILE)
        store: Almacen de tablas ya construido (por defecto segun TABLE_BACKEND)
    """
    config = config or load_transfer_config(settings.TRANSFER_SPECS_FILE)
    audit_dir = Path(settings.AUDIT_LOG_DIR) if settings.AUDIT_LOG_DIR else None

    engine = TransferEngine(
        store=store or build_table_store(settings, config.table_headers),
        locks=build_lock_provider(settings),
        audit_sink=AuditLogger(log_dir=audit_dir),
        error_handler=ErrorHandler(build_notifier(settings)),
        settings=engine_settings_from(settings),
    )
    logger.info(
        f"TransferService listo (tablas={settings.TABLE_BACKEND}, lock={settings.LOCK_BACKEND}, "
        f"specs={len(config.specs)})"
    )
    return TransferService(engine, config.specs)
