"""
Manejadores de eventos de inicio y cierre de la aplicacion.
"""
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI
from loguru import logger

from record_sync.core.config import Settings


def _validate_config(settings: Settings) -> None:
    """Valida que la configuracion critica este presente."""
    warnings = []

    if not settings.telegram_enabled:
        warnings.append("TELEGRAM_BOT_TOKEN/TELEGRAM_CHAT_ID no configurados - los errores solo quedaran en el log")
    if settings.LOCK_BACKEND == "postgres" and not settings.DATABASE_URL.startswith("postgres"):
        warnings.append(f"LOCK_BACKEND=postgres con DATABASE_URL no Postgres: {settings.DATABASE_URL}")

    for warning in warnings:
        logger.warning(f"CONFIG: {warning}")


def _print_available_urls(settings: Settings) -> None:
    """Imprime las URLs disponibles de la aplicacion."""
    access_host = "localhost" if settings.HOST == "0.0.0.0" else settings.HOST
    base_url = f"http://{access_host}:{settings.PORT}"

    logger.opt(colors=True).info("<bold><green>" + "=" * 80 + "</green></bold>")
    logger.opt(colors=True).info("<bold><green>URLS DISPONIBLES:</green></bold>")
    logger.opt(colors=True).info(f"<cyan>  Swagger UI:     {base_url}/docs</cyan>")
    logger.opt(colors=True).info(f"<cyan>  Transferencias: {base_url}/api/v1/transfers</cyan>")
    logger.opt(colors=True).info(f"<cyan>  Health:         {base_url}/health</cyan>")
    logger.opt(colors=True).info("<bold><green>" + "=" * 80 + "</green></bold>")


def startup_handler(app: FastAPI, settings: Settings) -> None:
    """
    Inicializa recursos al inicio de la aplicacion.

    Args:
        app: Instancia de FastAPI (el servicio queda en `app.state`)
        settings: Configuracion resuelta
    """
    try:
        logger.info(f"Iniciando {settings.APP_NAME} v{settings.APP_VERSION}")
        logger.info(f"Entorno: {settings.ENVIRONMENT}")

        _validate_config(settings)

        sink_id: Optional[int] = None
        if settings.LOG_FILE:
            sink_id = logger.add(
                settings.LOG_FILE,
                rotation="500 MB",
                retention="10 days",
                level=settings.LOG_LEVEL,
            )
        app.state.log_sink_id = sink_id

        if getattr(app.state, "transfer_service", None) is None:
            # Import diferido: bootstrap arrastra SQLAlchemy/psycopg
            from record_sync.infrastructure.bootstrap import build_transfer_service

            app.state.transfer_service = build_transfer_service(settings)

        specs = app.state.transfer_service.specs
        logger.info(f"Transferencias disponibles: {', '.join(sorted(specs)) or '(ninguna)'}")
        logger.success("Aplicacion iniciada correctamente")
        _print_available_urls(settings)
    except Exception as e:
        logger.error(f"Error durante startup: {e}")
        logger.exception("Detalle del error:")
        raise


def shutdown_handler(app: FastAPI) -> None:
    """Libera recursos al cerrar la aplicacion."""
    logger.info("Cerrando aplicacion...")
    sink_id = getattr(app.state, "log_sink_id", None)
    if sink_id is not None:
        logger.remove(sink_id)
        app.state.log_sink_id = None
    logger.success("Aplicacion cerrada correctamente")


def build_lifespan(settings: Settings):
    """Lifespan de FastAPI que envuelve startup/shutdown."""

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        startup_handler(app, settings)
        try:
            yield
        finally:
            shutdown_handler(app)

    return lifespan
