"""
Punto de entrada principal de la aplicación FastAPI.
Configura la aplicación, middlewares, rutas y eventos.
"""
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from record_sync.api.middlewares.error_handler import ErrorHandlerMiddleware
from record_sync.api.v1.router import api_router
from record_sync.application.use_cases.transfer_use_cases import TransferService
from record_sync.core.config import Settings, get_settings
from record_sync.core.events import build_lifespan
from record_sync.shared.exceptions.base import AppException


def create_application(
    settings: Optional[Settings] = None,
    transfer_service: Optional[TransferService] = None,
) -> FastAPI:
    """
    Factory para crear y configurar la aplicación FastAPI.

    Args:
        settings: Configuración (por defecto `get_settings()`)
        transfer_service: Servicio ya armado; si falta se construye en el startup

    Returns:
        FastAPI: Instancia configurada de la aplicación
    """
    settings = settings or get_settings()
    application = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        description="Transferencia y sincronización de registros entre tablas de un flujo",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=build_lifespan(settings),
    )
    application.state.transfer_service = transfer_service

    # Middleware personalizado para manejo de errores
    application.add_middleware(ErrorHandlerMiddleware)

    application.include_router(api_router, prefix="/api")

    # Manejador global de excepciones personalizadas
    @application.exception_handler(AppException)
    async def app_exception_handler(request: Request, exc: AppException):
        return JSONResponse(status_code=exc.status_code, content=exc.to_response())

    # Health check endpoint
    @application.get("/health", tags=["Health"])
    async def health_check():
        """Endpoint para verificar el estado de la aplicación."""
        service = application.state.transfer_service
        return {
            "status": "healthy",
            "app_name": settings.APP_NAME,
            "version": settings.APP_VERSION,
            "environment": settings.ENVIRONMENT,
            "transfers": len(service.specs) if service is not None else 0,
        }

    return application


# Crear instancia de la aplicación
app = create_application()


if __name__ == "__main__":
    import uvicorn

    _settings = get_settings()
    uvicorn.run(
        "record_sync.main:app",
        host=_settings.HOST,
        port=_settings.PORT,
        reload=_settings.DEBUG,
        log_level=_settings.LOG_LEVEL.lower(),
    )
