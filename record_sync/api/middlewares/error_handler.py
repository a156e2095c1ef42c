"""
Middleware para errores que escapan a los exception handlers.
"""
from fastapi import Request, status
from fastapi.responses import JSONResponse
from loguru import logger
from starlette.middleware.base import BaseHTTPMiddleware

from record_sync.shared.exceptions.base import AppException


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """
    Responde un 500 genérico sin filtrar detalles internos. Si el cliente
    mandó `X-Request-ID`, se devuelve en los detalles para correlacionar
    con los logs.
    """

    async def dispatch(self, request: Request, call_next):
        try:
            return await call_next(request)
        except Exception as exc:
            request_id = request.headers.get("x-request-id")
            logger.opt(exception=exc).error(
                f"Error no manejado en {request.method} {request.url.path} "
                f"(request_id={request_id}): {type(exc).__name__}"
            )
            error = AppException(
                "Ha ocurrido un error interno del servidor",
                error_code="INTERNAL_SERVER_ERROR",
                details={"request_id": request_id} if request_id else None,
            )
            return JSONResponse(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                content=error.to_response(),
            )
