"""
Excepción raíz de record_sync.

Tanto los errores del motor (shared.exceptions.sync) como los de dominio
(shared.exceptions.domain) heredan de AppException; la API los traduce a
JSON con `to_response()`.
"""
from typing import Any, Dict, Optional


class AppException(Exception):
    """
    Excepción base con código HTTP, código de error y detalles.

    Args:
        message: Mensaje legible
        status_code: Código HTTP cuando se expone por la API
        error_code: Identificador estable del error (p.ej. "SPEC_NOT_FOUND")
        details: Datos estructurados para logs y respuestas
    """

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        error_code: str = "INTERNAL_ERROR",
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        self.details = dict(details or {})
        super().__init__(message)

    def to_response(self) -> Dict[str, Any]:
        """Cuerpo JSON de la respuesta de error."""
        return {"error": self.error_code, "message": self.message, "details": self.details}

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.error_code}: {self.message!r})"
