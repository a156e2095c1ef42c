"""
Excepciones de dominio expuestas por la API.
"""
from record_sync.shared.exceptions.base import AppException


class DomainException(AppException):
    """Excepción base para errores de dominio."""

    def __init__(self, message: str, error_code: str = "DOMAIN_ERROR", details=None):
        super().__init__(
            message=message,
            status_code=400,
            error_code=error_code,
            details=details
        )


class SpecNotFoundException(DomainException):
    """Excepcion cuando no existe una TransferSpec con el nombre pedido."""

    def __init__(self, spec_name: str, available: list[str]):
        super().__init__(
            message=f"Transferencia '{spec_name}' no configurada",
            error_code="SPEC_NOT_FOUND",
            details={"spec_name": spec_name, "available": available}
        )
        self.status_code = 404
