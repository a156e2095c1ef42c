"""
Dependencias para inyeccion del servicio de transferencias.
"""
from fastapi import Request

from record_sync.application.use_cases.transfer_use_cases import TransferService
from record_sync.shared.exceptions.sync import ConfigurationError


def get_transfer_service(request: Request) -> TransferService:
    """
    Dependencia para obtener el TransferService armado en el startup.

    Returns:
        TransferService: Servicio compartido por la aplicacion
    """
    service = getattr(request.app.state, "transfer_service", None)
    if service is None:
        raise ConfigurationError("TransferService no inicializado")
    return service
