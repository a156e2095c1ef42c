"""
Carga de las TransferSpecs por flujo desde JSON.

Este es el punto recomendado para que tengas "control total" sobre:
- qué columnas de cada etapa se copian a la siguiente
- cómo se detectan duplicados (ID primario o nombre + ubicación)
- si un duplicado se fusiona o solo se reporta

Formato: `{"tables": {...}, "transfers": [ {...}, ... ]}` o directamente
la lista de transferencias.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Union

from loguru import logger
from pydantic import ValidationError as PydanticValidationError

from record_sync.application.dto.transfer_dto import TransferSpecFileDTO
from record_sync.domain.entities.transfer_spec import TransferSpec
from record_sync.shared.exceptions.sync import ConfigurationError


@dataclass(frozen=True)
class TransferConfig:
    specs: Dict[str, TransferSpec]
    table_headers: Dict[str, List[str]] = field(default_factory=dict)


def parse_transfer_config(payload: Any, *, source: str = "<memoria>") -> TransferConfig:
    """
    Valida y convierte el contenido ya decodificado.

    Raises:
        ConfigurationError: Si el esquema no es válido o hay nombres repetidos
    """
    if isinstance(payload, list):
        payload = {"transfers": payload}
    try:
        parsed = TransferSpecFileDTO.model_validate(payload)
    except PydanticValidationError as e:
        raise ConfigurationError(
            f"Configuración de transferencias inválida en {source}: {e.error_count()} errores",
            cause=e,
            details={"errors": e.errors(include_url=False, include_context=False)},
        ) from e

    specs: Dict[str, TransferSpec] = {}
    for dto in parsed.transfers:
        if dto.name in specs:
            raise ConfigurationError(f"Transferencia '{dto.name}' definida dos veces en {source}")
        specs[dto.name] = dto.to_domain()
    return TransferConfig(specs=specs, table_headers=dict(parsed.tables))


def load_transfer_config(path: Union[str, Path]) -> TransferConfig:
    """Lee el archivo JSON de transferencias."""
    file_path = Path(path)
    try:
        payload = json.loads(file_path.read_text(encoding="utf-8-sig"))
    except FileNotFoundError as e:
        raise ConfigurationError(f"No existe el archivo de transferencias: {file_path}", cause=e) from e
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"{file_path} no es JSON válido: {e.msg}", cause=e) from e

    config = parse_transfer_config(payload, source=str(file_path))
    logger.info(
        f"Transferencias cargadas desde {file_path}: {', '.join(sorted(config.specs)) or '(ninguna)'}"
    )
    return config
