"""
Reintentos con backoff exponencial + jitter para toda llamada de I/O.

Estrategia:
- ValidationError / ConfigurationError: error inmediato (son errores del
  caller, reintentar no cambia nada).
- Cualquier otro error: se reintenta hasta `max_attempts` intentos en total,
  esperando `initial_delay * 2**attempt` más hasta un 20% de jitter.
- Al agotar intentos: DependencyError con la última causa encadenada.

La espera es bloqueante (time.sleep): el motor es secuencial por invocación.
"""
from __future__ import annotations

import random
import time
from dataclasses import dataclass
from typing import Callable, Optional, TypeVar

from loguru import logger

from record_sync.shared.exceptions.sync import (
    ConfigurationError,
    DependencyError,
    ValidationError,
)

T = TypeVar("T")

JITTER_RATIO = 0.2


@dataclass(frozen=True)
class RetryPolicy:
    """Parámetros de reintento (vienen de Settings en la raíz de composición)."""

    max_attempts: int = 3
    initial_delay: float = 0.5


def is_retryable(error: BaseException) -> bool:
    """Clasificador por defecto: todo menos errores de validación/configuración."""
    return not isinstance(error, (ValidationError, ConfigurationError))


def backoff_delay(attempt: int, initial_delay: float, rand: Callable[[], float] = random.random) -> float:
    """
    Espera antes del siguiente intento.

    Args:
        attempt: Intento que acaba de fallar, empezando en 0
        initial_delay: Base en segundos
        rand: Fuente aleatoria en [0, 1)
    """
    base = initial_delay * (2 ** attempt)
    return base + base * JITTER_RATIO * rand()


def with_retry(
    operation: Callable[[], T],
    *,
    name: str,
    max_attempts: int = 3,
    initial_delay: float = 0.5,
    retryable: Callable[[BaseException], bool] = is_retryable,
    sleep: Callable[[float], None] = time.sleep,
    rand: Callable[[], float] = random.random,
) -> T:
    """
    Ejecuta `operation` reintentando fallos transitorios.

    Args:
        operation: Callable sin argumentos
        name: Nombre de la operación (para logs y para el DependencyError final)
        max_attempts: Intentos totales, incluido el primero
        initial_delay: Espera base en segundos
        retryable: Predicado que decide si un error se reintenta

    Raises:
        ValidationError / ConfigurationError: Inmediatamente, sin reintentar
        DependencyError: Al agotar los intentos (causa = último error)
    """
    if max_attempts < 1:
        raise ConfigurationError(f"max_attempts debe ser >= 1 (recibido {max_attempts}) para '{name}'")

    last_error: Optional[Exception] = None
    for attempt in range(max_attempts):
        try:
            return operation()
        except Exception as exc:
            if not retryable(exc):
                raise
            last_error = exc
            if attempt + 1 >= max_attempts:
                break
            delay = backoff_delay(attempt, initial_delay, rand)
            logger.warning(
                f"'{name}' falló (intento {attempt + 1}/{max_attempts}): {exc}. "
                f"Reintentando en {delay:.2f}s"
            )
            sleep(delay)

    raise DependencyError(
        f"'{name}' falló tras {max_attempts} intentos: {last_error}",
        operation=name,
        cause=last_error,
        details={"attempts": max_attempts},
    ) from last_error


class RetryExecutor:
    """
    Aplica una RetryPolicy fija a cada llamada.

    Uso:
        retry = RetryExecutor(RetryPolicy(max_attempts=3, initial_delay=0.5))
        row = retry.run(lambda: table.read_row(5, 10), name="forecast.read_row")
    """

    def __init__(
        self,
        policy: RetryPolicy = RetryPolicy(),
        *,
        sleep: Callable[[float], None] = time.sleep,
        rand: Callable[[], float] = random.random,
        retryable: Callable[[BaseException], bool] = is_retryable,
    ) -> None:
        self.policy = policy
        self._sleep = sleep
        self._rand = rand
        self._retryable = retryable

    def run(self, operation: Callable[[], T], *, name: str) -> T:
        return with_retry(
            operation,
            name=name,
            max_attempts=self.policy.max_attempts,
            initial_delay=self.policy.initial_delay,
            retryable=self._retryable,
            sleep=self._sleep,
            rand=self._rand,
        )
