"""
Interfaz del lock con nombre que serializa las escrituras al destino.

Este contrato existe para:
- Que el motor no dependa de threading ni de Postgres directamente.
- Poder usar un lock en memoria en un solo proceso y un advisory lock
  de Postgres cuando hay varios procesos.
"""

from __future__ import annotations

from typing import Protocol


class ITransferLock(Protocol):
    """Handle de exclusión mutua con espera acotada."""

    @property
    def name(self) -> str:
        ...

    def try_acquire(self, timeout: float) -> bool:
        """
        Intenta tomar el lock esperando como máximo `timeout` segundos.

        Returns:
            True si se adquirió, False si venció la espera
        """

    def release(self) -> None:
        """Libera el lock. Solo debe llamarse si `try_acquire` retornó True."""


class ILockProvider(Protocol):
    """Entrega el lock asociado a un nombre lógico."""

    def get_lock(self, name: str) -> ITransferLock:
        ...
