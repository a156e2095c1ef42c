"""
Lock de transferencias por nombre (un solo proceso).

Motivacion:
- Varias ediciones pueden llegar mientras otra transferencia todavia hace
  I/O (las rutas del API corren en el threadpool).
- Se necesita serializar chequeo-escritura contra el destino sin
  introducir dependencias externas.

Caracteristicas:
- Un `threading.Lock` por nombre logico (familia de operaciones)
- Espera acotada: `try_acquire(timeout)` retorna False al vencer
- Los locks viven tanto como el gestor: todo handle de un nombre apunta
  siempre al mismo lock
"""
from __future__ import annotations

import threading
from typing import Dict


# Timeout por defecto para adquirir un lock (en segundos)
DEFAULT_LOCK_TIMEOUT = 2.5


class NamedTransferLock:
    """Handle sobre el lock compartido de un nombre."""

    def __init__(self, name: str, lock: threading.Lock) -> None:
        self._name = name
        self._lock = lock

    @property
    def name(self) -> str:
        return self._name

    @property
    def locked(self) -> bool:
        return self._lock.locked()

    def try_acquire(self, timeout: float = DEFAULT_LOCK_TIMEOUT) -> bool:
        """
        Intenta adquirir el lock.

        Args:
            timeout: Tiempo maximo de espera (segundos). <= 0 = no esperar.

        Returns:
            True si se adquirio
        """
        if timeout and timeout > 0:
            return self._lock.acquire(timeout=timeout)
        return self._lock.acquire(blocking=False)

    def release(self) -> None:
        self._lock.release()


class TransferLockManager:
    """
    Gestor de locks por nombre.

    Implementacion:
    - Usa `threading.Lock` por nombre; el registro se protege con un meta-lock.
    - Es una instancia (no estado de clase) para que cada composicion de la
      app y cada test tenga su propio registro.
    """

    def __init__(self) -> None:
        self._locks: Dict[str, threading.Lock] = {}
        self._meta_lock = threading.Lock()

    def get_lock(self, name: str) -> NamedTransferLock:
        with self._meta_lock:
            lock = self._locks.get(name)
            if lock is None:
                lock = threading.Lock()
                self._locks[name] = lock
        return NamedTransferLock(name, lock)
