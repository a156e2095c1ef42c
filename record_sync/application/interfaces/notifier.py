"""
Interfaz del notificador externo de errores.

Solo recibe eventos de severidad ERROR. El formato del mensaje es asunto
de cada implementación (Telegram, email, etc.).
"""

from __future__ import annotations

from typing import Optional, Protocol

from loguru import logger


class INotifier(Protocol):
    def notify(self, subject: str, error: BaseException, context_table: Optional[str] = None) -> bool:
        """
        Envía la notificación.

        Returns:
            True si se entregó. Nunca debe lanzar excepción.
        """


class NullNotifier:
    """Notificador que solo deja constancia en el log (default sin configuración)."""

    def notify(self, subject: str, error: BaseException, context_table: Optional[str] = None) -> bool:
        logger.debug(f"Notificación omitida (sin notificador configurado): {subject}")
        return False
