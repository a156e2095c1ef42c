"""
Notificador de errores via Telegram Bot API.
"""
import html
from typing import Optional

import httpx
from loguru import logger

from record_sync.shared.exceptions.sync import causal_chain


class TelegramNotifier:
    """
    Envía eventos de severidad ERROR a un chat de Telegram.

    Nunca lanza: si el envío falla se registra y se retorna False.
    """

    def __init__(
        self,
        bot_token: Optional[str],
        chat_id: Optional[str],
        *,
        client: Optional[httpx.Client] = None,
        timeout_s: float = 10.0,
    ):
        self.bot_token = bot_token
        self.chat_id = chat_id
        self.base_url = f"https://api.telegram.org/bot{bot_token}"
        self._client = client
        self._timeout_s = timeout_s

    def build_message(self, subject: str, error: BaseException, context_table: Optional[str] = None) -> str:
        """Mensaje HTML con asunto, tabla y cadena causal (escapados)."""
        parts = [f"⚠️ <b>{html.escape(subject)}</b>"]
        if context_table:
            parts.append(f"Tabla: <code>{html.escape(context_table)}</code>")
        parts.append(html.escape(str(error)))
        chain = causal_chain(error)[1:]
        if chain:
            parts.append("Causa:\n" + "\n".join(f"- {html.escape(c)}" for c in chain))
        return "\n".join(parts)

    def notify(self, subject: str, error: BaseException, context_table: Optional[str] = None) -> bool:
        """
        Envía la notificación.

        Args:
            subject: Asunto corto
            error: Error a reportar
            context_table: Tabla donde ocurrió (si aplica)
        """
        if not self.bot_token or not self.chat_id:
            logger.warning("Telegram Bot Token o Chat ID no proporcionados. Saltando notificación.")
            return False

        url = f"{self.base_url}/sendMessage"
        payload = {
            "chat_id": self.chat_id,
            "text": self.build_message(subject, error, context_table),
            "parse_mode": "HTML",
        }

        try:
            if self._client is not None:
                response = self._client.post(url, json=payload)
            else:
                with httpx.Client(timeout=self._timeout_s) as client:
                    response = client.post(url, json=payload)
            response.raise_for_status()
            return True
        except httpx.HTTPError as e:
            logger.error(f"Error al enviar notificación de Telegram: {e}")
            return False
