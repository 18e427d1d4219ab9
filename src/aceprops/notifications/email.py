"""
Envío de emails transaccionales vía la API HTTP de Resend.
"""

from typing import Optional

import aiohttp
import structlog
from tenacity import retry, stop_after_attempt, wait_exponential

from aceprops.config import Settings, get_settings
from aceprops.errors import AcePropsError

logger = structlog.get_logger()

RESEND_API_URL = "https://api.resend.com/emails"


class EmailDeliveryError(AcePropsError):
    """Resend respondió con error."""


class EmailSender:
    """
    Cliente mínimo de Resend.

    send() nunca lanza: loguea el error y devuelve False, para que un
    email fallido no corte un batch de notificaciones.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        sender: Optional[str] = None,
        timeout: float = 10.0,
        settings: Optional[Settings] = None,
    ):
        settings = settings or get_settings()
        self.api_key = api_key or settings.resend_api_key
        self.sender = sender or settings.email_from
        self.timeout = aiohttp.ClientTimeout(total=timeout)

    async def send(self, to: str, subject: str, html: str) -> bool:
        """
        Envía un email.

        Returns:
            True si Resend lo aceptó
        """
        if not self.api_key:
            logger.warning("RESEND_API_KEY no configurada, email no enviado", to=to)
            return False

        payload = {
            "from": self.sender,
            "to": [to],
            "subject": subject,
            "html": html,
        }

        try:
            data = await self._post(payload)
        except Exception as e:
            logger.error("Error enviando email", to=to, subject=subject, error=str(e))
            return False

        logger.info("Email enviado", to=to, subject=subject, email_id=data.get("id"))
        return True

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def _post(self, payload: dict) -> dict:
        headers = {"Authorization": f"Bearer {self.api_key}"}
        async with aiohttp.ClientSession(timeout=self.timeout) as session:
            async with session.post(RESEND_API_URL, json=payload, headers=headers) as response:
                if response.status >= 400:
                    body = await response.text()
                    raise EmailDeliveryError(f"Resend {response.status}: {body}")
                return await response.json()
