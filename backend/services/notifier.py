# services/notifier.py
# ============================================================================
# ELORA CHECKOUT BACKEND - MAIL NOTIFIER
# ============================================================================
# Sends transactional email through the Resend HTTP API. Without an API key
# the notifier degrades to a logged no-op so the rest of the flow still runs.
# ============================================================================

from abc import ABC, abstractmethod
from typing import Optional

import httpx
import structlog
from pydantic import BaseModel

from config import ShopConfig


RESEND_API_URL = "https://api.resend.com/emails"


class NotifierError(RuntimeError):
    pass


class EmailMessage(BaseModel):
    to: str
    subject: str
    html: str
    text: str


class INotifier(ABC):
    """Email delivery interface"""

    @abstractmethod
    async def send(self, message: EmailMessage) -> bool:
        """Deliver one message. False means skipped, failures raise NotifierError."""
        pass

    async def close(self) -> None:
        return None


class ResendNotifier(INotifier):

    def __init__(
        self,
        api_key: Optional[str],
        sender: str,
        api_url: str = RESEND_API_URL,
        timeout_seconds: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.api_key = api_key
        self.sender = sender
        self.api_url = api_url
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout_seconds)
        self._logger = structlog.get_logger().bind(component="notifier")

    @classmethod
    def from_config(
        cls, config: ShopConfig, client: Optional[httpx.AsyncClient] = None
    ) -> "ResendNotifier":
        return cls(
            api_key=config.resend_api_key,
            sender=config.mail_from,
            timeout_seconds=config.mail_timeout_seconds,
            client=client,
        )

    async def send(self, message: EmailMessage) -> bool:
        if not self.api_key:
            self._logger.warning("mail_skipped", to=message.to, subject=message.subject,
                                 reason="RESEND_API_KEY not set")
            return False

        try:
            response = await self._client.post(
                self.api_url,
                headers={"Authorization": f"Bearer {self.api_key}"},
                json={
                    "from": self.sender,
                    "to": [message.to],
                    "subject": message.subject,
                    "html": message.html,
                    "text": message.text,
                },
            )
        except httpx.HTTPError as e:
            raise NotifierError(f"mail transport failed: {type(e).__name__}: {e}") from e

        if not response.is_success:
            raise NotifierError(f"mail provider answered {response.status_code}: {response.text[:500]}")

        try:
            body = response.json()
        except ValueError:
            body = {}
        message_id = body.get("id") if isinstance(body, dict) else None
        self._logger.info("mail_sent", to=message.to, subject=message.subject, message_id=message_id)
        return True

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()
