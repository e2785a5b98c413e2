"""
app/services/twilio_service.py

Purpose: Reply dispatch through Twilio WhatsApp

- Sends text replies via the Twilio Messages API
- Sends interactive (button/list) prompts, rendered as numbered text
  because the sandbox cannot show native buttons without approved templates
- Every send returns a DispatchResult instead of raising; nothing is retried
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

import httpx

from app.core.config import settings
from app.core.exceptions import DispatchError
from app.core.logging import get_logger
from utils.whatsapp_utils import create_choice_message, render_as_text

logger = get_logger(__name__)

WHATSAPP_PREFIX = "whatsapp:"


@dataclass(frozen=True)
class DispatchResult:
    """
    Outcome of one outbound message.
    """
    success: bool
    message_sid: Optional[str] = None
    status: Optional[str] = None
    error: Optional[str] = None

    def raise_for_status(self) -> "DispatchResult":
        if not self.success:
            raise DispatchError(self.error or "Reply dispatch failed")
        return self


class ReplyDispatcher(ABC):
    """
    Sends replies back to a sender through the messaging provider.
    """

    @abstractmethod
    async def send_text(self, to: str, body: str) -> DispatchResult:
        """Sends a plain text message."""

    @abstractmethod
    async def send_interactive(
        self,
        to: str,
        prompt: str,
        choices: Sequence[Tuple[str, str]]
    ) -> DispatchResult:
        """Sends a prompt with selectable (id, label) choices."""


def to_whatsapp_address(phone: str) -> str:
    """Ensure phone has the whatsapp: prefix."""
    return phone if phone.startswith(WHATSAPP_PREFIX) else f"{WHATSAPP_PREFIX}{phone}"


class TwilioService(ReplyDispatcher):
    """Service for sending WhatsApp messages via Twilio"""

    def __init__(
        self,
        account_sid: Optional[str] = None,
        auth_token: Optional[str] = None,
        whatsapp_number: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.account_sid = account_sid or settings.TWILIO_ACCOUNT_SID
        self.auth_token = auth_token or settings.TWILIO_AUTH_TOKEN
        self.whatsapp_number = to_whatsapp_address(whatsapp_number or settings.TWILIO_WHATSAPP_NUMBER)
        self.base_url = f"{settings.TWILIO_API_BASE_URL}/Accounts/{self.account_sid}"
        self.timeout = settings.TWILIO_TIMEOUT_SECONDS
        self._transport = transport

    def is_configured(self) -> bool:
        """Check if Twilio is properly configured"""
        return bool(
            self.account_sid
            and self.auth_token
            and self.whatsapp_number
            and self.account_sid != "your_twilio_sid"
        )

    async def send_text(self, to: str, body: str) -> DispatchResult:
        """
        Sends a WhatsApp message via Twilio

        Args:
            to: Recipient phone (+919876543210 or whatsapp:+919876543210)
            body: Message text

        Returns:
            DispatchResult with the Twilio message SID on success
        """
        if not self.is_configured():
            logger.error("Twilio is not configured, reply dropped", extra={"sender": to})
            return DispatchResult(success=False, error="Twilio is not configured")

        url = f"{self.base_url}/Messages.json"
        data = {
            "From": self.whatsapp_number,
            "To": to_whatsapp_address(to),
            "Body": body,
        }

        try:
            logger.info(f"📤 Sending Twilio message to {data['To']}")

            async with httpx.AsyncClient(transport=self._transport) as client:
                response = await client.post(
                    url,
                    data=data,
                    auth=(self.account_sid, self.auth_token),
                    timeout=self.timeout,
                )

            if response.status_code in (200, 201):
                result = response.json()
                logger.info(f"✅ Message sent: SID={result.get('sid')}", extra={"message_sid": result.get("sid")})
                return DispatchResult(
                    success=True,
                    message_sid=result.get("sid"),
                    status=result.get("status"),
                )

            logger.error(f"❌ Twilio API error: {response.status_code} - {response.text}")
            return DispatchResult(success=False, error=f"Twilio API error: {response.status_code}")

        except httpx.TimeoutException:
            logger.error("Twilio API timeout")
            return DispatchResult(success=False, error="Twilio API timeout")
        except httpx.HTTPError as e:
            logger.error(f"Error sending Twilio message: {e}", exc_info=True)
            return DispatchResult(success=False, error=str(e))

    async def send_interactive(
        self,
        to: str,
        prompt: str,
        choices: Sequence[Tuple[str, str]]
    ) -> DispatchResult:
        payload = create_choice_message(prompt, choices)
        return await self.send_text(to, render_as_text(payload))


# Singleton instance
twilio_service = TwilioService()
