# feeflow/services/sms_service.py - SMS delivery over a provider HTTP API
from typing import Optional
import logging

import httpx

from feeflow.core.config import Settings, settings as default_settings
from feeflow.core.exceptions import DeliveryError
from feeflow.core.logging_config import mask_contact
from feeflow.schemas.notification import GatewayResponse

logger = logging.getLogger(__name__)


class SmsService:
    """
    Sends single-line text messages through a JSON HTTP provider.

    The provider is expected to accept ``{"to", "message", "sender_id"}`` with a
    bearer API key and answer with ``{"id": ...}`` or ``{"error": ...}``. When no
    provider is configured the message is only logged and reported as sent.
    """

    def __init__(
        self,
        config: Optional[Settings] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        config = config or default_settings
        self.api_url = config.SMS_API_URL
        self.api_key = config.SMS_API_KEY
        self.sender_id = config.SMS_SENDER_ID
        self.timeout = config.SMS_TIMEOUT_SECONDS
        self._client = client

    @property
    def configured(self) -> bool:
        return bool(self.api_url and self.api_key)

    async def send_sms(self, to_phone: str, text: str) -> GatewayResponse:
        if not self.configured:
            logger.info(f"SMS provider not configured, simulated SMS to {mask_contact(to_phone)}: {text}")
            return GatewayResponse(success=True, message_id="simulated")

        try:
            if self._client is not None:
                response = await self._post(self._client, to_phone, text)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await self._post(client, to_phone, text)

            payload = response.json() if response.content else {}
            if response.status_code >= 400 or payload.get("error"):
                raise DeliveryError("sms", payload.get("error") or f"HTTP {response.status_code}")

            logger.info(f"SMS sent successfully to {mask_contact(to_phone)}")
            return GatewayResponse(success=True, message_id=str(payload.get("id", "")) or None)

        except (httpx.HTTPError, ValueError, DeliveryError) as e:
            logger.error(f"Failed to send SMS to {mask_contact(to_phone)}: {e}")
            return GatewayResponse(success=False, error=str(e))

    async def _post(self, client: httpx.AsyncClient, to_phone: str, text: str) -> httpx.Response:
        return await client.post(
            self.api_url,
            json={"to": to_phone, "message": text, "sender_id": self.sender_id},
            headers={"Authorization": f"Bearer {self.api_key}"},
            timeout=self.timeout,
        )
