"""EmailJS REST delivery (implements application.ports.delivery.EmailDeliverer)."""
from __future__ import annotations

import logging
from typing import Any

import httpx

logger = logging.getLogger(__name__)


class EmailJSDeliverer:
    """Send one templated email through the EmailJS ``/email/send`` endpoint.

    Non-200 responses are reported as ``False``; transport errors propagate so
    the queue can count them as failed attempts.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        api_url: str,
        service_id: str,
        public_key: str,
        private_key: str | None = None,
    ) -> None:
        self._client = client
        self._api_url = api_url
        self._service_id = service_id
        self._public_key = public_key
        self._private_key = private_key

    async def send(self, template_id: str, parameters: dict[str, Any]) -> bool:
        body: dict[str, Any] = {
            "service_id": self._service_id,
            "template_id": template_id,
            "user_id": self._public_key,
            "template_params": parameters,
        }
        if self._private_key:
            body["accessToken"] = self._private_key

        response = await self._client.post(self._api_url, json=body)
        if response.status_code != 200:
            logger.warning(
                "EmailJS rejected template=%s: %s %s",
                template_id, response.status_code, response.text[:200],
            )
            return False

        logger.debug("EmailJS accepted template=%s", template_id)
        return True


class LoggingDeliverer:
    """Development deliverer: logs the email instead of sending it."""

    async def send(self, template_id: str, parameters: dict[str, Any]) -> bool:
        logger.info(
            "Email (not sent) template=%s recipient=%s",
            template_id, parameters.get("recipient_email"),
        )
        return True
