import logging

import httpx

from relay.errors import DeliveryError

logger = logging.getLogger(__name__)


class DeliveryClient:
    """Sends text replies through the WhatsApp Cloud API."""

    def __init__(self, base_url: str, client: httpx.AsyncClient | None = None):
        self._http = client or httpx.AsyncClient(base_url=base_url)

    async def send(self, routing_key: str, recipient: str, text: str, credential: str) -> dict:
        """
        POST /{routing_key}/messages as the tenant's number.

        Returns the platform's JSON answer (message ids). Raises
        DeliveryError on transport failure or a non-2xx status; there is
        no retry.
        """
        try:
            resp = await self._http.post(
                f"/{routing_key}/messages",
                headers={
                    "Authorization": f"Bearer {credential}",
                    "Content-Type": "application/json",
                },
                json={
                    "messaging_product": "whatsapp",
                    "to": recipient,
                    "type": "text",
                    "text": {"body": text},
                },
            )
        except httpx.HTTPError as e:
            raise DeliveryError(f"WhatsApp API unreachable: {e}") from e

        if resp.is_error:
            raise DeliveryError(
                f"WhatsApp API status {resp.status_code}: {resp.text}",
                status_code=resp.status_code,
            )

        logger.info("WhatsApp API status %s for %s", resp.status_code, recipient)
        try:
            return resp.json()
        except ValueError:
            return {}

    async def aclose(self):
        await self._http.aclose()
