from __future__ import annotations

import logging
from typing import Any

import httpx

from cardapio.core.config import META_API_VERSION, WHATSAPP_CLOUD_TIMEOUT_SECONDS
from cardapio.core.errors import ChannelNotConfigured, NotificationDeliveryError
from cardapio.whatsapp.links import normalize_phone

logger = logging.getLogger(__name__)
GRAPH_BASE_URL = "https://graph.facebook.com"


class WhatsAppCloudClient:
    def __init__(
        self,
        *,
        access_token: str | None,
        phone_number_id: str | None,
        http_client: httpx.Client | None = None,
        timeout: float = WHATSAPP_CLOUD_TIMEOUT_SECONDS,
    ) -> None:
        if not access_token or not phone_number_id:
            raise ChannelNotConfigured("Credenciais do WhatsApp Cloud incompletas")
        self.access_token = access_token
        self.phone_number_id = phone_number_id
        self._http_client = http_client
        self.timeout = timeout

    @property
    def messages_url(self) -> str:
        return f"{GRAPH_BASE_URL}/{META_API_VERSION}/{self.phone_number_id}/messages"

    def send_text(self, to_phone: str, text: str) -> dict[str, Any]:
        payload = {
            "messaging_product": "whatsapp",
            "to": normalize_phone(to_phone),
            "type": "text",
            "text": {"preview_url": False, "body": text},
        }
        headers = {"Authorization": f"Bearer {self.access_token}", "Content-Type": "application/json"}

        try:
            if self._http_client is not None:
                response = self._http_client.post(self.messages_url, headers=headers, json=payload, timeout=self.timeout)
            else:
                with httpx.Client(timeout=self.timeout) as client:
                    response = client.post(self.messages_url, headers=headers, json=payload)
        except httpx.HTTPError as exc:
            logger.error("whatsapp cloud request failed: %s", exc)
            raise NotificationDeliveryError(f"Erro ao enviar WhatsApp: {exc}") from exc

        if response.status_code >= 400:
            logger.error("whatsapp cloud api error status=%s body=%s", response.status_code, response.text[:500])
            raise NotificationDeliveryError(f"Erro ao enviar WhatsApp: {response.text[:200]}")

        try:
            return response.json()
        except ValueError:
            return {}


def client_for_restaurant(restaurant) -> WhatsAppCloudClient:
    return WhatsAppCloudClient(
        access_token=restaurant.whatsapp_api_token,
        phone_number_id=restaurant.whatsapp_phone_number_id,
    )
