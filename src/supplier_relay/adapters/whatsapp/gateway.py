"""Gateway de saída para o WhatsApp (grupo de vendas).

Dois modos, escolhidos pela configuração:
- Business API: POST {base}/{version}/{phone_number_id}/messages
- Serviço próprio: POST {whatsapp_service_url}/api/whatsapp/send-message {to, message}

Envio é best-effort: falha vira False e log, nunca exceção.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import httpx

from supplier_relay.domain.protocols import GroupSenderProtocol
from supplier_relay.infra.http import HttpClient, HttpError, create_http_client
from supplier_relay.observability.logging import get_logger

if TYPE_CHECKING:
    from supplier_relay.config.settings import Settings

logger: logging.Logger = get_logger(__name__)

SEND_MESSAGE_PATH = "/api/whatsapp/send-message"


def _bearer(token: str | None) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"} if token else {}


class WhatsAppGateway(GroupSenderProtocol):
    def __init__(
        self,
        http_client: HttpClient,
        service_url: str,
        api_key: str | None = None,
        messages_endpoint: str | None = None,
        access_token: str | None = None,
    ) -> None:
        self._http = http_client
        self._service_url = service_url.rstrip("/")
        self._api_key = api_key
        self._messages_endpoint = messages_endpoint
        self._access_token = access_token

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> WhatsAppGateway:
        endpoint = (
            settings.get_messages_endpoint() if settings.whatsapp_business_api_enabled else None
        )
        http_client = create_http_client(
            upstream="whatsapp",
            timeout_seconds=settings.whatsapp_request_timeout_seconds,
            max_retries=settings.whatsapp_max_retries,
            headers={"User-Agent": f"{settings.service_name}/{settings.version}"},
            transport=transport,
        )
        return cls(
            http_client,
            service_url=settings.whatsapp_service_url,
            api_key=settings.whatsapp_api_key,
            messages_endpoint=endpoint,
            access_token=settings.whatsapp_access_token,
        )

    @property
    def mode(self) -> str:
        if self._messages_endpoint and self._access_token:
            return "business_api"
        return "custom_service"

    async def send_message(
        self, recipient: str, text: str, session_id: str | None = None
    ) -> bool:
        if self.mode == "business_api":
            url = self._messages_endpoint or ""
            payload: dict[str, Any] = {
                "messaging_product": "whatsapp",
                "to": recipient,
                "type": "text",
                "text": {"body": text},
            }
            headers = _bearer(self._access_token)
        else:
            url = f"{self._service_url}{SEND_MESSAGE_PATH}"
            payload = {"to": recipient, "message": text}
            headers = _bearer(self._api_key)

        try:
            response = await self._http.post(url, json=payload, headers=headers)
        except HttpError as exc:
            logger.error(
                "whatsapp_send_failed",
                extra={
                    "mode": self.mode,
                    "session_id": session_id,
                    "status_code": exc.status_code,
                    "error": str(exc),
                },
            )
            return False

        logger.info(
            "whatsapp_message_sent",
            extra={
                "mode": self.mode,
                "session_id": session_id,
                "status_code": response.status_code,
                "message_length": len(text),
            },
        )
        return True

    async def send_to_group(self, group_id: str, text: str) -> bool:
        return await self.send_message(group_id, text)

    async def close(self) -> None:
        await self._http.close()
