"""Gateway de saída para o serviço Wechaty (grupos de fornecedores)."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import httpx

from supplier_relay.domain.protocols import GroupSenderProtocol
from supplier_relay.infra.http import HttpClient, HttpError, create_http_client
from supplier_relay.observability.logging import get_logger

if TYPE_CHECKING:
    from supplier_relay.config.settings import Settings

logger: logging.Logger = get_logger(__name__)

SEND_PATH = "/api/send"
REGISTER_WEBHOOK_PATH = "/webhook/register"
WEBHOOK_EVENTS = ("message", "group_message")


class WechatyGateway(GroupSenderProtocol):
    """Envia texto para grupos WeChat e registra o webhook de entrada."""

    def __init__(
        self,
        http_client: HttpClient,
        service_url: str,
        api_key: str | None = None,
    ) -> None:
        self._http = http_client
        self._service_url = service_url.rstrip("/")
        self._headers = {"Authorization": f"Bearer {api_key}"} if api_key else {}

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> WechatyGateway:
        http_client = create_http_client(
            upstream="wechaty",
            timeout_seconds=settings.wechaty_request_timeout_seconds,
            max_retries=settings.wechaty_max_retries,
            headers={"User-Agent": f"{settings.service_name}/{settings.version}"},
            transport=transport,
        )
        return cls(http_client, settings.wechaty_service_url, settings.wechaty_api_key)

    async def send_to_group(self, group_id: str, text: str) -> bool:
        try:
            response = await self._http.post(
                f"{self._service_url}{SEND_PATH}",
                json={"groupId": group_id, "message": text},
                headers=self._headers,
            )
        except HttpError as exc:
            logger.error(
                "wechat_send_failed",
                extra={"group_id": group_id, "status_code": exc.status_code, "error": str(exc)},
            )
            return False

        logger.info(
            "wechat_message_sent",
            extra={
                "group_id": group_id,
                "status_code": response.status_code,
                "message_length": len(text),
            },
        )
        return True

    async def register_webhook(self, webhook_url: str) -> bool:
        """Registra nosso endpoint de entrada no serviço Wechaty."""
        try:
            response = await self._http.post(
                f"{self._service_url}{REGISTER_WEBHOOK_PATH}",
                json={"url": webhook_url, "events": list(WEBHOOK_EVENTS)},
                headers=self._headers,
            )
        except HttpError as exc:
            logger.warning(
                "wechaty_webhook_registration_failed",
                extra={"status_code": exc.status_code, "error": str(exc)},
            )
            return False

        logger.info(
            "wechaty_webhook_registered",
            extra={"webhook_url": webhook_url, "status_code": response.status_code},
        )
        return True

    async def close(self) -> None:
        await self._http.close()
