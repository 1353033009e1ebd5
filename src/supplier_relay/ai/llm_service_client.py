"""Cliente do serviço LLM externo (alternativa ao OpenAI direto).

Contrato HTTP do serviço:
    POST {base}/summarize          {"replies": [...]}            -> {"summary" | "result": str}
    POST {base}/extract-category   {"message": str, "categories": [...]}
                                                                 -> {"category" | "result": str}

- summarize_replies: propaga erro (o controller aplica o fallback)
- extract_category: None em erro, resposta vazia ou "unknown"
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from typing import TYPE_CHECKING, Any

import httpx

from supplier_relay.ai.openai_prompts import UNKNOWN_CATEGORY
from supplier_relay.domain.protocols import LLMClientProtocol
from supplier_relay.infra.http import HttpClient, HttpError, create_http_client
from supplier_relay.observability.logging import get_logger

if TYPE_CHECKING:
    from supplier_relay.config.settings import Settings
    from supplier_relay.domain.models import Reply

logger: logging.Logger = get_logger(__name__)

SUMMARIZE_PATH = "/summarize"
EXTRACT_CATEGORY_PATH = "/extract-category"


class LLMServiceError(Exception):
    """Resposta do serviço LLM sem conteúdo utilizável."""

    pass


def _reply_payload(reply: Reply) -> dict[str, str]:
    return {
        "groupId": reply.group_id,
        "senderName": reply.sender_name,
        "text": reply.text,
        "timestamp": reply.timestamp,
    }


def _first_text(data: Any, *keys: str) -> str:
    if not isinstance(data, dict):
        return ""
    for key in keys:
        value = data.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return ""


class LLMServiceClient(LLMClientProtocol):
    """Fala com o serviço LLM próprio via infra.http (retry, timeout, logs)."""

    name = "llm_service"

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
    ) -> LLMServiceClient:
        if not settings.llm_service_url:
            raise ValueError("llm_service_url é obrigatório")
        http_client = create_http_client(
            upstream="llm_service",
            timeout_seconds=settings.llm_service_timeout_seconds,
            max_retries=settings.llm_service_max_retries,
            headers={"User-Agent": f"{settings.service_name}/{settings.version}"},
            transport=transport,
        )
        return cls(http_client, settings.llm_service_url, settings.llm_service_api_key)

    async def close(self) -> None:
        await self._http.close()

    async def _post(self, path: str, payload: dict[str, Any]) -> Any:
        response = await self._http.post(
            f"{self._service_url}{path}", json=payload, headers=self._headers
        )
        return response.json()

    async def summarize_replies(self, replies: Sequence[Reply]) -> str:
        """Resume replies no serviço.

        Raises:
            HttpError: falha HTTP após retries
            LLMServiceError: corpo inválido ou sem resumo
        """
        try:
            data = await self._post(
                SUMMARIZE_PATH, {"replies": [_reply_payload(reply) for reply in replies]}
            )
        except ValueError as exc:
            raise LLMServiceError("Resposta do serviço LLM não é JSON") from exc

        summary = _first_text(data, "summary", "result")
        if not summary:
            raise LLMServiceError("Resumo vazio retornado pelo serviço LLM")
        return summary

    async def extract_category(
        self, message_text: str, categories: Iterable[str]
    ) -> str | None:
        try:
            data = await self._post(
                EXTRACT_CATEGORY_PATH,
                {"message": message_text, "categories": sorted(categories)},
            )
        except (HttpError, ValueError) as e:
            logger.warning(
                "category_extraction_error",
                extra={"error": str(e), "error_type": type(e).__name__, "backend": self.name},
            )
            return None

        category = _first_text(data, "category", "result").strip('"').lower()
        if not category or category == UNKNOWN_CATEGORY:
            return None
        return category
