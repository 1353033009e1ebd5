"""Seleção do back-end LLM a partir das configurações.

Ordem: serviço LLM externo (quando habilitado com URL), depois OpenAI
direto (quando habilitado com chave). Nenhum dos dois é um modo válido:
roteamento só por regras e resumo por formatação simples.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from supplier_relay.observability.logging import get_logger

if TYPE_CHECKING:
    import httpx

    from supplier_relay.config.settings import Settings
    from supplier_relay.domain.protocols import LLMClientProtocol

logger: logging.Logger = get_logger(__name__)


def create_llm_client(
    settings: Settings,
    transport: httpx.AsyncBaseTransport | None = None,
) -> LLMClientProtocol | None:
    if settings.llm_service_available:
        from supplier_relay.ai.llm_service_client import LLMServiceClient

        logger.info("llm_backend_selected", extra={"backend": "llm_service"})
        return LLMServiceClient.from_settings(settings, transport=transport)

    if settings.openai_available:
        from supplier_relay.ai.openai_client import OpenAIClientManager

        logger.info(
            "llm_backend_selected",
            extra={"backend": "openai", "model": settings.openai_model},
        )
        return OpenAIClientManager.from_settings(settings)

    logger.info("llm_backend_not_configured")
    return None
