"""Estratégias de resumo de replies.

- SimpleReplyFormatter: determinística, sem I/O; sempre segura como fallback.
- LLMReplySummarizer: delega ao back-end LLM (serviço externo ou OpenAI);
  pode levantar exceção.

A escolha acontece uma vez, na construção (create_summarizer). O fallback
por chamada fica com o controller de sessões.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING

from supplier_relay.config.settings import NO_REPLIES_MESSAGE
from supplier_relay.domain.protocols import SummarizerProtocol
from supplier_relay.observability.logging import get_logger

if TYPE_CHECKING:
    from supplier_relay.config.settings import Settings
    from supplier_relay.domain.models import Reply
    from supplier_relay.domain.protocols import LLMClientProtocol

logger: logging.Logger = get_logger(__name__)


class SummarizerError(Exception):
    """Falha do summarizer remoto."""

    pass


def format_replies_simple(replies: Sequence[Reply]) -> str:
    """Formata replies como `<remetente>: <texto>` separados por linha em branco.

    Exemplo:
        Received 2 reply/replies from suppliers:

        A: yes

        B: in stock
    """
    if not replies:
        return NO_REPLIES_MESSAGE

    lines = [
        f"{reply.sender_name or f'Supplier {index}'}: {reply.text}"
        for index, reply in enumerate(replies, start=1)
    ]
    body = "\n\n".join(lines)
    return f"Received {len(replies)} reply/replies from suppliers:\n\n{body}"


class SimpleReplyFormatter(SummarizerProtocol):
    """Concatenação simples (modo padrão sem LLM)."""

    name = "simple"

    async def summarize(self, replies: Sequence[Reply]) -> str:
        return format_replies_simple(replies)


class LLMReplySummarizer(SummarizerProtocol):
    """Resumo via back-end LLM; qualquer erro sobe como SummarizerError."""

    name = "llm"

    def __init__(self, client: LLMClientProtocol) -> None:
        self._client = client

    @property
    def backend(self) -> str:
        return self._client.name

    async def summarize(self, replies: Sequence[Reply]) -> str:
        try:
            return await self._client.summarize_replies(replies)
        except Exception as exc:  # noqa: BLE001
            raise SummarizerError(f"{type(exc).__name__}: {exc}") from exc


def create_summarizer(
    settings: Settings,
    llm_client: LLMClientProtocol | None = None,
) -> SummarizerProtocol:
    """Seleciona a estratégia de resumo conforme configuração.

    LLM só existe quando algum back-end está configurado; ausência é um
    modo, não erro. `llm_client` permite compartilhar o cliente com o
    roteador de categorias.
    """
    if llm_client is None:
        from supplier_relay.ai.factory import create_llm_client

        llm_client = create_llm_client(settings)

    if llm_client is None:
        logger.info(
            "LLM summarizer not configured, using simple reply formatting",
            extra={
                "openai_enabled": settings.openai_enabled,
                "llm_service_enabled": settings.llm_service_enabled,
            },
        )
        return SimpleReplyFormatter()

    logger.info("Using LLM reply summarizer", extra={"backend": llm_client.name})
    return LLMReplySummarizer(llm_client)
