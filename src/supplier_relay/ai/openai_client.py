"""Cliente OpenAI para resumo de replies e extração de categoria.

Fornece abstração sobre a API OpenAI com timeout e retries do SDK.
- summarize_replies: propaga erro (o controller aplica o fallback)
- extract_category: fallback determinístico (None) em caso de erro
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from typing import TYPE_CHECKING

from openai import APIError, APITimeoutError, AsyncOpenAI

from supplier_relay.ai import openai_prompts
from supplier_relay.domain.protocols import LLMClientProtocol
from supplier_relay.observability.logging import get_logger

if TYPE_CHECKING:
    from supplier_relay.config.settings import Settings
    from supplier_relay.domain.models import Reply

logger: logging.Logger = get_logger(__name__)


class EmptyCompletionError(Exception):
    """A API respondeu sem conteúdo utilizável."""

    pass


class OpenAIClientManager(LLMClientProtocol):
    """Gerenciador do cliente OpenAI.

    Responsabilidades:
    - Inicializar AsyncOpenAI com chave, timeout e retries
    - Expor um método por ponto de LLM do fluxo de cotação
    """

    name = "openai"

    def __init__(
        self,
        api_key: str | None = None,
        model: str = "gpt-4o-mini",
        timeout_seconds: float = 10.0,
        temperature: float = 0.7,
        max_tokens: int = 500,
        max_retries: int = 2,
        client: AsyncOpenAI | None = None,
    ) -> None:
        self._client = client or AsyncOpenAI(api_key=api_key, max_retries=max_retries)
        self._model = model
        self._timeout = timeout_seconds
        self._temperature = temperature
        self._max_tokens = max_tokens

    @classmethod
    def from_settings(cls, settings: Settings) -> OpenAIClientManager:
        return cls(
            api_key=settings.openai_api_key,
            model=settings.openai_model,
            timeout_seconds=settings.openai_timeout_seconds,
            temperature=settings.openai_temperature,
            max_tokens=settings.openai_max_tokens,
        )

    async def close(self) -> None:
        await self._client.close()

    async def _complete(self, system_prompt: str, user_message: str, **overrides) -> str:
        response = await self._client.chat.completions.create(
            model=self._model,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_message},
            ],
            temperature=overrides.get("temperature", self._temperature),
            max_tokens=overrides.get("max_tokens", self._max_tokens),
            timeout=self._timeout,
        )
        if not response.choices:
            raise EmptyCompletionError("Resposta da OpenAI sem choices")
        return (response.choices[0].message.content or "").strip()

    async def summarize_replies(self, replies: Sequence[Reply]) -> str:
        """Resume replies de fornecedores.

        Raises:
            APIError, APITimeoutError, EmptyCompletionError
        """
        summary = await self._complete(
            openai_prompts.get_reply_summary_prompt(),
            openai_prompts.format_reply_summary_input(replies),
        )
        if not summary:
            raise EmptyCompletionError("Resumo vazio retornado pela OpenAI")
        return summary

    async def extract_category(
        self, message_text: str, categories: Iterable[str]
    ) -> str | None:
        """Extrai categoria de produto; None se desconhecida ou em erro."""
        try:
            raw = await self._complete(
                openai_prompts.get_category_extraction_prompt(categories),
                openai_prompts.format_category_extraction_input(message_text),
                temperature=0.0,
                max_tokens=20,
            )
        except (APIError, APITimeoutError, EmptyCompletionError) as e:
            logger.warning(
                "category_extraction_error",
                extra={"error": str(e), "error_type": type(e).__name__},
            )
            return None

        category = raw.strip().strip('"').lower()
        if not category or category == openai_prompts.UNKNOWN_CATEGORY:
            return None
        return category
