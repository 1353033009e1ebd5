"""Protocolo dos back-ends LLM (OpenAI direto ou serviço LLM externo)."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable, Sequence
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from supplier_relay.domain.models import Reply


class LLMClientProtocol(ABC):
    """Os dois pontos de LLM do fluxo de cotação."""

    name: str = "llm"

    @abstractmethod
    async def summarize_replies(self, replies: Sequence[Reply]) -> str:
        """Resume replies; levanta exceção em falha ou resposta vazia."""
        ...

    @abstractmethod
    async def extract_category(self, message_text: str, categories: Iterable[str]) -> str | None:
        """Categoria em minúsculas, ou None (desconhecida ou erro). Não levanta."""
        ...

    async def close(self) -> None:
        """Libera conexões do back-end (padrão: nada a liberar)."""
        return None
