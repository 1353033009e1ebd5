"""Protocolo do summarizer de replies (LLM ou formatação simples)."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from supplier_relay.domain.models import Reply


class SummarizerProtocol(ABC):
    """Contrato: lista ordenada de replies -> texto para o vendedor."""

    name: str = "summarizer"

    @abstractmethod
    async def summarize(self, replies: Sequence[Reply]) -> str:
        """Resume os replies.

        Args:
            replies: Replies na ordem de chegada (nunca vazia)

        Raises:
            Exception: implementações remotas podem falhar; o controller
            substitui o resultado pela formatação simples.
        """
        ...
