"""Protocolo da fonte secundária de replies."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from supplier_relay.domain.models import Reply


class ReplyRecoveryProtocol(ABC):
    """Devolve replies já vistos para uma sessão cuja memória ficou vazia."""

    @abstractmethod
    async def recover(self, session_id: str) -> list[Reply]: ...


class NullReplyRecovery(ReplyRecoveryProtocol):
    """Sem fonte secundária configurada."""

    async def recover(self, session_id: str) -> list[Reply]:
        return []
