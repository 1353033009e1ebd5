"""Armazenamento de sessões de cotação.

Contrato e implementação em memória. As sessões não sobrevivem a restarts;
apenas os replies podem ser recuperados do rastro em arquivo (reply_log).
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Iterator
from typing import TYPE_CHECKING

from supplier_relay.observability.logging import get_logger, short_id

if TYPE_CHECKING:
    from supplier_relay.application.session import InquirySession

logger: logging.Logger = get_logger(__name__)


class SessionStoreError(Exception):
    """Erro ao registrar ou recuperar sessão."""

    pass


class InquirySessionStore(ABC):
    """Contrato para o mapa session_id -> InquirySession.

    O controller de sessões é o único escritor.
    """

    @abstractmethod
    def save(self, session: InquirySession) -> None:
        """Registra a sessão (sobrescreve se o id já existir)."""
        ...

    @abstractmethod
    def load(self, session_id: str) -> InquirySession | None:
        """Retorna a sessão ou None."""
        ...

    @abstractmethod
    def delete(self, session_id: str) -> bool:
        """Remove a sessão; False se não existia."""
        ...

    @abstractmethod
    def exists(self, session_id: str) -> bool: ...

    @abstractmethod
    def __iter__(self) -> Iterator[InquirySession]: ...


class InMemoryInquirySessionStore(InquirySessionStore):
    """Armazenamento em memória do processo.

    Uma instância por controller; não há compartilhamento entre processos.
    """

    def __init__(self) -> None:
        self._sessions: dict[str, InquirySession] = {}

    def save(self, session: InquirySession) -> None:
        previous = self._sessions.get(session.session_id)
        if previous is not None and previous is not session:
            # Id repetido é erro de quem cria a sessão; a nova substitui a antiga
            logger.warning(
                "session_id_reused",
                extra={"session_id": session.session_id, "previous_status": previous.status},
            )
        self._sessions[session.session_id] = session
        logger.debug(
            "session_saved",
            extra={"session_id": short_id(session.session_id), "stored": len(self._sessions)},
        )

    def load(self, session_id: str) -> InquirySession | None:
        return self._sessions.get(session_id)

    def delete(self, session_id: str) -> bool:
        if self._sessions.pop(session_id, None) is None:
            return False
        logger.debug(
            "session_deleted",
            extra={"session_id": short_id(session_id), "stored": len(self._sessions)},
        )
        return True

    def exists(self, session_id: str) -> bool:
        return session_id in self._sessions

    def __iter__(self) -> Iterator[InquirySession]:
        return iter(list(self._sessions.values()))

    def __len__(self) -> int:
        return len(self._sessions)


def create_session_store(backend: str = "memory") -> InquirySessionStore:
    """Factory do store de sessões (apenas memória é suportado)."""
    if backend == "memory":
        return InMemoryInquirySessionStore()
    raise SessionStoreError(f"Backend de sessão não suportado: {backend}")
