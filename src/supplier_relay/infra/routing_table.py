"""Tabela de roteamento grupo -> sessão (em memória, processo único).

O controller de sessões é o único escritor; adapters de entrada apenas leem.
"""

from __future__ import annotations

import logging

from supplier_relay.observability.logging import get_logger

logger: logging.Logger = get_logger(__name__)


class GroupSessionRoutingTable:
    """Mapa group_id -> session_id com leitura O(1)."""

    def __init__(self) -> None:
        self._entries: dict[str, str] = {}

    def map(self, group_id: str, session_id: str) -> None:  # noqa: A003
        """Instala (ou sobrescreve) a entrada do grupo.

        Sobrescrever um grupo que aponta para outra sessão ativa é um erro de
        configuração (mesmo grupo em duas categorias); last-writer-wins, mas
        sempre com WARNING.
        """
        previous = self._entries.get(group_id)
        if previous is not None and previous != session_id:
            logger.warning(
                "routing_table_overwrite",
                extra={
                    "group_id": group_id,
                    "previous_session_id": previous,
                    "session_id": session_id,
                },
            )
        self._entries[group_id] = session_id

    def resolve(self, group_id: str) -> str | None:
        return self._entries.get(group_id)

    def unmap(self, group_id: str) -> None:
        """Remove a entrada incondicionalmente."""
        self._entries.pop(group_id, None)

    def unmap_owned(self, group_id: str, session_id: str) -> bool:
        """Remove a entrada apenas se ainda pertence a `session_id`.

        Usado na limpeza: se outra sessão assumiu o grupo (sobrescrita), a
        entrada dela é preservada.
        """
        if self._entries.get(group_id) != session_id:
            return False
        del self._entries[group_id]
        return True

    def snapshot(self) -> dict[str, str]:
        """Cópia das entradas (diagnóstico/logs)."""
        return dict(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, group_id: object) -> bool:
        return group_id in self._entries
