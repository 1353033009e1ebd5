"""Espera pela conclusão de uma sessão (lado do fluxo de cotação).

Polling em intervalo fixo, limitado por uma rede de segurança. Se a rede
disparar com a sessão ainda ativa, força a conclusão por timeout.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from supplier_relay.config.settings import SessionEngineConfig
from supplier_relay.domain.enums import CompletionTrigger
from supplier_relay.domain.models import CompletionOutcome, SessionResult
from supplier_relay.observability.logging import get_logger

if TYPE_CHECKING:
    from supplier_relay.application.session_controller import SessionLifecycleController

logger: logging.Logger = get_logger(__name__)


def _to_outcome(result: SessionResult) -> CompletionOutcome:
    return CompletionOutcome(
        session_id=result.session_id,
        replies=result.replies,
        summary=result.summary,
    )


class CompletionWaiter:
    def __init__(
        self,
        controller: SessionLifecycleController,
        config: SessionEngineConfig | None = None,
    ) -> None:
        self._controller = controller
        self._config = config or controller.config

    async def wait(self, session_id: str) -> CompletionOutcome | None:
        """Aguarda a sessão concluir.

        Returns:
            CompletionOutcome com replies e resumo finais, ou None quando a
            sessão some antes de ser observada concluída.
        """
        try:
            async with asyncio.timeout(self._config.waiter_safety_net_ms / 1000):
                return await self._poll(session_id)
        except TimeoutError:
            return await self._force_complete(session_id)

    async def _poll(self, session_id: str) -> CompletionOutcome | None:
        interval = self._config.waiter_poll_interval_ms / 1000
        while True:
            session = self._controller.get_session(session_id)
            if session is None:
                logger.warning("waiter_session_missing", extra={"session_id": session_id})
                return None

            if not session.is_active:
                # Concluída; a finalização pode ainda estar rodando.
                result = await self._controller.complete_session(session_id)
                return _to_outcome(result) if result is not None else None

            await asyncio.sleep(interval)

    async def _force_complete(self, session_id: str) -> CompletionOutcome | None:
        session = self._controller.get_session(session_id)
        if session is None:
            return None

        if session.is_active:
            logger.warning(
                "waiter_safety_net_fired",
                extra={
                    "session_id": session_id,
                    "safety_net_ms": self._config.waiter_safety_net_ms,
                    "reply_count": session.replies_received,
                },
            )
        result = await self._controller.complete_session(
            session_id, is_timeout=True, trigger=CompletionTrigger.SAFETY_NET
        )
        return _to_outcome(result) if result is not None else None
