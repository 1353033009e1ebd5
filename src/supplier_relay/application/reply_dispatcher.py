"""Entrega de mensagens de grupo ao handler da sessão dona do grupo.

Fronteira entre o adapter WeChat (push) e o motor de sessões:
grupo -> sessão via tabela de roteamento, rastro em arquivo, handler registrado.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING

from supplier_relay.observability.logging import get_logger

if TYPE_CHECKING:
    from supplier_relay.domain.models import InboundGroupMessage, Reply
    from supplier_relay.infra.reply_log import ReplyLog
    from supplier_relay.infra.routing_table import GroupSessionRoutingTable

logger: logging.Logger = get_logger(__name__)

ReplyHandler = Callable[["Reply"], Awaitable[object]]


class ReplyDispatcher:
    """Registro de handlers por sessão + roteamento de mensagens recebidas."""

    def __init__(
        self,
        routing_table: GroupSessionRoutingTable,
        reply_log: ReplyLog | None = None,
    ) -> None:
        self._routing_table = routing_table
        self._reply_log = reply_log
        self._handlers: dict[str, ReplyHandler] = {}

    @property
    def routing_table(self) -> GroupSessionRoutingTable:
        return self._routing_table

    def register(self, session_id: str, handler: ReplyHandler) -> None:
        self._handlers[session_id] = handler

    def unregister(self, session_id: str) -> None:
        self._handlers.pop(session_id, None)

    def has_handler(self, session_id: str) -> bool:
        return session_id in self._handlers

    async def dispatch(self, message: InboundGroupMessage) -> str | None:
        """Entrega a mensagem à sessão dona do grupo.

        Returns:
            session_id quando o grupo pertence a uma sessão; None caso contrário.
        """
        session_id = self._routing_table.resolve(message.group_id)
        if session_id is None:
            logger.info(
                "wechat_message_without_session",
                extra={
                    "group_id": message.group_id,
                    "active_groups": len(self._routing_table),
                },
            )
            return None

        reply = message.to_reply()
        if self._reply_log is not None:
            try:
                self._reply_log.record(session_id, reply)
            except OSError as exc:
                logger.warning(
                    "reply_log_write_failed",
                    extra={"session_id": session_id, "error": str(exc)},
                )

        logger.info(
            "wechat_message_matched_session",
            extra={"session_id": session_id, "group_id": message.group_id},
        )

        handler = self._handlers.get(session_id)
        if handler is None:
            logger.debug(
                "reply_handler_missing",
                extra={"session_id": session_id},
            )
            return session_id

        await handler(reply)
        return session_id
