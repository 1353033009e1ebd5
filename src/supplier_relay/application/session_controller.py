"""Controller do ciclo de vida das sessões de cotação.

Fluxo:
    create_session -> handle_reply* -> complete_session (threshold ou timeout)
    -> cleanup_session (após a janela de retenção)

Concorrência: um único event loop. Entre a checagem `status == active` e a
escrita `status = completed` não há `await`, então a conclusão roda uma vez
por sessão. O trabalho assíncrono da conclusão (recuperação de replies, LLM)
fica numa task única por sessão, compartilhada por todos os chamadores.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Coroutine, Sequence
from typing import Any

from supplier_relay.application.reply_dispatcher import ReplyDispatcher
from supplier_relay.application.session import InquirySession, now_ms
from supplier_relay.application.summarizer import SimpleReplyFormatter, format_replies_simple
from supplier_relay.application.timer import Timer
from supplier_relay.config.settings import NO_REPLIES_MESSAGE, SessionEngineConfig
from supplier_relay.domain.enums import CompletionTrigger, SessionStatus
from supplier_relay.domain.models import Reply, RoutingResult, SessionResult
from supplier_relay.domain.protocols import (
    NullReplyRecovery,
    ReplyRecoveryProtocol,
    SummarizerProtocol,
)
from supplier_relay.infra.routing_table import GroupSessionRoutingTable
from supplier_relay.infra.session_store import InMemoryInquirySessionStore, InquirySessionStore
from supplier_relay.observability.logging import get_logger, log_fallback
from supplier_relay.observability.timing import timed

logger: logging.Logger = get_logger(__name__)


class SessionLifecycleController:
    """Dono exclusivo do store de sessões e da tabela de roteamento."""

    def __init__(
        self,
        config: SessionEngineConfig | None = None,
        *,
        session_store: InquirySessionStore | None = None,
        dispatcher: ReplyDispatcher | None = None,
        summarizer: SummarizerProtocol | None = None,
        reply_recovery: ReplyRecoveryProtocol | None = None,
    ) -> None:
        self._config = config or SessionEngineConfig()
        self._store = session_store or InMemoryInquirySessionStore()
        self._dispatcher = dispatcher or ReplyDispatcher(GroupSessionRoutingTable())
        self._summarizer = summarizer or SimpleReplyFormatter()
        self._reply_recovery = reply_recovery or NullReplyRecovery()
        self._background: set[asyncio.Task[Any]] = set()

    @property
    def config(self) -> SessionEngineConfig:
        return self._config

    @property
    def routing_table(self) -> GroupSessionRoutingTable:
        return self._dispatcher.routing_table

    @property
    def dispatcher(self) -> ReplyDispatcher:
        return self._dispatcher

    @property
    def session_store(self) -> InquirySessionStore:
        return self._store

    @property
    def summarizer(self) -> SummarizerProtocol:
        return self._summarizer

    # ------------------------------------------------------------------
    # Criação
    # ------------------------------------------------------------------

    def create_session(
        self,
        session_id: str,
        routing_result: RoutingResult,
        original_message: str,
    ) -> InquirySession:
        """Cria a sessão, instala o roteamento e arma o timeout.

        O chamador já validou `routing_result.success`; id duplicado entre
        sessões ativas é erro do chamador. Não faz I/O: o envio da cotação
        para os grupos fica com quem chamou.
        """
        session = InquirySession(
            session_id=session_id,
            category=routing_result.category or "",
            target_groups=tuple(routing_result.supplier_groups),
            original_message=original_message,
        )

        for group in session.target_groups:
            self.routing_table.map(group.group_id, session_id)

        async def _on_reply(reply: Reply) -> SessionResult | None:
            return await self.handle_reply(session_id, reply)

        self._dispatcher.register(session_id, _on_reply)

        session.timer = Timer(lambda: self._on_timer_fired(session_id), self._config.max_wait_ms)
        self._store.save(session)
        session.timer.start()

        logger.info(
            "session_created",
            extra={
                "session_id": session_id,
                "category": session.category,
                "group_count": len(session.target_groups),
                "reply_threshold": self._config.reply_threshold,
                "max_wait_ms": self._config.max_wait_ms,
                "message_length": len(original_message),
            },
        )
        return session

    # ------------------------------------------------------------------
    # Eventos
    # ------------------------------------------------------------------

    async def handle_reply(self, session_id: str, reply: Reply) -> SessionResult | None:
        """Anexa o reply; conclui a sessão ao atingir o threshold.

        Replies para sessão inexistente ou concluída são descartados.
        """
        session = self._store.load(session_id)
        if session is None or not session.is_active:
            logger.debug(
                "reply_dropped_inactive_session",
                extra={"session_id": session_id, "group_id": reply.group_id},
            )
            return None

        session.replies.append(reply)
        session.replies_received = len(session.replies)

        logger.info(
            "session_reply_received",
            extra={
                "session_id": session_id,
                "group_id": reply.group_id,
                "reply_count": session.replies_received,
                "threshold": self._config.reply_threshold,
            },
        )

        if session.replies_received >= self._config.reply_threshold:
            return await self.complete_session(session_id, is_timeout=False)
        return None

    async def handle_timeout(self, session_id: str) -> SessionResult | None:
        """Disparado pelo timer; no-op se a sessão já saiu de `active`."""
        session = self._store.load(session_id)
        if session is None or not session.is_active:
            return None

        logger.info(
            "session_timeout",
            extra={
                "session_id": session_id,
                "reply_count": session.replies_received,
                "elapsed_ms": session.timer.elapsed() if session.timer else None,
            },
        )
        return await self.complete_session(session_id, is_timeout=True)

    def _on_timer_fired(self, session_id: str) -> None:
        self._spawn(self.handle_timeout(session_id))

    # ------------------------------------------------------------------
    # Conclusão
    # ------------------------------------------------------------------

    async def complete_session(
        self,
        session_id: str,
        is_timeout: bool = False,
        trigger: CompletionTrigger | None = None,
    ) -> SessionResult | None:
        """Caminho único de conclusão (idempotente).

        A primeira chamada faz a transição; as demais recebem o mesmo
        resultado. Retorna None apenas para session_id desconhecido.
        `trigger` só distingue a origem nos logs (padrão: threshold ou timeout).
        """
        session = self._store.load(session_id)
        if session is None:
            return None
        if session.result is not None:
            return session.result

        task = self._begin_completion(session, is_timeout, trigger)
        return await asyncio.shield(task)

    def _begin_completion(
        self,
        session: InquirySession,
        is_timeout: bool,
        trigger: CompletionTrigger | None,
    ) -> asyncio.Task[SessionResult]:
        if session.completion is not None:
            return session.completion

        if session.timer is not None:
            session.timer.stop()

        session.status = SessionStatus.COMPLETED
        session.end_time = now_ms()
        session.duration_ms = session.end_time - session.start_time
        session.is_timeout = is_timeout
        session.trigger = trigger or (
            CompletionTrigger.TIMEOUT if is_timeout else CompletionTrigger.THRESHOLD
        )

        # Rastreada junto das demais tasks: shutdown() cancela e aguarda
        session.completion = self._spawn(self._finalize(session))
        return session.completion

    async def _finalize(self, session: InquirySession) -> SessionResult:
        final_replies: Sequence[Reply] = tuple(session.replies)
        if not final_replies:
            final_replies = tuple(await self._recover_replies(session.session_id))

        if final_replies:
            summary = await self._summarize(session.session_id, final_replies)
        else:
            summary = NO_REPLIES_MESSAGE

        session.summary = summary
        session.final_replies = tuple(final_replies)

        result = SessionResult(
            session_id=session.session_id,
            category=session.category,
            replies=session.final_replies,
            reply_count=len(session.final_replies),
            summary=summary,
            duration_ms=session.duration_ms or 0,
            is_timeout=bool(session.is_timeout),
        )
        session.result = result
        self._schedule_cleanup(session)

        logger.info(
            "session_completed",
            extra={
                "session_id": session.session_id,
                "category": session.category,
                "trigger": session.trigger.value if session.trigger else None,
                "reply_count": result.reply_count,
                "duration_ms": result.duration_ms,
                "summarizer": self._summarizer.name,
            },
        )
        return result

    async def _recover_replies(self, session_id: str) -> list[Reply]:
        try:
            recovered = await self._reply_recovery.recover(session_id)
        except Exception as exc:  # noqa: BLE001
            logger.warning(
                "reply_recovery_failed",
                extra={"session_id": session_id, "error": type(exc).__name__},
            )
            return []

        if recovered:
            logger.info(
                "session_replies_recovered",
                extra={"session_id": session_id, "reply_count": len(recovered)},
            )
        return list(recovered)

    async def _summarize(self, session_id: str, replies: Sequence[Reply]) -> str:
        stopwatch = None
        try:
            with timed("reply_summary", session_id=session_id) as stopwatch:
                summary = await self._summarizer.summarize(replies)
        except Exception as exc:  # noqa: BLE001
            log_fallback(
                logger,
                "reply_summary",
                reason=type(exc).__name__,
                session_id=session_id,
                elapsed_ms=stopwatch.elapsed_ms if stopwatch else None,
            )
            return format_replies_simple(replies)

        if not summary:
            log_fallback(logger, "reply_summary", reason="empty_summary", session_id=session_id)
            return format_replies_simple(replies)
        return summary

    # ------------------------------------------------------------------
    # Limpeza
    # ------------------------------------------------------------------

    def _schedule_cleanup(self, session: InquirySession) -> None:
        if session.cleanup_handle is not None:
            return
        loop = asyncio.get_running_loop()
        session.cleanup_handle = loop.call_later(
            self._config.cleanup_delay_ms / 1000,
            self.cleanup_session,
            session.session_id,
        )

    def cleanup_session(self, session_id: str) -> bool:
        """Remove handler, entradas de roteamento e a sessão (idempotente)."""
        session = self._store.load(session_id)
        if session is None:
            return False

        self._dispatcher.unregister(session_id)
        for group_id in session.group_ids:
            if not self.routing_table.unmap_owned(group_id, session_id):
                logger.warning(
                    "routing_entry_owned_by_other_session",
                    extra={"session_id": session_id, "group_id": group_id},
                )

        if session.timer is not None:
            session.timer.stop()
        if session.cleanup_handle is not None:
            session.cleanup_handle.cancel()
        self._store.delete(session_id)

        logger.info("session_cleaned_up", extra={"session_id": session_id})
        return True

    # ------------------------------------------------------------------
    # Consultas
    # ------------------------------------------------------------------

    def get_session(self, session_id: str) -> InquirySession | None:
        return self._store.load(session_id)

    def get_session_from_group(self, group_id: str) -> str | None:
        return self.routing_table.resolve(group_id)

    def is_session_active(self, session_id: str) -> bool:
        session = self._store.load(session_id)
        return session is not None and session.is_active

    # ------------------------------------------------------------------
    # Encerramento do processo
    # ------------------------------------------------------------------

    def _spawn(self, coro: Coroutine[Any, Any, Any]) -> asyncio.Task[Any]:
        task = asyncio.get_running_loop().create_task(coro)
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        return task

    async def shutdown(self) -> None:
        """Cancela timers, limpezas e tasks pendentes (lifespan da aplicação).

        Inclui finalizações em andamento (recuperação, resumo LLM).
        """
        for session in self._store:
            if session.timer is not None:
                session.timer.stop()
            if session.cleanup_handle is not None:
                session.cleanup_handle.cancel()

        pending = [task for task in self._background if not task.done()]
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        logger.info("session_controller_stopped", extra={"pending_tasks": len(pending)})
