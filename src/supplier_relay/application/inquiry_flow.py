"""Fluxo de uma cotação de vendas, do WhatsApp aos fornecedores e de volta.

1. Roteia o texto para uma categoria e seus grupos WeChat
2. Cria a sessão (antes de qualquer envio, para não perder replies rápidos)
3. Envia a cotação para todos os grupos (best-effort, em paralelo)
4. Aguarda a conclusão da sessão
5. Entrega o resumo ao grupo de vendas
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass

from supplier_relay.application.category_router import CategoryRouter
from supplier_relay.application.completion_waiter import CompletionWaiter
from supplier_relay.application.session_controller import SessionLifecycleController
from supplier_relay.domain.models import (
    CompletionOutcome,
    InboundSalesMessage,
    RoutingResult,
    SupplierGroup,
)
from supplier_relay.domain.protocols import GroupSenderProtocol
from supplier_relay.observability.logging import get_logger
from supplier_relay.observability.middleware import bind_correlation_id, bind_session_id
from supplier_relay.observability.timing import timed
from supplier_relay.utils.ids import new_session_id

logger: logging.Logger = get_logger(__name__)


def format_inquiry_message(text: str, session_id: str) -> str:
    return f"[Sales Inquiry]\n\n{text}\n\n[Session ID: {session_id}]"


def format_summary_message(session_id: str, summary: str) -> str:
    return f"[Session: {session_id}]\n\n{summary}"


@dataclass(slots=True)
class InquiryFlowResult:
    session_id: str
    routing: RoutingResult
    groups_reached: int = 0
    outcome: CompletionOutcome | None = None
    summary_delivered: bool = False


class InquiryFlow:
    def __init__(
        self,
        router: CategoryRouter,
        controller: SessionLifecycleController,
        waiter: CompletionWaiter,
        supplier_sender: GroupSenderProtocol,
        sales_sender: GroupSenderProtocol,
        sales_group_id: str | None = None,
        id_factory: Callable[[], str] = new_session_id,
    ) -> None:
        self._router = router
        self._controller = controller
        self._waiter = waiter
        self._supplier_sender = supplier_sender
        self._sales_sender = sales_sender
        self._sales_group_id = sales_group_id
        self._id_factory = id_factory

    async def handle(self, message: InboundSalesMessage) -> InquiryFlowResult:
        session_id = self._id_factory()
        bind_session_id(session_id)
        routing = await self._router.route_message(message.text)
        result = InquiryFlowResult(session_id=session_id, routing=routing)

        if not routing.success:
            logger.warning(
                "routing_failed",
                extra={"session_id": session_id, "error": routing.error},
            )
            return result

        self._controller.create_session(session_id, routing, message.text)
        result.groups_reached = await self._fan_out(session_id, message.text, routing)

        result.outcome = await self._waiter.wait(session_id)
        if result.outcome is None:
            logger.warning("inquiry_without_outcome", extra={"session_id": session_id})
            return result

        result.summary_delivered = await self._deliver_summary(result.outcome)
        return result

    async def _fan_out(self, session_id: str, text: str, routing: RoutingResult) -> int:
        inquiry = format_inquiry_message(text, session_id)
        groups = routing.supplier_groups
        with timed("inquiry_fan_out", session_id=session_id, group_count=len(groups)):
            sent = await asyncio.gather(
                *(self._send_inquiry(session_id, group, inquiry) for group in groups)
            )
        reached = sum(1 for ok in sent if ok)
        logger.info(
            "inquiry_fanned_out",
            extra={
                "session_id": session_id,
                "category": routing.category,
                "group_count": len(groups),
                "groups_reached": reached,
            },
        )
        return reached

    async def _send_inquiry(self, session_id: str, group: SupplierGroup, inquiry: str) -> bool:
        sent = await self._supplier_sender.send_to_group(group.group_id, inquiry)
        if not sent:
            logger.warning(
                "supplier_group_send_failed",
                extra={"session_id": session_id, "group_id": group.group_id},
            )
        return sent

    async def _deliver_summary(self, outcome: CompletionOutcome) -> bool:
        if not self._sales_group_id:
            logger.warning(
                "sales_group_not_configured",
                extra={"session_id": outcome.session_id},
            )
            return False

        delivered = await self._sales_sender.send_to_group(
            self._sales_group_id,
            format_summary_message(outcome.session_id, outcome.summary),
        )
        logger.info(
            "summary_delivered" if delivered else "summary_delivery_failed",
            extra={
                "session_id": outcome.session_id,
                "reply_count": len(outcome.replies),
                "delivered": delivered,
            },
        )
        return delivered


class InquiryTaskRunner:
    """Executa InquiryFlow fora do ciclo da request do webhook.

    Uma cotação pode aguardar até o timeout da sessão; o webhook responde na
    hora e a task fica registrada aqui até terminar ou o app encerrar.
    """

    def __init__(self, flow: InquiryFlow) -> None:
        self._flow = flow
        self._tasks: set[asyncio.Task[InquiryFlowResult | None]] = set()

    @property
    def pending(self) -> int:
        return sum(1 for task in self._tasks if not task.done())

    def submit(self, message: InboundSalesMessage, correlation_id: str = "") -> None:
        task = asyncio.get_running_loop().create_task(self._run(message, correlation_id))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _run(
        self, message: InboundSalesMessage, correlation_id: str
    ) -> InquiryFlowResult | None:
        if correlation_id:
            bind_correlation_id(correlation_id)
        try:
            return await self._flow.handle(message)
        except Exception as exc:  # noqa: BLE001
            logger.exception(
                "inquiry_flow_failed",
                extra={"message_id": message.message_id, "error_type": type(exc).__name__},
            )
            return None

    async def shutdown(self) -> None:
        pending = [task for task in self._tasks if not task.done()]
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
