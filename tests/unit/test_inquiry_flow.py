"""Testes do fluxo de cotação (roteamento, fan-out, espera e resumo)."""

from __future__ import annotations

import asyncio
import logging

import pytest

from supplier_relay.application.category_router import CategoryRouter
from supplier_relay.application.completion_waiter import CompletionWaiter
from supplier_relay.application.inquiry_flow import (
    InquiryFlow,
    InquiryTaskRunner,
    format_inquiry_message,
    format_summary_message,
)
from supplier_relay.application.session_controller import SessionLifecycleController
from supplier_relay.config.settings import SessionEngineConfig
from supplier_relay.domain.models import InboundGroupMessage, InboundSalesMessage
from tests.helpers.engine import RecordingSender


class AutoReplySender(RecordingSender):
    """Grupo de fornecedores que responde logo após receber a cotação."""

    def __init__(self, controller: SessionLifecycleController, fail_groups=()) -> None:
        super().__init__(fail_groups)
        self._controller = controller
        self.tasks: list[asyncio.Task] = []

    async def send_to_group(self, group_id: str, text: str) -> bool:
        sent = await super().send_to_group(group_id, text)
        if sent:
            message = InboundGroupMessage(group_id=group_id, sender_name=group_id, text="in stock")
            self.tasks.append(asyncio.create_task(self._controller.dispatcher.dispatch(message)))
        return sent


def _message(text: str) -> InboundSalesMessage:
    return InboundSalesMessage(message_id="m1", sender="5511", text=text)


@pytest.fixture()
def flow_config() -> SessionEngineConfig:
    return SessionEngineConfig(
        reply_threshold=2,
        max_wait_ms=200,
        cleanup_delay_ms=1_000,
        waiter_poll_interval_ms=5,
        waiter_safety_net_ms=2_000,
    )


@pytest.fixture()
def controller(flow_config, summarizer):
    return SessionLifecycleController(flow_config, summarizer=summarizer)


def _flow(controller, rules_file, supplier_sender, sales_sender, sales_group_id="sales@g.us"):
    return InquiryFlow(
        router=CategoryRouter(rules_path=rules_file),
        controller=controller,
        waiter=CompletionWaiter(controller),
        supplier_sender=supplier_sender,
        sales_sender=sales_sender,
        sales_group_id=sales_group_id,
        id_factory=lambda: "sess-1",
    )


class TestFormatting:
    def test_inquiry_message(self) -> None:
        assert format_inquiry_message("need basins", "s1") == (
            "[Sales Inquiry]\n\nneed basins\n\n[Session ID: s1]"
        )

    def test_summary_message(self) -> None:
        assert format_summary_message("s1", "resumo") == "[Session: s1]\n\nresumo"


class TestInquiryFlow:
    @pytest.mark.asyncio
    async def test_routing_failure_sends_nothing(self, controller, rules_file) -> None:
        suppliers = RecordingSender()
        sales = RecordingSender()

        result = await _flow(controller, rules_file, suppliers, sales).handle(_message("hello"))

        assert result.routing.success is False
        assert result.outcome is None
        assert suppliers.sent == []
        assert sales.sent == []
        assert controller.get_session("sess-1") is None
        await controller.shutdown()

    @pytest.mark.asyncio
    async def test_full_flow_delivers_summary(self, controller, rules_file) -> None:
        suppliers = AutoReplySender(controller)
        sales = RecordingSender()

        result = await _flow(controller, rules_file, suppliers, sales).handle(
            _message("need 20 basin units")
        )

        assert [group for group, _ in suppliers.sent] == ["g1@chatroom", "g2@chatroom"]
        assert suppliers.sent[0][1] == format_inquiry_message("need 20 basin units", "sess-1")
        assert result.groups_reached == 2
        assert result.outcome is not None
        assert len(result.outcome.replies) == 2
        assert result.summary_delivered is True
        assert sales.sent == [("sales@g.us", "[Session: sess-1]\n\nresumo dos fornecedores")]
        await controller.shutdown()

    @pytest.mark.asyncio
    async def test_failed_group_send_still_waits_until_timeout(
        self, controller, rules_file
    ) -> None:
        suppliers = AutoReplySender(controller, fail_groups=["g2@chatroom"])
        sales = RecordingSender()

        result = await _flow(controller, rules_file, suppliers, sales).handle(
            _message("basin please")
        )

        assert result.groups_reached == 1
        assert result.outcome is not None
        assert len(result.outcome.replies) == 1
        assert controller.get_session("sess-1").is_timeout is True
        assert result.summary_delivered is True
        await controller.shutdown()

    @pytest.mark.asyncio
    async def test_without_sales_group_summary_is_not_sent(
        self, controller, rules_file, caplog
    ) -> None:
        suppliers = AutoReplySender(controller)
        sales = RecordingSender()
        flow = _flow(controller, rules_file, suppliers, sales, sales_group_id=None)

        with caplog.at_level(logging.WARNING):
            result = await flow.handle(_message("basin"))

        assert result.outcome is not None
        assert result.summary_delivered is False
        assert sales.sent == []
        assert any(r.getMessage() == "sales_group_not_configured" for r in caplog.records)
        await controller.shutdown()


class TestInquiryTaskRunner:
    @pytest.mark.asyncio
    async def test_submit_runs_flow_in_background(self, controller, rules_file) -> None:
        suppliers = AutoReplySender(controller)
        sales = RecordingSender()
        runner = InquiryTaskRunner(_flow(controller, rules_file, suppliers, sales))

        runner.submit(_message("basin"), correlation_id="corr-1")
        assert runner.pending == 1

        for _ in range(200):
            if runner.pending == 0:
                break
            await asyncio.sleep(0.01)

        assert runner.pending == 0
        assert len(sales.sent) == 1
        await controller.shutdown()

    @pytest.mark.asyncio
    async def test_flow_errors_are_logged_not_raised(self, caplog) -> None:
        class BrokenFlow:
            async def handle(self, message):
                raise RuntimeError("boom")

        runner = InquiryTaskRunner(BrokenFlow())

        with caplog.at_level(logging.ERROR):
            runner.submit(_message("basin"))
            await asyncio.sleep(0.01)

        assert runner.pending == 0
        assert any(r.getMessage() == "inquiry_flow_failed" for r in caplog.records)

    @pytest.mark.asyncio
    async def test_shutdown_cancels_pending(self) -> None:
        class SlowFlow:
            async def handle(self, message):
                await asyncio.sleep(10)

        runner = InquiryTaskRunner(SlowFlow())
        runner.submit(_message("basin"))

        await runner.shutdown()

        assert runner.pending == 0
