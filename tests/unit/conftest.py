from __future__ import annotations

import pytest

from supplier_relay.application.reply_dispatcher import ReplyDispatcher
from supplier_relay.application.session_controller import SessionLifecycleController
from supplier_relay.config.settings import SessionEngineConfig
from supplier_relay.domain.protocols import ReplyRecoveryProtocol, SummarizerProtocol
from supplier_relay.infra.routing_table import GroupSessionRoutingTable
from tests.helpers.engine import RecordingSummarizer


@pytest.fixture()
def engine_config() -> SessionEngineConfig:
    # Timeout longo por padrão: testes de timeout criam config própria
    return SessionEngineConfig(
        reply_threshold=2,
        max_wait_ms=5_000,
        cleanup_delay_ms=5_000,
        waiter_poll_interval_ms=5,
        waiter_safety_net_ms=6_000,
    )


@pytest.fixture()
def summarizer() -> RecordingSummarizer:
    return RecordingSummarizer()


@pytest.fixture()
def make_controller(summarizer):
    def _factory(
        config: SessionEngineConfig,
        summarizer_override: SummarizerProtocol | None = None,
        recovery: ReplyRecoveryProtocol | None = None,
    ) -> SessionLifecycleController:
        return SessionLifecycleController(
            config,
            dispatcher=ReplyDispatcher(GroupSessionRoutingTable()),
            summarizer=summarizer_override or summarizer,
            reply_recovery=recovery,
        )

    return _factory
