"""Re-exports dos Protocolos de domínio para uso por Application."""

from __future__ import annotations

from supplier_relay.domain.protocols.group_sender import GroupSenderProtocol
from supplier_relay.domain.protocols.llm_client import LLMClientProtocol
from supplier_relay.domain.protocols.reply_recovery import (
    NullReplyRecovery,
    ReplyRecoveryProtocol,
)
from supplier_relay.domain.protocols.summarizer import SummarizerProtocol

__all__ = [
    "GroupSenderProtocol",
    "LLMClientProtocol",
    "ReplyRecoveryProtocol",
    "NullReplyRecovery",
    "SummarizerProtocol",
]
