"""Rastro de replies em arquivo JSON-lines (fonte secundária de recuperação).

Cada reply recebido vira uma linha JSON escrita com o mesmo formatter do
serviço. Se a memória de uma sessão estiver vazia na conclusão, o controller
consulta `recover(session_id)`.

Não é persistência de sessão: só replies, na ordem em que foram gravados.
"""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path

from supplier_relay.domain.models import Reply
from supplier_relay.domain.protocols import NullReplyRecovery, ReplyRecoveryProtocol
from supplier_relay.observability.logging import build_json_formatter, get_logger
from supplier_relay.observability.middleware import get_correlation_id

logger: logging.Logger = get_logger(__name__)

REPLY_EVENT = "wechat_reply_received"


class ReplyLog(ReplyRecoveryProtocol):
    """Grava e relê replies de um arquivo JSON-lines."""

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        self._path.parent.mkdir(parents=True, exist_ok=True)

        self._handler = logging.FileHandler(self._path, encoding="utf-8", delay=True)
        self._handler.setFormatter(build_json_formatter())
        # Logger fora da hierarquia: não propaga para o console nem é reconfigurado.
        self._writer = logging.Logger("supplier_relay.reply_log", level=logging.INFO)
        self._writer.addHandler(self._handler)

    @property
    def path(self) -> Path:
        return self._path

    def record(self, session_id: str, reply: Reply) -> None:
        """Anexa um reply ao rastro."""
        self._writer.info(
            REPLY_EVENT,
            extra={
                "session_id": session_id,
                "group_id": reply.group_id,
                "sender_name": reply.sender_name,
                "text": reply.text,
                "reply_timestamp": reply.timestamp,
                "correlation_id": get_correlation_id(),
                "service": "reply_log",
            },
        )
        self._handler.flush()

    async def recover(self, session_id: str) -> list[Reply]:
        return await asyncio.to_thread(self._read_replies, session_id)

    def _read_replies(self, session_id: str) -> list[Reply]:
        if not self._path.exists():
            return []

        replies: list[Reply] = []
        skipped = 0
        with self._path.open(encoding="utf-8") as handle:
            for line in handle:
                line = line.strip()
                if not line:
                    continue
                try:
                    entry = json.loads(line)
                except json.JSONDecodeError:
                    skipped += 1
                    continue
                if entry.get("message") != REPLY_EVENT or entry.get("session_id") != session_id:
                    continue
                replies.append(
                    Reply(
                        group_id=entry.get("group_id") or "",
                        sender_name=entry.get("sender_name") or "",
                        text=entry.get("text") or "",
                        timestamp=entry.get("reply_timestamp") or "",
                    )
                )

        if skipped:
            logger.warning(
                "reply_log_lines_skipped",
                extra={"skipped": skipped, "path": str(self._path)},
            )
        return replies

    def close(self) -> None:
        self._handler.close()
        self._writer.removeHandler(self._handler)


def create_reply_recovery(path: str | None) -> ReplyRecoveryProtocol:
    """ReplyLog quando há caminho configurado; senão recuperação nula."""
    if not path:
        return NullReplyRecovery()
    return ReplyLog(path)
