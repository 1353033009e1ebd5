"""Modelo da sessão de cotação: InquirySession.

InquirySession é o registro autoritativo de uma cotação em andamento.
- Uma sessão = um session_id único entre as sessões ativas
- active -> completed exatamente uma vez
- replies são append-only, na ordem de chegada observada pelo processo
- Vive apenas em memória (sem persistência entre restarts)
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from supplier_relay.domain.enums import CompletionTrigger, SessionStatus

if TYPE_CHECKING:
    from supplier_relay.application.timer import Timer
    from supplier_relay.domain.models import Reply, SessionResult, SupplierGroup


def now_ms() -> int:
    """Relógio de parede em milissegundos (epoch)."""
    return int(time.time() * 1000)


@dataclass(slots=True, eq=False)
class InquirySession:
    """Estado mutável da sessão; só o controller escreve aqui."""

    session_id: str
    category: str
    target_groups: tuple[SupplierGroup, ...]
    original_message: str
    replies: list[Reply] = field(default_factory=list)
    replies_received: int = 0
    status: SessionStatus = SessionStatus.ACTIVE
    start_time: int = field(default_factory=now_ms)
    end_time: int | None = None
    duration_ms: int | None = None
    is_timeout: bool | None = None
    trigger: CompletionTrigger | None = None
    summary: str | None = None
    final_replies: tuple[Reply, ...] = ()
    timer: Timer | None = None
    cleanup_handle: asyncio.TimerHandle | None = None
    completion: asyncio.Task[SessionResult] | None = None
    result: SessionResult | None = None

    @property
    def is_active(self) -> bool:
        return self.status is SessionStatus.ACTIVE

    @property
    def group_ids(self) -> list[str]:
        return [group.group_id for group in self.target_groups]

    def elapsed_ms(self) -> int:
        """Duração final se concluída; senão tempo desde o início."""
        if self.duration_ms is not None:
            return self.duration_ms
        return now_ms() - self.start_time
