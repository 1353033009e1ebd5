"""Enums de domínio do fluxo de cotação."""

from __future__ import annotations

from enum import StrEnum


class SessionStatus(StrEnum):
    """Estados da sessão de cotação.

    Não há estados intermediários: a sessão coleta replies ou está concluída.
    """

    ACTIVE = "active"
    COMPLETED = "completed"


class CompletionTrigger(StrEnum):
    """O que encerrou a sessão (para logs e métricas)."""

    THRESHOLD = "threshold"
    TIMEOUT = "timeout"
    SAFETY_NET = "safety_net"
