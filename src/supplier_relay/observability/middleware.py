"""Contexto de log por request/tarefa e middleware de correlation_id.

- correlation_id: uma request de webhook e as tarefas que ela dispara
- session_id: a sessão de cotação processada pela tarefa corrente

Os dois vivem em ContextVar, então cada task asyncio enxerga o seu.
"""

from __future__ import annotations

import re
import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

CORRELATION_ID_HEADER = "x-correlation-id"

_MAX_INCOMING_LENGTH = 128
_SAFE_ID = re.compile(r"^[A-Za-z0-9._:-]+$")

_correlation_id: ContextVar[str] = ContextVar("correlation_id", default="")
_session_id: ContextVar[str] = ContextVar("session_id", default="")


def get_correlation_id() -> str:
    return _correlation_id.get()


def bind_correlation_id(value: str) -> None:
    """Fixa o correlation_id da tarefa corrente (inquiry em background)."""
    _correlation_id.set(value)


def get_session_id() -> str:
    return _session_id.get()


def bind_session_id(value: str) -> None:
    """Marca os logs da tarefa corrente com a sessão de cotação."""
    _session_id.set(value)


def _accept_incoming(value: str | None) -> str | None:
    # Serviços externos às vezes mandam ids vazios ou com quebras de linha
    if not value or len(value) > _MAX_INCOMING_LENGTH or not _SAFE_ID.match(value):
        return None
    return value


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """Propaga o correlation_id recebido dos gateways ou gera um novo."""

    def __init__(self, app: ASGIApp, header_name: str = CORRELATION_ID_HEADER) -> None:
        super().__init__(app)
        self._header_name = header_name

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        correlation_id = _accept_incoming(request.headers.get(self._header_name))
        if correlation_id is None:
            correlation_id = uuid.uuid4().hex

        token = _correlation_id.set(correlation_id)
        try:
            response = await call_next(request)
        finally:
            _correlation_id.reset(token)

        response.headers[self._header_name] = correlation_id
        return response
