"""Logging estruturado do serviço (uma linha JSON por evento).

Toda linha carrega service e correlation_id; environment quando configurado;
session_id quando a tarefa corrente processa uma sessão de cotação. Textos
de mensagens de vendas e de fornecedores não entram nos logs do serviço,
apenas ids, contagens e tamanhos. O texto dos replies vai só para o
ReplyLog (infra/reply_log.py).
"""

from __future__ import annotations

import logging

from pythonjsonlogger.json import JsonFormatter

from supplier_relay.observability.middleware import get_correlation_id, get_session_id

_FIELDS = ("asctime", "levelname", "name", "message", "correlation_id", "service")
_RENAMED_FIELDS = {"levelname": "level", "name": "logger"}

# Logam cada request HTTP em INFO
_CHATTY_LOGGERS = ("httpx", "httpcore", "openai")


class ServiceContextFilter(logging.Filter):
    """Completa o record com o contexto do serviço e da tarefa.

    Valores passados explicitamente em `extra` têm precedência.
    """

    def __init__(self, service_name: str, environment: str | None = None) -> None:
        super().__init__()
        self._service_name = service_name
        self._environment = environment

    def filter(self, record: logging.LogRecord) -> bool:  # noqa: A003
        if not getattr(record, "correlation_id", None):
            record.correlation_id = get_correlation_id()
        if not getattr(record, "session_id", None):
            session_id = get_session_id()
            if session_id:
                record.session_id = session_id
        record.service = self._service_name
        if self._environment:
            record.environment = self._environment
        return True


def build_json_formatter() -> JsonFormatter:
    """Formatter compartilhado pelo console e pelo arquivo de replies."""
    return JsonFormatter(
        " ".join(f"%({name})s" for name in _FIELDS),
        rename_fields=dict(_RENAMED_FIELDS),
    )


def configure_logging(level: str, service_name: str, environment: str | None = None) -> None:
    """Instala o handler JSON no root logger (chamado por create_app)."""
    handler = logging.StreamHandler()
    handler.setFormatter(build_json_formatter())
    handler.addFilter(ServiceContextFilter(service_name, environment))

    root = logging.getLogger()
    root.setLevel(level.upper())
    root.handlers = [handler]

    for name in _CHATTY_LOGGERS:
        logging.getLogger(name).setLevel(max(logging.WARNING, root.level))


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def short_id(value: str) -> str:
    """Primeiros 8 caracteres de um id, para logs DEBUG do store."""
    if len(value) <= 8:
        return value
    return value[:8] + "..."


def log_fallback(
    logger: logging.Logger,
    component: str,
    reason: str | None = None,
    session_id: str | None = None,
    elapsed_ms: float | None = None,
) -> None:
    """Registra que um componente saiu pelo caminho alternativo.

    Exemplo: o summarizer LLM falhou e o resumo veio de format_replies_simple.

        log_fallback(logger, "reply_summary", reason="APITimeoutError", session_id=sid)
    """
    extra: dict[str, object] = {"fallback_used": True, "component": component}
    if reason:
        extra["reason"] = reason
    if session_id:
        extra["session_id"] = session_id
    if elapsed_ms is not None:
        extra["elapsed_ms"] = round(elapsed_ms, 2)
    logger.warning("fallback_applied", extra=extra)
