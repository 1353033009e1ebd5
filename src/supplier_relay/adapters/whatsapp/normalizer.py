"""Normalização de payloads do webhook de vendas (WhatsApp).

Formatos aceitos:
- Meta Business (`object == "whatsapp_business_account"`), todas as entries
- Formato próprio/IFTTT plano: {from|sender|value1|phone|number,
  body|text|message|value2|content, messageId|id|value3, timestamp|time}

Só mensagens com remetente e texto viram InboundSalesMessage.
"""

from __future__ import annotations

import time
from typing import Any

from supplier_relay.domain.models import InboundSalesMessage
from supplier_relay.observability.logging import get_logger
from supplier_relay.utils.ids import fallback_message_id

logger = get_logger(__name__)

BUSINESS_ACCOUNT_OBJECT = "whatsapp_business_account"

_SENDER_KEYS = ("from", "sender", "value1", "phone", "number")
_TEXT_KEYS = ("body", "text", "message", "value2", "content")
_ID_KEYS = ("messageId", "id", "value3")
_TIMESTAMP_KEYS = ("timestamp", "time")


def _first(payload: dict[str, Any], keys: tuple[str, ...]) -> Any:
    for key in keys:
        value = payload.get(key)
        if value:
            return value
    return None


def _extract_text(msg: dict[str, Any]) -> str:
    text_block = msg.get("text")
    if isinstance(text_block, dict):
        return text_block.get("body") or ""
    body_block = msg.get("body")
    if isinstance(body_block, dict):
        return body_block.get("text") or ""
    return ""


def _iter_business_messages(payload: dict[str, Any]) -> list[dict[str, Any]]:
    messages: list[dict[str, Any]] = []
    for entry in payload.get("entry") or []:
        if not isinstance(entry, dict):
            continue
        for change in entry.get("changes") or []:
            value = change.get("value") if isinstance(change, dict) else None
            if not isinstance(value, dict):
                continue
            messages.extend(m for m in value.get("messages") or [] if isinstance(m, dict))
    return messages


def _normalize_business(payload: dict[str, Any]) -> list[InboundSalesMessage]:
    normalized: list[InboundSalesMessage] = []
    for msg in _iter_business_messages(payload):
        sender = msg.get("from")
        text = _extract_text(msg)
        if not sender or not text:
            logger.debug(
                "whatsapp_message_skipped",
                extra={"type": msg.get("type"), "has_sender": bool(sender)},
            )
            continue
        normalized.append(
            InboundSalesMessage(
                message_id=str(msg.get("id") or fallback_message_id()),
                sender=str(sender),
                text=text,
                timestamp=str(msg.get("timestamp") or int(time.time())),
            )
        )
    return normalized


def _normalize_flat(payload: dict[str, Any]) -> list[InboundSalesMessage]:
    sender = _first(payload, _SENDER_KEYS)
    text = _first(payload, _TEXT_KEYS)
    if not sender or not isinstance(text, str) or not text:
        logger.warning(
            "whatsapp_payload_invalid",
            extra={"keys": sorted(payload.keys())[:20]},
        )
        return []

    message_id = _first(payload, _ID_KEYS) or fallback_message_id()
    timestamp = _first(payload, _TIMESTAMP_KEYS) or int(time.time() * 1000)
    return [
        InboundSalesMessage(
            message_id=str(message_id),
            sender=str(sender),
            text=text,
            timestamp=str(timestamp),
        )
    ]


def extract_sales_messages(payload: Any) -> list[InboundSalesMessage]:
    """Extrai mensagens de vendas de qualquer formato suportado."""
    if not isinstance(payload, dict):
        return []
    if payload.get("object") == BUSINESS_ACCOUNT_OBJECT:
        return _normalize_business(payload)
    return _normalize_flat(payload)
