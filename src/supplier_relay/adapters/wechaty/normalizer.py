"""Normalização de payloads do serviço Wechaty.

Formatos aceitos:
1. Wechaty atual: {roomId, roomTopic, talkerName, text, timestamp, isGroup}
2. Aninhado antigo: {chat: {groupId, groupName, isGroup}, sender: {name}, message, timestamp}
3. Plano antigo: {groupId, groupName, from, text, timestamp}

Mensagens do próprio bot (isFromSelf) ou de saída (direction == "outgoing")
são ignoradas.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from supplier_relay.domain.models import InboundGroupMessage

UNKNOWN_SENDER = "Unknown"
UNKNOWN_GROUP = "Unknown Group"
FORWARD_HEADER = "[WeChat → WhatsApp]"

_ISO_PREFIX = re.compile(r"^(\d{4})-(\d{2})-(\d{2})T(\d{2}):(\d{2}):(\d{2})")


@dataclass(frozen=True, slots=True)
class WeChatPayload:
    """Campos extraídos do payload bruto, independentes do formato."""

    group_id: str | None
    group_name: str
    sender_name: str
    text: str
    timestamp: str | None
    is_group: bool
    is_outgoing: bool

    def to_group_message(self) -> InboundGroupMessage | None:
        if not self.group_id:
            return None
        fields: dict[str, Any] = {
            "group_id": self.group_id,
            "group_name": self.group_name,
            "sender_name": self.sender_name,
            "text": self.text,
        }
        if self.timestamp:
            fields["timestamp"] = self.timestamp
        return InboundGroupMessage(**fields)


def _dict(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _first_str(*candidates: Any) -> str | None:
    for candidate in candidates:
        if isinstance(candidate, str) and candidate:
            return candidate
        if isinstance(candidate, (int, float)) and not isinstance(candidate, bool):
            return str(candidate)
    return None


def parse_wechat_payload(payload: dict[str, Any]) -> WeChatPayload:
    chat = _dict(payload.get("chat"))
    sender = _dict(payload.get("sender"))

    if "isGroup" in payload:
        is_group = bool(payload["isGroup"])
    elif "isGroup" in chat:
        is_group = bool(chat["isGroup"])
    else:
        is_group = True

    return WeChatPayload(
        group_id=_first_str(payload.get("roomId"), chat.get("groupId"), payload.get("groupId")),
        group_name=_first_str(
            payload.get("roomTopic"),
            chat.get("groupName"),
            payload.get("groupName"),
            payload.get("roomName"),
        )
        or UNKNOWN_GROUP,
        sender_name=_first_str(
            payload.get("talkerName"),
            sender.get("name"),
            payload.get("from"),
            payload.get("contact"),
        )
        or UNKNOWN_SENDER,
        text=_first_str(payload.get("text"), payload.get("message"), payload.get("content"))
        or "",
        timestamp=_first_str(payload.get("timestamp")),
        is_group=is_group,
        is_outgoing=payload.get("isFromSelf") is True or payload.get("direction") == "outgoing",
    )


def extract_group_message(payload: Any) -> InboundGroupMessage | None:
    """Mensagem de grupo recebida, ou None (saída, sem grupo, payload inválido)."""
    if not isinstance(payload, dict):
        return None
    parsed = parse_wechat_payload(payload)
    if parsed.is_outgoing:
        return None
    return parsed.to_group_message()


def format_timestamp(timestamp: str | None, now: datetime | None = None) -> str:
    """dd-mm-yyyy HH:MM:SS preservando o fuso do timestamp ISO recebido."""
    if timestamp:
        match = _ISO_PREFIX.match(timestamp)
        if match:
            year, month, day, hour, minute, second = match.groups()
            return f"{day}-{month}-{year} {hour}:{minute}:{second}"
        try:
            parsed = _parse_timestamp(timestamp)
        except (ValueError, OverflowError, OSError):
            parsed = None
        if parsed is not None:
            return parsed.strftime("%d-%m-%Y %H:%M:%S")
    return (now or datetime.now()).strftime("%d-%m-%Y %H:%M:%S")


def _parse_timestamp(value: str) -> datetime:
    if value.isdigit():
        epoch = int(value)
        # Epoch em milissegundos a partir de 13 dígitos
        return datetime.fromtimestamp(epoch / 1000 if epoch >= 10**12 else epoch)
    return datetime.fromisoformat(value)


def format_forward_message(parsed: WeChatPayload, now: datetime | None = None) -> str:
    """Texto do espelhamento WeChat -> grupo de vendas."""
    return (
        f"{FORWARD_HEADER}\n\n"
        f"From: {parsed.sender_name}\n"
        f"Group: {parsed.group_name}\n"
        f"Time: {format_timestamp(parsed.timestamp, now)}\n\n"
        f"{parsed.text}"
    )
