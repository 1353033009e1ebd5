"""Protocolo de envio para grupos (WhatsApp ou WeChat)."""

from __future__ import annotations

from abc import ABC, abstractmethod


class GroupSenderProtocol(ABC):
    """Envio best-effort: falhas viram False, nunca exceção."""

    @abstractmethod
    async def send_to_group(self, group_id: str, text: str) -> bool: ...
