"""Geradores de identificadores."""

from __future__ import annotations

import time
import uuid


def new_session_id() -> str:
    """Gera um session_id único (uuid4)."""

    return str(uuid.uuid4())


def fallback_message_id() -> str:
    """Id para mensagens de vendas que chegam sem id (formato próprio/IFTTT)."""

    return f"msg_{int(time.time() * 1000)}"
