"""Validações de entrada compartilhadas pelas rotas."""

from __future__ import annotations

from typing import Any

MAX_SESSION_ID_LENGTH = 100


def validate_session_id(session_id: Any) -> bool:
    """session_id precisa ser string não vazia com até 100 caracteres."""
    if not isinstance(session_id, str):
        return False
    return 1 <= len(session_id) <= MAX_SESSION_ID_LENGTH
