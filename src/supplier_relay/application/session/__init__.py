"""Package `session`: registro e ciclo de vida da sessão de cotação.

Exports principais:
- InquirySession: registro da sessão (de session/models.py)
- now_ms: relógio de parede em ms usado nas marcações de tempo
"""

from __future__ import annotations

from supplier_relay.application.session.models import InquirySession, now_ms

__all__ = ["InquirySession", "now_ms"]
