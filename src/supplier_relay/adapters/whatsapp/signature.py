"""Assinatura do webhook da Business API (X-Hub-Signature-256, HMAC SHA-256)."""

from __future__ import annotations

import hashlib
import hmac
from collections.abc import Mapping
from dataclasses import dataclass

SIGNATURE_HEADER = "x-hub-signature-256"
_PREFIX = "sha256="


@dataclass(slots=True)
class SignatureCheck:
    valid: bool
    skipped: bool = False
    reason: str | None = None


def check_webhook_signature(
    raw_body: bytes,
    headers: Mapping[str, str],
    app_secret: str | None,
) -> SignatureCheck:
    """Confere o HMAC do corpo bruto.

    Sem app_secret configurado (serviço WhatsApp próprio) a checagem é pulada.
    """
    if not app_secret:
        return SignatureCheck(valid=True, skipped=True)

    header = headers.get(SIGNATURE_HEADER)
    if not header:
        return SignatureCheck(valid=False, reason="missing_signature")
    if not header.startswith(_PREFIX):
        return SignatureCheck(valid=False, reason="invalid_signature_format")

    received = header[len(_PREFIX) :]
    expected = hmac.new(app_secret.encode("utf-8"), raw_body, hashlib.sha256).hexdigest()
    if not hmac.compare_digest(expected, received):
        return SignatureCheck(valid=False, reason="signature_mismatch")
    return SignatureCheck(valid=True)
