"""Modelos de domínio (contratos entre gateways, roteador e motor de sessões)."""

from __future__ import annotations

from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, Field


def _now_iso() -> str:
    return datetime.now(tz=UTC).isoformat()


class SupplierGroup(BaseModel):
    """Grupo de fornecedores (chat WeChat) alvo de uma cotação."""

    model_config = ConfigDict(frozen=True)

    group_id: str
    display_name: str = ""


class RoutingResult(BaseModel):
    """Resultado imutável do roteador de categorias.

    success=False sempre vem com `error` preenchido e `supplier_groups` vazio.
    """

    model_config = ConfigDict(frozen=True)

    success: bool
    category: str | None = None
    supplier_groups: tuple[SupplierGroup, ...] = ()
    error: str | None = None

    @classmethod
    def failed(cls, error: str, category: str | None = None) -> RoutingResult:
        return cls(success=False, category=category, error=error)


class Reply(BaseModel):
    """Reply normalizado de um fornecedor, já resolvido para uma sessão."""

    model_config = ConfigDict(frozen=True)

    group_id: str
    sender_name: str = ""
    text: str = ""
    timestamp: str = Field(default_factory=_now_iso)


class InboundGroupMessage(BaseModel):
    """Mensagem de grupo normalizada pelo adapter WeChat (ainda sem sessão)."""

    model_config = ConfigDict(frozen=True)

    group_id: str
    group_name: str = ""
    sender_name: str = ""
    text: str = ""
    timestamp: str = Field(default_factory=_now_iso)

    def to_reply(self) -> Reply:
        return Reply(
            group_id=self.group_id,
            sender_name=self.sender_name,
            text=self.text,
            timestamp=self.timestamp,
        )


class InboundSalesMessage(BaseModel):
    """Mensagem de vendas normalizada pelo adapter WhatsApp."""

    model_config = ConfigDict(frozen=True)

    message_id: str
    sender: str
    text: str
    timestamp: str = Field(default_factory=_now_iso)


class SessionResult(BaseModel):
    """Resultado da conclusão de uma sessão (cacheado; idêntico a cada chamada)."""

    model_config = ConfigDict(frozen=True)

    session_id: str
    category: str
    replies: tuple[Reply, ...]
    reply_count: int
    summary: str
    duration_ms: int
    is_timeout: bool


class CompletionOutcome(BaseModel):
    """O que o waiter entrega a quem aguardava a sessão."""

    model_config = ConfigDict(frozen=True)

    session_id: str
    replies: tuple[Reply, ...]
    summary: str
