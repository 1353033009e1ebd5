"""Configurações da aplicação via variáveis de ambiente.

Todas as configurações são carregadas de env vars (ou arquivo .env em dev).
Nunca hardcode tokens de gateway ou chaves de LLM.
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict

# -----------------------------------------------------------------------------
# Constantes da Graph API Meta (envio via WhatsApp Business API)
# -----------------------------------------------------------------------------
GRAPH_API_VERSION: str = "v18.0"
GRAPH_API_BASE_URL: str = "https://graph.facebook.com"

NO_REPLIES_MESSAGE: str = "No replies received from suppliers within the time limit."


class Settings(BaseSettings):
    """Configurações lidas do ambiente."""

    model_config = SettingsConfigDict(
        env_prefix="",
        case_sensitive=False,
        env_file=".env",
        extra="ignore",
    )

    # Aplicação
    service_name: str = "supplier_relay"
    version: str = "0.1.0"
    environment: str = "development"
    log_level: str = "INFO"

    # Motor de sessões (valores do fluxo de cotação original)
    session_reply_threshold: int = 3  # Replies que encerram a sessão antes do timeout
    session_max_wait_ms: int = 600_000  # 10 minutos
    session_cleanup_delay_ms: int = 60_000  # Retenção após conclusão
    waiter_poll_interval_ms: int = 1_000
    waiter_safety_net_ms: int = 650_000  # Deve exceder session_max_wait_ms

    # WhatsApp (gateway de vendas)
    whatsapp_verify_token: str | None = None  # Handshake hub.verify_token
    whatsapp_app_secret: str | None = None  # Assinatura X-Hub-Signature-256 (Business API)
    whatsapp_service_url: str = "http://localhost:3001"  # Serviço próprio de WhatsApp
    whatsapp_api_key: str | None = None
    whatsapp_phone_number_id: str | None = None  # Business API (opcional)
    whatsapp_access_token: str | None = None  # Business API (opcional)
    whatsapp_api_base_url: str = GRAPH_API_BASE_URL
    whatsapp_api_version: str = GRAPH_API_VERSION
    whatsapp_request_timeout_seconds: float = 30.0
    whatsapp_max_retries: int = 2
    sales_group_id: str | None = None  # Grupo que recebe os resumos

    # Wechaty (gateway dos fornecedores)
    wechaty_service_url: str = "http://localhost:3002"
    wechaty_api_key: str | None = None
    wechaty_request_timeout_seconds: float = 30.0
    wechaty_max_retries: int = 2
    wechaty_webhook_url: str | None = None  # Registrado no startup quando presente
    wechat_forward_to_sales_group: bool = False  # Espelha toda msg WeChat no grupo de vendas

    # OpenAI / LLM (opcional: ausência é um modo, não um erro)
    openai_enabled: bool = False
    openai_api_key: str | None = None
    openai_model: str = "gpt-4o-mini"
    openai_timeout_seconds: float = 10.0
    openai_temperature: float = 0.7
    openai_max_tokens: int = 500

    # Serviço LLM externo próprio (opcional); tem precedência sobre OpenAI
    llm_service_enabled: bool = False
    llm_service_url: str | None = None  # Base; expõe /summarize e /extract-category
    llm_service_api_key: str | None = None
    llm_service_timeout_seconds: float = 30.0
    llm_service_max_retries: int = 1

    # Roteamento por categoria
    routing_rules_path: str = "data/routing_rules.json"

    # Rastro de replies (recuperação quando a memória perde a sessão)
    reply_log_path: str | None = "logs/replies.jsonl"

    @property
    def openai_available(self) -> bool:
        return self.openai_enabled and bool(self.openai_api_key)

    @property
    def llm_service_available(self) -> bool:
        return self.llm_service_enabled and bool(self.llm_service_url)

    @property
    def llm_available(self) -> bool:
        """True quando há algum back-end LLM (serviço externo ou OpenAI)."""
        return self.llm_service_available or self.openai_available

    @property
    def whatsapp_business_api_enabled(self) -> bool:
        """True quando há credenciais da Business API."""
        return bool(self.whatsapp_phone_number_id and self.whatsapp_access_token)

    @property
    def is_production(self) -> bool:
        """Retorna True se ambiente é produção."""
        return self.environment.lower() in ("production", "prod")

    @property
    def is_development(self) -> bool:
        """Retorna True se ambiente é desenvolvimento."""
        return self.environment.lower() in ("development", "dev", "local")

    def get_messages_endpoint(self) -> str:
        """URL da Business API para envio de mensagens.

        Formato: https://graph.facebook.com/v18.0/{phone_number_id}/messages
        """
        if not self.whatsapp_phone_number_id:
            raise ValueError("whatsapp_phone_number_id é obrigatório")
        return (
            f"{self.whatsapp_api_base_url}/{self.whatsapp_api_version}/"
            f"{self.whatsapp_phone_number_id}/messages"
        )

    def validate_session_config(self) -> list[str]:
        """Valida parâmetros do motor de sessões.

        Retorna lista de erros (vazia = OK).
        """
        errors: list[str] = []
        if self.session_reply_threshold < 1:
            errors.append("SESSION_REPLY_THRESHOLD deve ser >= 1")
        if self.session_max_wait_ms <= 0:
            errors.append("SESSION_MAX_WAIT_MS deve ser > 0")
        if self.session_cleanup_delay_ms < 0:
            errors.append("SESSION_CLEANUP_DELAY_MS deve ser >= 0")
        if self.waiter_poll_interval_ms <= 0:
            errors.append("WAITER_POLL_INTERVAL_MS deve ser > 0")
        if self.waiter_safety_net_ms <= self.session_max_wait_ms:
            errors.append("WAITER_SAFETY_NET_MS deve ser maior que SESSION_MAX_WAIT_MS")
        return errors

    def validate_openai_config(self) -> list[str]:
        """Valida configuração de OpenAI.

        Só é erro quando o LLM foi habilitado explicitamente sem chave.
        """
        errors: list[str] = []
        if self.openai_enabled and not self.openai_api_key:
            errors.append("OPENAI_ENABLED=true requer OPENAI_API_KEY configurado")
        if self.openai_max_tokens <= 0:
            errors.append("OPENAI_MAX_TOKENS deve ser > 0")
        return errors

    def validate_llm_service_config(self) -> list[str]:
        """Valida o serviço LLM externo (só quando habilitado)."""
        errors: list[str] = []
        if self.llm_service_enabled and not self.llm_service_url:
            errors.append("LLM_SERVICE_ENABLED=true requer LLM_SERVICE_URL configurado")
        if self.llm_service_max_retries < 0:
            errors.append("LLM_SERVICE_MAX_RETRIES deve ser >= 0")
        return errors

    def validate_whatsapp_config(self) -> list[str]:
        """Valida configuração mínima do gateway WhatsApp."""
        errors: list[str] = []
        if bool(self.whatsapp_phone_number_id) != bool(self.whatsapp_access_token):
            errors.append(
                "WHATSAPP_PHONE_NUMBER_ID e WHATSAPP_ACCESS_TOKEN devem ser configurados juntos"
            )
        if self.is_production and not self.sales_group_id:
            errors.append("SALES_GROUP_ID obrigatório em produção")
        return errors


@dataclass(frozen=True)
class SessionEngineConfig:
    """Parâmetros efetivos do motor de sessões (independente de env vars)."""

    reply_threshold: int = 3
    max_wait_ms: int = 600_000
    cleanup_delay_ms: int = 60_000
    waiter_poll_interval_ms: int = 1_000
    waiter_safety_net_ms: int = 650_000

    @classmethod
    def from_settings(cls, settings: Settings) -> SessionEngineConfig:
        return cls(
            reply_threshold=settings.session_reply_threshold,
            max_wait_ms=settings.session_max_wait_ms,
            cleanup_delay_ms=settings.session_cleanup_delay_ms,
            waiter_poll_interval_ms=settings.waiter_poll_interval_ms,
            waiter_safety_net_ms=settings.waiter_safety_net_ms,
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Retorna uma instância cacheada de Settings.

    A cache garante que mesmo múltiplas injeções não criam novos objetos.
    """
    return Settings()
