"""Configurações centralizadas do supplier_relay.

Este módulo exporta:
- Settings: classe de configuração via variáveis de ambiente
- SessionEngineConfig: parâmetros do motor de sessões
- get_settings: função cacheada para obter instância única

Uso típico:
    from supplier_relay.config import get_settings, SessionEngineConfig
"""

from supplier_relay.config.settings import (
    GRAPH_API_BASE_URL,
    GRAPH_API_VERSION,
    NO_REPLIES_MESSAGE,
    SessionEngineConfig,
    Settings,
    get_settings,
)

__all__ = [
    "Settings",
    "SessionEngineConfig",
    "get_settings",
    "GRAPH_API_VERSION",
    "GRAPH_API_BASE_URL",
    "NO_REPLIES_MESSAGE",
]
