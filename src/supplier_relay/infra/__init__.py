"""Camada de infraestrutura: estado em processo e clientes externos.

Este módulo exporta:

- Session: InquirySessionStore, InMemoryInquirySessionStore, create_session_store
- Roteamento: GroupSessionRoutingTable
- Rastro de replies: ReplyLog, create_reply_recovery
- HTTP: HttpClient

Uso típico:
    from supplier_relay.infra import create_session_store, GroupSessionRoutingTable

Infraestrutura não decide regra de negócio: transições de sessão ficam com o
controller em application/.
"""

from supplier_relay.infra.http import (
    HttpClient,
    HttpClientConfig,
    HttpError,
    create_http_client,
)
from supplier_relay.infra.reply_log import ReplyLog, create_reply_recovery
from supplier_relay.infra.routing_table import GroupSessionRoutingTable
from supplier_relay.infra.session_store import (
    InMemoryInquirySessionStore,
    InquirySessionStore,
    SessionStoreError,
    create_session_store,
)

__all__ = [
    # Session
    "InquirySessionStore",
    "InMemoryInquirySessionStore",
    "SessionStoreError",
    "create_session_store",
    # Roteamento
    "GroupSessionRoutingTable",
    # Rastro de replies
    "ReplyLog",
    "create_reply_recovery",
    # HTTP
    "HttpClient",
    "HttpClientConfig",
    "HttpError",
    "create_http_client",
]
