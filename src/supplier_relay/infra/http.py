"""Cliente HTTP dos gateways (serviço WhatsApp, Graph API, serviço Wechaty).

- Timeout sempre configurado
- Retry com backoff exponencial para 429/5xx, timeout e erro de conexão
- 429/503 com Retry-After em segundos usam o valor do servidor (com teto)
- Logs com o nome do upstream e URL sanitizada, nunca com o corpo
"""

from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass, field
from typing import Any

import httpx

from supplier_relay.observability.logging import get_logger

logger: logging.Logger = get_logger(__name__)

_SECRET_QUERY = re.compile(r"([?&](?:access_token|api_key|key))=[^&]+")


def _sanitize_url(url: str) -> str:
    """Mascara credenciais passadas na query string."""
    return _SECRET_QUERY.sub(r"\1=***", url)


@dataclass
class HttpClientConfig:
    upstream: str = "http"  # Nome do serviço remoto nos logs
    timeout_seconds: float = 30.0
    max_retries: int = 2
    backoff_base_seconds: float = 1.0
    backoff_max_seconds: float = 10.0
    default_headers: dict[str, str] = field(default_factory=dict)


class HttpError(Exception):
    """Falha de chamada HTTP; a mensagem nunca inclui corpo nem credenciais."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        is_retryable: bool = False,
        retry_after: float | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.is_retryable = is_retryable
        self.retry_after = retry_after


def _is_retryable_status(status_code: int) -> bool:
    return status_code == 429 or 500 <= status_code < 600


def _calculate_backoff(attempt: int, base_seconds: float, max_seconds: float) -> float:
    return min((2**attempt) * base_seconds, max_seconds)


def _retry_after_seconds(response: httpx.Response) -> float | None:
    # Só a forma em segundos; a forma HTTP-date cai no backoff normal
    value = response.headers.get("retry-after")
    if value is None:
        return None
    try:
        return max(0.0, float(value))
    except ValueError:
        return None


class HttpClient:
    """Cliente assíncrono compartilhado por um gateway.

        async with HttpClient(HttpClientConfig(upstream="wechaty")) as client:
            response = await client.post(url, json=payload)
    """

    def __init__(
        self,
        config: HttpClientConfig | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._config = config or HttpClientConfig()
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    def config(self) -> HttpClientConfig:
        return self._config

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self._config.timeout_seconds),
                headers=self._config.default_headers,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
        self._client = None

    async def __aenter__(self) -> HttpClient:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    async def request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        """Executa a chamada com retry.

        Raises:
            HttpError: status não retentável, ou tentativas esgotadas
        """
        client = await self._get_client()
        attempts = self._config.max_retries + 1
        last_error = HttpError("Nenhuma tentativa executada")

        for attempt in range(1, attempts + 1):
            try:
                response = await client.request(method, url, **kwargs)
            except httpx.TimeoutException as exc:
                last_error = HttpError("Timeout", is_retryable=True)
                self._log(
                    logging.WARNING,
                    "http_timeout",
                    method,
                    url,
                    attempt=attempt,
                    error=type(exc).__name__,
                )
            except httpx.TransportError as exc:
                last_error = HttpError("Erro de conexão", is_retryable=True)
                self._log(
                    logging.WARNING,
                    "http_connection_error",
                    method,
                    url,
                    attempt=attempt,
                    error=type(exc).__name__,
                )
            else:
                if response.is_success:
                    self._log(
                        logging.DEBUG,
                        "http_request",
                        method,
                        url,
                        attempt=attempt,
                        status_code=response.status_code,
                    )
                    return response

                last_error = HttpError(
                    f"HTTP {response.status_code}",
                    status_code=response.status_code,
                    is_retryable=_is_retryable_status(response.status_code),
                    retry_after=_retry_after_seconds(response),
                )
                if not last_error.is_retryable:
                    self._log(
                        logging.WARNING,
                        "http_request_failed",
                        method,
                        url,
                        attempt=attempt,
                        status_code=response.status_code,
                    )
                    raise last_error

            if attempt < attempts:
                delay = self._retry_delay(attempt, last_error)
                self._log(
                    logging.INFO,
                    "http_retry_backoff",
                    method,
                    url,
                    attempt=attempt,
                    backoff_seconds=delay,
                    status_code=last_error.status_code,
                )
                await asyncio.sleep(delay)

        self._log(
            logging.ERROR,
            "http_retries_exhausted",
            method,
            url,
            total_attempts=attempts,
            status_code=last_error.status_code,
        )
        raise last_error

    def _retry_delay(self, attempt: int, error: HttpError) -> float:
        cfg = self._config
        if error.retry_after is not None:
            return min(error.retry_after, cfg.backoff_max_seconds)
        return _calculate_backoff(attempt - 1, cfg.backoff_base_seconds, cfg.backoff_max_seconds)

    def _log(self, level: int, event: str, method: str, url: str, **fields: Any) -> None:
        logger.log(
            level,
            event,
            extra={
                "upstream": self._config.upstream,
                "method": method,
                "url": _sanitize_url(url),
                **fields,
            },
        )

    async def get(self, url: str, **kwargs: Any) -> httpx.Response:
        return await self.request("GET", url, **kwargs)

    async def post(
        self,
        url: str,
        json: dict[str, Any] | None = None,
        **kwargs: Any,
    ) -> httpx.Response:
        return await self.request("POST", url, json=json, **kwargs)


def create_http_client(
    upstream: str,
    timeout_seconds: float,
    max_retries: int,
    headers: dict[str, str] | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> HttpClient:
    """Cliente de um gateway, a partir das chaves *_request_timeout_seconds/*_max_retries."""
    config = HttpClientConfig(
        upstream=upstream,
        timeout_seconds=timeout_seconds,
        max_retries=max_retries,
        default_headers=dict(headers or {}),
    )
    return HttpClient(config, transport=transport)
