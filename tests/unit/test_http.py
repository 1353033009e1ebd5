"""Testes unitários para infra/http.py.

Valida cliente HTTP com retry, timeout e logging.
"""

from __future__ import annotations

from unittest.mock import AsyncMock, patch

import httpx
import pytest

from supplier_relay.infra.http import (
    HttpClient,
    HttpClientConfig,
    HttpError,
    _calculate_backoff,
    _is_retryable_status,
    _sanitize_url,
    create_http_client,
)


def _client(handler, max_retries: int = 2) -> HttpClient:
    config = HttpClientConfig(max_retries=max_retries, backoff_base_seconds=0.0)
    return HttpClient(config, transport=httpx.MockTransport(handler))


class TestHelpers:
    """Testes para helpers de módulo."""

    def test_sanitize_url_hides_token(self) -> None:
        """access_token nunca aparece nos logs."""
        url = "https://graph.facebook.com/v18.0/x?access_token=secret&a=1"
        assert _sanitize_url(url) == "https://graph.facebook.com/v18.0/x?access_token=***&a=1"
        assert _sanitize_url("http://localhost:3002/api/send") == "http://localhost:3002/api/send"
        assert _sanitize_url("http://svc/x?monkey=1&api_key=abc") == "http://svc/x?monkey=1&api_key=***"

    @pytest.mark.parametrize(
        ("status", "expected"),
        [(429, True), (500, True), (503, True), (400, False), (404, False), (200, False)],
    )
    def test_retryable_status(self, status: int, expected: bool) -> None:
        assert _is_retryable_status(status) is expected

    def test_backoff_is_capped(self) -> None:
        """Backoff exponencial limitado ao máximo."""
        assert _calculate_backoff(0, 1.0, 10.0) == 1.0
        assert _calculate_backoff(2, 1.0, 10.0) == 4.0
        assert _calculate_backoff(5, 1.0, 10.0) == 10.0

    def test_factory_sets_headers(self) -> None:
        client = create_http_client("wechaty", 5.0, 1, headers={"User-Agent": "x"})
        assert client.config.upstream == "wechaty"
        assert client.config.timeout_seconds == 5.0
        assert client.config.max_retries == 1
        assert client.config.default_headers == {"User-Agent": "x"}


class TestHttpClient:
    """Testes de retry com transporte mockado."""

    @pytest.mark.asyncio
    async def test_success_first_attempt(self) -> None:
        calls: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(200, json={"ok": True})

        async with _client(handler) as client:
            response = await client.post("http://svc/api/send", json={"a": 1})

        assert response.json() == {"ok": True}
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_retries_5xx_then_succeeds(self) -> None:
        statuses = iter([503, 502, 200])

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(next(statuses))

        async with _client(handler) as client:
            response = await client.get("http://svc/health")

        assert response.status_code == 200

    @pytest.mark.asyncio
    async def test_non_retryable_status_raises_immediately(self) -> None:
        calls: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(400)

        async with _client(handler) as client:
            with pytest.raises(HttpError) as exc_info:
                await client.post("http://svc/api/send", json={})

        assert exc_info.value.status_code == 400
        assert exc_info.value.is_retryable is False
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_retries_exhausted(self) -> None:
        calls: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(500)

        async with _client(handler, max_retries=2) as client:
            with pytest.raises(HttpError) as exc_info:
                await client.post("http://svc/api/send", json={})

        assert exc_info.value.is_retryable is True
        assert len(calls) == 3

    @pytest.mark.asyncio
    async def test_connection_error_is_retried(self) -> None:
        attempts = {"n": 0}

        def handler(request: httpx.Request) -> httpx.Response:
            attempts["n"] += 1
            if attempts["n"] == 1:
                raise httpx.ConnectError("refused", request=request)
            return httpx.Response(200)

        async with _client(handler) as client:
            response = await client.get("http://svc/health")

        assert response.status_code == 200
        assert attempts["n"] == 2

    @pytest.mark.asyncio
    async def test_timeout_exhausts_as_http_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("slow", request=request)

        async with _client(handler, max_retries=1) as client:
            with pytest.raises(HttpError, match="Timeout"):
                await client.get("http://svc/health")

    @pytest.mark.asyncio
    async def test_backoff_sleeps_between_attempts(self) -> None:
        statuses = iter([429, 200])

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(next(statuses))

        config = HttpClientConfig(max_retries=2, backoff_base_seconds=1.0)
        client = HttpClient(config, transport=httpx.MockTransport(handler))
        with patch("supplier_relay.infra.http.asyncio.sleep", new=AsyncMock()) as sleep:
            await client.get("http://svc/health")
        await client.close()

        sleep.assert_awaited_once_with(1.0)

    @pytest.mark.asyncio
    async def test_retry_after_header_is_honored_with_cap(self) -> None:
        responses = iter(
            [
                httpx.Response(429, headers={"Retry-After": "3"}),
                httpx.Response(503, headers={"Retry-After": "120"}),
                httpx.Response(200),
            ]
        )

        def handler(request: httpx.Request) -> httpx.Response:
            return next(responses)

        config = HttpClientConfig(max_retries=2, backoff_base_seconds=1.0, backoff_max_seconds=10.0)
        client = HttpClient(config, transport=httpx.MockTransport(handler))
        with patch("supplier_relay.infra.http.asyncio.sleep", new=AsyncMock()) as sleep:
            response = await client.get("http://svc/health")
        await client.close()

        assert response.status_code == 200
        assert [call.args[0] for call in sleep.await_args_list] == [3.0, 10.0]

    @pytest.mark.asyncio
    async def test_logs_carry_upstream_and_hide_token(self, caplog) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(404)

        config = HttpClientConfig(upstream="whatsapp", max_retries=0)
        client = HttpClient(config, transport=httpx.MockTransport(handler))
        with caplog.at_level("WARNING"), pytest.raises(HttpError):
            await client.get("http://graph/v18.0/1/messages?access_token=secret")
        await client.close()

        failed = [r for r in caplog.records if r.getMessage() == "http_request_failed"]
        assert failed[0].upstream == "whatsapp"
        assert "secret" not in failed[0].url
