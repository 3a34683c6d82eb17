"""
Integration Tests for Retry Transports
======================================
Drives httpx clients through the retry transports over httpx.MockTransport.
"""

import httpx
import pytest

from retryware import RETRY_EXTENSION, RETRY_HEADER, AsyncRetryTransport, RetryTransport


def scripted(outcomes, seen=None):
    """MockTransport handler replaying responses/exceptions in order."""
    outcomes = list(outcomes)

    def handler(request):
        if seen is not None:
            seen.append(request.content)
        outcome = outcomes.pop(0)
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    return handler


class TestRetryTransport:
    """Tests for the sync transport."""

    def test_client_retries(self, sleeper):
        transport = RetryTransport(
            httpx.MockTransport(scripted([httpx.Response(503), httpx.Response(200, json={"ok": True})])),
            retry_header=RETRY_HEADER,
            sleep=sleeper,
        )

        with httpx.Client(transport=transport) as client:
            response = client.get("https://api.example.com/v1/status")

        assert response.status_code == 200
        assert response.json() == {"ok": True}
        assert response.headers[RETRY_HEADER] == "1"
        assert sleeper.delays == [1]

    def test_connect_timeout_retried(self, sleeper):
        request = httpx.Request("GET", "https://api.example.com/")
        transport = RetryTransport(
            httpx.MockTransport(scripted([
                httpx.ConnectTimeout("timed out", request=request),
                httpx.Response(200),
            ])),
            {"retry_on_timeout": True},
            sleep=sleeper,
        )

        with httpx.Client(transport=transport) as client:
            response = client.get("https://api.example.com/")

        assert response.status_code == 200

    def test_body_resent_unchanged(self, sleeper):
        bodies = []
        transport = RetryTransport(
            httpx.MockTransport(scripted([httpx.Response(429), httpx.Response(201)], seen=bodies)),
            sleep=sleeper,
        )

        with httpx.Client(transport=transport) as client:
            response = client.post("https://api.example.com/v1/messages", json={"to": "+14155551234"})

        assert response.status_code == 201
        assert len(bodies) == 2
        assert bodies[0] == bodies[1]
        assert b"+14155551234" in bodies[0]

    def test_per_request_extension_overrides(self, sleeper):
        transport = RetryTransport(
            httpx.MockTransport(scripted([httpx.Response(503), httpx.Response(200)])),
            sleep=sleeper,
        )

        with httpx.Client(transport=transport) as client:
            response = client.get(
                "https://api.example.com/",
                extensions={RETRY_EXTENSION: {"retry_enabled": False}},
            )

        assert response.status_code == 503
        assert sleeper.delays == []

    def test_middleware_exposes_policy(self):
        transport = RetryTransport(httpx.MockTransport(scripted([])), max_retry_attempts=2)
        assert transport.middleware.policy.max_retry_attempts == 2


class TestAsyncRetryTransport:
    """Tests for the async transport."""

    @pytest.mark.asyncio
    async def test_async_client_retries(self, async_sleeper):
        transport = AsyncRetryTransport(
            httpx.MockTransport(scripted([
                httpx.Response(429, headers={"Retry-After": "3"}),
                httpx.Response(200),
            ])),
            retry_header=RETRY_HEADER,
            sleep=async_sleeper,
        )

        async with httpx.AsyncClient(transport=transport) as client:
            response = await client.get("https://api.example.com/")

        assert response.status_code == 200
        assert response.headers[RETRY_HEADER] == "1"
        assert async_sleeper.delays == [3]

    @pytest.mark.asyncio
    async def test_async_connect_error_propagates(self, async_sleeper):
        request = httpx.Request("GET", "https://api.example.com/")
        transport = AsyncRetryTransport(
            httpx.MockTransport(scripted([httpx.ConnectError("refused", request=request)])),
            retry_on_timeout=True,
            sleep=async_sleeper,
        )

        async with httpx.AsyncClient(transport=transport) as client:
            with pytest.raises(httpx.ConnectError):
                await client.get("https://api.example.com/")

        assert async_sleeper.delays == []
