"""Tests for HTTP retry utilities."""

from unittest.mock import AsyncMock, Mock, patch

import httpx
import pytest

from classboard.core.dashboard.http import (
    RetryConfig,
    is_retryable_error,
    retry_request,
    with_retry,
)


def status_error(code: int) -> httpx.HTTPStatusError:
    request = httpx.Request("GET", "http://school.test/api/events")
    response = httpx.Response(code, request=request)
    return httpx.HTTPStatusError(f"HTTP {code}", request=request, response=response)


class TestRetryConfig:
    """Test suite for RetryConfig."""

    def test_default_values(self) -> None:
        """Test default configuration values."""
        config = RetryConfig()
        assert config.max_retries == 2
        assert config.base_delay == 0.5
        assert config.multiplier == 2.0
        assert config.jitter is True

    @pytest.mark.parametrize(
        "kwargs,message",
        [
            ({"max_retries": -1}, "max_retries must be non-negative"),
            ({"base_delay": 0}, "base_delay must be positive"),
            ({"multiplier": 0.5}, "multiplier must be >= 1.0"),
            ({"jitter_ratio": 1.5}, "jitter_ratio must be between"),
        ],
    )
    def test_invalid_values(self, kwargs, message) -> None:
        """Test that invalid parameters are rejected."""
        with pytest.raises(ValueError, match=message):
            RetryConfig(**kwargs)

    def test_exponential_delay_without_jitter(self) -> None:
        """Delays double per attempt."""
        config = RetryConfig(base_delay=0.5, jitter=False)
        assert [config.calculate_delay(i) for i in range(3)] == [0.5, 1.0, 2.0]

    def test_jitter_bounds(self) -> None:
        """Jitter stays within the configured ratio."""
        config = RetryConfig(base_delay=1.0, jitter_ratio=0.2)
        for _ in range(50):
            assert 0.8 <= config.calculate_delay(0) <= 1.2


class TestIsRetryableError:
    """Classification of transient errors."""

    def test_server_errors_retryable(self) -> None:
        """5xx responses are retried."""
        assert is_retryable_error(status_error(503)) is True

    def test_client_errors_not_retryable(self) -> None:
        """4xx responses are not retried."""
        assert is_retryable_error(status_error(404)) is False

    def test_transport_errors_retryable(self) -> None:
        """Timeouts and connection errors are retried."""
        assert is_retryable_error(httpx.ReadTimeout("slow")) is True
        assert is_retryable_error(httpx.ConnectError("refused")) is True

    def test_other_errors_not_retryable(self) -> None:
        """Non-httpx exceptions are not retried."""
        assert is_retryable_error(ValueError("bad")) is False


class TestWithRetry:
    """Decorator behavior."""

    @pytest.mark.asyncio
    async def test_retries_then_succeeds(self) -> None:
        """Transient failures are retried with backoff sleeps."""
        func = AsyncMock(side_effect=[httpx.ConnectError("refused"), "ok"])
        func.__name__ = "fetch"

        with patch("classboard.core.dashboard.http.asyncio.sleep", AsyncMock()) as sleep:
            result = await with_retry(max_retries=2, jitter=False)(func)()

        assert result == "ok"
        assert func.await_count == 2
        sleep.assert_awaited_once_with(0.5)

    @pytest.mark.asyncio
    async def test_gives_up_after_max_retries(self) -> None:
        """The last error is raised once retries are exhausted."""
        func = AsyncMock(side_effect=status_error(500))
        func.__name__ = "fetch"

        with patch("classboard.core.dashboard.http.asyncio.sleep", AsyncMock()):
            with pytest.raises(httpx.HTTPStatusError):
                await with_retry(max_retries=2)(func)()
        assert func.await_count == 3

    @pytest.mark.asyncio
    async def test_non_retryable_raised_immediately(self) -> None:
        """4xx errors are not retried."""
        func = AsyncMock(side_effect=status_error(404))
        func.__name__ = "fetch"

        with pytest.raises(httpx.HTTPStatusError):
            await with_retry(max_retries=3)(func)()
        assert func.await_count == 1

    @pytest.mark.asyncio
    async def test_before_attempt_runs_every_attempt(self) -> None:
        """The hook runs before each attempt and can abort the loop."""
        func = AsyncMock(side_effect=[httpx.ConnectError("refused"), "ok"])
        func.__name__ = "fetch"
        hook = Mock(side_effect=[None, RuntimeError("cancelled")])

        with patch("classboard.core.dashboard.http.asyncio.sleep", AsyncMock()):
            with pytest.raises(RuntimeError, match="cancelled"):
                await with_retry(max_retries=2, before_attempt=hook)(func)()

        assert hook.call_count == 2
        assert func.await_count == 1


class TestRetryRequest:
    """retry_request against a mock transport."""

    @pytest.mark.asyncio
    async def test_success_after_server_error(self) -> None:
        """A 502 followed by a 200 returns the 200."""
        responses = iter([httpx.Response(502), httpx.Response(200, json={"ok": True})])

        def handler(request: httpx.Request) -> httpx.Response:
            return next(responses)

        async with httpx.AsyncClient(
            base_url="http://school.test", transport=httpx.MockTransport(handler)
        ) as client:
            response = await retry_request(client, "GET", "/api/events", base_delay=0.001)

        assert response.json() == {"ok": True}

    @pytest.mark.asyncio
    async def test_client_error_raised(self) -> None:
        """A 404 is raised without retrying."""
        calls = 0

        def handler(request: httpx.Request) -> httpx.Response:
            nonlocal calls
            calls += 1
            return httpx.Response(404)

        async with httpx.AsyncClient(
            base_url="http://school.test", transport=httpx.MockTransport(handler)
        ) as client:
            with pytest.raises(httpx.HTTPStatusError):
                await retry_request(client, "GET", "/api/results")
        assert calls == 1
