"""
Unit tests for backend/app/services/llm_service/retry.py
Tests: status-code extraction, retryable classification, exponential back-off,
terminal errors, retry exhaustion
Fully async, no network required (asyncio.sleep is mocked).
"""

import sys
import os
from types import SimpleNamespace
from unittest.mock import AsyncMock, patch

import httpx
import pytest
import requests

BACKEND_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "..", "backend"))
sys.path.insert(0, BACKEND_DIR)

from app.services.llm_service.retry import (
    INITIAL_RETRY_DELAY,
    MAX_RETRIES,
    get_status_code,
    is_retryable_error,
    with_retry,
)


class StatusError(Exception):
    def __init__(self, status_code):
        super().__init__(f"HTTP {status_code}")
        self.status_code = status_code


def _httpx_error(status):
    request = httpx.Request("POST", "https://llm.example/api/chat")
    response = httpx.Response(status, request=request)
    return httpx.HTTPStatusError("boom", request=request, response=response)


def _requests_error(status):
    response = requests.Response()
    response.status_code = status
    return requests.HTTPError("boom", response=response)


def _counting(fn_errors, result="ok"):
    """Return (fn, calls) where fn raises the given errors in order then succeeds."""
    calls = []

    async def fn():
        calls.append(1)
        if len(calls) <= len(fn_errors):
            raise fn_errors[len(calls) - 1]
        return result

    return fn, calls


# ────────────────────────────────────────────────────────────────────────────
# Classification
# ────────────────────────────────────────────────────────────────────────────

class TestStatusCode:

    def test_status_code_attribute(self):
        assert get_status_code(StatusError(429)) == 429

    def test_status_attribute(self):
        err = Exception("x")
        err.status = 503
        assert get_status_code(err) == 503

    def test_httpx_response_status(self):
        assert get_status_code(_httpx_error(502)) == 502

    def test_requests_response_status(self):
        # requests.Response is falsy for error codes; still must be read
        assert get_status_code(_requests_error(500)) == 500

    def test_no_status(self):
        assert get_status_code(ConnectionError("down")) is None

    def test_response_without_status(self):
        err = Exception("x")
        err.response = SimpleNamespace()
        assert get_status_code(err) is None


class TestIsRetryable:

    @pytest.mark.parametrize("status", [429, 500, 502, 503, 599])
    def test_retryable_statuses(self, status):
        assert is_retryable_error(StatusError(status)) is True

    @pytest.mark.parametrize("status", [400, 401, 403, 404, 422, 600])
    def test_terminal_statuses(self, status):
        assert is_retryable_error(StatusError(status)) is False

    def test_network_error_is_terminal(self):
        assert is_retryable_error(httpx.ConnectError("refused")) is False

    def test_plain_exception_is_terminal(self):
        assert is_retryable_error(ValueError("bad")) is False


# ────────────────────────────────────────────────────────────────────────────
# with_retry
# ────────────────────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_success_first_try_no_sleep():
    fn, calls = _counting([])
    with patch("app.services.llm_service.retry.asyncio.sleep", new_callable=AsyncMock) as sleep:
        assert await with_retry(fn) == "ok"
    assert len(calls) == 1
    sleep.assert_not_called()


@pytest.mark.asyncio
async def test_recovers_after_transient_errors():
    fn, calls = _counting([StatusError(429), StatusError(503)])
    with patch("app.services.llm_service.retry.asyncio.sleep", new_callable=AsyncMock) as sleep:
        assert await with_retry(fn, retries=3, delay=1.0) == "ok"
    assert len(calls) == 3
    assert [c.args[0] for c in sleep.await_args_list] == [1.0, 2.0]


@pytest.mark.asyncio
async def test_always_429_retries_max_then_propagates():
    """MAX_RETRIES retries with doubling delays, then the last error escapes."""
    errors = [StatusError(429) for _ in range(MAX_RETRIES + 1)]
    fn, calls = _counting(errors)
    with patch("app.services.llm_service.retry.asyncio.sleep", new_callable=AsyncMock) as sleep:
        with pytest.raises(StatusError) as exc_info:
            await with_retry(fn)
    assert exc_info.value is errors[-1]
    assert len(calls) == MAX_RETRIES + 1
    delays = [c.args[0] for c in sleep.await_args_list]
    assert delays == [INITIAL_RETRY_DELAY * 2 ** i for i in range(MAX_RETRIES)]


@pytest.mark.asyncio
async def test_terminal_error_not_retried():
    fn, calls = _counting([StatusError(401)])
    with patch("app.services.llm_service.retry.asyncio.sleep", new_callable=AsyncMock) as sleep:
        with pytest.raises(StatusError):
            await with_retry(fn, retries=3, delay=1.0)
    assert len(calls) == 1
    sleep.assert_not_called()


@pytest.mark.asyncio
async def test_network_error_not_retried():
    fn, calls = _counting([httpx.ConnectError("refused")])
    with patch("app.services.llm_service.retry.asyncio.sleep", new_callable=AsyncMock):
        with pytest.raises(httpx.ConnectError):
            await with_retry(fn, retries=3, delay=1.0)
    assert len(calls) == 1


@pytest.mark.asyncio
async def test_zero_retries_propagates_immediately():
    fn, calls = _counting([StatusError(500)])
    with patch("app.services.llm_service.retry.asyncio.sleep", new_callable=AsyncMock) as sleep:
        with pytest.raises(StatusError):
            await with_retry(fn, retries=0, delay=1.0)
    assert len(calls) == 1
    sleep.assert_not_called()


@pytest.mark.asyncio
async def test_httpx_server_error_retried():
    fn, calls = _counting([_httpx_error(502)])
    with patch("app.services.llm_service.retry.asyncio.sleep", new_callable=AsyncMock):
        assert await with_retry(fn, retries=1, delay=0.5) == "ok"
    assert len(calls) == 2


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
