"""Tests for failure classification and the retry loop."""

from __future__ import annotations

import random
from datetime import datetime, timezone

import pytest

from papers.client.request import RequestDescriptor
from papers.client.retry import Retrier, RetryPolicy, classify, error_message, parse_retry_after
from papers.client.transport import TransportResponse
from papers.exceptions import (
    ClientError,
    NetworkError,
    RateLimitedError,
    ServerError,
)
from papers.models import RequestConfig

DESCRIPTOR = RequestDescriptor.create("GET", "https://api.example.org", "works")


def _ok(body: bytes = b"{}") -> TransportResponse:
    return TransportResponse(200, body)


def _status(code: int, headers: dict[str, str] | None = None, body: bytes = b"") -> TransportResponse:
    return TransportResponse(code, body, headers or {})


class Script:
    """A send function replaying a fixed sequence of outcomes."""

    def __init__(self, *outcomes) -> None:
        self.outcomes = list(outcomes)
        self.calls = 0

    def __call__(self, descriptor: RequestDescriptor) -> TransportResponse:
        self.calls += 1
        outcome = self.outcomes.pop(0) if len(self.outcomes) > 1 else self.outcomes[0]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


def _retrier(sleeps: list[float], **policy) -> Retrier:
    defaults = {"max_attempts": 3, "base_delay": 1.0, "max_delay": 30.0, "jitter": False}
    defaults.update(policy)
    return Retrier(RetryPolicy(**defaults), sleep=sleeps.append, rng=random.Random(0))


# ------------------------------------------------------------------ #
# Classification
# ------------------------------------------------------------------ #


class TestClassify:
    def test_success(self) -> None:
        assert classify(_ok()) is None

    def test_429(self) -> None:
        error = classify(_status(429, {"retry-after": "3"}))
        assert isinstance(error, RateLimitedError)
        assert error.retry_after == 3.0
        assert error.retryable

    def test_5xx(self) -> None:
        error = classify(_status(502))
        assert isinstance(error, ServerError)
        assert error.status_code == 502

    def test_404_carries_message(self) -> None:
        error = classify(_status(404, body=b'{"message": "No such work"}'))
        assert isinstance(error, ClientError)
        assert error.status_code == 404
        assert error.message == "No such work"
        assert not error.retryable

    def test_auth_exit_code(self) -> None:
        assert classify(_status(403)).exit_code == 3


class TestErrorMessage:
    def test_json_error_field(self) -> None:
        assert error_message(b'{"error": "Invalid query"}') == "Invalid query"

    def test_plain_text_truncated(self) -> None:
        assert error_message(b"x" * 500) == "x" * 200

    def test_empty(self) -> None:
        assert error_message(b"") == ""


class TestRetryAfter:
    def test_seconds(self) -> None:
        assert parse_retry_after("12") == 12.0

    def test_http_date(self) -> None:
        now = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)
        assert parse_retry_after("Mon, 01 Jan 2024 12:00:05 GMT", now=now) == 5.0

    def test_past_date_is_zero(self) -> None:
        now = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)
        assert parse_retry_after("Mon, 01 Jan 2024 11:00:00 GMT", now=now) == 0.0

    def test_garbage(self) -> None:
        assert parse_retry_after("soon") is None
        assert parse_retry_after(None) is None


# ------------------------------------------------------------------ #
# Retry loop
# ------------------------------------------------------------------ #


class TestRetrier:
    def test_two_429_then_success(self, sleeps: list[float]) -> None:
        send = Script(_status(429), _status(429), _ok(b'{"ok": true}'))
        response = _retrier(sleeps).call(send, DESCRIPTOR)
        assert response.body == b'{"ok": true}'
        assert send.calls == 3
        assert sleeps == [1.0, 2.0]

    def test_persistent_5xx_surfaces_server_error(self, sleeps: list[float]) -> None:
        send = Script(_status(500))
        with pytest.raises(ServerError):
            _retrier(sleeps).call(send, DESCRIPTOR)
        assert send.calls == 3
        assert len(sleeps) == 2

    def test_404_is_not_retried(self, sleeps: list[float]) -> None:
        send = Script(_status(404))
        with pytest.raises(ClientError):
            _retrier(sleeps).call(send, DESCRIPTOR)
        assert send.calls == 1
        assert sleeps == []

    def test_network_error_retried(self, sleeps: list[float]) -> None:
        send = Script(NetworkError("reset"), _ok())
        assert _retrier(sleeps).call(send, DESCRIPTOR).ok
        assert send.calls == 2

    def test_network_error_exhausted(self, sleeps: list[float]) -> None:
        send = Script(NetworkError("down"))
        with pytest.raises(NetworkError):
            _retrier(sleeps, max_attempts=2).call(send, DESCRIPTOR)
        assert send.calls == 2

    def test_retry_after_honoured(self, sleeps: list[float]) -> None:
        send = Script(_status(429, {"retry-after": "7"}), _ok())
        _retrier(sleeps).call(send, DESCRIPTOR)
        assert sleeps == [7.0]

    def test_retry_after_within_bound_is_waited(self, sleeps: list[float]) -> None:
        send = Script(_status(429, {"retry-after": "60"}), _ok())
        _retrier(sleeps, max_retry_after=60.0).call(send, DESCRIPTOR)
        assert sleeps == [60.0]

    def test_retry_after_beyond_bound_fails_fast(self, sleeps: list[float]) -> None:
        send = Script(_status(429, {"retry-after": "86400"}), _ok())
        with pytest.raises(RateLimitedError) as exc:
            _retrier(sleeps).call(send, DESCRIPTOR)
        assert exc.value.retry_after == 86400.0
        assert send.calls == 1
        assert sleeps == []

    def test_rate_limit_exhausted(self, sleeps: list[float]) -> None:
        send = Script(_status(429))
        with pytest.raises(RateLimitedError):
            _retrier(sleeps).call(send, DESCRIPTOR)

    def test_single_attempt_never_sleeps(self, sleeps: list[float]) -> None:
        send = Script(_status(503))
        with pytest.raises(ServerError):
            _retrier(sleeps, max_attempts=1).call(send, DESCRIPTOR)
        assert sleeps == []


class TestBackoff:
    def test_capped(self) -> None:
        policy = RetryPolicy(base_delay=1.0, max_delay=5.0, jitter=False)
        assert [policy.backoff(n, random.Random()) for n in (1, 2, 3, 4)] == [1.0, 2.0, 4.0, 5.0]

    def test_jitter_within_bounds(self) -> None:
        policy = RetryPolicy(base_delay=2.0, max_delay=30.0, jitter=True)
        rng = random.Random(42)
        for attempt in range(1, 6):
            assert 0 <= policy.backoff(attempt, rng) <= min(30.0, 2.0 * 2 ** (attempt - 1))

    def test_invalid_attempts(self) -> None:
        with pytest.raises(ValueError):
            RetryPolicy(max_attempts=0)

    def test_from_config_carries_retry_after_bound(self) -> None:
        policy = RetryPolicy.from_config(RequestConfig(max_retry_after=5.0))
        assert policy.max_retry_after == 5.0
