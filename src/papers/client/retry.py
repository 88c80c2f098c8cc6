"""Failure classification and the bounded retry loop.

Every remote call goes through :meth:`Retrier.call`. Classification:

* connection failures / timeouts (:class:`~papers.exceptions.NetworkError`)
  -- retryable;
* HTTP 429 -- :class:`~papers.exceptions.RateLimitedError`, retryable, and
  the provider's ``Retry-After`` hint is honoured when present, up to
  ``max_retry_after`` (a longer hint fails fast rather than stalling);
* HTTP 5xx -- :class:`~papers.exceptions.ServerError`, retryable;
* other HTTP 4xx -- :class:`~papers.exceptions.ClientError`, raised at once.

Retryable failures back off exponentially (``base * 2**(n-1)``, capped at
``max_delay``) with optional full jitter. When the attempts run out the last
classified error is raised. All wrapped calls are read-only, so repeating
them verbatim is always safe.
"""

from __future__ import annotations

import json
import logging
import random
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Callable, Optional

from papers.client.request import RequestDescriptor
from papers.client.transport import TransportResponse
from papers.exceptions import (
    ApiError,
    ClientError,
    RateLimitedError,
    ServerError,
)
from papers.models import RequestConfig

logger = logging.getLogger(__name__)

Send = Callable[[RequestDescriptor], TransportResponse]


@dataclass(frozen=True)
class RetryPolicy:
    """Backoff parameters for :class:`Retrier`.

    Attributes:
        max_attempts: Total attempts including the first one.
        base_delay: Delay before the first retry, in seconds.
        max_delay: Cap for any single computed backoff delay.
        jitter: Draw each delay uniformly from ``[0, delay]``.
        max_retry_after: Longest ``Retry-After`` hint that is waited out.
            A longer hint ends the call with the
            :class:`~papers.exceptions.RateLimitedError` at once.
    """

    max_attempts: int = 3
    base_delay: float = 1.0
    max_delay: float = 30.0
    jitter: bool = True
    max_retry_after: float = 120.0

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.base_delay < 0 or self.max_delay < 0 or self.max_retry_after < 0:
            raise ValueError("delays must not be negative")

    @classmethod
    def from_config(cls, config: RequestConfig) -> RetryPolicy:
        return cls(
            max_attempts=config.max_attempts,
            base_delay=config.backoff_base,
            max_delay=config.backoff_max,
            jitter=config.jitter,
            max_retry_after=config.max_retry_after,
        )

    def backoff(self, attempt: int, rng: random.Random) -> float:
        """Delay to wait after failed attempt number *attempt* (1-based)."""
        delay = min(self.max_delay, self.base_delay * (2 ** (attempt - 1)))
        if self.jitter:
            delay = rng.uniform(0, delay)
        return delay


def parse_retry_after(value: Optional[str], now: Optional[datetime] = None) -> Optional[float]:
    """Parse a ``Retry-After`` header (delta-seconds or HTTP-date) into seconds.

    Returns ``None`` for a missing or unparseable value. Dates in the past
    yield ``0.0``.
    """
    if value is None:
        return None
    value = value.strip()
    if not value:
        return None
    try:
        return max(0.0, float(value))
    except ValueError:
        pass
    try:
        when = parsedate_to_datetime(value)
    except (TypeError, ValueError, IndexError):
        return None
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)
    current = now or datetime.now(timezone.utc)
    return max(0.0, (when - current).total_seconds())


def error_message(body: bytes) -> str:
    """Extract a human-readable message from an error body."""
    if not body:
        return ""
    try:
        detail = json.loads(body)
    except (json.JSONDecodeError, UnicodeDecodeError):
        return body.decode("utf-8", errors="replace").strip()[:200]
    if isinstance(detail, dict):
        for key in ("message", "error", "detail"):
            if detail.get(key):
                return str(detail[key])
        return ""
    return str(detail)[:200]


def classify(response: TransportResponse) -> Optional[ApiError]:
    """Map a non-2xx response to an error; ``None`` for success."""
    status = response.status_code
    if 200 <= status < 300:
        return None
    message = error_message(response.body)
    if status == 429:
        text = f"HTTP 429: {message}" if message else "HTTP 429: rate limited"
        return RateLimitedError(text, retry_after=parse_retry_after(response.header("retry-after")))
    if status >= 500:
        return ServerError(status, message)
    return ClientError(status, message)


class Retrier:
    """Runs a send function under a :class:`RetryPolicy`.

    Args:
        policy: Backoff parameters.
        sleep: Called with each delay; tests pass a recorder.
        rng: Random source for jitter.
    """

    def __init__(
        self,
        policy: Optional[RetryPolicy] = None,
        sleep: Callable[[float], None] = time.sleep,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.policy = policy or RetryPolicy()
        self._sleep = sleep
        self._rng = rng or random.Random()

    def call(self, send: Send, descriptor: RequestDescriptor) -> TransportResponse:
        """Send *descriptor*, retrying transient failures.

        Returns:
            The first 2xx :class:`TransportResponse`.

        Raises:
            ClientError: Immediately, on a non-429 4xx.
            NetworkError, RateLimitedError, ServerError: The last transient
                failure once ``max_attempts`` is used up.
        """
        max_attempts = self.policy.max_attempts
        for attempt in range(1, max_attempts + 1):
            try:
                response = send(descriptor)
                error = classify(response)
            except ApiError as exc:
                error = exc

            if error is None:
                return response
            if not error.retryable or attempt == max_attempts:
                raise error

            delay = self._delay_for(error, attempt)
            if delay is None:
                logger.debug(
                    "%s %s: Retry-After %.0fs exceeds %.0fs, giving up",
                    descriptor.method,
                    descriptor.path,
                    error.retry_after,
                    self.policy.max_retry_after,
                )
                raise error
            logger.debug(
                "%s %s: %s, retrying in %.2fs (attempt %d/%d)",
                descriptor.method,
                descriptor.path,
                error,
                delay,
                attempt,
                max_attempts,
            )
            self._sleep(delay)

        raise AssertionError("unreachable")  # pragma: no cover

    def _delay_for(self, error: ApiError, attempt: int) -> Optional[float]:
        """Backoff before the next attempt; ``None`` when the hint is too long to wait."""
        if isinstance(error, RateLimitedError) and error.retry_after is not None:
            if error.retry_after > self.policy.max_retry_after:
                return None
            return error.retry_after
        return self.policy.backoff(attempt, self._rng)
