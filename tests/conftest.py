"""Shared test fixtures for papers.

Provides isolated config directories, output reset between tests, a fake
clock and sleep recorder, and helpers for building clients on top of
:class:`httpx.MockTransport`.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Callable

import httpx
import pytest

from papers.cache import ResponseCache
from papers.models import CacheConfig, RequestConfig
from papers.output import OutputFormat, OutputManager, reset_output, set_output


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager and the ``papers`` logger after every test.

    The manager holds references to sys.stdout/sys.stderr; CliRunner swaps
    those out, so a stale manager would write to closed files.
    """
    yield
    reset_output()
    logger = logging.getLogger("papers")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)
    logger.propagate = True


# ---------------------------------------------------------------------------
# Config isolation
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point XDG directories at tmp_path and clear papers-related env vars."""
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_CACHE_HOME", str(tmp_path / "cache"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    monkeypatch.setattr("papers.config._is_xdg_platform", lambda: True)
    for var in [
        "PAPERS_CACHE_DIR",
        "PAPERS_NO_CACHE",
        "OPENALEX_KEY",
        "ZOTERO_API_KEY",
        "ZOTERO_USER_ID",
        "NO_COLOR",
    ]:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.chdir(tmp_path)
    return tmp_path


# ---------------------------------------------------------------------------
# Time control
# ---------------------------------------------------------------------------


class FakeClock:
    """Manually advanced clock for cache expiry tests."""

    def __init__(self, start: float = 1_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def sleeps() -> list[float]:
    """Collects the delays a Retrier would have slept."""
    return []


# ---------------------------------------------------------------------------
# HTTP + cache helpers
# ---------------------------------------------------------------------------


@pytest.fixture
def cache(tmp_path: Path, clock: FakeClock) -> ResponseCache:
    c = ResponseCache(tmp_path / "cache", CacheConfig(enabled=True, ttl_seconds=300), clock=clock)
    yield c
    c.close()


@pytest.fixture
def fast_retry() -> RequestConfig:
    """Three attempts, no jitter, 1s base -- deterministic backoff."""
    return RequestConfig(max_attempts=3, backoff_base=1.0, backoff_max=30.0, jitter=False)


def json_response(data: Any, status_code: int = 200, headers: dict[str, str] | None = None) -> httpx.Response:
    return httpx.Response(
        status_code=status_code,
        headers={"content-type": "application/json", **(headers or {})},
        content=json.dumps(data).encode(),
    )


class RecordingHandler:
    """MockTransport handler that replays queued responses and records requests.

    Each queued item is an :class:`httpx.Response`, an exception instance to
    raise, or a callable taking the request.
    """

    def __init__(self, *responses: Any) -> None:
        self.queue = list(responses)
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if not self.queue:
            raise AssertionError(f"Unexpected request: {request.method} {request.url}")
        item = self.queue.pop(0) if len(self.queue) > 1 else self.queue[0]
        if isinstance(item, Exception):
            raise item
        if callable(item) and not isinstance(item, httpx.Response):
            item = item(request)
        # The last queued response may be replayed, so hand out copies.
        return httpx.Response(item.status_code, headers=item.headers, content=item.content)

    @property
    def calls(self) -> int:
        return len(self.requests)


def mock_http(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.Client:
    return httpx.Client(transport=httpx.MockTransport(handler))


@pytest.fixture
def json_output() -> OutputManager:
    output = OutputManager(format=OutputFormat.JSON, no_color=True)
    set_output(output)
    yield output
    reset_output()
