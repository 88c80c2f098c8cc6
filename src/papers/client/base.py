"""Client facade core shared by the OpenAlex and Zotero clients.

:class:`BaseClient` composes the pipeline pieces:

1. a :class:`~papers.client.request.RequestBuilder` produces a descriptor;
2. the optional :class:`~papers.cache.ResponseCache` is consulted with the
   descriptor's cache key;
3. on a miss, the :class:`~papers.client.retry.Retrier` drives the
   :class:`~papers.client.transport.HttpTransport`;
4. the body is decoded with Pydantic, and only a body that decoded cleanly
   is written back to the cache.

Subclasses supply the endpoint table, the builder, and
:meth:`BaseClient.fetch_page`, which knows how the provider reports totals
and continuation. Everything else -- streams, context management, error
handling -- lives here.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from functools import lru_cache
from typing import Any, Callable, Mapping, Optional, TypeVar

import httpx
from pydantic import TypeAdapter, ValidationError

from papers.cache import ResponseCache
from papers.client.pager import CursorState, OffsetState, PagedResult, PageState, PageStream
from papers.client.request import (
    Endpoint,
    PagedParams,
    RequestBuilder,
    RequestDescriptor,
    lookup_endpoint,
)
from papers.client.retry import Retrier, RetryPolicy
from papers.client.transport import HttpTransport, TransportResponse
from papers.exceptions import DecodeError
from papers.models import RequestConfig

logger = logging.getLogger(__name__)

T = TypeVar("T")


@lru_cache(maxsize=None)
def _adapter(tp: Any) -> TypeAdapter:
    return TypeAdapter(tp)


def decode(body: bytes, tp: Any) -> Any:
    """Decode a JSON body into *tp*.

    Raises:
        DecodeError: If the body is not JSON or does not match *tp*.
    """
    try:
        return _adapter(tp).validate_json(body)
    except ValidationError as exc:
        preview = body[:120].decode("utf-8", errors="replace")
        raise DecodeError(
            f"Response did not match {getattr(tp, '__name__', tp)}: "
            f"{exc.error_count()} error(s); body starts with {preview!r}"
        ) from exc


class BaseClient(ABC):
    """Shared request/response pipeline for one upstream API.

    Subclasses set :attr:`endpoints` and :attr:`response_headers` and build
    a :class:`RequestBuilder` in their constructor.

    Args:
        builder: Provider-specific request builder (base URL, wire names,
            credential).
        request_config: Timeout and retry tuning.
        cache: Optional response cache. ``None`` means every lookup misses.
        http_client: Optional pre-built :class:`httpx.Client` for the
            default transport.
        transport: Optional transport replacing :class:`HttpTransport`
            entirely (anything with ``send`` and ``close``).
        sleep: Sleep function used between retries.
    """

    endpoints: Mapping[str, Endpoint] = {}
    response_headers: tuple[str, ...] = ()

    def __init__(
        self,
        builder: RequestBuilder,
        request_config: Optional[RequestConfig] = None,
        cache: Optional[ResponseCache] = None,
        http_client: Optional[httpx.Client] = None,
        transport: Optional[HttpTransport] = None,
        sleep: Optional[Callable[[float], None]] = None,
    ) -> None:
        config = request_config or RequestConfig()
        self._builder = builder
        self._cache = cache
        self._transport = transport or HttpTransport(
            timeout=config.timeout,
            verify_ssl=config.verify_ssl,
            response_headers=self.response_headers,
            client=http_client,
        )
        retry_kwargs: dict[str, Any] = {"policy": RetryPolicy.from_config(config)}
        if sleep is not None:
            retry_kwargs["sleep"] = sleep
        self._retrier = Retrier(**retry_kwargs)

    # ------------------------------------------------------------------ #
    # Context manager
    # ------------------------------------------------------------------ #

    def __enter__(self):
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def close(self) -> None:
        """Release the HTTP connection pool. The cache is owned by the caller."""
        self._transport.close()

    # ------------------------------------------------------------------ #
    # Pipeline
    # ------------------------------------------------------------------ #

    @property
    def builder(self) -> RequestBuilder:
        return self._builder

    def endpoint(self, name: str) -> Endpoint:
        """Look up an endpoint by name in this client's table."""
        return lookup_endpoint(self.endpoints, name)

    def fetch(self, descriptor: RequestDescriptor, tp: Any) -> tuple[Any, TransportResponse]:
        """Return the decoded body for *descriptor* and the response it came from.

        Cached bodies are served without touching the network. A cached body
        that no longer decodes is discarded and fetched again.

        Raises:
            ApiError: Any classified failure from the retry loop, or
                :class:`DecodeError` for a malformed 2xx body.
        """
        key = descriptor.cache_key()
        if self._cache is not None:
            entry = self._cache.get_entry(key)
            if entry is not None:
                try:
                    value = decode(entry.body, tp)
                except DecodeError:
                    logger.warning("Discarding undecodable cache entry for %s", descriptor.path)
                    self._cache.invalidate(key)
                else:
                    logger.debug("Cache hit: %s %s", descriptor.method, descriptor.path)
                    return value, TransportResponse(200, entry.body, dict(entry.headers))

        response = self._retrier.call(self._transport.send, descriptor)
        value = decode(response.body, tp)
        if self._cache is not None:
            self._cache.put(key, response.body, headers=response.headers)
        return value, response

    # ------------------------------------------------------------------ #
    # Pagination
    # ------------------------------------------------------------------ #

    def initial_state(self, endpoint: Endpoint, params: PagedParams) -> PageState:
        """Page state described by *params* (cursor if set, otherwise offset)."""
        self._builder.check_paging(endpoint, params)
        if params.cursor is not None:
            return CursorState(cursor=params.cursor, per_page=params.per_page)
        return OffsetState(
            page=params.page or 1,
            per_page=params.per_page or endpoint.default_per_page,
        )

    @staticmethod
    def apply_state(params: Any, state: PageState) -> Any:
        """Return a copy of *params* positioned at *state*."""
        if isinstance(state, CursorState):
            return params.model_copy(
                update={"cursor": state.cursor, "page": None, "per_page": state.per_page}
            )
        return params.model_copy(
            update={"cursor": None, "page": state.page, "per_page": state.per_page}
        )

    @abstractmethod
    def fetch_page(
        self,
        endpoint: str,
        params: Any,
        state: Optional[PageState] = None,
        parent_key: Optional[str] = None,
    ) -> PagedResult:
        """Fetch exactly one page. Implemented by each provider client."""

    def list_entities(
        self,
        endpoint: str,
        params: Any,
        parent_key: Optional[str] = None,
    ) -> PagedResult:
        """Fetch the single page described by *params*."""
        return self.fetch_page(endpoint, params, None, parent_key)

    def list_entities_stream(
        self,
        endpoint: str,
        params: Any,
        parent_key: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> PageStream:
        """Lazily iterate every entity matching *params*.

        Validation happens here, eagerly; network I/O happens only as the
        returned stream is consumed.

        Args:
            endpoint: Endpoint name.
            params: List parameters; their page/cursor is the starting point.
            parent_key: Parent entity key for scoped endpoints.
            limit: Stop after this many items.
        """
        ep = self.endpoint(endpoint)
        start = self.initial_state(ep, params)
        return PageStream(
            lambda state: self.fetch_page(endpoint, params, state, parent_key),
            start,
            limit=limit,
        )
