"""Typed client for the OpenAlex REST API."""

from __future__ import annotations

import logging
from typing import Callable, Optional, Union

import httpx

from papers.cache import ResponseCache
from papers.client.base import BaseClient
from papers.client.pager import (
    CursorState,
    PagedResult,
    PageState,
    PageStream,
    next_cursor_state,
    next_offset_state,
)
from papers.client.request import QUERY, Credential, RequestBuilder
from papers.client.transport import HttpTransport
from papers.exceptions import InvalidParamsError
from papers.models import RequestConfig
from papers.openalex.endpoints import OPENALEX_ENDPOINTS
from papers.openalex.models import (
    AutocompleteResponse,
    AutocompleteResult,
    FindWorksResponse,
    FindWorksResult,
    ListResponse,
    OpenAlexEntity,
)
from papers.openalex.params import (
    FindWorksParams,
    GetParams,
    ListParams,
    make_get_params,
    normalize_id,
)

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.openalex.org"


class OpenAlexClient(BaseClient):
    """Client for works, authors, sources, institutions and the other
    OpenAlex entity types.

    Args:
        api_key: Optional premium/semantic-search key, sent as the
            ``api_key`` query parameter.
        mailto: Contact address; joins the polite pool.
        base_url: API root.
        request_config: Timeout and retry tuning.
        cache: Optional :class:`~papers.cache.ResponseCache`.
        http_client: Optional pre-built :class:`httpx.Client`.
        transport: Optional replacement transport.
        sleep: Sleep function used between retries.

    Example::

        with OpenAlexClient(mailto="me@example.org") as client:
            params = make_list_params(search="graphene", per_page=50)
            for work in client.list_entities_stream("works", params, limit=200):
                print(work.display_name)
    """

    endpoints = OPENALEX_ENDPOINTS
    response_headers = ()

    def __init__(
        self,
        api_key: Optional[str] = None,
        mailto: Optional[str] = None,
        base_url: str = DEFAULT_BASE_URL,
        request_config: Optional[RequestConfig] = None,
        cache: Optional[ResponseCache] = None,
        http_client: Optional[httpx.Client] = None,
        transport: Optional[HttpTransport] = None,
        sleep: Optional[Callable[[float], None]] = None,
    ) -> None:
        credential = Credential("api_key", api_key, QUERY) if api_key else None
        builder = RequestBuilder(
            base_url,
            wire_names={"per_page": "per-page"},
            static_params={"mailto": mailto} if mailto else None,
            credential=credential,
        )
        super().__init__(builder, request_config, cache, http_client, transport, sleep)

    # ------------------------------------------------------------------ #
    # Entities
    # ------------------------------------------------------------------ #

    def get_entity(
        self,
        endpoint: str,
        entity_id: str,
        select: Union[GetParams, list[str], str, None] = None,
    ) -> OpenAlexEntity:
        """Fetch one entity by OpenAlex id, URL, DOI, or other external id.

        Raises:
            UnsupportedError: If *endpoint* has no get-by-id.
            ClientError: 404 for an unknown id.
        """
        params = select if isinstance(select, GetParams) else make_get_params(select=select)
        ep = self.endpoint(endpoint)
        descriptor = self._builder.get_request(
            ep, normalize_id(entity_id), {"select": params.select}
        )
        entity, _ = self.fetch(descriptor, OpenAlexEntity)
        return entity

    def fetch_page(
        self,
        endpoint: str,
        params: ListParams,
        state: Optional[PageState] = None,
        parent_key: Optional[str] = None,
    ) -> PagedResult[OpenAlexEntity]:
        ep = self.endpoint(endpoint)
        if state is None:
            state = self.initial_state(ep, params)
        positioned = self.apply_state(params, state)
        descriptor = self._builder.list_request(ep, positioned, parent_key)
        body, _ = self.fetch(descriptor, ListResponse[OpenAlexEntity])

        if isinstance(state, CursorState):
            continuation = next_cursor_state(state, body.meta.next_cursor)
        else:
            continuation = next_offset_state(
                state, len(body.results), body.meta.count, ep.max_offset_results
            )
        return PagedResult(
            items=body.results,
            total_results=body.meta.count,
            continuation=continuation,
            group_by=body.group_by,
        )

    def list_entities(
        self,
        endpoint: str,
        params: Optional[ListParams] = None,
        parent_key: Optional[str] = None,
    ) -> PagedResult[OpenAlexEntity]:
        return super().list_entities(endpoint, params or ListParams(), parent_key)

    def list_entities_stream(
        self,
        endpoint: str,
        params: Optional[ListParams] = None,
        parent_key: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> PageStream[OpenAlexEntity]:
        return super().list_entities_stream(endpoint, params or ListParams(), parent_key, limit)

    # ------------------------------------------------------------------ #
    # Search helpers
    # ------------------------------------------------------------------ #

    def autocomplete(self, endpoint: str, query: str) -> list[AutocompleteResult]:
        """Type-ahead suggestions for *query*.

        Raises:
            UnsupportedError: For topics, domains and fields, before any
                request is made.
        """
        descriptor = self._builder.autocomplete_request(self.endpoint(endpoint), query)
        body, _ = self.fetch(descriptor, AutocompleteResponse)
        return body.results

    def find_works(self, params: FindWorksParams) -> list[FindWorksResult]:
        """Semantic search for works similar to ``params.query``.

        Queries longer than 2048 characters are sent as a JSON ``POST``
        body; shorter ones as a ``GET``. Requires an API key.

        Raises:
            InvalidParamsError: If the client has no API key.
        """
        if self._builder.credential is None:
            raise InvalidParamsError("Semantic search requires an OpenAlex API key")
        items = params.query_items()
        if params.needs_post:
            logger.debug("Query is %d characters, using POST", len(params.query))
            descriptor = self._builder.build("find/works", method="POST", json_body=items)
        else:
            descriptor = self._builder.build("find/works", items)
        body, _ = self.fetch(descriptor, FindWorksResponse)
        return body.results
