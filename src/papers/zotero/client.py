"""Typed client for the Zotero Web API (v3)."""

from __future__ import annotations

from typing import Any, Callable, Optional

import httpx

from papers.cache import ResponseCache
from papers.client.base import BaseClient
from papers.client.pager import OffsetState, PagedResult, PageState, PageStream, next_offset_state
from papers.client.request import HEADER, Credential, RequestBuilder
from papers.client.transport import HttpTransport
from papers.exceptions import ConfigError, InvalidParamsError, UnsupportedError
from papers.models import RequestConfig
from papers.zotero.endpoints import ZOTERO_ENDPOINTS, ZOTERO_MODELS
from papers.zotero.models import ZoteroCollection, ZoteroItem, ZoteroSearch
from papers.zotero.params import ZoteroListParams

DEFAULT_BASE_URL = "https://api.zotero.org"
API_VERSION = "3"

TOTAL_RESULTS = "total-results"
LAST_MODIFIED_VERSION = "last-modified-version"


def _int_header(value: Optional[str]) -> Optional[int]:
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        return None


class ZoteroClient(BaseClient):
    """Client for one Zotero user or group library.

    Args:
        library_id: Numeric user or group id. Required.
        api_key: Optional key, sent as the ``Zotero-API-Key`` header.
            Public libraries can be read without one.
        library_type: ``"user"`` or ``"group"``.
        base_url: API root.
        request_config: Timeout and retry tuning.
        cache: Optional :class:`~papers.cache.ResponseCache`.
        http_client: Optional pre-built :class:`httpx.Client`.
        transport: Optional replacement transport.
        sleep: Sleep function used between retries.

    Raises:
        ConfigError: If *library_id* is empty or *library_type* is unknown.
    """

    endpoints = ZOTERO_ENDPOINTS
    response_headers = ("Total-Results", "Last-Modified-Version")

    def __init__(
        self,
        library_id: str,
        api_key: Optional[str] = None,
        library_type: str = "user",
        base_url: str = DEFAULT_BASE_URL,
        request_config: Optional[RequestConfig] = None,
        cache: Optional[ResponseCache] = None,
        http_client: Optional[httpx.Client] = None,
        transport: Optional[HttpTransport] = None,
        sleep: Optional[Callable[[float], None]] = None,
    ) -> None:
        library_id = str(library_id or "").strip()
        if not library_id:
            raise ConfigError("A Zotero library id is required (set ZOTERO_USER_ID)")
        if library_type not in ("user", "group"):
            raise ConfigError(f"library_type must be 'user' or 'group', got {library_type!r}")
        self.library_id = library_id
        self.library_type = library_type

        credential = Credential("Zotero-API-Key", api_key, HEADER) if api_key else None
        headers = {"Zotero-API-Version": API_VERSION}
        builder = RequestBuilder(
            base_url,
            base_path=f"/{library_type}s/{library_id}",
            wire_names={
                "search": "q",
                "search_mode": "qmode",
                "item_type": "itemType",
                "item_key": "itemKey",
                "per_page": "limit",
            },
            separators={"tag": " || "},
            offset_style="start",
            static_params={"format": "json"},
            headers=headers,
            credential=credential,
        )
        self._root_builder = RequestBuilder(base_url, headers=headers, credential=credential)
        super().__init__(builder, request_config, cache, http_client, transport, sleep)

    # ------------------------------------------------------------------ #
    # Generic facade
    # ------------------------------------------------------------------ #

    def get_entity(self, endpoint: str, key: str) -> Any:
        """Fetch one item, collection, or saved search by key."""
        ep = self.endpoint(endpoint)
        descriptor = self._builder.get_request(ep, key)
        entity, _ = self.fetch(descriptor, ZOTERO_MODELS[ep.name])
        return entity

    def fetch_page(
        self,
        endpoint: str,
        params: ZoteroListParams,
        state: Optional[PageState] = None,
        parent_key: Optional[str] = None,
    ) -> PagedResult[Any]:
        ep = self.endpoint(endpoint)
        if ep.name == "groups" and self.library_type != "user":
            raise UnsupportedError("Groups can only be listed for a user library")
        if state is None:
            state = self.initial_state(ep, params)
        assert isinstance(state, OffsetState)
        positioned = self.apply_state(params, state)
        descriptor = self._builder.list_request(ep, positioned, parent_key)
        items, response = self.fetch(descriptor, list[ZOTERO_MODELS[ep.name]])

        total = _int_header(response.header(TOTAL_RESULTS))
        return PagedResult(
            items=items,
            total_results=total,
            continuation=next_offset_state(state, len(items), total),
            last_modified_version=_int_header(response.header(LAST_MODIFIED_VERSION)),
        )

    def list_entities(
        self,
        endpoint: str,
        params: Optional[ZoteroListParams] = None,
        parent_key: Optional[str] = None,
    ) -> PagedResult[Any]:
        return super().list_entities(endpoint, params or ZoteroListParams(), parent_key)

    def list_entities_stream(
        self,
        endpoint: str,
        params: Optional[ZoteroListParams] = None,
        parent_key: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> PageStream[Any]:
        return super().list_entities_stream(
            endpoint, params or ZoteroListParams(), parent_key, limit
        )

    def autocomplete(self, endpoint: str, query: str) -> list[Any]:
        """Zotero has no type-ahead endpoints; always raises."""
        raise UnsupportedError("Zotero does not provide autocomplete")

    # ------------------------------------------------------------------ #
    # Items
    # ------------------------------------------------------------------ #

    def list_items(self, params: Optional[ZoteroListParams] = None) -> PagedResult[ZoteroItem]:
        return self.list_entities("items", params)

    def list_top_items(self, params: Optional[ZoteroListParams] = None) -> PagedResult[ZoteroItem]:
        return self.list_entities("items_top", params)

    def list_trash_items(
        self, params: Optional[ZoteroListParams] = None
    ) -> PagedResult[ZoteroItem]:
        return self.list_entities("items_trash", params)

    def list_item_children(
        self, key: str, params: Optional[ZoteroListParams] = None
    ) -> PagedResult[ZoteroItem]:
        return self.list_entities("item_children", params, parent_key=key)

    def list_item_tags(self, params: Optional[ZoteroListParams] = None) -> PagedResult[Any]:
        """Tags used by the items matching *params*."""
        return self.list_entities("item_tags", params)

    def get_item(self, key: str) -> ZoteroItem:
        return self.get_entity("items", key)

    # ------------------------------------------------------------------ #
    # Collections
    # ------------------------------------------------------------------ #

    def list_collections(
        self, params: Optional[ZoteroListParams] = None
    ) -> PagedResult[ZoteroCollection]:
        return self.list_entities("collections", params)

    def list_top_collections(
        self, params: Optional[ZoteroListParams] = None
    ) -> PagedResult[ZoteroCollection]:
        return self.list_entities("collections_top", params)

    def get_collection(self, key: str) -> ZoteroCollection:
        return self.get_entity("collections", key)

    def list_collection_items(
        self, key: str, params: Optional[ZoteroListParams] = None, top: bool = False
    ) -> PagedResult[ZoteroItem]:
        endpoint = "collection_items_top" if top else "collection_items"
        return self.list_entities(endpoint, params, parent_key=key)

    def list_subcollections(
        self, key: str, params: Optional[ZoteroListParams] = None
    ) -> PagedResult[ZoteroCollection]:
        return self.list_entities("subcollections", params, parent_key=key)

    # ------------------------------------------------------------------ #
    # Tags, searches, groups, keys
    # ------------------------------------------------------------------ #

    def list_tags(self, params: Optional[ZoteroListParams] = None) -> PagedResult[Any]:
        return self.list_entities("tags", params)

    def list_searches(self) -> PagedResult[ZoteroSearch]:
        return self.list_entities("searches")

    def get_search(self, key: str) -> ZoteroSearch:
        return self.get_entity("searches", key)

    def list_groups(self) -> PagedResult[Any]:
        """Groups the library's user belongs to (user libraries only)."""
        return self.list_entities("groups")

    def get_key_info(self) -> dict[str, Any]:
        """Describe the configured API key (owner and access rights).

        Raises:
            InvalidParamsError: If the client has no API key.
        """
        if self._builder.credential is None:
            raise InvalidParamsError("Key information requires a Zotero API key")
        descriptor = self._root_builder.build("keys/current")
        info, _ = self.fetch(descriptor, dict[str, Any])
        return info
