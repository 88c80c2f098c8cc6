"""Request descriptors, endpoint capabilities, and the request builder.

A :class:`RequestDescriptor` is the immutable, fully-resolved description of
one HTTP call: method, base URL, path, query parameters, headers, an optional
JSON body, and an optional :class:`Credential`. Everything downstream -- the
cache key, the transport, the retry loop -- works from descriptors only.

Query parameters are stored as a sorted tuple so that two semantically equal
parameter objects always encode to byte-identical query strings and
therefore to the same cache key, in any process.

:class:`Endpoint` is a small closed table entry describing what an endpoint
can do (list, get, autocomplete, cursor paging, per-page maximum). The
:class:`RequestBuilder` consults it to reject impossible requests before any
I/O happens.
"""

from __future__ import annotations

import hashlib
import json
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Protocol
from urllib.parse import quote, urlencode

from papers.exceptions import InvalidParamsError, UnsupportedError

HEADER = "header"
QUERY = "query"


@dataclass(frozen=True)
class Credential:
    """A single API credential attached to every outbound request.

    Attributes:
        name: Header name or query parameter name carrying the secret.
        value: The secret itself. Excluded from ``repr``.
        location: ``"header"`` or ``"query"``.
    """

    name: str
    value: str = field(repr=False)
    location: str = HEADER

    def __post_init__(self) -> None:
        if not self.value:
            raise ValueError("Credential value must be a non-empty string")
        if self.location not in (HEADER, QUERY):
            raise ValueError(f"Unknown credential location: {self.location!r}")

    @property
    def fingerprint(self) -> str:
        """Short, one-way digest used to partition the cache per credential."""
        return hashlib.sha256(self.value.encode()).hexdigest()[:16]


@dataclass(frozen=True)
class RequestDescriptor:
    """Immutable description of one HTTP request.

    Build instances through :meth:`RequestDescriptor.create` so that
    parameters are filtered and sorted consistently.
    """

    method: str
    base_url: str
    path: str
    params: tuple[tuple[str, str], ...] = ()
    headers: tuple[tuple[str, str], ...] = ()
    json_body: Optional[str] = None
    credential: Optional[Credential] = None

    @classmethod
    def create(
        cls,
        method: str,
        base_url: str,
        path: str,
        params: Optional[Mapping[str, str]] = None,
        headers: Optional[Mapping[str, str]] = None,
        json_body: Optional[Mapping[str, Any]] = None,
        credential: Optional[Credential] = None,
    ) -> RequestDescriptor:
        """Normalise inputs and return a descriptor.

        ``None`` and empty-string parameter values are dropped. The JSON body,
        if any, is serialised with sorted keys so that it hashes stably.
        """
        clean = {k: v for k, v in (params or {}).items() if v is not None and v != ""}
        body = None
        if json_body is not None:
            body = json.dumps(
                {k: v for k, v in json_body.items() if v is not None},
                sort_keys=True,
                separators=(",", ":"),
            )
        return cls(
            method=method.upper(),
            base_url=base_url.rstrip("/"),
            path="/" + path.lstrip("/"),
            params=tuple(sorted(clean.items())),
            headers=tuple(sorted((headers or {}).items())),
            json_body=body,
            credential=credential,
        )

    @property
    def url(self) -> str:
        """Absolute URL without the query string."""
        return f"{self.base_url}{self.path}"

    @property
    def query_string(self) -> str:
        """Deterministic URL-encoded query string (credential excluded)."""
        return urlencode(self.params)

    def cache_key(self) -> str:
        """Return the content-addressed cache key for this request.

        The key covers method, URL, sorted query parameters, headers, and the
        JSON body. The credential contributes only its fingerprint, so
        responses are partitioned per key without the secret ever being
        written to disk.
        """
        parts = [self.method, self.url, self.query_string]
        if self.headers:
            parts.append(urlencode(self.headers))
        if self.json_body is not None:
            parts.append(self.json_body)
        if self.credential is not None:
            parts.append(f"cred={self.credential.fingerprint}")
        raw = "|".join(parts)
        return hashlib.sha256(raw.encode()).hexdigest()


# ------------------------------------------------------------------ #
# Endpoint capabilities
# ------------------------------------------------------------------ #


@dataclass(frozen=True)
class Endpoint:
    """Capability record for one API endpoint family.

    Attributes:
        name: Logical name used by callers (e.g. ``"works"``, ``"items_top"``).
        path: Path relative to the client's base path. May contain a
            ``{key}`` placeholder for endpoints scoped to a parent entity.
        supports_list: Whether the endpoint returns paged lists.
        supports_get: Whether ``{path}/{id}`` fetches a single entity.
        supports_autocomplete: Whether a type-ahead endpoint exists.
        supports_cursor: Whether cursor pagination is available.
        default_per_page: Page size the provider uses when none is sent.
        max_per_page: Largest page size the provider accepts.
        max_offset_results: Upper bound on ``page * per_page`` for offset
            paging, if the provider enforces one.
        autocomplete_path: Path of the type-ahead endpoint.
    """

    name: str
    path: str
    supports_list: bool = True
    supports_get: bool = True
    supports_autocomplete: bool = False
    supports_cursor: bool = False
    default_per_page: int = 25
    max_per_page: int = 200
    max_offset_results: Optional[int] = None
    autocomplete_path: Optional[str] = None

    @property
    def needs_parent(self) -> bool:
        return "{key}" in self.path

    def resolve_path(self, parent_key: Optional[str] = None) -> str:
        if self.needs_parent:
            if not parent_key:
                raise InvalidParamsError(f"Endpoint '{self.name}' requires a parent key")
            return self.path.replace("{key}", quote(parent_key, safe=""))
        if parent_key:
            raise InvalidParamsError(f"Endpoint '{self.name}' does not take a parent key")
        return self.path


def lookup_endpoint(table: Mapping[str, Endpoint], name: str) -> Endpoint:
    """Return ``table[name]`` or raise :class:`InvalidParamsError` listing valid names."""
    try:
        return table[name]
    except KeyError:
        known = ", ".join(sorted(table))
        raise InvalidParamsError(f"Unknown endpoint '{name}'. Expected one of: {known}") from None


class PagedParams(Protocol):
    """What the builder needs from a list parameter object."""

    page: Optional[int]
    per_page: Optional[int]
    cursor: Optional[str]

    def query_items(self) -> dict[str, Any]: ...


# ------------------------------------------------------------------ #
# Request builder
# ------------------------------------------------------------------ #


def encode_value(value: Any, separator: str = ",") -> Optional[str]:
    """Render one logical parameter value as its wire string.

    Lists are joined with *separator*, booleans become ``true``/``false``,
    and ``None`` or empty lists yield ``None`` so the parameter is omitted.
    """
    if value is None:
        return None
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, tuple)):
        items = [str(v) for v in value if v is not None and v != ""]
        return separator.join(items) if items else None
    return str(value)


class RequestBuilder:
    """Turns typed parameter objects into :class:`RequestDescriptor` instances.

    One builder exists per client. It owns the provider's conventions: base
    URL, wire-name translation table, list join separators, how offset
    pages are expressed (``page`` number or ``start`` offset), static
    parameters and headers, and the credential.

    Args:
        base_url: Scheme and host, e.g. ``https://api.openalex.org``.
        base_path: Prefix prepended to every endpoint path.
        wire_names: Logical parameter name to query key, for names that differ.
        separators: Per-parameter list join separator (default ``","``).
        offset_style: ``"page"`` sends a 1-based page number; ``"start"``
            sends a 0-based item offset.
        per_page_name: Logical name of the page-size parameter.
        static_params: Sent with every request (e.g. ``mailto``).
        headers: Sent with every request (e.g. API version headers).
        credential: Optional credential attached to every request.
    """

    def __init__(
        self,
        base_url: str,
        base_path: str = "",
        wire_names: Optional[Mapping[str, str]] = None,
        separators: Optional[Mapping[str, str]] = None,
        offset_style: str = "page",
        static_params: Optional[Mapping[str, str]] = None,
        headers: Optional[Mapping[str, str]] = None,
        credential: Optional[Credential] = None,
    ) -> None:
        if offset_style not in ("page", "start"):
            raise ValueError(f"Unknown offset style: {offset_style!r}")
        self.base_url = base_url
        self.base_path = base_path.rstrip("/")
        self.wire_names = dict(wire_names or {})
        self.separators = dict(separators or {})
        self.offset_style = offset_style
        self.static_params = dict(static_params or {})
        self.headers = dict(headers or {})
        self.credential = credential

    # ------------------------------------------------------------------ #
    # Public builders
    # ------------------------------------------------------------------ #

    def encode(self, values: Mapping[str, Any]) -> dict[str, str]:
        """Translate logical names to wire names and encode values, dropping unset ones."""
        encoded: dict[str, str] = {}
        for name, value in values.items():
            wire = self.wire_names.get(name, name)
            text = encode_value(value, self.separators.get(name, ","))
            if text is not None:
                encoded[wire] = text
        return encoded

    def build(
        self,
        path: str,
        values: Optional[Mapping[str, Any]] = None,
        method: str = "GET",
        json_body: Optional[Mapping[str, Any]] = None,
    ) -> RequestDescriptor:
        """Build a descriptor for *path* (relative to the base path)."""
        params = dict(self.static_params)
        params.update(self.encode(values or {}))
        return RequestDescriptor.create(
            method=method,
            base_url=self.base_url,
            path=f"{self.base_path}/{path.lstrip('/')}",
            params=params,
            headers=self.headers,
            json_body=json_body,
            credential=self.credential,
        )

    def list_request(
        self,
        endpoint: Endpoint,
        params: PagedParams,
        parent_key: Optional[str] = None,
    ) -> RequestDescriptor:
        """Build a list request after validating pagination against *endpoint*.

        Raises:
            UnsupportedError: If *endpoint* cannot be listed.
            InvalidParamsError: If pagination controls are contradictory or
                out of the provider's range.
        """
        if not endpoint.supports_list:
            raise UnsupportedError(f"Endpoint '{endpoint.name}' does not support listing")
        self.check_paging(endpoint, params)

        values = dict(params.query_items())
        values["per_page"] = params.per_page
        if params.cursor is not None:
            values["cursor"] = params.cursor
        elif params.page is not None:
            if self.offset_style == "start":
                per_page = params.per_page or endpoint.default_per_page
                values["start"] = (params.page - 1) * per_page
            else:
                values["page"] = params.page
        return self.build(endpoint.resolve_path(parent_key), values)

    def get_request(
        self,
        endpoint: Endpoint,
        entity_id: str,
        values: Optional[Mapping[str, Any]] = None,
    ) -> RequestDescriptor:
        """Build a single-entity request for ``{endpoint.path}/{entity_id}``."""
        if not endpoint.supports_get:
            raise UnsupportedError(f"Endpoint '{endpoint.name}' does not support get-by-id")
        if not entity_id or not entity_id.strip():
            raise InvalidParamsError("Entity id must be a non-empty string")
        path = f"{endpoint.resolve_path()}/{quote(entity_id.strip(), safe='/:')}"
        return self.build(path, values)

    def autocomplete_request(self, endpoint: Endpoint, query: str) -> RequestDescriptor:
        """Build a type-ahead request, failing fast where the provider has none."""
        if not endpoint.supports_autocomplete or endpoint.autocomplete_path is None:
            raise UnsupportedError(
                f"Autocomplete is not available for '{endpoint.name}'"
            )
        if not query or not query.strip():
            raise InvalidParamsError("Autocomplete query must be a non-empty string")
        return self.build(endpoint.autocomplete_path, {"q": query.strip()})

    # ------------------------------------------------------------------ #
    # Validation
    # ------------------------------------------------------------------ #

    @staticmethod
    def check_paging(endpoint: Endpoint, params: PagedParams) -> None:
        """Reject pagination controls the endpoint cannot honour."""
        if params.cursor is not None and params.page is not None:
            raise InvalidParamsError("Use either cursor or page pagination, not both")
        if params.cursor is not None and not endpoint.supports_cursor:
            raise InvalidParamsError(
                f"Endpoint '{endpoint.name}' does not support cursor pagination"
            )
        if params.cursor is not None and not params.cursor.strip():
            raise InvalidParamsError("Cursor must be a non-empty token; use '*' to start")
        if params.per_page is not None and not 1 <= params.per_page <= endpoint.max_per_page:
            raise InvalidParamsError(
                f"per_page must be between 1 and {endpoint.max_per_page} "
                f"for '{endpoint.name}', got {params.per_page}"
            )
        if params.page is not None:
            if params.page < 1:
                raise InvalidParamsError(f"page must be >= 1, got {params.page}")
            per_page = params.per_page or endpoint.default_per_page
            limit = endpoint.max_offset_results
            if limit is not None and params.page * per_page > limit:
                raise InvalidParamsError(
                    f"Offset pagination is limited to {limit} results "
                    f"(page * per_page); use cursor pagination instead"
                )
