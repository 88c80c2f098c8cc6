"""The closed set of OpenAlex endpoints and what each one supports."""

from __future__ import annotations

from papers.client.request import Endpoint

MAX_PER_PAGE = 200
MAX_OFFSET_RESULTS = 10_000


def _entity(name: str, autocomplete: bool = True) -> Endpoint:
    return Endpoint(
        name=name,
        path=name,
        supports_autocomplete=autocomplete,
        supports_cursor=True,
        default_per_page=25,
        max_per_page=MAX_PER_PAGE,
        max_offset_results=MAX_OFFSET_RESULTS,
        autocomplete_path=f"autocomplete/{name}" if autocomplete else None,
    )


OPENALEX_ENDPOINTS: dict[str, Endpoint] = {
    ep.name: ep
    for ep in (
        _entity("works"),
        _entity("authors"),
        _entity("sources"),
        _entity("institutions"),
        _entity("topics", autocomplete=False),
        _entity("publishers"),
        _entity("funders"),
        _entity("domains", autocomplete=False),
        _entity("fields", autocomplete=False),
        _entity("subfields"),
        # Legacy taxonomy: only the type-ahead endpoint is still served.
        Endpoint(
            name="concepts",
            path="concepts",
            supports_list=False,
            supports_get=False,
            supports_autocomplete=True,
            autocomplete_path="autocomplete/concepts",
        ),
    )
}

ENTITY_NAMES = tuple(name for name, ep in OPENALEX_ENDPOINTS.items() if ep.supports_list)
