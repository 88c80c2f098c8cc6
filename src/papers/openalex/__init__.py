"""OpenAlex client, parameters, and response models."""

from papers.openalex.client import OpenAlexClient
from papers.openalex.endpoints import ENTITY_NAMES, OPENALEX_ENDPOINTS
from papers.openalex.models import (
    AutocompleteResult,
    FindWorksResult,
    GroupByResult,
    ListResponse,
    OpenAlexEntity,
)
from papers.openalex.params import (
    FindWorksParams,
    GetParams,
    ListParams,
    format_filter,
    make_find_params,
    make_get_params,
    make_list_params,
    normalize_id,
)

__all__ = [
    "ENTITY_NAMES",
    "OPENALEX_ENDPOINTS",
    "AutocompleteResult",
    "FindWorksParams",
    "FindWorksResult",
    "GetParams",
    "GroupByResult",
    "ListParams",
    "ListResponse",
    "OpenAlexClient",
    "OpenAlexEntity",
    "format_filter",
    "make_find_params",
    "make_get_params",
    "make_list_params",
    "normalize_id",
]
