"""Zotero Web API client, parameters, and response models."""

from papers.zotero.client import ZoteroClient
from papers.zotero.endpoints import ZOTERO_ENDPOINTS
from papers.zotero.models import (
    ZoteroCollection,
    ZoteroGroup,
    ZoteroItem,
    ZoteroSearch,
    ZoteroTag,
)
from papers.zotero.params import ZoteroListParams, make_zotero_params

__all__ = [
    "ZOTERO_ENDPOINTS",
    "ZoteroClient",
    "ZoteroCollection",
    "ZoteroGroup",
    "ZoteroItem",
    "ZoteroListParams",
    "ZoteroSearch",
    "ZoteroTag",
    "make_zotero_params",
]
