"""Zotero library endpoints and the model each one returns."""

from __future__ import annotations

from papers.client.request import Endpoint
from papers.zotero.models import ZoteroCollection, ZoteroGroup, ZoteroItem, ZoteroSearch, ZoteroTag

MAX_PER_PAGE = 100


def _ep(name: str, path: str, get: bool = False) -> Endpoint:
    return Endpoint(
        name=name,
        path=path,
        supports_get=get,
        default_per_page=25,
        max_per_page=MAX_PER_PAGE,
    )


ZOTERO_ENDPOINTS: dict[str, Endpoint] = {
    ep.name: ep
    for ep in (
        _ep("items", "items", get=True),
        _ep("items_top", "items/top"),
        _ep("items_trash", "items/trash"),
        _ep("item_children", "items/{key}/children"),
        _ep("item_tags", "items/tags"),
        _ep("collections", "collections", get=True),
        _ep("collections_top", "collections/top"),
        _ep("collection_items", "collections/{key}/items"),
        _ep("collection_items_top", "collections/{key}/items/top"),
        _ep("subcollections", "collections/{key}/collections"),
        _ep("tags", "tags"),
        _ep("searches", "searches", get=True),
        _ep("groups", "groups"),
    )
}

ZOTERO_MODELS: dict[str, type] = {
    "items": ZoteroItem,
    "items_top": ZoteroItem,
    "items_trash": ZoteroItem,
    "item_children": ZoteroItem,
    "item_tags": ZoteroTag,
    "collections": ZoteroCollection,
    "collections_top": ZoteroCollection,
    "collection_items": ZoteroItem,
    "collection_items_top": ZoteroItem,
    "subcollections": ZoteroCollection,
    "tags": ZoteroTag,
    "searches": ZoteroSearch,
    "groups": ZoteroGroup,
}
