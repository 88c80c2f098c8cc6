"""Pydantic models for Zotero Web API v3 objects.

Zotero wraps every object in an envelope (``key``, ``version``,
``library``, ``links``, ``meta``) around a ``data`` record whose fields
depend on the object type. Only the common envelope and a few
frequently-used data fields are declared.
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class _Envelope(BaseModel):
    model_config = ConfigDict(extra="allow")

    key: Optional[str] = None
    version: Optional[int] = None
    library: Optional[dict[str, Any]] = None
    links: Optional[dict[str, Any]] = None
    meta: dict[str, Any] = Field(default_factory=dict)


class ZoteroCreator(BaseModel):
    model_config = ConfigDict(extra="allow")

    creatorType: Optional[str] = None
    firstName: Optional[str] = None
    lastName: Optional[str] = None
    name: Optional[str] = None

    @property
    def display_name(self) -> str:
        if self.name:
            return self.name
        return " ".join(part for part in (self.firstName, self.lastName) if part)


class ZoteroItemData(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    key: Optional[str] = None
    itemType: Optional[str] = None
    title: Optional[str] = None
    creators: list[ZoteroCreator] = Field(default_factory=list)
    date: Optional[str] = None
    doi: Optional[str] = Field(default=None, alias="DOI")
    url: Optional[str] = None
    parentItem: Optional[str] = None
    contentType: Optional[str] = None
    filename: Optional[str] = None
    tags: list[dict[str, Any]] = Field(default_factory=list)
    collections: list[str] = Field(default_factory=list)


class ZoteroItem(_Envelope):
    data: ZoteroItemData = Field(default_factory=ZoteroItemData)

    @property
    def title(self) -> Optional[str]:
        return self.data.title


class ZoteroCollectionData(BaseModel):
    model_config = ConfigDict(extra="allow")

    key: Optional[str] = None
    name: Optional[str] = None
    parentCollection: Any = None


class ZoteroCollection(_Envelope):
    data: ZoteroCollectionData = Field(default_factory=ZoteroCollectionData)


class ZoteroTag(BaseModel):
    model_config = ConfigDict(extra="allow")

    tag: Optional[str] = None
    links: Optional[dict[str, Any]] = None
    meta: dict[str, Any] = Field(default_factory=dict)

    @property
    def num_items(self) -> Optional[int]:
        return self.meta.get("numItems")


class ZoteroSearch(_Envelope):
    data: dict[str, Any] = Field(default_factory=dict)


class ZoteroGroup(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: Optional[int] = None
    version: Optional[int] = None
    links: Optional[dict[str, Any]] = None
    meta: dict[str, Any] = Field(default_factory=dict)
    data: dict[str, Any] = Field(default_factory=dict)
