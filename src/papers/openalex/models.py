"""Pydantic models for OpenAlex responses.

Entity models declare the handful of fields every entity type shares and
keep everything else as extra attributes, so new upstream fields never
break decoding.
"""

from __future__ import annotations

from typing import Any, Generic, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field

T = TypeVar("T")


class OpenAlexEntity(BaseModel):
    """Any OpenAlex entity (work, author, source, institution, ...).

    Type-specific fields (``doi``, ``orcid``, ``issn_l``, ...) are available
    as attributes and through :meth:`get`.
    """

    model_config = ConfigDict(extra="allow")

    id: Optional[str] = None
    display_name: Optional[str] = None
    works_count: Optional[int] = None
    cited_by_count: Optional[int] = None
    created_date: Optional[str] = None
    updated_date: Optional[str] = None

    @property
    def short_id(self) -> Optional[str]:
        """``W2741809807`` for ``https://openalex.org/W2741809807``."""
        if self.id is None:
            return None
        return self.id.rstrip("/").rsplit("/", 1)[-1]

    def get(self, name: str, default: Any = None) -> Any:
        value = getattr(self, name, None)
        return default if value is None else value


class ListMeta(BaseModel):
    model_config = ConfigDict(extra="allow")

    count: Optional[int] = None
    db_response_time_ms: Optional[int] = None
    page: Optional[int] = None
    per_page: Optional[int] = None
    next_cursor: Optional[str] = None
    groups_count: Optional[int] = None


class GroupByResult(BaseModel):
    """One aggregation bucket from a ``group_by`` request."""

    model_config = ConfigDict(extra="allow")

    key: Optional[str] = None
    key_display_name: Optional[str] = None
    count: int = 0


class ListResponse(BaseModel, Generic[T]):
    """Envelope returned by every OpenAlex list endpoint."""

    meta: ListMeta = Field(default_factory=ListMeta)
    results: list[T] = Field(default_factory=list)
    group_by: list[GroupByResult] = Field(default_factory=list)


class AutocompleteResult(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: Optional[str] = None
    short_id: Optional[str] = None
    display_name: Optional[str] = None
    entity_type: Optional[str] = None
    cited_by_count: Optional[int] = None
    works_count: Optional[int] = None
    hint: Optional[str] = None
    external_id: Optional[str] = None
    filter_key: Optional[str] = None


class AutocompleteResponse(BaseModel):
    meta: ListMeta = Field(default_factory=ListMeta)
    results: list[AutocompleteResult] = Field(default_factory=list)


class FindWorksResult(BaseModel):
    """A semantic search hit: similarity score plus the matched work."""

    model_config = ConfigDict(extra="allow")

    score: Optional[float] = None
    work: Optional[OpenAlexEntity] = None


class FindWorksResponse(BaseModel):
    meta: ListMeta = Field(default_factory=ListMeta)
    results: list[FindWorksResult] = Field(default_factory=list)
