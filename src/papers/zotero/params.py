"""Typed, immutable parameter objects for Zotero list requests."""

from __future__ import annotations

from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator, model_validator

from papers.exceptions import InvalidParamsError

MAX_ITEM_KEYS = 50


def _as_list(value: Any) -> Any:
    if isinstance(value, str):
        return [value]
    return value


class ZoteroListParams(BaseModel):
    """Parameters accepted by Zotero library list endpoints.

    Attributes:
        search: Quick search (``q``).
        search_mode: ``titleCreatorYear`` (default upstream) or ``everything``.
        tag: Tag alternatives; matching any one is enough (``a || b``).
        item_type: Item type filter, e.g. ``journalArticle`` or ``-attachment``.
        item_key: Restrict to these item keys (at most 50).
        since: Only objects modified after this library version.
        sort: Sort field, e.g. ``dateModified`` or ``title``.
        direction: ``asc`` or ``desc``.
        page: 1-based page, sent as a ``start`` offset.
        per_page: Page size (1-100), sent as ``limit``.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    search: Optional[str] = None
    search_mode: Optional[Literal["titleCreatorYear", "everything"]] = None
    tag: Optional[list[str]] = None
    item_type: Optional[str] = None
    item_key: Optional[list[str]] = None
    since: Optional[int] = None
    sort: Optional[str] = None
    direction: Optional[Literal["asc", "desc"]] = None
    page: Optional[int] = None
    per_page: Optional[int] = None
    cursor: Optional[str] = None

    _tag_list = field_validator("tag", mode="before")(_as_list)

    @field_validator("item_key", mode="before")
    @classmethod
    def _split_keys(cls, value: Any) -> Any:
        if isinstance(value, str):
            return [key.strip() for key in value.split(",") if key.strip()]
        return value

    @model_validator(mode="after")
    def _check(self) -> ZoteroListParams:
        if self.cursor is not None:
            raise ValueError("Zotero does not support cursor pagination")
        if self.item_key is not None and len(self.item_key) > MAX_ITEM_KEYS:
            raise ValueError(f"at most {MAX_ITEM_KEYS} item keys per request")
        if self.since is not None and self.since < 0:
            raise ValueError("since must be a library version >= 0")
        if self.search_mode is not None and not self.search:
            raise ValueError("search_mode requires search")
        return self

    def query_items(self) -> dict[str, Any]:
        return {
            "search": self.search,
            "search_mode": self.search_mode,
            "tag": self.tag,
            "item_type": self.item_type,
            "item_key": self.item_key,
            "since": self.since,
            "sort": self.sort,
            "direction": self.direction,
        }


def make_zotero_params(**kwargs: Any) -> ZoteroListParams:
    """Validate *kwargs* into :class:`ZoteroListParams`.

    Raises:
        InvalidParamsError: On unknown fields or invalid values.
    """
    try:
        return ZoteroListParams(**kwargs)
    except ValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'params'}: {err['msg']}"
            for err in exc.errors()
        )
        raise InvalidParamsError(f"Invalid ZoteroListParams: {problems}") from exc
