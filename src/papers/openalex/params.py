"""Typed, immutable parameter objects for OpenAlex requests.

Construct them through the validating factories (:func:`make_list_params`,
:func:`make_get_params`, :func:`make_find_params`), which turn every
validation failure into :class:`~papers.exceptions.InvalidParamsError`.
Endpoint-dependent checks (per-page ceiling, cursor support, the 10 000
result offset window) happen later in the request builder.
"""

from __future__ import annotations

from typing import Any, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator, model_validator

from papers.exceptions import InvalidParamsError

FilterValue = Union[str, int, float, bool, list[Union[str, int, float, bool]]]
FilterSpec = Union[str, dict[str, FilterValue]]

FIND_GET_MAX_QUERY = 2048
FIND_MAX_QUERY = 10_000


def _render(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def format_filter(spec: Optional[FilterSpec]) -> Optional[str]:
    """Render a filter mapping as an OpenAlex filter expression.

    Keys become comma-separated AND conditions in sorted order; list values
    become pipe-separated OR alternatives. A string is passed through.

    Example::

        >>> format_filter({"type": ["article", "preprint"], "is_oa": True})
        'is_oa:true,type:article|preprint'
    """
    if spec is None:
        return None
    if isinstance(spec, str):
        return spec.strip() or None
    conditions = []
    for key in sorted(spec):
        value = spec[key]
        if isinstance(value, list):
            if not value:
                continue
            rendered = "|".join(_render(v) for v in value)
        else:
            rendered = _render(value)
        conditions.append(f"{key}:{rendered}")
    return ",".join(conditions) or None


def _split_fields(value: Any) -> Any:
    if isinstance(value, str):
        return [part.strip() for part in value.split(",") if part.strip()]
    return value


class ListParams(BaseModel):
    """Parameters for OpenAlex list endpoints.

    Attributes:
        search: Full-text search query.
        filter: Filter mapping (``{"publication_year": 2024}``) or a raw
            expression (``"publication_year:2024,is_oa:true"``).
        sort: Sort field, optionally already suffixed with ``:desc``.
        descending: Append ``:desc`` to ``sort``.
        page: Offset pagination page (1-based).
        per_page: Results per page (1-200).
        cursor: Cursor token; ``"*"`` starts cursor pagination.
        sample: Return a random sample of this many results.
        seed: Seed for reproducible sampling; requires ``sample``.
        select: Fields to include in each result.
        group_by: Aggregate results by this field.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    search: Optional[str] = None
    filter: Optional[FilterSpec] = None
    sort: Optional[str] = None
    descending: bool = False
    page: Optional[int] = None
    per_page: Optional[int] = None
    cursor: Optional[str] = None
    sample: Optional[int] = None
    seed: Optional[int] = None
    select: Optional[list[str]] = None
    group_by: Optional[str] = None

    _split_select = field_validator("select", mode="before")(_split_fields)

    @model_validator(mode="after")
    def _check_combinations(self) -> ListParams:
        if self.page is not None and self.cursor is not None:
            raise ValueError("use either cursor or page pagination, not both")
        if self.seed is not None and self.sample is None:
            raise ValueError("seed is only meaningful together with sample")
        if self.sample is not None and self.cursor is not None:
            raise ValueError("sample cannot be combined with cursor pagination")
        if self.sample is not None and self.sample < 1:
            raise ValueError("sample must be positive")
        if self.descending and not self.sort:
            raise ValueError("descending requires a sort field")
        return self

    def sort_expression(self) -> Optional[str]:
        if not self.sort:
            return None
        if self.descending and not self.sort.endswith(":desc"):
            return f"{self.sort}:desc"
        return self.sort

    def query_items(self) -> dict[str, Any]:
        """Logical query parameters, excluding pagination."""
        return {
            "search": self.search,
            "filter": format_filter(self.filter),
            "sort": self.sort_expression(),
            "sample": self.sample,
            "seed": self.seed,
            "select": self.select,
            "group_by": self.group_by,
        }


class GetParams(BaseModel):
    """Parameters for single-entity lookups."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    select: Optional[list[str]] = None

    _split_select = field_validator("select", mode="before")(_split_fields)


class FindWorksParams(BaseModel):
    """Parameters for semantic search over works.

    Attributes:
        query: Title, abstract, or research question (up to 10 000 chars).
        count: Number of results (1-100).
        filter: Same syntax as :attr:`ListParams.filter`.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    query: str
    count: Optional[int] = None
    filter: Optional[FilterSpec] = None

    @field_validator("query")
    @classmethod
    def _non_empty_query(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("query must not be empty")
        if len(value) > FIND_MAX_QUERY:
            raise ValueError(f"query must be at most {FIND_MAX_QUERY} characters")
        return value

    @field_validator("count")
    @classmethod
    def _count_range(cls, value: Optional[int]) -> Optional[int]:
        if value is not None and not 1 <= value <= 100:
            raise ValueError("count must be between 1 and 100")
        return value

    @property
    def needs_post(self) -> bool:
        return len(self.query) > FIND_GET_MAX_QUERY

    def query_items(self) -> dict[str, Any]:
        return {"query": self.query, "count": self.count, "filter": format_filter(self.filter)}


def _build(model: type, values: Mapping[str, Any]) -> Any:
    try:
        return model(**values)
    except ValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'params'}: {err['msg']}"
            for err in exc.errors()
        )
        raise InvalidParamsError(f"Invalid {model.__name__}: {problems}") from exc


def make_list_params(**kwargs: Any) -> ListParams:
    """Validate *kwargs* into :class:`ListParams`.

    Raises:
        InvalidParamsError: On unknown fields, wrong types, or contradictory
            combinations (page with cursor, seed without sample, ...).
    """
    return _build(ListParams, kwargs)


def make_get_params(**kwargs: Any) -> GetParams:
    """Validate *kwargs* into :class:`GetParams`."""
    return _build(GetParams, kwargs)


def make_find_params(**kwargs: Any) -> FindWorksParams:
    """Validate *kwargs* into :class:`FindWorksParams`."""
    return _build(FindWorksParams, kwargs)


def normalize_id(entity_id: str) -> str:
    """Reduce an identifier to the form OpenAlex accepts in a path.

    Full OpenAlex URLs become short ids (``W2741809807``), bare DOIs get a
    ``doi:`` prefix, and anything else (``https://doi.org/...``, ORCIDs,
    RORs, ``pmid:...``) is passed through.
    """
    value = entity_id.strip()
    for prefix in ("https://openalex.org/", "http://openalex.org/"):
        if value.lower().startswith(prefix):
            return value[len(prefix):]
    if value.startswith("10.") and "/" in value:
        return f"doi:{value}"
    return value
