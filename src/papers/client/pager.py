"""Offset and cursor pagination.

A :class:`PagedResult` is one logical page plus its continuation: the
:data:`PageState` to request next, or ``None`` when the result set is
exhausted.

* **Offset mode** (:class:`OffsetState`) -- exhausted when a page comes back
  shorter than requested, or when a known ``total_results`` has been covered.
* **Cursor mode** (:class:`CursorState`) -- exhausted *only* when the provider
  omits the next cursor; a full page may legitimately be the last one.
  A next cursor that was already used is a protocol violation.

:class:`PageStream` turns a single-page fetch function into a lazy item
iterable. It fetches one page per batch of items, never ahead of the
consumer, and every ``iter()`` starts over from the initial state.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Generic, Iterator, Optional, TypeVar, Union

from papers.exceptions import ProtocolViolationError

logger = logging.getLogger(__name__)

T = TypeVar("T")

START_CURSOR = "*"


@dataclass(frozen=True)
class OffsetState:
    """Position in an offset-paginated result set (1-based page)."""

    page: int = 1
    per_page: int = 25

    def __post_init__(self) -> None:
        if self.page < 1 or self.per_page < 1:
            raise ValueError("page and per_page must be positive")


@dataclass(frozen=True)
class CursorState:
    """Position in a cursor-paginated result set; ``"*"`` is the start."""

    cursor: str = START_CURSOR
    per_page: Optional[int] = None


PageState = Union[OffsetState, CursorState]


@dataclass
class PagedResult(Generic[T]):
    """One page of results.

    Attributes:
        items: Decoded entities, in provider order.
        total_results: Total count reported by the provider, if any.
        continuation: State for the next page, or ``None`` when exhausted.
        last_modified_version: Library version reported by the provider
            (Zotero), if any.
        group_by: Aggregation buckets (OpenAlex ``group_by``), if requested.
    """

    items: list[T]
    total_results: Optional[int] = None
    continuation: Optional[PageState] = None
    last_modified_version: Optional[int] = None
    group_by: list[Any] = field(default_factory=list)

    @property
    def exhausted(self) -> bool:
        return self.continuation is None


def next_offset_state(
    state: OffsetState,
    item_count: int,
    total_results: Optional[int],
    max_results: Optional[int] = None,
) -> Optional[OffsetState]:
    """Return the state after *state*, or ``None`` when the set is exhausted.

    A total of zero is not trusted on its own: some providers report
    ``0`` while still returning items, so a zero total only ends paging
    together with a short page.

    *max_results* is the provider's offset window. Paging stops once the
    next page would reach past it, however large the reported total.
    """
    if item_count < state.per_page:
        return None
    if total_results and state.page * state.per_page >= total_results:
        return None
    if max_results is not None and (state.page + 1) * state.per_page > max_results:
        return None
    return OffsetState(page=state.page + 1, per_page=state.per_page)


def next_cursor_state(state: CursorState, next_cursor: Optional[str]) -> Optional[CursorState]:
    """Return the state after *state*, or ``None`` when no next cursor was given.

    Raises:
        ProtocolViolationError: If the provider hands back the cursor that
            was just used.
    """
    if not next_cursor:
        return None
    if next_cursor == state.cursor:
        raise ProtocolViolationError(f"Provider repeated cursor {next_cursor!r}")
    return CursorState(cursor=next_cursor, per_page=state.per_page)


FetchPage = Callable[[PageState], PagedResult[T]]


class PageStream(Generic[T]):
    """Lazy, finite, restartable sequence of items over paged results.

    Args:
        fetch_page: Fetches exactly one page for a given state.
        initial_state: Where every iteration starts.
        limit: Stop after this many items (no further page is fetched once
            it is reached).

    Example::

        stream = PageStream(lambda s: client.fetch_page("works", params, s),
                            CursorState("*", per_page=200))
        for work in stream:
            ...
    """

    def __init__(
        self,
        fetch_page: FetchPage[T],
        initial_state: PageState,
        limit: Optional[int] = None,
    ) -> None:
        if limit is not None and limit < 0:
            raise ValueError("limit must not be negative")
        self._fetch_page = fetch_page
        self._initial_state = initial_state
        self._limit = limit

    def __iter__(self) -> Iterator[T]:
        remaining = self._limit
        if remaining == 0:
            return
        for page in self.pages():
            for item in page.items:
                yield item
                if remaining is not None:
                    remaining -= 1
                    if remaining == 0:
                        return

    def pages(self) -> Iterator[PagedResult[T]]:
        """Yield whole pages, following continuations until exhaustion.

        Raises:
            ProtocolViolationError: If a cursor is handed out twice or an
                offset continuation does not move forward.
        """
        state: Optional[PageState] = self._initial_state
        seen_cursors: set[str] = set()
        last_page = 0
        while state is not None:
            if isinstance(state, CursorState):
                if state.cursor in seen_cursors:
                    raise ProtocolViolationError(
                        f"Provider repeated cursor {state.cursor!r}"
                    )
                seen_cursors.add(state.cursor)
            else:
                if state.page <= last_page:
                    raise ProtocolViolationError(
                        f"Offset pagination went backwards to page {state.page}"
                    )
                last_page = state.page

            result = self._fetch_page(state)
            logger.debug("Fetched page %s with %d items", state, len(result.items))
            yield result
            state = result.continuation
