"""Tests for offset/cursor continuation and PageStream."""

from __future__ import annotations

import pytest

from papers.client.pager import (
    CursorState,
    OffsetState,
    PagedResult,
    PageStream,
    next_cursor_state,
    next_offset_state,
)
from papers.exceptions import ProtocolViolationError


class OffsetSource:
    """Serves *total* integers in offset pages, counting fetches."""

    def __init__(self, total: int, report_total: bool = True) -> None:
        self.total = total
        self.report_total = report_total
        self.fetched: list[OffsetState] = []

    def __call__(self, state: OffsetState) -> PagedResult[int]:
        self.fetched.append(state)
        start = (state.page - 1) * state.per_page
        items = list(range(start, min(start + state.per_page, self.total)))
        total = self.total if self.report_total else None
        return PagedResult(items, total, next_offset_state(state, len(items), total))


class CursorSource:
    """Serves pages keyed by cursor from a fixed script."""

    def __init__(self, script: dict[str, tuple[list[int], str | None]]) -> None:
        self.script = script
        self.fetched: list[str] = []

    def __call__(self, state: CursorState) -> PagedResult[int]:
        self.fetched.append(state.cursor)
        items, next_cursor = self.script[state.cursor]
        return PagedResult(items, None, next_cursor_state(state, next_cursor))


# ------------------------------------------------------------------ #
# Continuation rules
# ------------------------------------------------------------------ #


class TestNextOffset:
    def test_short_page_ends(self) -> None:
        assert next_offset_state(OffsetState(1, 10), 9, None) is None

    def test_total_covered_ends(self) -> None:
        assert next_offset_state(OffsetState(2, 10), 10, 20) is None

    def test_full_page_continues(self) -> None:
        assert next_offset_state(OffsetState(1, 10), 10, 25) == OffsetState(2, 10)

    def test_zero_total_with_full_page_continues(self) -> None:
        assert next_offset_state(OffsetState(1, 10), 10, 0) == OffsetState(2, 10)

    def test_offset_window_ends(self) -> None:
        assert next_offset_state(OffsetState(50, 200), 200, 50_000, max_results=10_000) is None

    def test_page_inside_window_continues(self) -> None:
        assert next_offset_state(OffsetState(49, 200), 200, 50_000, max_results=10_000) == OffsetState(50, 200)


class TestNextCursor:
    def test_missing_cursor_ends(self) -> None:
        assert next_cursor_state(CursorState("c1"), None) is None
        assert next_cursor_state(CursorState("c1"), "") is None

    def test_next_cursor(self) -> None:
        assert next_cursor_state(CursorState("*", 50), "c1") == CursorState("c1", 50)

    def test_repeated_cursor(self) -> None:
        with pytest.raises(ProtocolViolationError):
            next_cursor_state(CursorState("c1"), "c1")


# ------------------------------------------------------------------ #
# Streams
# ------------------------------------------------------------------ #


class TestOffsetStream:
    def test_25_items_in_pages_of_10(self) -> None:
        source = OffsetSource(25)
        stream = PageStream(source, OffsetState(1, 10))
        sizes = [len(page.items) for page in stream.pages()]
        assert sizes == [10, 10, 5]
        assert list(stream) == list(range(25))

    def test_exact_multiple_without_total_needs_one_empty_page(self) -> None:
        source = OffsetSource(20, report_total=False)
        assert len(list(PageStream(source, OffsetState(1, 10)))) == 20
        assert [s.page for s in source.fetched] == [1, 2, 3]

    def test_exact_multiple_with_total_stops_early(self) -> None:
        source = OffsetSource(20)
        list(PageStream(source, OffsetState(1, 10)))
        assert [s.page for s in source.fetched] == [1, 2]

    def test_empty_result(self) -> None:
        assert list(PageStream(OffsetSource(0), OffsetState(1, 10))) == []

    def test_going_backwards_is_rejected(self) -> None:
        def fetch(state):
            return PagedResult([1] * 10, None, OffsetState(1, 10))

        with pytest.raises(ProtocolViolationError):
            list(PageStream(fetch, OffsetState(1, 10)))


class TestCursorStream:
    def test_follows_cursors_until_null(self) -> None:
        source = CursorSource({"*": ([1, 2], "c1"), "c1": ([3, 4], "c2"), "c2": ([5], None)})
        stream = PageStream(source, CursorState("*"))
        assert list(stream) == [1, 2, 3, 4, 5]
        assert source.fetched == ["*", "c1", "c2"]

    def test_full_last_page_is_fine(self) -> None:
        source = CursorSource({"*": ([1, 2], "c1"), "c1": ([3, 4], None)})
        assert list(PageStream(source, CursorState("*", per_page=2))) == [1, 2, 3, 4]

    def test_repeated_cursor_raises_after_yielding(self) -> None:
        source = CursorSource({"*": ([1], "c1"), "c1": ([2], "c1")})
        seen = []
        with pytest.raises(ProtocolViolationError):
            for item in PageStream(source, CursorState("*")):
                seen.append(item)
        assert seen == [1]

    def test_cycle_detected_across_pages(self) -> None:
        source = CursorSource({"*": ([1], "a"), "a": ([2], "b"), "b": ([3], "a")})
        with pytest.raises(ProtocolViolationError):
            list(PageStream(source, CursorState("*")))
        assert source.fetched == ["*", "a", "b"]


class TestLaziness:
    def test_limit_stops_fetching(self) -> None:
        source = OffsetSource(1000)
        assert list(PageStream(source, OffsetState(1, 10), limit=15)) == list(range(15))
        assert len(source.fetched) == 2

    def test_limit_zero_fetches_nothing(self) -> None:
        source = OffsetSource(10)
        assert list(PageStream(source, OffsetState(1, 10), limit=0)) == []
        assert source.fetched == []

    def test_nothing_fetched_until_iterated(self) -> None:
        source = OffsetSource(10)
        stream = PageStream(source, OffsetState(1, 10))
        assert source.fetched == []
        iterator = iter(stream)
        next(iterator)
        assert len(source.fetched) == 1

    def test_restartable(self) -> None:
        source = OffsetSource(5)
        stream = PageStream(source, OffsetState(1, 10))
        assert list(stream) == list(stream)

    def test_negative_limit(self) -> None:
        with pytest.raises(ValueError):
            PageStream(OffsetSource(1), OffsetState(), limit=-1)


def test_paged_result_exhausted() -> None:
    assert PagedResult([1], continuation=None).exhausted
    assert not PagedResult([1], continuation=OffsetState(2)).exhausted
