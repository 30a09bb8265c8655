"""Range reconciliation: which days to fetch and which interval the cache adopts."""

from __future__ import annotations

import pytest

from epg_grabber.models import CacheInterval, FetchSegment, RequestedRange
from epg_grabber.services.range_reconciler import ReconcileCase, plan

from conftest import day


def test_extend_fetches_only_the_tail() -> None:
    result = plan(CacheInterval(day(0), day(3)), RequestedRange(day(0), 5))

    assert result.case is ReconcileCase.EXTEND
    assert result.segments == [FetchSegment(day(3), 2)]
    assert result.days() == [day(3), day(4)]
    assert result.interval == CacheInterval(day(0), day(5))
    assert result.retain_window is None
    assert not result.discard_cached


def test_extend_with_fully_cached_request_fetches_nothing() -> None:
    result = plan(CacheInterval(day(0), day(5)), RequestedRange(day(0), 5))

    assert result.case is ReconcileCase.EXTEND
    assert result.segments == []
    assert result.interval == CacheInterval(day(0), day(5))


def test_empty_cache_for_today_extends_from_today() -> None:
    result = plan(CacheInterval(day(0), day(0)), RequestedRange(day(0), 3))

    assert result.case is ReconcileCase.EXTEND
    assert result.days() == [day(0), day(1), day(2)]
    assert result.interval == CacheInterval(day(0), day(3))


@pytest.mark.parametrize(
    "cs, ce, rs, days",
    [
        (0, 3, 0, 3),
        (0, 1, 0, 7),
        (2, 4, 2, 5),
        (1, 1, 1, 2),
    ],
)
def test_extend_never_refetches_cached_days(cs: int, ce: int, rs: int, days: int) -> None:
    cached = CacheInterval(day(cs), day(ce))
    requested = RequestedRange(day(rs), days)

    result = plan(cached, requested)

    assert result.days() == [day(n) for n in range(ce, rs + days)]
    assert not any(cached.start <= fetched < cached.end for fetched in result.days())


def test_overlap_fetches_before_then_after() -> None:
    result = plan(CacheInterval(day(2), day(4)), RequestedRange(day(1), 5))

    assert result.case is ReconcileCase.OVERLAP
    assert result.segments == [FetchSegment(day(1), 1), FetchSegment(day(4), 2)]
    assert result.days() == [day(1), day(4), day(5)]
    assert result.interval == CacheInterval(day(1), day(6))
    assert result.retain_window == CacheInterval(day(1), day(6))


def test_overlap_with_cache_ahead_of_request_fetches_head_only() -> None:
    result = plan(CacheInterval(day(2), day(6)), RequestedRange(day(0), 4))

    assert result.case is ReconcileCase.OVERLAP
    assert result.days() == [day(0), day(1)]
    assert result.interval == CacheInterval(day(0), day(6))


def test_overlap_with_request_inside_cache_fetches_nothing() -> None:
    result = plan(CacheInterval(day(0), day(7)), RequestedRange(day(2), 3))

    assert result.case is ReconcileCase.OVERLAP
    assert result.segments == []
    assert result.interval == CacheInterval(day(0), day(7))
    assert result.retain_window == CacheInterval(day(2), day(5))


@pytest.mark.parametrize(
    "cs, ce, rs, days",
    [
        (2, 4, 1, 5),
        (0, 3, 1, 5),
        (3, 7, 0, 4),
        (1, 6, 2, 2),
        (0, 2, 1, 1),
    ],
)
def test_overlap_covers_union_without_gaps_or_duplicates(cs: int, ce: int, rs: int, days: int) -> None:
    cached = CacheInterval(day(cs), day(ce))
    requested = RequestedRange(day(rs), days)

    result = plan(cached, requested)

    fetched = result.days()
    cached_days = {day(n) for n in range(cs, ce)}
    union = {day(n) for n in range(min(cs, rs), max(ce, rs + days))}
    assert result.case is ReconcileCase.OVERLAP
    assert len(fetched) == len(set(fetched))
    assert not cached_days & set(fetched)
    assert cached_days | set(fetched) == union
    assert result.interval == CacheInterval(min(day(cs), day(rs)), max(day(ce), requested.end))


@pytest.mark.parametrize(
    "cs, ce, rs, days",
    [
        (0, 2, 3, 2),
        (0, 2, 2, 3),
        (5, 7, 0, 5),
        (3, 3, 0, 2),
    ],
)
def test_disjoint_discards_cache_and_fetches_everything(cs: int, ce: int, rs: int, days: int) -> None:
    result = plan(CacheInterval(day(cs), day(ce)), RequestedRange(day(rs), days))

    assert result.case is ReconcileCase.DISJOINT
    assert result.discard_cached
    assert result.days() == [day(n) for n in range(rs, rs + days)]
    assert result.interval == CacheInterval(day(rs), day(rs + days))


def test_no_cache_behaves_like_disjoint() -> None:
    result = plan(None, RequestedRange(day(1), 3))

    assert result.case is ReconcileCase.DISJOINT
    assert result.days() == [day(1), day(2), day(3)]
    assert result.interval == CacheInterval(day(1), day(4))


def test_reversed_interval_is_rejected() -> None:
    with pytest.raises(ValueError):
        CacheInterval(day(3), day(1))
