"""
Range Reconciler

Decides which days of a requested window must be fetched given the day
interval the cache already covers, and which interval the cache adopts once
those fetches succeed.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from enum import Enum

from epg_grabber.models import CacheInterval, FetchSegment, RequestedRange


logger = logging.getLogger(__name__)


class ReconcileCase(str, Enum):
    EXTEND = "extend"
    OVERLAP = "overlap"
    DISJOINT = "disjoint"


@dataclass(slots=True)
class ReconcilePlan:
    """Outcome of reconciling a cache interval with a requested range.

    ``interval`` is provisional: it assumes every planned day returns data
    and is truncated by the assembler on early termination.
    """
    case: ReconcileCase
    requested: RequestedRange
    interval: CacheInterval
    segments: list[FetchSegment] = field(default_factory=list)

    @property
    def discard_cached(self) -> bool:
        """Whether previously cached programmes are irrelevant to this request."""
        return self.case is ReconcileCase.DISJOINT

    @property
    def retain_window(self) -> CacheInterval | None:
        """Day window cached programmes must start in to join the working set.

        ``None`` keeps every cached programme.
        """
        if self.case is ReconcileCase.OVERLAP:
            return CacheInterval(self.requested.start, self.requested.end)
        return None

    def days(self) -> list[date]:
        """Expand segments to the ordered list of single-day fetches."""
        return [day for segment in self.segments for day in segment.expand()]


def _segment(start: date, end: date) -> list[FetchSegment]:
    count = (end - start).days
    return [FetchSegment(start=start, count=count)] if count > 0 else []


def plan(cached: CacheInterval | None, requested: RequestedRange) -> ReconcilePlan:
    """
    Plan the fetches needed to satisfy ``requested`` on top of ``cached``.

    Cases, in priority order:

    - extend: the cache starts where the request starts and ends no later;
      only the tail ``[ce, re)`` is fetched.
    - overlap: the intervals intersect; the days before the cache and the days
      after it are fetched and the cache adopts the union.
    - disjoint: the cache is irrelevant; the whole request is fetched.

    Args:
        cached: Interval the cache covers, or None when no cache is in use
        requested: Window the caller wants

    Returns:
        ReconcilePlan with ordered fetch segments and the provisional interval
    """
    rs, re = requested.start, requested.end

    if cached is None:
        logger.debug("No cache in use, planning full window %s..%s", rs, re)
        return ReconcilePlan(
            case=ReconcileCase.DISJOINT,
            requested=requested,
            interval=CacheInterval(rs, re),
            segments=_segment(rs, re),
        )

    cs, ce = cached.start, cached.end

    if cs == rs and ce <= re:
        result = ReconcilePlan(
            case=ReconcileCase.EXTEND,
            requested=requested,
            interval=CacheInterval(cs, re),
            segments=_segment(ce, re),
        )
    elif ce > rs and cs < re:
        result = ReconcilePlan(
            case=ReconcileCase.OVERLAP,
            requested=requested,
            interval=CacheInterval(min(rs, cs), max(re, ce)),
            segments=_segment(rs, cs) + _segment(ce, re),
        )
    else:
        result = ReconcilePlan(
            case=ReconcileCase.DISJOINT,
            requested=requested,
            interval=CacheInterval(rs, re),
            segments=_segment(rs, re),
        )

    logger.info(
        "Cache %s vs request [%s, %s): %s, %s day(s) to fetch, provisional interval %s",
        cached,
        rs.isoformat(),
        re.isoformat(),
        result.case.value,
        sum(segment.count for segment in result.segments),
        result.interval,
    )
    return result
