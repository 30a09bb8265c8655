"""
Schedule Assembler

Runs a reconcile plan: fetches the missing days one at a time, merges them
into the working set, stops at the first day that yields nothing new and
writes the outcome back into the cache.
"""
from __future__ import annotations

import logging
from collections.abc import Collection
from dataclasses import dataclass, field
from datetime import date, tzinfo
from typing import Protocol

from epg_grabber.errors import ScheduleFetchError
from epg_grabber.models import (
    Cache,
    CacheInterval,
    ChannelPayload,
    DayFetchResult,
    FetchStatus,
    ProgrammePayload,
)
from epg_grabber.services.range_reconciler import ReconcilePlan
from epg_grabber.utils.data_merging import (
    ensure_programme_channels,
    merge_channels,
    merge_programmes,
)
from epg_grabber.utils.timezone import day_start, now_utc


logger = logging.getLogger(__name__)


class DayFetcher(Protocol):
    async def fetch_day(
        self,
        day: date,
        detail_level: str,
        duration_minutes: int,
        channel_filter: Collection[str],
    ) -> DayFetchResult: ...


@dataclass(slots=True)
class AssemblyResult:
    """Working set produced by one run plus the interval the cache adopts."""
    interval: CacheInterval
    channels: dict[str, ChannelPayload] = field(default_factory=dict)
    programmes: dict[str, ProgrammePayload] = field(default_factory=dict)
    fetched_days: list[date] = field(default_factory=list)
    stopped_at: date | None = None
    programmes_added: int = 0


class ScheduleAssembler:
    """Fetches planned days in order and merges them into the working set."""

    def __init__(
        self,
        fetcher: DayFetcher,
        zone: tzinfo,
        *,
        channel_filter: Collection[str],
        detail_level: str = "description",
        duration_minutes: int = 1439,
    ) -> None:
        self.fetcher = fetcher
        self.zone = zone
        self.channel_filter = list(dict.fromkeys(channel_filter))
        self._allowed = set(self.channel_filter)
        self.detail_level = detail_level
        self.duration_minutes = duration_minutes

    async def run(self, plan: ReconcilePlan, cache: Cache | None = None) -> AssemblyResult:
        """
        Execute the plan against the cache.

        Args:
            plan: Output of the range reconciler
            cache: Cache to update in place, or None for an ephemeral run

        Returns:
            AssemblyResult holding what should be rendered

        Raises:
            ScheduleFetchError: If any day fetch fails; the cache is left untouched
        """
        channels = self._initial_channels(plan, cache)
        programmes = self._initial_programmes(plan, cache)
        result = AssemblyResult(interval=plan.interval)
        logger.info(
            "Working set starts with %s cached programme(s); %s day(s) planned",
            len(programmes),
            len(plan.days()),
        )

        for day in plan.days():
            fetched = await self.fetcher.fetch_day(
                day, self.detail_level, self.duration_minutes, self.channel_filter
            )
            if fetched.status is FetchStatus.FAILED:
                raise ScheduleFetchError(
                    f"Fetching {day.isoformat()} failed: {fetched.error}", day=day
                )
            result.fetched_days.append(day)

            channels = merge_channels(channels, fetched.channels.values())
            accepted = self._accepted_programmes(day, fetched.programmes)
            programmes, added = merge_programmes(programmes, accepted)
            result.programmes_added += added
            logger.debug(
                "Day %s: %s programme(s) accepted, %s new", day.isoformat(), len(accepted), added
            )

            if added == 0:
                result.stopped_at = day
                if result.interval.end > day:
                    result.interval = CacheInterval(result.interval.start, day)
                logger.info(
                    "No new programmes on %s, assuming no data from here on; interval now %s",
                    day.isoformat(),
                    result.interval,
                )
                break

        result.programmes = programmes
        shown = {
            channel_id: channel
            for channel_id, channel in channels.items()
            if channel_id in self._allowed
        }
        result.channels = ensure_programme_channels(shown, programmes.values())

        if cache is not None:
            self._update_cache(cache, plan, result, channels)
        return result

    def _initial_channels(
        self, plan: ReconcilePlan, cache: Cache | None
    ) -> dict[str, ChannelPayload]:
        if cache is None or plan.discard_cached:
            return {}
        return dict(cache.channels)

    def _initial_programmes(
        self, plan: ReconcilePlan, cache: Cache | None
    ) -> dict[str, ProgrammePayload]:
        if cache is None or plan.discard_cached:
            return {}

        programmes = {
            event_id: programme
            for event_id, programme in cache.programmes.items()
            if programme.channel in self._allowed
        }
        window = plan.retain_window
        if window is None:
            return programmes

        window_start = day_start(window.start, self.zone)
        window_end = day_start(window.end, self.zone)
        return {
            event_id: programme
            for event_id, programme in programmes.items()
            if window_start <= programme.start < window_end
        }

    def _accepted_programmes(
        self, day: date, programmes: list[ProgrammePayload]
    ) -> list[ProgrammePayload]:
        floor = day_start(day, self.zone)
        accepted = []
        for programme in programmes:
            if programme.channel not in self._allowed:
                continue
            if programme.start < floor:
                logger.debug(
                    "Ignoring %s on %s: starts before %s",
                    programme.event_id,
                    programme.channel,
                    day.isoformat(),
                )
                continue
            accepted.append(programme)
        return accepted

    def _update_cache(
        self,
        cache: Cache,
        plan: ReconcilePlan,
        result: AssemblyResult,
        channels: dict[str, ChannelPayload],
    ) -> None:
        if plan.discard_cached:
            if cache.programmes:
                logger.info("Discarding %s cached programme(s) outside the request", len(cache.programmes))
            cache.programmes = {}
            cache.channels = {}
            cache.created = now_utc()

        cache.programmes, _ = merge_programmes(cache.programmes, result.programmes.values())
        cache.channels = ensure_programme_channels(
            merge_channels(cache.channels, channels.values()), cache.programmes.values()
        )

        if result.fetched_days or plan.discard_cached or cache.interval != result.interval:
            cache.dirty = True
        cache.interval = result.interval
