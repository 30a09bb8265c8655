"""
EPG Grab Service

Coordinates one grab run: cache load, range reconciliation, day fetches,
cache save and XMLTV rendering.
"""
from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta, timezone

from epg_grabber.config import CustomSettings, settings
from epg_grabber.errors import ConfigurationError
from epg_grabber.models import Cache, RequestedRange
from epg_grabber.schemas import GrabSummary
from epg_grabber.services.cache_store import load_cache, save_cache
from epg_grabber.services.range_reconciler import ReconcilePlan, plan
from epg_grabber.services.schedule_assembler import AssemblyResult, DayFetcher, ScheduleAssembler
from epg_grabber.services.schedule_fetcher import ScheduleFetcher
from epg_grabber.services.xmltv_renderer import render_xmltv
from epg_grabber.utils.file_operations import write_file_atomic
from epg_grabber.utils.logging_helpers import (
    log_grab_end,
    log_grab_start,
    log_merge_summary,
    log_section_end,
    log_section_start,
)
from epg_grabber.utils.timezone import add_days, now_utc, today_in


logger = logging.getLogger(__name__)


class GrabPipeline:
    """Runs the load, plan, fetch, save and render stages of one grab."""

    def __init__(
        self,
        config: CustomSettings,
        *,
        fetcher: DayFetcher | None = None,
        now: datetime | None = None,
    ) -> None:
        self.config = config
        self.zone = config.zone
        self.now = now or now_utc()
        self._fetcher = fetcher
        self.document: bytes | None = None

    def requested_range(self) -> RequestedRange:
        today = today_in(self.zone, self.now)
        return RequestedRange(start=add_days(today, self.config.offset), days=self.config.days)

    async def run(self) -> GrabSummary:
        if not self.config.channels:
            raise ConfigurationError("No channels configured; set CHANNELS or pass --channels")

        requested = self.requested_range()
        logger.info(
            "Requested window: %s + %s day(s), %s channel(s)",
            requested.start.isoformat(),
            requested.days,
            len(self.config.channels),
        )

        cache = await self._load_cache()
        reconcile_plan = plan(cache.interval if cache else None, requested)

        log_section_start(logger, "day fetches")
        result = await self._assemble(reconcile_plan, cache)
        log_section_end(logger, "day fetches")
        log_merge_summary(logger, len(result.channels), len(result.programmes), result.programmes_added)

        cache_saved = False
        if cache is not None and self.config.cache_path:
            cache_saved = await save_cache(self.config.cache_path, cache, self.zone)

        self.document = render_xmltv(
            result.channels.values(),
            result.programmes.values(),
            lang=self.config.xmltv_lang,
            generator_name=self.config.xmltv_generator_name,
        )
        if self.config.output_path:
            await write_file_atomic(self.config.output_path, self.document)
            logger.info("XMLTV written to %s", self.config.output_path)

        return self._build_summary(requested, reconcile_plan, result, cache_saved)

    async def _load_cache(self) -> Cache | None:
        if not self.config.cache_path:
            return None
        return await load_cache(
            self.config.cache_path,
            self.zone,
            now=self.now,
            max_age=timedelta(hours=self.config.cache_max_age_hours),
        )

    async def _assemble(self, reconcile_plan: ReconcilePlan, cache: Cache | None) -> AssemblyResult:
        if self._fetcher is not None:
            return await self._assembler(self._fetcher).run(reconcile_plan, cache)

        async with ScheduleFetcher(
            self.config.provider_base_url,
            self.zone,
            device_id=self.config.device_id,
            device_password=self.config.device_password,
            timeout=self.config.http_timeout_sec,
        ) as fetcher:
            return await self._assembler(fetcher).run(reconcile_plan, cache)

    def _assembler(self, fetcher: DayFetcher) -> ScheduleAssembler:
        return ScheduleAssembler(
            fetcher,
            self.zone,
            channel_filter=self.config.channels or [],
            detail_level=self.config.epg_detail_level,
            duration_minutes=self.config.epg_duration_minutes,
        )

    def _build_summary(
        self,
        requested: RequestedRange,
        reconcile_plan: ReconcilePlan,
        result: AssemblyResult,
        cache_saved: bool,
    ) -> GrabSummary:
        return GrabSummary(
            status="success",
            timestamp=datetime.now(timezone.utc).isoformat(),
            case=reconcile_plan.case.value,
            requested_start=requested.start.isoformat(),
            requested_days=requested.days,
            days_planned=len(reconcile_plan.days()),
            days_fetched=len(result.fetched_days),
            stopped_at=result.stopped_at.isoformat() if result.stopped_at else None,
            programmes_added=result.programmes_added,
            channels=len(result.channels),
            programmes=len(result.programmes),
            interval_start=result.interval.start.isoformat(),
            interval_end=result.interval.end.isoformat(),
            cache_saved=cache_saved,
            output_path=self.config.output_path,
        )


class GrabService:
    """
    Runs grabs with concurrency protection and remembers the last result.

    Uses an internal asyncio.Lock so only one grab runs at a time in this
    process; a second request while one is running is skipped.
    """

    def __init__(self) -> None:
        self._lock = asyncio.Lock()
        self.last_document: bytes | None = None
        self.last_summary: GrabSummary | None = None

    def is_running(self) -> bool:
        return self._lock.locked()

    async def grab(
        self,
        config: CustomSettings | None = None,
        *,
        fetcher: DayFetcher | None = None,
    ) -> GrabSummary:
        """
        Main entry point for a grab run.

        Returns:
            GrabSummary with run statistics, or a 'skipped' summary if a run is active

        Raises:
            GrabberError: If a fetch fails or configuration is incomplete
        """
        if self._lock.locked():
            logger.warning("EPG grab already in progress, skipping this request")
            return GrabSummary(
                status="skipped",
                timestamp=datetime.now(timezone.utc).isoformat(),
                message="EPG grab already in progress",
            )

        async with self._lock:
            log_grab_start(logger)
            pipeline = GrabPipeline(config or settings, fetcher=fetcher)
            summary = await pipeline.run()
            self.last_document = pipeline.document
            self.last_summary = summary
            log_grab_end(logger)
            return summary


grab_service = GrabService()
