"""
Cache Store

Loads and saves the grab cache: one contiguous day interval plus the channels
and programmes fetched for it. Any problem reading the cache is a cache miss,
never an error.
"""
from __future__ import annotations

import logging
from datetime import date, datetime, timedelta, timezone, tzinfo
from pathlib import Path

import aiofiles
from pydantic import ValidationError

from epg_grabber.models import Cache, CacheInterval, ChannelPayload, ProgrammePayload
from epg_grabber.schemas import CachedChannel, CachedProgramme, CacheRecord
from epg_grabber.utils.data_merging import ensure_programme_channels
from epg_grabber.utils.file_operations import write_file_atomic
from epg_grabber.utils.timezone import (
    day_start,
    day_to_epoch,
    epoch_to_day,
    format_xmltv_time,
    now_utc,
    parse_xmltv_time,
    today_in,
)


logger = logging.getLogger(__name__)

DEFAULT_MAX_AGE = timedelta(hours=50)


def empty_cache(zone: tzinfo, now: datetime | None = None) -> Cache:
    """Create an empty cache covering [today, today)."""
    current = now or now_utc()
    today = today_in(zone, current)
    return Cache(interval=CacheInterval(today, today), created=current)


async def load_cache(
    path: Path | str,
    zone: tzinfo,
    *,
    now: datetime | None = None,
    max_age: timedelta = DEFAULT_MAX_AGE,
) -> Cache:
    """
    Load the cache file and purge programmes that already ended.

    Args:
        path: Cache file path
        zone: Provider timezone all days are counted in
        now: Current time (defaults to the wall clock)
        max_age: Caches created longer ago than this are discarded

    Returns:
        Loaded cache, or an empty cache for today on any problem
    """
    current = now or now_utc()
    path = Path(path)

    if not path.exists():
        logger.info("No cache file at %s, starting empty", path)
        return empty_cache(zone, current)

    try:
        async with aiofiles.open(path, "r", encoding="utf-8") as f:
            content = await f.read()
    except (OSError, UnicodeDecodeError) as e:
        logger.warning("Cannot read cache file %s: %s", path, e)
        return empty_cache(zone, current)

    try:
        record = CacheRecord.model_validate_json(content)
    except ValidationError as e:
        logger.warning(
            "Discarding unusable cache file %s (%s error(s)): %s",
            path,
            e.error_count(),
            e.errors()[0].get("msg") if e.errors() else e,
        )
        return empty_cache(zone, current)

    try:
        created = datetime.fromtimestamp(record.created, tz=timezone.utc)
        cache = _cache_from_record(record, zone, created)
    except (ValueError, OverflowError, OSError) as e:
        logger.warning("Discarding cache file %s with out-of-range timestamps: %s", path, e)
        return empty_cache(zone, current)

    age = current - created
    if age > max_age or created > current:
        logger.info(
            "Cache file %s is %.1f hours old (max %.1f), starting empty",
            path,
            age.total_seconds() / 3600,
            max_age.total_seconds() / 3600,
        )
        return empty_cache(zone, current)

    logger.info(
        "Loaded cache %s: %s channels, %s programmes",
        cache.interval,
        len(cache.channels),
        len(cache.programmes),
    )
    purge_expired(cache, today_in(zone, current), zone)
    return cache


def _cache_from_record(record: CacheRecord, zone: tzinfo, created: datetime) -> Cache:
    channels = {
        channel_id: ChannelPayload(id=channel_id, display_name=channel.display_name)
        for channel_id, channel in record.channels.items()
    }
    programmes = {
        event_id: ProgrammePayload(
            event_id=event_id,
            channel=entry.channel,
            title=entry.title,
            description=entry.desc,
            start=parse_xmltv_time(entry.start).astimezone(zone),
            stop=parse_xmltv_time(entry.stop).astimezone(zone),
        )
        for event_id, entry in record.programme.items()
    }
    return Cache(
        interval=CacheInterval(epoch_to_day(record.start, zone), epoch_to_day(record.end, zone)),
        created=created,
        channels=ensure_programme_channels(channels, programmes.values()),
        programmes=programmes,
    )


def purge_expired(cache: Cache, today: date, zone: tzinfo) -> int:
    """
    Drop programmes that stopped before today and move the interval start up to today.

    Marks the cache dirty when anything changed.

    Returns:
        Number of purged programmes
    """
    cutoff = day_start(today, zone)
    expired = [
        event_id for event_id, programme in cache.programmes.items() if programme.stop < cutoff
    ]
    for event_id in expired:
        del cache.programmes[event_id]

    if cache.interval.start < today:
        cache.interval = CacheInterval(today, max(today, cache.interval.end))
        cache.dirty = True

    if expired:
        cache.dirty = True
        logger.info("Purged %s expired programme(s) ending before %s", len(expired), today)
    return len(expired)


def cache_to_record(cache: Cache, zone: tzinfo) -> CacheRecord:
    return CacheRecord(
        start=day_to_epoch(cache.interval.start, zone),
        end=day_to_epoch(cache.interval.end, zone),
        created=int(cache.created.timestamp()),
        channels={
            channel.id: CachedChannel(display_name=channel.display_name)
            for channel in cache.channels.values()
        },
        programme={
            programme.event_id: CachedProgramme(
                channel=programme.channel,
                title=programme.title,
                desc=programme.description,
                start=format_xmltv_time(programme.start.astimezone(zone)),
                stop=format_xmltv_time(programme.stop.astimezone(zone)),
            )
            for programme in cache.programmes.values()
        },
    )


async def save_cache(path: Path | str, cache: Cache, zone: tzinfo) -> bool:
    """
    Persist the cache if it has unsaved changes, clearing the dirty flag.

    The file is replaced atomically.

    Returns:
        True if the file was written
    """
    if not cache.dirty:
        logger.debug("Cache unchanged, not saving")
        return False

    payload = cache_to_record(cache, zone).model_dump_json(by_alias=True)
    await write_file_atomic(path, payload)

    cache.dirty = False
    logger.info(
        "Saved cache %s to %s (%s programmes)", cache.interval, path, len(cache.programmes)
    )
    return True
