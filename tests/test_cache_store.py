"""Cache store: soft-failing load, staleness, expiry purge and dirty-only saves."""

from __future__ import annotations

import json
from datetime import timedelta

import pytest

from epg_grabber.models import Cache, CacheInterval
from epg_grabber.services.cache_store import empty_cache, load_cache, save_cache
from epg_grabber.utils.channel_names import channel_from_id
from epg_grabber.utils.timezone import day_to_epoch

from conftest import NOW, ZONE, day, listings_for, programme


def write_record(path, **overrides) -> dict:
    record = {
        "start": day_to_epoch(day(0), ZONE),
        "end": day_to_epoch(day(3), ZONE),
        "created": int((NOW - timedelta(hours=2)).timestamp()),
        "channels": {"ct1": {"display-name": "Ct1"}},
        "programme": {
            "e1": {
                "channel": "ct1",
                "title": "News",
                "desc": "Evening news",
                "start": "20250310190000 +0100",
                "stop": "20250310193000 +0100",
            }
        },
    }
    record.update(overrides)
    path.write_text(json.dumps(record), encoding="utf-8")
    return record


def assert_empty_for_today(cache: Cache) -> None:
    assert cache.interval == CacheInterval(day(0), day(0))
    assert cache.programmes == {}
    assert cache.channels == {}
    assert not cache.dirty


@pytest.mark.asyncio
async def test_missing_file_gives_empty_cache(tmp_path) -> None:
    cache = await load_cache(tmp_path / "absent.json", ZONE, now=NOW)

    assert_empty_for_today(cache)
    assert cache.created == NOW


@pytest.mark.asyncio
async def test_valid_file_is_loaded(tmp_path) -> None:
    path = tmp_path / "cache.json"
    write_record(path)

    cache = await load_cache(path, ZONE, now=NOW)

    assert cache.interval == CacheInterval(day(0), day(3))
    assert cache.channels["ct1"].display_name == "Ct1"
    entry = cache.programmes["e1"]
    assert entry.title == "News"
    assert entry.description == "Evening news"
    assert entry.start.hour == 19
    assert entry.stop - entry.start == timedelta(minutes=30)
    assert not cache.dirty


@pytest.mark.asyncio
async def test_unparseable_file_gives_empty_cache(tmp_path, caplog) -> None:
    path = tmp_path / "cache.json"
    path.write_text("{not json", encoding="utf-8")

    cache = await load_cache(path, ZONE, now=NOW)

    assert_empty_for_today(cache)
    assert "Discarding unusable cache file" in caplog.text


@pytest.mark.asyncio
@pytest.mark.parametrize("field", ["start", "end", "created", "channels", "programme"])
async def test_missing_required_field_gives_empty_cache(tmp_path, field) -> None:
    path = tmp_path / "cache.json"
    record = write_record(path)
    del record[field]
    path.write_text(json.dumps(record), encoding="utf-8")

    cache = await load_cache(path, ZONE, now=NOW)

    assert_empty_for_today(cache)


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "overrides",
    [
        {"start": 10**15, "end": 10**15},
        {"end": 10**15},
        {"created": 10**15},
    ],
)
async def test_out_of_range_timestamps_give_empty_cache(tmp_path, caplog, overrides) -> None:
    path = tmp_path / "cache.json"
    write_record(path, **overrides)

    cache = await load_cache(path, ZONE, now=NOW)

    assert_empty_for_today(cache)
    assert "out-of-range timestamps" in caplog.text


@pytest.mark.asyncio
async def test_cache_created_in_the_future_is_discarded(tmp_path) -> None:
    path = tmp_path / "cache.json"
    write_record(path, created=int((NOW + timedelta(hours=1)).timestamp()))

    cache = await load_cache(path, ZONE, now=NOW)

    assert_empty_for_today(cache)


@pytest.mark.asyncio
async def test_malformed_programme_time_gives_empty_cache(tmp_path) -> None:
    path = tmp_path / "cache.json"
    write_record(
        path,
        programme={"e1": {"channel": "ct1", "title": "x", "start": "2025-03-10 19:00", "stop": "20250310193000 +0100"}},
    )

    cache = await load_cache(path, ZONE, now=NOW)

    assert_empty_for_today(cache)


@pytest.mark.asyncio
async def test_cache_older_than_fifty_hours_is_discarded(tmp_path) -> None:
    path = tmp_path / "cache.json"
    write_record(path, created=int((NOW - timedelta(hours=50, seconds=1)).timestamp()))

    cache = await load_cache(path, ZONE, now=NOW)

    assert_empty_for_today(cache)


@pytest.mark.asyncio
async def test_cache_just_under_max_age_is_kept(tmp_path) -> None:
    path = tmp_path / "cache.json"
    write_record(path, created=int((NOW - timedelta(hours=49, minutes=59)).timestamp()))

    cache = await load_cache(path, ZONE, now=NOW)

    assert "e1" in cache.programmes


@pytest.mark.asyncio
async def test_load_purges_expired_programmes_and_advances_start(tmp_path) -> None:
    path = tmp_path / "cache.json"
    write_record(
        path,
        start=day_to_epoch(day(-2), ZONE),
        programme={
            "old": {"channel": "ct1", "title": "Old", "start": "20250308200000 +0100", "stop": "20250308210000 +0100"},
            "overnight": {"channel": "ct1", "title": "Film", "start": "20250309233000 +0100", "stop": "20250310013000 +0100"},
            "today": {"channel": "ct1", "title": "News", "start": "20250310190000 +0100", "stop": "20250310193000 +0100"},
        },
    )

    cache = await load_cache(path, ZONE, now=NOW)

    assert set(cache.programmes) == {"overnight", "today"}
    assert cache.interval == CacheInterval(day(0), day(3))
    assert cache.dirty


@pytest.mark.asyncio
async def test_load_of_interval_entirely_in_the_past_collapses_to_today(tmp_path) -> None:
    path = tmp_path / "cache.json"
    write_record(path, start=day_to_epoch(day(-3), ZONE), end=day_to_epoch(day(-1), ZONE), programme={})

    cache = await load_cache(path, ZONE, now=NOW)

    assert cache.interval == CacheInterval(day(0), day(0))


@pytest.mark.asyncio
async def test_programme_without_channel_record_gets_fallback_channel(tmp_path) -> None:
    path = tmp_path / "cache.json"
    write_record(path, channels={})

    cache = await load_cache(path, ZONE, now=NOW)

    assert cache.channels["ct1"].display_name == "Ct1"


@pytest.mark.asyncio
async def test_save_skips_clean_cache(tmp_path) -> None:
    path = tmp_path / "cache.json"
    cache = empty_cache(ZONE, NOW)

    saved = await save_cache(path, cache, ZONE)

    assert saved is False
    assert not path.exists()


@pytest.mark.asyncio
async def test_save_writes_dirty_cache_and_clears_flag(tmp_path) -> None:
    path = tmp_path / "cache.json"
    programmes = {p.event_id: p for p in listings_for(day(0), ("primaCOOL",))}
    cache = Cache(
        interval=CacheInterval(day(0), day(1)),
        created=NOW,
        channels={"primaCOOL": channel_from_id("primaCOOL")},
        programmes=programmes,
        dirty=True,
    )

    saved = await save_cache(path, cache, ZONE)

    assert saved is True
    assert not cache.dirty
    record = json.loads(path.read_text(encoding="utf-8"))
    assert record["start"] == day_to_epoch(day(0), ZONE)
    assert record["end"] == day_to_epoch(day(1), ZONE)
    assert record["created"] == int(NOW.timestamp())
    assert record["channels"] == {"primaCOOL": {"display-name": "Prima Cool"}}
    sample = programme(day(0), 6, "primaCOOL")
    assert record["programme"][sample.event_id]["start"] == "20250310060000 +0100"
    assert record["programme"][sample.event_id]["stop"] == "20250310070000 +0100"
    assert not list(tmp_path.glob(".*.tmp"))

    reloaded = await load_cache(path, ZONE, now=NOW)
    assert reloaded.programmes == programmes
    assert reloaded.interval == cache.interval
