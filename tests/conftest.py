from __future__ import annotations

from collections.abc import Collection
from datetime import date, datetime, time, timedelta
from zoneinfo import ZoneInfo

from epg_grabber.models import DayFetchResult, FetchStatus, ProgrammePayload
from epg_grabber.utils.channel_names import channel_from_id


ZONE = ZoneInfo("Europe/Prague")
D0 = date(2025, 3, 10)
NOW = datetime(2025, 3, 10, 8, 0, tzinfo=ZONE)


def day(offset: int) -> date:
    return D0 + timedelta(days=offset)


def programme(
    on: date,
    hour: int,
    channel: str = "ct1",
    event_id: str | None = None,
    title: str | None = None,
    hours: int = 1,
) -> ProgrammePayload:
    start = datetime.combine(on, time(hour), tzinfo=ZONE)
    return ProgrammePayload(
        event_id=event_id or f"{channel}-{on.isoformat()}-{hour}",
        channel=channel,
        title=title or f"Show {hour}h",
        description=f"Listing for {on.isoformat()}",
        start=start,
        stop=start + timedelta(hours=hours),
    )


def listings_for(on: date, channels: Collection[str] = ("ct1", "primaCOOL")) -> list[ProgrammePayload]:
    return [programme(on, hour, channel) for channel in channels for hour in (6, 12, 20)]


class FakeFetcher:
    """Returns canned listings per day and records which days were requested."""

    def __init__(self, listings: dict[date, list[ProgrammePayload]] | None = None, fail_on: date | None = None):
        self.listings = listings or {}
        self.fail_on = fail_on
        self.calls: list[date] = []
        self.requests: list[tuple] = []

    async def fetch_day(self, day, detail_level, duration_minutes, channel_filter) -> DayFetchResult:
        self.calls.append(day)
        self.requests.append((day, detail_level, duration_minutes, list(channel_filter)))
        if day == self.fail_on:
            return DayFetchResult.failed(day, "HTTP 503 from epg")

        programmes = self.listings.get(day, [])
        channels = {channel_id: channel_from_id(channel_id) for channel_id in channel_filter}
        status = FetchStatus.DATA if programmes else FetchStatus.EMPTY
        return DayFetchResult(day=day, status=status, channels=channels, programmes=list(programmes))
