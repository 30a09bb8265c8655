"""
Domain models for channels, programmes and cache intervals.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from enum import Enum


@dataclass(slots=True, frozen=True)
class ChannelPayload:
    """In-memory representation of a channel."""
    id: str
    display_name: str


@dataclass(slots=True, frozen=True)
class ProgrammePayload:
    """In-memory representation of a single programme, keyed by event id."""
    event_id: str
    channel: str
    title: str
    start: datetime
    stop: datetime
    description: str = ""


@dataclass(slots=True, frozen=True)
class CacheInterval:
    """Half-open day interval [start, end) the cache is known to cover."""
    start: date
    end: date

    def __post_init__(self) -> None:
        if self.start > self.end:
            raise ValueError(f"Interval start {self.start} is after end {self.end}")

    @property
    def days(self) -> int:
        return (self.end - self.start).days

    def __str__(self) -> str:
        return f"[{self.start.isoformat()}, {self.end.isoformat()})"


@dataclass(slots=True, frozen=True)
class RequestedRange:
    """Window the caller wants: ``days`` consecutive days from ``start``."""
    start: date
    days: int

    @property
    def end(self) -> date:
        return self.start + timedelta(days=self.days)


@dataclass(slots=True, frozen=True)
class FetchSegment:
    """Fetch ``count`` consecutive days starting at ``start``, one day at a time."""
    start: date
    count: int

    def expand(self) -> list[date]:
        return [self.start + timedelta(days=offset) for offset in range(self.count)]


class FetchStatus(str, Enum):
    DATA = "data"
    EMPTY = "empty"
    FAILED = "failed"


@dataclass(slots=True)
class DayFetchResult:
    """Outcome of one provider day query.

    ``EMPTY`` is a normal result (no listings published for that day yet),
    ``FAILED`` carries the error text and aborts the run.
    """
    day: date
    status: FetchStatus
    channels: dict[str, ChannelPayload] = field(default_factory=dict)
    programmes: list[ProgrammePayload] = field(default_factory=list)
    error: str | None = None

    @classmethod
    def failed(cls, day: date, error: str) -> DayFetchResult:
        return cls(day=day, status=FetchStatus.FAILED, error=error)

    @property
    def ok(self) -> bool:
        return self.status is not FetchStatus.FAILED


@dataclass(slots=True)
class Cache:
    """Cached listings for one contiguous day interval.

    ``dirty`` means "has unsaved changes" and is cleared by a save.
    """
    interval: CacheInterval
    created: datetime
    channels: dict[str, ChannelPayload] = field(default_factory=dict)
    programmes: dict[str, ProgrammePayload] = field(default_factory=dict)
    dirty: bool = False


__all__ = [
    "Cache",
    "CacheInterval",
    "ChannelPayload",
    "DayFetchResult",
    "FetchSegment",
    "FetchStatus",
    "ProgrammePayload",
    "RequestedRange",
]
