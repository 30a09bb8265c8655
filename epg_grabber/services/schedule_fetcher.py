"""
Schedule Fetcher

Queries the provider API for one day of listings at a time. The provider
session is created lazily on the first query and kept on the fetcher
instance.
"""
from __future__ import annotations

import logging
from collections.abc import Collection, Mapping
from datetime import date, tzinfo
from typing import Any

import httpx

from epg_grabber.errors import ConfigurationError
from epg_grabber.models import DayFetchResult, FetchStatus, ProgrammePayload
from epg_grabber.utils.channel_names import channel_from_id
from epg_grabber.utils.timezone import DateFormatError, format_provider_day, parse_provider_time


logger = logging.getLogger(__name__)

SESSION_PARAM = "PHPSESSID"
_MASKED_PARAMS = {SESSION_PARAM, "password"}


class ProviderError(Exception):
    """Raised for transport failures and error payloads from the provider"""
    pass


class ScheduleFetcher:
    """Provider API client returning one day of listings per call."""

    def __init__(
        self,
        base_url: str,
        zone: tzinfo,
        *,
        device_id: str | None,
        device_password: str | None,
        timeout: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.base_url = base_url if base_url.endswith("/") else base_url + "/"
        self.zone = zone
        self._device_id = device_id
        self._device_password = device_password
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._owns_client = client is None
        self._session_id: str | None = None

    async def __aenter__(self) -> ScheduleFetcher:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    @property
    def has_session(self) -> bool:
        return self._session_id is not None

    async def fetch_day(
        self,
        day: date,
        detail_level: str,
        duration_minutes: int,
        channel_filter: Collection[str],
    ) -> DayFetchResult:
        """
        Fetch listings for a single provider day.

        Args:
            day: Day to fetch (provider zone)
            detail_level: Provider detail level, e.g. 'description'
            duration_minutes: Length of the queried span from midnight
            channel_filter: Channel ids to request

        Returns:
            DayFetchResult with status DATA, EMPTY or FAILED

        Raises:
            ConfigurationError: If device credentials are missing
        """
        params = {
            "time": format_provider_day(day),
            "duration": duration_minutes,
            "detail": detail_level,
            "channels": ",".join(channel_filter),
        }

        try:
            session_id = await self._ensure_session()
            payload = await self._get_json("epg", {**params, SESSION_PARAM: session_id})
        except ProviderError as exc:
            logger.error("Fetching %s failed: %s", day.isoformat(), exc)
            return DayFetchResult.failed(day, str(exc))

        raw_channels = payload.get("channels") or {}
        if not isinstance(raw_channels, Mapping):
            return DayFetchResult.failed(day, "Malformed EPG response: 'channels' is not an object")

        channels = {}
        programmes = []
        for channel_id, events in raw_channels.items():
            if events is None:
                events = []
            if not isinstance(events, list):
                return DayFetchResult.failed(
                    day, f"Malformed EPG response: events for '{channel_id}' are not a list"
                )
            channels[channel_id] = channel_from_id(channel_id)
            for event in events:
                programme = self._parse_event(channel_id, event)
                if programme:
                    programmes.append(programme)

        status = FetchStatus.DATA if programmes else FetchStatus.EMPTY
        logger.info(
            "Fetched %s: %s channels, %s programmes",
            day.isoformat(),
            len(channels),
            len(programmes),
        )
        return DayFetchResult(day=day, status=status, channels=channels, programmes=programmes)

    def _parse_event(self, channel_id: str, event: Any) -> ProgrammePayload | None:
        """Parse single provider event, skipping malformed ones"""
        if not isinstance(event, Mapping):
            return None

        event_id = event.get("eventId")
        title = event.get("title")
        start_str = event.get("startTime")
        stop_str = event.get("endTime")
        if event_id is None or not title or not start_str or not stop_str:
            logger.debug("Skipping incomplete event on %s: %s", channel_id, event_id)
            return None

        try:
            start = parse_provider_time(start_str, self.zone)
            stop = parse_provider_time(stop_str, self.zone)
        except DateFormatError as exc:
            logger.debug("Skipping event %s on %s: %s", event_id, channel_id, exc)
            return None

        if start >= stop:
            logger.debug("Skipping event %s on %s: start not before stop", event_id, channel_id)
            return None

        return ProgrammePayload(
            event_id=str(event_id),
            channel=channel_id,
            title=str(title).strip(),
            description=str(event.get("description") or "").strip(),
            start=start,
            stop=stop,
        )

    async def _ensure_session(self) -> str:
        if self._session_id is not None:
            return self._session_id

        if not self._device_id or not self._device_password:
            raise ConfigurationError(
                "Device credentials missing: set DEVICE_ID and DEVICE_PASSWORD from pairing"
            )

        logger.info("Logging in device %s", self._device_id)
        payload = await self._get_json(
            "device-login",
            {"deviceId": self._device_id, "password": self._device_password, "unit": "default"},
        )
        session_id = payload.get(SESSION_PARAM)
        if not session_id:
            raise ProviderError("Login response carries no session id")

        self._session_id = str(session_id)
        logger.info("Provider session established")
        return self._session_id

    async def _get_json(self, endpoint: str, params: dict[str, Any]) -> dict[str, Any]:
        url = self.base_url + endpoint
        logger.debug("GET %s %s", url, _sanitize_params_for_logging(params))

        try:
            response = await self._client.get(url, params=params)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise ProviderError(f"HTTP {e.response.status_code} from {endpoint}") from e
        except httpx.HTTPError as e:
            raise ProviderError(f"{type(e).__name__} calling {endpoint}: {e}") from e

        try:
            payload = response.json()
        except ValueError as e:
            raise ProviderError(f"Malformed response from {endpoint}: not JSON") from e

        if not isinstance(payload, dict):
            raise ProviderError(f"Malformed response from {endpoint}: not an object")
        if payload.get("status") != 1:
            raise ProviderError(
                f"Provider error from {endpoint}: {payload.get('error') or 'unknown error'}"
            )
        return payload


def _sanitize_params_for_logging(params: Mapping[str, Any]) -> dict[str, Any]:
    """Mask credentials and session ids for safe logging."""
    return {
        key: ("***" if key in _MASKED_PARAMS else value) for key, value in params.items()
    }
