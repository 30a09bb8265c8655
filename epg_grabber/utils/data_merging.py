"""
Data merging utilities

This module merges channels and programmes fetched for a day into the working
set. Merges never mutate their inputs; they return new mappings, which keeps
repeated merges of the same day idempotent.
"""
import logging
from collections.abc import Iterable, Mapping

from epg_grabber.models import ChannelPayload, ProgrammePayload
from epg_grabber.utils.channel_names import channel_from_id

logger = logging.getLogger(__name__)


def merge_channels(
    existing_channels: Mapping[str, ChannelPayload],
    new_channels: Iterable[ChannelPayload]
) -> dict[str, ChannelPayload]:
    """
    Merge new channels into a copy of the existing channel mapping.

    Channel records are overwritten by id. They are derived from the id alone,
    so overwriting is idempotent.

    Args:
        existing_channels: Mapping of existing channels (id -> ChannelPayload)
        new_channels: Channel payloads to merge

    Returns:
        New mapping containing both sets
    """
    merged = dict(existing_channels)
    for channel in new_channels:
        merged[channel.id] = channel
    return merged


def merge_programmes(
    existing_programmes: Mapping[str, ProgrammePayload],
    new_programmes: Iterable[ProgrammePayload]
) -> tuple[dict[str, ProgrammePayload], int]:
    """
    Upsert programmes by event id into a copy of the existing mapping.

    Args:
        existing_programmes: Mapping of existing programmes (event_id -> ProgrammePayload)
        new_programmes: Programme payloads to merge

    Returns:
        Tuple of (merged_programmes, count_of_new_event_ids)
    """
    merged = dict(existing_programmes)
    new_ids: set[str] = set()

    for programme in new_programmes:
        if programme.event_id not in existing_programmes:
            new_ids.add(programme.event_id)
        elif existing_programmes[programme.event_id] != programme:
            logger.debug(
                "Overwriting changed programme %s on %s",
                programme.event_id,
                programme.channel,
            )
        merged[programme.event_id] = programme

    return merged, len(new_ids)


def ensure_programme_channels(
    channels: Mapping[str, ChannelPayload],
    programmes: Iterable[ProgrammePayload]
) -> dict[str, ChannelPayload]:
    """
    Return channels extended with fallback records for programmes whose
    channel has no record yet.
    """
    missing = {
        programme.channel for programme in programmes if programme.channel not in channels
    }
    if not missing:
        return dict(channels)

    logger.warning(
        "%s programme channel(s) have no channel record; generating fallback entries",
        len(missing),
    )
    return merge_channels(channels, [channel_from_id(channel_id) for channel_id in sorted(missing)])
