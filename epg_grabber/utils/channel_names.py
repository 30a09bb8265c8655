"""
Channel name utilities

Turns provider channel identifiers such as ``primaCOOL`` or ``nova_sport``
into display names. Channel records are always derived from the id, so
re-deriving them is safe and deterministic.
"""
import re

from epg_grabber.models import ChannelPayload


PRIMA_PREFIX = "prima"

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z])(?=[A-Z])")


def humanize_channel_name(channel_id: str) -> str:
    """
    Build a display name from a raw channel identifier.

    Examples:
        primaFULL -> Prima Full
        nova_sport -> Nova Sport
        ctSport -> Ct Sport
    """
    name = channel_id.replace("_", " ")

    rest = name[len(PRIMA_PREFIX):]
    if name.startswith(PRIMA_PREFIX) and rest[:1].isalpha():
        name = f"{PRIMA_PREFIX.capitalize()} {rest}"

    name = _CAMEL_BOUNDARY.sub(" ", name)
    return " ".join(word.capitalize() for word in name.split())


def channel_from_id(channel_id: str) -> ChannelPayload:
    return ChannelPayload(id=channel_id, display_name=humanize_channel_name(channel_id))
