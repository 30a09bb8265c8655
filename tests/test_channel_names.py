"""Channel display names derived from provider channel ids."""

import pytest

from epg_grabber.utils.channel_names import channel_from_id, humanize_channel_name


@pytest.mark.parametrize(
    "channel_id, expected",
    [
        ("primaFULL", "Prima Full"),
        ("primaMAX", "Prima Max"),
        ("primaCOOL", "Prima Cool"),
        ("primazoom", "Prima Zoom"),
        ("prima", "Prima"),
        ("nova_sport", "Nova Sport"),
        ("novaCinema", "Nova Cinema"),
        ("ct1", "Ct1"),
        ("joj_family", "Joj Family"),
    ],
)
def test_humanize_channel_name(channel_id: str, expected: str) -> None:
    assert humanize_channel_name(channel_id) == expected


def test_humanize_is_deterministic() -> None:
    assert humanize_channel_name("primaKRIMI") == humanize_channel_name("primaKRIMI")


def test_channel_from_id_keeps_raw_id() -> None:
    channel = channel_from_id("nova_sport")

    assert channel.id == "nova_sport"
    assert channel.display_name == "Nova Sport"
