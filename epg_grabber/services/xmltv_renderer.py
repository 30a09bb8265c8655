from collections.abc import Iterable
import logging

from lxml import etree # type: ignore

from epg_grabber.models import ChannelPayload, ProgrammePayload
from epg_grabber.utils.timezone import format_xmltv_time

logger = logging.getLogger(__name__)

def render_xmltv(
    channels: Iterable[ChannelPayload],
    programmes: Iterable[ProgrammePayload],
    *,
    lang: str = "cs",
    generator_name: str = "epg-grabber",
) -> bytes:
    """
    Render channels and programmes as an XMLTV document

    Args:
        channels: Channels to list
        programmes: Programmes to list
        lang: Language attribute for text elements
        generator_name: Value of the generator-info-name attribute

    Returns:
        UTF-8 encoded XMLTV document with XML declaration
    """
    root = etree.Element('tv', attrib={'generator-info-name': generator_name})

    channel_list = sorted(channels, key=lambda channel: channel.id)
    for channel in channel_list:
        _append_channel(root, channel, lang)

    programme_list = sorted(programmes, key=lambda p: (p.channel, p.start, p.event_id))
    for programme in programme_list:
        _append_programme(root, programme, lang)

    logger.info(f"Rendered XMLTV: {len(channel_list)} channels, {len(programme_list)} programmes")

    return etree.tostring(root, xml_declaration=True, encoding='UTF-8', pretty_print=True)


def _append_channel(root: etree._Element, channel: ChannelPayload, lang: str) -> None:
    """Append a channel element"""
    element = etree.SubElement(root, 'channel', id=channel.id)
    _text_child(element, 'display-name', channel.display_name, lang)


def _append_programme(root: etree._Element, programme: ProgrammePayload, lang: str) -> None:
    """Append a programme element"""
    element = etree.SubElement(
        root,
        'programme',
        start=format_xmltv_time(programme.start),
        stop=format_xmltv_time(programme.stop),
        channel=programme.channel,
    )
    _text_child(element, 'title', programme.title, lang)
    if programme.description:
        _text_child(element, 'desc', programme.description, lang)


def _text_child(parent: etree._Element, tag: str, text: str, lang: str) -> None:
    child = etree.SubElement(parent, tag, lang=lang)
    child.text = text
