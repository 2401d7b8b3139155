"""
EPG Index Builder

Turns a parsed guide document into the two-level CacheIndex served by the API.
"""
from datetime import tzinfo
import logging

from app.exceptions import MalformedTimestamp
from app.services.epg_types import (
    BuildStats,
    CacheIndex,
    GuideChannel,
    GuideDocument,
    GuideProgramme,
    ProgramItem,
)
from app.utils.timezone import format_clock, format_date, parse_epg_time

logger = logging.getLogger(__name__)

LOOKUP_LANG = "zh"


def build_index(
    doc: GuideDocument,
    tz: tzinfo | None = None,
    *,
    stats: BuildStats | None = None
) -> CacheIndex:
    """
    Build a fresh CacheIndex from a guide document

    Programmes with unparsable start/stop are skipped, never fatal.

    Args:
        doc: Parsed guide document
        tz: Local timezone used to interpret timestamps

    Keyword Args:
        stats: Optional counters, filled in place

    Returns:
        The new index, fully formed
    """
    if stats is None:
        stats = BuildStats()
    channel_map = _build_channel_map(doc.channels)
    stats.channels_named = len(channel_map)

    program_data: dict[str, dict[str, list[ProgramItem]]] = {}
    for programme in doc.programmes:
        entry = _to_program_item(programme, tz)
        if entry is None:
            stats.programmes_skipped += 1
            continue

        date_key, item = entry
        program_data.setdefault(programme.channel, {}).setdefault(date_key, []).append(item)
        stats.programmes_indexed += 1

    logger.info(
        "Index built: %s named channels, %s channels with programmes, %s programmes (%s skipped)",
        stats.channels_named,
        len(program_data),
        stats.programmes_indexed,
        stats.programmes_skipped,
    )

    return CacheIndex(channel_map=channel_map, program_data=program_data)


def _build_channel_map(channels: list[GuideChannel]) -> dict[str, str]:
    channel_map: dict[str, str] = {}

    for channel in channels:
        name = lookup_name(channel)
        if name is None:
            logger.debug("Channel %s has no '%s' display name, not reachable by name", channel.id, LOOKUP_LANG)
            continue
        # Duplicate names: last channel wins
        channel_map[name] = channel.id

    return channel_map


def lookup_name(channel: GuideChannel) -> str | None:
    """First non-empty display name tagged with the lookup language"""
    for display_name in channel.display_names:
        if display_name.lang == LOOKUP_LANG and display_name.value:
            return display_name.value
    return None


def _to_program_item(programme: GuideProgramme, tz: tzinfo | None) -> tuple[str, ProgramItem] | None:
    try:
        start_time = parse_epg_time(programme.start, tz)
        stop_time = parse_epg_time(programme.stop, tz)
    except MalformedTimestamp as e:
        logger.warning(f"Skipping programme '{programme.title}' on {programme.channel}: {e}")
        return None

    item = ProgramItem(
        start=format_clock(start_time),
        end=format_clock(stop_time),
        title=programme.title,
    )
    return format_date(start_time), item
