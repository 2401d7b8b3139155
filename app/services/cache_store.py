"""
EPG Cache Store

Owns the CacheIndex currently served by the query endpoint.

Installed indexes are treated as immutable: `replace` swaps the whole
reference under a writer lock and `lookup` resolves all three keys against
the single reference it read, so a reader never sees two index generations.
"""
from datetime import datetime, timezone
import logging
import threading

from app.exceptions import ChannelNotFound, NoProgramData, NoProgramDataForDate
from app.services.epg_types import CacheIndex, ProgramItem


logger = logging.getLogger(__name__)


class CacheStore:
    """Holds one CacheIndex at a time."""

    def __init__(self, index: CacheIndex | None = None):
        self._write_lock = threading.Lock()
        self._index = index if index is not None else CacheIndex()
        self._generation = 0
        self._installed_at: datetime | None = None

    def replace(self, new_index: CacheIndex) -> int:
        """
        Install a fully built index, discarding the previous one.

        Returns:
            The generation number of the installed index
        """
        with self._write_lock:
            self._index = new_index
            self._generation += 1
            self._installed_at = datetime.now(timezone.utc)
            generation = self._generation

        logger.info(
            "Installed EPG index generation %s: %s channels, %s programmes",
            generation,
            len(new_index.channel_map),
            new_index.program_count,
        )
        return generation

    def lookup(self, channel_name: str, date: str) -> list[ProgramItem]:
        """
        Resolve channel name -> channel id -> date bucket -> programmes.

        Raises:
            ChannelNotFound: Name is not in the name index
            NoProgramData: Channel id has no programmes at all
            NoProgramDataForDate: Channel has programmes, none on this date
        """
        index = self._index

        channel_id = index.channel_map.get(channel_name)
        if channel_id is None:
            raise ChannelNotFound(channel_name)

        dates = index.program_data.get(channel_id)
        if dates is None:
            raise NoProgramData(channel_name)

        items = dates.get(date)
        if items is None:
            raise NoProgramDataForDate(channel_name, date)

        return list(items)

    def snapshot(self) -> CacheIndex:
        """Current index, for persistence. Must not be mutated."""
        return self._index

    @property
    def generation(self) -> int:
        return self._generation

    def is_empty(self) -> bool:
        index = self._index
        return not index.channel_map and not index.program_data

    def stats(self) -> dict:
        """Summary of the installed index for the health endpoint"""
        with self._write_lock:
            index = self._index
            generation = self._generation
            installed_at = self._installed_at

        return {
            "generation": generation,
            "channels": len(index.channel_map),
            "channels_with_programmes": len(index.program_data),
            "programmes": index.program_count,
            "installed_at": installed_at.isoformat() if installed_at else None,
        }
