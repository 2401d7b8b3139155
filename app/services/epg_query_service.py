"""
EPG Query Service

Validates lookup parameters and reads programmes from the cache store.
All query failures are converted to error payloads here.
"""
import logging

from app.exceptions import MissingParameter, QueryError
from app.schemas import EPGResponse, ErrorResponse, ProgramItemResponse
from app.services.cache_store import CacheStore
from app.utils.timezone import parse_query_date

logger = logging.getLogger(__name__)


class EPGQueryService:
    """Answers (channel name, date) lookups against the cache store."""

    def __init__(self, cache_store: CacheStore):
        self.cache_store = cache_store

    def handle(self, channel_name: str | None, date: str | None) -> EPGResponse | ErrorResponse:
        """
        Get EPG data for one channel and date

        Args:
            channel_name: Channel display name, exact match
            date: Calendar date as YYYY-MM-DD

        Returns:
            EPGResponse on success, ErrorResponse describing the first failed check otherwise
        """
        try:
            return self.query(channel_name, date)
        except QueryError as e:
            logger.info(f"EPG query ch={channel_name!r} date={date!r} failed: {e.message}")
            return ErrorResponse(error=e.message)

    def query(self, channel_name: str | None, date: str | None) -> EPGResponse:
        """
        Same as handle() but raises QueryError subclasses

        Raises:
            MissingParameter, InvalidDateFormat, ChannelNotFound,
            NoProgramData, NoProgramDataForDate
        """
        if not channel_name or not date:
            raise MissingParameter()

        # Date format is checked before touching the cache
        parse_query_date(date)

        items = self.cache_store.lookup(channel_name, date)
        logger.debug(f"EPG query ch={channel_name!r} date={date}: {len(items)} programmes")

        return EPGResponse(
            channel_name=channel_name,
            date=date,
            epg_data=[
                ProgramItemResponse(start=item.start, end=item.end, title=item.title)
                for item in items
            ],
        )
