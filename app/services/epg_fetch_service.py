"""
EPG Refresh Service

Coordinates fetch -> decompress -> parse -> build -> persist -> install.
A failure in any stage before install aborts the run and leaves the
currently served index untouched.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone, tzinfo
from pathlib import Path

import httpx

from app.exceptions import EPGServiceError, NoSnapshot, PersistError, SnapshotCorrupt
from app.services.cache_store import CacheStore
from app.services.epg_downloader_service import fetch_guide
from app.services.epg_types import BuildStats, CacheIndex, GuideDocument
from app.services.fetch_coordinator import FetchCoordinator
from app.services.index_builder_service import build_index
from app.services.snapshot_service import SnapshotRepository


logger = logging.getLogger(__name__)


@dataclass(slots=True)
class RefreshSummary:
    started_at: datetime
    completed_at: datetime | None = None
    channels_parsed: int = 0
    programmes_parsed: int = 0
    stats: BuildStats = field(default_factory=BuildStats)
    persisted: bool = False
    generation: int = 0

    @property
    def duration_seconds(self) -> float:
        if self.completed_at is None:
            return 0.0
        return max(0.0, (self.completed_at - self.started_at).total_seconds())

    def to_dict(self) -> dict:
        return {
            "status": "success",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "started_at": self.started_at.isoformat(),
            "duration_seconds": self.duration_seconds,
            "channels_parsed": self.channels_parsed,
            "programmes_parsed": self.programmes_parsed,
            "channels_named": self.stats.channels_named,
            "programmes_indexed": self.stats.programmes_indexed,
            "programmes_skipped": self.stats.programmes_skipped,
            "snapshot_saved": self.persisted,
            "generation": self.generation,
        }


class EPGRefreshPipeline:
    """Rebuilds the cache index from the remote guide."""

    def __init__(
        self,
        cache_store: CacheStore,
        snapshot_repository: SnapshotRepository | None,
        *,
        source_url: str,
        download_dir: Path | str,
        tz: tzinfo | None = None,
        fetch_timeout: float = 120.0,
        max_retries: int = 3,
        backoff_factor: float = 2.0,
        parse_timeout: int | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.cache_store = cache_store
        self.snapshot_repository = snapshot_repository
        self.source_url = source_url
        self.download_dir = Path(download_dir)
        self.tz = tz
        self._fetch_timeout = fetch_timeout
        self._max_retries = max_retries
        self._backoff_factor = backoff_factor
        self._parse_timeout = parse_timeout
        self._transport = transport
        self._coordinator = FetchCoordinator()

    @property
    def is_running(self) -> bool:
        return self._coordinator.busy

    async def run(self) -> RefreshSummary:
        """
        Execute one full refresh.

        Raises:
            FetchError, DecompressError, DocumentParseError: Stage failures
        """
        summary = RefreshSummary(started_at=datetime.now(timezone.utc))
        logger.info(
            "Refresh started: source=%s, parse timeout=%s",
            _sanitize_url_for_logging(self.source_url),
            f"{self._parse_timeout}s" if self._parse_timeout else "disabled",
        )

        self.download_dir.mkdir(parents=True, exist_ok=True)
        guide = await fetch_guide(
            self.source_url,
            self.download_dir,
            timeout=self._fetch_timeout,
            max_retries=self._max_retries,
            backoff_factor=self._backoff_factor,
            parse_timeout_seconds=self._parse_timeout,
            transport=self._transport,
        )
        summary.channels_parsed = len(guide.channels)
        summary.programmes_parsed = len(guide.programmes)

        index = await self._build(guide, summary.stats)
        summary.persisted = await self._persist(index)
        summary.generation = self.cache_store.replace(index)

        summary.completed_at = datetime.now(timezone.utc)
        logger.info(
            "Refresh completed in %.2fs: %s channels, %s programmes indexed",
            summary.duration_seconds,
            summary.stats.channels_named,
            summary.stats.programmes_indexed,
        )
        return summary

    async def _build(self, guide: GuideDocument, stats: BuildStats) -> CacheIndex:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(
            None,
            lambda: build_index(guide, self.tz, stats=stats),
        )

    async def _persist(self, index: CacheIndex) -> bool:
        if self.snapshot_repository is None:
            return False
        try:
            await self.snapshot_repository.save(index)
            return True
        except PersistError as exc:
            # Serving continues from memory, next refresh writes a new snapshot
            logger.error("Snapshot not saved: %s", exc, exc_info=True)
            return False

    async def refresh(self) -> dict:
        """
        Main entry point for scheduled and manual refreshes.

        Returns:
            Dictionary with refresh statistics or error/skip message.
        """
        return await self._coordinator.run_exclusive(self._refresh)

    async def _refresh(self) -> dict:
        try:
            summary = await self.run()
            return summary.to_dict()
        except EPGServiceError as exc:
            logger.error("EPG refresh failed: %s", exc, exc_info=True)
            return {"error": str(exc)}
        except Exception as exc:  # Catch-all to ensure API stability
            logger.error("Unexpected error during EPG refresh: %s", exc, exc_info=True)
            return {"error": str(exc)}


async def restore_cache(pipeline: EPGRefreshPipeline) -> str:
    """
    Populate the cache store at startup.

    Loads the last snapshot; when it is missing or corrupt, runs one refresh
    synchronously. If that fails too, the service starts with an empty index.

    Returns:
        'snapshot', 'refresh' or 'empty' depending on what populated the cache
    """
    repository = pipeline.snapshot_repository
    if repository is not None:
        try:
            index = await repository.load()
            pipeline.cache_store.replace(index)
            return "snapshot"
        except NoSnapshot as exc:
            logger.warning("No usable snapshot (%s), fetching guide now", exc)
        except SnapshotCorrupt as exc:
            logger.warning("Snapshot is corrupt (%s), fetching guide now", exc)

    result = await pipeline.refresh()
    if "error" in result:
        logger.error("Initial refresh failed, serving an empty index until the next run: %s", result["error"])
        return "empty"
    return "refresh"


def _sanitize_url_for_logging(url: str) -> str:
    """Remove credentials from URL for safe logging."""
    if "://" not in url:
        return url
    try:
        protocol, rest = url.split("://", 1)
        if "@" in rest:
            rest = rest.split("@", 1)[1]
            return f"{protocol}://***:***@{rest}"
        return url
    except (ValueError, IndexError):
        return url
