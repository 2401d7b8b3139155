"""
Dependency Injection Configuration

Builds the process-scoped service graph once at startup and exposes it to
route handlers through FastAPI dependencies. The cache store is owned by the
container and shared by the refresh pipeline and the query path.
"""
import logging
from dataclasses import dataclass

import httpx
from fastapi import Request

from app.config import CustomSettings
from app.services.cache_store import CacheStore
from app.services.epg_fetch_service import EPGRefreshPipeline
from app.services.epg_query_service import EPGQueryService
from app.services.scheduler_service import EPGScheduler
from app.services.snapshot_service import SnapshotRepository


logger = logging.getLogger(__name__)


@dataclass
class ServiceContainer:
    """Application services sharing one CacheStore."""
    cache_store: CacheStore
    snapshot_repository: SnapshotRepository
    pipeline: EPGRefreshPipeline
    query_service: EPGQueryService
    scheduler: EPGScheduler


def build_services(
    config: CustomSettings,
    transport: httpx.AsyncBaseTransport | None = None
) -> ServiceContainer:
    """
    Wire the service graph from settings.

    Args:
        config: Application settings
        transport: Optional httpx transport for the feed download (used by tests)
    """
    cache_store = CacheStore()
    snapshot_repository = SnapshotRepository(config.snapshot_path)
    pipeline = EPGRefreshPipeline(
        cache_store,
        snapshot_repository,
        source_url=config.epg_url,
        download_dir=config.download_dir,
        tz=config.tzinfo,
        fetch_timeout=config.fetch_timeout_sec,
        max_retries=config.fetch_max_retries,
        backoff_factor=config.fetch_backoff_factor,
        parse_timeout=config.parse_timeout_sec,
        transport=transport,
    )
    scheduler = EPGScheduler(
        pipeline.refresh,
        config.epg_fetch_cron,
        timezone=config.timezone,
        misfire_grace_time=config.epg_fetch_misfire_grace_sec,
    )
    logger.debug("Service container built")
    return ServiceContainer(
        cache_store=cache_store,
        snapshot_repository=snapshot_repository,
        pipeline=pipeline,
        query_service=EPGQueryService(cache_store),
        scheduler=scheduler,
    )


def get_services(request: Request) -> ServiceContainer:
    """Service container stored on the application by the lifespan handler"""
    return request.app.state.services


def get_query_service(request: Request) -> EPGQueryService:
    return get_services(request).query_service


def get_pipeline(request: Request) -> EPGRefreshPipeline:
    return get_services(request).pipeline


def get_scheduler(request: Request) -> EPGScheduler:
    return get_services(request).scheduler


def get_cache_store(request: Request) -> CacheStore:
    return get_services(request).cache_store
