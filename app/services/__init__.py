"""
Services package for EPG Service

This package contains all business logic and service layer components.
"""
from app.services.cache_store import CacheStore
from app.services.epg_fetch_service import EPGRefreshPipeline, restore_cache
from app.services.epg_query_service import EPGQueryService
from app.services.index_builder_service import build_index
from app.services.scheduler_service import EPGScheduler
from app.services.snapshot_service import SnapshotRepository
from app.services.xmltv_parser_service import parse_guide_bytes, parse_guide_file

__all__ = [
    'CacheStore',
    'EPGRefreshPipeline',
    'restore_cache',
    'EPGQueryService',
    'build_index',
    'EPGScheduler',
    'SnapshotRepository',
    'parse_guide_bytes',
    'parse_guide_file',
]
