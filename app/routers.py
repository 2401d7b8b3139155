from typing import Annotated
from fastapi import APIRouter, Depends, HTTPException, Query
import logging

from app.dependencies import get_cache_store, get_pipeline, get_query_service, get_scheduler
from app.schemas import EPGResponse, ErrorResponse
from app.services import CacheStore, EPGQueryService, EPGRefreshPipeline, EPGScheduler


logger = logging.getLogger(__name__)

SERVICE_NAME = "EPG Lookup Service"
SERVICE_VERSION = "0.1.0"

main_router = APIRouter()


@main_router.get("/", response_model=EPGResponse | ErrorResponse)
async def get_epg(
    query_service: Annotated[EPGQueryService, Depends(get_query_service)],
    ch: Annotated[str | None, Query(description="Channel display name")] = None,
    date: Annotated[str | None, Query(description="Date as YYYY-MM-DD")] = None,
) -> EPGResponse | ErrorResponse:
    """
    Get the programme list of one channel for one day

    Errors are returned as {"error": ...} with status 200.
    """
    logger.debug(f"EPG request: ch={ch!r} date={date!r}")
    return query_service.handle(ch, date)


@main_router.get("/info")
async def service_info(
    scheduler: Annotated[EPGScheduler, Depends(get_scheduler)],
) -> dict:
    """Service information"""
    next_run = scheduler.get_next_run_time()

    return {
        "service": SERVICE_NAME,
        "version": SERVICE_VERSION,
        "next_scheduled_fetch": next_run.isoformat() if next_run else None,
        "endpoints": {
            "epg": "/?ch=<channel>&date=YYYY-MM-DD - Programmes of a channel on a day",
            "fetch": "/fetch - Manually trigger EPG refresh (POST)",
            "health": "/health - Health check"
        }
    }


@main_router.get("/health")
async def health_check(
    scheduler: Annotated[EPGScheduler, Depends(get_scheduler)],
    pipeline: Annotated[EPGRefreshPipeline, Depends(get_pipeline)],
    cache_store: Annotated[CacheStore, Depends(get_cache_store)],
) -> dict:
    """Health check endpoint"""
    next_run = scheduler.get_next_run_time()
    return {
        "status": "ok",
        "scheduler_running": scheduler.running,
        "refresh_in_progress": pipeline.is_running,
        "next_fetch": next_run.isoformat() if next_run else None,
        "cache": cache_store.stats(),
    }


@main_router.post("/fetch")
async def trigger_fetch(
    pipeline: Annotated[EPGRefreshPipeline, Depends(get_pipeline)],
) -> dict:
    """
    Manually trigger EPG refresh

    This will download, parse and install a new index
    """
    logger.info("Manual EPG refresh triggered via API")
    result = await pipeline.refresh()

    if "error" in result:
        raise HTTPException(status_code=500, detail=result["error"])

    return result
