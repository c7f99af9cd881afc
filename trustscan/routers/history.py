"""Scan history router."""

import logging

from fastapi import APIRouter, Depends, Query

from trustscan.models.schemas import FilterType, HistoryEntry
from trustscan.services.container import Services, get_services

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("", response_model=list[HistoryEntry])
async def list_history(
    filter: FilterType = Query(FilterType.ALL),
    services: Services = Depends(get_services),
):
    """List scan history, newest first, optionally filtered by badge."""
    return await services.history.load(filter)


@router.get("/last", response_model=HistoryEntry | None)
async def last_scan(services: Services = Depends(get_services)):
    """Most recent history entry."""
    return await services.history.last()


@router.post("/purge", response_model=list[HistoryEntry])
async def purge_history(
    days: int = Query(..., ge=1),
    services: Services = Depends(get_services),
):
    """Drop entries older than ``days`` days."""
    return await services.history.purge_older_than(days)


@router.delete("")
async def clear_history(services: Services = Depends(get_services)):
    """Delete the whole history."""
    await services.history.clear()
    logger.info("Scan history cleared")
    return {"cleared": True}
