"""Watchlist router."""

from fastapi import APIRouter, Depends, HTTPException, Query

from trustscan.models.schemas import WatchCreate, WatchItem, WatchToggle
from trustscan.services.container import Services, get_services

router = APIRouter()


@router.get("", response_model=list[WatchItem])
async def list_watchlist(
    refresh: bool = Query(True),
    services: Services = Depends(get_services),
):
    """List watched entities, refreshed from the backend when it is reachable."""
    return await services.alerts.list_watchlist(refresh=refresh)


@router.post("", response_model=list[WatchItem], status_code=201)
async def add_watch(item: WatchCreate, services: Services = Depends(get_services)):
    """Watch an entity. Re-adding an existing entity moves it to the front."""
    if not item.entity_key.strip():
        raise HTTPException(status_code=400, detail="entity_key must not be blank")
    return await services.alerts.add_watch(item.entity_type, item.entity_key)


@router.post("/{watch_id}/toggle", response_model=list[WatchItem])
async def toggle_watch(watch_id: str, toggle: WatchToggle, services: Services = Depends(get_services)):
    return await services.alerts.toggle_watch(watch_id, toggle.enabled)


@router.delete("/{watch_id}", response_model=list[WatchItem])
async def remove_watch(watch_id: str, services: Services = Depends(get_services)):
    return await services.alerts.remove_watch(watch_id)
