"""Alerts router."""

from fastapi import APIRouter, Depends, Query

from trustscan.models.schemas import Alert, AlertCreate
from trustscan.services.container import Services, get_services

router = APIRouter()


@router.get("", response_model=list[Alert])
async def list_alerts(
    refresh: bool = Query(True),
    services: Services = Depends(get_services),
):
    """List alerts, refreshed from the backend when it is reachable."""
    return await services.alerts.list_alerts(refresh=refresh)


@router.get("/unread-count")
async def unread_count(services: Services = Depends(get_services)):
    return {"unread": await services.alerts.alerts.unread_count()}


@router.post("", response_model=Alert, status_code=201)
async def create_alert(alert: AlertCreate, services: Services = Depends(get_services)):
    """Record an alert locally."""
    return await services.alerts.add_alert(alert)


@router.post("/demo", response_model=list[Alert])
async def seed_demo_alerts(services: Services = Depends(get_services)):
    """Store sample alerts when there are none."""
    return await services.alerts.alerts.seed_demo_if_empty()


@router.post("/read-all", response_model=list[Alert])
async def mark_all_read(services: Services = Depends(get_services)):
    return await services.alerts.mark_all_read()


@router.post("/{alert_id}/read", response_model=list[Alert])
async def mark_read(alert_id: str, services: Services = Depends(get_services)):
    return await services.alerts.mark_read(alert_id)


@router.delete("")
async def clear_alerts(services: Services = Depends(get_services)):
    await services.alerts.clear_alerts()
    return {"cleared": True}
