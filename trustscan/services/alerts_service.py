"""Alerts and watchlist: remote-first reads, local-first writes."""

import logging

from trustscan.models.schemas import Alert, AlertCreate, EntityType, WatchItem
from trustscan.services.alerts_api import AlertsApiClient
from trustscan.services.alerts_store import AlertStore, WatchlistStore

logger = logging.getLogger(__name__)


class AlertsService:
    """Keeps the local alert list and watchlist in step with the backend.

    Reads fetch from the backend and replace the local copy; when the backend
    is unreachable the local copy is returned unchanged. Writes always apply
    locally and are forwarded to the backend on a best-effort basis.
    """

    def __init__(self, alerts: AlertStore, watchlist: WatchlistStore, api: AlertsApiClient):
        self.alerts = alerts
        self.watchlist = watchlist
        self.api = api

    async def list_alerts(self, refresh: bool = True) -> list[Alert]:
        if refresh:
            remote = await self.api.list_alerts()
            if remote is not None:
                await self.alerts.save(remote)
                return remote[: self.alerts.max_items]
            logger.debug("Alerts backend unavailable, using local alerts")
        return await self.alerts.load()

    async def add_alert(self, alert: AlertCreate) -> Alert:
        return await self.alerts.add(alert)

    async def mark_read(self, alert_id: str) -> list[Alert]:
        alerts = await self.alerts.mark_read(alert_id)
        await self.api.mark_read(alert_id)
        return alerts

    async def mark_all_read(self) -> list[Alert]:
        alerts = await self.alerts.mark_all_read()
        await self.api.mark_all_read()
        return alerts

    async def clear_alerts(self) -> None:
        await self.alerts.clear()

    async def list_watchlist(self, refresh: bool = True) -> list[WatchItem]:
        if refresh:
            remote = await self.api.list_watchlist()
            if remote is not None:
                await self.watchlist.save(remote)
                return remote[: self.watchlist.max_items]
            logger.debug("Watchlist backend unavailable, using local watchlist")
        return await self.watchlist.load()

    async def add_watch(self, entity_type: EntityType, entity_key: str) -> list[WatchItem]:
        items = await self.watchlist.add(entity_type, entity_key)
        if entity_key.strip():
            await self.api.add_watch(entity_type, entity_key.strip())
        return items

    async def toggle_watch(self, watch_id: str, enabled: bool) -> list[WatchItem]:
        items = await self.watchlist.toggle(watch_id, enabled)
        await self.api.toggle_watch(watch_id, enabled)
        return items

    async def remove_watch(self, watch_id: str) -> list[WatchItem]:
        items = await self.watchlist.remove(watch_id)
        await self.api.remove_watch(watch_id)
        return items
