"""Alerts and watchlist remote API client."""

import logging
from typing import Any

import httpx
from pydantic import TypeAdapter, ValidationError

from trustscan.models.schemas import Alert, EntityType, WatchItem
from trustscan.services.identity import DeviceIdentity
from trustscan.services.scan_api import DEFAULT_TIMEOUT, DEVICE_ID_HEADER

logger = logging.getLogger(__name__)

_alerts_adapter = TypeAdapter(list[Alert])
_watch_adapter = TypeAdapter(list[WatchItem])


class AlertsApiClient:
    """Client for ``/alerts`` and ``/watchlist`` endpoints.

    Read methods return None when the backend is unreachable so callers can
    fall back to local data; write methods return whether the call succeeded.
    """

    def __init__(self, base_url: str, identity: DeviceIdentity, timeout: float = DEFAULT_TIMEOUT):
        self.base_url = base_url.rstrip("/")
        self.identity = identity
        self.timeout = timeout

    @property
    def enabled(self) -> bool:
        return bool(self.base_url)

    async def _request(self, method: str, path: str, json: dict[str, Any] | None = None) -> tuple[bool, Any]:
        if not self.enabled:
            return False, None

        try:
            headers = {"Accept": "application/json", DEVICE_ID_HEADER: await self.identity.get()}
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.request(method, f"{self.base_url}{path}", headers=headers, json=json)
                response.raise_for_status()
                if not response.content:
                    return True, None
                return True, response.json()
        except httpx.TimeoutException:
            logger.warning(f"Alerts API timeout: {method} {path}")
        except httpx.HTTPStatusError as e:
            logger.warning(f"Alerts API request failed: {e}")
        except Exception as e:
            logger.warning(f"Alerts API error: {e}")
        return False, None

    @staticmethod
    def _unwrap(data: Any, field: str) -> Any:
        if isinstance(data, dict):
            return data.get(field, [])
        return data

    async def list_alerts(self) -> list[Alert] | None:
        ok, data = await self._request("GET", "/alerts")
        if not ok:
            return None
        try:
            return _alerts_adapter.validate_python(self._unwrap(data, "alerts") or [])
        except ValidationError as e:
            logger.warning(f"Alerts API returned unusable alerts: {e}")
            return None

    async def mark_read(self, alert_id: str) -> bool:
        ok, _ = await self._request("POST", "/alerts/read", json={"id": alert_id})
        return ok

    async def mark_all_read(self) -> bool:
        ok, _ = await self._request("POST", "/alerts/read-all")
        return ok

    async def list_watchlist(self) -> list[WatchItem] | None:
        ok, data = await self._request("GET", "/watchlist")
        if not ok:
            return None
        try:
            return _watch_adapter.validate_python(self._unwrap(data, "items") or [])
        except ValidationError as e:
            logger.warning(f"Alerts API returned an unusable watchlist: {e}")
            return None

    async def add_watch(self, entity_type: EntityType, entity_key: str) -> bool:
        ok, _ = await self._request(
            "POST", "/watchlist/add", json={"type": entity_type.value, "key": entity_key}
        )
        return ok

    async def toggle_watch(self, watch_id: str, enabled: bool) -> bool:
        ok, _ = await self._request("POST", "/watchlist/toggle", json={"id": watch_id, "enabled": enabled})
        return ok

    async def remove_watch(self, watch_id: str) -> bool:
        ok, _ = await self._request("POST", "/watchlist/remove", json={"id": watch_id})
        return ok
