"""Tests for the alert list, watchlist and their backend sync."""

from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from trustscan.models.schemas import AlertCreate, Badge, EntityType
from trustscan.services.alerts_api import AlertsApiClient
from trustscan.services.alerts_service import AlertsService
from trustscan.services.alerts_store import MAX_ALERTS, AlertStore, WatchlistStore
from trustscan.services.identity import DeviceIdentity
from trustscan.services.scan_api import DEVICE_ID_HEADER


def alert_create(key: str = "example.com", badge: Badge = Badge.HIGH_RISK) -> AlertCreate:
    return AlertCreate(
        entity_type=EntityType.DOMAIN,
        entity_key=key,
        badge=badge,
        score=20,
        message=f"Signals changed for {key}",
    )


def json_response(payload) -> MagicMock:
    response = MagicMock()
    response.status_code = 200
    response.content = b"{}"
    response.raise_for_status = MagicMock()
    response.json.return_value = payload
    return response


class TestAlertStore:
    @pytest.fixture
    def alerts(self, kv):
        return AlertStore(kv)

    @pytest.mark.asyncio
    async def test_add_and_mark_read(self, alerts):
        first = await alerts.add(alert_create("a.com"))
        await alerts.add(alert_create("b.com"))
        assert await alerts.unread_count() == 2

        updated = await alerts.mark_read(first.id)
        assert [alert.entity_key for alert in updated] == ["b.com", "a.com"]
        assert updated[1].is_read
        assert await alerts.unread_count() == 1

        await alerts.mark_all_read()
        assert await alerts.unread_count() == 0

    @pytest.mark.asyncio
    async def test_alerts_are_capped(self, kv):
        alerts = AlertStore(kv, max_items=3)
        for i in range(5):
            await alerts.add(alert_create(f"{i}.com"))
        assert [alert.entity_key for alert in await alerts.load()] == ["4.com", "3.com", "2.com"]
        assert MAX_ALERTS == 300

    @pytest.mark.asyncio
    async def test_seed_demo_only_when_empty(self, alerts):
        seeded = await alerts.seed_demo_if_empty()
        assert len(seeded) == 2
        again = await alerts.seed_demo_if_empty()
        assert [alert.id for alert in again] == [alert.id for alert in seeded]


class TestWatchlistStore:
    @pytest.fixture
    def watchlist(self, kv):
        return WatchlistStore(kv)

    @pytest.mark.asyncio
    async def test_readding_moves_to_front_without_duplicates(self, watchlist):
        await watchlist.add(EntityType.DOMAIN, "a.com")
        await watchlist.add(EntityType.VENDOR, "acme")
        items = await watchlist.add(EntityType.DOMAIN, " a.com ")
        assert [(item.entity_type, item.entity_key) for item in items] == [
            (EntityType.DOMAIN, "a.com"),
            (EntityType.VENDOR, "acme"),
        ]

    @pytest.mark.asyncio
    async def test_readding_keeps_the_latest_item(self, watchlist):
        with (
            patch(
                "trustscan.services.alerts_store.utc_now_iso",
                side_effect=["2026-01-01T00:00:00+00:00", "2026-02-01T00:00:00+00:00"],
            ),
            patch("trustscan.services.alerts_store.make_uid", side_effect=["watch_first", "watch_second"]),
        ):
            await watchlist.add(EntityType.DOMAIN, "x.com")
            items = await watchlist.add(EntityType.DOMAIN, "x.com")

        assert len(items) == 1
        assert items[0].id == "watch_second"
        assert items[0].created_at == "2026-02-01T00:00:00+00:00"
        assert await watchlist.load() == items

    @pytest.mark.asyncio
    async def test_same_key_different_type_is_separate(self, watchlist):
        await watchlist.add(EntityType.DOMAIN, "acme")
        items = await watchlist.add(EntityType.VENDOR, "acme")
        assert len(items) == 2

    @pytest.mark.asyncio
    async def test_blank_key_ignored(self, watchlist):
        assert await watchlist.add(EntityType.DOMAIN, "   ") == []

    @pytest.mark.asyncio
    async def test_toggle_and_remove(self, watchlist):
        items = await watchlist.add(EntityType.CREATOR, "@someone")
        watch_id = items[0].id
        toggled = await watchlist.toggle(watch_id, False)
        assert toggled[0].alerts_enabled is False
        assert await watchlist.remove(watch_id) == []


class TestAlertsService:
    @pytest.fixture
    def service(self, kv):
        api = AlertsApiClient("https://api.example.test", DeviceIdentity(kv), timeout=1)
        return AlertsService(AlertStore(kv), WatchlistStore(kv), api)

    @pytest.mark.asyncio
    @patch("httpx.AsyncClient.request", new_callable=AsyncMock)
    async def test_remote_alerts_replace_local(self, mock_request, service):
        await service.add_alert(alert_create("local.com"))
        mock_request.return_value = json_response(
            {
                "alerts": [
                    {
                        "id": "alert_remote",
                        "createdAt": "2026-01-01T00:00:00+00:00",
                        "entityType": "domain",
                        "entityKey": "remote.com",
                        "badge": "UNVERIFIED",
                        "score": 60,
                        "message": "Remote alert",
                    }
                ]
            }
        )
        alerts = await service.list_alerts()
        assert [alert.id for alert in alerts] == ["alert_remote"]
        assert [alert.id for alert in await service.alerts.load()] == ["alert_remote"]

        method, url = mock_request.call_args.args[:2]
        assert (method, url) == ("GET", "https://api.example.test/alerts")
        assert mock_request.call_args.kwargs["headers"][DEVICE_ID_HEADER].startswith("dev_")

    @pytest.mark.asyncio
    @patch("httpx.AsyncClient.request", new_callable=AsyncMock)
    async def test_unreachable_backend_falls_back_to_local(self, mock_request, service):
        await service.add_alert(alert_create("local.com"))
        mock_request.side_effect = httpx.ConnectError("offline")
        alerts = await service.list_alerts()
        assert [alert.entity_key for alert in alerts] == ["local.com"]

    @pytest.mark.asyncio
    @patch("httpx.AsyncClient.request", new_callable=AsyncMock)
    async def test_writes_apply_locally_when_backend_fails(self, mock_request, service):
        mock_request.side_effect = httpx.TimeoutException("slow")
        items = await service.add_watch(EntityType.DOMAIN, "watch.com")
        assert [item.entity_key for item in items] == ["watch.com"]
        assert mock_request.call_args.kwargs["json"] == {"type": "domain", "key": "watch.com"}

    @pytest.mark.asyncio
    @patch("httpx.AsyncClient.request", new_callable=AsyncMock)
    async def test_remote_watchlist_unwraps_items(self, mock_request, service):
        mock_request.return_value = json_response(
            {
                "items": [
                    {
                        "id": "w1",
                        "entityType": "vendor",
                        "entityKey": "acme",
                        "alertsEnabled": False,
                        "createdAt": "2026-01-01T00:00:00+00:00",
                    }
                ]
            }
        )
        items = await service.list_watchlist()
        assert items[0].entity_type == EntityType.VENDOR
        assert items[0].alerts_enabled is False

    @pytest.mark.asyncio
    async def test_disabled_backend_uses_local_data(self, kv):
        api = AlertsApiClient("", DeviceIdentity(kv))
        service = AlertsService(AlertStore(kv), WatchlistStore(kv), api)
        await service.add_alert(alert_create("only-local.com"))
        alerts = await service.mark_all_read()
        assert alerts[0].is_read
        assert [alert.entity_key for alert in await service.list_alerts()] == ["only-local.com"]
