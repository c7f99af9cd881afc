"""Local alert list and watchlist."""

import logging
import time
import uuid
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ValidationError

from trustscan.models.schemas import Alert, AlertCreate, Badge, EntityType, TopReason, WatchItem
from trustscan.services.storage import JsonListStore

logger = logging.getLogger(__name__)

ALERTS_KEY = "alerts_v1"
WATCH_KEY = "watchlist_v1"
MAX_ALERTS = 300
MAX_WATCH = 300


def make_uid(prefix: str) -> str:
    return f"{prefix}_{int(time.time() * 1000)}_{uuid.uuid4().hex[:12]}"


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _validate_all(model: type[BaseModel], items: list[dict[str, Any]]) -> list[Any]:
    valid = []
    for item in items:
        try:
            valid.append(model.model_validate(item))
        except ValidationError as e:
            logger.warning(f"Skipping invalid {model.__name__}: {e}")
    return valid


class AlertStore(JsonListStore):
    """Alerts, newest first, capped at 300."""

    key = ALERTS_KEY
    max_items = MAX_ALERTS

    async def load(self) -> list[Alert]:
        return _validate_all(Alert, await self.load_raw())

    async def save(self, alerts: list[Alert]) -> None:
        await self.save_raw([alert.model_dump(mode="json") for alert in alerts])

    async def add(self, alert: AlertCreate) -> Alert:
        created = Alert(
            id=make_uid("alert"),
            created_at=utc_now_iso(),
            read_at=None,
            **alert.model_dump(),
        )
        stored = created.model_dump(mode="json")
        await self.mutate(lambda items: [stored, *items])
        return created

    async def mark_read(self, alert_id: str) -> list[Alert]:
        read_at = utc_now_iso()

        def change(items: list[dict[str, Any]]) -> list[dict[str, Any]]:
            return [
                {**item, "read_at": read_at} if item.get("id") == alert_id else item
                for item in items
            ]

        return _validate_all(Alert, await self.mutate(change))

    async def mark_all_read(self) -> list[Alert]:
        read_at = utc_now_iso()
        return _validate_all(
            Alert, await self.mutate(lambda items: [{**item, "read_at": read_at} for item in items])
        )

    async def unread_count(self) -> int:
        return sum(1 for alert in await self.load() if not alert.is_read)

    async def seed_demo_if_empty(self) -> list[Alert]:
        """Store two sample alerts when the list is empty."""
        demo = [
            Alert(
                id=make_uid("alert"),
                created_at=utc_now_iso(),
                entity_type=EntityType.DOMAIN,
                entity_key="tiktok.com",
                badge=Badge.HIGH_RISK,
                score=24,
                message="High-risk signals detected on a shared TikTok listing.",
                top_reasons=[
                    TopReason(key="E", summary="Suspicious link redirects / phishing signals."),
                    TopReason(key="F", summary="Pattern matches known scam structures."),
                ],
            ),
            Alert(
                id=make_uid("alert"),
                created_at=utc_now_iso(),
                entity_type=EntityType.DOMAIN,
                entity_key="facebook.com",
                badge=Badge.UNVERIFIED,
                score=61,
                message="Unverified listing: not enough evidence to confirm authenticity.",
                top_reasons=[TopReason(key="C", summary="Claims not supported by public signals.")],
            ),
        ]
        demo_items = [alert.model_dump(mode="json") for alert in demo]
        stored = await self.mutate(lambda items: items or demo_items)
        return _validate_all(Alert, stored)


class WatchlistStore(JsonListStore):
    """Watched entities, newest first, at most one per (entity_type, entity_key)."""

    key = WATCH_KEY
    max_items = MAX_WATCH

    async def load(self) -> list[WatchItem]:
        return _validate_all(WatchItem, await self.load_raw())

    async def save(self, items: list[WatchItem]) -> None:
        await self.save_raw([item.model_dump(mode="json") for item in items])

    async def add(self, entity_type: EntityType, entity_key: str) -> list[WatchItem]:
        """Watch an entity, replacing any existing item for the same pair.

        Blank keys are ignored.
        """
        key = entity_key.strip()
        if not key:
            return await self.load()

        item = WatchItem(
            id=make_uid("watch"),
            entity_type=entity_type,
            entity_key=key,
            alerts_enabled=True,
            created_at=utc_now_iso(),
        )
        stored = item.model_dump(mode="json")

        def change(items: list[dict[str, Any]]) -> list[dict[str, Any]]:
            remaining = [
                existing
                for existing in items
                if not (existing.get("entity_type") == entity_type.value and existing.get("entity_key") == key)
            ]
            return [stored, *remaining]

        return _validate_all(WatchItem, await self.mutate(change))

    async def toggle(self, watch_id: str, enabled: bool) -> list[WatchItem]:
        def change(items: list[dict[str, Any]]) -> list[dict[str, Any]]:
            return [
                {**item, "alerts_enabled": enabled} if item.get("id") == watch_id else item
                for item in items
            ]

        return _validate_all(WatchItem, await self.mutate(change))

    async def remove(self, watch_id: str) -> list[WatchItem]:
        return _validate_all(
            WatchItem, await self.mutate(lambda items: [item for item in items if item.get("id") != watch_id])
        )
