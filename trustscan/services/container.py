"""Wiring of the TrustScan services around one key-value store."""

import logging
from dataclasses import dataclass

from fastapi import Request

from trustscan.config import Settings
from trustscan.services.ai_engine import AIScanEngine
from trustscan.services.alerts_api import AlertsApiClient
from trustscan.services.alerts_service import AlertsService
from trustscan.services.alerts_store import AlertStore, WatchlistStore
from trustscan.services.connectivity import ConnectivityMonitor
from trustscan.services.history_store import HistoryStore
from trustscan.services.identity import DeviceIdentity, SettingsProvider, SettingsStore
from trustscan.services.media import MediaLibrary
from trustscan.services.rate_limiter import RateLimiter
from trustscan.services.report_service import ReportService, ReportStore
from trustscan.services.review_prompt import ReviewPromptTracker
from trustscan.services.route_resolver import RouteResolver
from trustscan.services.scan_api import ScanApiClient
from trustscan.services.scan_cache import ResultCache
from trustscan.services.scan_orchestrator import ScanOrchestrator
from trustscan.services.storage import KeyValueStore

logger = logging.getLogger(__name__)


@dataclass
class Services:
    kv: KeyValueStore
    identity: DeviceIdentity
    media: MediaLibrary
    settings: SettingsProvider
    history: HistoryStore
    cache: ResultCache
    rate_limiter: RateLimiter
    orchestrator: ScanOrchestrator
    alerts: AlertsService
    reports: ReportService
    review: ReviewPromptTracker
    resolver: RouteResolver
    connectivity: ConnectivityMonitor


def build_services(kv: KeyValueStore, settings: Settings) -> Services:
    """Create every service on top of ``kv`` using process ``settings``."""
    identity = DeviceIdentity(kv)
    user_settings = SettingsProvider(SettingsStore(kv), refresh_seconds=settings.settings_refresh_seconds)
    history = HistoryStore(kv)
    cache = ResultCache(kv)
    rate_limiter = RateLimiter(kv)
    media = MediaLibrary(settings.uploads_path)

    scan_api = ScanApiClient(
        settings.scan_api_base_url, identity, timeout=settings.remote_timeout_seconds, media=media
    )
    backend = ScanApiClient(settings.backend_base_url, identity, timeout=settings.remote_timeout_seconds)
    engine = AIScanEngine(settings.ai_engine_url, api_key=settings.ai_engine_api_key or None, media=media)

    orchestrator = ScanOrchestrator(
        settings=user_settings,
        history=history,
        cache=cache,
        engine=engine,
        scan_api=scan_api,
        backend=backend,
        rate_limiter=rate_limiter,
    )
    alerts = AlertsService(
        AlertStore(kv),
        WatchlistStore(kv),
        AlertsApiClient(settings.backend_base_url, identity, timeout=settings.remote_timeout_seconds),
    )

    logger.info(
        f"Analysis sources: ai_engine={engine.enabled} "
        f"scan_api={scan_api.enabled} backend={backend.enabled}"
    )

    return Services(
        kv=kv,
        identity=identity,
        media=media,
        settings=user_settings,
        history=history,
        cache=cache,
        rate_limiter=rate_limiter,
        orchestrator=orchestrator,
        alerts=alerts,
        reports=ReportService(ReportStore(kv), rate_limiter),
        review=ReviewPromptTracker(kv),
        resolver=RouteResolver(settings.app_scheme, settings.web_base_url),
        connectivity=ConnectivityMonitor(settings.backend_base_url),
    )


def get_services(request: Request) -> Services:
    """FastAPI dependency returning the services built in the app lifespan."""
    return request.app.state.services
