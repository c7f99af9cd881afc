"""Scan orchestrator for link and media trust scans.

This module is the entry point for every scan. Given a URL or a media
reference it tries the analysis sources in a fixed priority order, turns
whichever answer it gets into a canonical ``ScanResult`` and records it
locally before handing it back.

Source order:
    1. **AI engine**: preferred. For link scans the result is then submitted
       to the backend for a canonical cross-device id (best effort).
    2. **Remote scan API**: direct POST, 15 second timeout.
    3. **Mock generator**: local and always available.

Every result is written to history and to the result cache according to the
user's settings. Storage failures are logged and never fail a scan. The only
errors a caller sees are an empty request (``ScanInputError``), a full
rate-limit window (``RateLimitExceededError``) and, in theory, every source
failing including the mock generator (``ScanFailedError``).
"""

import logging

from trustscan.models.schemas import (
    MockScanResponse,
    RawScanResponse,
    ScanOrigin,
    ScanResult,
    UserSettings,
)
from trustscan.services.ai_engine import AIScanEngine
from trustscan.services.history_store import HistoryStore
from trustscan.services.identity import SettingsProvider
from trustscan.services.mock_scan import generate_mock_scan
from trustscan.services.normalizer import MEDIA_DOMAIN, extract_domain, normalize
from trustscan.services.rate_limiter import RateLimiter
from trustscan.services.scan_api import ScanApiClient
from trustscan.services.scan_cache import ResultCache

logger = logging.getLogger(__name__)


class ScanInputError(ValueError):
    """Neither a URL nor a media reference was supplied."""


class ScanFailedError(Exception):
    """Every analysis source, including the local generator, failed."""


class ScanOrchestrator:
    """Runs a scan through the analysis sources and records the result.

    Attributes:
        settings: Provider of the user's current settings.
        history: Scan history store.
        cache: Result cache.
        engine: AI analysis engine client.
        scan_api: Direct remote scan API client (second fallback).
        backend: Backend client used for canonical ids and result lookup.
        rate_limiter: Optional gate on the number of scans per hour.
    """

    def __init__(
        self,
        settings: SettingsProvider,
        history: HistoryStore,
        cache: ResultCache,
        engine: AIScanEngine,
        scan_api: ScanApiClient,
        backend: ScanApiClient,
        rate_limiter: RateLimiter | None = None,
        mock_generator=generate_mock_scan,
    ):
        self.settings = settings
        self.history = history
        self.cache = cache
        self.engine = engine
        self.scan_api = scan_api
        self.backend = backend
        self.rate_limiter = rate_limiter
        self.mock_generator = mock_generator

    async def scan_url(self, url: str, advanced_scan: bool | None = None) -> ScanResult:
        return await self.scan(ScanOrigin(url=(url or "").strip() or None), advanced_scan)

    async def scan_media(self, media_reference: str, advanced_scan: bool | None = None) -> ScanResult:
        return await self.scan(
            ScanOrigin(media_reference=(media_reference or "").strip() or None), advanced_scan
        )

    async def scan(self, origin: ScanOrigin, advanced_scan: bool | None = None) -> ScanResult:
        """Analyze ``origin`` and return one canonical result.

        Args:
            origin: The link or media to analyze. A link wins if both are set.
            advanced_scan: Request an advanced remote scan; defaults to the
                user's setting.

        Returns:
            The recorded scan result.

        Raises:
            ScanInputError: ``origin`` is empty.
            RateLimitExceededError: The hourly scan limit is reached.
            ScanFailedError: No source produced a result.
        """
        if origin.is_empty:
            raise ScanInputError("Enter a link or choose a screenshot to scan")
        if origin.url and origin.media_reference:
            origin = ScanOrigin(url=origin.url)

        if self.rate_limiter is not None:
            await self.rate_limiter.check_and_record("scan")

        settings = await self.settings.get()
        advanced = settings.advanced_scan if advanced_scan is None else advanced_scan

        result = await self._from_engine(origin, settings)
        if result is None:
            result = await self._from_scan_api(origin, advanced)
        if result is None:
            result = self._from_mock(origin)
        if result is None:
            raise ScanFailedError("Scan failed. Please try again.")

        await self._record(result, settings)
        return result

    async def _from_engine(self, origin: ScanOrigin, settings: UserSettings) -> ScanResult | None:
        if not self.engine.enabled:
            return None

        if origin.is_media:
            analysis = await self.engine.analyze_image(origin.media_reference or "")
        else:
            analysis = await self.engine.analyze_url(origin.url or "")
        if analysis is None:
            return None

        result = self._normalize(analysis, origin)
        if result is None or origin.is_media:
            return result
        return await self._with_canonical_id(result, settings)

    async def _with_canonical_id(self, result: ScanResult, settings: UserSettings) -> ScanResult:
        """Swap the local id for the backend's canonical id when the backend answers."""
        if not self.backend.enabled:
            return result
        try:
            canonical_id = await self.backend.submit_result(
                url=result.url or "",
                score=result.score,
                entity_key=extract_domain(result.url or ""),
                reasons=None if settings.privacy_mode else result.reasons,
                title=None if settings.privacy_mode else result.title,
            )
        except Exception as e:
            logger.warning(f"Canonical id submission failed: {e}")
            return result
        if not canonical_id:
            return result
        logger.debug(f"Replacing local scan id {result.id} with {canonical_id}")
        return result.model_copy(update={"id": canonical_id})

    async def _from_scan_api(self, origin: ScanOrigin, advanced: bool) -> ScanResult | None:
        if not self.scan_api.enabled:
            return None
        if origin.is_media:
            response = await self.scan_api.scan_media(origin.media_reference or "", advanced)
        else:
            response = await self.scan_api.scan_url(origin.url or "", advanced)
        if response is None:
            return None
        return self._normalize(response, origin)

    def _from_mock(self, origin: ScanOrigin) -> ScanResult | None:
        try:
            mock: MockScanResponse = self.mock_generator(origin)
        except Exception as e:
            logger.error(f"Mock scan generation failed: {e}")
            return None
        return self._normalize(mock, origin)

    @staticmethod
    def _normalize(raw: RawScanResponse, origin: ScanOrigin) -> ScanResult | None:
        try:
            result = normalize(raw, origin)
        except Exception as e:
            logger.warning(f"Could not normalize {raw.source} response: {e}")
            return None
        logger.info(f"Scan {result.id} from {raw.source}: {result.badge.value} {result.score}")
        return result

    async def _record(self, result: ScanResult, settings: UserSettings) -> None:
        """Write the result to history and the cache. Failures are logged only."""
        try:
            await self.history.record_result(result, settings)
        except Exception as e:
            logger.warning(f"Failed to record scan {result.id} in history: {e}")
        try:
            await self.cache.put_result(result, settings)
        except Exception as e:
            logger.warning(f"Failed to cache scan {result.id}: {e}")

    async def get_result(self, scan_id: str) -> ScanResult | None:
        """Look up a result by id: local cache first, then the backend.

        Backend results are normalized and cached for the next lookup.
        """
        if not scan_id:
            return None

        cached = await self.cache.get_result(scan_id)
        if cached is not None:
            return cached

        response = await self.backend.fetch_result(scan_id)
        if response is None:
            return None

        if response.url:
            origin = ScanOrigin(url=response.url)
        elif response.domain == MEDIA_DOMAIN:
            # The backend keeps no reference to the uploaded media; the scan id stands in.
            origin = ScanOrigin(media_reference=scan_id)
        else:
            origin = ScanOrigin(url=f"https://{response.domain}" if response.domain else None)
        if origin.is_empty:
            logger.warning(f"Backend result {scan_id} has no url or domain")
            return None

        result = self._normalize(response, origin)
        if result is None:
            return None
        try:
            await self.cache.put_result(result, await self.settings.get())
        except Exception as e:
            logger.warning(f"Failed to cache fetched scan {scan_id}: {e}")
        return result
