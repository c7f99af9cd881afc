"""Normalization of analysis source responses into canonical scan results.

Three sources produce results with different field sets: the AI analysis
engine (no id, no timestamp), the remote scan API (camelCase wire format,
optional domain/title) and the local mock generator. ``normalize()`` is the
single place where any of them becomes a ``ScanResult``.
"""

import logging
import time
import uuid
from urllib.parse import urlparse

from trustscan.models.schemas import (
    Badge,
    EngineAnalysis,
    MockScanResponse,
    Platform,
    RawScanResponse,
    RemoteScanResponse,
    ScanOrigin,
    ScanReasons,
    ScanResult,
    clamp_score,
)

logger = logging.getLogger(__name__)

MEDIA_DOMAIN = "Screenshot"
MEDIA_TITLE = "Uploaded screenshot"

VERIFIED_MIN_SCORE = 80
UNVERIFIED_MIN_SCORE = 50

# Checked in order; first substring hit wins.
PLATFORM_PATTERNS: list[tuple[str, Platform]] = [
    ("tiktok", Platform.TIKTOK),
    ("instagram", Platform.INSTAGRAM),
    ("ig.com", Platform.INSTAGRAM),
    ("facebook", Platform.FACEBOOK),
    ("fb.com", Platform.FACEBOOK),
    ("fb.", Platform.FACEBOOK),
    ("youtube", Platform.YOUTUBE),
    ("youtu.be", Platform.YOUTUBE),
    ("news", Platform.NEWS),
    ("article", Platform.NEWS),
    ("bbc", Platform.NEWS),
    ("cnn", Platform.NEWS),
    ("shop", Platform.SHOP),
    ("store", Platform.SHOP),
    ("buy", Platform.SHOP),
    ("amazon", Platform.SHOP),
    ("ebay", Platform.SHOP),
]


def now_ms() -> int:
    return int(time.time() * 1000)


def make_scan_id(timestamp_ms: int | None = None) -> str:
    """Locally assigned scan id, ``scan_<ms>_<random>``."""
    if timestamp_ms is None:
        timestamp_ms = now_ms()
    return f"scan_{timestamp_ms}_{uuid.uuid4().hex[:9]}"


def extract_domain(url: str) -> str:
    """Hostname of ``url`` without a leading ``www.``.

    Scheme-less input is treated as ``https://``. Input that does not parse
    falls back to its first path segment.
    """
    text = (url or "").strip()
    if not text:
        return "unknown"
    candidate = text if "://" in text else f"https://{text}"
    try:
        host = urlparse(candidate).hostname or ""
    except ValueError:
        host = ""
    if not host:
        host = text.split("://", 1)[-1].split("/", 1)[0]
    host = host.lower()
    if host.startswith("www."):
        host = host[4:]
    return host or "unknown"


def detect_platform(url: str) -> Platform:
    lowered = (url or "").lower()
    for pattern, platform in PLATFORM_PATTERNS:
        if pattern in lowered:
            return platform
    return Platform.OTHER


def badge_for_score(score: int) -> Badge:
    if score >= VERIFIED_MIN_SCORE:
        return Badge.VERIFIED
    if score >= UNVERIFIED_MIN_SCORE:
        return Badge.UNVERIFIED
    return Badge.HIGH_RISK


def _resolve_badge(raw_badge: str | Badge | None, score: int) -> Badge:
    """Validate the source's badge against the three known classes.

    A missing or unknown badge is derived from the score. A known badge whose
    score falls in another class is kept but logged.
    """
    expected = badge_for_score(score)
    if raw_badge is None:
        return expected
    try:
        badge = Badge(str(getattr(raw_badge, "value", raw_badge)).upper())
    except ValueError:
        logger.warning(f"Unknown badge {raw_badge!r}, deriving from score {score}")
        return expected
    if badge is not expected:
        logger.warning(f"Badge {badge.value} is inconsistent with score {score} (expected {expected.value})")
    return badge


def normalize(raw: RawScanResponse, origin: ScanOrigin) -> ScanResult:
    """Map any raw source response plus the scanned origin to a ``ScanResult``.

    Args:
        raw: Engine, remote or mock response.
        origin: The url or media reference the scan was requested for.

    Returns:
        Canonical scan result. Media origins always carry the ``Screenshot``
        domain and the ``other`` platform.
    """
    score = clamp_score(raw.score)
    badge = _resolve_badge(raw.badge, score)
    reasons = raw.reasons if isinstance(raw.reasons, ScanReasons) else ScanReasons()

    if isinstance(raw, EngineAnalysis):
        timestamp = now_ms()
        scan_id = make_scan_id(timestamp)
        domain = raw.domain
        title = raw.title
    elif isinstance(raw, RemoteScanResponse):
        timestamp = raw.timestamp or now_ms()
        scan_id = raw.id
        domain = raw.domain
        title = raw.title
    elif isinstance(raw, MockScanResponse):
        timestamp = raw.timestamp or now_ms()
        scan_id = raw.id
        domain = None
        title = raw.title
    else:
        raise TypeError(f"Unsupported scan response: {type(raw).__name__}")

    if origin.is_media:
        return ScanResult(
            id=scan_id,
            media_reference=origin.media_reference,
            domain=MEDIA_DOMAIN,
            platform=Platform.OTHER,
            badge=badge,
            score=score,
            reasons=reasons,
            timestamp=timestamp,
            title=title or MEDIA_TITLE,
        )

    url = (origin.url or "").strip()
    return ScanResult(
        id=scan_id,
        url=url,
        domain=domain or extract_domain(url),
        platform=detect_platform(url),
        badge=badge,
        score=score,
        reasons=reasons,
        timestamp=timestamp,
        title=title,
    )
