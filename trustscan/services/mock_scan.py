"""Local synthetic scan results.

Last-resort analysis source: no network, no storage, always succeeds. The
badge is drawn with fixed weights and every category gets canned text that
matches the badge.
"""

import random

from trustscan.models.schemas import Badge, MockScanResponse, ReasonDetail, ScanOrigin, ScanReasons
from trustscan.services.normalizer import extract_domain, make_scan_id, now_ms

# (cumulative probability, badge, lowest score, highest score)
BADGE_WEIGHTS: list[tuple[float, Badge, int, int]] = [
    (0.60, Badge.VERIFIED, 80, 100),
    (0.95, Badge.UNVERIFIED, 50, 79),
    (1.00, Badge.HIGH_RISK, 0, 49),
]

# category -> (title, suggestion, {badge: (summary, details)})
CANNED_REASONS: dict[str, tuple[str, str, dict[Badge, tuple[str, list[str]]]]] = {
    "A": (
        "Media Integrity",
        "Look for the original source with higher quality media.",
        {
            Badge.VERIFIED: (
                "No editing artifacts detected",
                ["Frame consistency verified", "Audio track matches video", "No splicing detected"],
            ),
            Badge.UNVERIFIED: (
                "Some inconsistencies in media metadata",
                ["Minor metadata inconsistencies", "Unable to verify original source", "Compression artifacts present"],
            ),
            Badge.HIGH_RISK: (
                "Multiple editing artifacts found",
                ["Frame rate inconsistencies detected", "Possible AI-generated elements", "Metadata shows multiple edits"],
            ),
        },
    ),
    "B": (
        "Duplicate / Re-used Media",
        "Search for the media on multiple platforms to find the original.",
        {
            Badge.VERIFIED: (
                "Content appears to be original",
                ["No duplicates found in reverse image search", "First appearance matches claimed date"],
            ),
            Badge.UNVERIFIED: (
                "Partial matches found in media databases",
                ["Similar images exist but context differs", "Unable to confirm original creator"],
            ),
            Badge.HIGH_RISK: (
                "Similar content found from different sources",
                [
                    "Same video posted by 5+ different accounts",
                    "Original upload date conflicts with claims",
                    "Used in known misinformation campaigns",
                ],
            ),
        },
    ),
    "C": (
        "Claims vs Public Signals",
        "Cross-reference claims with official sources and fact-checking sites.",
        {
            Badge.VERIFIED: (
                "Claims align with verified sources",
                ["Statements match official records", "Quotes verified against source", "Timeline is consistent"],
            ),
            Badge.UNVERIFIED: (
                "Claims cannot be independently verified",
                ["No official sources confirm claims", "Mixed signals from reliable sources"],
            ),
            Badge.HIGH_RISK: (
                "Claims contradict established facts",
                [
                    "Key claims debunked by fact-checkers",
                    "Statistics are fabricated or misleading",
                    "Quotes taken out of context",
                ],
            ),
        },
    ),
    "D": (
        "Account Signals",
        "Check the account's posting history and follower authenticity.",
        {
            Badge.VERIFIED: (
                "Account has established credibility",
                ["Account age: 3+ years", "Consistent posting history", "Verified by platform"],
            ),
            Badge.UNVERIFIED: (
                "Account history is limited",
                ["Account age: under 1 year", "Limited engagement history", "No verification badge"],
            ),
            Badge.HIGH_RISK: (
                "Account shows suspicious patterns",
                ["Account created recently", "Unusual posting frequency", "Bot-like behavior detected"],
            ),
        },
    ),
    "E": (
        "Link Safety",
        "Use a URL scanner to check for malware before clicking.",
        {
            Badge.VERIFIED: (
                "Link is safe and secure",
                ["HTTPS enabled", "Domain is reputable", "No malware detected"],
            ),
            Badge.UNVERIFIED: (
                "Link safety could not be fully verified",
                ["Domain is relatively new", "Limited security history", "Some tracking parameters present"],
            ),
            Badge.HIGH_RISK: (
                "Link shows security concerns",
                ["Suspicious redirects detected", "Domain flagged in security databases", "Possible phishing attempt"],
            ),
        },
    ),
    "F": (
        "Patterns / Reports",
        "Check community forums for reports about this content.",
        {
            Badge.VERIFIED: (
                "No concerning patterns detected",
                ["No user reports", "Content follows platform guidelines", "Engagement appears organic"],
            ),
            Badge.UNVERIFIED: (
                "Limited community data available",
                ["Few user reports exist", "Pattern analysis inconclusive"],
            ),
            Badge.HIGH_RISK: (
                "Multiple user reports received",
                ["Flagged by multiple users", "Similar to known scam patterns", "Engagement appears artificial"],
            ),
        },
    ),
}


def generate_score(rng: random.Random | None = None) -> tuple[int, Badge]:
    """Draw a badge by weight and a score inside its range."""
    rng = rng or random.Random()
    roll = rng.random()
    for threshold, badge, low, high in BADGE_WEIGHTS:
        if roll < threshold:
            return rng.randint(low, high), badge
    _, badge, low, high = BADGE_WEIGHTS[-1]
    return rng.randint(low, high), badge


def generate_reasons(badge: Badge) -> ScanReasons:
    reasons = {}
    for category, (title, suggestion, by_badge) in CANNED_REASONS.items():
        summary, details = by_badge[badge]
        reasons[category] = ReasonDetail(
            title=title,
            summary=summary,
            details=list(details),
            suggestion=suggestion,
        )
    return ScanReasons(**reasons)


def generate_mock_scan(origin: ScanOrigin, rng: random.Random | None = None) -> MockScanResponse:
    """Synthesize a plausible analysis for ``origin``."""
    score, badge = generate_score(rng)
    timestamp = now_ms()
    if origin.is_media:
        title = None
    else:
        title = f"Content from {extract_domain(origin.url or '')}"
    return MockScanResponse(
        id=make_scan_id(timestamp),
        badge=badge,
        score=score,
        reasons=generate_reasons(badge),
        timestamp=timestamp,
        title=title,
    )
