"""Deep link and shared-text route resolution.

Incoming strings come from three places: the custom app scheme
(``trustscan://result?scanId=...``, ``trustscan://scan?url=...``), the web
fallback (``https://trustscan.app/r/<scanId>``) and share-sheet payloads
(free text with a link somewhere inside). All of them resolve to one of three
intents, first match wins:

1. an explicit scan/result identifier   -> result
2. an explicit ``scan?url=`` link        -> scan
3. the first embedded http(s) URL        -> scan
4. anything else                         -> home
"""

import re
from urllib.parse import parse_qs, quote, unquote, urlparse

from trustscan.models.schemas import Badge, RouteIntent, ScanResult

HTTP_URL_RE = re.compile(r"https?://[^\s<>\"']+", re.IGNORECASE)
SCAN_ID_PARAM_RE = re.compile(r"(?:^|[?&#])scanId=([^&#\s]+)", re.IGNORECASE)
ID_PATH_RE = re.compile(r"^/*(?:result|scan|r)/([^/?#\s]+)", re.IGNORECASE)
TRAILING_PUNCTUATION = ".,;:!?)]}"

BADGE_LABELS = {
    Badge.VERIFIED: "Verified",
    Badge.UNVERIFIED: "Unverified",
    Badge.HIGH_RISK: "High Risk",
}


def extract_first_http_url(text: str) -> str | None:
    """First http(s) URL inside ``text``, without trailing sentence punctuation."""
    if not text:
        return None
    match = HTTP_URL_RE.search(text)
    if not match:
        return None
    return match.group(0).rstrip(TRAILING_PUNCTUATION) or None


class RouteResolver:
    """Pure resolver from raw incoming strings to route intents."""

    def __init__(self, app_scheme: str = "trustscan", web_base_url: str = "https://trustscan.app"):
        self.app_scheme = app_scheme.lower().rstrip(":/")
        self.web_base_url = web_base_url.rstrip("/")
        self.web_host = (urlparse(self.web_base_url).hostname or "").lower()

    def _structured_target(self, raw: str) -> tuple[str, str] | None:
        """Split an app-scheme link, web-fallback link or bare path into (path, query).

        Returns None for anything else (free text, third-party links).
        """
        if raw.startswith("/"):
            path, _, query = raw.partition("?")
            return path, query

        if raw.lower().startswith(f"{self.app_scheme}:"):
            rest = raw[len(self.app_scheme) + 1:].lstrip("/")
            path, _, query = rest.partition("?")
            return f"/{path}", query

        if self.web_host and not any(char.isspace() for char in raw):
            try:
                parsed = urlparse(raw)
            except ValueError:
                return None
            host = (parsed.hostname or "").lower()
            if parsed.scheme in ("http", "https") and host in (self.web_host, f"www.{self.web_host}"):
                return parsed.path or "/", parsed.query

        return None

    def resolve(self, raw: str | None) -> RouteIntent:
        """Resolve ``raw`` to a route intent. Never raises."""
        text = (raw or "").strip()
        if not text:
            return RouteIntent(type="home")

        structured = self._structured_target(text)
        if structured is not None:
            path, query = structured

            match = ID_PATH_RE.match(path)
            if match:
                scan_id = unquote(match.group(1)).strip()
                if scan_id:
                    return RouteIntent(type="result", scan_id=scan_id)

            match = SCAN_ID_PARAM_RE.search(f"?{query}") if query else None
            if match:
                scan_id = unquote(match.group(1)).strip()
                if scan_id:
                    return RouteIntent(type="result", scan_id=scan_id)

            if path.strip("/").lower() == "scan" and query:
                url = parse_qs(query).get("url", [""])[0].strip()
                if url:
                    return RouteIntent(type="scan", url=url)

        url = extract_first_http_url(text)
        if url:
            return RouteIntent(type="scan", url=url)

        return RouteIntent(type="home")

    def build_result_link(self, scan_id: str, locale: str = "en") -> str:
        return f"{self.app_scheme}://result?scanId={quote(scan_id, safe='')}&lang={quote(locale, safe='')}"

    def build_web_result_url(self, scan_id: str) -> str:
        return f"{self.web_base_url}/r/{quote(scan_id, safe='')}"

    def build_scan_link(self, url: str, locale: str = "en") -> str:
        return f"{self.app_scheme}://scan?url={quote(url, safe='')}&lang={quote(locale, safe='')}"

    def build_share_message(self, result: ScanResult, locale: str = "en") -> str:
        """Text shared through the native share sheet for a result."""
        return (
            f"TrustScan: {result.domain}\n"
            f"{BADGE_LABELS[result.badge]} - Score: {result.score}/100\n\n"
            f"{self.build_result_link(result.id, locale)}"
        )
