"""AI analysis engine client.

Sends a chat-style request (``messages`` plus the JSON ``schema`` the answer
must follow) to the configured engine endpoint and parses the structured
analysis. Images are sent inline as base64 data URIs.

No timeout is applied: the engine path waits as long as the engine takes.
"""

import logging
from typing import Any

import httpx
from pydantic import ValidationError

from trustscan.models.schemas import EngineAnalysis
from trustscan.services.media import MediaLibrary

logger = logging.getLogger(__name__)

SCORE_GUIDE = (
    "Score Guidelines:\n"
    "- 80-100 (VERIFIED): consistent signals, no red flags\n"
    "- 50-79 (UNVERIFIED): mixed signals or not enough evidence\n"
    "- 0-49 (HIGH_RISK): multiple scam or manipulation signals"
)

URL_PROMPT = """Analyze this URL/link for trust signals.

URL to analyze: {url}

Assess each category:
A. Media Integrity: likelihood of manipulated or AI-generated content.
B. Duplicate/Re-used Media: whether this content type is commonly recycled.
C. Claims vs Public Signals: whether the source is known for misinformation.
D. Account Signals: credibility of the source from the URL and domain.
E. Link Safety: suspicious domains, redirects, phishing patterns.
F. Patterns/Reports: known scam patterns or frequently reported content.

Use risk-based language ("signals suggest", "likely"); never claim certainty.

{guide}"""

IMAGE_PROMPT = """Analyze this uploaded screenshot/image for authenticity and trust signals.

Assess each category:
A. Media Integrity: editing artifacts, lighting, AI generation markers.
B. Duplicate/Re-used Media: original or recycled imagery.
C. Claims vs Public Signals: red flags in any visible text.
D. Account Signals: credibility of any visible profile.
E. Link Safety: suspicious patterns in any visible URLs.
F. Patterns/Reports: common scam formats (fake giveaways, phishing pages).

Use risk-based language ("signals suggest", "likely"); never claim certainty.

{guide}"""

IMAGE_UNREADABLE_NOTE = (
    "\n\n[Note: Image could not be processed directly. Analyze based on the request context.]"
)


class AIScanEngine:
    """Client for the structured-output AI analysis engine."""

    def __init__(self, endpoint: str, api_key: str | None = None, media: MediaLibrary | None = None):
        """Initialize the engine client.

        Args:
            endpoint: Full URL of the engine's structured generation endpoint.
            api_key: Optional bearer token.
            media: Library stored uploads are read from. Without one only
                inline data URIs are attached.
        """
        self.endpoint = endpoint
        self.api_key = api_key
        self.media = media

    @property
    def enabled(self) -> bool:
        return bool(self.endpoint)

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json", "Accept": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    async def analyze_url(self, url: str) -> EngineAnalysis | None:
        """Analyze a link.

        Returns:
            The engine's analysis, or None if the engine is disabled or failed.
        """
        logger.info(f"Analyzing URL with AI engine: {url}")
        messages = [{"role": "user", "content": URL_PROMPT.format(url=url, guide=SCORE_GUIDE)}]
        return await self._generate(messages)

    async def analyze_image(self, media_reference: str) -> EngineAnalysis | None:
        """Analyze user-supplied media.

        The image is attached when it can be read; otherwise the prompt is
        sent alone with a note that the image was unavailable.
        """
        if not self.enabled:
            return None

        logger.info(f"Analyzing media with AI engine: {media_reference}")
        prompt = IMAGE_PROMPT.format(guide=SCORE_GUIDE)
        data_uri = await self._load_image(media_reference)

        content: str | list[dict[str, str]]
        if data_uri:
            content = [
                {"type": "text", "text": prompt},
                {"type": "image", "image": data_uri},
            ]
        else:
            content = prompt + IMAGE_UNREADABLE_NOTE

        return await self._generate([{"role": "user", "content": content}])

    async def _load_image(self, media_reference: str) -> str | None:
        if media_reference.startswith("data:"):
            return media_reference
        if self.media is None:
            return None
        return await self.media.read_data_uri(media_reference)

    async def _generate(self, messages: list[dict[str, Any]]) -> EngineAnalysis | None:
        if not self.enabled:
            return None

        body = {"messages": messages, "schema": EngineAnalysis.engine_schema()}
        try:
            async with httpx.AsyncClient(timeout=None) as client:
                response = await client.post(self.endpoint, json=body, headers=self._headers())
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPStatusError as e:
            logger.warning(f"AI engine request failed: {e}")
            return None
        except Exception as e:
            logger.warning(f"AI engine error: {e}")
            return None

        if isinstance(data, dict) and isinstance(data.get("object"), dict):
            data = data["object"]

        try:
            analysis = EngineAnalysis.model_validate(data)
        except ValidationError as e:
            logger.warning(f"AI engine returned an unusable analysis: {e}")
            return None

        logger.info(f"AI analysis complete: {analysis.badge} {analysis.score}")
        return analysis
