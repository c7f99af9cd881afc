"""Remote scan API client.

Endpoints (JSON over HTTPS, every call carries the device identity header):
    POST /scan/url      {url, advancedScan}           -> scan response
    POST /scan/media    multipart (file, advancedScan) -> scan response
    GET  /scan/result?scanId=...                       -> scan response

The same client submits locally produced results to the backend to obtain a
canonical cross-device scan id.
"""

import logging
from typing import Any

import httpx
from pydantic import ValidationError

from trustscan.models.schemas import RemoteScanResponse, ScanReasons
from trustscan.services.identity import DeviceIdentity
from trustscan.services.media import MediaLibrary

logger = logging.getLogger(__name__)

DEVICE_ID_HEADER = "X-Device-Id"
DEFAULT_TIMEOUT = 15.0


class ScanApiClient:
    """Client for the remote scan API."""

    def __init__(
        self,
        base_url: str,
        identity: DeviceIdentity,
        timeout: float = DEFAULT_TIMEOUT,
        media: MediaLibrary | None = None,
    ):
        """Initialize the client.

        Args:
            base_url: API origin, e.g. ``https://scan.example.com``. Empty disables the client.
            identity: Source of the device identity header.
            timeout: Request timeout in seconds.
            media: Library uploads are attached from. Without one media scans
                send the form fields only.
        """
        self.base_url = base_url.rstrip("/")
        self.identity = identity
        self.timeout = timeout
        self.media = media

    @property
    def enabled(self) -> bool:
        return bool(self.base_url)

    async def _headers(self) -> dict[str, str]:
        return {
            "Accept": "application/json",
            DEVICE_ID_HEADER: await self.identity.get(),
        }

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any | None:
        """Perform a request and return the decoded JSON body, or None on any failure."""
        if not self.enabled:
            return None

        url = f"{self.base_url}{path}"
        try:
            headers = await self._headers()
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.request(method, url, headers=headers, **kwargs)
                response.raise_for_status()
                return response.json()
        except httpx.TimeoutException:
            logger.warning(f"Scan API timeout: {method} {path}")
        except httpx.HTTPStatusError as e:
            logger.warning(f"Scan API request failed: {e}")
        except Exception as e:
            logger.warning(f"Scan API error: {e}")
        return None

    @staticmethod
    def _parse(data: Any) -> RemoteScanResponse | None:
        if not isinstance(data, dict):
            return None
        data = {key: value for key, value in data.items() if key != "source"}
        try:
            return RemoteScanResponse.model_validate(data)
        except ValidationError as e:
            logger.warning(f"Scan API returned an unusable result: {e}")
            return None

    async def scan_url(self, url: str, advanced_scan: bool = False) -> RemoteScanResponse | None:
        data = await self._request(
            "POST", "/scan/url", json={"url": url, "advancedScan": bool(advanced_scan)}
        )
        return self._parse(data)

    async def scan_media(self, media_reference: str, advanced_scan: bool = False) -> RemoteScanResponse | None:
        """Upload media for analysis.

        The file is attached when ``media_reference`` names a readable file
        in the uploads directory; otherwise only the form fields are sent.
        """
        if not self.enabled:
            return None

        form = {"advancedScan": str(bool(advanced_scan)).lower()}
        files = None
        if self.media is not None:
            loaded = await self.media.read(media_reference)
            if loaded is not None:
                files = {"file": loaded}

        data = await self._request("POST", "/scan/media", data=form, files=files)
        return self._parse(data)

    async def fetch_result(self, scan_id: str) -> RemoteScanResponse | None:
        if not scan_id:
            return None
        data = await self._request("GET", "/scan/result", params={"scanId": scan_id})
        return self._parse(data)

    async def submit_result(
        self,
        url: str,
        score: int,
        entity_key: str,
        reasons: ScanReasons | None = None,
        title: str | None = None,
        entity_type: str = "domain",
    ) -> str | None:
        """Register a locally analyzed link with the backend.

        Returns:
            The server-issued canonical scan id, or None.
        """
        body: dict[str, Any] = {
            "url": url,
            "score": score,
            "entityType": entity_type,
            "entityKey": entity_key,
        }
        if reasons is not None:
            body["reasons"] = reasons.model_dump(mode="json")
        if title is not None:
            body["title"] = title

        data = await self._request("POST", "/scan/url", json=body)
        if isinstance(data, dict) and data.get("id"):
            return str(data["id"])
        return None
