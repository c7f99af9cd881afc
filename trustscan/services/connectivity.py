"""Best-effort network reachability check, used for status text only."""

import logging

import httpx

logger = logging.getLogger(__name__)


class ConnectivityMonitor:
    """Remembers whether the last HEAD request to ``probe_url`` got an answer.

    Any HTTP response counts as reachable. Starts optimistic.
    """

    def __init__(self, probe_url: str, timeout: float = 5.0):
        self.probe_url = probe_url
        self.timeout = timeout
        self.is_reachable = True

    async def refresh(self) -> bool:
        if not self.probe_url:
            return self.is_reachable
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                await client.head(self.probe_url)
            self.is_reachable = True
        except httpx.TimeoutException:
            logger.info(f"Connectivity probe timed out: {self.probe_url}")
            self.is_reachable = False
        except httpx.HTTPError as e:
            logger.info(f"Connectivity probe failed: {e}")
            self.is_reachable = False
        return self.is_reachable
