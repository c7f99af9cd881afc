"""When to ask the user for a store review.

A prompt is due only after a VERIFIED result, once at least three scans have
been completed, at most once every 30 days, and never after the user has
reviewed.
"""

import logging
import time
from collections.abc import Callable

from pydantic import BaseModel

from trustscan.models.schemas import Badge
from trustscan.services.storage import KeyValueStore, decode_json, encode_json

logger = logging.getLogger(__name__)

REVIEW_KEY = "store_review_v1"
MIN_SCANS_BEFORE_REVIEW = 3
DAYS_BETWEEN_PROMPTS = 30
DAY_MS = 24 * 60 * 60 * 1000


class ReviewState(BaseModel):
    last_prompt_at: int | None = None
    scan_count: int = 0
    has_reviewed: bool = False


class ReviewPromptTracker:
    """Persists review-prompt state in the key-value store."""

    def __init__(self, kv: KeyValueStore, clock: Callable[[], int] | None = None):
        self.kv = kv
        self.clock = clock or (lambda: int(time.time() * 1000))

    @staticmethod
    def _decode(raw: str | None) -> ReviewState:
        data = decode_json(raw, default={})
        try:
            return ReviewState.model_validate(data if isinstance(data, dict) else {})
        except ValueError:
            return ReviewState()

    async def _change(self, change: Callable[[ReviewState], ReviewState]) -> ReviewState:
        written: ReviewState = ReviewState()

        def mutator(raw: str | None) -> str:
            nonlocal written
            written = change(self._decode(raw))
            return encode_json(written.model_dump())

        await self.kv.update(REVIEW_KEY, mutator)
        return written

    async def state(self) -> ReviewState:
        try:
            return self._decode(await self.kv.get(REVIEW_KEY))
        except Exception as e:
            logger.warning(f"Failed to read review state: {e}")
            return ReviewState()

    def _is_due(self, state: ReviewState) -> bool:
        if state.has_reviewed or state.scan_count < MIN_SCANS_BEFORE_REVIEW:
            return False
        if state.last_prompt_at is not None:
            return self.clock() - state.last_prompt_at >= DAYS_BETWEEN_PROMPTS * DAY_MS
        return True

    async def should_request_review(self) -> bool:
        return self._is_due(await self.state())

    async def after_scan(self, badge: Badge) -> bool:
        """Count a completed scan and report whether to prompt now.

        A positive answer also records the prompt time.
        """
        now = self.clock()
        prompt = False

        def change(state: ReviewState) -> ReviewState:
            nonlocal prompt
            state = state.model_copy(update={"scan_count": state.scan_count + 1})
            prompt = badge is Badge.VERIFIED and self._is_due(state)
            if prompt:
                state = state.model_copy(update={"last_prompt_at": now})
            return state

        try:
            await self._change(change)
        except Exception as e:
            logger.warning(f"Failed to update review state: {e}")
            return False
        if prompt:
            logger.info("Store review prompt is due")
        return prompt

    async def mark_reviewed(self) -> ReviewState:
        return await self._change(lambda state: state.model_copy(update={"has_reviewed": True}))
