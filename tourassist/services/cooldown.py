import threading
import time
from typing import Callable, Dict

import structlog

logger = structlog.get_logger(__name__)


class CooldownTracker:
    """
    Per-provider "skip until" timestamps.

    A provider that answered 429 is put on cooldown so the next requests do not
    spend a round trip on it. One instance is owned by the application and
    shared by every orchestrator; tests build a fresh one per case.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._until: Dict[str, float] = {}
        self._lock = threading.Lock()

    def is_cooling_down(self, provider: str) -> bool:
        return self.remaining(provider) > 0

    def remaining(self, provider: str) -> float:
        with self._lock:
            until = self._until.get(provider)
            if until is None:
                return 0.0
            left = until - self._clock()
            if left <= 0:
                del self._until[provider]
                return 0.0
            return left

    def trigger(self, provider: str, seconds: float) -> None:
        with self._lock:
            until = self._clock() + seconds
            # Never shorten a cooldown that is already running
            if until > self._until.get(provider, 0.0):
                self._until[provider] = until
        logger.info("provider_cooldown_started", provider=provider, seconds=seconds)
