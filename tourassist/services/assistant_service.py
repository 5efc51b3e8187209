# Travel assistant orchestration. Entry is gated by the chatbot rate limiter;
# after that a reply is always produced, from an LLM or from the offline guide.

import asyncio
from typing import Awaitable, Callable, List

import httpx
import structlog
from pydantic import BaseModel

from tourassist.core.config import Settings
from tourassist.core.errors import RateLimitExceededError
from tourassist.models.dto import AssistantRequest
from tourassist.providers.assistant import (
    GeminiChatProvider,
    OpenRouterChatProvider,
    OpenRouterFreeChatProvider,
)
from tourassist.providers.base import (
    AttemptOutcome,
    BaseProvider,
    ProviderAttempt,
    ProviderChain,
)
from tourassist.services.cooldown import CooldownTracker
from tourassist.services.offline_knowledge import OfflineGuide
from tourassist.services.rate_limiter import RateLimiter

logger = structlog.get_logger(__name__)

OFFLINE_PROVIDER = "offline-goa-guide"


class AssistantResult(BaseModel):
    message: str
    provider: str
    used_fallback: bool = False
    rate_limited: bool = False
    attempts: List[ProviderAttempt] = []


class AssistantService:
    def __init__(
        self,
        providers: List[BaseProvider[str]],
        guide: OfflineGuide,
        rate_limiter: RateLimiter,
        cooldowns: CooldownTracker,
        request_delay: float = 0.15,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.chain = ProviderChain("assistant", providers, cooldowns)
        self.guide = guide
        self.rate_limiter = rate_limiter
        self.request_delay = request_delay
        self._sleep = sleep

    async def reply(self, request: AssistantRequest, client_key: str) -> AssistantResult:
        decision = await self.rate_limiter.admit(client_key)
        if not decision.allowed:
            raise RateLimitExceededError(decision.retry_after_ms, decision.window_ms)

        # Fixed pause that keeps bursts under the vendors' per-second limits
        if self.request_delay > 0:
            await self._sleep(self.request_delay)

        outcome = await self.chain.run(request)
        if outcome.succeeded:
            return AssistantResult(
                message=outcome.value,
                provider=outcome.provider,
                attempts=outcome.attempts,
            )

        rate_limited = outcome.saw(AttemptOutcome.RATE_LIMITED)
        topics = [t.name for t in self.guide.matched_topics(request.message)]
        logger.info("assistant_offline_fallback", topics=topics, rate_limited=rate_limited)
        return AssistantResult(
            message=self.guide.respond(request.message),
            provider=OFFLINE_PROVIDER,
            used_fallback=True,
            rate_limited=rate_limited,
            attempts=outcome.attempts,
        )


def build_assistant_providers(settings: Settings, client: httpx.AsyncClient) -> List[BaseProvider[str]]:
    common = dict(timeout=settings.PROVIDER_TIMEOUT, cooldown_seconds=settings.PROVIDER_COOLDOWN_SECONDS)
    return [
        OpenRouterChatProvider(
            client, settings.OPENROUTER_URL, settings.OPENROUTER_API_KEY,
            settings.OPENROUTER_DEFAULT_MODEL, settings.OPENROUTER_REFERER, **common,
        ),
        GeminiChatProvider(
            client, settings.GEMINI_URL_TEMPLATE, settings.GEMINI_API_KEY,
            settings.GEMINI_MODEL, **common,
        ),
        OpenRouterFreeChatProvider(
            client, settings.OPENROUTER_URL, settings.OPENROUTER_API_KEY,
            settings.OPENROUTER_FREE_MODEL, settings.OPENROUTER_REFERER, **common,
        ),
    ]
