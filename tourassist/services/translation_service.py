# Translation orchestration: networked providers in a fixed order, then the
# offline phrase book. A caller always gets text back.

from typing import List

import httpx
import structlog
from pydantic import BaseModel

from tourassist.core.config import Settings
from tourassist.models.dto import TranslationRequest
from tourassist.providers.base import (
    AttemptOutcome,
    BaseProvider,
    ProviderAttempt,
    ProviderChain,
)
from tourassist.providers.translation import (
    GoogleTranslateProvider,
    LibreTranslateProvider,
    MyMemoryProvider,
    OpenRouterTranslateProvider,
)
from tourassist.services.cooldown import CooldownTracker
from tourassist.services.offline_knowledge import OfflineTranslator

logger = structlog.get_logger(__name__)

OFFLINE_PROVIDER = "offline-phrasebook"
FALLBACK_MESSAGE = "Using fallback translation"
RATE_LIMITED_FALLBACK_MESSAGE = "Rate limited. Using fallback translation."


class TranslationResult(BaseModel):
    translated_text: str
    provider: str
    used_fallback: bool = False
    rate_limited: bool = False
    message: str = ""
    attempts: List[ProviderAttempt] = []


class TranslationService:
    def __init__(self, providers: List[BaseProvider[str]], offline: OfflineTranslator,
                 cooldowns: CooldownTracker):
        self.chain = ProviderChain("translation", providers, cooldowns)
        self.offline = offline

    async def translate(self, request: TranslationRequest) -> TranslationResult:
        outcome = await self.chain.run(request)
        if outcome.succeeded:
            return TranslationResult(
                translated_text=outcome.value,
                provider=outcome.provider,
                attempts=outcome.attempts,
            )

        rate_limited = outcome.saw(AttemptOutcome.RATE_LIMITED)
        offline = self.offline.translate(request.text, request.from_language, request.to_language)
        logger.info(
            "translation_offline_fallback",
            pair=f"{request.from_language}-{request.to_language}",
            method=offline.method,
            rate_limited=rate_limited,
        )
        return TranslationResult(
            translated_text=offline.text,
            provider=OFFLINE_PROVIDER,
            used_fallback=True,
            rate_limited=rate_limited,
            message=RATE_LIMITED_FALLBACK_MESSAGE if rate_limited else FALLBACK_MESSAGE,
            attempts=outcome.attempts,
        )


def build_translation_providers(settings: Settings, client: httpx.AsyncClient) -> List[BaseProvider[str]]:
    common = dict(timeout=settings.PROVIDER_TIMEOUT, cooldown_seconds=settings.PROVIDER_COOLDOWN_SECONDS)
    return [
        GoogleTranslateProvider(client, settings.GOOGLE_TRANSLATE_URL, **common),
        OpenRouterTranslateProvider(
            client, settings.OPENROUTER_URL, settings.OPENROUTER_API_KEY,
            settings.OPENROUTER_DEFAULT_MODEL, settings.OPENROUTER_REFERER, **common,
        ),
        LibreTranslateProvider(client, settings.LIBRETRANSLATE_URL, **common),
        MyMemoryProvider(client, settings.MYMEMORY_URL, **common),
    ]
