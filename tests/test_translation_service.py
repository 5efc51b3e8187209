import pytest

from fakes import FakeClock, ScriptedProvider, failing
from tourassist.models.dto import TranslationRequest
from tourassist.providers.base import FailureKind
from tourassist.services.cooldown import CooldownTracker
from tourassist.services.offline_knowledge import OfflineTranslator, load_phrase_book
from tourassist.services.translation_service import (
    FALLBACK_MESSAGE,
    OFFLINE_PROVIDER,
    RATE_LIMITED_FALLBACK_MESSAGE,
    TranslationService,
)

HELLO = TranslationRequest(text="Hello", from_language="English", to_language="Hindi")


def make_service(*providers) -> TranslationService:
    return TranslationService(
        list(providers),
        OfflineTranslator(load_phrase_book()),
        CooldownTracker(clock=FakeClock()),
    )


@pytest.mark.asyncio
async def test_first_provider_answer_is_returned():
    google = ScriptedProvider("google-translate", result="नमस्ते")
    libre = ScriptedProvider("libretranslate", result="unused")

    result = await make_service(google, libre).translate(HELLO)

    assert result.translated_text == "नमस्ते"
    assert result.provider == "google-translate"
    assert result.used_fallback is False
    assert libre.calls == []


@pytest.mark.asyncio
async def test_later_provider_is_used_when_earlier_ones_fail():
    result = await make_service(
        failing("google-translate", FailureKind.TIMEOUT),
        ScriptedProvider("openrouter:gpt", configured=False),
        ScriptedProvider("libretranslate", result="नमस्कार"),
    ).translate(HELLO)

    assert result.provider == "libretranslate"
    assert result.translated_text == "नमस्कार"
    assert [a.provider for a in result.attempts] == ["google-translate", "openrouter:gpt", "libretranslate"]


@pytest.mark.asyncio
async def test_all_providers_down_uses_phrase_book():
    result = await make_service(
        failing("google-translate", FailureKind.NETWORK_ERROR),
        failing("libretranslate", FailureKind.SERVER_ERROR, 503),
        failing("mymemory", FailureKind.MALFORMED),
    ).translate(HELLO)

    assert result.translated_text == "नमस्ते"
    assert result.provider == OFFLINE_PROVIDER
    assert result.used_fallback is True
    assert result.rate_limited is False
    assert result.message == FALLBACK_MESSAGE


@pytest.mark.asyncio
async def test_rate_limited_chain_is_flagged():
    result = await make_service(
        failing("google-translate", FailureKind.RATE_LIMITED, 429),
        failing("mymemory", FailureKind.TIMEOUT),
    ).translate(HELLO)

    assert result.used_fallback is True
    assert result.rate_limited is True
    assert result.message == RATE_LIMITED_FALLBACK_MESSAGE


@pytest.mark.asyncio
async def test_unknown_pair_echoes_text():
    request = TranslationRequest(text="Good luck", from_language="English", to_language="Tamil")
    result = await make_service(failing("google-translate")).translate(request)

    assert result.translated_text == "Good luck"
    assert result.used_fallback is True
