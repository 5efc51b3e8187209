"""
Translation providers, in chain order:

  google-translate   keyless `translate_a/single` endpoint
  openrouter:<model> LLM prompted to return only the translation (needs key)
  libretranslate     keyless JSON POST
  mymemory           keyless GET, different response shape

Each returns the translated string or raises ProviderFailure.
"""

from typing import Optional

import httpx

from tourassist.models.dto import TranslationRequest
from tourassist.providers.base import (
    BaseProvider,
    FailureKind,
    ProviderFailure,
    dig,
    request_json,
    require_text,
)
from tourassist.providers.llm import openrouter_completion
from tourassist.services.languages import source_code, target_code


class GoogleTranslateProvider(BaseProvider[str]):
    name = "google-translate"

    def __init__(self, client: httpx.AsyncClient, url: str, **kwargs):
        super().__init__(client, **kwargs)
        self.url = url

    async def attempt(self, request: TranslationRequest) -> str:
        params = {
            "client": "gtx",
            "sl": source_code(request.from_language),
            "tl": target_code(request.to_language),
            "dt": "t",
            "q": request.text,
        }
        data = await request_json(self.client, "GET", self.url, self.timeout, params=params)

        # [[["translated", "original", ...], ...], ...] one entry per sentence
        segments = dig(data, 0)
        if not isinstance(segments, list):
            raise ProviderFailure(FailureKind.MALFORMED, "missing sentence segments")
        text = "".join(
            segment[0] for segment in segments
            if isinstance(segment, list) and segment and isinstance(segment[0], str)
        )
        return require_text(text, "translated text")


class OpenRouterTranslateProvider(BaseProvider[str]):
    def __init__(self, client: httpx.AsyncClient, url: str, api_key: Optional[str],
                 model: str, referer: str, **kwargs):
        super().__init__(client, **kwargs)
        self.url = url
        self.api_key = api_key
        self.model = model
        self.referer = referer
        self.name = f"openrouter:{model}"

    def is_configured(self) -> bool:
        return bool(self.api_key)

    async def attempt(self, request: TranslationRequest) -> str:
        prompt = (
            f"Translate this text from {request.from_language} to {request.to_language}. "
            f"Only return the translation, with no extra words: \"{request.text}\""
        )
        return await openrouter_completion(
            self.client, self.url, self.api_key, self.model,
            messages=[{"role": "user", "content": prompt}],
            max_tokens=128,
            temperature=0.2,
            timeout=self.timeout,
            referer=self.referer,
            title="Tour Assist Translator",
        )


class LibreTranslateProvider(BaseProvider[str]):
    name = "libretranslate"

    def __init__(self, client: httpx.AsyncClient, url: str, **kwargs):
        super().__init__(client, **kwargs)
        self.url = url

    async def attempt(self, request: TranslationRequest) -> str:
        payload = {
            "q": request.text,
            "source": source_code(request.from_language),
            "target": target_code(request.to_language),
            "format": "text",
        }
        data = await request_json(self.client, "POST", self.url, self.timeout, json=payload)
        return require_text(dig(data, "translatedText"), "translatedText")


class MyMemoryProvider(BaseProvider[str]):
    name = "mymemory"

    def __init__(self, client: httpx.AsyncClient, url: str, **kwargs):
        super().__init__(client, **kwargs)
        self.url = url

    async def attempt(self, request: TranslationRequest) -> str:
        params = {
            "q": request.text,
            "langpair": f"{source_code(request.from_language)}|{target_code(request.to_language)}",
        }
        data = await request_json(self.client, "GET", self.url, self.timeout, params=params)
        # MyMemory reports errors in the body with HTTP 200; the error text then
        # sits in translatedText, and responseStatus may be a string
        status = _response_status(dig(data, "responseStatus"))
        if status is None:
            raise ProviderFailure(FailureKind.MALFORMED, "missing responseStatus")
        if status == 429:
            raise ProviderFailure(FailureKind.RATE_LIMITED, "daily quota exhausted", status_code=429)
        if status != 200:
            raise ProviderFailure(FailureKind.CLIENT_ERROR, f"responseStatus {status}", status_code=status)
        return require_text(dig(data, "responseData", "translatedText"), "responseData.translatedText")


def _response_status(value) -> Optional[int]:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None
