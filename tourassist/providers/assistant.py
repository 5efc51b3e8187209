"""
Travel assistant providers, in chain order:

  openrouter:<model>   chat completion with a Goa-only system instruction
  gemini-<version>     single prompt that also carries the off-topic redirect
  openrouter-free      free-tier model, only tried when the previous provider
                       was overloaded (429) or failed with a 5xx
"""

from typing import Optional

import httpx

from tourassist.models.dto import AssistantRequest
from tourassist.providers.base import BaseProvider, FailureKind
from tourassist.providers.llm import gemini_generate, openrouter_completion

SYSTEM_INSTRUCTION = (
    "You are a Goa Tourism AI Assistant for Tour Assist. Only answer about Goa travel "
    "and Tour Assist app features. Be concise and helpful."
)

OFF_TOPIC_REDIRECT = (
    "I'm a Goa Tourism AI Assistant and can only help with Goa-related travel information "
    "and Tour Assist app features. How can I assist you with your Goa travel plans?"
)

FREE_TIER_INSTRUCTION = (
    "You are a helpful Goa Tourism Assistant. Provide information about Goa beaches, culture, "
    "food, and attractions. Keep responses concise and helpful."
)


def build_travel_prompt(message: str) -> str:
    return (
        "You are a Goa Tourism AI Assistant for Tour Assist app. You can ONLY help with:\n"
        "1. Goa tourism, destinations, attractions, beaches, culture, food, weather, and travel tips\n"
        "2. Tour Assist app features like booking, emergency services, translator, events, and smart assist modules\n"
        "\n"
        f"If someone asks about anything outside of Goa tourism or app features, politely respond: \"{OFF_TOPIC_REDIRECT}\"\n"
        "Keep responses helpful, concise, and focused only on Goa or app functionality.\n"
        f"User message: \"{message}\"\n"
        "Response:"
    )


class OpenRouterChatProvider(BaseProvider[str]):
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

    async def attempt(self, request: AssistantRequest) -> str:
        return await openrouter_completion(
            self.client, self.url, self.api_key, self.model,
            messages=[
                {"role": "system", "content": SYSTEM_INSTRUCTION},
                {"role": "user", "content": request.message},
            ],
            max_tokens=300,
            temperature=0.6,
            timeout=self.timeout,
            referer=self.referer,
            title="Tour Assist Chatbot",
        )


class GeminiChatProvider(BaseProvider[str]):
    def __init__(self, client: httpx.AsyncClient, url_template: str, api_key: Optional[str],
                 model: str, **kwargs):
        super().__init__(client, **kwargs)
        self.url_template = url_template
        self.api_key = api_key
        self.model = model
        self.name = model

    def is_configured(self) -> bool:
        return bool(self.api_key)

    async def attempt(self, request: AssistantRequest) -> str:
        return await gemini_generate(
            self.client, self.url_template, self.api_key, self.model,
            prompt=build_travel_prompt(request.message),
            max_output_tokens=200,
            temperature=0.7,
            timeout=self.timeout,
        )


class OpenRouterFreeChatProvider(BaseProvider[str]):
    name = "openrouter-free"
    attempt_after = frozenset({FailureKind.RATE_LIMITED, FailureKind.SERVER_ERROR})

    def __init__(self, client: httpx.AsyncClient, url: str, api_key: Optional[str],
                 model: str, referer: str, **kwargs):
        super().__init__(client, **kwargs)
        self.url = url
        self.api_key = api_key
        self.model = model
        self.referer = referer

    def is_configured(self) -> bool:
        return bool(self.api_key)

    async def attempt(self, request: AssistantRequest) -> str:
        return await openrouter_completion(
            self.client, self.url, self.api_key, self.model,
            messages=[
                {"role": "system", "content": FREE_TIER_INSTRUCTION},
                {"role": "user", "content": request.message},
            ],
            max_tokens=150,
            temperature=0.7,
            timeout=self.timeout,
            referer=self.referer,
            title="Tour Assist Chatbot",
        )
