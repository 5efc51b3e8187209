"""
Request/response shapes for the two LLM vendors.

OpenRouter speaks the OpenAI chat-completions format; Gemini uses
`generateContent` with `contents[].parts[].text`. Both helpers return the
model's text trimmed, or raise ProviderFailure (MALFORMED when the expected
field is absent or empty).
"""

from typing import Dict, List

import httpx

from tourassist.providers.base import dig, request_json, require_text


async def openrouter_completion(
    client: httpx.AsyncClient,
    url: str,
    api_key: str,
    model: str,
    messages: List[Dict[str, str]],
    max_tokens: int,
    temperature: float,
    timeout: float,
    referer: str,
    title: str,
) -> str:
    headers = {
        "Authorization": f"Bearer {api_key}",
        "Content-Type": "application/json",
        "HTTP-Referer": referer,
        "X-Title": title,
    }
    payload = {
        "model": model,
        "messages": messages,
        "max_tokens": max_tokens,
        "temperature": temperature,
    }
    data = await request_json(client, "POST", url, timeout, json=payload, headers=headers)
    return require_text(dig(data, "choices", 0, "message", "content"), "choices[0].message.content")


async def gemini_generate(
    client: httpx.AsyncClient,
    url_template: str,
    api_key: str,
    model: str,
    prompt: str,
    max_output_tokens: int,
    temperature: float,
    timeout: float,
) -> str:
    payload = {
        "contents": [{"parts": [{"text": prompt}]}],
        "generationConfig": {"maxOutputTokens": max_output_tokens, "temperature": temperature},
    }
    data = await request_json(
        client, "POST", url_template.format(model=model), timeout,
        json=payload,
        # Header rather than ?key= so the key never appears in logged URLs
        headers={"Content-Type": "application/json", "x-goog-api-key": api_key},
    )
    return require_text(dig(data, "candidates", 0, "content", "parts", 0, "text"),
                        "candidates[0].content.parts[0].text")
