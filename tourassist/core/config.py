# Provider credentials, chain tuning and limiter constants.
# Everything here is read from the environment (or .env) at import time.

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field
from typing import List, Optional

class Settings(BaseSettings):
    PROJECT_NAME: str = "Tour Assist API"
    VERSION: str = "1.0.0"
    BRIEF_DESCRIPTION: str = "Translation, travel assistant and nearby-place lookup for Goa visitors, backed by a chain of external providers with offline fallbacks."

    ENV: str = Field("development", description="Application environment (e.g., production, development)")
    FRONTEND_URL: str = Field("http://localhost:3000", description="Only origin allowed by CORS")
    TRUST_FORWARDED_FOR: bool = Field(False, description="Key the chatbot limiter on X-Forwarded-For (only behind a trusted proxy)")
    LOG_LEVEL: str = Field("INFO", description="Root log level (DEBUG shows skipped providers)")

    # --- Provider credentials (all optional, missing ones are skipped) ---
    OPENROUTER_API_KEY: Optional[str] = Field(None, description="OpenRouter API key")
    OPENROUTER_DEFAULT_MODEL: str = Field("gpt-5.1-codex-max", description="Model used for translation and primary chat")
    OPENROUTER_FREE_MODEL: str = Field("mistralai/mistral-7b-instruct:free", description="Free-tier model used as last networked chat attempt")
    OPENROUTER_REFERER: str = Field("http://localhost:5001", description="HTTP-Referer sent to OpenRouter")
    GEMINI_API_KEY: Optional[str] = Field(None, description="Google Generative Language API key")
    GEMINI_MODEL: str = Field("gemini-1.5-flash", description="Gemini model name")
    OPENWEATHER_API_KEY: Optional[str] = Field(None, description="OpenWeatherMap API key")

    # --- Provider endpoints ---
    OPENROUTER_URL: str = "https://openrouter.ai/api/v1/chat/completions"
    GEMINI_URL_TEMPLATE: str = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"
    GOOGLE_TRANSLATE_URL: str = "https://translate.googleapis.com/translate_a/single"
    LIBRETRANSLATE_URL: str = "https://libretranslate.com/translate"
    MYMEMORY_URL: str = "https://api.mymemory.translated.net/get"
    OPENWEATHER_URL: str = "https://api.openweathermap.org/data/2.5/weather"
    OVERPASS_URLS: List[str] = Field(
        [
            "https://overpass.kumi.systems/api/interpreter",
            "https://overpass-api.de/api/interpreter",
            "https://maps.mail.ru/osm/tools/overpass/api/interpreter",
        ],
        description="Overpass mirrors, tried in order"
    )

    # --- Provider chain ---
    PROVIDER_TIMEOUT: float = 15.0 # seconds, per attempt
    PROVIDER_COOLDOWN_SECONDS: float = 1.0

    # --- Chatbot throttling ---
    CHATBOT_WINDOW_MS: int = 60 * 1000
    CHATBOT_MAX_REQUESTS: int = 50
    CHATBOT_REQUEST_DELAY_SECONDS: float = 0.15

    # --- Nearby places ---
    PLACES_DEFAULT_RADIUS_M: int = 5000
    PLACES_MAX_RESULTS: int = 50
    OVERPASS_SERVER_LIMIT: int = 100
    OVERPASS_QUERY_TIMEOUT: int = 15 # seconds, server side

    # --- Feature Flags ---
    ENABLE_REDIS: bool = Field(False, description="Share chatbot rate limits through Redis")
    REDIS_URL: Optional[str] = Field(None, description="Redis URL for the shared rate limiter")

    # Pydantic configuration
    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore"
    )

settings = Settings()
