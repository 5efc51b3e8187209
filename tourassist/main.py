from contextlib import asynccontextmanager
from typing import Optional
import uuid

import httpx
import structlog
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from redis.asyncio import Redis
from starlette.exceptions import HTTPException as StarletteHTTPException

from tourassist.api.routes import router as api_router
from tourassist.core.config import Settings, settings
from tourassist.core.errors import (
    AllEndpointsFailedError,
    CityNotFoundError,
    InvalidInputError,
    RateLimitExceededError,
    WeatherUnavailableError,
)
from tourassist.logging import configure_logging
from tourassist.middleware.logging import LoggingMiddleware
from tourassist.models.dto import ErrorResponse, RateLimitedResponse
from tourassist.services.assistant_service import AssistantService, build_assistant_providers
from tourassist.services.cooldown import CooldownTracker
from tourassist.services.offline_knowledge import (
    OfflineGuide,
    OfflineTranslator,
    load_guide_topics,
    load_phrase_book,
)
from tourassist.services.places_service import PlacesService, build_overpass_endpoints
from tourassist.services.rate_limiter import build_rate_limiter
from tourassist.services.translation_service import TranslationService, build_translation_providers
from tourassist.services.weather_service import WeatherService

configure_logging()
logger = structlog.get_logger(__name__)


def init_services(app: FastAPI, config: Settings, http_client: httpx.AsyncClient,
                  redis_client: Optional[Redis] = None) -> None:
    """Builds the orchestrators and their shared state onto app.state."""
    cooldowns = CooldownTracker()
    app.state.rate_limiter = build_rate_limiter(
        config.CHATBOT_WINDOW_MS, config.CHATBOT_MAX_REQUESTS, redis_client
    )
    app.state.translation_service = TranslationService(
        build_translation_providers(config, http_client),
        OfflineTranslator(load_phrase_book()),
        cooldowns,
    )
    app.state.assistant_service = AssistantService(
        build_assistant_providers(config, http_client),
        OfflineGuide(load_guide_topics()),
        app.state.rate_limiter,
        cooldowns,
        request_delay=config.CHATBOT_REQUEST_DELAY_SECONDS,
    )
    app.state.places_service = PlacesService(
        build_overpass_endpoints(config, http_client),
        cooldowns,
        max_results=config.PLACES_MAX_RESULTS,
        server_timeout=config.OVERPASS_QUERY_TIMEOUT,
        server_limit=config.OVERPASS_SERVER_LIMIT,
    )
    app.state.weather_service = WeatherService(
        http_client, config.OPENWEATHER_URL, config.OPENWEATHER_API_KEY, timeout=config.PROVIDER_TIMEOUT
    )


# --- Application Lifecycle Management ---
@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("application_startup", version=settings.VERSION, env=settings.ENV)

    http_client = httpx.AsyncClient(timeout=settings.PROVIDER_TIMEOUT)
    redis_client: Optional[Redis] = None
    if settings.ENABLE_REDIS and settings.REDIS_URL:
        redis_client = Redis.from_url(settings.REDIS_URL)
        logger.info("rate_limiter_backend", backend="redis")

    init_services(app, settings, http_client, redis_client)

    yield

    logger.info("application_shutdown")
    await http_client.aclose()
    if redis_client is not None:
        await redis_client.aclose()


# --- FastAPI Application Initialization ---
app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.VERSION,
    description=settings.BRIEF_DESCRIPTION,
    lifespan=lifespan,
)

# --- Middleware ---
app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.FRONTEND_URL],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(LoggingMiddleware)

# --- API Routes ---
app.include_router(api_router, prefix="/api")


# --- Exception Handlers ---
def _error(status_code: int, error: str, message: str, **extra) -> JSONResponse:
    body = ErrorResponse(error=error, message=message, **extra)
    return JSONResponse(status_code=status_code, content=body.model_dump(exclude_none=True))


@app.exception_handler(InvalidInputError)
async def invalid_input_handler(request: Request, exc: InvalidInputError):
    return _error(status.HTTP_400_BAD_REQUEST, "INVALID_INPUT", exc.message)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    fields = ", ".join(".".join(str(p) for p in err.get("loc", ())[1:]) for err in exc.errors())
    return _error(status.HTTP_400_BAD_REQUEST, "INVALID_INPUT", f"Invalid request parameters: {fields}")


@app.exception_handler(RateLimitExceededError)
async def rate_limited_handler(request: Request, exc: RateLimitExceededError):
    body = RateLimitedResponse(
        error="Too many requests to chatbot. Please try again shortly.",
        retry_after_ms=exc.retry_after_ms,
        window_ms=exc.window_ms,
    )
    retry_after_s = max(1, -(-exc.retry_after_ms // 1000))
    return JSONResponse(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        content=body.model_dump(by_alias=True),
        headers={"Retry-After": str(retry_after_s)},
    )


@app.exception_handler(AllEndpointsFailedError)
async def all_endpoints_failed_handler(request: Request, exc: AllEndpointsFailedError):
    logger.error("places_all_endpoints_failed", attempts=exc.attempts, last_error=exc.last_error)
    return _error(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "ALL_ENDPOINTS_FAILED",
        "Failed to fetch nearby places: all map data endpoints failed.",
        details="OpenStreetMap Overpass API may be temporarily unavailable. Please try again.",
    )


@app.exception_handler(CityNotFoundError)
async def city_not_found_handler(request: Request, exc: CityNotFoundError):
    return _error(status.HTTP_404_NOT_FOUND, "CITY_NOT_FOUND",
                  "City not found. Please check the city name and try again.")


@app.exception_handler(WeatherUnavailableError)
async def weather_unavailable_handler(request: Request, exc: WeatherUnavailableError):
    return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "WEATHER_UNAVAILABLE",
                  "Failed to fetch weather data. Please try again later.")


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code == status.HTTP_404_NOT_FOUND:
        return _error(status.HTTP_404_NOT_FOUND, "Endpoint not found",
                      "The requested API endpoint does not exist")
    return _error(exc.status_code, "HTTP_ERROR", str(exc.detail))


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    error_id = str(uuid.uuid4())
    logger.error("unhandled_exception", error_id=error_id, error=str(exc), exc_info=exc)
    return _error(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "INTERNAL_SERVER_ERROR",
        "An unexpected error occurred. Please report this error ID.",
        error_id=error_id,
    )
