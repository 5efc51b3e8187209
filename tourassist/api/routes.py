# tourassist/api/routes.py
# Public endpoints. Input presence is checked here, before any provider is
# touched; everything past that belongs to the services on app.state.

from datetime import datetime, timezone

from fastapi import APIRouter, Request

from tourassist.core.errors import InvalidInputError
from tourassist.models.dto import (
    AssistantRequest,
    ChatbotBody,
    ChatbotResponse,
    ErrorResponse,
    HealthResponse,
    NearbyPlacesBody,
    NearbyPlacesResponse,
    PlaceQuery,
    RateLimitedResponse,
    TranslateBody,
    TranslateResponse,
    TranslationRequest,
    WeatherResponse,
)
from tourassist.core.config import settings
from tourassist.services.assistant_service import AssistantService
from tourassist.services.places_service import PlacesService
from tourassist.services.translation_service import TranslationService
from tourassist.services.weather_service import WeatherService
from tourassist.utils.security import get_client_ip

router = APIRouter()

DEFAULT_CONTEXT = "travel"


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


# ----------------------------------------------------------------------
# Health
# ----------------------------------------------------------------------
@router.get("/health", response_model=HealthResponse)
async def health_check():
    return HealthResponse(
        status="OK",
        message=f"{settings.PROJECT_NAME} is running",
        timestamp=_now(),
    )


# ----------------------------------------------------------------------
# Translation
# ----------------------------------------------------------------------
@router.post(
    "/translate",
    response_model=TranslateResponse,
    response_model_exclude_none=True,
    responses={400: {"model": ErrorResponse}},
)
async def translate(request: Request, data: TranslateBody):
    if not data.text or not data.from_language or not data.to_language:
        raise InvalidInputError("Missing required parameters: text, fromLanguage, toLanguage")

    service: TranslationService = request.app.state.translation_service
    result = await service.translate(TranslationRequest(
        text=data.text,
        from_language=data.from_language,
        to_language=data.to_language,
    ))

    return TranslateResponse(
        original_text=data.text,
        translated_text=result.translated_text,
        from_language=data.from_language,
        to_language=data.to_language,
        provider=result.provider,
        fallback=True if result.used_fallback else None,
        rate_limited=True if result.rate_limited else None,
        message=result.message or None,
    )


# ----------------------------------------------------------------------
# Chatbot
# ----------------------------------------------------------------------
@router.post(
    "/chatbot",
    response_model=ChatbotResponse,
    response_model_exclude_none=True,
    responses={400: {"model": ErrorResponse}, 429: {"model": RateLimitedResponse}},
)
async def chatbot(request: Request, data: ChatbotBody):
    if not data.message or not data.message.strip():
        raise InvalidInputError("Message is required")

    context = data.context or DEFAULT_CONTEXT
    service: AssistantService = request.app.state.assistant_service
    result = await service.reply(
        AssistantRequest(message=data.message, context=context),
        client_key=get_client_ip(request),
    )

    return ChatbotResponse(
        message=result.message,
        context=context,
        provider=result.provider,
        fallback=True if result.used_fallback else None,
        rate_limited=result.rate_limited if result.used_fallback else None,
        timestamp=_now(),
    )


# ----------------------------------------------------------------------
# Weather
# ----------------------------------------------------------------------
@router.get(
    "/weather/coords/{lat}/{lon}",
    response_model=WeatherResponse,
    response_model_exclude_none=True,
)
async def weather_by_coordinates(request: Request, lat: float, lon: float):
    service: WeatherService = request.app.state.weather_service
    return await service.by_coordinates(lat, lon)


@router.get(
    "/weather/{city}",
    response_model=WeatherResponse,
    response_model_exclude_none=True,
    responses={404: {"model": ErrorResponse}},
)
async def weather_by_city(request: Request, city: str):
    if not city.strip():
        raise InvalidInputError("City parameter is required")
    service: WeatherService = request.app.state.weather_service
    return await service.by_city(city)


# ----------------------------------------------------------------------
# Nearby places
# ----------------------------------------------------------------------
@router.post(
    "/places/nearby",
    response_model=NearbyPlacesResponse,
    response_model_exclude_none=True,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def nearby_places(request: Request, data: NearbyPlacesBody):
    if data.latitude is None or data.longitude is None:
        raise InvalidInputError("Missing required parameters: latitude, longitude")

    query = PlaceQuery(
        latitude=data.latitude,
        longitude=data.longitude,
        radius=data.radius or settings.PLACES_DEFAULT_RADIUS_M,
        category=data.place_type,
    )
    service: PlacesService = request.app.state.places_service
    result = await service.find_nearby(query)
    return NearbyPlacesResponse(places=result.places, total=result.total)
