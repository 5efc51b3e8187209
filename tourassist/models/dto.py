# Request/response models for the public API and the internal result types the
# orchestrators hand back to the routes. Wire names are camelCase.

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from typing import List, Optional


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# --- Internal request models ---

class TranslationRequest(BaseModel):
    text: str
    from_language: str
    to_language: str


class AssistantRequest(BaseModel):
    message: str
    context: str = "travel"


class PlaceQuery(BaseModel):
    latitude: float
    longitude: float
    radius: float = Field(5000, description="Search radius in meters.")
    category: Optional[str] = Field(None, description="Category filter, or None/'all' for everything.")


# --- API Request Models ---
# Fields are optional so presence is checked by the route and reported as
# INVALID_INPUT rather than a pydantic 422.

class TranslateBody(CamelModel):
    text: Optional[str] = None
    from_language: Optional[str] = None
    to_language: Optional[str] = None


class ChatbotBody(CamelModel):
    message: Optional[str] = None
    context: Optional[str] = None


class NearbyPlacesBody(CamelModel):
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    radius: Optional[float] = None
    place_type: Optional[str] = Field(None, alias="type")


# --- Public Data Transfer Objects (DTOs) ---

class TranslateResponse(CamelModel):
    success: bool = True
    original_text: str
    translated_text: str
    from_language: str
    to_language: str
    provider: str
    fallback: Optional[bool] = None
    rate_limited: Optional[bool] = None
    message: Optional[str] = None


class ChatbotResponse(CamelModel):
    success: bool = True
    message: str
    context: str
    provider: str
    fallback: Optional[bool] = None
    rate_limited: Optional[bool] = None
    timestamp: str


class Place(CamelModel):
    """A single nearby place, distance in kilometers."""
    id: str
    name: str
    category: str
    distance: float
    address: str
    lat: float
    lon: float
    phone: Optional[str] = None
    website: Optional[str] = None
    opening_hours: Optional[str] = None


class NearbyPlacesResponse(CamelModel):
    success: bool = True
    places: List[Place]
    total: int


class Coordinates(BaseModel):
    lat: float
    lon: float


class WeatherResponse(CamelModel):
    success: bool = True
    city: str
    country: Optional[str] = None
    temperature: int
    feels_like: int
    description: str
    icon: Optional[str] = None
    humidity: int
    pressure: int
    wind_speed: float
    clouds: int
    coordinates: Optional[Coordinates] = None
    timestamp: str


class HealthResponse(BaseModel):
    status: str = "OK"
    message: str
    timestamp: str


# --- Error Response Models ---

class ErrorResponse(BaseModel):
    """Standardized error response model."""
    error: str = Field(..., description="A machine-readable error code.")
    message: str = Field(..., description="A human-readable explanation.")
    details: Optional[str] = None
    error_id: Optional[str] = None


class RateLimitedResponse(CamelModel):
    error: str
    rate_limited: bool = True
    retry_after_ms: int
    window_ms: int
