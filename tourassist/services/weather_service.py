# Current conditions from OpenWeatherMap. Single provider, no chain and no
# fallback: an unknown city is a 404, anything else a 500.

from datetime import datetime, timezone
from typing import Any, Dict, Optional

import httpx
import structlog

from tourassist.core.errors import CityNotFoundError, WeatherUnavailableError
from tourassist.models.dto import Coordinates, WeatherResponse
from tourassist.providers.base import ProviderFailure, request_json

logger = structlog.get_logger(__name__)


class WeatherService:
    def __init__(self, client: httpx.AsyncClient, url: str, api_key: Optional[str], timeout: float = 15.0):
        self.client = client
        self.url = url
        self.api_key = api_key
        self.timeout = timeout

    async def by_city(self, city: str) -> WeatherResponse:
        data = await self._fetch({"q": city}, city=city)
        return self._to_response(data)

    async def by_coordinates(self, lat: float, lon: float) -> WeatherResponse:
        data = await self._fetch({"lat": lat, "lon": lon})
        return self._to_response(data, with_coordinates=True)

    async def _fetch(self, params: Dict[str, Any], city: Optional[str] = None) -> Dict[str, Any]:
        query = dict(params, appid=self.api_key or "", units="metric")
        try:
            return await request_json(self.client, "GET", self.url, self.timeout, params=query)
        except ProviderFailure as e:
            if e.status_code == 404 and city is not None:
                raise CityNotFoundError(city) from e
            logger.error("weather_fetch_failed", kind=e.kind.value, status_code=e.status_code)
            raise WeatherUnavailableError(str(e)) from e

    def _to_response(self, data: Dict[str, Any], with_coordinates: bool = False) -> WeatherResponse:
        try:
            main = data["main"]
            coordinates = None
            if with_coordinates:
                coordinates = Coordinates(lat=data["coord"]["lat"], lon=data["coord"]["lon"])
            return WeatherResponse(
                city=data.get("name", ""),
                country=(data.get("sys") or {}).get("country"),
                temperature=round(main["temp"]),
                feels_like=round(main["feels_like"]),
                description=data["weather"][0]["description"],
                icon=data["weather"][0].get("icon"),
                humidity=main["humidity"],
                pressure=main["pressure"],
                wind_speed=(data.get("wind") or {}).get("speed", 0),
                clouds=(data.get("clouds") or {}).get("all", 0),
                coordinates=coordinates,
                timestamp=datetime.now(timezone.utc).isoformat(),
            )
        except (KeyError, IndexError, TypeError, ValueError) as e:
            logger.error("weather_payload_malformed", error=str(e))
            raise WeatherUnavailableError("malformed weather payload") from e
