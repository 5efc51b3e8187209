import httpx
import pytest

from fakes import mock_client
from tourassist.core.errors import CityNotFoundError, WeatherUnavailableError
from tourassist.services.weather_service import WeatherService

PANAJI = {
    "coord": {"lon": 73.83, "lat": 15.49},
    "weather": [{"main": "Clouds", "description": "scattered clouds", "icon": "03d"}],
    "main": {"temp": 29.6, "feels_like": 33.4, "humidity": 74, "pressure": 1009},
    "wind": {"speed": 4.12},
    "clouds": {"all": 40},
    "sys": {"country": "IN"},
    "name": "Panaji",
}


def make_service(client) -> WeatherService:
    return WeatherService(client, "https://weather.test/data/2.5/weather", "ow-key", timeout=1.0)


@pytest.mark.asyncio
async def test_by_city():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen.update(request.url.params)
        return httpx.Response(200, json=PANAJI)

    async with mock_client(handler) as client:
        weather = await make_service(client).by_city("Panaji")

    assert seen["q"] == "Panaji"
    assert seen["appid"] == "ow-key"
    assert seen["units"] == "metric"
    assert weather.city == "Panaji"
    assert weather.country == "IN"
    assert weather.temperature == 30
    assert weather.feels_like == 33
    assert weather.description == "scattered clouds"
    assert weather.wind_speed == 4.12
    assert weather.clouds == 40
    assert weather.coordinates is None


@pytest.mark.asyncio
async def test_by_coordinates_includes_coordinates():
    async with mock_client(lambda request: httpx.Response(200, json=PANAJI)) as client:
        weather = await make_service(client).by_coordinates(15.49, 73.83)

    assert weather.coordinates.lat == 15.49
    assert weather.coordinates.lon == 73.83


@pytest.mark.asyncio
async def test_unknown_city():
    async with mock_client(lambda request: httpx.Response(404, json={"cod": "404"})) as client:
        with pytest.raises(CityNotFoundError):
            await make_service(client).by_city("Atlantis")


@pytest.mark.asyncio
async def test_upstream_error():
    async with mock_client(lambda request: httpx.Response(401, json={"cod": 401})) as client:
        with pytest.raises(WeatherUnavailableError):
            await make_service(client).by_city("Panaji")


@pytest.mark.asyncio
async def test_malformed_payload():
    async with mock_client(lambda request: httpx.Response(200, json={"name": "Panaji"})) as client:
        with pytest.raises(WeatherUnavailableError):
            await make_service(client).by_city("Panaji")
