# Nearby places from OpenStreetMap via the Overpass API.
#
# One query is sent to each mirror in turn until one answers. Raw elements are
# then turned into Place DTOs: distance by haversine, radius filter, category
# and address derivation, sorted nearest first and capped.

from typing import Any, Dict, List, Optional, Tuple

import httpx
import structlog
from pydantic import BaseModel

from tourassist.core.config import Settings
from tourassist.core.errors import AllEndpointsFailedError
from tourassist.models.dto import Place, PlaceQuery
from tourassist.providers.base import ProviderChain
from tourassist.providers.overpass import OverpassEndpoint
from tourassist.services.cooldown import CooldownTracker
from tourassist.utils.haversine import haversine

logger = structlog.get_logger(__name__)

CATEGORY_TAGS = {
    "restaurant": "amenity=restaurant",
    "lodging": "tourism=hotel",
    "tourist_attraction": "tourism=attraction",
    "shopping_mall": "shop",
    "hospital": "amenity=hospital",
    "transit_station": "public_transport=station",
}

# Used when no (or an unknown) category is requested
BROAD_TAGS = [
    'amenity~"restaurant|cafe|hotel|hospital|atm|bank|pharmacy|fuel"',
    'tourism~"hotel|attraction|museum|viewpoint"',
    'shop~"supermarket|mall|convenience"',
]

DEFAULT_ADDRESS = "Near you"


class PlacesResult(BaseModel):
    places: List[Place]
    total: int


def tag_predicates(category: Optional[str]) -> List[str]:
    if category and category != "all" and category in CATEGORY_TAGS:
        return [CATEGORY_TAGS[category]]
    return list(BROAD_TAGS)


def build_overpass_query(query: PlaceQuery, server_timeout: int = 15, server_limit: int = 100) -> str:
    """Builds a node+way `around` query, e.g.

    [out:json][timeout:15];(node[amenity=restaurant](around:5000,15.5,73.8);
    way[amenity=restaurant](around:5000,15.5,73.8););out body center 100;
    """
    radius = int(query.radius) if float(query.radius).is_integer() else query.radius
    around = f"(around:{radius},{query.latitude},{query.longitude})"
    statements = []
    for tag in tag_predicates(query.category):
        statements.append(f"node[{tag}]{around};")
        statements.append(f"way[{tag}]{around};")
    return f"[out:json][timeout:{server_timeout}];({''.join(statements)});out body center {server_limit};"


def element_position(element: Dict[str, Any], query: PlaceQuery) -> Tuple[float, float]:
    """Node coordinates, else the way's center, else the query point itself."""
    if element.get("lat") is not None and element.get("lon") is not None:
        return float(element["lat"]), float(element["lon"])
    center = element.get("center")
    if isinstance(center, dict) and center.get("lat") is not None and center.get("lon") is not None:
        return float(center["lat"]), float(center["lon"])
    return query.latitude, query.longitude


def derive_category(tags: Dict[str, str]) -> str:
    if tags.get("amenity"):
        return tags["amenity"]
    if tags.get("tourism"):
        return tags["tourism"]
    if tags.get("shop"):
        return "shopping"
    return "place"


def derive_address(tags: Dict[str, str]) -> str:
    street = tags.get("addr:street")
    if street:
        number = tags.get("addr:housenumber")
        return f"{street} {number}" if number else street
    return tags.get("addr:city") or DEFAULT_ADDRESS


def to_places(elements: List[Dict[str, Any]], query: PlaceQuery, max_results: int = 50) -> List[Place]:
    radius_km = query.radius / 1000
    places: List[Place] = []
    for element in elements:
        tags = element.get("tags") or {}
        name = tags.get("name")
        if not name or not isinstance(name, str):
            continue

        try:
            lat, lon = element_position(element, query)
        except (TypeError, ValueError):
            logger.debug("place_skipped_bad_coordinates", id=element.get("id"))
            continue
        distance = round(haversine(query.latitude, query.longitude, lat, lon), 1)
        if distance > radius_km:
            continue

        places.append(Place(
            id=str(element.get("id", "")),
            name=name,
            category=derive_category(tags),
            distance=distance,
            address=derive_address(tags),
            lat=lat,
            lon=lon,
            phone=tags.get("phone") or tags.get("contact:phone"),
            website=tags.get("website") or tags.get("contact:website"),
            opening_hours=tags.get("opening_hours"),
        ))

    places.sort(key=lambda p: p.distance)
    return places[:max_results]


class PlacesService:
    def __init__(self, endpoints: List[OverpassEndpoint], cooldowns: CooldownTracker,
                 max_results: int = 50, server_timeout: int = 15, server_limit: int = 100):
        self.chain = ProviderChain("places", endpoints, cooldowns)
        self.max_results = max_results
        self.server_timeout = server_timeout
        self.server_limit = server_limit

    async def find_nearby(self, query: PlaceQuery) -> PlacesResult:
        overpass_query = build_overpass_query(query, self.server_timeout, self.server_limit)
        outcome = await self.chain.run(overpass_query)
        if not outcome.succeeded:
            last = outcome.attempts[-1].reason if outcome.attempts else ""
            raise AllEndpointsFailedError(len(outcome.attempts), last or "")

        places = to_places(outcome.value, query, self.max_results)
        logger.info("places_found", endpoint=outcome.provider,
                    raw=len(outcome.value), returned=len(places))
        return PlacesResult(places=places, total=len(places))


def build_overpass_endpoints(settings: Settings, client: httpx.AsyncClient) -> List[OverpassEndpoint]:
    return [
        OverpassEndpoint(client, url, timeout=settings.PROVIDER_TIMEOUT,
                         cooldown_seconds=settings.PROVIDER_COOLDOWN_SECONDS)
        for url in settings.OVERPASS_URLS
    ]
