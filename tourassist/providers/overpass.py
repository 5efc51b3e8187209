from typing import Any, Dict, List

import httpx

from tourassist.providers.base import BaseProvider, FailureKind, ProviderFailure, request_json


class OverpassEndpoint(BaseProvider[List[Dict[str, Any]]]):
    """One mirror of the OpenStreetMap Overpass API. Returns the raw `elements`."""

    def __init__(self, client: httpx.AsyncClient, url: str, **kwargs):
        super().__init__(client, **kwargs)
        self.url = url
        self.name = url

    async def attempt(self, query: str) -> List[Dict[str, Any]]:
        data = await request_json(
            self.client, "POST", self.url, self.timeout,
            data={"data": query},
        )
        if not isinstance(data, dict):
            raise ProviderFailure(FailureKind.MALFORMED, "expected a JSON object")
        # A valid answer without `elements` means nothing matched
        elements = data.get("elements") or []
        if not isinstance(elements, list):
            raise ProviderFailure(FailureKind.MALFORMED, "elements is not a list")
        for element in elements:
            if not isinstance(element, dict) or not isinstance(element.get("tags", {}), dict):
                raise ProviderFailure(FailureKind.MALFORMED, "element is not an OSM object")
        return elements
