import logging
from typing import Any, Dict, List, Optional

import requests

from .base import GEOCODE_TIMEOUT_SECONDS, GeocodingProvider, empty_result

logger = logging.getLogger(__name__)


def _component(components: List[Dict[str, Any]], types: List[str]) -> Optional[str]:
    for c in components:
        if any(t in c.get("types", []) for t in types):
            return c.get("long_name")
    return None


class GoogleMapsProvider(GeocodingProvider):
    """Google Geocoding API; only used with GEOCODING_PROVIDER=google and a key."""

    name = "google"
    BASE_URL = "https://maps.googleapis.com/maps/api/geocode/json"

    def __init__(self, api_key: str):
        self.api_key = api_key

    def reverse_geocode(self, latitude: float, longitude: float) -> Dict[str, Optional[str]]:
        try:
            resp = requests.get(
                self.BASE_URL,
                params={"latlng": f"{latitude},{longitude}", "key": self.api_key},
                timeout=GEOCODE_TIMEOUT_SECONDS,
            )
            if resp.status_code != 200:
                logger.warning(f"Google reverse-geocode failed with status {resp.status_code}")
                return empty_result(self.name)

            results = (resp.json() or {}).get("results") or []
            if not results:
                return empty_result(self.name)

            first = results[0]
            components = first.get("address_components") or []
            return {
                "formatted_address": first.get("formatted_address"),
                "street": _component(components, ["route"]),
                "locality": _component(components, ["sublocality", "neighborhood"]),
                "city": _component(components, ["locality", "postal_town"]),
                "state": _component(components, ["administrative_area_level_1"]),
                "country": _component(components, ["country"]),
                "provider": self.name,
            }
        except Exception as e:
            logger.warning(f"Google reverse-geocode error: {e}")
            return empty_result(self.name)
