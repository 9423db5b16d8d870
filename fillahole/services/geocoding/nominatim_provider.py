import logging
from typing import Any, Dict, Optional

import requests

from .base import GEOCODE_TIMEOUT_SECONDS, GeocodingProvider, empty_result

logger = logging.getLogger(__name__)


class NominatimProvider(GeocodingProvider):
    """
    OpenStreetMap Nominatim reverse geocoding.

    No API key. Nominatim's usage policy requires an identifying
    User-Agent and at most one request per second, which the capture
    session's debounce keeps us well under.
    """

    name = "nominatim"
    BASE_URL = "https://nominatim.openstreetmap.org/reverse"

    def __init__(self, user_agent: str = "fill-a-hole/0.1"):
        self.user_agent = user_agent

    def reverse_geocode(self, latitude: float, longitude: float) -> Dict[str, Optional[str]]:
        try:
            resp = requests.get(
                self.BASE_URL,
                params={"lat": latitude, "lon": longitude, "format": "json", "addressdetails": 1},
                headers={"User-Agent": self.user_agent},
                timeout=GEOCODE_TIMEOUT_SECONDS,
            )
            if resp.status_code != 200:
                logger.warning(f"Nominatim reverse-geocode failed with status {resp.status_code}")
                return empty_result(self.name)

            data: Dict[str, Any] = resp.json()
            address = data.get("address") or {}
            return {
                "formatted_address": data.get("display_name"),
                "street": address.get("road") or address.get("pedestrian") or address.get("footway"),
                "locality": (
                    address.get("suburb")
                    or address.get("neighbourhood")
                    or address.get("quarter")
                    or address.get("village")
                ),
                "city": address.get("city") or address.get("town") or address.get("village"),
                "state": address.get("state"),
                "country": address.get("country"),
                "provider": self.name,
            }
        except Exception as e:
            logger.warning(f"Nominatim reverse-geocode error: {e}")
            return empty_result(self.name)
