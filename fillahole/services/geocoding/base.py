from abc import ABC, abstractmethod
from typing import Dict, Optional
import logging

logger = logging.getLogger(__name__)

# Nominatim and Google both ask for short timeouts on interactive lookups
GEOCODE_TIMEOUT_SECONDS = 3.0


class GeocodingProvider(ABC):
    """
    Reverse-geocoding provider used by the capture flow.

    Contract:
    - Input: latitude, longitude (floats)
    - Output: dict with well-known keys:
      {
        "formatted_address": str | None,
        "street": str | None,
        "locality": str | None,
        "city": str | None,
        "state": str | None,
        "country": str | None,
        "provider": str
      }
    - MUST NEVER raise; empty fields on failure.
    - Network timeout <= GEOCODE_TIMEOUT_SECONDS.
    """

    name = "base"

    @abstractmethod
    def reverse_geocode(self, latitude: float, longitude: float) -> Dict[str, Optional[str]]:
        raise NotImplementedError


def empty_result(provider: str) -> Dict[str, Optional[str]]:
    return {
        "formatted_address": None,
        "street": None,
        "locality": None,
        "city": None,
        "state": None,
        "country": None,
        "provider": provider,
    }


def display_address(result: Dict[str, Optional[str]]) -> Optional[str]:
    """Short label for the capture screen, e.g. "MG Road, Indiranagar, Bengaluru"."""
    parts = [result.get(k) for k in ("street", "locality", "city")]
    parts = [p for p in parts if p]
    if parts:
        return ", ".join(dict.fromkeys(parts))
    return result.get("formatted_address")
