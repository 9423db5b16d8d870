import logging

from fillahole.core.settings import Settings
from .base import GeocodingProvider
from .google_provider import GoogleMapsProvider
from .nominatim_provider import NominatimProvider

logger = logging.getLogger(__name__)


def build_geocoding_provider(settings: Settings) -> GeocodingProvider:
    """
    Nominatim by default. Google only when GEOCODING_PROVIDER=google and
    GOOGLE_MAPS_API_KEY is set; a google selection without a key falls
    back to Nominatim.
    """
    provider_name = (settings.GEOCODING_PROVIDER or "nominatim").lower()

    if provider_name == "google":
        if settings.GOOGLE_MAPS_API_KEY:
            logger.info("Geocoding provider initialized: google")
            return GoogleMapsProvider(api_key=settings.GOOGLE_MAPS_API_KEY)
        logger.warning("GEOCODING_PROVIDER=google but no GOOGLE_MAPS_API_KEY, falling back to Nominatim")

    logger.info("Geocoding provider initialized: nominatim")
    return NominatimProvider()
