"""Reverse geocoding for the capture flow."""

from .base import GeocodingProvider, display_address, empty_result
from .resolver import build_geocoding_provider

__all__ = ["GeocodingProvider", "build_geocoding_provider", "display_address", "empty_result"]
