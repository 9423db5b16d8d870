import pytest
import requests

from fillahole.core.settings import Settings
from fillahole.services.capture_session import CaptureSession
from fillahole.services.geocoding import build_geocoding_provider, display_address
from fillahole.services.geocoding.google_provider import GoogleMapsProvider
from fillahole.services.geocoding.nominatim_provider import NominatimProvider


class FakeResponse:
    def __init__(self, status_code, payload):
        self.status_code = status_code
        self._payload = payload

    def json(self):
        return self._payload


def test_resolver_defaults_to_nominatim():
    assert isinstance(build_geocoding_provider(Settings(_env_file=None)), NominatimProvider)


def test_resolver_picks_google_only_with_key():
    with_key = Settings(_env_file=None, GEOCODING_PROVIDER="google", GOOGLE_MAPS_API_KEY="maps-key")
    without_key = Settings(_env_file=None, GEOCODING_PROVIDER="google", GOOGLE_MAPS_API_KEY=None)

    assert isinstance(build_geocoding_provider(with_key), GoogleMapsProvider)
    assert isinstance(build_geocoding_provider(without_key), NominatimProvider)


def test_nominatim_parses_address(monkeypatch):
    payload = {
        "display_name": "MG Road, Labbipet, Vijayawada, Andhra Pradesh, India",
        "address": {"road": "MG Road", "suburb": "Labbipet", "city": "Vijayawada", "state": "Andhra Pradesh", "country": "India"},
    }
    monkeypatch.setattr(
        "fillahole.services.geocoding.nominatim_provider.requests.get",
        lambda *a, **kw: FakeResponse(200, payload),
    )

    result = NominatimProvider().reverse_geocode(16.5062, 80.6480)

    assert result["street"] == "MG Road"
    assert result["locality"] == "Labbipet"
    assert display_address(result) == "MG Road, Labbipet, Vijayawada"


def test_nominatim_failure_returns_empty_result(monkeypatch):
    def boom(*args, **kwargs):
        raise requests.Timeout("slow")

    monkeypatch.setattr("fillahole.services.geocoding.nominatim_provider.requests.get", boom)
    result = NominatimProvider().reverse_geocode(16.5062, 80.6480)

    assert result["provider"] == "nominatim"
    assert display_address(result) is None


def test_google_parses_components(monkeypatch):
    payload = {"results": [{
        "formatted_address": "MG Rd, Labbipet, Vijayawada",
        "address_components": [
            {"long_name": "MG Road", "types": ["route"]},
            {"long_name": "Labbipet", "types": ["sublocality", "political"]},
            {"long_name": "Vijayawada", "types": ["locality", "political"]},
        ],
    }]}
    monkeypatch.setattr(
        "fillahole.services.geocoding.google_provider.requests.get",
        lambda *a, **kw: FakeResponse(200, payload),
    )

    result = GoogleMapsProvider(api_key="k").reverse_geocode(16.5062, 80.6480)
    assert (result["street"], result["locality"], result["city"]) == ("MG Road", "Labbipet", "Vijayawada")


def test_google_http_error_returns_empty_result(monkeypatch):
    monkeypatch.setattr(
        "fillahole.services.geocoding.google_provider.requests.get",
        lambda *a, **kw: FakeResponse(403, {}),
    )
    assert GoogleMapsProvider(api_key="k").reverse_geocode(1.0, 2.0)["formatted_address"] is None


@pytest.mark.asyncio
async def test_capture_session_from_settings():
    async def no_fixes():
        return
        yield

    settings = Settings(_env_file=None, GEOCODE_DEBOUNCE_SECONDS=0.5)
    session = CaptureSession.from_settings(no_fixes(), settings)

    assert session._debounce_seconds == 0.5
    assert isinstance(session._geocoder, NominatimProvider)
    await session.close()
