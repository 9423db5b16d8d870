"""
Capture metadata handed in by the camera flow.

The device side produces a GPS fix, a capture timestamp and whatever EXIF
tags it could read; the scorer only ever consumes CaptureMetadata.
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

from fillahole.utils.geo import is_valid_gps

GPS_STRONG_METERS = 20
GPS_ACCEPTABLE_METERS = 50


class GpsFix(BaseModel):
    """A single position reading from the device."""
    latitude: Optional[float] = Field(None, description="Latitude in decimal degrees")
    longitude: Optional[float] = Field(None, description="Longitude in decimal degrees")
    accuracy: Optional[float] = Field(None, ge=0, description="Horizontal accuracy radius in meters")
    altitude: Optional[float] = Field(None, description="Altitude in meters")
    heading: Optional[float] = Field(None, description="Compass heading in degrees")
    speed: Optional[float] = Field(None, description="Ground speed in m/s")


class CaptureMetadata(BaseModel):
    """Canonical metadata record for one captured photo."""
    gps: Optional[GpsFix] = Field(None, description="GPS fix at capture time")
    captured_at_unix: Optional[int] = Field(None, description="Capture time in epoch milliseconds")
    exif: Dict[str, Any] = Field(default_factory=dict, description="Raw EXIF tags (Software, Make, Model, ...)")

    class Config:
        json_schema_extra = {
            "example": {
                "gps": {"latitude": 16.5062, "longitude": 80.6480, "accuracy": 8.5},
                "captured_at_unix": 1735689600000,
                "exif": {"Software": "Android 14"},
            }
        }


def normalize_device_metadata(
    coords: Optional[Dict[str, Any]],
    captured_at_unix: Optional[int],
    exif: Optional[Dict[str, Any]] = None,
) -> CaptureMetadata:
    """
    Build CaptureMetadata from raw device output.

    `coords` follows the geolocation API shape (latitude, longitude,
    accuracy, altitude, heading, speed). Unusable coordinates are dropped
    rather than rejected so the scorer can fail GPS_PRESENT explicitly.
    """
    gps = None
    if coords and is_valid_gps(coords.get("latitude"), coords.get("longitude")):
        gps = GpsFix(
            latitude=coords["latitude"],
            longitude=coords["longitude"],
            accuracy=coords.get("accuracy"),
            altitude=coords.get("altitude"),
            heading=coords.get("heading"),
            speed=coords.get("speed"),
        )
    return CaptureMetadata(gps=gps, captured_at_unix=captured_at_unix, exif=dict(exif or {}))


def gps_strength(accuracy: Optional[float]) -> str:
    """strong / acceptable / weak label for a fix accuracy in meters."""
    if accuracy is None:
        return "weak"
    if accuracy < GPS_STRONG_METERS:
        return "strong"
    if accuracy < GPS_ACCEPTABLE_METERS:
        return "acceptable"
    return "weak"
