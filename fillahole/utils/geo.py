"""
Geospatial helpers: great-circle distance, geohash encoding and the
range bounds used to turn a radius search into ordered string queries.

Geohash range queries are a coarse index only. Callers must refine the
candidates with haversine_m() before trusting them.
"""

import math
from typing import List, Optional, Tuple

EARTH_RADIUS_METERS = 6371000

BASE32 = "0123456789bcdefghjkmnpqrstuvwxyz"
BITS_PER_CHAR = 5
GEOHASH_PRECISION = 10
MAXIMUM_BITS_PRECISION = 22 * BITS_PER_CHAR

# WGS84 constants used for the longitude-degree conversion
EARTH_EQ_RADIUS = 6378137.0
EARTH_MERI_CIRCUMFERENCE = 40007860
METERS_PER_DEGREE_LATITUDE = 110574
E2 = 0.00669447819799
EPSILON = 1e-12


def haversine_m(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Distance in meters between two lat/lng points on a spherical Earth."""
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    dphi = math.radians(lat2 - lat1)
    dlambda = math.radians(lng2 - lng1)
    a = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlambda / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_METERS * c


def is_valid_gps(lat, lng) -> bool:
    """True when both values are real numbers inside the lat/lng ranges."""
    if lat is None or lng is None:
        return False
    if isinstance(lat, bool) or isinstance(lng, bool):
        return False
    if not isinstance(lat, (int, float)) or not isinstance(lng, (int, float)):
        return False
    if math.isnan(lat) or math.isnan(lng):
        return False
    return -90 <= lat <= 90 and -180 <= lng <= 180


# ─── Geohash ────────────────────────────────────────────────────────────────

def encode_geohash(latitude: float, longitude: float, precision: int = GEOHASH_PRECISION) -> str:
    """Encode a point as a base-32 geohash string."""
    if not is_valid_gps(latitude, longitude):
        raise ValueError(f"Invalid location: ({latitude}, {longitude})")
    if precision < 1 or precision > 22:
        raise ValueError("Geohash precision must be between 1 and 22")

    lat_range = [-90.0, 90.0]
    lng_range = [-180.0, 180.0]
    geohash = []
    value = 0
    bits = 0
    even_bit = True

    while len(geohash) < precision:
        if even_bit:
            val, rng = longitude, lng_range
        else:
            val, rng = latitude, lat_range
        mid = (rng[0] + rng[1]) / 2
        if val > mid:
            value = (value << 1) + 1
            rng[0] = mid
        else:
            value = value << 1
            rng[1] = mid

        even_bit = not even_bit
        bits += 1
        if bits == BITS_PER_CHAR:
            geohash.append(BASE32[value])
            bits = 0
            value = 0

    return "".join(geohash)


def _meters_to_longitude_degrees(distance: float, latitude: float) -> float:
    radians = math.radians(latitude)
    num = math.cos(radians) * EARTH_EQ_RADIUS * math.pi / 180
    denom = 1 / math.sqrt(1 - E2 * math.sin(radians) * math.sin(radians))
    delta_deg = num * denom
    if delta_deg < EPSILON:
        return 360 if distance > 0 else 0
    return min(360, distance / delta_deg)


def _longitude_bits_for_resolution(resolution: float, latitude: float) -> float:
    degs = _meters_to_longitude_degrees(resolution, latitude)
    return max(1, math.log2(360 / degs)) if abs(degs) > 0.000001 else 1


def _latitude_bits_for_resolution(resolution: float) -> float:
    return min(math.log2(EARTH_MERI_CIRCUMFERENCE / 2 / resolution), MAXIMUM_BITS_PRECISION)


def _wrap_longitude(longitude: float) -> float:
    if -180 <= longitude <= 180:
        return longitude
    adjusted = longitude + 180
    if adjusted > 0:
        return (adjusted % 360) - 180
    return 180 - (-adjusted % 360)


def _bounding_box_bits(center: Tuple[float, float], size: float) -> int:
    lat_delta = size / METERS_PER_DEGREE_LATITUDE
    lat_north = min(90, center[0] + lat_delta)
    lat_south = max(-90, center[0] - lat_delta)
    bits_lat = math.floor(_latitude_bits_for_resolution(size)) * 2
    bits_lng_north = math.floor(_longitude_bits_for_resolution(size, lat_north)) * 2 - 1
    bits_lng_south = math.floor(_longitude_bits_for_resolution(size, lat_south)) * 2 - 1
    return min(bits_lat, bits_lng_north, bits_lng_south, MAXIMUM_BITS_PRECISION)


def _bounding_box_coordinates(center: Tuple[float, float], radius: float) -> List[Tuple[float, float]]:
    lat_degrees = radius / METERS_PER_DEGREE_LATITUDE
    lat_north = min(90, center[0] + lat_degrees)
    lat_south = max(-90, center[0] - lat_degrees)
    lng_degs = max(
        _meters_to_longitude_degrees(radius, lat_north),
        _meters_to_longitude_degrees(radius, lat_south),
    )
    lat, lng = center
    west = _wrap_longitude(lng - lng_degs)
    east = _wrap_longitude(lng + lng_degs)
    return [
        (lat, lng), (lat, west), (lat, east),
        (lat_north, lng), (lat_north, west), (lat_north, east),
        (lat_south, lng), (lat_south, west), (lat_south, east),
    ]


def _geohash_range(geohash: str, bits: int) -> Tuple[str, str]:
    precision = math.ceil(bits / BITS_PER_CHAR)
    if len(geohash) < precision:
        return geohash, geohash + "~"
    ghash = geohash[:precision]
    base = ghash[:-1]
    last_value = BASE32.index(ghash[-1])
    significant_bits = bits - len(base) * BITS_PER_CHAR
    unused_bits = BITS_PER_CHAR - significant_bits
    start_value = (last_value >> unused_bits) << unused_bits
    end_value = start_value + (1 << unused_bits)
    if end_value > 31:
        return base + BASE32[start_value], base + "~"
    return base + BASE32[start_value], base + BASE32[end_value]


def geohash_query_bounds(center: Tuple[float, float], radius_m: float) -> List[Tuple[str, str]]:
    """
    Geohash [start, end) ranges that together cover a circle.

    Nine sample points (center plus the bounding-box corners and edge
    midpoints) are hashed at the coarsest precision that still resolves
    the radius; each yields one prefix range. Duplicates are dropped.
    The union over-approximates the circle.
    """
    if not is_valid_gps(center[0], center[1]):
        raise ValueError(f"Invalid location: {center}")
    if radius_m <= 0:
        raise ValueError("Radius must be positive")
    query_bits = max(1, _bounding_box_bits(center, radius_m))
    precision = math.ceil(query_bits / BITS_PER_CHAR)
    bounds: List[Tuple[str, str]] = []
    for point in _bounding_box_coordinates(center, radius_m):
        rng = _geohash_range(encode_geohash(point[0], point[1], precision), query_bits)
        if rng not in bounds:
            bounds.append(rng)
    return bounds


def viewport_center_and_radius(
    ne_lat: float, ne_lng: float, sw_lat: float, sw_lng: float
) -> Tuple[Tuple[float, float], float]:
    """Smallest circle (center, radius_m) enclosing a map viewport."""
    center = ((ne_lat + sw_lat) / 2, (ne_lng + sw_lng) / 2)
    radius = haversine_m(center[0], center[1], ne_lat, ne_lng)
    return center, radius


def in_viewport(lat: Optional[float], lng: Optional[float],
                ne_lat: float, ne_lng: float, sw_lat: float, sw_lng: float) -> bool:
    if not is_valid_gps(lat, lng):
        return False
    return sw_lat <= lat <= ne_lat and sw_lng <= lng <= ne_lng
