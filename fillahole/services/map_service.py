"""
Map service - report pins for a map viewport.

The viewport is turned into a covering circle, the circle into geohash
ranges over `location.geohash`, and each candidate is refined against the
exact viewport box before the visibility policy is applied.
"""

from typing import Dict, List, Optional
import logging

from fillahole.core.context import AppContext
from fillahole.models.report import Decision, MapPin
from fillahole.services.issue_submission import REPORTS_COLLECTION
from fillahole.services.visibility import is_visible
from fillahole.utils.geo import geohash_query_bounds, in_viewport, is_valid_gps, viewport_center_and_radius

logger = logging.getLogger(__name__)

MAX_PINS = 500
DEFAULT_COLOR = "#6B7280"

CATEGORY_COLORS = {
    "infrastructure": "#EF4444",
    "safety": "#F59E0B",
    "water": "#3B82F6",
    "sanitation": "#8B5CF6",
    "green": "#10B981",
    "urgent": "#8B5CF6",
    "resolved": "#6B7280",
    # aliases
    "roads": "#EF4444",
    "potholes": "#EF4444",
    "flooding": "#3B82F6",
    "waste": "#8B5CF6",
    "cleanliness": "#8B5CF6",
    "parks": "#10B981",
}


def category_color(category: Optional[str]) -> str:
    if not category:
        return DEFAULT_COLOR
    return CATEGORY_COLORS.get(category.strip().lower(), DEFAULT_COLOR)


def pin_color(report: Dict) -> str:
    """Resolved reports are grey, urgent ones use the urgent colour, otherwise by category."""
    if str(report.get("status", "")).upper() == "RESOLVED":
        return CATEGORY_COLORS["resolved"]
    if "Urgent" in (report.get("tags") or []):
        return CATEGORY_COLORS["urgent"]
    return category_color(report.get("category"))


def parse_bounds(bounds: str):
    """'ne_lat,ne_lng,sw_lat,sw_lng' -> four floats; ValueError when malformed."""
    parts = [p.strip() for p in (bounds or "").split(",")]
    if len(parts) != 4:
        raise ValueError("bounds must be 'ne_lat,ne_lng,sw_lat,sw_lng'")
    ne_lat, ne_lng, sw_lat, sw_lng = (float(p) for p in parts)
    if not (is_valid_gps(ne_lat, ne_lng) and is_valid_gps(sw_lat, sw_lng)):
        raise ValueError("bounds contain an invalid coordinate")
    if ne_lat < sw_lat or ne_lng < sw_lng:
        raise ValueError("north-east corner must be above and right of the south-west corner")
    return ne_lat, ne_lng, sw_lat, sw_lng


def get_pins(
    ctx: AppContext,
    viewer_id: Optional[str],
    ne_lat: float,
    ne_lng: float,
    sw_lat: float,
    sw_lng: float,
    category: Optional[str] = None,
) -> List[MapPin]:
    center, radius = viewport_center_and_radius(ne_lat, ne_lng, sw_lat, sw_lng)
    radius = max(radius, 1.0)

    pins: List[MapPin] = []
    seen = set()
    for start, end in geohash_query_bounds(center, radius):
        query = (
            ctx.db.collection(REPORTS_COLLECTION)
            .order_by("location.geohash")
            .start_at([start])
            .end_before([end])
        )
        for doc in query.stream():
            if doc.id in seen:
                continue
            seen.add(doc.id)

            data = doc.to_dict() or {}
            data["id"] = doc.id
            location = data.get("location") or {}
            lat, lng = location.get("latitude"), location.get("longitude")

            if not in_viewport(lat, lng, ne_lat, ne_lng, sw_lat, sw_lng):
                continue
            if category and (data.get("category") or "").lower() != category.lower():
                continue
            if not is_visible(data, viewer_id):
                continue

            pins.append(MapPin(
                id=doc.id,
                latitude=lat,
                longitude=lng,
                title=data.get("title"),
                category=data.get("category"),
                color=pin_color(data),
                decision=(data.get("trust") or {}).get("decision", Decision.PENDING.value),
                status=data.get("status", "OPEN"),
            ))
            if len(pins) >= MAX_PINS:
                logger.warning(f"Map viewport hit the {MAX_PINS} pin cap")
                return pins

    return pins
