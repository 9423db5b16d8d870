"""
Trust Scorer - deterministic metadata checks for captured photos.

DESIGN PRINCIPLES:
- Pure: no network, no randomness, no stored state
- Five independent binary checks, weighted to a 0-100 total
- Evaluation time is an explicit input so every score is reproducible
"""

import math
import time
from typing import Dict, List, Optional

from fillahole.models.metadata import CaptureMetadata, GpsFix
from fillahole.models.report import ScoreResult, TrustCheck
from fillahole.utils.geo import haversine_m

MAX_AGE_MS = 5 * 60 * 1000
MAX_ACCURACY_M = 20
MAX_LOCATION_DELTA_M = 50

GPS_PRESENT_POINTS = 30
GPS_ACCURACY_POINTS = 25
FRESHNESS_POINTS = 20
NO_EDITING_POINTS = 15
LOCATION_MATCH_POINTS = 10

EDITING_SOFTWARE_PATTERNS = [
    "photoshop", "lightroom", "snapseed", "vsco", "facetune",
    "picsart", "meitu", "airbrush", "pixlr", "afterlight",
    "gimp", "capture one", "darktable",
]


def _is_number(value) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return not math.isnan(value)


def _check(check_id: str, label: str, passed: bool, max_points: int, detail: str) -> TrustCheck:
    return TrustCheck(
        id=check_id,
        label=label,
        passed=passed,
        points=max_points if passed else 0,
        max_points=max_points,
        detail=detail,
    )


def check_gps_present(gps: Optional[GpsFix]) -> TrustCheck:
    passed = gps is not None and _is_number(gps.latitude) and _is_number(gps.longitude)
    detail = (
        f"GPS found: {gps.latitude:.4f}, {gps.longitude:.4f}" if passed
        else "No GPS coordinates in metadata"
    )
    return _check("GPS_PRESENT", "GPS data present", passed, GPS_PRESENT_POINTS, detail)


def check_gps_accuracy(gps: Optional[GpsFix]) -> TrustCheck:
    accuracy = gps.accuracy if gps is not None else None
    passed = _is_number(accuracy) and accuracy < MAX_ACCURACY_M
    detail = f"Accuracy: ±{round(accuracy)}m" if _is_number(accuracy) else "Accuracy data missing"
    return _check("GPS_ACCURACY", f"GPS accuracy < {MAX_ACCURACY_M}m", passed, GPS_ACCURACY_POINTS, detail)


def check_freshness(captured_at_unix: Optional[int], now_ms: int) -> TrustCheck:
    label = "Photo taken recently (< 5 min)"
    if not _is_number(captured_at_unix):
        return _check("FRESHNESS", label, False, FRESHNESS_POINTS, "Capture timestamp missing")

    age_ms = now_ms - captured_at_unix
    # Negative age means a capture time in the future
    passed = 0 <= age_ms <= MAX_AGE_MS
    if passed:
        detail = f"Taken {round(age_ms / 1000)}s ago, fresh"
    elif age_ms < 0:
        detail = "Capture time is in the future"
    else:
        detail = f"Photo is {round(age_ms / 60000)} min old, too old"
    return _check("FRESHNESS", label, passed, FRESHNESS_POINTS, detail)


def check_no_editing(exif: Dict) -> TrustCheck:
    raw = (exif or {}).get("Software") or ""
    software = str(raw).lower()
    editing_detected = any(pattern in software for pattern in EDITING_SOFTWARE_PATTERNS)
    if editing_detected:
        detail = f'Editing software detected: "{raw}"'
    elif software:
        detail = f"Software: {raw} (not a known editor)"
    else:
        detail = "No editing software field in EXIF"
    return _check("NO_EDITING", "No editing software detected", not editing_detected, NO_EDITING_POINTS, detail)


def check_location_match(
    gps: Optional[GpsFix], reported_lat: Optional[float], reported_lng: Optional[float]
) -> TrustCheck:
    label = f"Location within {MAX_LOCATION_DELTA_M}m of report"
    points_known = (
        gps is not None
        and _is_number(gps.latitude) and _is_number(gps.longitude)
        and _is_number(reported_lat) and _is_number(reported_lng)
    )
    if not points_known:
        return _check(
            "LOCATION_MATCH", label, False, LOCATION_MATCH_POINTS,
            "Cannot check, GPS or reported location missing",
        )

    distance_m = haversine_m(gps.latitude, gps.longitude, reported_lat, reported_lng)
    passed = distance_m <= MAX_LOCATION_DELTA_M
    verdict = "match" if passed else "too far"
    detail = f"Photo taken {round(distance_m)}m from reported location, {verdict}"
    return _check("LOCATION_MATCH", label, passed, LOCATION_MATCH_POINTS, detail)


def score(
    metadata: Optional[CaptureMetadata],
    reported_lat: Optional[float],
    reported_lng: Optional[float],
    now_ms: Optional[int] = None,
) -> ScoreResult:
    """
    Run the five metadata checks and sum the points of those that pass.

    Args:
        metadata: Normalized capture metadata (None scores as all-missing)
        reported_lat: Latitude of the issue being reported
        reported_lng: Longitude of the issue being reported
        now_ms: Evaluation time in epoch ms; defaults to the wall clock

    Returns:
        ScoreResult with the clamped 0-100 score and every check, in order
    """
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    metadata = metadata or CaptureMetadata()

    checks: List[TrustCheck] = [
        check_gps_present(metadata.gps),
        check_gps_accuracy(metadata.gps),
        check_freshness(metadata.captured_at_unix, now_ms),
        check_no_editing(metadata.exif),
        check_location_match(metadata.gps, reported_lat, reported_lng),
    ]
    total = sum(c.points for c in checks)
    return ScoreResult(score=min(100, max(0, total)), checks=checks)

