import pytest

from fillahole.models.metadata import CaptureMetadata, GpsFix, gps_strength, normalize_device_metadata
from fillahole.services import trust_scorer

NOW_MS = 1_700_000_000_000


def _metadata(lat=10.0, lng=20.0, accuracy=15.0, age_ms=60_000, exif=None):
    return CaptureMetadata(
        gps=GpsFix(latitude=lat, longitude=lng, accuracy=accuracy),
        captured_at_unix=NOW_MS - age_ms,
        exif=exif or {},
    )


def _check(result, check_id):
    return next(c for c in result.checks if c.id == check_id)


def test_clean_capture_scores_100():
    result = trust_scorer.score(_metadata(), 10.0003, 20.0, now_ms=NOW_MS)

    assert result.score == 100
    assert result.checks_passed == [
        "GPS_PRESENT", "GPS_ACCURACY", "FRESHNESS", "NO_EDITING", "LOCATION_MATCH",
    ]
    assert "fresh" in _check(result, "FRESHNESS").detail
    assert "match" in _check(result, "LOCATION_MATCH").detail


def test_score_is_sum_of_passed_points():
    result = trust_scorer.score(_metadata(accuracy=35, exif={"Software": "Snapseed 2.0"}), 10.0, 20.0, now_ms=NOW_MS)

    assert result.score == sum(c.points for c in result.checks if c.passed)
    assert result.score == 30 + 20 + 10
    for check in result.checks:
        assert check.points == (check.max_points if check.passed else 0)


def test_missing_metadata_keeps_only_freshness_independent_checks():
    result = trust_scorer.score(None, 10.0, 20.0, now_ms=NOW_MS)

    assert result.score == 15
    assert result.checks_passed == ["NO_EDITING"]


def test_missing_gps_fails_gps_dependent_checks():
    metadata = CaptureMetadata(gps=None, captured_at_unix=NOW_MS - 1000)
    result = trust_scorer.score(metadata, 10.0, 20.0, now_ms=NOW_MS)

    assert result.score == 35
    assert not _check(result, "GPS_PRESENT").passed
    assert not _check(result, "GPS_ACCURACY").passed
    assert not _check(result, "LOCATION_MATCH").passed


def test_accuracy_must_be_strictly_below_20m():
    assert trust_scorer.check_gps_accuracy(GpsFix(latitude=1, longitude=1, accuracy=19.9)).passed
    assert not trust_scorer.check_gps_accuracy(GpsFix(latitude=1, longitude=1, accuracy=20)).passed
    assert not trust_scorer.check_gps_accuracy(GpsFix(latitude=1, longitude=1)).passed


@pytest.mark.parametrize("age_ms,passed", [
    (0, True),
    (5 * 60 * 1000, True),
    (5 * 60 * 1000 + 1, False),
    (-1, False),
    (-60_000, False),
])
def test_freshness_window(age_ms, passed):
    assert trust_scorer.check_freshness(NOW_MS - age_ms, NOW_MS).passed is passed


def test_future_capture_time_is_called_out():
    check = trust_scorer.check_freshness(NOW_MS + 10_000, NOW_MS)
    assert not check.passed
    assert check.detail == "Capture time is in the future"


def test_missing_capture_time_fails_freshness():
    assert not trust_scorer.check_freshness(None, NOW_MS).passed


@pytest.mark.parametrize("software,passed", [
    ("Adobe Photoshop Lightroom Classic 12.0", False),
    ("SNAPSEED", False),
    ("Facetune2", False),
    ("Android 14", True),
    ("", True),
])
def test_editing_software_detection(software, passed):
    exif = {"Software": software} if software else {}
    assert trust_scorer.check_no_editing(exif).passed is passed


def test_location_match_boundary():
    gps = GpsFix(latitude=10.0, longitude=20.0, accuracy=5)
    # ~33 m and ~67 m north
    assert trust_scorer.check_location_match(gps, 10.0003, 20.0).passed
    assert not trust_scorer.check_location_match(gps, 10.0006, 20.0).passed
    assert not trust_scorer.check_location_match(gps, None, 20.0).passed


def test_score_is_deterministic():
    metadata = _metadata(accuracy=25, age_ms=400_000)
    first = trust_scorer.score(metadata, 10.001, 20.0, now_ms=NOW_MS)
    second = trust_scorer.score(metadata, 10.001, 20.0, now_ms=NOW_MS)
    assert first == second


def test_normalize_device_metadata_drops_unusable_coordinates():
    metadata = normalize_device_metadata({"latitude": None, "longitude": 80.6}, NOW_MS, {"Make": "Pixel"})
    assert metadata.gps is None
    assert metadata.exif == {"Make": "Pixel"}

    metadata = normalize_device_metadata({"latitude": 16.5, "longitude": 80.6, "accuracy": 4.0}, NOW_MS)
    assert metadata.gps.accuracy == 4.0


def test_gps_strength_labels():
    assert gps_strength(5) == "strong"
    assert gps_strength(35) == "acceptable"
    assert gps_strength(80) == "weak"
    assert gps_strength(None) == "weak"
