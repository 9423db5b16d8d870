import base64

import pytest

from fillahole.config.mock_firestore import MockWriteBatch
from fillahole.models.metadata import CaptureMetadata
from fillahole.models.report import AdvisorVerdict, Decision, ReportSubmission
from fillahole.services import trust_scorer
from fillahole.services.admission import admit
from fillahole.services.issue_submission import (
    CHAT_WELCOME_TEXT,
    SubmissionValidationError,
    submit,
    validate_submission,
)
from fillahole.services.jobs import JobStatus
from fillahole.utils.geo import encode_geohash

NOW_MS = 1_700_000_000_000
CENTER = (16.5062, 80.6480)


def _payload(**overrides):
    body = {
        "title": "Broken streetlight",
        "description": "Light has been out for a week.",
        "category": "Safety",
        "tags": [],
        "media_urls": ["https://example.com/light.jpg"],
        "latitude": CENTER[0],
        "longitude": CENTER[1],
        "verification": {
            "gps_accuracy": 8.0,
            "metadata": {
                "gps": {"latitude": CENTER[0], "longitude": CENTER[1], "accuracy": 8.0},
                "captured_at_unix": NOW_MS - 60_000,
                "exif": {"Software": "Android 14"},
            },
        },
    }
    body.update(overrides)
    return ReportSubmission(**body)


def _count(db, collection):
    return len(list(db.collection(collection).stream()))


@pytest.mark.parametrize("overrides,field,prefix", [
    ({"title": "  "}, "title", "Invalid title"),
    ({"description": None}, "description", "Invalid description"),
    ({"category": ""}, "category", "Invalid category"),
    ({"media_urls": []}, "media_urls", "Invalid media"),
    ({"media_urls": None}, "media_urls", "Invalid media"),
    ({"verification": {}}, "verification.gps_accuracy", "Invalid verification data"),
    ({"verification": {"gps_accuracy": 100}}, "verification.gps_accuracy", "Poor GPS Lock"),
    ({"verification": {"gps_accuracy": -5}}, "verification.gps_accuracy", "Invalid verification data"),
    ({"latitude": None}, "location", "Invalid location"),
    ({"longitude": 200}, "location", "Invalid location"),
    ({"image_base64": "not base64!!"}, "image_base64", "Invalid media"),
])
def test_validation_rejects(overrides, field, prefix):
    with pytest.raises(SubmissionValidationError) as exc_info:
        validate_submission(_payload(**overrides))
    assert exc_info.value.field == field
    assert exc_info.value.message.startswith(prefix)


def test_validation_checks_rules_in_order():
    with pytest.raises(SubmissionValidationError) as exc_info:
        validate_submission(_payload(title="", media_urls=[]))
    assert exc_info.value.field == "title"


def test_gps_accuracy_of_exactly_50_is_accepted():
    validated = validate_submission(_payload(verification={"gps_accuracy": 50}))
    assert validated.gps_accuracy == 50
    assert validated.metadata is None


def test_poor_gps_message_matches_the_accepted_boundary():
    with pytest.raises(SubmissionValidationError) as exc_info:
        validate_submission(_payload(verification={"gps_accuracy": 50.1}))
    assert exc_info.value.message == "Poor GPS Lock: Accuracy must be at most 50 meters."


def test_validation_returns_typed_submission():
    validated = validate_submission(_payload(tags=["Urgent"], image_base64=base64.b64encode(b"img").decode()))
    assert validated.tags == ["Urgent"]
    assert validated.image_bytes == b"img"
    assert validated.metadata.gps.accuracy == 8.0


def test_submit_writes_report_chat_and_message(ctx, db):
    result = submit(ctx, validate_submission(_payload()), author_id="alice", now_ms=NOW_MS)

    report = db.collection("reports").document(result.id).get().to_dict()
    assert report["author_id"] == "alice"
    assert report["trust"]["score"] == 100
    assert report["trust"]["decision"] == "VERIFIED"
    assert report["trust_history"] == []
    assert report["status"] == "OPEN"
    assert report["location"]["geohash"] == encode_geohash(*CENTER)
    assert report["engagement"]["upvotes"] == 0
    assert report["chat_room_id"] == f"chat_{result.id}"

    chat = db.collection("chats").document(result.chat_room_id).get().to_dict()
    assert chat["report_id"] == result.id
    assert chat["participant_ids"] == ["alice"]
    assert chat["pinned_task"] == "Resolve: Broken streetlight"

    messages = list(db.collection("chats").document(result.chat_room_id).collection("messages").stream())
    assert len(messages) == 1
    assert messages[0].to_dict()["text"] == CHAT_WELCOME_TEXT
    assert messages[0].to_dict()["sender_id"] == "SYSTEM"

    assert result.trust.decision == Decision.VERIFIED


def test_submit_fires_notification_job(ctx):
    result = submit(ctx, validate_submission(_payload()), author_id="alice", now_ms=NOW_MS)

    assert len(result.job_ids) == 1
    job = ctx.jobs.wait(result.job_ids[0], timeout=5)
    assert job.status == JobStatus.SUCCEEDED
    assert job.name == f"notify_nearby_users:{result.id}"


def test_advisor_deduction_lowers_decision(ctx, vision):
    vision.verdict = AdvisorVerdict(is_authentic=False, reason="indoor scene", deduction=30, provider="fake")
    image = base64.b64encode(b"\xff\xd8\xffphoto").decode()

    result = submit(ctx, validate_submission(_payload(image_base64=image)), author_id="alice", now_ms=NOW_MS)

    assert result.trust.score == 70
    assert result.trust.decision == Decision.PENDING
    assert vision.calls[0]["image_bytes"] == b"\xff\xd8\xffphoto"


def test_stale_edited_capture_is_flagged(ctx, db):
    payload = _payload(verification={
        "gps_accuracy": 45,
        "metadata": {
            "gps": {"latitude": CENTER[0], "longitude": CENTER[1], "accuracy": 45},
            "captured_at_unix": NOW_MS - 3_600_000,
            "exif": {"Software": "Adobe Photoshop 25.0"},
        },
    })
    result = submit(ctx, validate_submission(payload), author_id="alice", now_ms=NOW_MS)

    assert result.trust.score == 40
    assert result.trust.decision == Decision.FLAGGED
    assert db.collection("reports").document(result.id).get().to_dict()["trust"]["decision"] == "FLAGGED"


def test_failed_commit_writes_nothing_and_fires_nothing(ctx, db, monkeypatch):
    def failing_commit(self):
        raise RuntimeError("Firestore unavailable")

    monkeypatch.setattr(MockWriteBatch, "commit", failing_commit)

    with pytest.raises(RuntimeError):
        submit(ctx, validate_submission(_payload()), author_id="alice", now_ms=NOW_MS)

    assert _count(db, "reports") == 0
    assert _count(db, "chats") == 0
    assert ctx.jobs.list() == []


def test_submit_requires_author(ctx, db):
    with pytest.raises(SubmissionValidationError):
        submit(ctx, validate_submission(_payload()), author_id="", now_ms=NOW_MS)
    assert _count(db, "reports") == 0


def test_hook_failure_does_not_fail_submission(ctx, db, monkeypatch):
    def broken_fire(report):
        raise RuntimeError("executor shut down")

    monkeypatch.setattr(ctx.hooks, "fire", broken_fire)
    result = submit(ctx, validate_submission(_payload()), author_id="alice", now_ms=NOW_MS)

    assert result.job_ids == []
    assert db.collection("reports").document(result.id).get().exists


def _rescore(trust):
    metadata = CaptureMetadata.model_validate(trust["metadata"]) if trust["metadata"] else None
    scorer_result = trust_scorer.score(
        metadata, trust["reported_lat"], trust["reported_lng"], now_ms=trust["evaluated_at_ms"]
    )
    return admit(scorer_result, AdvisorVerdict(**trust["advisor"]))


def test_stored_trust_can_be_recomputed(ctx, db, vision):
    vision.verdict = AdvisorVerdict(is_authentic=False, reason="screen photo", deduction=20, provider="fake")
    image = base64.b64encode(b"photo").decode()

    # wall-clock evaluation time, so the stored value is the only record of it
    result = submit(ctx, validate_submission(_payload(image_base64=image)), author_id="alice")
    trust = db.collection("reports").document(result.id).get().to_dict()["trust"]

    assert trust["evaluated_at_ms"] is not None
    assert trust["reported_lat"] == CENTER[0]
    recomputed = _rescore(trust)
    assert recomputed.final_score == trust["score"]
    assert recomputed.decision.value == trust["decision"]


def test_stored_trust_without_metadata_can_be_recomputed(ctx, db):
    result = submit(ctx, validate_submission(_payload(verification={"gps_accuracy": 10})), author_id="alice")
    trust = db.collection("reports").document(result.id).get().to_dict()["trust"]

    assert trust["metadata"] is None
    assert _rescore(trust).final_score == trust["score"] == 15
