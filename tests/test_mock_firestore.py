from datetime import datetime

from firebase_admin import firestore

from fillahole.config.mock_firestore import MockFirestore
from fillahole.core.context import build_context
from fillahole.services import report_service
from fillahole.services.jobs import JobRunner


def _report(report_id):
    return {
        "id": report_id,
        "author_id": "alice",
        "title": f"Report {report_id}",
        "category": "Water",
        "trust": {"score": 100, "decision": "VERIFIED"},
        "created_at": firestore.SERVER_TIMESTAMP,
    }


def test_timestamps_survive_reload(tmp_path):
    path = str(tmp_path / "mock_db.json")
    MockFirestore(path).collection("reports").document("old").set(_report("old"))

    reloaded = MockFirestore(path)
    created_at = reloaded.collection("reports").document("old").get().to_dict()["created_at"]

    assert isinstance(created_at, datetime)
    assert created_at.tzinfo is not None


def test_feed_mixes_reloaded_and_new_reports(tmp_path, settings, push):
    path = str(tmp_path / "mock_db.json")
    MockFirestore(path).collection("reports").document("old").set(_report("old"))

    db = MockFirestore(path)
    db.collection("reports").document("new").set(_report("new"))
    ctx = build_context(settings, db=db, push_provider=push, jobs=JobRunner(max_workers=1))
    try:
        feed = report_service.list_reports(ctx, viewer_id=None)
    finally:
        ctx.close()

    assert [r.id for r in feed] == ["new", "old"]
    assert all(r.created_at is not None for r in feed)


def test_plain_values_are_untouched_by_reload(tmp_path):
    path = str(tmp_path / "mock_db.json")
    MockFirestore(path).collection("users").document("u1").set({"role": "citizen", "location": {"latitude": 1.5}})

    data = MockFirestore(path).collection("users").document("u1").get().to_dict()
    assert data == {"role": "citizen", "location": {"latitude": 1.5}}
