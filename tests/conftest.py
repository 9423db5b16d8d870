import time
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from fillahole.config.mock_firestore import MockFirestore
from fillahole.core.context import build_context
from fillahole.core.settings import Settings
from fillahole.main import create_app
from fillahole.models.report import AdvisorVerdict
from fillahole.services.ai_advisor import AIAuthenticityAdvisor, AuthenticityProvider
from fillahole.services.jobs import JobRunner
from fillahole.services.push_provider import PushProvider, PushResult
from fillahole.utils.geo import encode_geohash

CENTER = (16.5062, 80.6480)


class FakePushProvider(PushProvider):
    """Records every multicast call; fails the calls listed in fail_on_calls (1-based)."""

    def __init__(self, fail_on_calls=()):
        self.calls = []
        self.fail_on_calls = set(fail_on_calls)

    def send_multicast(self, tokens, title, body, data=None):
        self.calls.append({"tokens": list(tokens), "title": title, "body": body, "data": dict(data or {})})
        if len(self.calls) in self.fail_on_calls:
            raise RuntimeError("FCM unavailable")
        return PushResult(success_count=len(tokens), failure_count=0)


class FakeAuthenticityProvider(AuthenticityProvider):
    def __init__(self, verdict=None, exc=None):
        self.verdict = verdict or AdvisorVerdict(is_authentic=True, reason="looks real", deduction=0, provider="fake")
        self.exc = exc
        self.calls = []

    def is_enabled(self):
        return True

    def get_model_info(self):
        return {"name": "fake-vision", "version": "test"}

    def get_timeout_seconds(self):
        return 1.0

    def assess(self, image_bytes, title, category, description):
        self.calls.append({"image_bytes": image_bytes, "title": title, "category": category})
        if self.exc:
            raise self.exc
        return self.verdict


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        USE_MOCK_DB=True,
        AI_ENABLED=False,
        GEMINI_API_KEY=None,
        OPENAI_API_KEY=None,
        JOB_WORKERS=2,
    )


@pytest.fixture
def db():
    return MockFirestore()


@pytest.fixture
def push():
    return FakePushProvider()


@pytest.fixture
def vision():
    return FakeAuthenticityProvider()


@pytest.fixture
def make_vision():
    return FakeAuthenticityProvider


@pytest.fixture
def make_push():
    return FakePushProvider


@pytest.fixture
def ctx(settings, db, push, vision):
    context = build_context(
        settings,
        db=db,
        advisor=AIAuthenticityAdvisor(settings, providers=[vision]),
        push_provider=push,
        jobs=JobRunner(max_workers=2),
    )
    yield context
    context.close()


@pytest.fixture
def client(settings, ctx):
    return TestClient(create_app(settings, context=ctx))


@pytest.fixture
def add_user(db):
    def _add(user_id, lat=None, lng=None, token="default", role="citizen", geohash=None):
        location = {}
        if lat is not None and lng is not None:
            location = {"latitude": lat, "longitude": lng, "geohash": encode_geohash(lat, lng)}
        if geohash is not None:
            location["geohash"] = geohash
        data = {"role": role, "location": location}
        if token == "default":
            token = f"token-{user_id}"
        if token:
            data["push_token"] = token
        db.collection("users").document(user_id).set(data)
        return user_id
    return _add


@pytest.fixture
def put_report(db):
    """Insert a report document directly, bypassing submission."""
    counter = {"n": 0}

    def _put(report_id, author_id="author-1", decision="VERIFIED", lat=CENTER[0], lng=CENTER[1],
             category="Infrastructure", score=None, tags=None, status="OPEN"):
        counter["n"] += 1
        if score is None:
            score = {"VERIFIED": 100, "PENDING": 70, "FLAGGED": 20}[decision]
        db.collection("reports").document(report_id).set({
            "id": report_id,
            "author_id": author_id,
            "title": f"Report {report_id}",
            "description": "Something is broken here",
            "category": category,
            "tags": tags or [],
            "media_urls": ["https://example.com/p.jpg"],
            "location": {
                "latitude": lat,
                "longitude": lng,
                "geohash": encode_geohash(lat, lng),
                "gps_accuracy_meters": 8.0,
            },
            "trust": {"score": score, "decision": decision, "checks_passed": [], "checks": []},
            "trust_history": [],
            "status": status,
            "engagement": {"upvotes": 0, "upvoters": [], "downvoters": [], "volunteers_joined": 0},
            "volunteer_ids": [],
            "created_at": datetime(2025, 1, 1, tzinfo=timezone.utc) + timedelta(minutes=counter["n"]),
        })
        return report_id
    return _put


@pytest.fixture
def fresh_payload():
    """A valid POST /reports body captured one minute ago at CENTER."""
    def _payload(**overrides):
        now_ms = int(time.time() * 1000)
        body = {
            "title": "Deep pothole near bus stop",
            "description": "Two-foot wide pothole filling with water.",
            "category": "Infrastructure",
            "tags": [],
            "media_urls": ["https://example.com/pothole.jpg"],
            "latitude": CENTER[0],
            "longitude": CENTER[1],
            "verification": {
                "gps_accuracy": 8.5,
                "metadata": {
                    "gps": {"latitude": CENTER[0], "longitude": CENTER[1], "accuracy": 8.5},
                    "captured_at_unix": now_ms - 60000,
                    "exif": {},
                },
            },
        }
        body.update(overrides)
        return body
    return _payload
