import time

import pytest

CENTER = (16.5062, 80.6480)
BOUNDS = "16.52,80.66,16.49,80.63"


def _ids(response):
    return [r["id"] for r in response.json()]


@pytest.fixture
def seeded(put_report):
    put_report("public", author_id="alice", decision="VERIFIED")
    put_report("pending", author_id="bob", decision="PENDING", tags=["Urgent"], category="Water")
    put_report("flagged", author_id="alice", decision="FLAGGED")
    put_report("far", author_id="bob", decision="VERIFIED", lat=17.0, lng=81.0)


# --- health ---

def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
    assert response.json()["backend_ready"] is True


def test_health_db(client):
    response = client.get("/health/db")
    assert response.status_code == 200
    assert response.json()["database"] == "firestore-mock"


# --- submission ---

def test_submit_report(client, ctx, db, fresh_payload):
    response = client.post("/reports", json=fresh_payload(), headers={"X-User-ID": "alice"})

    assert response.status_code == 201
    body = response.json()
    assert body["trust"]["score"] == 100
    assert body["trust"]["decision"] == "VERIFIED"
    assert body["chat_room_id"] == f"chat_{body['id']}"
    assert db.collection("reports").document(body["id"]).get().exists

    job = ctx.jobs.wait(body["job_ids"][0], timeout=5)
    assert client.get(f"/jobs/{job.id}").json()["status"] == "succeeded"


def test_submit_without_media_is_rejected(client, db, fresh_payload):
    response = client.post("/reports", json=fresh_payload(media_urls=[]), headers={"X-User-ID": "alice"})

    assert response.status_code == 400
    assert response.json()["detail"].startswith("Invalid media")
    assert response.json()["field"] == "media_urls"
    assert list(db.collection("reports").stream()) == []


def test_submit_with_poor_gps_is_rejected(client, fresh_payload):
    payload = fresh_payload(verification={"gps_accuracy": 100})
    response = client.post("/reports", json=payload, headers={"X-User-ID": "alice"})

    assert response.status_code == 400
    assert response.json()["detail"].startswith("Poor GPS Lock")


def test_submit_with_negative_gps_accuracy_is_a_field_error(client, db, fresh_payload):
    payload = fresh_payload(verification={"gps_accuracy": -5})
    response = client.post("/reports", json=payload, headers={"X-User-ID": "alice"})

    assert response.status_code == 400
    assert response.json()["field"] == "verification.gps_accuracy"
    assert list(db.collection("reports").stream()) == []


def test_submit_requires_user_header(client, fresh_payload):
    assert client.post("/reports", json=fresh_payload()).status_code == 422


def test_urgent_submission_notifies_neighbours(client, ctx, push, add_user, fresh_payload):
    add_user("neighbour", 16.5100, 80.6480)
    add_user("alice", *CENTER)
    payload = fresh_payload(tags=["Urgent"])
    payload["verification"]["metadata"]["exif"] = {"Software": "Snapseed"}

    response = client.post("/reports", json=payload, headers={"X-User-ID": "alice"})
    body = response.json()
    assert body["trust"]["decision"] == "PENDING"

    job = ctx.jobs.wait(body["job_ids"][0], timeout=5)
    assert job.result["recipients"] == 1
    assert push.calls[0]["tokens"] == ["token-neighbour"]

    inbox = client.get("/notifications", headers={"X-User-ID": "neighbour"}).json()
    assert len(inbox) == 1
    assert inbox[0]["report_id"] == body["id"]
    assert inbox[0]["is_read"] is False


# --- reads and visibility ---

def test_feed_hides_flagged_reports_from_others(client, seeded):
    anonymous = _ids(client.get("/reports"))
    bob = _ids(client.get("/reports", headers={"X-User-ID": "bob"}))
    alice = _ids(client.get("/reports", headers={"X-User-ID": "alice"}))

    assert "flagged" not in anonymous
    assert "flagged" not in bob
    assert "flagged" in alice
    # newest first
    assert alice == ["far", "flagged", "pending", "public"]


def test_feed_cards_carry_badge_and_subtitle(client, seeded):
    cards = {r["id"]: r for r in client.get("/reports", headers={"X-User-ID": "alice"}).json()}

    assert cards["public"]["badge"] == {"label": "Verified", "color": "#4CAF50", "decision": "VERIFIED"}
    assert cards["pending"]["badge"]["decision"] == "PENDING"
    assert cards["flagged"]["status_description"] == "Under review, visible only to you"


def test_feed_category_filter(client, seeded):
    assert _ids(client.get("/reports", params={"category": "Water"})) == ["pending"]


def test_get_flagged_report_by_id(client, seeded):
    assert client.get("/reports/flagged").status_code == 404
    assert client.get("/reports/flagged", headers={"X-User-ID": "bob"}).status_code == 404

    response = client.get("/reports/flagged", headers={"X-User-ID": "alice"})
    assert response.status_code == 200
    assert response.json()["trust"]["decision"] == "FLAGGED"


def test_get_missing_report(client):
    assert client.get("/reports/nope").status_code == 404


# --- map ---

def test_map_pins_respect_viewport_and_visibility(client, seeded):
    anonymous = {p["id"]: p for p in client.get("/map/pins", params={"bounds": BOUNDS}).json()}
    alice = _ids(client.get("/map/pins", params={"bounds": BOUNDS}, headers={"X-User-ID": "alice"}))

    assert set(anonymous) == {"public", "pending"}
    assert set(alice) == {"public", "pending", "flagged"}
    assert anonymous["public"]["color"] == "#EF4444"
    assert anonymous["pending"]["color"] == "#8B5CF6"


def test_map_pins_category_filter(client, seeded):
    pins = client.get("/map/pins", params={"bounds": BOUNDS, "category": "water"}).json()
    assert [p["id"] for p in pins] == ["pending"]


@pytest.mark.parametrize("bounds", ["1,2,3", "a,b,c,d", "16.49,80.66,16.52,80.63", "95,80,16,80"])
def test_map_pins_bad_bounds(client, bounds):
    assert client.get("/map/pins", params={"bounds": bounds}).status_code == 400


# --- votes ---

def test_vote_endpoint(client, seeded):
    response = client.post("/reports/public/vote", json={"direction": "up"}, headers={"X-User-ID": "bob"})
    assert response.status_code == 200
    assert response.json() == {"report_id": "public", "upvotes": 1, "user_vote": "up"}

    response = client.post("/reports/public/vote", json={"direction": "down"}, headers={"X-User-ID": "bob"})
    assert response.json()["upvotes"] == -1


def test_vote_on_flagged_report_by_stranger(client, seeded):
    response = client.post("/reports/flagged/vote", json={"direction": "up"}, headers={"X-User-ID": "bob"})
    assert response.status_code == 404


def test_vote_rejects_unknown_direction(client, seeded):
    response = client.post("/reports/public/vote", json={"direction": "sideways"}, headers={"X-User-ID": "bob"})
    assert response.status_code == 422


# --- media verify ---

def test_verify_rewrites_trust_and_keeps_history(client, db, seeded):
    now_ms = int(time.time() * 1000)
    payload = {
        "report_id": "flagged",
        "reported_lat": CENTER[0],
        "reported_lng": CENTER[1],
        "metadata": {
            "gps": {"latitude": CENTER[0], "longitude": CENTER[1], "accuracy": 6},
            "captured_at_unix": now_ms - 30_000,
            "exif": {},
        },
    }
    response = client.post("/media/verify", json=payload)

    assert response.status_code == 200
    body = response.json()
    assert body["trust_score"] == 100
    assert body["is_verified"] is True
    assert body["decision"] == "VERIFIED"
    assert len(body["checks_passed"]) == 5

    stored = db.collection("reports").document("flagged").get().to_dict()
    assert stored["trust"]["decision"] == "VERIFIED"
    assert stored["trust_history"][0]["previous_decision"] == "FLAGGED"
    assert stored["trust_history"][0]["decision"] == "VERIFIED"


def test_verify_unknown_report(client):
    payload = {"report_id": "nope", "reported_lat": 1.0, "reported_lng": 2.0}
    assert client.post("/media/verify", json=payload).status_code == 404


# --- notifications and jobs ---

def test_mark_notification_read_is_owner_only(client, db):
    db.collection("notifications").document("r1_carol").set({
        "user_id": "carol",
        "report_id": "r1",
        "title": "New Civic Issue Nearby!",
        "body": "A new Water was reported within 3km of you.",
        "type": "nearby_issue_alert",
        "is_read": False,
    })

    assert client.post("/notifications/r1_carol/read", headers={"X-User-ID": "dave"}).status_code == 404

    response = client.post("/notifications/r1_carol/read", headers={"X-User-ID": "carol"})
    assert response.status_code == 200
    assert response.json()["is_read"] is True
    assert client.get("/notifications", headers={"X-User-ID": "dave"}).json() == []


def test_unknown_job(client):
    assert client.get("/jobs/missing").status_code == 404
