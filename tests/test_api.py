"""Tests for the HTTP service surface."""

from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from pydantic import ValidationError

from api.config import Settings
from api.main import create_app
from api.services import EventService
from conftest import guest_payload, provider_track

FEATURES_8A = {"tempo": 124, "energy": 0.8, "key": 9, "mode": 0}


@pytest.fixture
def client():
    settings = Settings(default_guest_count=25, log_level="WARNING")
    with TestClient(create_app(settings)) as client:
        yield client


@pytest.fixture
def event_id(client):
    response = client.post(
        "/api/events",
        json={
            "event_id": "party",
            "name": "Rooftop",
            "start_time": "2026-06-20T21:00:00Z",
            "expected_guest_count": 40,
        },
    )
    assert response.status_code == 201
    return response.json()["event_id"]


def submit(client, event_id, payload, **extra):
    return client.post(f"/api/events/{event_id}/contributions", json={"music_data": payload, **extra})


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


class TestEvents:
    def test_create_and_get(self, client, event_id):
        response = client.get(f"/api/events/{event_id}")
        assert response.status_code == 200
        data = response.json()
        assert data["name"] == "Rooftop"
        assert data["event_size"] == "large"
        assert data["expected_guest_count"] == 40
        assert data["contributor_count"] == 0

    def test_small_event(self, client):
        response = client.post("/api/events", json={"expected_guest_count": 8})
        assert response.json()["event_size"] == "small"
        assert response.json()["event_id"]

    def test_unknown_event(self, client):
        response = client.get("/api/events/nope")
        assert response.status_code == 404
        assert response.json()["detail"] == "Event not found: nope"

    def test_naive_start_time_rejected(self, client):
        response = client.post("/api/events", json={"start_time": "2026-06-20T21:00:00"})
        assert response.status_code == 422


class TestContributions:
    def test_submit_and_resubmit(self, client, event_id):
        payload = guest_payload("guest-1", short_term=["a", "b"], saved=["a"])
        first = submit(client, event_id, payload)
        assert first.status_code == 200
        data = first.json()
        assert data["outcome"] == "accepted"
        assert data["user_id"] == "guest-1"
        assert data["stats"]["vibe_gate_pass_rate"] == 100.0
        assert data["summary"]["track_count"] == 2

        again = submit(client, event_id, payload)
        assert again.json()["outcome"] == "unchanged"
        assert again.json()["fingerprint"] == data["fingerprint"]

        changed = submit(client, event_id, guest_payload("guest-1", short_term=["c"]))
        assert changed.json()["outcome"] == "replaced"

        pool = client.get(f"/api/events/{event_id}/pool").json()
        assert [t["track_id"] for t in pool] == ["c"]

    def test_resubmission_keeps_arrival_and_location(self, client):
        start = datetime.now(timezone.utc) - timedelta(hours=3)
        event_id = client.post(
            "/api/events", json={"start_time": start.isoformat(), "expected_guest_count": 40}
        ).json()["event_id"]
        first = submit(
            client,
            event_id,
            guest_payload("g1", short_term=["a"]),
            arrival_time=start.isoformat(),
            coordinates={"lat": 40.0, "lon": -74.0},
        )
        assert first.json()["outcome"] == "accepted"

        again = submit(client, event_id, guest_payload("g1", short_term=["a", "b"]))
        assert again.json()["outcome"] == "replaced"

        pool = client.get(f"/api/events/{event_id}/pool").json()
        contributor = next(t for t in pool if t["track_id"] == "a")["contributors"][0]
        assert contributor["cohort"] == 0
        assert contributor["weighted_pts"] < contributor["base_pts"] * 0.5

        runtime = client.app.state.events.get(event_id)
        stored = runtime.aggregation.registry.get("g1")
        assert stored.arrival_time == start
        assert stored.coordinates is not None

    def test_invalid_data(self, client, event_id):
        response = submit(client, event_id, guest_payload("guest-1"))
        assert response.status_code == 422
        assert any("No top tracks" in error for error in response.json()["detail"])

    def test_contribution_sized_by_expected_guests(self, client, event_id):
        payload = guest_payload("guest-1", short_term=[f"s{i}" for i in range(30)])
        response = submit(client, event_id, payload)
        # 40 expected guests -> 13 tracks each
        assert response.json()["stats"]["contribution_size"] == 13

    def test_unknown_event(self, client):
        response = submit(client, "nope", guest_payload(short_term=["a"]))
        assert response.status_code == 404


class TestPool:
    def test_ranked_pool(self, client, event_id):
        submit(client, event_id, guest_payload("g1", short_term=["shared", "solo"]))
        submit(client, event_id, guest_payload("g2", short_term=["shared"]))
        pool = client.get(f"/api/events/{event_id}/pool").json()
        assert pool[0]["track_id"] == "shared"
        assert pool[0]["contributor_count"] == 2
        assert {c["user_id"] for c in pool[0]["contributors"]} == {"g1", "g2"}
        assert 0 <= pool[0]["artwork_index"] < 5

        limited = client.get(f"/api/events/{event_id}/pool", params={"limit": 1}).json()
        assert len(limited) == 1

    def test_location_update(self, client, event_id):
        submit(client, event_id, guest_payload("g1", short_term=["a"]))
        ok = client.put(f"/api/events/{event_id}/guests/g1/location", json={"lat": 40.0, "lon": -74.0})
        assert ok.status_code == 204
        missing = client.put(f"/api/events/{event_id}/guests/ghost/location", json={"lat": 40.0, "lon": -74.0})
        assert missing.status_code == 404


class TestDJ:
    def test_queue_flow(self, client, event_id):
        base = f"/api/events/{event_id}/dj"
        for track_id in ("a", "b", "c"):
            response = client.post(
                f"{base}/queue", json={"track": {"track_id": track_id, "name": track_id, "artist": "X"}}
            )
            assert response.status_code == 200

        state = client.patch(f"{base}/queue/c", json={"position": 1}).json()
        assert [(q["track_id"], q["queue_position"]) for q in state["queue"]] == [("c", 1), ("a", 2), ("b", 3)]

        state = client.delete(f"{base}/queue/a").json()
        assert [q["track_id"] for q in state["queue"]] == ["c", "b"]

        state = client.delete(f"{base}/queue/missing").json()
        assert [q["track_id"] for q in state["queue"]] == ["c", "b"]

    def test_cue_and_history(self, client, event_id):
        base = f"/api/events/{event_id}/dj"
        client.post(f"{base}/cue", json={"track": {"track_id": "a", "name": "A", "artist": "X"}, "rank": 1})
        state = client.post(f"{base}/cue", json={"track": {"track_id": "b", "name": "B", "artist": "Y"}}).json()
        assert state["now_playing"]["track_id"] == "b"
        assert state["now_playing"]["source"] == "off-book"
        assert state["play_history"][0]["track_id"] == "a"
        assert state["history"][0]["source"] == "QRate"

        assert client.get(base).json()["now_playing"]["track_id"] == "b"

    def test_recommendations(self, client, event_id):
        tracks = [
            provider_track("match", audio_features=FEATURES_8A),
            provider_track("queued"),
            provider_track("playing", audio_features=FEATURES_8A),
            provider_track("clash", audio_features={"tempo": 170, "energy": 0.1, "key": 1, "mode": 1}),
        ]
        payload = guest_payload("g1")
        payload["top_tracks"]["short_term"] = tracks
        submit(client, event_id, payload)

        base = f"/api/events/{event_id}/dj"
        client.post(
            f"{base}/cue",
            json={
                "track": {"track_id": "playing", "name": "P", "artist": "X", "audio_features": FEATURES_8A},
                "rank": 3,
            },
        )
        client.post(f"{base}/queue", json={"track": {"track_id": "queued", "name": "Q", "artist": "X"}})

        response = client.get(f"{base}/recommendations", params={"mode": "mix-assist", "preset": "purist"})
        assert response.status_code == 200
        recommendations = response.json()
        assert [r["track_id"] for r in recommendations] == ["match", "clash"]
        assert recommendations[0]["flow_score"] == 100
        assert recommendations[0]["key_relation"] == "perfect"
        assert recommendations[1]["transition_quality"] == "challenging"

    def test_smart_filters(self, client, event_id):
        tracks = [
            provider_track("clean", audio_features={"energy": 0.9}),
            provider_track("explicit", explicit=True, audio_features={"energy": 0.9}),
            provider_track("mellow", audio_features={"energy": 0.2}),
        ]
        payload = guest_payload("g1")
        payload["top_tracks"]["short_term"] = tracks
        submit(client, event_id, payload)

        base = f"/api/events/{event_id}/dj/recommendations"
        unfiltered = client.get(base).json()
        assert {r["track_id"] for r in unfiltered} == {"clean", "explicit", "mellow"}
        assert next(r for r in unfiltered if r["track_id"] == "explicit")["explicit"]

        family = client.get(base, params={"filter_preset": "family-friendly"}).json()
        assert {r["track_id"] for r in family} == {"clean", "mellow"}

        peak = client.get(base, params={"no_explicit": True, "energy_min": 0.5}).json()
        assert [r["track_id"] for r in peak] == ["clean"]

    def test_invalid_smart_filters(self, client, event_id):
        base = f"/api/events/{event_id}/dj/recommendations"
        assert client.get(base, params={"filter_preset": "loud"}).status_code == 422
        assert client.get(base, params={"era_bias": "nineties"}).status_code == 422
        assert client.get(base, params={"energy_min": 2}).status_code == 422

    def test_unknown_preset(self, client, event_id):
        response = client.get(f"/api/events/{event_id}/dj/recommendations", params={"preset": "loud"})
        assert response.status_code == 422


def test_events_share_the_harmonic_cache():
    service = EventService(Settings(log_level="WARNING"))
    runtime = service.create_event(event_id="shared")
    matcher = runtime.dj.flow_engine.matcher
    assert matcher.cache is service.harmonic_cache
    matcher.relation("8A", "9A")
    assert len(service.harmonic_cache) == 1
    service.close()


@pytest.mark.parametrize("field", ["present_decay_rate", "absent_decay_rate"])
@pytest.mark.parametrize("value", [0, -0.5, 1.5])
def test_decay_rate_settings_bounded(field, value):
    with pytest.raises(ValidationError):
        Settings(**{field: value})


def test_decay_rate_from_environment(monkeypatch):
    monkeypatch.setenv("QRATE_ABSENT_DECAY_RATE", "2")
    with pytest.raises(ValidationError):
        Settings()
