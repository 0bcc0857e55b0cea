import pytest
from fastapi.testclient import TestClient

from api.main import app, get_jobs


@pytest.fixture
def client(jobs):
    app.dependency_overrides[get_jobs] = lambda: jobs
    yield TestClient(app)
    app.dependency_overrides.clear()


def song_payload(genius_id, lyrics=None, views=1000):
    return {
        "genre": "rock",
        "artist": "Band",
        "title": f"Track {genius_id}",
        "year": 1999,
        "lyrics": lyrics or " ".join(f"w{genius_id}x{i}" for i in range(20)),
        "features": "",
        "geniusViews": views,
        "geniusId": genius_id,
    }


def test_root(client):
    assert client.get("/").json()["message"] == "Lyricsearch API is running"


def test_add_batch_skips_existing(client, storage):
    response = client.post("/api/songs/batch", json={"batch": [song_payload(1), song_payload(2)]})
    assert response.json() == {"received": 2, "inserted": 2}

    response = client.post("/api/songs/batch", json={"batch": [song_payload(2), song_payload(3)]})
    assert response.json() == {"received": 2, "inserted": 1}
    assert storage.count_songs() == 3


def test_add_batch_validates_payload(client):
    bad = song_payload(1)
    del bad["geniusId"]
    assert client.post("/api/songs/batch", json={"batch": [bad]}).status_code == 422


def test_process_schedules_chain(client, scheduler):
    client.post("/api/songs/batch", json={"batch": [song_payload(i) for i in range(1, 4)]})

    response = client.post("/api/songs/process", json={"limit": 2, "minViews": 0})
    assert response.json() == {
        "job": "process_song_batch",
        "status": "scheduled",
        "message": "process_song_batch scheduled",
    }

    assert scheduler.run_until_empty() == 3
    stats = client.get("/api/stats").json()
    assert stats == {"songs": 3, "processed": 3, "unprocessed": 0, "verses": 3}


def test_process_rejects_zero_limit(client):
    assert client.post("/api/songs/process", json={"limit": 0}).status_code == 422


def test_unprocess_and_clear(client, scheduler):
    client.post("/api/songs/batch", json={"batch": [song_payload(1), song_payload(2)]})
    client.post("/api/songs/process", json={"limit": 10, "minViews": 0})
    scheduler.run_until_empty()

    assert client.post("/api/songs/unprocess", json={"limit": 10}).json()["job"] == "unprocess_song_batch"
    scheduler.run_until_empty()
    assert client.get("/api/stats").json()["verses"] == 0

    assert client.post("/api/songs/clear").json()["job"] == "clear_all"
    scheduler.run_until_empty()
    assert client.get("/api/stats").json()["songs"] == 0


def test_search_returns_ranked_verses(client, scheduler):
    long_song = " ".join(f"long{i}" for i in range(30))
    client.post(
        "/api/songs/batch",
        json={"batch": [song_payload(1), song_payload(2, lyrics=long_song)]},
    )
    client.post("/api/songs/process", json={"limit": 10, "minViews": 0})
    scheduler.run_until_empty()

    # FakeEncoder's first component is the token count, so longer verses score higher
    response = client.post("/api/search", json={"query": "anything at all", "limit": 1})
    body = response.json()
    assert body["total"] == 1
    assert body["results"][0]["title"] == "Track 2"
    assert body["results"][0]["verse"] == long_song
