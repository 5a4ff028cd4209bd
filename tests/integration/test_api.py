import pytest
from fastapi.testclient import TestClient

import api.main as api_main
from api.main import app


@pytest.fixture()
def client(monkeypatch):
    monkeypatch.delenv("AUTORADIO_CONFIG_PATH", raising=False)
    monkeypatch.setattr(api_main, "config", None)
    monkeypatch.setattr(api_main, "engine_config", None)
    with TestClient(app) as test_client:
        yield test_client


def _payload(current_track, trap_pool, **extra):
    payload = {
        "current_track": current_track,
        "queue": [trap_pool[0]],
        "history": [{"track": trap_pool[5], "listen_ratio": 0.9}],
        "sources": [trap_pool, []],
        "session_seed": "api-session",
        "limit": 5,
    }
    payload.update(extra)
    return payload


def test_health(client):
    resp = client.get("/api/health")
    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "ok"
    assert data["config_path"] is None
    assert data["engine"]["rerank"]["mmr_lambda"] == 0.7


def test_autoplay_next(client, current_track, trap_pool):
    resp = client.post("/api/autoplay/next", json=_payload(current_track, trap_pool))
    assert resp.status_code == 200
    data = resp.json()
    assert len(data["track_ids"]) == 5
    assert 100 not in data["track_ids"]
    assert [t["id"] for t in data["tracks"]] == data["track_ids"]
    assert data["stats"]["rerank"]["seeded"] is True
    assert "timings_ms" in data["stats"]


def test_autoplay_next_is_deterministic(client, current_track, trap_pool):
    payload = _payload(current_track, trap_pool)
    first = client.post("/api/autoplay/next", json=payload).json()
    second = client.post("/api/autoplay/next", json=payload).json()
    assert first["track_ids"] == second["track_ids"]


def test_autoplay_next_empty_request(client):
    resp = client.post("/api/autoplay/next", json={})
    assert resp.status_code == 200
    assert resp.json()["track_ids"] == []


def test_autoplay_next_non_positive_limit_returns_empty(client, current_track, trap_pool):
    for limit in (0, -1):
        resp = client.post("/api/autoplay/next", json=_payload(current_track, trap_pool, limit=limit))
        assert resp.status_code == 200
        assert resp.json()["track_ids"] == []


def test_autoplay_next_null_sources_and_items_contribute_nothing(client, current_track, trap_pool):
    payload = _payload(current_track, trap_pool, sources=[None, [None, trap_pool[3]], trap_pool[4:6]])
    payload["queue"] = [None]
    payload["history"] = [None]
    resp = client.post("/api/autoplay/next", json=payload)
    assert resp.status_code == 200
    assert sorted(resp.json()["track_ids"]) == [103, 104, 105]


def test_autoplay_next_validation(client, current_track, trap_pool):
    resp = client.post("/api/autoplay/next", json=_payload(current_track, trap_pool, limit=201))
    assert resp.status_code == 422
    resp = client.post("/api/autoplay/next", json=_payload(current_track, trap_pool, mmr_lambda=2))
    assert resp.status_code == 422


def test_config_path_from_env(tmp_path, monkeypatch, current_track, trap_pool):
    path = tmp_path / "config.yaml"
    path.write_text("autoplay:\n  default_limit: 2\nengine:\n  rerank:\n    mmr_lambda: 0.4\n", encoding="utf-8")
    monkeypatch.setenv("AUTORADIO_CONFIG_PATH", str(path))
    monkeypatch.setattr(api_main, "config", None)
    monkeypatch.setattr(api_main, "engine_config", None)
    with TestClient(app) as client:
        health = client.get("/api/health").json()
        assert health["engine"]["rerank"]["mmr_lambda"] == 0.4
        payload = _payload(current_track, trap_pool)
        del payload["limit"]
        data = client.post("/api/autoplay/next", json=payload).json()
    assert len(data["track_ids"]) == 2
    assert data["stats"]["rerank"]["lambda"] == 0.4
