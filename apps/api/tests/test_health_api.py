from __future__ import annotations

from fastapi.testclient import TestClient


def test_translation_health_is_unknown_before_any_call(client: TestClient) -> None:
    res = client.get("/health/translation")
    assert res.status_code == 200
    body = res.json()
    assert body["status"] == "unknown"
    assert body["provider"] == "fake"
    assert body["model"] == "fake-model"


def test_translation_health_probe(client: TestClient, provider) -> None:
    res = client.post("/health/translation")
    assert res.status_code == 200
    body = res.json()
    assert body["status"] == "ok"
    assert body["last_probe_ok"] is True

    provider.reachable = False
    body = client.post("/health/translation").json()
    assert body["status"] == "error"
    assert body["last_probe_ok"] is False
    assert body["error_count_1h"] == 1
