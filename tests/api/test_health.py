from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from app.store.backend import document_store
from app.store.document_store import StoreError


@pytest.fixture
def failing_ping(monkeypatch: pytest.MonkeyPatch) -> None:
    async def _ping() -> None:
        raise StoreError("database unreachable")

    monkeypatch.setattr(document_store, "ping", _ping)


def test_health_reports_checks(client: TestClient) -> None:
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {
        "status": "ok",
        "checks": {"store": "ok", "redis": "not_configured"},
    }


def test_ready_when_store_reachable(client: TestClient) -> None:
    assert client.get("/ready").status_code == 200


@pytest.mark.usefixtures("failing_ping")
def test_health_degraded_when_store_down(client: TestClient) -> None:
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "degraded"
    assert resp.json()["checks"]["store"] == "degraded"


@pytest.mark.usefixtures("failing_ping")
def test_not_ready_when_store_down(client: TestClient) -> None:
    assert client.get("/ready").status_code == 503


def test_health_needs_no_token(client: TestClient) -> None:
    assert client.get("/health", headers={"Authorization": "Bearer junk"}).status_code == 200
