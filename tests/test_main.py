"""FastAPI route tests covering the host-facing endpoints."""

import json

import pytest
import requests
from fastapi.testclient import TestClient

from tests.conftest import get_test_logger, trends_by_date
from tests.helpers import FakeHttpResponse, FakeSession, points_flat

logger = get_test_logger(__name__)
logger.info("Starting tests for HTTP routes")

PLUGIN_CONTEXT = {"datasourceUid": "abc", "decryptedSecureJsonData": {"apiKey": "ak_live"}}


@pytest.fixture
def upstream(monkeypatch: pytest.MonkeyPatch) -> FakeSession:
    session = FakeSession(
        {
            "ping": FakeHttpResponse({}),
            "points": FakeHttpResponse(points_flat()),
            "trends": trends_by_date,
        }
    )
    monkeypatch.setattr(requests, "Session", lambda: session)
    return session


@pytest.fixture
def api() -> TestClient:
    from novant_datasource import main

    return TestClient(main.app)


def test_liveness(api) -> None:
    resp = api.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}


def test_check_health_uses_instance_api_key(api, upstream) -> None:
    resp = api.post("/api/health", json={"pluginContext": PLUGIN_CONTEXT})
    assert resp.status_code == 200
    assert resp.json() == {"status": "OK", "message": "Data source is working"}
    assert upstream.calls[0]["auth"] == ("ak_live", "")
    assert upstream.closed


def test_check_health_without_api_key(api, upstream) -> None:
    resp = api.post("/api/health", json={})
    assert resp.json() == {"status": "ERROR", "message": "Missing apiKey value"}
    assert upstream.calls == []


def test_query_batch(api, upstream) -> None:
    body = {
        "pluginContext": PLUGIN_CONTEXT,
        "queries": [
            {
                "refId": "A",
                "timeRange": {"from": "2024-01-01T08:00:00Z", "to": "2024-01-01T08:00:00Z"},
                "sourceId": "s.1",
                "pointIds": "p1,p2",
            },
            {
                "refId": "B",
                "timeRange": {"from": "2024-01-01T08:00:00Z", "to": "2024-01-01T08:00:00Z"},
                "sourceId": "",
                "pointIds": "p1",
            },
        ],
    }
    resp = api.post("/api/query", json=body)
    assert resp.status_code == 200
    results = resp.json()["results"]

    assert results["B"]["errorType"] == "ValidationError"
    assert results["B"]["error"] == "Missing sourceId value"

    frame = results["A"]["frames"][0]
    assert [f["name"] for f in frame["fields"]] == ["time", "Temp", "Humidity"]
    humidity = frame["fields"][2]["values"]
    assert humidity[0] == 40.0
    assert humidity[1] is None


def test_query_requires_time_range(api, upstream) -> None:
    resp = api.post("/api/query", json={"queries": [{"refId": "A", "sourceId": "s.1"}]})
    assert resp.status_code == 422


def test_stream_routes(api) -> None:
    resp = api.post("/api/stream/subscribe", json={"path": "stream"})
    assert resp.json() == {"status": "OK"}
    resp = api.post("/api/stream/publish", json={"path": "stream"})
    assert resp.json() == {"status": "PERMISSION_DENIED"}

    resp = api.get("/api/stream/elsewhere")
    assert resp.status_code == 403

    resp = api.get("/api/stream/stream", params={"interval": 0, "limit": 2})
    assert resp.status_code == 200
    frames = [json.loads(line) for line in resp.text.splitlines() if line]
    assert [f["fields"][1]["values"][0] for f in frames] == [10, 20]


class _DisconnectedRequest:
    async def is_disconnected(self) -> bool:
        return True


def test_disconnect_cancels_token_and_closes_session() -> None:
    import asyncio

    from novant_datasource import main
    from novant_datasource.context import CancelToken

    session = FakeSession()
    token = CancelToken()
    token.on_cancel(session.close)

    asyncio.run(main._cancel_on_disconnect(_DisconnectedRequest(), token))

    assert token.cancelled
    assert session.closed
