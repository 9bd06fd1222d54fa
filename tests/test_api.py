"""
Tests for the REST API
"""
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from regulation_search.api import app
from regulation_search.api.dependencies import get_session
from tests.stubs import FailingLLM, RecordingLLM


@pytest.fixture
def client_for():
    """TestClient bound to a given session"""
    def _make(session):
        app.dependency_overrides[get_session] = lambda: session
        return TestClient(app)
    yield _make
    app.dependency_overrides.clear()


def test_health(make_session, client_for):
    session = make_session(FailingLLM())
    session.load()

    response = client_for(session).get("/api/v1/health")

    assert response.status_code == 200
    assert response.json() == {
        "status": "healthy",
        "records_loaded": True,
        "record_count": 3,
        "error": None,
    }


def test_list_regulations(make_session, client_for):
    session = make_session(FailingLLM())
    session.load()

    response = client_for(session).get("/api/v1/regulations")

    body = response.json()
    assert response.status_code == 200
    assert body["count"] == 3
    assert body["regulations"][0]["title"] == "京都市道路条例"
    assert body["regulations"][0]["relevance"] is None


def test_search_scored(make_session, client_for):
    session = make_session(RecordingLLM('{"scores": [0.0, 0.0, 0.8]}'))
    session.load()

    response = client_for(session).post("/api/v1/search", json={"query": "大阪の景観"})

    body = response.json()
    assert response.status_code == 200
    assert body["count"] == 1
    assert body["results"][0]["id"] == 3
    assert body["results"][0]["relevance"] == 0.8
    assert body["message"] is None
    assert body["metrics"]["fallback_used"] is False


def test_search_falls_back_when_oracle_is_down(make_session, client_for):
    session = make_session(FailingLLM())
    session.load()

    response = client_for(session).post("/api/v1/search", json={"query": "京都の道路条例"})

    body = response.json()
    assert response.status_code == 200
    assert [r["id"] for r in body["results"]] == [1]
    assert body["results"][0]["relevance"] == 0.5
    assert body["metrics"]["fallback_stage"] == "region"


def test_search_blank_query_returns_all(make_session, client_for):
    session = make_session(FailingLLM())
    session.load()

    response = client_for(session).post("/api/v1/search", json={"query": " "})

    body = response.json()
    assert body["count"] == 3
    assert all(r["relevance"] is None for r in body["results"])


def test_search_no_results_message(make_session, client_for):
    session = make_session(FailingLLM())
    session.load()

    body = client_for(session).post("/api/v1/search", json={"query": "介護保険"}).json()

    assert body["count"] == 0
    assert body["message"] == "検索結果が見つかりませんでした。別の言葉で試してみてください。"


def test_search_busy_session_conflicts(make_session, client_for):
    session = make_session(FailingLLM())
    session.load()

    with session.search_lock:
        response = client_for(session).post("/api/v1/search", json={"query": "京都"})

    assert response.status_code == 409


def test_unloaded_session_is_unavailable(make_session, client_for):
    failing = MagicMock()
    failing.table.return_value.select.return_value.limit.return_value.execute.side_effect = ConnectionError("down")
    session = make_session(FailingLLM(), client=failing)
    with pytest.raises(Exception):
        session.load()
    client = client_for(session)

    assert client.get("/api/v1/regulations").status_code == 503
    assert client.post("/api/v1/search", json={"query": "京都"}).status_code == 503
    assert client.get("/api/v1/health").json()["status"] == "unhealthy"
    assert client.post("/api/v1/reload").status_code == 503


def test_reload_recovers(make_session, client_for, regulations):
    failing = MagicMock()
    execute = failing.table.return_value.select.return_value.limit.return_value.execute
    execute.side_effect = [ConnectionError("down"), MagicMock(data=[reg.to_dict() for reg in regulations])]
    session = make_session(FailingLLM(), client=failing)
    with pytest.raises(Exception):
        session.load()
    client = client_for(session)

    response = client.post("/api/v1/reload")

    assert response.status_code == 200
    assert response.json()["count"] == 3
    assert client.get("/api/v1/health").json()["status"] == "healthy"
