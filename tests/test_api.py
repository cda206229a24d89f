"""Tests for FastAPI API routes."""

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from tracedebug.config import TracedebugConfig
from tracedebug.server.app import create_app

AUTH = {"Authorization": "Bearer tok"}


def api_client(backend, config=None) -> AsyncClient:
    app = create_app(config=config, transport=backend.transport)
    return AsyncClient(transport=ASGITransport(app=app), base_url="http://test")


@pytest_asyncio.fixture
async def client(backend):
    """Create a test client backed by the mocked Epsagon API."""
    async with api_client(backend) as ac:
        yield ac


@pytest.mark.asyncio
async def test_trace_detail(client: AsyncClient, backend):
    """Test retrieving the ordered spans of a request."""
    resp = await client.get("/api/traces/req-1", headers=AUTH)
    assert resp.status_code == 200
    data = resp.json()
    assert data["request_id"] == "req-1"
    assert data["step"] == 2
    assert data["orphan_count"] == 0
    assert [s["span_id"] for s in data["spans"]] == ["s1", "s2", "s3", "s4"]
    assert [s["level"] for s in data["spans"]] == [0, 1, 2, 2]
    assert data["spans"][1]["activation_id"] == "act-3"

    assert backend.requests[0].headers["Authorization"] == "Bearer tok"


@pytest.mark.asyncio
async def test_span_tree(client: AsyncClient):
    """Test the nested tree endpoint."""
    resp = await client.get("/api/traces/req-1/tree", headers=AUTH)
    assert resp.status_code == 200
    tree = resp.json()
    assert len(tree) == 1
    assert tree[0]["span_id"] == "s1"
    assert [c["span_id"] for c in tree[0]["children"][0]["children"]] == ["s3", "s4"]


@pytest.mark.asyncio
async def test_trace_not_found(make_backend):
    async with api_client(make_backend(search=[])) as ac:
        resp = await ac.get("/api/traces/req-1", headers=AUTH)
    assert resp.status_code == 200
    assert resp.json()["step"] == 0
    assert resp.json()["spans"] == []


@pytest.mark.asyncio
async def test_backend_failure(make_backend):
    async with api_client(make_backend(search_status=503)) as ac:
        resp = await ac.get("/api/traces/req-1", headers=AUTH)
    assert resp.status_code == 502
    assert resp.json()["detail"] == {
        "endpoint": "https://api.epsagon.com/search/query_events",
        "status_code": 503,
    }


@pytest.mark.asyncio
async def test_missing_token(client: AsyncClient, backend):
    resp = await client.get("/api/traces/req-1")
    assert resp.status_code == 401
    assert backend.requests == []


@pytest.mark.asyncio
async def test_configured_token(backend):
    async with api_client(backend, TracedebugConfig(api_token="cfg")) as ac:
        resp = await ac.get("/api/traces/req-1")
    assert resp.status_code == 200
    assert backend.requests[0].headers["Authorization"] == "Bearer cfg"


@pytest.mark.asyncio
async def test_orphan_policy_query(make_backend, graph):
    graph["data"][1]["spans"][1]["references"] = [{"spanID": "unknown"}]
    async with api_client(make_backend(graph=graph)) as ac:
        dropped = await ac.get("/api/traces/req-1?orphans=drop", headers=AUTH)
        appended = await ac.get("/api/traces/req-1?orphans=append", headers=AUTH)
        invalid = await ac.get("/api/traces/req-1?orphans=keep", headers=AUTH)

    assert [s["span_id"] for s in dropped.json()["spans"]] == ["s1"]
    assert [s["span_id"] for s in appended.json()["spans"]] == ["s1", "s2", "s3", "s4"]
    assert appended.json()["orphan_count"] == 3
    assert invalid.status_code == 422
