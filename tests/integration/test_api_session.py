import pytest
from httpx import ASGITransport, AsyncClient


@pytest.mark.asyncio
async def test_health(client):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}


@pytest.mark.asyncio
async def test_session_snapshot_when_idle(client):
    response = await client.get("/api/session")
    assert response.status_code == 200
    data = response.json()
    assert data["phase"] == "Lobby"
    assert data["current_question"] == 0
    assert data["total_questions"] == 1
    assert data["max_players"] == 2
    assert data["players"] == []
    assert data["connections"] == 0


@pytest.mark.asyncio
async def test_root_without_client_build(client):
    response = await client.get("/")
    assert response.status_code == 200
    assert response.json()["name"] == "Code Royale"


@pytest.mark.asyncio
async def test_root_serves_client_build(make_app, tmp_path):
    static_dir = tmp_path / "site"
    static_dir.mkdir()
    (static_dir / "index.html").write_text("<html>royale</html>")
    (static_dir / "app.js").write_text("console.log('hi')")

    transport = ASGITransport(app=make_app(static_dir=static_dir))
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        index = await ac.get("/")
        script = await ac.get("/app.js")

    assert "royale" in index.text
    assert script.status_code == 200


@pytest.mark.asyncio
async def test_metrics(client):
    response = await client.get("/metrics")
    assert response.status_code == 200
    assert "websocket_connections_active" in response.text


@pytest.mark.asyncio
async def test_metrics_can_be_disabled(make_app):
    transport = ASGITransport(app=make_app(metrics_enabled=False))
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        response = await ac.get("/metrics")

    assert response.status_code == 404
