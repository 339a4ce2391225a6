"""Health endpoint."""


async def test_health_reports_space_count(client):
    resp = await client.get("/api/v1/health/")
    assert resp.status_code == 200
    body = resp.json()
    assert body["status"] == "healthy"
    assert body["service"] == "archlens-api"
    assert body["spaces"] == 1
