from app.services import ai_service as ai_module


def test_health_reports_database_status(client):
    response = client.get("/api/health")
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "healthy"
    assert body["database"] == "healthy"
    assert body["environment"] == "testing"
    assert "informational purposes" in body["disclaimer"]


def test_api_info(client):
    body = client.get("/api").json()
    assert body["health"] == "/api/health"


def test_ai_health_ok(client, monkeypatch):
    async def ok():
        return {"status": "ok", "model": "gemini-test", "response": "Hello!"}

    monkeypatch.setattr(ai_module.ai_service, "test_connection", ok)
    response = client.get("/api/health/ai")
    assert response.status_code == 200
    assert response.json() == {
        "success": True, "status": "ok", "model": "gemini-test", "response": "Hello!",
    }


def test_ai_health_unavailable_is_503(client, monkeypatch):
    async def broken():
        return {"status": "error", "error": "GEMINI_API_KEY environment variable is not set."}

    monkeypatch.setattr(ai_module.ai_service, "test_connection", broken)
    response = client.get("/api/health/ai")
    assert response.status_code == 503
    body = response.json()
    assert body["success"] is False
    assert body["errors"][0]["field"] == "ai"


def test_request_id_is_echoed(client):
    response = client.get("/api/health", headers={"X-Request-ID": "abc123"})
    assert response.headers["X-Request-ID"] == "abc123"
    assert client.get("/api/health").headers["X-Request-ID"]
