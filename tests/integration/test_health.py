"""
Integration tests for health endpoints and error rendering.
"""

import pytest

pytestmark = pytest.mark.integration


class TestHealth:

    @pytest.mark.asyncio
    async def test_health(self, api_client):
        response = await api_client.get("/api/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["database"] == "healthy"
        assert data["version"] == "0.1.0"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("path,key", [("/api/health/ready", "ready"), ("/api/health/live", "alive")])
    async def test_readiness_and_liveness(self, api_client, path, key):
        response = await api_client.get(path)

        assert response.json() == {key: True}

    @pytest.mark.asyncio
    async def test_diagnostics_counts_projects(self, api_client, make_project):
        await make_project()

        response = await api_client.get("/api/health/diagnostics")

        data = response.json()
        assert data["projects_count"] == 1
        assert data["config"]["word_count_mode"] == "length"
        assert any(entry["path"] == "/api/projects" for entry in data["request_logs"])


class TestErrorResponses:

    @pytest.mark.asyncio
    async def test_request_id_header(self, api_client):
        response = await api_client.get("/api/projects/missing")

        assert response.headers["X-Request-ID"]
        assert response.json()["success"] is False

    @pytest.mark.asyncio
    async def test_unknown_route(self, api_client):
        response = await api_client.get("/api/nowhere")

        assert response.status_code == 404
        assert response.json()["code"] == "http_error"

    @pytest.mark.asyncio
    async def test_malformed_body(self, api_client):
        response = await api_client.post(
            "/api/plot-elements", content="not json", headers={"Content-Type": "application/json"}
        )

        assert response.status_code == 400
        assert response.json()["code"] == "validation_error"

    @pytest.mark.asyncio
    async def test_unexpected_error_hides_detail(self, app):
        import httpx

        async def explode():
            raise RuntimeError("disk path /var/lib/plotline.db unreadable")

        app.add_api_route("/api/explode", explode)
        transport = httpx.ASGITransport(app=app, raise_app_exceptions=False)
        async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
            response = await client.get("/api/explode")
            diagnostics = (await client.get("/api/health/diagnostics")).json()

        assert response.status_code == 500
        data = response.json()
        assert data["error"] == "Internal server error"
        assert data["code"] == "internal_error"
        assert data.get("detail") is None
        assert "plotline.db" not in response.text
        assert any("plotline.db" in entry["error"] for entry in diagnostics["recent_errors"])

    @pytest.mark.asyncio
    async def test_request_log_records_error_code(self, api_client):
        response = await api_client.get("/api/projects/missing")
        request_id = response.headers["X-Request-ID"]

        diagnostics = (await api_client.get("/api/health/diagnostics")).json()

        entry = next(e for e in diagnostics["request_logs"] if e["request_id"] == request_id)
        assert entry["status_code"] == 404
        assert entry["error_code"] == "not_found"
