"""Tests for the FastAPI service."""

from contextlib import asynccontextmanager

import pytest
from httpx import ASGITransport, AsyncClient

from cadence import main


@pytest.fixture
def service_env(monkeypatch):
    """Deterministic, single-threaded service configuration."""
    monkeypatch.setenv("CADENCE_HYPHENATION_BACKEND", "heuristic")
    monkeypatch.setenv("CADENCE_CHANNEL_KIND", "inline")
    monkeypatch.setenv("CADENCE_DEBOUNCE_SECONDS", "0")
    return monkeypatch


@asynccontextmanager
async def api_client():
    """Run the application lifespan around an in-process HTTP client."""
    main.get_settings.cache_clear()
    async with main.lifespan(main.app):
        async with AsyncClient(transport=ASGITransport(app=main.app), base_url="http://test") as client:
            yield client


class TestHealth:
    @pytest.mark.asyncio
    async def test_healthz(self, service_env):
        async with api_client() as client:
            response = await client.get("/healthz")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["service"] == "cadence"
        assert data["channel"] == "inline"
        assert data["using_fallback"] is False
        assert data["consecutive_failures"] == 0
        assert data["restarts"] == 0
        assert data["pending_requests"] == 0

    @pytest.mark.asyncio
    async def test_healthz_service_name_from_settings(self, service_env):
        service_env.setenv("CADENCE_SERVICE_NAME", "cadence-staging")
        async with api_client() as client:
            response = await client.get("/healthz")
        assert response.json()["service"] == "cadence-staging"

    @pytest.mark.asyncio
    async def test_not_ready_outside_lifespan(self):
        async with AsyncClient(transport=ASGITransport(app=main.app), base_url="http://test") as client:
            response = await client.get("/healthz")
        assert response.status_code == 503


class TestDocument:
    """Test document and line endpoints."""

    @pytest.mark.asyncio
    async def test_replace_document(self, service_env):
        async with api_client() as client:
            response = await client.put("/v1/document", json={"text": "beautiful day\n\n# comment"})
        assert response.status_code == 200
        data = response.json()
        assert data["line_count"] == 3
        assert data["statistics"] == {
            "lines_with_data": 2,
            "total_words": 3,
            "total_syllables": 6,
            "average_syllables_per_line": 3.0,
        }
        assert [line["totalSyllables"] for line in data["lines"]] == [4, 0, 2]
        assert data["lines"][0]["words"][0]["hyphenated"] == "beau·ti·ful"
        assert data["errors"] == []

    @pytest.mark.asyncio
    async def test_replace_line(self, service_env):
        async with api_client() as client:
            await client.put("/v1/document", json={"text": "hello\nworld"})
            response = await client.patch("/v1/document/lines/1", json={"text": "beautiful"})
            assert response.status_code == 200
            assert response.json()["result"]["totalSyllables"] == 3

            fetched = await client.get("/v1/document/lines/1")
            stats = await client.get("/v1/document/statistics")
        assert fetched.json()["text"] == "beautiful"
        assert stats.json()["total_syllables"] == 5

    @pytest.mark.asyncio
    async def test_unknown_line(self, service_env):
        async with api_client() as client:
            await client.put("/v1/document", json={"text": "hello"})
            patched = await client.patch("/v1/document/lines/5", json={"text": "x"})
            fetched = await client.get("/v1/document/lines/5")
        assert patched.status_code == 404
        assert fetched.status_code == 404

    @pytest.mark.asyncio
    async def test_line_with_break_rejected(self, service_env):
        async with api_client() as client:
            await client.put("/v1/document", json={"text": "hello"})
            response = await client.patch("/v1/document/lines/0", json={"text": "a\nb"})
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_line_length_limit(self, service_env):
        service_env.setenv("CADENCE_MAX_LINE_LENGTH", "10")
        async with api_client() as client:
            response = await client.put("/v1/document", json={"text": "short\n" + "x" * 11})
        assert response.status_code == 400
        assert "Line 2" in response.json()["detail"]

    @pytest.mark.asyncio
    async def test_missing_text_is_unprocessable(self, service_env):
        async with api_client() as client:
            response = await client.put("/v1/document", json={})
        assert response.status_code == 422


class TestErrors:
    @pytest.mark.asyncio
    async def test_errors_listed_and_dismissed(self, service_env):
        async with api_client() as client:
            main.session._record_errors(["Line 1: boom"])
            listed = await client.get("/v1/document/errors")
            dismissed = await client.delete("/v1/document/errors")
            after = await client.get("/v1/document/errors")
        assert listed.json() == {"errors": ["Line 1: boom"]}
        assert dismissed.json() == {"errors": []}
        assert after.json() == {"errors": []}


class TestApiKey:
    @pytest.mark.asyncio
    async def test_key_required_when_configured(self, service_env):
        service_env.setenv("CADENCE_API_KEY", "secret")
        async with api_client() as client:
            missing = await client.get("/v1/document/statistics")
            wrong = await client.get("/v1/document/statistics", headers={"X-API-Key": "nope"})
            ok = await client.get("/v1/document/statistics", headers={"X-API-Key": "secret"})
            health = await client.get("/healthz")
        assert missing.status_code == 401
        assert wrong.status_code == 401
        assert ok.status_code == 200
        assert health.status_code == 200


class TestMetrics:
    @pytest.mark.asyncio
    async def test_metrics_exposition(self, service_env):
        async with api_client() as client:
            await client.put("/v1/document", json={"text": "beautiful"})
            response = await client.get("/metrics")
        assert response.status_code == 200
        assert "cadence_requests_total" in response.text
        assert "cadence_api_requests_total" in response.text
