"""Tests for the assembled application: middleware stack and startup checks."""

import pytest
from fastapi.testclient import TestClient

from blog.core.config import DEFAULT_JWT_SECRET
from blog.core.database import get_db
from blog.main import app, lifespan, settings


@pytest.fixture
def app_client():
    """The real app, without running the lifespan (no database needed)."""
    return TestClient(app, raise_server_exceptions=False)


@pytest.fixture
def app_with_db(db_session):
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app, raise_server_exceptions=False)
    app.dependency_overrides.pop(get_db, None)


@pytest.mark.unit
class TestApplication:
    def test_health(self, app_client):
        response = app_client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}

    def test_root_is_public(self, app_client):
        response = app_client.get("/", follow_redirects=False)

        assert response.status_code == 200
        assert response.json()["name"] == "Blog"

    def test_security_headers(self, app_client):
        response = app_client.get("/health")

        assert response.headers["X-Content-Type-Options"] == "nosniff"
        assert response.headers["X-Frame-Options"] == "DENY"
        assert "Content-Security-Policy" in response.headers
        # HSTS is production only
        assert "Strict-Transport-Security" not in response.headers

    def test_correlation_id_is_echoed(self, app_client):
        response = app_client.get("/health", headers={"X-Correlation-ID": "abc-123"})
        assert response.headers["X-Correlation-ID"] == "abc-123"

    def test_correlation_id_is_generated(self, app_client):
        response = app_client.get("/health")
        assert len(response.headers["X-Correlation-ID"]) == 36

    def test_protected_page_redirects_to_login(self, app_client):
        response = app_client.get("/dashboard", follow_redirects=False)

        assert response.status_code == 307
        assert response.headers["location"] == "/login?next=/dashboard"

    def test_unknown_api_route_uses_error_shape(self, app_client):
        response = app_client.get("/api/nothing-here")

        assert response.status_code == 404
        assert "error" in response.json()

    def test_login_rate_limit_applies_behind_middleware(self, app_with_db, test_user):
        statuses = [
            app_with_db.post(
                "/api/auth/login",
                json={"email": test_user.email, "password": "wrong-password"},
            ).status_code
            for _ in range(11)
        ]

        assert statuses[:10] == [401] * 10
        assert statuses[10] == 429


@pytest.mark.unit
class TestLifespan:
    @pytest.mark.asyncio
    async def test_refuses_default_secret_in_production(self, monkeypatch):
        monkeypatch.setattr(settings, "ENVIRONMENT", "production")
        monkeypatch.setattr(settings, "JWT_SECRET", DEFAULT_JWT_SECRET)

        with pytest.raises(RuntimeError, match="JWT_SECRET"):
            async with lifespan(app):
                pass
