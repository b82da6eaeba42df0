"""
Tests for API endpoints including health checks, security headers and signed file downloads.
"""
import time
import pytest
from urllib.parse import urlparse
from fastapi import FastAPI
from fastapi.testclient import TestClient

from sharelink.api.deps import get_object_store
from sharelink.external.object_store import LocalObjectStore
from sharelink.main import app
from sharelink.middleware.security import RequestSizeLimitMiddleware


class TestHealthEndpoints:
    """Tests for health check endpoints."""

    def test_health_check(self, client):
        """Health check endpoint should return healthy status."""
        response = client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert "version" in data

    def test_root_endpoint(self, client):
        """Root endpoint should return API info."""
        response = client.get("/")

        assert response.status_code == 200
        data = response.json()
        assert "message" in data
        assert "version" in data
        assert "docs" in data


class TestSecurityHeaders:
    """Tests for security headers in responses."""

    def test_csp_header(self, client):
        response = client.get("/health")

        assert "default-src 'none'" in response.headers["Content-Security-Policy"]

    def test_content_type_options_header(self, client):
        response = client.get("/health")

        assert response.headers["X-Content-Type-Options"] == "nosniff"

    def test_frame_options_header(self, client):
        response = client.get("/health")

        assert response.headers["X-Frame-Options"] == "DENY"

    def test_referrer_policy_header(self, client):
        """Link tokens in URLs must not leak through the Referer header."""
        response = client.get("/health")

        assert response.headers["Referrer-Policy"] == "no-referrer"

    def test_request_id_header(self, client):
        response = client.get("/health")

        assert "X-Request-ID" in response.headers


class TestErrorResponses:
    """Tests for error response handling."""

    def test_404_not_found(self, client):
        """Non-existent endpoint should return 404."""
        response = client.get("/api/v1/nonexistent")

        assert response.status_code == 404

    def test_oversized_request_rejected(self):
        small_app = FastAPI()
        small_app.add_middleware(RequestSizeLimitMiddleware, max_size=16)

        @small_app.post("/echo")
        async def echo():
            return {"ok": True}

        with TestClient(small_app) as small_client:
            accepted = small_client.post("/echo", content=b"x" * 16)
            rejected = small_client.post("/echo", content=b"x" * 17)

        assert accepted.status_code == 200
        assert rejected.status_code == 413
        assert rejected.json()["code"] == "PAYLOAD_TOO_LARGE"


class TestSignedFileEndpoint:
    """Tests for GET /files/{path} behind local signed URLs."""

    @pytest.fixture
    def local_store(self, tmp_path):
        store = LocalObjectStore(root=str(tmp_path), base_url="http://testserver/api/v1", secret="s" * 32)
        (tmp_path / "owner-1").mkdir()
        (tmp_path / "owner-1" / "a.pdf").write_bytes(b"%PDF-1.4 content")

        app.dependency_overrides[get_object_store] = lambda: store
        yield store
        app.dependency_overrides.pop(get_object_store, None)

    async def _signed_path(self, store, path, ttl=60):
        url = await store.generate_signed_url(path, ttl)
        parsed = urlparse(url)
        return f"{parsed.path}?{parsed.query}"

    async def test_valid_signature_serves_file(self, client, local_store):
        response = client.get(await self._signed_path(local_store, "owner-1/a.pdf"))

        assert response.status_code == 200
        assert response.content == b"%PDF-1.4 content"

    async def test_tampered_signature(self, client, local_store):
        expires = int(time.time()) + 60

        response = client.get(f"/api/v1/files/owner-1/a.pdf?expires={expires}&signature=forged")

        assert response.status_code == 403
        assert response.json()["code"] == "INVALID_SIGNATURE"

    async def test_signature_for_other_path(self, client, local_store):
        signed = await self._signed_path(local_store, "owner-1/other.pdf")

        response = client.get(signed.replace("other.pdf", "a.pdf"))

        assert response.status_code == 403

    def test_expired_signature(self, client, local_store):
        expires = int(time.time()) - 5
        signature = local_store._sign("owner-1/a.pdf", expires)

        response = client.get(f"/api/v1/files/owner-1/a.pdf?expires={expires}&signature={signature}")

        assert response.status_code == 403

    async def test_missing_file(self, client, local_store):
        response = client.get(await self._signed_path(local_store, "owner-1/gone.pdf"))

        assert response.status_code == 404

    def test_missing_signature(self, client, local_store):
        response = client.get("/api/v1/files/owner-1/a.pdf")

        assert response.status_code == 400
