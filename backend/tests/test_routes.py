"""
HTTP endpoint tests

Run:
    cd backend
    pytest tests/test_routes.py -v
"""

import pytest
from fastapi.testclient import TestClient

from image_resizer.config import ResizerConfig
from image_resizer.errors import FetchConnectionError
from main import create_app

from conftest import open_image


@pytest.fixture
def app(fetcher):
    config = ResizerConfig(
        ipfs_api_url="http://ipfs.invalid:5001",
        cache_ttl_seconds=60,
        cache_sweep_interval_seconds=300,
    )
    return create_app(config, fetcher=fetcher)


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


# ============================================
# 1. GET /image
# ============================================

class TestImageEndpoint:
    """Successful responses"""

    def test_png_end_to_end(self, client):
        response = client.get("/image", params={"cid": "Qm123", "width": "400", "height": "400"})

        assert response.status_code == 200
        assert response.headers["content-type"] == "image/png"
        assert response.headers["cache-control"] == "public, max-age=86400"
        img = open_image(response.content)
        assert img.format == "PNG"
        assert img.size == (400, 300)

    def test_cache_header_miss_then_hit(self, client, fetcher):
        params = {"cid": "Qm123", "width": "200", "height": "200"}

        first = client.get("/image", params=params)
        second = client.get("/image", params=params)

        assert first.headers["x-cache"] == "MISS"
        assert second.headers["x-cache"] == "HIT"
        assert first.content == second.content
        assert fetcher.calls == ["Qm123"]

    def test_jpeg_content_type(self, client):
        response = client.get("/image", params={"cid": "QmJpeg", "width": "100", "height": "100"})

        assert response.status_code == 200
        assert response.headers["content-type"] == "image/jpeg"

    def test_gif_content_type(self, client):
        response = client.get("/image", params={"cid": "QmGif", "width": "100", "height": "100"})

        assert response.status_code == 200
        assert response.headers["content-type"] == "image/gif"
        assert open_image(response.content).n_frames == 3


# ============================================
# 2. Client errors
# ============================================

class TestImageEndpointBadRequests:
    """400 responses"""

    @pytest.mark.parametrize("params", [
        {"width": "10", "height": "10"},
        {"cid": "Qm123", "height": "10"},
        {"cid": "Qm123", "width": "10"},
        {"cid": "", "width": "10", "height": "10"},
        {},
    ])
    def test_missing_parameter(self, client, fetcher, params):
        response = client.get("/image", params=params)

        assert response.status_code == 400
        assert response.json()["detail"] == "Missing required query parameters: cid, width, height"
        assert fetcher.calls == []

    @pytest.mark.parametrize("width,height,field", [
        ("0", "10", "width"),
        ("-5", "10", "width"),
        ("abc", "10", "width"),
        ("10", "1.5", "height"),
    ])
    def test_invalid_dimension(self, client, fetcher, width, height, field):
        response = client.get("/image", params={"cid": "Qm123", "width": width, "height": height})

        assert response.status_code == 400
        assert field in response.json()["detail"]
        assert fetcher.calls == []


# ============================================
# 3. Server errors
# ============================================

class TestImageEndpointServerErrors:
    """500 responses hide internals"""

    def test_not_found_content(self, client):
        response = client.get("/image", params={"cid": "QmMissing", "width": "10", "height": "10"})

        assert response.status_code == 500
        assert response.json()["detail"] == "something went wrong"

    def test_ipfs_unreachable(self, client, fetcher):
        fetcher.failures["QmDown"] = FetchConnectionError("connection refused to 127.0.0.1:5001")

        response = client.get("/image", params={"cid": "QmDown", "width": "10", "height": "10"})

        assert response.status_code == 500
        assert "127.0.0.1" not in response.text

    def test_unsupported_format_not_cached(self, client, app):
        response = client.get("/image", params={"cid": "QmBmp", "width": "10", "height": "10"})

        assert response.status_code == 500
        assert response.json()["detail"] == "something went wrong"
        assert len(app.state.pipeline.cache) == 0

    def test_garbage_bytes(self, client, app):
        response = client.get("/image", params={"cid": "QmText", "width": "10", "height": "10"})

        assert response.status_code == 500
        assert len(app.state.pipeline.cache) == 0


# ============================================
# 4. Health / lifecycle
# ============================================

class TestHealthAndLifecycle:
    """Health endpoint and startup/shutdown"""

    def test_health(self, client):
        client.get("/image", params={"cid": "Qm123", "width": "10", "height": "10"})

        response = client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["cache_sweep_running"] is True
        assert body["cache_stats"]["total_entries"] == 1
        assert body["cache_stats"]["ttl_seconds"] == 60

    def test_sweep_stopped_on_shutdown(self, app):
        with TestClient(app):
            assert app.state.pipeline.cache.is_running

        assert not app.state.pipeline.cache.is_running

    def test_injected_fetcher_not_closed(self, app, fetcher):
        with TestClient(app):
            pass

        assert fetcher.closed is False
