"""Tests for API endpoints."""

import asyncio

import pytest
from httpx import ASGITransport, AsyncClient

from config import Config
from conftest import wait_until
from web_app import create_app


@pytest.fixture
def app(config, service, deleter):
    """Create test FastAPI app."""
    return create_app(config=config, service_instance=service, deleter_instance=deleter)


@pytest.fixture
def make_client(app):
    """Factory for clients; each client is a separate user once it has a cookie."""
    def factory(**kwargs):
        return AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver", **kwargs)

    return factory


@pytest.fixture
async def client(make_client):
    """Create test client holding an auth cookie."""
    async with make_client() as ac:
        await ac.get("/ping")
        yield ac


def code_of(short_url: str) -> str:
    return short_url.rsplit("/", 1)[1]


async def settle(app):
    """Wait for detached request work such as deletions."""
    pending = list(app.state.background_tasks)
    if pending:
        await asyncio.gather(*pending)


class TestAuthCookie:
    """Test anonymous user identification."""

    async def test_cookie_issued(self, make_client):
        async with make_client() as ac:
            response = await ac.get("/ping")

        assert response.status_code == 200
        assert "auth_token" in response.cookies

    async def test_valid_cookie_kept(self, client):
        response = await client.get("/ping")
        assert "auth_token" not in response.cookies

    async def test_invalid_cookie_replaced(self, make_client):
        async with make_client(cookies={"auth_token": "garbage"}) as ac:
            response = await ac.get("/ping")

        assert "auth_token" in response.cookies
        assert response.cookies["auth_token"] != "garbage"


class TestShorten:
    """Test shortening endpoints."""

    async def test_shorten_url(self, client, sample_urls):
        """Test POST /api/shorten."""
        response = await client.post("/api/shorten", json={"url": sample_urls[0]})

        assert response.status_code == 201
        result = response.json()["result"]
        assert result.startswith("http://testserver/")
        assert len(code_of(result)) == 6

    async def test_shorten_conflict(self, client, sample_urls):
        first = await client.post("/api/shorten", json={"url": sample_urls[0]})
        second = await client.post("/api/shorten", json={"url": sample_urls[0]})

        assert second.status_code == 409
        assert second.json()["result"] == first.json()["result"]

    async def test_shorten_invalid_url(self, client):
        """Test POST /api/shorten with invalid URL."""
        response = await client.post("/api/shorten", json={"url": "not-a-url"})

        assert response.status_code == 400
        assert "Invalid URL" in response.json()["detail"]

    async def test_shorten_plain_text(self, client, sample_urls):
        response = await client.post("/", content=sample_urls[0])

        assert response.status_code == 201
        assert response.text.startswith("http://testserver/")

        again = await client.post("/", content=sample_urls[0])
        assert again.status_code == 409
        assert again.text == response.text

    async def test_shorten_plain_text_invalid(self, client):
        response = await client.post("/", content="nope")
        assert response.status_code == 400

    async def test_shorten_batch(self, client, sample_urls):
        body = [{"correlation_id": str(i), "original_url": url} for i, url in enumerate(sample_urls)]

        response = await client.post("/api/shorten/batch", json=body)

        assert response.status_code == 201
        data = response.json()
        assert [d["correlation_id"] for d in data] == ["0", "1", "2"]
        assert len({d["short_url"] for d in data}) == 3

    async def test_shorten_batch_conflict(self, client, sample_urls):
        await client.post("/api/shorten", json={"url": sample_urls[0]})
        body = [
            {"correlation_id": "1", "original_url": sample_urls[1]},
            {"correlation_id": "2", "original_url": sample_urls[0]},
        ]

        response = await client.post("/api/shorten/batch", json=body)

        assert response.status_code == 409
        assert len((await client.get("/api/user/urls")).json()) == 1


class TestRedirect:
    """Test redirect endpoint."""

    async def test_redirect(self, client, sample_urls):
        created = await client.post("/api/shorten", json={"url": sample_urls[0]})
        code = code_of(created.json()["result"])

        response = await client.get(f"/{code}", follow_redirects=False)

        assert response.status_code == 307
        assert response.headers["location"] == sample_urls[0]

    async def test_unknown_code(self, client):
        response = await client.get("/nonexistent", follow_redirects=False)

        assert response.status_code == 404
        assert response.text == "Not Found"


class TestUserURLs:
    """Test per-user URL listing and deletion."""

    async def test_no_urls(self, client):
        response = await client.get("/api/user/urls")
        assert response.status_code == 204

    async def test_list_urls(self, client, sample_urls):
        await client.post("/api/shorten", json={"url": sample_urls[0]})
        await client.post("/api/shorten", json={"url": sample_urls[1]})

        response = await client.get("/api/user/urls")

        assert response.status_code == 200
        assert [u["original_url"] for u in response.json()] == sample_urls[:2]

    async def test_delete_urls(self, app, client, storage, sample_urls):
        created = await client.post("/api/shorten", json={"url": sample_urls[0]})
        code = code_of(created.json()["result"])

        response = await client.request("DELETE", "/api/user/urls", json=[code])
        assert response.status_code == 202

        await settle(app)
        assert await wait_until(lambda: storage.delete_calls)

        redirect = await client.get(f"/{code}", follow_redirects=False)
        assert redirect.status_code == 410
        assert (await client.get("/api/user/urls")).status_code == 204

    async def test_delete_foreign_urls_ignored(self, app, client, make_client, deleter, sample_urls):
        created = await client.post("/api/shorten", json={"url": sample_urls[0]})
        code = code_of(created.json()["result"])

        async with make_client() as other:
            response = await other.request("DELETE", "/api/user/urls", json=[code])
        assert response.status_code == 202

        await settle(app)
        await deleter.stop()

        redirect = await client.get(f"/{code}", follow_redirects=False)
        assert redirect.status_code == 307

    async def test_delete_after_stop_still_accepted(self, app, client, deleter):
        await deleter.stop()

        response = await client.request("DELETE", "/api/user/urls", json=["abc"])
        await settle(app)

        assert response.status_code == 202

    async def test_delete_requires_list(self, client):
        response = await client.request("DELETE", "/api/user/urls", json={"code": "abc"})
        assert response.status_code == 422


class TestStatistics:
    """Test internal statistics endpoint."""

    async def test_open_without_trusted_subnet(self, client, sample_urls):
        await client.post("/api/shorten", json={"url": sample_urls[0]})

        response = await client.get("/api/internal/stats")

        assert response.status_code == 200
        assert response.json() == {"urls": 1, "users": 1}

    @pytest.mark.parametrize(
        "headers,expected",
        [
            ({"X-Real-IP": "10.1.2.3"}, 200),
            ({"X-Real-IP": "192.168.0.1"}, 403),
            ({}, 403),
        ],
    )
    async def test_trusted_subnet(self, service, deleter, headers, expected):
        config = Config(
            base_url="http://testserver",
            file_storage_path="",
            trusted_subnet="10.0.0.0/8",
            auth_secret="test-secret",
        )
        app = create_app(config=config, service_instance=service, deleter_instance=deleter)

        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver") as ac:
            response = await ac.get("/api/internal/stats", headers=headers)

        assert response.status_code == expected


class TestHealth:
    """Test health endpoint."""

    async def test_health(self, client):
        """Test GET /api/health."""
        response = await client.get("/api/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["storage"] == "healthy"
        assert data["deleter"] == "idle"

    async def test_health_after_deleter_stopped(self, client, deleter):
        await deleter.stop()

        data = (await client.get("/api/health")).json()

        assert data["status"] == "unhealthy"
        assert data["deleter"] == "stopped"
