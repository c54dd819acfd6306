"""
Tests for the async API client.
"""
import httpx
import pytest

from desirable.client.api_client import (
    ApiClient,
    ApiConnectionError,
    ApiError,
    ApiTimeoutError,
    ClientConfig,
    NetworkProfile,
    SessionExpiredError
)
from desirable.config import get_settings


BASE_URL = "http://api.test"


def make_client(handler):
    return ApiClient(ClientConfig(base_url=BASE_URL), transport=httpx.MockTransport(handler))


class TestClientConfig:

    def test_profiles(self):
        settings = get_settings()

        assert ClientConfig.for_profile(NetworkProfile.LOCALHOST).base_url == settings.CLIENT_API_URL
        prod = ClientConfig.for_profile(NetworkProfile.PROD)
        assert prod.base_url == settings.CLIENT_PROD_API_URL
        assert prod.submit_timeout_seconds == 60.0


class TestRequests:
    """Tests for request handling and error mapping."""

    @pytest.mark.asyncio
    async def test_sends_bearer_token(self):
        seen = {}

        def handler(request):
            seen["auth"] = request.headers.get("Authorization")
            return httpx.Response(200, json={"ok": True})

        client = make_client(handler)
        client.set_auth_token("abc")

        assert await client.get("/api/auth/me") == {"ok": True}
        assert seen["auth"] == "Bearer abc"
        assert client.is_authenticated is True
        await client.aclose()

    @pytest.mark.asyncio
    async def test_unauthorized_clears_token(self):
        def handler(request):
            return httpx.Response(401, json={"detail": "Not authorized, token failed"})

        client = make_client(handler)
        client.set_auth_token("expired")

        with pytest.raises(SessionExpiredError) as exc_info:
            await client.get("/api/practice/progress")

        assert exc_info.value.status_code == 401
        assert client.auth_token is None
        assert "Authorization" not in client._http.headers
        await client.aclose()

    @pytest.mark.asyncio
    async def test_error_detail_surfaced(self):
        def handler(request):
            return httpx.Response(409, json={"detail": "Practice has already been submitted"})

        client = make_client(handler)

        with pytest.raises(ApiError) as exc_info:
            await client.post("/api/practice/submit", {"practiceId": "p1", "userAnswer": "x"})

        assert exc_info.value.status_code == 409
        assert str(exc_info.value) == "Practice has already been submitted"
        await client.aclose()

    @pytest.mark.asyncio
    async def test_submit_uses_long_timeout(self):
        timeouts = {}

        def handler(request):
            timeouts[request.url.path] = request.extensions["timeout"]["read"]
            return httpx.Response(200, json={})

        client = make_client(handler)
        await client.post("/api/practice/submit", {"practiceId": "p1", "userAnswer": "x"})
        await client.post("/api/practice/generate", {})

        assert timeouts["/api/practice/submit"] == 60.0
        assert timeouts["/api/practice/generate"] == 30.0
        await client.aclose()

    @pytest.mark.asyncio
    async def test_timeout_mapped(self):
        def handler(request):
            raise httpx.ReadTimeout("too slow", request=request)

        client = make_client(handler)

        with pytest.raises(ApiTimeoutError):
            await client.post("/api/practice/submit", {})
        await client.aclose()

    @pytest.mark.asyncio
    async def test_connection_error_mapped(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        client = make_client(handler)

        with pytest.raises(ApiConnectionError):
            await client.get("/api/practice/progress")
        await client.aclose()

    @pytest.mark.asyncio
    async def test_empty_body(self):
        client = make_client(lambda request: httpx.Response(204))

        assert await client.delete("/api/something") is None
        await client.aclose()


class TestConnection:
    """Tests for base URL switching and health checks."""

    @pytest.mark.asyncio
    async def test_connection_to_other_server(self):
        def handler(request):
            if request.url.host == "up.test" and request.url.path == "/health":
                return httpx.Response(200, json={"status": "healthy"})
            raise httpx.ConnectError("refused", request=request)

        client = make_client(handler)

        assert await client.test_connection("http://up.test/") is True
        assert await client.test_connection() is False
        await client.aclose()

    @pytest.mark.asyncio
    async def test_set_base_url(self):
        hosts = []

        def handler(request):
            hosts.append(request.url.host)
            return httpx.Response(200, json={})

        client = make_client(handler)
        client.set_base_url("http://other.test")
        await client.get("/health")

        assert hosts == ["other.test"]
        assert client.base_url.startswith("http://other.test")
        await client.aclose()
