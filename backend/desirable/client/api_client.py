"""
API Client
Async HTTP client for the practice API, used by client-side sessions.

Wraps one httpx.AsyncClient per instance. Transport failures are mapped to
ApiError subclasses; a 401 clears the stored token (forced logout) and
raises SessionExpiredError.
"""
import logging
from enum import Enum
from typing import Any, Optional
import httpx
from pydantic import BaseModel

from desirable.config import Settings, get_settings

logger = logging.getLogger(__name__)


SUBMIT_PATH = "/api/practice/submit"


class NetworkProfile(str, Enum):
    """Named base URLs the client can switch between"""
    LOCALHOST = "localhost"
    PROD = "prod"


class ClientConfig(BaseModel):
    """Client connection settings"""
    base_url: str
    timeout_seconds: float = 30.0
    submit_timeout_seconds: float = 60.0
    health_timeout_seconds: float = 5.0

    @classmethod
    def for_profile(
        cls,
        profile: NetworkProfile = NetworkProfile.LOCALHOST,
        settings: Optional[Settings] = None
    ) -> "ClientConfig":
        settings = settings or get_settings()
        base_url = settings.CLIENT_PROD_API_URL if profile == NetworkProfile.PROD else settings.CLIENT_API_URL
        return cls(
            base_url=base_url,
            timeout_seconds=settings.CLIENT_API_TIMEOUT_SECONDS,
            submit_timeout_seconds=settings.CLIENT_SUBMIT_TIMEOUT_SECONDS,
            health_timeout_seconds=settings.CLIENT_HEALTH_TIMEOUT_SECONDS
        )


class ApiError(Exception):
    """Request failed; status_code is None for transport failures"""

    def __init__(self, message: str, status_code: Optional[int] = None, payload: Any = None):
        super().__init__(message)
        self.status_code = status_code
        self.payload = payload


class ApiConnectionError(ApiError):
    """The server could not be reached"""


class ApiTimeoutError(ApiConnectionError):
    """The request exceeded its timeout"""


class SessionExpiredError(ApiError):
    """The server rejected the bearer token"""


def _error_message(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}"
    if isinstance(payload, dict):
        return str(payload.get("detail") or payload.get("message") or payload)
    return str(payload)


class ApiClient:
    """Explicit API client object holding base URL and auth token"""

    def __init__(self, config: ClientConfig, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.config = config
        self._auth_token: Optional[str] = None
        self._http = httpx.AsyncClient(
            base_url=config.base_url,
            timeout=config.timeout_seconds,
            headers={"Content-Type": "application/json"},
            transport=transport
        )

    @classmethod
    def create(
        cls,
        config: Optional[ClientConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ) -> "ApiClient":
        """Build a client; defaults to the LOCALHOST profile."""
        return cls(config or ClientConfig.for_profile(), transport=transport)

    @property
    def base_url(self) -> str:
        return str(self._http.base_url)

    @property
    def auth_token(self) -> Optional[str]:
        return self._auth_token

    @property
    def is_authenticated(self) -> bool:
        return self._auth_token is not None

    def set_auth_token(self, token: Optional[str]) -> None:
        """Set or clear the bearer token sent with every request."""
        self._auth_token = token
        if token:
            self._http.headers["Authorization"] = f"Bearer {token}"
            logger.info("Auth token set")
        else:
            self._http.headers.pop("Authorization", None)
            logger.info("Auth token removed")

    def set_base_url(self, url: str) -> None:
        logger.info(f"API base URL changed: {self.base_url} -> {url}")
        self._http.base_url = url

    def use_profile(self, profile: NetworkProfile, settings: Optional[Settings] = None) -> None:
        self.set_base_url(ClientConfig.for_profile(profile, settings).base_url)

    async def request(
        self,
        method: str,
        path: str,
        json: Optional[dict] = None,
        params: Optional[dict] = None,
        timeout: Optional[float] = None
    ) -> Any:
        """
        Send a request and return the decoded JSON body.

        Answer submission gets the longer submit timeout unless one is given.
        """
        if timeout is None and method == "POST" and path == SUBMIT_PATH:
            timeout = self.config.submit_timeout_seconds

        try:
            response = await self._http.request(
                method,
                path,
                json=json,
                params=params,
                timeout=timeout if timeout is not None else httpx.USE_CLIENT_DEFAULT
            )
        except httpx.TimeoutException as e:
            logger.error(f"{method} {path} timed out: {e}")
            raise ApiTimeoutError(f"Request to {path} timed out") from e
        except httpx.RequestError as e:
            logger.error(f"{method} {path} failed: {e}")
            raise ApiConnectionError(f"Could not reach {self.base_url}: {e}") from e

        if response.status_code == 401:
            self.set_auth_token(None)
            raise SessionExpiredError(_error_message(response), status_code=401)

        if response.is_error:
            message = _error_message(response)
            logger.warning(f"{method} {path} returned {response.status_code}: {message}")
            raise ApiError(message, status_code=response.status_code, payload=response.text)

        if not response.content:
            return None
        return response.json()

    async def get(self, path: str, params: Optional[dict] = None, timeout: Optional[float] = None) -> Any:
        return await self.request("GET", path, params=params, timeout=timeout)

    async def post(self, path: str, json: Optional[dict] = None, timeout: Optional[float] = None) -> Any:
        return await self.request("POST", path, json=json or {}, timeout=timeout)

    async def put(self, path: str, json: Optional[dict] = None, timeout: Optional[float] = None) -> Any:
        return await self.request("PUT", path, json=json or {}, timeout=timeout)

    async def delete(self, path: str, timeout: Optional[float] = None) -> Any:
        return await self.request("DELETE", path, timeout=timeout)

    async def test_connection(self, url: Optional[str] = None) -> bool:
        """Check whether a server (default: the current base URL) answers /health."""
        target = f"{(url or self.base_url).rstrip('/')}/health"
        try:
            response = await self._http.get(target, timeout=self.config.health_timeout_seconds)
        except httpx.RequestError as e:
            logger.info(f"Connection test to {target} failed: {e}")
            return False
        return response.status_code == 200

    async def aclose(self) -> None:
        await self._http.aclose()
