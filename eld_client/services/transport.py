"""
HTTP transport for the trip planner backend.

Reads the current access token from the injected credential store on every
call and attaches it as a bearer credential. Any httpx request failure,
including an undecodable body, is raised as NetworkError; HTTP
status codes are returned to the caller untouched so the refresh
coordinator can act on 401s.
"""
from typing import Any, Optional

import httpx
import structlog

from eld_client.config import Settings, get_settings
from eld_client.errors import NetworkError
from eld_client.services.credentials import CredentialStore

logger = structlog.get_logger()

# Timeout classes
AUTH = "auth"
REQUEST = "request"
ASSET = "asset"


class Transport:
    """Thin wrapper over httpx.AsyncClient bound to one credential store."""

    def __init__(
        self,
        store: CredentialStore,
        settings: Optional[Settings] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.store = store
        self.settings = settings or get_settings()
        self._timeouts = {
            AUTH: httpx.Timeout(self.settings.auth_timeout_s),
            REQUEST: httpx.Timeout(self.settings.request_timeout_s),
            ASSET: httpx.Timeout(self.settings.asset_timeout_s),
        }
        self._client = client or httpx.AsyncClient(
            timeout=self._timeouts[REQUEST],
            limits=httpx.Limits(max_connections=10),
        )

    def url_for(self, path: str) -> str:
        return f"{self.settings.api_base_url.rstrip('/')}/{path.lstrip('/')}"

    def auth_headers(self) -> dict[str, str]:
        token = self.store.access_token
        if not token:
            return {}
        return {"Authorization": f"Bearer {token}"}

    async def send(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        authenticate: bool = True,
        timeout_class: str = REQUEST,
    ) -> httpx.Response:
        """
        Issue one request. Returns the response whatever its status.
        Raises NetworkError if the backend could not be reached.
        """
        headers = {"Accept": "application/json"}
        if authenticate:
            headers.update(self.auth_headers())

        url = self.url_for(path)
        try:
            return await self._client.request(
                method,
                url,
                json=json,
                headers=headers,
                timeout=self._timeouts[timeout_class],
            )
        except httpx.TimeoutException as e:
            logger.warning("request_timeout", method=method, path=path, timeout_class=timeout_class)
            raise NetworkError(f"{method} {path} timed out") from e
        except httpx.RequestError as e:
            logger.warning("network_unreachable", method=method, path=path, error=str(e))
            raise NetworkError(f"{method} {path} failed: {e}") from e

    async def close(self):
        """Close the HTTP client."""
        await self._client.aclose()
