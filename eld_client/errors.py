"""
Error taxonomy for the trip planner API client.

Transport and auth failures are handled centrally by the refresh
coordinator. Validation and asset failures are left to the caller to present.
"""
from typing import Any, Optional

import httpx


class ClientError(Exception):
    """Base class for every error raised by the client layer."""


class NetworkError(ClientError):
    """Backend unreachable, timed out, or returned a malformed response."""


class MalformedPayloadError(NetworkError):
    """Response body parsed but did not have the expected structure."""


class AuthExpired(ClientError):
    """Credentials expired and could not be refreshed."""


class ApiError(ClientError):
    """Non-success HTTP status not covered by a more specific error."""

    def __init__(self, status_code: int, payload: Any = None, message: Optional[str] = None):
        self.status_code = status_code
        self.payload = payload
        super().__init__(message or f"HTTP {status_code}")


class ValidationError(ApiError):
    """
    Business error reported by the backend (e.g. invalid trip fields).
    The payload is kept verbatim for display.
    """

    @property
    def detail(self) -> str:
        if isinstance(self.payload, dict):
            for key in ("error", "detail"):
                if self.payload.get(key):
                    return str(self.payload[key])
        if self.payload:
            return str(self.payload)
        return str(self)


class AssetFetchError(ClientError):
    """Fetching a rendered log asset (grid image or PDF) failed."""

    def __init__(self, log_id: Any, reason: str):
        self.log_id = log_id
        self.reason = reason
        super().__init__(f"Asset fetch failed for log {log_id}: {reason}")


def _payload_of(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text or None


def raise_for_status(response: httpx.Response) -> None:
    """Map a non-2xx response onto the error taxonomy."""
    if response.is_success:
        return
    payload = _payload_of(response)
    if response.status_code == 400:
        raise ValidationError(response.status_code, payload)
    raise ApiError(response.status_code, payload)


def json_body(response: httpx.Response) -> Any:
    """Return the decoded JSON body of a successful response."""
    raise_for_status(response)
    if response.status_code == 204 or not response.content:
        return None
    try:
        return response.json()
    except ValueError as e:
        raise NetworkError(f"Malformed JSON from {response.request.url}: {e}") from e
