"""
Pytest configuration and fixtures for the ELD client tests.
"""
import asyncio
import os
import sys

# Add project root to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import httpx
import jwt
import pytest
import pytest_asyncio

# Set test environment before importing the client
os.environ["ELD_CLIENT_API_BASE_URL"] = "http://testserver/api"
os.environ["ELD_CLIENT_CREDENTIALS_FILE"] = ""
os.environ["ELD_CLIENT_LOG_LEVEL"] = "DEBUG"

from eld_client.client import TripPlannerClient
from eld_client.config import Settings, get_settings
from eld_client.services.credentials import CredentialStore

API_PREFIX = "/api"


def make_token(username: str = "driver1", **claims) -> str:
    """HS256 JWT carrying a username claim."""
    return jwt.encode({"username": username, **claims}, "test-secret-key-for-testing-only-0000", algorithm="HS256")


class FakeBackend:
    """
    Scripted stand-in for the trip planner API, served via httpx.MockTransport.

    Any path not under /token/ requires a bearer token in ``accepted``.
    Routes are registered per (method, path) with the /api prefix stripped.
    """

    def __init__(self):
        self.accepted = {"access-2"}
        self.issued_access = "access-2"
        self.refresh_ok = True
        self.accept_refreshed = True
        self.refresh_delay = 0.01
        self.refresh_calls = 0
        self.calls: list[tuple[str, str, str]] = []
        self.bodies: list[bytes] = []
        self.routes: dict = {}

    def route(self, method: str, path: str, response):
        """Register a response (httpx.Response or callable(request) -> Response)."""
        self.routes[(method, path)] = response

    def calls_to(self, path: str) -> list[tuple[str, str, str]]:
        return [call for call in self.calls if call[1] == path]

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path[len(API_PREFIX):]
        auth = request.headers.get("authorization")
        self.calls.append((request.method, path, auth))
        self.bodies.append(request.content)

        if path == "/token/refresh/":
            self.refresh_calls += 1
            await asyncio.sleep(self.refresh_delay)
            if self.refresh_ok:
                if self.accept_refreshed:
                    self.accepted.add(self.issued_access)
                return httpx.Response(200, json={"access": self.issued_access})
            return httpx.Response(401, json={"detail": "Token is invalid or expired"})

        handler = self.routes.get((request.method, path))
        if path not in ("/token/", "/register/"):
            if auth is None or auth.removeprefix("Bearer ") not in self.accepted:
                return httpx.Response(401, json={"detail": "Given token not valid"})

        if handler is None:
            return httpx.Response(404, json={"detail": "Not found."})
        if callable(handler):
            return handler(request)
        return handler


@pytest.fixture(autouse=True)
def clear_settings_cache():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def settings():
    return Settings(api_base_url="http://testserver/api")


@pytest.fixture
def store():
    """In-memory store holding an expired access token and a refresh token."""
    store = CredentialStore()
    store.set("access-1", "refresh-1")
    return store


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def redirects():
    """Records login redirects fired by the refresh coordinator."""
    return []


@pytest_asyncio.fixture
async def client(backend, store, settings, redirects):
    http = httpx.AsyncClient(transport=httpx.MockTransport(backend))
    client = TripPlannerClient(settings, store=store, http_client=http, on_auth_expired=redirects.append)
    yield client
    await client.close()
