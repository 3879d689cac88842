"""
Typed operations against the trip planner REST API.

Auth endpoints (register, login, refresh) go straight to the transport
unauthenticated. Everything else goes through the refresh coordinator.
"""
from typing import Any, Callable, Optional, Type, TypeVar, Union

import httpx
import pydantic
import structlog

from eld_client.config import Settings, get_settings
from eld_client.errors import (
    ApiError,
    MalformedPayloadError,
    ValidationError,
    json_body,
    raise_for_status,
)
from eld_client.schemas import (
    LogAsset,
    LoginRequest,
    RegisterRequest,
    TokenPair,
    AccessToken,
    Trip,
    TripCreate,
)
from eld_client.services.credentials import CredentialStore
from eld_client.services.refresh import REFRESH_PATH, RefreshCoordinator
from eld_client.services.transport import ASSET, AUTH, Transport

logger = structlog.get_logger()

Model = TypeVar("Model", bound=pydantic.BaseModel)
ObjectId = Union[int, str]


def _parse(model: Type[Model], data: Any) -> Model:
    try:
        return model.model_validate(data)
    except pydantic.ValidationError as e:
        raise MalformedPayloadError(f"unexpected {model.__name__} payload: {e}") from e


def _results(data: Any) -> list:
    """Accept both plain and paginated ({"results": [...]}) list responses."""
    if isinstance(data, dict) and "results" in data:
        data = data["results"]
    if not isinstance(data, list):
        raise MalformedPayloadError(f"expected a list, got {type(data).__name__}")
    return data


class TripPlannerClient:
    """Client for the trip planner and ELD log backend."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        store: Optional[CredentialStore] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        on_auth_expired: Optional[Callable[[str], None]] = None,
    ):
        self.settings = settings or get_settings()
        self.store = store if store is not None else CredentialStore(self.settings.credentials_file)
        self.transport = Transport(self.store, self.settings, client=http_client)
        self.coordinator = RefreshCoordinator(self.transport, on_auth_expired=on_auth_expired)

    async def __aenter__(self) -> "TripPlannerClient":
        return self

    async def __aexit__(self, *exc_info):
        await self.close()

    async def close(self):
        await self.transport.close()

    # ============ Internals ============

    async def _call(self, method: str, path: str, json: Any = None) -> Any:
        response = await self.coordinator.request(method, path, json=json)
        return json_body(response)

    async def _asset(self, path: str, log_id: ObjectId) -> LogAsset:
        response = await self.coordinator.request("GET", path, timeout_class=ASSET)
        raise_for_status(response)
        return LogAsset(
            log_id=log_id,
            content=response.content,
            content_type=response.headers.get("content-type", "application/octet-stream"),
        )

    async def _auth_call(self, path: str, payload: dict) -> Any:
        response = await self.transport.send(
            "POST", path, json=payload, authenticate=False, timeout_class=AUTH
        )
        return json_body(response)

    # ============ Auth ============

    async def register(self, username: str, password: str, email: str) -> Any:
        request = RegisterRequest(username=username, password=password, email=email)
        data = await self._auth_call("/register/", request.model_dump())
        logger.info("account_registered", username=username)
        return data

    async def login(self, username: str, password: str) -> TokenPair:
        """Obtain a token pair and store it."""
        request = LoginRequest(username=username, password=password)
        try:
            data = await self._auth_call("/token/", request.model_dump())
        except ApiError as e:
            if e.status_code == 401:
                raise ValidationError(401, e.payload, "Invalid username or password") from e
            raise
        tokens = _parse(TokenPair, data)
        self.store.set(tokens.access, tokens.refresh)
        logger.info("logged_in", username=username)
        return tokens

    async def refresh_access_token(self, refresh: str) -> str:
        """Exchange a refresh token for a new access token. Does not store it."""
        data = await self._auth_call(REFRESH_PATH, {"refresh": refresh})
        return _parse(AccessToken, data).access

    def logout(self):
        self.store.clear()
        logger.info("logged_out")

    @property
    def is_authenticated(self) -> bool:
        return self.store.get().is_authenticated

    # ============ Trips ============

    async def create_trip(self, trip: Union[TripCreate, dict]) -> Trip:
        if not isinstance(trip, TripCreate):
            trip = TripCreate.model_validate(trip)
        data = await self._call("POST", "/trips/", trip.model_dump())
        return _parse(Trip, data)

    async def list_trips(self) -> list[Trip]:
        data = await self._call("GET", "/trips/")
        return [_parse(Trip, item) for item in _results(data)]

    async def get_trip(self, trip_id: ObjectId) -> dict:
        """Raw trip payload, including route_data and stops once planned."""
        return await self._call("GET", f"/trips/{trip_id}/")

    async def plan_trip(self, trip_id: ObjectId) -> dict:
        """Ask the backend to compute the route; returns the planned payload."""
        return await self._call("POST", f"/trips/{trip_id}/plan/", {})

    async def create_and_plan_trip(self, trip: Union[TripCreate, dict]) -> dict:
        created = await self.create_trip(trip)
        logger.info("trip_created", trip_id=created.id)
        return await self.plan_trip(created.id)

    # ============ Logs ============

    async def generate_logs(self, trip_id: ObjectId) -> Any:
        """Idempotent: safe to call when logs already exist."""
        return await self._call("POST", "/logs/generate_logs/", {"trip": trip_id})

    async def list_logs(self) -> list[dict]:
        return _results(await self._call("GET", "/logs/"))

    async def get_log(self, log_id: ObjectId) -> dict:
        return await self._call("GET", f"/logs/{log_id}/")

    async def create_log_sheet(self, data: dict) -> dict:
        return await self._call("POST", "/logs/", data)

    async def update_log_sheet(self, log_id: ObjectId, data: dict) -> dict:
        return await self._call("PUT", f"/logs/{log_id}/", data)

    async def partial_update_log_sheet(self, log_id: ObjectId, data: dict) -> dict:
        return await self._call("PATCH", f"/logs/{log_id}/", data)

    async def delete_log_sheet(self, log_id: ObjectId) -> None:
        await self._call("DELETE", f"/logs/{log_id}/")

    async def get_log_grid(self, log_id: ObjectId) -> LogAsset:
        return await self._asset(f"/logs/{log_id}/grid/", log_id)

    async def get_log_pdf(self, log_id: ObjectId) -> LogAsset:
        return await self._asset(f"/logs/{log_id}/pdf/", log_id)

    # ============ Duty Status ============

    async def list_duty_statuses(self) -> list[dict]:
        return _results(await self._call("GET", "/duty-status/"))

    async def create_duty_status(self, data: dict) -> dict:
        return await self._call("POST", "/duty-status/", data)

    async def get_duty_status(self, status_id: ObjectId) -> dict:
        return await self._call("GET", f"/duty-status/{status_id}/")

    async def update_duty_status(self, status_id: ObjectId, data: dict) -> dict:
        return await self._call("PUT", f"/duty-status/{status_id}/", data)

    async def partial_update_duty_status(self, status_id: ObjectId, data: dict) -> dict:
        return await self._call("PATCH", f"/duty-status/{status_id}/", data)

    async def delete_duty_status(self, status_id: ObjectId) -> None:
        await self._call("DELETE", f"/duty-status/{status_id}/")
