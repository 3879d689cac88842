"""
Single-flight token refresh.

Wraps every authenticated request. A 401 on a request that has not been
replayed yet triggers one token refresh; any other request that hits a 401
while that refresh is in flight waits in a FIFO queue instead of starting
its own. When the refresh settles, the request that triggered it replays
first, then the queued requests replay in arrival order, each exactly once.
If the refresh fails, the store is cleared and every waiter raises
AuthExpired.

State changes happen under an asyncio.Lock. The lock is never held across
the refresh network call, so new 401s can still join the queue.
"""
import asyncio
from collections import deque
from enum import Enum
from typing import Any, Callable, Deque, Optional

import httpx
import pydantic
import structlog

from eld_client.errors import AuthExpired, ClientError, NetworkError, json_body
from eld_client.schemas import AccessToken
from eld_client.services.transport import AUTH, REQUEST, Transport

logger = structlog.get_logger()

REFRESH_PATH = "/token/refresh/"


class RefreshState(str, Enum):
    IDLE = "idle"
    REFRESHING = "refreshing"


def log_redirect(login_url: str):
    logger.warning("session_expired_redirect", login_url=login_url)


class RefreshCoordinator:
    """Owns the refresh state machine and its queue of waiting requests."""

    def __init__(
        self,
        transport: Transport,
        on_auth_expired: Optional[Callable[[str], None]] = None,
        login_url: Optional[str] = None,
    ):
        self.transport = transport
        self.store = transport.store
        self.on_auth_expired = on_auth_expired or log_redirect
        self.login_url = login_url or transport.settings.login_url
        self.state = RefreshState.IDLE
        self.refresh_calls = 0
        self._queue: Deque[asyncio.Future] = deque()
        self._lock = asyncio.Lock()

    @property
    def pending(self) -> int:
        """Number of requests waiting on the in-flight refresh."""
        return len(self._queue)

    async def request(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        timeout_class: str = REQUEST,
    ) -> httpx.Response:
        """Send an authenticated request, refreshing credentials on 401."""
        sent_with = self.store.access_token
        response = await self.transport.send(method, path, json=json, timeout_class=timeout_class)
        if response.status_code != 401:
            return response

        # Token was already replaced while this request was in flight
        if self.store.access_token and self.store.access_token != sent_with:
            logger.debug("replay_with_newer_token", method=method, path=path)
            return await self._replay(method, path, json, timeout_class)

        if not self.store.refresh_token:
            self._expire("no refresh token")
            raise AuthExpired("Session expired and no refresh token is available")

        async with self._lock:
            if self.state is RefreshState.REFRESHING:
                waiter = asyncio.get_running_loop().create_future()
                self._queue.append(waiter)
                leader = False
            else:
                self.state = RefreshState.REFRESHING
                waiter = None
                leader = True

        if leader:
            await self._refresh()
        else:
            logger.debug("request_queued", method=method, path=path, position=len(self._queue))
            await waiter

        return await self._replay(method, path, json, timeout_class)

    async def _replay(self, method: str, path: str, json: Any, timeout_class: str) -> httpx.Response:
        """Replay once. A second 401 is returned to the caller as-is."""
        response = await self.transport.send(method, path, json=json, timeout_class=timeout_class)
        if response.status_code == 401:
            logger.warning("replay_unauthorized", method=method, path=path)
        return response

    async def _refresh(self):
        """Perform the one in-flight refresh and settle every waiter."""
        self.refresh_calls += 1
        logger.info("token_refresh_started")
        try:
            response = await self.transport.send(
                "POST",
                REFRESH_PATH,
                json={"refresh": self.store.refresh_token},
                authenticate=False,
                timeout_class=AUTH,
            )
            token = AccessToken.model_validate(json_body(response))
        except asyncio.CancelledError:
            await self._settle(error=NetworkError("Token refresh was cancelled"))
            raise
        except (ClientError, pydantic.ValidationError) as e:
            logger.warning("token_refresh_failed", error=str(e))
            await self._settle(error=AuthExpired("Session expired; token refresh failed"))
            self._expire("refresh failed")
            raise AuthExpired("Session expired; token refresh failed") from e

        await self._settle(access=token.access)
        logger.info("token_refresh_succeeded")

    async def _settle(self, access: Optional[str] = None, error: Optional[Exception] = None):
        async with self._lock:
            waiters = list(self._queue)
            self._queue.clear()
            self.state = RefreshState.IDLE
            if access is not None:
                self.store.set_access(access)

        if waiters:
            logger.info("queued_requests_released", count=len(waiters), replay=error is None)
        for waiter in waiters:
            if waiter.done():
                continue
            if error is None:
                waiter.set_result(None)
            else:
                waiter.set_exception(type(error)(*error.args))

    def _expire(self, reason: str):
        logger.warning("credentials_cleared", reason=reason)
        self.store.clear()
        self.on_auth_expired(self.login_url)
