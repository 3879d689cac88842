"""
Credential store: the single owner of the access and refresh tokens.

Tokens are kept in memory and, when a path is configured, persisted to a
JSON file under the keys ``access_token`` and ``refresh_token``. Only the
client's login/logout operations and the refresh coordinator write here.
"""
import json
import os
from dataclasses import dataclass
from typing import Optional

import jwt
import structlog

logger = structlog.get_logger()

ACCESS_TOKEN_KEY = "access_token"
REFRESH_TOKEN_KEY = "refresh_token"
UNKNOWN_USER = "unknown user"


@dataclass(frozen=True)
class Credentials:
    """Snapshot of the stored tokens."""
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None

    @property
    def is_authenticated(self) -> bool:
        return bool(self.access_token)


class MalformedTokenError(ValueError):
    """Token could not be decoded for display purposes."""


class CredentialStore:
    """Holds the current token pair with load/save/clear lifecycle."""

    def __init__(self, path: Optional[str] = None):
        self.path = path or None
        self._access: Optional[str] = None
        self._refresh: Optional[str] = None
        if self.path:
            self._load()

    def get(self) -> Credentials:
        return Credentials(self._access, self._refresh)

    @property
    def access_token(self) -> Optional[str]:
        return self._access

    @property
    def refresh_token(self) -> Optional[str]:
        return self._refresh

    def set(self, access: str, refresh: str):
        """Store a fresh token pair after login."""
        self._access = access
        self._refresh = refresh
        self._save()

    def set_access(self, access: str):
        """Replace the access token after a successful refresh."""
        self._access = access
        self._save()

    def clear(self):
        """Drop both tokens (logout or unrecoverable refresh failure)."""
        self._access = None
        self._refresh = None
        self._save()

    def _load(self):
        if not os.path.exists(self.path):
            return
        try:
            with open(self.path, 'r') as f:
                data = json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            logger.warning("credentials_load_failed", path=self.path, error=str(e))
            return
        self._access = data.get(ACCESS_TOKEN_KEY) or None
        self._refresh = data.get(REFRESH_TOKEN_KEY) or None
        logger.debug("credentials_loaded", path=self.path, authenticated=bool(self._access))

    def _save(self):
        if not self.path:
            return
        directory = os.path.dirname(self.path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        data = {}
        if self._access:
            data[ACCESS_TOKEN_KEY] = self._access
        if self._refresh:
            data[REFRESH_TOKEN_KEY] = self._refresh
        with open(self.path, 'w') as f:
            json.dump(data, f, indent=2)
        # Tokens are bearer secrets
        os.chmod(self.path, 0o600)


def decode_username(token: Optional[str]) -> str:
    """
    Read the ``username`` claim from a JWT without verifying it.
    Raises MalformedTokenError if the token is missing, undecodable,
    or carries no username.
    """
    if not token:
        raise MalformedTokenError("no token")
    try:
        payload = jwt.decode(token, options={"verify_signature": False})
    except jwt.InvalidTokenError as e:
        raise MalformedTokenError(str(e)) from e
    username = payload.get("username")
    if not username:
        raise MalformedTokenError("token has no username claim")
    return str(username)


def display_username(store: CredentialStore) -> str:
    """Username for display, or 'unknown user' when it cannot be decoded."""
    try:
        return decode_username(store.access_token)
    except MalformedTokenError:
        return UNKNOWN_USER
