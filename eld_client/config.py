"""
Client configuration using pydantic-settings.
Loads from ELD_CLIENT_* environment variables or a .env file.
"""
from functools import lru_cache
from pydantic import model_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Client settings with local-development defaults."""

    # Backend
    api_base_url: str = "http://localhost:8000/api"

    # Timeouts per operation class (seconds)
    auth_timeout_s: float = 10.0  # login, register, token refresh
    request_timeout_s: float = 30.0  # trips, logs, duty status
    asset_timeout_s: float = 60.0  # grid images and PDFs

    # Credential persistence (empty = in-memory only)
    credentials_file: str = ""

    # Where the client is sent when the session cannot be refreshed
    login_url: str = "/login"

    # Logging
    log_level: str = "INFO"

    @model_validator(mode='after')
    def check_values(self):
        """Reject base URLs that are not http(s) and non-positive timeouts."""
        if not self.api_base_url.startswith(("http://", "https://")):
            raise ValueError(f"api_base_url must be an http(s) URL, got {self.api_base_url!r}")
        for name in ("auth_timeout_s", "request_timeout_s", "asset_timeout_s"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive")
        return self

    class Config:
        env_prefix = "ELD_CLIENT_"
        env_file = ".env"
        env_file_encoding = "utf-8"


@lru_cache()
def get_settings() -> Settings:
    """Cached settings instance."""
    return Settings()
