from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import field_validator
from typing import Any
from pathlib import Path
import os


class Settings(BaseSettings):
    API_V1_STR: str = "/api/v1"

    # Remote pricing configuration service (serves the active ServiceConfig
    # document per service id).
    CONFIG_API_BASE_URL: str = "http://localhost:5000"
    CONFIG_API_TIMEOUT: float = 10.0
    # Disable to quote purely from cached/static rate schedules (offline runs).
    CONFIG_FETCH_ENABLED: bool = True

    # Redis connection URL for the session config cache. Empty/"disabled"
    # falls back to a no-op client and in-process memory only.
    REDIS_URL: str = ""
    CONFIG_CACHE_TTL: int = 3600  # seconds

    LOG_LEVEL: str = "INFO"

    # Contract length adopted by newly activated services when nothing else
    # is known about the agreement.
    DEFAULT_CONTRACT_MONTHS: int = 12

    # Session id used by the HTTP API, which is stateless per request.
    DEFAULT_SESSION_ID: str = "api"

    model_config = SettingsConfigDict(extra="ignore", case_sensitive=True)

    @field_validator("CONFIG_API_BASE_URL", "REDIS_URL", mode="before")
    def strip_whitespace(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip()
        return v


def load_settings() -> "Settings":
    return Settings(_env_file=os.getenv("ENV_FILE", str(Path(__file__).resolve().parents[2] / ".env")))


settings = load_settings()
