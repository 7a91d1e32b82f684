import os
from functools import lru_cache

from pydantic import BaseModel, field_validator

_DEFAULT_ROUTES = "direct,https://api.allorigins.win/raw?url=,https://corsproxy.io/?"


class Settings(BaseModel):
    QUOTE_PROVIDER_BASE_URL: str = "https://query1.finance.yahoo.com"
    QUOTE_ROUTES: list[str]
    QUOTE_TIMEOUT_SEC: float = 8.0
    QUOTE_MAX_ATTEMPTS: int | None = None
    QUOTE_CACHE_TTL_SEC: float = 60.0
    QUOTE_BATCH_WORKERS: int = 6

    @field_validator("QUOTE_ROUTES")
    @classmethod
    def require_routes(cls, value: list[str]) -> list[str]:
        if not value:
            raise ValueError("at least one quote route is required")
        return value

    @field_validator("QUOTE_TIMEOUT_SEC", "QUOTE_CACHE_TTL_SEC")
    @classmethod
    def require_positive_seconds(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("must be positive")
        return value

    @field_validator("QUOTE_MAX_ATTEMPTS", "QUOTE_BATCH_WORKERS")
    @classmethod
    def require_positive_count(cls, value: int | None) -> int | None:
        if value is not None and value < 1:
            raise ValueError("must be at least 1")
        return value

    @classmethod
    def from_env(cls) -> "Settings":
        raw_routes = os.getenv("QUOTE_ROUTES", _DEFAULT_ROUTES)
        routes = [r.strip() for r in raw_routes.split(",") if r.strip()]

        payload = {"QUOTE_ROUTES": routes}
        for key in (
            "QUOTE_PROVIDER_BASE_URL",
            "QUOTE_TIMEOUT_SEC",
            "QUOTE_MAX_ATTEMPTS",
            "QUOTE_CACHE_TTL_SEC",
            "QUOTE_BATCH_WORKERS",
        ):
            value = os.getenv(key)
            if value not in (None, ""):
                payload[key] = value

        return cls.model_validate(payload)


@lru_cache
def get_settings() -> Settings:
    return Settings.from_env()
