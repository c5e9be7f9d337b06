from functools import lru_cache
from typing import Annotated

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    app_name: str = "Flight Bundle Aggregator"
    api_prefix: str = "/v1"
    log_level: str = "INFO"

    database_url: str = "sqlite+aiosqlite:///./flight_bundles.db"

    default_sources: Annotated[list[str], NoDecode] = Field(
        default_factory=lambda: ["kiwi", "skyscanner"]
    )
    default_currency: str = "EUR"

    fetch_timeout_seconds: int = 20
    fetch_retries: int = 3
    fetch_retry_delay_seconds: float = 1.0

    timeline_collapse_threshold_minutes: int = 120
    search_result_limit: int = 20

    @field_validator("default_sources", mode="before")
    @classmethod
    def _parse_sources(cls, value: str | list[str] | None) -> list[str]:
        if value is None:
            return ["kiwi", "skyscanner"]
        if isinstance(value, str):
            return [item.strip().lower() for item in value.split(",") if item.strip()]
        return [item.strip().lower() for item in value if item.strip()]

    @field_validator("default_currency")
    @classmethod
    def _normalize_currency(cls, value: str) -> str:
        return value.strip().upper()


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
