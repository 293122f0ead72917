import os
from functools import lru_cache
from typing import Literal, Optional

from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    database_url: Optional[str] = Field(None, alias="PEERSPARK_DATABASE_URL")
    database_pool_size: int = Field(10, alias="PEERSPARK_DATABASE_POOL_SIZE")
    database_max_overflow: int = Field(10, alias="PEERSPARK_DATABASE_MAX_OVERFLOW")
    database_echo: bool = Field(False, alias="PEERSPARK_DATABASE_ECHO")
    plan_store_mode: Literal["memory", "database"] = Field("memory", alias="PEERSPARK_PLAN_STORE")
    match_cache_ttl_seconds: int = Field(300, ge=0, alias="PEERSPARK_MATCH_CACHE_TTL_SECONDS")
    default_match_limit: int = Field(5, ge=0, alias="PEERSPARK_DEFAULT_MATCH_LIMIT")
    reminder_window_minutes: int = Field(240, ge=1, alias="PEERSPARK_REMINDER_WINDOW_MINUTES")
    default_timezone: Optional[str] = Field(None, alias="PEERSPARK_DEFAULT_TIMEZONE")

    class Config:
        env_file = os.getenv("ENV_FILE", ".env")
        env_file_encoding = "utf-8"
        case_sensitive = True


@lru_cache
def get_settings() -> Settings:
    try:
        return Settings()  # type: ignore[arg-type]
    except ValidationError as exc:
        raise RuntimeError(f"Invalid backend configuration: {exc}") from exc
