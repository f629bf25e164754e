import os
from functools import lru_cache
from typing import Literal, Optional

from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    database_url: Optional[str] = Field(None, alias="MATHSTREAK_DATABASE_URL")
    database_pool_size: int = Field(10, alias="MATHSTREAK_DATABASE_POOL_SIZE")
    database_max_overflow: int = Field(10, alias="MATHSTREAK_DATABASE_MAX_OVERFLOW")
    database_echo: bool = Field(False, alias="MATHSTREAK_DATABASE_ECHO")
    database_isolation_level: Optional[
        Literal["SERIALIZABLE", "REPEATABLE READ", "READ COMMITTED", "READ UNCOMMITTED"]
    ] = Field("SERIALIZABLE", alias="MATHSTREAK_DATABASE_ISOLATION_LEVEL")
    database_telemetry: bool = Field(False, alias="MATHSTREAK_DATABASE_TELEMETRY")
    streak_timezone: str = Field("UTC", alias="MATHSTREAK_STREAK_TIMEZONE")
    default_recommendation_limit: int = Field(5, ge=1, le=10, alias="MATHSTREAK_RECOMMENDATION_LIMIT")
    cors_origins: str = Field("*", alias="MATHSTREAK_CORS_ORIGINS")

    class Config:
        env_file = os.getenv("ENV_FILE", ".env")
        env_file_encoding = "utf-8"
        case_sensitive = True

    def cors_origin_list(self) -> list[str]:
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]


@lru_cache
def get_settings() -> Settings:
    try:
        return Settings()  # type: ignore[arg-type]
    except ValidationError as exc:
        raise RuntimeError(f"Invalid backend configuration: {exc}") from exc
