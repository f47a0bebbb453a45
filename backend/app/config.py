"""Application configuration helpers."""
from functools import lru_cache
import os
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

class AppConfig(BaseModel):
    """Runtime configuration loaded from environment variables."""

    model_config = ConfigDict(frozen=True)

    database_url: str = Field(default="sqlite:///./todos.db")
    log_level: str = Field(default="INFO")
    cors_origins: List[str] = Field(default_factory=lambda: ["http://localhost:3000"])
    strict_schedule: bool = Field(
        default=False,
        description="Fail schedule computation on dangling dependencies instead of degrading",
    )

    @field_validator("cors_origins", mode="before")
    @classmethod
    def _split_origins(cls, value):
        if isinstance(value, str):
            return [o.strip() for o in value.split(",") if o.strip()]
        return value

    @field_validator("log_level", mode="before")
    @classmethod
    def _upper_level(cls, value: str) -> str:
        return value.strip().upper()

def _read_env(key: str, default: Optional[str] = None) -> Optional[str]:
    return os.getenv(key, default)

@lru_cache(maxsize=1)
def get_config() -> AppConfig:
    """Load and cache application configuration."""
    values = {
        "database_url": _read_env("DATABASE_URL"),
        "log_level": _read_env("LOG_LEVEL"),
        "cors_origins": _read_env("CORS_ORIGINS"),
        "strict_schedule": _read_env("STRICT_SCHEDULE"),
    }
    return AppConfig(**{k: v for k, v in values.items() if v is not None})
