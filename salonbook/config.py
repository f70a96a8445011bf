# salonbook/config.py

from datetime import time
from functools import lru_cache
from typing import List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from SALONBOOK_* environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="SALONBOOK_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Database
    database_url: str = Field(default="sqlite:///./salon.db")
    db_echo: bool = Field(default=False, description="Log SQL queries")

    # Tokens
    secret_key: str = Field(default="change-me-later", min_length=8)
    algorithm: str = Field(default="HS256")
    access_token_expire_minutes: int = Field(default=30, ge=1)

    log_level: str = Field(default="INFO")

    # Slot grid used by the free-slot listing
    slot_minutes: int = Field(default=15, ge=5, le=240)

    # Weekly template given to a user when they become a stylist
    default_schedule_weekdays: List[int] = Field(default=[0, 1, 2, 3, 4])
    default_schedule_start: time = Field(default=time(10, 0))
    default_schedule_end: time = Field(default=time(18, 30))

    @field_validator("default_schedule_weekdays")
    @classmethod
    def validate_weekdays(cls, v: List[int]) -> List[int]:
        for day in v:
            if not (0 <= day <= 6):
                raise ValueError("weekdays must be integers between 0 and 6")
        return sorted(set(v))

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")


@lru_cache()
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
