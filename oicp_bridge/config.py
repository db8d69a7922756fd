"""Runtime configuration of the OICP bridge.

Values come from ``OICP_*`` environment variables or a ``.env`` file.
"""

from __future__ import annotations

from functools import lru_cache
from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="OICP_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    HOST: str = "0.0.0.0"
    PORT: int = Field(default=3000, description="Port of the CPO/EMP server API")
    LOG_LEVEL: str = "INFO"

    REQUEST_TIMEOUT_SECONDS: float = Field(
        default=60.0, gt=0, description="Default timeout for handling one request"
    )
    DEFAULT_PAGE_SIZE: int = Field(default=20, gt=0)

    # Identifications (EVCO ids or RFID UIDs) the reference CPO service accepts
    ALLOWED_IDENTIFICATIONS: List[str] = Field(default_factory=list)

    PARTNER_BASE_URL: str = "http://127.0.0.1:3000"
    PARTNER_PROVIDER_ID: str = "DE*GDF"


@lru_cache
def get_settings() -> Settings:
    return Settings()
