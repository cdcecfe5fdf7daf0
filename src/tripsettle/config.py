from __future__ import annotations

from decimal import Decimal
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", case_sensitive=False)

    log_level: str = Field("INFO", alias="LOG_LEVEL")
    default_precision: Decimal = Field(Decimal("0.01"), alias="DEFAULT_PRECISION", gt=0)
    default_rounding_mode: str = Field("roundHalfUp", alias="DEFAULT_ROUNDING_MODE")
    default_remainder: str = Field("largestShare", alias="DEFAULT_REMAINDER")
    # percent extras above this value are reported as warnings
    high_percent_threshold: Decimal = Field(Decimal("30"), alias="HIGH_PERCENT_THRESHOLD")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()  # type: ignore[call-arg]
