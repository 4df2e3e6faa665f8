from __future__ import annotations

from pydantic import BaseModel
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # BLS public API v2 key. Unregistered requests work but are capped at
    # 10 years per query and a small daily quota.
    BLS_API_KEY: str | None = None

    CPIW_CACHE_DIR: str = "data/cache/bls"
    CPIW_OUTPUT_DIR: str = "output"
    CPIW_START_YEAR: int = 2012
    CPIW_END_YEAR: int | None = None
    CPIW_CACHE_MAX_AGE_DAYS: int = 15

    # Allowed |coverage - 100| (index points) before a month is flagged.
    CPIW_COVERAGE_TOLERANCE: float = 1.0

    @property
    def bls_api_key(self) -> str | None:
        return self.BLS_API_KEY

    @property
    def cache_dir(self) -> str:
        return self.CPIW_CACHE_DIR

    @property
    def output_dir(self) -> str:
        return self.CPIW_OUTPUT_DIR

    @property
    def start_year(self) -> int:
        return int(self.CPIW_START_YEAR)

    @property
    def end_year(self) -> int | None:
        return self.CPIW_END_YEAR

    @property
    def cache_max_age_days(self) -> int:
        return int(self.CPIW_CACHE_MAX_AGE_DAYS)

    @property
    def coverage_tolerance(self) -> float:
        return float(self.CPIW_COVERAGE_TOLERANCE)


class PropagationConfig(BaseModel):
    # Raise on the first failing (category, month) cell instead of skipping it.
    strict: bool = False
    # Emit the "All items" row (always 100) alongside the categories.
    include_all_items: bool = True
    coverage_tolerance: float = 1.0


def load_settings() -> Settings:
    return Settings()
