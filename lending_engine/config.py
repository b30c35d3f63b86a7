"""Configuration management using Pydantic Settings"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables"""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Database
    database_url: str = "sqlite:///./lending_engine.db"

    # Service
    service_name: str = "lending-engine"
    log_level: str = "INFO"

    # Business calendar
    timezone: str = "America/Manaus"
    rest_day_description: str = "Domingo"
    rest_day_lookback_months: int = 1  # Catch schedules already in flight
    rest_day_horizon_days: int = 731  # Furthest rest day materialized ahead of today

    # Jobs
    recompute_max_workers: int = 4
    finished_contract_grace_days: int = 21


settings = Settings()
