from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    app_env: str = "local"
    api_v1_prefix: str = "/api/v1"

    # Security
    secret_key: str = "changeme"  # override in .env
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 60

    # Database
    database_url: str = "sqlite:///./clinic.db"

    # Logging
    log_level: str = "INFO"

    # Scheduling (UTC, HH:MM)
    work_day_start: str = "08:00"
    work_day_end: str = "18:00"

    # Prescriptions
    prescription_validity_days: int = 365

    # Generated order / prescription / catalog numbers
    code_generation_attempts: int = 5

    # Pydantic v2 style config
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


@lru_cache()
def get_settings() -> Settings:
    """
    Cached settings instance so the .env is parsed once.
    """
    return Settings()
