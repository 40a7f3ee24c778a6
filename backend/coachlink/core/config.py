from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    database_url: str
    jwt_secret_key: str
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 60

    log_level: str = "INFO"

    invite_code_length: int = 6
    invite_code_max_attempts: int = 10

    no_workout_warning_days: int = 3
    no_workout_critical_days: int = 5
    missed_workout_warning_days: int = 1
    missed_workout_critical_days: int = 3
    missed_workout_alert_limit: int = 3
    nutrition_warning_days: int = 3
    personal_record_window_hours: int = 48
    consistency_weekly_target: int = 4

    ledger_retention_days: int = 14

    dashboard_max_workers: int = 8
    dashboard_client_timeout_seconds: float = 10.0

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


@lru_cache
def get_settings() -> Settings:
    return Settings()
