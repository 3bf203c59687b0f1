# Configuration management

from pydantic_settings import BaseSettings, SettingsConfigDict  # type: ignore
from functools import lru_cache


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="JSONLITE_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    # Database
    database_url: str = "sqlite://"  # in-memory by default
    table_name: str = "records"
    sqlite_synchronous_off: bool = True
    debug: bool = False

    # Ingestion pipeline
    queue_capacity: int = 1000
    read_buffer_size: int = 64 * 1024
    queue_poll_interval: float = 0.1  # seconds

    # Observability
    log_level: str = "INFO"
    json_logs: bool = True
    metrics_enabled: bool = True


@lru_cache()
def get_settings() -> Settings:
    return Settings()
