"""Configuration management using pydantic-settings."""
from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Runtime settings loaded from environment variables."""

    app_name: str = "gamecore"

    # Which side of the game this process runs ("server" or "client")
    runtime_side: str = "server"

    # Cache settings
    cache_default_ttl_seconds: float = 5.0
    # Minimum gap between two failed refresh attempts (0 = retry on every get)
    cache_retry_interval_seconds: float = 0.0

    # Scheduler settings
    scheduler_min_interval_seconds: float = 0.05
    scheduler_max_interval_seconds: float = 60.0
    scheduler_max_consecutive_failures: int = 3
    scheduler_failure_backoff_seconds: float = 1.0
    # Longest the driver loop sleeps when nothing is due
    scheduler_idle_sleep_seconds: float = 0.5

    # Start the scheduler driver thread with the status app
    scheduler_autostart: bool = False

    # Logging
    log_level: str = "INFO"
    log_format: Optional[str] = None

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


settings = Settings()
