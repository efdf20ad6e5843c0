"""Runtime settings for the latency telemetry service."""

from typing import List, Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    DATABASE_PATH: str = "latency.db"

    # Samples older than this are pruned; series expire this long after their last write
    RETENTION_DAYS: int = 30
    DEFAULT_TIME_RANGE: str = "24h"
    SYNTHETIC_POINTS: int = 100

    PROBE_TIMEOUT_SECONDS: float = 5.0
    STORE_TIMEOUT_SECONDS: float = 2.0
    SEED_CONCURRENCY: int = 8

    LOG_LEVEL: str = "INFO"
    CORS_ORIGINS: List[str] = ["*"]

    model_config = {
        "env_prefix": "LATENCY_",
        "env_file": ".env",
        "case_sensitive": False,
    }

    @property
    def retention_ms(self) -> int:
        return self.RETENTION_DAYS * 86_400_000


_settings_cache: Optional[Settings] = None


def get_settings() -> Settings:
    global _settings_cache
    if _settings_cache is None:
        _settings_cache = Settings()
    return _settings_cache


def reset_settings() -> None:
    global _settings_cache
    _settings_cache = None
