from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

ENV_PATH = Path(__file__).resolve().parent.parent / ".env.local"

DEFAULT_CACHE_TTLS: dict[str, int] = {
    "campaigns": 3600,  # 1 hour
    "analytics": 1800,  # 30 minutes
    "accounts": 900,  # 15 minutes
    "daily_analytics": 1800,
    "daily": 1800,
    "weekly": 1800,
}


class Settings(BaseSettings):
    # Environment settings
    environment: str = "development"
    debug: bool = False
    LOG_LEVEL: str = "INFO"

    # Instantly API settings
    INSTANTLY_API_KEY: str | None = None
    INSTANTLY_API_BASE_URL: str = "https://api.instantly.ai/api/v2"
    INSTANTLY_TIMEOUT_SECONDS: float = 30.0
    INSTANTLY_MAX_RETRIES: int = 3

    # =================================================================
    # RATE LIMITING - upstream fetches per window
    # =================================================================
    RATE_LIMIT_MAX_REQUESTS: int = 100
    RATE_LIMIT_WINDOW_SECONDS: int = 3600

    # =================================================================
    # RESULT CACHE
    # =================================================================
    CACHE_BACKEND: str = "memory"  # "memory" or "redis"
    CACHE_DEFAULT_TTL_SECONDS: int = 1800
    CACHE_TTLS: dict[str, int] = {}
    REDIS_URL: str | None = None

    model_config = SettingsConfigDict(
        env_file=str(ENV_PATH),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    def get_cache_ttls(self) -> dict[str, int]:
        """TTL per cache class, with env overrides layered on the defaults."""
        ttls = dict(DEFAULT_CACHE_TTLS)
        ttls.update(self.CACHE_TTLS)
        return ttls

    def get_rate_limit_config(self) -> dict:
        """
        Get rate limiter configuration.
        Development gets a roomier window so local iteration isn't throttled.
        """
        config = {
            "max_requests": self.RATE_LIMIT_MAX_REQUESTS,
            "window_seconds": self.RATE_LIMIT_WINDOW_SECONDS,
        }

        if self.environment == "development":
            config["max_requests"] = max(config["max_requests"], 500)

        return config

    def use_redis_cache(self) -> bool:
        return self.CACHE_BACKEND.lower() == "redis" and bool(self.REDIS_URL)


settings = Settings()
