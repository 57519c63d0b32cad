"""
muxlog: Configuration Management

Pydantic Settings: loads from the environment (and .env), read once at startup.
"""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ── Server ──
    host: str = "0.0.0.0"
    port: int = 9126
    app_env: str = "development"

    # ── Logging ──
    log_level: str = "INFO"

    # ── Middleware ──
    recorder_pool_max_idle: int = 1024
    auth_protected_paths: str = "/auth"

    @property
    def protected_path_set(self) -> frozenset[str]:
        """Parse comma-separated protected paths into a set."""
        return frozenset(p.strip() for p in self.auth_protected_paths.split(",") if p.strip())


@lru_cache
def get_settings() -> Settings:
    """Cached settings instance, created once and reused everywhere."""
    return Settings()
