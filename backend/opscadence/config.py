"""Application configuration management."""

from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List, Optional


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        if self.debug and self.log_level.upper() != "TRACE":
            self.log_level = "DEBUG"

    # Database
    database_url: str

    # Security
    secret_key: str
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 1440

    # Trigger authentication (external cron provider)
    cron_secret: Optional[str] = None
    trust_platform_cron: bool = False
    cron_platform_user_agent: str = "vercel-cron"

    # CORS
    cors_origins: str = "http://localhost:5173"

    # Operator account
    admin_username: str = "admin"
    admin_password: str = "changeme"

    # Application
    debug: bool = False
    log_level: str = "INFO"
    api_v1_str: str = "/api/v1"

    # Engine
    scheduler_enabled: bool = False
    generation_cron: str = "0 * * * *"
    status_sweep_cron: str = "*/5 * * * *"
    generation_lookahead_hours: int = 48
    initial_lookahead_hours: int = 336
    max_lookahead_hours: int = 2160

    @property
    def cors_origins_list(self) -> List[str]:
        """Parse CORS origins from comma-separated string."""
        return [origin.strip() for origin in self.cors_origins.split(",")]


# Global settings instance
settings = Settings()
