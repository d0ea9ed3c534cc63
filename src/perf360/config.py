from functools import lru_cache
from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_ALLOWED_ORIGINS = "http://localhost:3000,http://127.0.0.1:3000"


class Settings(BaseSettings):
    """Application configuration loaded from environment variables.

    Built once at startup and handed to the components that need it.
    """

    model_config = SettingsConfigDict(frozen=True, extra="ignore")

    api_title: str = Field("Performance360 API")
    host: str = Field("0.0.0.0")
    port: int = Field(3001)
    node_env: str = Field("production")
    allowed_origins: str = Field(DEFAULT_ALLOWED_ORIGINS)
    frontend_url: str | None = Field(None)
    enable_test_routes: bool = Field(False)
    log_level: str = Field("INFO")

    database_url: str = Field("sqlite:///perf360.db")
    redis_url: str = Field("redis://localhost:6379/0")

    jwt_secret: str = Field("secret")
    jwt_algorithm: str = Field("HS256")
    access_token_expire_minutes: int = Field(60)
    refresh_token_expire_minutes: int = Field(60 * 24 * 7)
    session_idle_timeout_minutes: int = Field(120)
    session_absolute_timeout_minutes: int = Field(60 * 24 * 7)
    session_cleanup_frequency: int = Field(15 * 60)
    bcrypt_rounds: int = Field(12)
    password_reset_expire_minutes: int = Field(60 * 24)

    smtp_host: str | None = Field(None)
    smtp_port: int = Field(587)
    smtp_user: str | None = Field(None)
    smtp_password: str | None = Field(None)
    smtp_tls: bool = Field(True)
    smtp_from_email: str | None = Field(None)
    smtp_from_name: str = Field("Performance360")

    @property
    def is_production(self) -> bool:
        return self.node_env.strip().lower() == "production"

    @property
    def allow_all_origins(self) -> bool:
        """Development mode and a literal ``*`` both open CORS to any origin."""
        return not self.is_production or self.allowed_origins.strip() == "*"

    @property
    def cors_origins(self) -> List[str]:
        origins = [o.strip() for o in self.allowed_origins.split(",") if o.strip()]
        if self.frontend_url and self.frontend_url not in origins:
            origins.append(self.frontend_url)
        return origins

    @property
    def test_routes_enabled(self) -> bool:
        return not self.is_production or self.enable_test_routes


@lru_cache
def get_settings() -> Settings:
    return Settings()
