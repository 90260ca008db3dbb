# ecopoints/core/config.py
from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict

DEV_JWT_SECRET = "change-me-in-production"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore", frozen=True)

    # --- Core ---
    DATABASE_URL: str = "sqlite:///./ecopoints.db"
    PORT: int = 5000
    LOG_LEVEL: str = "INFO"
    CORS_ORIGINS: str = "*"

    # --- Sessions ---
    JWT_SECRET: str = DEV_JWT_SECRET
    JWT_ALGORITHM: str = "HS256"
    JWT_EXPIRE_HOURS: int = 24

    # --- Passwords / registration ---
    PASSWORD_MIN_LENGTH: int = 6
    BCRYPT_ROUNDS: int = 10
    EMAIL_DOMAIN: str = "ecopoints.com"

    # --- Identity provider (Supabase auth, optional) ---
    SUPABASE_URL: str | None = None
    SUPABASE_ANON_KEY: str | None = None
    SUPABASE_SERVICE_ROLE_KEY: str | None = None
    IDENTITY_TIMEOUT_SECONDS: float = 10.0

    # --- Listings ---
    NOTIFICATIONS_PAGE_SIZE: int = 5

    @property
    def database_url(self) -> str:
        # Hosted Postgres hands out postgres://; SQLAlchemy expects postgresql://
        if self.DATABASE_URL.startswith("postgres://"):
            return self.DATABASE_URL.replace("postgres://", "postgresql://", 1)
        return self.DATABASE_URL

    @property
    def cors_origins(self) -> list[str]:
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]


def load_settings() -> Settings:
    return Settings()
