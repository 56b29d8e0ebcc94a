from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Backend REST API (owns all business data)
    BACKEND_URL: str = "http://localhost:5000"

    # Local identity provider account store
    DATABASE_URL: str = "sqlite:///./tutorhub_identity.db"

    # Identity tokens
    SECRET_KEY: str = "dev-secret-change-me"
    ALGORITHM: str = "HS256"
    SESSION_TOKEN_EXPIRE_MINUTES: int = 60 * 24
    ID_TOKEN_EXPIRE_SECONDS: int = 300
    SESSION_COOKIE_NAME: str = "tutorhub_session"

    # Request behaviour
    REQUEST_TIMEOUT_SECONDS: float = 10.0
    IDENTITY_RESOLVE_TIMEOUT_SECONDS: float = 5.0
    ROLE_CACHE_SECONDS: int = 300
    QUERY_STALE_SECONDS: int = 30

    # Payment widget and image hosting
    PAYMENT_PUBLISHABLE_KEY: Optional[str] = None
    IMAGE_HOST_URL: str = "https://api.imgbb.com/1/upload"
    IMAGE_HOST_API_KEY: Optional[str] = None

    # Application
    APP_ENV: str = "development"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"
    ALLOWED_ORIGINS: List[str] = [
        "http://localhost:5173",
        "http://127.0.0.1:5173",
    ]

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


settings = Settings()
