from pydantic_settings import BaseSettings
from functools import lru_cache
from typing import Optional


class Settings(BaseSettings):
    APP_NAME: str = "Vendor Contracts"
    APP_VERSION: str = "1.0.0"
    ENVIRONMENT: str = "development"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    PORT: int = 8000

    DATABASE_URL: str = "sqlite+aiosqlite:///./contracts.db"
    DATABASE_SYNC_URL: str = ""
    DB_POOL_SIZE: int = 5
    DB_MAX_OVERFLOW: int = 5
    DB_POOL_RECYCLE: int = 300

    R2_ACCESS_KEY_ID: str = ""
    R2_SECRET_ACCESS_KEY: str = ""
    R2_BUCKET_NAME: str = "contracts"
    R2_ENDPOINT_URL: str = ""
    R2_PUBLIC_BASE_URL: Optional[str] = None  # When unset, documents get presigned URLs

    JWT_PRIVATE_KEY_PATH: Optional[str] = "keys/private.pem"
    JWT_PUBLIC_KEY_PATH: Optional[str] = "keys/public.pem"
    JWT_ALGORITHM: str = "RS256"
    JWT_ISSUER: str = "vendor-contracts"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 15

    BREVO_API_KEY: Optional[str] = None
    EMAIL_FROM_ADDRESS: str = "noreply@contracts.example.com"
    CONTRACT_NOTIFY_EMAILS: str = ""

    CONTRACT_EXPIRY_WINDOW_DAYS: int = 30
    INTERNAL_JOB_SECRET: Optional[str] = None  # Required in production for /internal/jobs/* auth
    CORS_ORIGINS: str = "http://localhost:3000"
    CORS_ORIGIN_REGEX: Optional[str] = None

    @property
    def cors_origins_list(self) -> list[str]:
        return [o.strip() for o in self.CORS_ORIGINS.split(",")]

    @property
    def contract_notify_list(self) -> list[str]:
        return [e.strip() for e in self.CONTRACT_NOTIFY_EMAILS.split(",") if e.strip()]

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"


@lru_cache()
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
