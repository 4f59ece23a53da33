from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    database_url: str = Field(..., alias="DATABASE_URL")

    jwt_secret_key: str = Field(..., alias="JWT_SECRET_KEY")
    jwt_algorithm: str = Field("HS256", alias="JWT_ALGORITHM")
    access_token_expire_minutes: int = Field(15, alias="ACCESS_TOKEN_EXPIRE_MINUTES")

    log_level: str = Field("INFO", alias="LOG_LEVEL")

    # M-Pesa (Daraja) outbound STK push
    mpesa_base_url: str = Field("https://sandbox.safaricom.co.ke", alias="MPESA_BASE_URL")
    mpesa_consumer_key: Optional[str] = Field(None, alias="MPESA_CONSUMER_KEY")
    mpesa_consumer_secret: Optional[str] = Field(None, alias="MPESA_CONSUMER_SECRET")
    mpesa_passkey: Optional[str] = Field(None, alias="MPESA_PASSKEY")
    mpesa_callback_url: Optional[str] = Field(None, alias="MPESA_CALLBACK_URL")
    mpesa_timeout_seconds: float = Field(10.0, alias="MPESA_TIMEOUT_SECONDS")
    mpesa_max_attempts: int = Field(3, alias="MPESA_MAX_ATTEMPTS", ge=1)
    mpesa_backoff_seconds: float = Field(0.5, alias="MPESA_BACKOFF_SECONDS", ge=0)

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"
        populate_by_name = True


@lru_cache
def get_settings() -> Settings:
    return Settings()
