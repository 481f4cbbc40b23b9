from __future__ import annotations

from typing import Literal

from pydantic import ConfigDict
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    HTTP_HOST: str = "0.0.0.0"
    HTTP_PORT: int = 8000
    LOG_LEVEL: str = "INFO"

    REDIS_URL: str = "redis://localhost:6379/0"

    JWT_SECRET: str = ""
    JWT_ALGORITHM: str = "HS256"

    CORS_ORIGINS: list[str] = ["*"]

    SITE_URL: str = "http://localhost:5173"

    EMAIL_DELIVERY_MODE: Literal["emailjs", "log"] = "emailjs"
    EMAILJS_API_URL: str = "https://api.emailjs.com/api/v1.0/email/send"
    EMAILJS_SERVICE_ID: str = ""
    EMAILJS_PUBLIC_KEY: str = ""
    EMAILJS_PRIVATE_KEY: str | None = None
    EMAILJS_TIMEOUT: float = 10.0

    EMAIL_QUEUE_CONCURRENCY: int = 5
    EMAIL_MAX_ATTEMPTS: int = 3
    EMAIL_ATTEMPT_TIMEOUT: float | None = 30.0
    EMAIL_RETRY_BASE_DELAY: float = 1.0
    EMAIL_RETRY_MAX_DELAY: float = 60.0
    EMAIL_RETRY_JITTER: float = 0.2
    EMAIL_RETRY_PROMOTE_AFTER: int | None = 2

    EMAIL_EVENTS_CHANNEL: str = "mail.events"

    STORE_EVENTS_STREAM: str = "store.events"
    STORE_EVENTS_GROUP: str = "mail-service"

    model_config = ConfigDict(
        env_file=".env",
        extra="ignore",
    )


settings = Settings()
