from __future__ import annotations

from typing import Literal

from pydantic import ConfigDict
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    STORE_BACKEND: Literal["memory", "redis"] = "memory"
    REDIS_URL: str = "redis://localhost:6379/0"
    STORE_KEY_PREFIX: str = "chat"
    STORE_CHANGES_CHANNEL: str = "chat.store.changes"

    TYPING_IDLE_SECONDS: float = 1.5
    TYPING_STALE_SECONDS: float = 10.0

    NOTIFICATION_AUTO_CLOSE_SECONDS: float = 5.0
    NOTIFICATION_AUTO_READ_DELAY_SECONDS: float = 1.0

    PUSH_PUBLIC_KEY: str = ""

    ID_TOKEN_SECRET: str = ""
    ID_TOKEN_VERIFY_MODE: Literal["hs256", "jwks"] = "hs256"
    ID_TOKEN_ALGORITHM: str = "HS256"
    ID_TOKEN_AUDIENCE: str | None = None
    JWKS_URL: str | None = None

    CLOUDINARY_CLOUD_NAME: str = ""
    CLOUDINARY_UPLOAD_PRESET: str = ""
    CLOUDINARY_FOLDER: str = "chat_app/"
    MAX_IMAGE_BYTES: int = 10 * 1024 * 1024

    CORS_ORIGINS: list[str] = ["*"]
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    LOG_LEVEL: str = "INFO"

    model_config = ConfigDict(
        env_file=".env",
        extra="ignore",
    )


settings = Settings()
