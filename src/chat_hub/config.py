from __future__ import annotations

from typing import Literal

from pydantic import ConfigDict, field_validator, model_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # --- storage ---
    POSTGRES_USER: str
    POSTGRES_PASSWORD: str
    POSTGRES_DB: str
    DB_HOST: str = "localhost"
    DB_PORT: int = 5432
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 20
    DB_POOL_RECYCLE: int = 300
    PERSISTENCE_TIMEOUT_SECONDS: float = 5.0

    # --- downstream events (empty REDIS_URL disables publishing) ---
    REDIS_URL: str = "redis://localhost:6379/0"
    NOTIFY_CHANNEL: str = "chat.notifications"

    # --- auth ---
    JWT_SECRET: str = ""
    JWT_VERIFY_MODE: Literal["hs256", "jwks"] = "hs256"
    JWT_ALGORITHM: str = "HS256"
    JWKS_URL: str | None = None

    # --- sockets ---
    WS_HEARTBEAT_SECONDS: int = 30
    WS_PONG_TIMEOUT_SECONDS: int = 10

    CORS_ORIGINS: list[str] = ["*"]
    LOG_LEVEL: str = "INFO"

    model_config = ConfigDict(
        env_file=".env",
        extra="ignore",
    )

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def _split_origins(cls, value: object) -> object:
        # Accept "https://a,https://b" as well as a JSON list
        if isinstance(value, str) and not value.lstrip().startswith("["):
            return [o.strip() for o in value.split(",") if o.strip()]
        return value

    @model_validator(mode="after")
    def _check_jwt_mode(self) -> Settings:
        if self.JWT_VERIFY_MODE == "jwks" and not self.JWKS_URL:
            raise ValueError("JWKS_URL must be set when JWT_VERIFY_MODE=jwks")
        if self.WS_HEARTBEAT_SECONDS <= 0:
            raise ValueError("WS_HEARTBEAT_SECONDS must be positive")
        return self

    @property
    def database_url(self) -> str:
        return (
            f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.DB_HOST}:{self.DB_PORT}/{self.POSTGRES_DB}"
        )

    @property
    def liveness_window(self) -> float:
        """Seconds of silence after which a socket is considered dead."""
        return float(self.WS_HEARTBEAT_SECONDS + self.WS_PONG_TIMEOUT_SECONDS)


settings = Settings()  # type: ignore[call-arg]
