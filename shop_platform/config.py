from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    DATABASE_URL: str = "sqlite+aiosqlite:///./shop_platform.db"

    # публічна адреса сервісу: webhook-и магазинів + посилання на mini-app
    PUBLIC_BASE_URL: str | None = None

    # секрет для шифрування токенів ботів
    ENCRYPTION_KEY: str | None = None

    WEBHOOK_PREFIX: str = "/webhook"

    TELEGRAM_TIMEOUT_SECONDS: float = 5.0

    # True: один Bot на магазин на процес; False: новий Bot на кожен апдейт
    SESSION_CACHE_ENABLED: bool = True

    SUPPORT_TEXT: str = "Contact support if you need help!"

    RUN_MIGRATIONS: bool = True
    LOG_LEVEL: str = "INFO"

    PORT: int = 8080
    DEBUG: bool = False

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @property
    def public_base_url(self) -> str:
        return (self.PUBLIC_BASE_URL or "").strip().rstrip("/")

    @property
    def webhook_prefix(self) -> str:
        return "/" + self.WEBHOOK_PREFIX.strip().strip("/")


settings = Settings()
