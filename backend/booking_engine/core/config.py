from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import AnyHttpUrl, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from booking_engine import __version__


class Settings(BaseSettings):
    """Конфигурация движка бронирования на основе переменных окружения."""

    api_base: AnyHttpUrl = Field(..., alias="API_BASE")
    hotel_id: str = Field(
        "",
        alias="HOTEL_ID",
        description="Идентификатор отеля, если путь отеля не удалось разрешить",
    )

    redis_url: str = Field("redis://127.0.0.1:6379/0", alias="REDIS_URL")
    room_events_channel_prefix: str = Field(
        "rooms:hotel:", alias="ROOM_EVENTS_CHANNEL_PREFIX"
    )

    # Инвентарь запрашивается без таймаута, отправка брони ограничена сверху
    submission_timeout: float = Field(30.0, alias="SUBMISSION_TIMEOUT")

    tax_rate: float = Field(0.18, alias="TAX_RATE")
    currency: str = Field("INR", alias="CURRENCY")
    default_payment_method: str = Field("UPI", alias="DEFAULT_PAYMENT_METHOD")
    booking_source: str = Field("web", alias="BOOKING_SOURCE")
    client_environment: str = Field(
        f"booking-engine/{__version__}",
        alias="CLIENT_ENVIRONMENT",
        description="Строка окружения клиента, уходит в метаданные брони",
    )

    log_level: str = Field("INFO", alias="LOG_LEVEL")
    app_env: Literal["dev", "prod", "test"] = Field("dev", alias="APP_ENV")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        populate_by_name=True,
    )

    @property
    def api_root(self) -> str:
        return str(self.api_base).rstrip("/")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()


__all__ = ["Settings", "get_settings"]
