"""
Настройки приложения.

Значения читаются из переменных окружения с префиксом ``HOTEL_BOOKING_``
(и из файла ``.env``, если он есть).
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Настройки сервиса бронирования с поддержкой переменных окружения."""

    model_config = SettingsConfigDict(
        env_prefix="HOTEL_BOOKING_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    # Сервис
    service_name: str = "hotel-booking"
    service_version: str = "1.0.0"

    # Логирование
    log_level: str = "INFO"
    log_format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    # Бронирование
    currency: str = Field(default="CNY", max_length=3)
    max_stay_nights: int = Field(default=30, gt=0)
    default_cancel_reason: str = "user-initiated"
    default_payment_method: str = "wechat_pay"
    order_no_prefix: str = "E"
    order_no_attempts: int = Field(default=5, gt=0)

    # Отели
    max_hotel_images: int = Field(default=10, ge=0)
    image_url_prefix: str = "/uploads/"

    # Пагинация
    default_page_size: int = Field(default=10, gt=0)
    max_page_size: int = Field(default=50, gt=0)


def get_settings() -> Settings:
    """Создает настройки из текущего окружения."""
    return Settings()
