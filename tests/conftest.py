"""
Конфигурация тестов для pytest.
Добавляет каталог src в PYTHONPATH и общие фикстуры.
"""
import sys
from datetime import date
from decimal import Decimal
from pathlib import Path
from uuid import uuid4

import pytest

# Добавляем каталог с исходным кодом в PYTHONPATH
root_dir = str(Path(__file__).parent.parent / "src")
if root_dir not in sys.path:
    sys.path.insert(0, root_dir)

from bootstrap import bootstrap_app  # noqa: E402
from catalog.application import (  # noqa: E402
    CreateHotelRequest,
    PublishAction,
    ReviewAction,
    ReviewHotelRequest,
    TogglePublishRequest,
)
from catalog.domain import HotelRoomType  # noqa: E402
from identity.domain import Identity, Role  # noqa: E402
from shared_kernel import Settings  # noqa: E402

# Фиксированная "сегодняшняя" дата для сценариев бронирования
TODAY = date(2030, 1, 10)


@pytest.fixture
def settings() -> Settings:
    """Настройки по умолчанию без чтения файла .env."""
    return Settings(_env_file=None)


@pytest.fixture
def app(settings):
    """Полностью собранное приложение с фиксированной датой."""
    return bootstrap_app(settings=settings, clock=lambda: TODAY)


@pytest.fixture
def merchant() -> Identity:
    return Identity(user_id=uuid4(), role=Role.MERCHANT)


@pytest.fixture
def other_merchant() -> Identity:
    return Identity(user_id=uuid4(), role=Role.MERCHANT)


@pytest.fixture
def admin() -> Identity:
    return Identity(user_id=uuid4(), role=Role.ADMIN)


@pytest.fixture
def end_user() -> Identity:
    return Identity(user_id=uuid4(), role=Role.END_USER)


def hotel_request(**overrides) -> CreateHotelRequest:
    """Типовая карточка отеля."""
    data = dict(
        name="Гранд Отель",
        address="Шанхай, Нанкин-роуд, 1",
        star=4,
        price=Decimal("500"),
        discount=Decimal("0.9"),
        room_types=[
            HotelRoomType(name="Делюкс", price=Decimal("800"), bed_type="king", area=35)
        ],
        images=["/uploads/hotel-1.jpg"],
        tags=["центр"],
        facilities=["wifi"],
    )
    data.update(overrides)
    return CreateHotelRequest(**data)


@pytest.fixture
def published_hotel(app, merchant, admin):
    """Отель, прошедший модерацию и опубликованный."""
    service = app.catalog_service
    hotel = service.create_hotel(merchant, hotel_request())
    service.review_hotel(admin, hotel.id, ReviewHotelRequest(action=ReviewAction.APPROVE))
    return service.toggle_publish(
        merchant, hotel.id, TogglePublishRequest(action=PublishAction.PUBLISH)
    )
