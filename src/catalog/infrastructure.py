"""
Инфраструктурный слой контекста каталога отелей.

Содержит реализации репозиториев, зависимые от конкретных технологий.
"""

import threading
from typing import Dict, List, Optional

from shared_kernel import (
    ConcurrencyError,
    EntityId,
    EventPublishingUnitOfWork,
    IEventBus,
    ILogger,
    NotFoundError,
)

from . import interfaces as ports
from .domain import Hotel, HotelState, PublishStatus, ReviewStatus


class InMemoryHotelRepository(ports.IHotelRepository):
    """Реализация репозитория отелей в памяти.

    Хранит и отдает копии агрегатов, поэтому изменения попадают в
    хранилище только через ``add``/``save``.
    """

    def __init__(self):
        self._hotels: Dict[EntityId, Hotel] = {}
        self._lock = threading.RLock()

    @staticmethod
    def _snapshot(hotel: Hotel) -> Hotel:
        copy = hotel.model_copy(deep=True)
        copy.clear_events()
        return copy

    def get_by_id(self, hotel_id: EntityId) -> Optional[Hotel]:
        with self._lock:
            hotel = self._hotels.get(hotel_id)
            return self._snapshot(hotel) if hotel is not None else None

    def add(self, hotel: Hotel) -> None:
        with self._lock:
            if hotel.id in self._hotels:
                raise ValueError(f"Hotel with id {hotel.id} already exists")
            self._hotels[hotel.id] = self._snapshot(hotel)

    def save(
        self,
        hotel: Hotel,
        expected_state: Optional[HotelState] = None,
        expected_version: Optional[int] = None,
    ) -> None:
        """Условное обновление: запись только если состояние и версия
        хранимой копии совпадают с ожидаемыми."""
        with self._lock:
            stored = self._hotels.get(hotel.id)
            if stored is None:
                raise NotFoundError(f"Отель {hotel.id} не найден", hotel_id=hotel.id)
            if (expected_state is not None and stored.state != expected_state) or (
                expected_version is not None and stored.version != expected_version
            ):
                raise ConcurrencyError(
                    "Отель был изменен параллельным запросом", hotel_id=hotel.id
                )
            self._hotels[hotel.id] = self._snapshot(hotel)

    def delete(self, hotel_id: EntityId) -> None:
        with self._lock:
            if self._hotels.pop(hotel_id, None) is None:
                raise NotFoundError(f"Отель {hotel_id} не найден", hotel_id=hotel_id)

    def list(
        self,
        review_status: Optional[ReviewStatus] = None,
        publish_status: Optional[PublishStatus] = None,
        merchant_id: Optional[EntityId] = None,
    ) -> List[Hotel]:
        with self._lock:
            hotels = [
                self._snapshot(hotel)
                for hotel in self._hotels.values()
                if (review_status is None or hotel.review_status == review_status)
                and (publish_status is None or hotel.publish_status == publish_status)
                and (merchant_id is None or hotel.merchant_id == merchant_id)
            ]
        return sorted(hotels, key=lambda hotel: hotel.created_at, reverse=True)


class CatalogUnitOfWork(EventPublishingUnitOfWork, ports.ICatalogUnitOfWork):
    """Единица работы для контекста каталога."""

    name = "CatalogUnitOfWork"

    def __init__(
        self,
        hotels_repo: Optional[ports.IHotelRepository] = None,
        event_bus: Optional[IEventBus] = None,
        logger: Optional[ILogger] = None,
    ):
        super().__init__(event_bus=event_bus, logger=logger)
        self._hotels = hotels_repo or InMemoryHotelRepository()

    @property
    def hotels(self) -> ports.IHotelRepository:
        return self._hotels
