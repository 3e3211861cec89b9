"""
Интерфейсы (порты) для контекста каталога отелей.
"""

from __future__ import annotations

from typing import Any, List, Optional, Protocol

from shared_kernel import AggregateRoot, EntityId, IEventBus

from .domain import Hotel, HotelState, PublishStatus, ReviewStatus


class IHotelReader(Protocol):
    """Чтение отелей (используется другими контекстами)."""

    def get_by_id(self, hotel_id: EntityId) -> Hotel | None: ...


class IHotelRepository(IHotelReader, Protocol):
    """Интерфейс репозитория для отелей."""

    def add(self, hotel: Hotel) -> None: ...
    def save(
        self,
        hotel: Hotel,
        expected_state: Optional[HotelState] = None,
        expected_version: Optional[int] = None,
    ) -> None: ...
    def delete(self, hotel_id: EntityId) -> None: ...
    def list(
        self,
        review_status: Optional[ReviewStatus] = None,
        publish_status: Optional[PublishStatus] = None,
        merchant_id: Optional[EntityId] = None,
    ) -> List[Hotel]: ...


class ICatalogUnitOfWork(Protocol):
    """Интерфейс Unit of Work для контекста каталога."""

    @property
    def hotels(self) -> IHotelRepository: ...
    @property
    def event_bus(self) -> IEventBus: ...

    def track(self, aggregate: AggregateRoot) -> None: ...
    def __enter__(self) -> ICatalogUnitOfWork: ...
    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None: ...
    def commit(self) -> None: ...
    def rollback(self) -> None: ...
