"""
Интерфейсы (порты) для контекста бронирования.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Iterable, List, Optional, Protocol

from catalog.interfaces import IHotelReader
from shared_kernel import AggregateRoot, EntityId, IEventBus

from .domain import MemberProfile, Order, OrderStatus


class IOrderRepository(Protocol):
    """Интерфейс репозитория для заказов."""

    def get_by_id(self, order_id: EntityId) -> Order | None: ...
    def get_by_order_no(self, order_no: str) -> Order | None: ...
    def add(self, order: Order) -> None: ...
    def save(
        self, order: Order, expected_status: Optional[OrderStatus] = None
    ) -> None: ...
    def list_by_user(
        self,
        user_id: EntityId,
        statuses: Optional[Iterable[OrderStatus]] = None,
    ) -> List[Order]: ...


class IProfileRepository(Protocol):
    """Интерфейс репозитория профилей участников."""

    def get(self, user_id: EntityId) -> MemberProfile | None: ...
    def add(self, profile: MemberProfile) -> None: ...
    def get_or_create(self, user_id: EntityId) -> MemberProfile: ...
    def save(
        self, profile: MemberProfile, expected_version: Optional[int] = None
    ) -> None: ...


class INotificationSink(Protocol):
    """Внешний получатель уведомлений о возвратах."""

    def request_refund(self, order_no: str, amount: Decimal) -> None: ...


class IBookingUnitOfWork(Protocol):
    """Интерфейс Unit of Work для контекста бронирования."""

    @property
    def orders(self) -> IOrderRepository: ...
    @property
    def profiles(self) -> IProfileRepository: ...
    @property
    def hotels(self) -> IHotelReader: ...
    @property
    def event_bus(self) -> IEventBus: ...

    def track(self, aggregate: AggregateRoot) -> None: ...
    def __enter__(self) -> IBookingUnitOfWork: ...
    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None: ...
    def commit(self) -> None: ...
    def rollback(self) -> None: ...
