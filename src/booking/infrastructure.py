"""
Инфраструктурный слой контекста бронирования.

Содержит реализации репозиториев и внешних сервисов, зависимые от
конкретных технологий.
"""

import threading
from decimal import Decimal
from typing import Dict, Iterable, List, Optional

from catalog.interfaces import IHotelReader
from shared_kernel import (
    ConcurrencyError,
    EntityId,
    EventPublishingUnitOfWork,
    IEventBus,
    ILogger,
    NotFoundError,
    StructuredLogger,
)

from . import interfaces as ports
from .domain import MemberProfile, Order, OrderStatus


class InMemoryOrderRepository(ports.IOrderRepository):
    """Реализация репозитория заказов в памяти."""

    def __init__(self):
        self._orders: Dict[EntityId, Order] = {}
        self._lock = threading.RLock()

    @staticmethod
    def _snapshot(order: Order) -> Order:
        copy = order.model_copy(deep=True)
        copy.clear_events()
        return copy

    def get_by_id(self, order_id: EntityId) -> Optional[Order]:
        with self._lock:
            order = self._orders.get(order_id)
            return self._snapshot(order) if order is not None else None

    def get_by_order_no(self, order_no: str) -> Optional[Order]:
        with self._lock:
            for order in self._orders.values():
                if order.order_no == order_no:
                    return self._snapshot(order)
        return None

    def add(self, order: Order) -> None:
        with self._lock:
            if order.id in self._orders:
                raise ValueError(f"Order with id {order.id} already exists")
            if any(o.order_no == order.order_no for o in self._orders.values()):
                raise ConcurrencyError(
                    "Номер заказа уже занят", order_no=order.order_no
                )
            self._orders[order.id] = self._snapshot(order)

    def save(self, order: Order, expected_status: Optional[OrderStatus] = None) -> None:
        """Условное обновление: запись только если статус не изменился."""
        with self._lock:
            stored = self._orders.get(order.id)
            if stored is None:
                raise NotFoundError(f"Заказ {order.id} не найден", order_id=order.id)
            if expected_status is not None and stored.order_status != expected_status:
                raise ConcurrencyError(
                    "Заказ был изменен параллельным запросом",
                    order_id=order.id,
                    expected=expected_status.value,
                    actual=stored.order_status.value,
                )
            self._orders[order.id] = self._snapshot(order)

    def list_by_user(
        self,
        user_id: EntityId,
        statuses: Optional[Iterable[OrderStatus]] = None,
    ) -> List[Order]:
        allowed = set(statuses) if statuses is not None else None
        with self._lock:
            orders = [
                self._snapshot(order)
                for order in self._orders.values()
                if order.user_id == user_id
                and (allowed is None or order.order_status in allowed)
            ]
        return sorted(orders, key=lambda order: order.created_at, reverse=True)


class InMemoryProfileRepository(ports.IProfileRepository):
    """Реализация репозитория профилей участников в памяти."""

    def __init__(self):
        self._profiles: Dict[EntityId, MemberProfile] = {}
        self._lock = threading.RLock()

    @staticmethod
    def _snapshot(profile: MemberProfile) -> MemberProfile:
        copy = profile.model_copy(deep=True)
        copy.clear_events()
        return copy

    def get(self, user_id: EntityId) -> Optional[MemberProfile]:
        with self._lock:
            profile = self._profiles.get(user_id)
            return self._snapshot(profile) if profile is not None else None

    def add(self, profile: MemberProfile) -> None:
        with self._lock:
            if profile.user_id in self._profiles:
                raise ConcurrencyError(
                    "Профиль участника уже существует", user_id=profile.user_id
                )
            self._profiles[profile.user_id] = self._snapshot(profile)

    def get_or_create(self, user_id: EntityId) -> MemberProfile:
        """Возвращает профиль, атомарно создавая обычный профиль без баллов."""
        with self._lock:
            profile = self._profiles.get(user_id)
            if profile is None:
                profile = MemberProfile(user_id=user_id)
                self._profiles[user_id] = profile
            return self._snapshot(profile)

    def save(self, profile: MemberProfile, expected_version: Optional[int] = None) -> None:
        """Условное обновление: запись только если версия не изменилась."""
        with self._lock:
            stored = self._profiles.get(profile.user_id)
            if stored is None:
                raise NotFoundError(
                    f"Профиль участника {profile.user_id} не найден",
                    user_id=profile.user_id,
                )
            if expected_version is not None and stored.version != expected_version:
                raise ConcurrencyError(
                    "Профиль участника был изменен параллельным запросом",
                    user_id=profile.user_id,
                    expected=expected_version,
                    actual=stored.version,
                )
            self._profiles[profile.user_id] = self._snapshot(profile)


class LoggingNotificationSink(ports.INotificationSink):
    """Имитация платежного шлюза: запросы на возврат пишутся в лог."""

    def __init__(self, logger: Optional[ILogger] = None):
        self._logger = logger or StructuredLogger("hotel_booking.notifications")
        self.refunds: List[Dict[str, object]] = []

    def request_refund(self, order_no: str, amount: Decimal) -> None:
        self.refunds.append({"order_no": order_no, "amount": amount})
        self._logger.info("Refund requested", order_no=order_no, amount=amount)


class BookingUnitOfWork(EventPublishingUnitOfWork, ports.IBookingUnitOfWork):
    """Единица работы для контекста бронирования."""

    name = "BookingUnitOfWork"

    def __init__(
        self,
        hotels: IHotelReader,
        orders_repo: Optional[ports.IOrderRepository] = None,
        profiles_repo: Optional[ports.IProfileRepository] = None,
        event_bus: Optional[IEventBus] = None,
        logger: Optional[ILogger] = None,
    ):
        super().__init__(event_bus=event_bus, logger=logger)
        self._hotels = hotels
        self._orders = orders_repo or InMemoryOrderRepository()
        self._profiles = profiles_repo or InMemoryProfileRepository()

    @property
    def orders(self) -> ports.IOrderRepository:
        return self._orders

    @property
    def profiles(self) -> ports.IProfileRepository:
        return self._profiles

    @property
    def hotels(self) -> IHotelReader:
        return self._hotels
