"""
Прикладной слой контекста бронирования.

Содержит сервисы приложения, которые координируют
взаимодействие между внешними интерфейсами и доменной моделью.
"""

import random
from datetime import date, datetime, timedelta
from decimal import Decimal
from enum import Enum
from typing import Callable, Dict, FrozenSet, List, Optional

from pydantic import BaseModel, Field

from catalog.domain import Hotel
from identity.domain import Identity, Role
from pricing.domain import MemberLevel, PriceBreakdown, PriceCalculator
from shared_kernel import (
    AuthorizationError,
    DateRange,
    EntityId,
    ILogger,
    NotFoundError,
    Pagination,
    Settings,
    StateConflictError,
    StructuredLogger,
    paginate,
    round_money,
    today,
)

from . import interfaces as ports
from .domain import (
    EMAIL_PATTERN,
    PHONE_PATTERN,
    BookingPolicy,
    HotelNotAvailableError,
    Order,
    OrderStatus,
    PaymentMethod,
    RoomSnapshot,
    generate_order_no,
)

DEFAULT_ROOM_NAME = "standard"

# DTO (Data Transfer Objects) для входящих данных


class CreateOrderRequest(BaseModel):
    """Запрос на создание заказа."""

    hotel_id: EntityId
    room_type: Optional[str] = None  # Название типа номера отеля
    check_in: date
    check_out: date
    rooms_count: int = Field(1, ge=1)
    adults: int = Field(2, ge=1)
    children: int = Field(0, ge=0)
    contact_name: str = Field(..., min_length=1, max_length=50)
    contact_phone: str = Field(..., pattern=PHONE_PATTERN)
    contact_email: Optional[str] = Field(None, pattern=EMAIL_PATTERN)
    special_requests: Optional[str] = None


class PayOrderRequest(BaseModel):
    """Запрос на оплату заказа."""

    payment_method: Optional[PaymentMethod] = None


class CancelOrderRequest(BaseModel):
    """Запрос на отмену заказа."""

    reason: Optional[str] = None


class RebookOrderRequest(BaseModel):
    """Запрос на повторное бронирование. Без дат: завтра -> послезавтра."""

    check_in: Optional[date] = None
    check_out: Optional[date] = None


class OrderCategory(str, Enum):
    """Вкладки списка заказов."""

    ALL = "all"
    UPCOMING = "upcoming"  # Предстоящие
    STAYED = "stayed"  # Проживание состоялось
    CANCELLED = "cancelled"


CATEGORY_STATUSES: Dict[OrderCategory, Optional[FrozenSet[OrderStatus]]] = {
    OrderCategory.ALL: None,
    OrderCategory.UPCOMING: frozenset(
        {OrderStatus.PENDING_PAYMENT, OrderStatus.PAID, OrderStatus.CONFIRMED}
    ),
    OrderCategory.STAYED: frozenset({OrderStatus.CHECKED_IN, OrderStatus.COMPLETED}),
    OrderCategory.CANCELLED: frozenset({OrderStatus.CANCELLED, OrderStatus.REFUNDED}),
}


class ListOrdersRequest(BaseModel):
    """Запрос списка заказов пользователя."""

    category: OrderCategory = OrderCategory.ALL
    page: int = Field(1, ge=1)
    page_size: Optional[int] = Field(None, ge=1)


# DTO для исходящих данных


class OrderDTO(BaseModel):
    """DTO для представления заказа."""

    id: EntityId
    order_no: str
    user_id: EntityId
    hotel_id: EntityId
    hotel_name: str
    room: RoomSnapshot
    check_in: date
    check_out: date
    nights: int
    rooms_count: int
    adults: int
    children: int
    contact_name: str
    contact_phone: str
    contact_email: Optional[str]
    special_requests: Optional[str]
    room_price: Decimal
    total_price: Decimal
    discount_amount: Decimal
    actual_payment: Decimal
    average_per_night: Decimal
    order_status: OrderStatus
    payment_method: Optional[PaymentMethod]
    payment_time: Optional[datetime]
    cancel_reason: Optional[str]
    cancel_time: Optional[datetime]
    created_at: datetime
    updated_at: datetime
    can_cancel: bool
    can_pay: bool
    can_review: bool

    @classmethod
    def from_domain(cls, order: Order) -> "OrderDTO":
        """Создает DTO из доменной модели."""
        return cls(
            id=order.id,
            order_no=order.order_no,
            user_id=order.user_id,
            hotel_id=order.hotel_id,
            hotel_name=order.hotel_name,
            room=order.room,
            check_in=order.check_in,
            check_out=order.check_out,
            nights=order.nights,
            rooms_count=order.rooms_count,
            adults=order.adults,
            children=order.children,
            contact_name=order.contact_name,
            contact_phone=order.contact_phone,
            contact_email=order.contact_email,
            special_requests=order.special_requests,
            room_price=order.room_price,
            total_price=order.total_price,
            discount_amount=order.discount_amount,
            actual_payment=order.actual_payment,
            average_per_night=round_money(order.actual_payment / order.nights),
            order_status=order.order_status,
            payment_method=order.payment_method,
            payment_time=order.payment_time,
            cancel_reason=order.cancel_reason,
            cancel_time=order.cancel_time,
            created_at=order.created_at,
            updated_at=order.updated_at,
            can_cancel=order.can_cancel,
            can_pay=order.can_pay,
            can_review=order.can_review,
        )


class PaymentResultDTO(BaseModel):
    """Результат оплаты заказа."""

    order: OrderDTO
    points_earned: int
    points_balance: int
    member_level: MemberLevel


class OrderPageDTO(BaseModel):
    """Страница списка заказов."""

    items: List[OrderDTO]
    pagination: Pagination


class OrderStatisticsDTO(BaseModel):
    """Количество заказов пользователя по вкладкам."""

    all: int
    to_pay: int
    to_check_in: int
    checked_in: int
    cancelled: int


# Сервисы приложения


class BookingApplicationService:
    """Сервис приложения для работы с заказами."""

    def __init__(
        self,
        uow: ports.IBookingUnitOfWork,
        settings: Optional[Settings] = None,
        logger: Optional[ILogger] = None,
        clock: Callable[[], date] = today,
        rng: Optional[random.Random] = None,
    ):
        """Инициализирует сервис."""
        self._uow = uow
        self._settings = settings or Settings()
        self._logger = logger or StructuredLogger("hotel_booking.booking")
        self._clock = clock
        self._rng = rng or random.Random()
        self._policy = BookingPolicy(max_stay_nights=self._settings.max_stay_nights)

    # Вспомогательные методы

    def _load_owned(self, identity: Identity, order_id: EntityId) -> Order:
        order = self._uow.orders.get_by_id(order_id)
        if order is None:
            raise NotFoundError("Заказ не найден", order_id=order_id)
        if order.user_id != identity.user_id:
            raise AuthorizationError("Нет доступа к заказу", order_id=order_id)
        return order

    def _load_bookable_hotel(self, hotel_id: EntityId) -> Hotel:
        hotel = self._uow.hotels.get_by_id(hotel_id)
        if hotel is None or not hotel.is_bookable:
            raise HotelNotAvailableError(
                "Отель не найден или недоступен для бронирования", hotel_id=hotel_id
            )
        return hotel

    @staticmethod
    def _resolve_room(hotel: Hotel, room_type: Optional[str]) -> RoomSnapshot:
        """Тип номера отеля по названию, иначе базовая цена отеля."""
        if room_type:
            found = hotel.find_room_type(room_type)
            if found is not None:
                return RoomSnapshot(
                    name=found.name,
                    booked_price=found.price,
                    bed_type=found.bed_type,
                    area=found.area,
                )
        return RoomSnapshot(name=room_type or DEFAULT_ROOM_NAME, booked_price=hotel.price)

    def _member_discount(self, user_id: EntityId) -> Optional[Decimal]:
        profile = self._uow.profiles.get(user_id)
        if profile is None:
            return None
        return profile.discount_rate

    def _next_order_no(self) -> str:
        day = self._clock()
        for _ in range(self._settings.order_no_attempts):
            order_no = generate_order_no(day, self._settings.order_no_prefix, self._rng)
            if self._uow.orders.get_by_order_no(order_no) is None:
                return order_no
        raise StateConflictError("Не удалось подобрать свободный номер заказа")

    def _book(
        self,
        user_id: EntityId,
        hotel_id: EntityId,
        check_in: date,
        check_out: date,
        contact_name: str,
        contact_phone: str,
        room_type: Optional[str] = None,
        room: Optional[RoomSnapshot] = None,
        rooms_count: int = 1,
        adults: int = 2,
        children: int = 0,
        contact_email: Optional[str] = None,
        special_requests: Optional[str] = None,
    ) -> Order:
        """Сценарий бронирования.

        Даты -> доступность отеля -> тип номера -> скидка участника ->
        расчет цены -> сохранение заказа. Состояние отеля не меняется.
        """
        period: DateRange = self._policy.validate_stay(
            check_in, check_out, self._clock()
        )
        hotel = self._load_bookable_hotel(hotel_id)
        if room is None:
            room = self._resolve_room(hotel, room_type)

        price: PriceBreakdown = PriceCalculator.calculate_total(
            room.booked_price,
            nights=period.nights,
            rooms=rooms_count,
            discount=hotel.discount,
            member_discount=self._member_discount(user_id),
        )

        order = Order.create(
            order_no=self._next_order_no(),
            user_id=user_id,
            hotel_id=hotel.id,
            hotel_name=hotel.name,
            room=room,
            period=period,
            price=price,
            rooms_count=rooms_count,
            adults=adults,
            children=children,
            contact_name=contact_name,
            contact_phone=contact_phone,
            contact_email=contact_email,
            special_requests=special_requests,
        )
        self._uow.orders.add(order)
        self._uow.track(order)
        return order

    # Команды

    def create_order(self, identity: Identity, request: CreateOrderRequest) -> OrderDTO:
        """Создает заказ."""
        identity.require_role(Role.END_USER)
        try:
            order = self._book(
                user_id=identity.user_id,
                hotel_id=request.hotel_id,
                check_in=request.check_in,
                check_out=request.check_out,
                room_type=request.room_type,
                rooms_count=request.rooms_count,
                adults=request.adults,
                children=request.children,
                contact_name=request.contact_name,
                contact_phone=request.contact_phone,
                contact_email=request.contact_email,
                special_requests=request.special_requests,
            )
            self._uow.commit()
        except Exception:
            self._uow.rollback()
            raise

        self._logger.info(
            "Order created",
            order_no=order.order_no,
            user_id=order.user_id,
            hotel_id=order.hotel_id,
            actual_payment=order.actual_payment,
        )
        return OrderDTO.from_domain(order)

    def pay_order(
        self,
        identity: Identity,
        order_id: EntityId,
        request: Optional[PayOrderRequest] = None,
    ) -> PaymentResultDTO:
        """Оплачивает заказ и начисляет баллы (1 балл за каждую целую единицу)."""
        identity.require_role(Role.END_USER)
        request = request or PayOrderRequest()
        method = request.payment_method or PaymentMethod(
            self._settings.default_payment_method
        )
        try:
            order = self._load_owned(identity, order_id)
            unpaid = order.model_copy(deep=True)
            expected_status = order.order_status
            order.pay(method)

            profile = self._uow.profiles.get_or_create(order.user_id)
            expected_version = profile.version
            earned = profile.accrue_points(order.actual_payment, order.order_no)

            self._uow.orders.save(order, expected_status=expected_status)
            try:
                self._uow.profiles.save(profile, expected_version=expected_version)
            except Exception:
                # оплата без начисления баллов не сохраняется
                self._uow.orders.save(unpaid, expected_status=OrderStatus.PAID)
                raise

            self._uow.track(order)
            self._uow.track(profile)
            self._uow.commit()
        except Exception:
            self._uow.rollback()
            raise

        self._logger.info(
            "Order paid",
            order_no=order.order_no,
            payment_method=method.value,
            points_earned=earned,
        )
        return PaymentResultDTO(
            order=OrderDTO.from_domain(order),
            points_earned=earned,
            points_balance=profile.points,
            member_level=profile.member_level,
        )

    def cancel_order(
        self,
        identity: Identity,
        order_id: EntityId,
        request: Optional[CancelOrderRequest] = None,
    ) -> OrderDTO:
        """Отменяет заказ. Для оплаченного заказа запрашивается возврат."""
        identity.require_role(Role.END_USER)
        request = request or CancelOrderRequest()
        reason = (request.reason or "").strip() or self._settings.default_cancel_reason
        try:
            order = self._load_owned(identity, order_id)
            expected_status = order.order_status
            order.cancel(reason)
            self._uow.orders.save(order, expected_status=expected_status)
            self._uow.track(order)
            self._uow.commit()
        except Exception:
            self._uow.rollback()
            raise

        self._logger.info(
            "Order cancelled",
            order_no=order.order_no,
            previous_status=expected_status.value,
            reason=reason,
        )
        return OrderDTO.from_domain(order)

    def rebook_order(
        self,
        identity: Identity,
        order_id: EntityId,
        request: Optional[RebookOrderRequest] = None,
    ) -> OrderDTO:
        """Создает новый заказ по данным существующего. Исходный заказ не меняется."""
        identity.require_role(Role.END_USER)
        request = request or RebookOrderRequest()
        check_in = request.check_in or self._clock() + timedelta(days=1)
        check_out = request.check_out or check_in + timedelta(days=1)
        try:
            source = self._load_owned(identity, order_id)
            order = self._book(
                user_id=identity.user_id,
                hotel_id=source.hotel_id,
                check_in=check_in,
                check_out=check_out,
                room=source.room,
                rooms_count=source.rooms_count,
                adults=source.adults,
                children=source.children,
                contact_name=source.contact_name,
                contact_phone=source.contact_phone,
                contact_email=source.contact_email,
                special_requests=source.special_requests,
            )
            self._uow.commit()
        except Exception:
            self._uow.rollback()
            raise

        self._logger.info(
            "Order rebooked", source_order_no=source.order_no, order_no=order.order_no
        )
        return OrderDTO.from_domain(order)

    # Запросы

    def get_order(self, identity: Identity, order_id: EntityId) -> OrderDTO:
        """Возвращает заказ владельцу."""
        identity.require_role(Role.END_USER)
        return OrderDTO.from_domain(self._load_owned(identity, order_id))

    def list_orders(
        self, identity: Identity, request: Optional[ListOrdersRequest] = None
    ) -> OrderPageDTO:
        """Возвращает страницу заказов пользователя, новые первыми."""
        identity.require_role(Role.END_USER)
        request = request or ListOrdersRequest()
        orders = self._uow.orders.list_by_user(
            identity.user_id, statuses=CATEGORY_STATUSES[request.category]
        )
        page_size = min(
            request.page_size or self._settings.default_page_size,
            self._settings.max_page_size,
        )
        items, pagination = paginate(orders, request.page, page_size)
        return OrderPageDTO(
            items=[OrderDTO.from_domain(order) for order in items],
            pagination=pagination,
        )

    def get_order_statistics(self, identity: Identity) -> OrderStatisticsDTO:
        """Считает заказы пользователя по вкладкам."""
        identity.require_role(Role.END_USER)
        orders = self._uow.orders.list_by_user(identity.user_id)

        def count(*statuses: OrderStatus) -> int:
            return sum(1 for order in orders if order.order_status in statuses)

        return OrderStatisticsDTO(
            all=len(orders),
            to_pay=count(OrderStatus.PENDING_PAYMENT),
            to_check_in=count(OrderStatus.PAID, OrderStatus.CONFIRMED),
            checked_in=count(OrderStatus.CHECKED_IN, OrderStatus.COMPLETED),
            cancelled=count(OrderStatus.CANCELLED, OrderStatus.REFUNDED),
        )
