"""
Доменная модель контекста бронирования.

Содержит агрегат Order с явной таблицей переходов статусов, профиль
участника программы лояльности и политики бронирования.
"""

import random
from datetime import date, datetime
from decimal import ROUND_FLOOR, Decimal
from enum import Enum
from typing import Dict, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, model_validator

from pricing.domain import MemberLevel, PriceBreakdown, PriceCalculator
from shared_kernel import (
    AggregateRoot,
    Amount,
    DateRange,
    DomainEvent,
    EntityId,
    NotFoundError,
    PolicyViolationError,
    StateConflictError,
    ValidationError,
    generate_id,
    now,
    to_decimal,
)

PHONE_PATTERN = r"^1[3-9]\d{9}$"
EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"


class HotelNotAvailableError(NotFoundError):
    """Отель не найден, не одобрен или не опубликован."""


class OrderStatus(str, Enum):
    """Статусы заказа."""

    PENDING_PAYMENT = "pending_payment"  # Ожидает оплаты
    PAID = "paid"  # Оплачен
    CONFIRMED = "confirmed"  # Подтвержден отелем
    CHECKED_IN = "checked_in"  # Гость заселился
    COMPLETED = "completed"  # Завершен
    CANCELLED = "cancelled"  # Отменен
    REFUNDED = "refunded"  # Возвращен


class OrderAction(str, Enum):
    """Действия над заказом."""

    PAY = "pay"
    CANCEL = "cancel"
    CONFIRM = "confirm"
    REFUND = "refund"
    CHECK_IN = "check_in"
    COMPLETE = "complete"


ORDER_TRANSITIONS: Dict[Tuple[OrderStatus, OrderAction], OrderStatus] = {
    (OrderStatus.PENDING_PAYMENT, OrderAction.PAY): OrderStatus.PAID,
    (OrderStatus.PENDING_PAYMENT, OrderAction.CANCEL): OrderStatus.CANCELLED,
    (OrderStatus.PAID, OrderAction.CANCEL): OrderStatus.CANCELLED,
    (OrderStatus.PAID, OrderAction.CONFIRM): OrderStatus.CONFIRMED,
    (OrderStatus.PAID, OrderAction.REFUND): OrderStatus.REFUNDED,
    (OrderStatus.CONFIRMED, OrderAction.CHECK_IN): OrderStatus.CHECKED_IN,
    (OrderStatus.CHECKED_IN, OrderAction.COMPLETE): OrderStatus.COMPLETED,
}


def next_order_status(status: OrderStatus, action: OrderAction) -> OrderStatus:
    """Возвращает статус после действия или бросает StateConflictError."""
    target = ORDER_TRANSITIONS.get((status, action))
    if target is None:
        raise StateConflictError(
            f"Действие {action.value} недоступно для заказа в статусе {status.value}",
            action=action.value,
            order_status=status.value,
        )
    return target


class PaymentMethod(str, Enum):
    """Способы оплаты."""

    WECHAT_PAY = "wechat_pay"
    ALIPAY = "alipay"
    UNION_PAY = "union_pay"
    BALANCE = "balance"


class RoomSnapshot(BaseModel):
    """Снимок номера на момент бронирования.

    Последующие правки отеля не меняют уже оформленные заказы.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    booked_price: Decimal = Field(..., ge=0)
    bed_type: Optional[str] = None
    area: Optional[int] = None


# События


class OrderCreated(DomainEvent):
    order_id: EntityId
    order_no: str
    user_id: EntityId
    hotel_id: EntityId
    actual_payment: Decimal


class OrderPaid(DomainEvent):
    order_id: EntityId
    order_no: str
    user_id: EntityId
    amount: Decimal
    payment_method: PaymentMethod


class OrderCancelled(DomainEvent):
    order_id: EntityId
    order_no: str
    reason: str
    previous_status: OrderStatus


class RefundRequested(DomainEvent):
    """Запрос на возврат денег за оплаченный заказ."""

    order_id: EntityId
    order_no: str
    amount: Decimal


class OrderStatusChanged(DomainEvent):
    """Смена статуса без побочных эффектов (подтверждение, заселение, завершение)."""

    order_id: EntityId
    order_no: str
    from_status: OrderStatus
    to_status: OrderStatus


class PointsAccrued(DomainEvent):
    user_id: EntityId
    order_no: str
    points: int
    balance: int


class Order(AggregateRoot):
    """Агрегат "Заказ"."""

    id: EntityId = Field(default_factory=generate_id)
    order_no: str
    user_id: EntityId
    hotel_id: EntityId
    hotel_name: str
    room: RoomSnapshot
    check_in: date
    check_out: date
    nights: int = Field(..., ge=1)
    rooms_count: int = Field(1, ge=1)
    adults: int = Field(2, ge=1)
    children: int = Field(0, ge=0)
    contact_name: str = Field(..., min_length=1, max_length=50)
    contact_phone: str = Field(..., pattern=PHONE_PATTERN)
    contact_email: Optional[str] = Field(None, pattern=EMAIL_PATTERN)
    special_requests: Optional[str] = None
    room_price: Decimal = Field(..., ge=0)
    total_price: Decimal = Field(..., ge=0)
    discount_amount: Decimal = Field(Decimal("0"), ge=0)
    actual_payment: Decimal = Field(..., ge=0)
    order_status: OrderStatus = OrderStatus.PENDING_PAYMENT
    payment_method: Optional[PaymentMethod] = None
    payment_time: Optional[datetime] = None
    cancel_reason: Optional[str] = None
    cancel_time: Optional[datetime] = None
    created_at: datetime = Field(default_factory=now)
    updated_at: datetime = Field(default_factory=now)
    version: int = 1

    @model_validator(mode="after")
    def check_amounts(self) -> "Order":
        if self.actual_payment != self.total_price - self.discount_amount:
            raise ValueError("Сумма к оплате должна равняться цене за вычетом скидки")
        if (self.check_out - self.check_in).days != self.nights:
            raise ValueError("Количество ночей не совпадает с датами проживания")
        return self

    @property
    def period(self) -> DateRange:
        return DateRange(check_in=self.check_in, check_out=self.check_out)

    @property
    def can_cancel(self) -> bool:
        return self.order_status in (OrderStatus.PENDING_PAYMENT, OrderStatus.PAID)

    @property
    def can_pay(self) -> bool:
        return self.order_status == OrderStatus.PENDING_PAYMENT

    @property
    def can_review(self) -> bool:
        return self.order_status == OrderStatus.COMPLETED

    @classmethod
    def create(
        cls,
        order_no: str,
        user_id: EntityId,
        hotel_id: EntityId,
        hotel_name: str,
        room: RoomSnapshot,
        period: DateRange,
        price: PriceBreakdown,
        contact_name: str,
        contact_phone: str,
        rooms_count: int = 1,
        adults: int = 2,
        children: int = 0,
        contact_email: Optional[str] = None,
        special_requests: Optional[str] = None,
    ) -> "Order":
        """Создает заказ в статусе pending_payment с зафиксированной ценой."""
        order = cls(
            order_no=order_no,
            user_id=user_id,
            hotel_id=hotel_id,
            hotel_name=hotel_name,
            room=room,
            check_in=period.check_in,
            check_out=period.check_out,
            nights=period.nights,
            rooms_count=rooms_count,
            adults=adults,
            children=children,
            contact_name=contact_name,
            contact_phone=contact_phone,
            contact_email=contact_email,
            special_requests=special_requests,
            room_price=room.booked_price,
            total_price=price.original_total,
            discount_amount=price.total_discount,
            actual_payment=price.final_total,
        )
        order.record_event(
            OrderCreated(
                order_id=order.id,
                order_no=order.order_no,
                user_id=user_id,
                hotel_id=hotel_id,
                actual_payment=order.actual_payment,
            )
        )
        return order

    def _transition(self, action: OrderAction) -> OrderStatus:
        previous = self.order_status
        self.order_status = next_order_status(previous, action)
        self.updated_at = now()
        self.version += 1
        return previous

    def pay(self, method: PaymentMethod = PaymentMethod.WECHAT_PAY) -> None:
        """Фиксирует оплату заказа."""
        self._transition(OrderAction.PAY)
        self.payment_method = method
        self.payment_time = self.updated_at
        self.record_event(
            OrderPaid(
                order_id=self.id,
                order_no=self.order_no,
                user_id=self.user_id,
                amount=self.actual_payment,
                payment_method=method,
            )
        )

    def cancel(self, reason: str) -> None:
        """Отменяет заказ. Для оплаченного заказа запрашивается возврат."""
        previous = self._transition(OrderAction.CANCEL)
        self.cancel_reason = reason
        self.cancel_time = self.updated_at
        self.record_event(
            OrderCancelled(
                order_id=self.id,
                order_no=self.order_no,
                reason=reason,
                previous_status=previous,
            )
        )
        if previous == OrderStatus.PAID:
            self._request_refund()

    def refund(self) -> None:
        """Возврат оплаченного заказа без отмены пользователем."""
        self._transition(OrderAction.REFUND)
        self._request_refund()

    def _request_refund(self) -> None:
        self.record_event(
            RefundRequested(
                order_id=self.id, order_no=self.order_no, amount=self.actual_payment
            )
        )

    def _mark(self, action: OrderAction) -> None:
        previous = self._transition(action)
        self.record_event(
            OrderStatusChanged(
                order_id=self.id,
                order_no=self.order_no,
                from_status=previous,
                to_status=self.order_status,
            )
        )

    def confirm(self) -> None:
        self._mark(OrderAction.CONFIRM)

    def mark_checked_in(self) -> None:
        self._mark(OrderAction.CHECK_IN)

    def complete(self) -> None:
        self._mark(OrderAction.COMPLETE)


class MemberProfile(AggregateRoot):
    """Профиль участника программы лояльности."""

    user_id: EntityId
    member_level: MemberLevel = MemberLevel.ORDINARY
    points: int = Field(0, ge=0)
    updated_at: datetime = Field(default_factory=now)
    version: int = 1

    @property
    def discount_rate(self) -> Decimal:
        return PriceCalculator.get_member_discount(self.member_level)

    def accrue_points(self, amount: Amount, order_no: str) -> int:
        """Начисляет баллы: по одному за каждую целую единицу оплаты."""
        earned = int(to_decimal(amount).to_integral_value(rounding=ROUND_FLOOR))
        if earned < 0:
            raise ValidationError("Сумма оплаты не может быть отрицательной")
        self.points += earned
        self.updated_at = now()
        self.version += 1
        self.record_event(
            PointsAccrued(
                user_id=self.user_id,
                order_no=order_no,
                points=earned,
                balance=self.points,
            )
        )
        return earned


class BookingPolicy:
    """Политики и бизнес-правила для бронирований."""

    MAX_STAY_NIGHTS = 30

    def __init__(self, max_stay_nights: int = MAX_STAY_NIGHTS):
        self.max_stay_nights = max_stay_nights

    def validate_stay(self, check_in: date, check_out: date, today: date) -> DateRange:
        """Проверяет даты проживания и возвращает период."""
        if check_in < today:
            raise ValidationError("Дата заезда не может быть в прошлом")
        if check_out <= check_in:
            raise ValidationError("Дата выезда должна быть позже даты заезда")

        period = DateRange(check_in=check_in, check_out=check_out)
        if period.nights > self.max_stay_nights:
            raise PolicyViolationError(
                f"Максимальный срок бронирования - {self.max_stay_nights} ночей",
                nights=period.nights,
            )
        return period


def generate_order_no(
    day: date, prefix: str = "E", rng: Optional[random.Random] = None
) -> str:
    """Номер заказа: префикс, дата YYYYMMDD и четыре случайные цифры."""
    suffix = (rng or random).randint(0, 9999)
    return f"{prefix}{day:%Y%m%d}{suffix:04d}"
