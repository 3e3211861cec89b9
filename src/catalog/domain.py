"""
Доменная модель контекста каталога отелей.

Содержит агрегат Hotel и его жизненный цикл: модерация (review_status)
и публикация (publish_status), заданные явной таблицей переходов.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import ClassVar, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, model_validator

from shared_kernel import (
    AggregateRoot,
    DomainEvent,
    EntityId,
    PolicyViolationError,
    StateConflictError,
    ValidationError,
    generate_id,
    now,
)


class ReviewStatus(str, Enum):
    """Статусы модерации отеля."""

    PENDING = "pending"  # Ожидает проверки
    APPROVED = "approved"  # Одобрен
    REJECTED = "rejected"  # Отклонен


class PublishStatus(str, Enum):
    """Статусы публикации отеля."""

    UNPUBLISHED = "unpublished"
    PUBLISHED = "published"


class HotelAction(str, Enum):
    """Действия над жизненным циклом отеля."""

    SUBMIT = "submit"
    APPROVE = "approve"
    REJECT = "reject"
    PUBLISH = "publish"
    UNPUBLISH = "unpublish"


HotelState = Tuple[ReviewStatus, PublishStatus]

PENDING: HotelState = (ReviewStatus.PENDING, PublishStatus.UNPUBLISHED)
APPROVED: HotelState = (ReviewStatus.APPROVED, PublishStatus.UNPUBLISHED)
PUBLISHED: HotelState = (ReviewStatus.APPROVED, PublishStatus.PUBLISHED)
REJECTED: HotelState = (ReviewStatus.REJECTED, PublishStatus.UNPUBLISHED)

HOTEL_TRANSITIONS: Dict[Tuple[HotelState, HotelAction], HotelState] = {
    (PENDING, HotelAction.SUBMIT): PENDING,
    (APPROVED, HotelAction.SUBMIT): PENDING,
    (PUBLISHED, HotelAction.SUBMIT): PENDING,
    (REJECTED, HotelAction.SUBMIT): PENDING,
    (PENDING, HotelAction.APPROVE): APPROVED,
    (PENDING, HotelAction.REJECT): REJECTED,
    (APPROVED, HotelAction.PUBLISH): PUBLISHED,
    (PUBLISHED, HotelAction.UNPUBLISH): APPROVED,
}


def next_hotel_state(state: HotelState, action: HotelAction) -> HotelState:
    """Возвращает состояние после действия или бросает StateConflictError."""
    target = HOTEL_TRANSITIONS.get((state, action))
    if target is None:
        review, publish = state
        raise StateConflictError(
            f"Действие {action.value} недоступно для отеля в статусе "
            f"{review.value}/{publish.value}",
            action=action.value,
            review_status=review.value,
            publish_status=publish.value,
        )
    return target


class HotelRoomType(BaseModel):
    """Тип номера, предлагаемый отелем."""

    name: str = Field(..., min_length=1, max_length=100)
    price: Decimal = Field(..., ge=0)
    bed_type: Optional[str] = None
    area: Optional[int] = Field(None, gt=0)  # Площадь, м²


class HotelContent(BaseModel):
    """Редактируемое содержимое карточки отеля."""

    name: str = Field(..., min_length=1, max_length=200)
    name_en: Optional[str] = Field(None, max_length=200)
    address: str = Field(..., min_length=1)
    star: int = Field(..., ge=1, le=5)
    price: Decimal = Field(..., ge=0)  # Базовая цена за ночь
    discount: Optional[Decimal] = Field(None, gt=0, lt=1)  # Множитель акции
    discount_description: Optional[str] = None
    room_types: List[HotelRoomType] = Field(default_factory=list)
    images: List[str] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    facilities: List[str] = Field(default_factory=list)
    nearby_attractions: Optional[str] = None
    open_date: Optional[date] = None


class HotelUpdate(BaseModel):
    """Разрешенный набор полей для редактирования отеля.

    Статусы, владелец и идентификатор через редактирование не меняются:
    любые поля вне этого списка отклоняются.
    """

    model_config = ConfigDict(extra="forbid")

    name: Optional[str] = Field(None, min_length=1, max_length=200)
    name_en: Optional[str] = Field(None, max_length=200)
    address: Optional[str] = Field(None, min_length=1)
    star: Optional[int] = Field(None, ge=1, le=5)
    price: Optional[Decimal] = Field(None, ge=0)
    discount: Optional[Decimal] = Field(None, gt=0, lt=1)
    discount_description: Optional[str] = None
    room_types: Optional[List[HotelRoomType]] = None
    images: Optional[List[str]] = None
    tags: Optional[List[str]] = None
    facilities: Optional[List[str]] = None
    nearby_attractions: Optional[str] = None
    open_date: Optional[date] = None

    # Поля, которые нельзя обнулить
    REQUIRED_FIELDS: ClassVar[Tuple[str, ...]] = ("name", "address", "star", "price")

    def changes(self) -> Dict[str, object]:
        """Возвращает только явно переданные поля."""
        changes = {
            field: getattr(self, field) for field in self.model_fields_set
        }
        for field in self.REQUIRED_FIELDS:
            if field in changes and changes[field] is None:
                raise ValidationError(f"Поле {field} не может быть пустым")
        return changes


# События


class HotelSubmitted(DomainEvent):
    """Отель отправлен на модерацию (создан или изменен владельцем)."""

    hotel_id: EntityId
    merchant_id: EntityId
    resubmitted: bool = False


class HotelApproved(DomainEvent):
    """Отель одобрен модератором."""

    hotel_id: EntityId


class HotelRejected(DomainEvent):
    """Отель отклонен модератором."""

    hotel_id: EntityId
    reason: str


class HotelPublished(DomainEvent):
    """Отель опубликован."""

    hotel_id: EntityId


class HotelUnpublished(DomainEvent):
    """Отель снят с публикации."""

    hotel_id: EntityId


class HotelDeleted(DomainEvent):
    """Отель удален (hard) или снят владельцем (soft)."""

    hotel_id: EntityId
    hard: bool


class Hotel(HotelContent, AggregateRoot):
    """Агрегат "Отель"."""

    id: EntityId = Field(default_factory=generate_id)
    merchant_id: EntityId
    review_status: ReviewStatus = ReviewStatus.PENDING
    publish_status: PublishStatus = PublishStatus.UNPUBLISHED
    reject_reason: Optional[str] = None
    created_at: datetime = Field(default_factory=now)
    updated_at: datetime = Field(default_factory=now)
    version: int = 1

    @model_validator(mode="after")
    def check_status_invariants(self) -> "Hotel":
        if (
            self.publish_status == PublishStatus.PUBLISHED
            and self.review_status != ReviewStatus.APPROVED
        ):
            raise ValueError("Опубликовать можно только одобренный отель")
        if self.reject_reason and self.review_status != ReviewStatus.REJECTED:
            raise ValueError("Причина отказа допустима только для отклоненного отеля")
        return self

    @property
    def state(self) -> HotelState:
        return (self.review_status, self.publish_status)

    @property
    def is_bookable(self) -> bool:
        """Отель доступен для бронирования: одобрен и опубликован."""
        return self.state == PUBLISHED

    def _transition(self, action: HotelAction) -> None:
        self.review_status, self.publish_status = next_hotel_state(self.state, action)
        self.updated_at = now()
        self.version += 1

    @classmethod
    def create(cls, merchant_id: EntityId, content: HotelContent) -> "Hotel":
        """Создает отель в статусе pending/unpublished."""
        hotel = cls(merchant_id=merchant_id, **content.model_dump())
        hotel.record_event(
            HotelSubmitted(hotel_id=hotel.id, merchant_id=merchant_id)
        )
        return hotel

    def edit(self, update: HotelUpdate, resubmit: bool) -> bool:
        """Применяет изменения содержимого.

        При ``resubmit`` (правка владельцем) одобренный или отклоненный отель
        возвращается на модерацию и снимается с публикации. Возвращает True,
        если отель был отправлен на повторную проверку.
        """
        for field, value in update.changes().items():
            setattr(self, field, value)
        self.updated_at = now()

        if not resubmit or self.review_status == ReviewStatus.PENDING:
            self.version += 1
            return False

        self._transition(HotelAction.SUBMIT)
        self.reject_reason = None
        self.record_event(
            HotelSubmitted(
                hotel_id=self.id, merchant_id=self.merchant_id, resubmitted=True
            )
        )
        return True

    def approve(self) -> None:
        """Одобряет отель. Статус публикации не меняется."""
        self._transition(HotelAction.APPROVE)
        self.record_event(HotelApproved(hotel_id=self.id))

    def reject(self, reason: Optional[str]) -> None:
        """Отклоняет отель с обязательной причиной."""
        next_hotel_state(self.state, HotelAction.REJECT)
        if not reason or not reason.strip():
            raise PolicyViolationError("Для отказа необходимо указать причину")
        self._transition(HotelAction.REJECT)
        self.reject_reason = reason.strip()
        self.record_event(HotelRejected(hotel_id=self.id, reason=self.reject_reason))

    def publish(self) -> None:
        """Публикует одобренный отель."""
        self._transition(HotelAction.PUBLISH)
        self.record_event(HotelPublished(hotel_id=self.id))

    def unpublish(self) -> None:
        """Снимает отель с публикации."""
        self._transition(HotelAction.UNPUBLISH)
        self.record_event(HotelUnpublished(hotel_id=self.id))

    def withdraw(self) -> None:
        """Мягкое удаление владельцем: только снятие с публикации."""
        if self.publish_status == PublishStatus.PUBLISHED:
            self._transition(HotelAction.UNPUBLISH)
        self.record_event(HotelDeleted(hotel_id=self.id, hard=False))

    def mark_deleted(self) -> None:
        """Фиксирует окончательное удаление администратором."""
        self.record_event(HotelDeleted(hotel_id=self.id, hard=True))

    def find_room_type(self, name: str) -> Optional[HotelRoomType]:
        for room_type in self.room_types:
            if room_type.name == name:
                return room_type
        return None


class HotelPolicy:
    """Правила оформления карточки отеля."""

    def __init__(self, max_images: int = 10, image_prefix: str = "/uploads/"):
        self.max_images = max_images
        self.image_prefix = image_prefix

    def validate_images(self, images: Optional[List[str]]) -> None:
        if not images:
            return
        if len(images) > self.max_images:
            raise ValidationError(
                f"Можно загрузить не более {self.max_images} изображений"
            )
        for image in images:
            if not image.startswith(self.image_prefix):
                raise ValidationError(f"Некорректный адрес изображения: {image}")
