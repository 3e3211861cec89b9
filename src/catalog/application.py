"""
Прикладной слой контекста каталога отелей.

Содержит сервисы приложения, которые координируют
взаимодействие между внешними интерфейсами и доменной моделью.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional, Union

import pydantic
from pydantic import BaseModel, Field

from identity.domain import Identity, Role
from shared_kernel import (
    AuthorizationError,
    EntityId,
    ILogger,
    NotFoundError,
    Pagination,
    Settings,
    StructuredLogger,
    ValidationError,
    describe_validation_error,
    paginate,
)

from . import interfaces as ports
from .domain import (
    Hotel,
    HotelContent,
    HotelPolicy,
    HotelRoomType,
    HotelUpdate,
    PublishStatus,
    ReviewStatus,
)

# DTO (Data Transfer Objects) для входящих данных


class CreateHotelRequest(HotelContent):
    """Запрос на создание отеля."""


class ReviewAction(str, Enum):
    APPROVE = "approve"
    REJECT = "reject"


class ReviewHotelRequest(BaseModel):
    """Запрос на модерацию отеля."""

    action: ReviewAction
    reject_reason: Optional[str] = None


class PublishAction(str, Enum):
    PUBLISH = "publish"
    UNPUBLISH = "unpublish"


class TogglePublishRequest(BaseModel):
    """Запрос на публикацию или снятие с публикации."""

    action: PublishAction


class ListHotelsRequest(BaseModel):
    """Запрос списка отелей с фильтрацией."""

    review_status: Optional[ReviewStatus] = None
    publish_status: Optional[PublishStatus] = None
    merchant_id: Optional[EntityId] = None
    page: int = Field(1, ge=1)
    page_size: Optional[int] = Field(None, ge=1)


# DTO для исходящих данных


class HotelDTO(BaseModel):
    """DTO для представления отеля."""

    id: EntityId
    merchant_id: EntityId
    name: str
    name_en: Optional[str]
    address: str
    star: int
    price: Decimal
    discount: Optional[Decimal]
    discount_description: Optional[str]
    room_types: List[HotelRoomType]
    images: List[str]
    tags: List[str]
    facilities: List[str]
    nearby_attractions: Optional[str]
    open_date: Optional[date]
    review_status: ReviewStatus
    publish_status: PublishStatus
    reject_reason: Optional[str]
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_domain(cls, hotel: Hotel) -> "HotelDTO":
        """Создает DTO из доменной модели."""
        return cls(
            id=hotel.id,
            merchant_id=hotel.merchant_id,
            name=hotel.name,
            name_en=hotel.name_en,
            address=hotel.address,
            star=hotel.star,
            price=hotel.price,
            discount=hotel.discount,
            discount_description=hotel.discount_description,
            room_types=hotel.room_types,
            images=hotel.images,
            tags=hotel.tags,
            facilities=hotel.facilities,
            nearby_attractions=hotel.nearby_attractions,
            open_date=hotel.open_date,
            review_status=hotel.review_status,
            publish_status=hotel.publish_status,
            reject_reason=hotel.reject_reason,
            created_at=hotel.created_at,
            updated_at=hotel.updated_at,
        )


class EditHotelResultDTO(BaseModel):
    """Результат редактирования отеля."""

    hotel: HotelDTO
    resubmitted: bool


class DeleteHotelResultDTO(BaseModel):
    """Результат удаления отеля."""

    hotel_id: EntityId
    hard_deleted: bool
    publish_status: Optional[PublishStatus] = None


class HotelPageDTO(BaseModel):
    """Страница списка отелей."""

    items: List[HotelDTO]
    pagination: Pagination


class HotelStatisticsDTO(BaseModel):
    """Сводка по отелям для администратора."""

    total_hotels: int
    review_stats: Dict[str, int]
    publish_stats: Dict[str, int]
    total_merchants: int


# Сервисы приложения


class CatalogApplicationService:
    """Сервис приложения для управления отелями."""

    def __init__(
        self,
        uow: ports.ICatalogUnitOfWork,
        settings: Optional[Settings] = None,
        logger: Optional[ILogger] = None,
    ):
        """Инициализирует сервис."""
        self._uow = uow
        self._settings = settings or Settings()
        self._policy = HotelPolicy(
            max_images=self._settings.max_hotel_images,
            image_prefix=self._settings.image_url_prefix,
        )
        self._logger = logger or StructuredLogger("hotel_booking.catalog")

    def _load(self, hotel_id: EntityId) -> Hotel:
        hotel = self._uow.hotels.get_by_id(hotel_id)
        if hotel is None:
            raise NotFoundError("Отель не найден", hotel_id=hotel_id)
        return hotel

    @staticmethod
    def _check_owner(identity: Identity, hotel: Hotel) -> None:
        """Владелец может работать только со своими отелями, администратор со всеми."""
        if identity.role == Role.MERCHANT and hotel.merchant_id != identity.user_id:
            raise AuthorizationError("Нет прав на этот отель", hotel_id=hotel.id)

    def create_hotel(self, identity: Identity, request: CreateHotelRequest) -> HotelDTO:
        """Создает отель и отправляет его на модерацию."""
        identity.require_role(Role.MERCHANT)
        try:
            self._policy.validate_images(request.images)
            hotel = Hotel.create(merchant_id=identity.user_id, content=request)
            self._uow.hotels.add(hotel)
            self._uow.track(hotel)
            self._uow.commit()
        except Exception:
            self._uow.rollback()
            raise

        self._logger.info(
            "Hotel created", hotel_id=hotel.id, merchant_id=identity.user_id
        )
        return HotelDTO.from_domain(hotel)

    def edit_hotel(
        self,
        identity: Identity,
        hotel_id: EntityId,
        changes: Union[HotelUpdate, Dict[str, Any]],
    ) -> EditHotelResultDTO:
        """Редактирует отель по разрешенному набору полей.

        Правка владельцем одобренного или отклоненного отеля возвращает его
        на модерацию; правка администратором статусы не меняет.
        """
        identity.require_role(Role.MERCHANT, Role.ADMIN)
        if not isinstance(changes, HotelUpdate):
            try:
                changes = HotelUpdate.model_validate(changes)
            except pydantic.ValidationError as exc:
                raise ValidationError(describe_validation_error(exc)) from exc

        try:
            hotel = self._load(hotel_id)
            self._check_owner(identity, hotel)
            self._policy.validate_images(changes.images)

            expected_state, expected_version = hotel.state, hotel.version
            resubmitted = hotel.edit(changes, resubmit=identity.role == Role.MERCHANT)
            self._uow.hotels.save(
                hotel, expected_state=expected_state, expected_version=expected_version
            )
            self._uow.track(hotel)
            self._uow.commit()
        except Exception:
            self._uow.rollback()
            raise

        self._logger.info(
            "Hotel edited",
            hotel_id=hotel.id,
            resubmitted=resubmitted,
            fields=sorted(changes.model_fields_set),
        )
        return EditHotelResultDTO(hotel=HotelDTO.from_domain(hotel), resubmitted=resubmitted)

    def review_hotel(
        self, identity: Identity, hotel_id: EntityId, request: ReviewHotelRequest
    ) -> HotelDTO:
        """Одобряет или отклоняет отель (только администратор)."""
        identity.require_role(Role.ADMIN)
        try:
            hotel = self._load(hotel_id)
            expected_state, expected_version = hotel.state, hotel.version
            if request.action == ReviewAction.APPROVE:
                hotel.approve()
            else:
                hotel.reject(request.reject_reason)
            self._uow.hotels.save(
                hotel, expected_state=expected_state, expected_version=expected_version
            )
            self._uow.track(hotel)
            self._uow.commit()
        except Exception:
            self._uow.rollback()
            raise

        self._logger.info(
            "Hotel reviewed",
            hotel_id=hotel.id,
            action=request.action.value,
            reviewer_id=identity.user_id,
        )
        return HotelDTO.from_domain(hotel)

    def toggle_publish(
        self, identity: Identity, hotel_id: EntityId, request: TogglePublishRequest
    ) -> HotelDTO:
        """Публикует отель или снимает его с публикации."""
        identity.require_role(Role.MERCHANT, Role.ADMIN)
        try:
            hotel = self._load(hotel_id)
            self._check_owner(identity, hotel)
            expected_state, expected_version = hotel.state, hotel.version
            if request.action == PublishAction.PUBLISH:
                hotel.publish()
            else:
                hotel.unpublish()
            self._uow.hotels.save(
                hotel, expected_state=expected_state, expected_version=expected_version
            )
            self._uow.track(hotel)
            self._uow.commit()
        except Exception:
            self._uow.rollback()
            raise

        self._logger.info(
            "Hotel publish status changed",
            hotel_id=hotel.id,
            publish_status=hotel.publish_status.value,
        )
        return HotelDTO.from_domain(hotel)

    def delete_hotel(self, identity: Identity, hotel_id: EntityId) -> DeleteHotelResultDTO:
        """Удаляет отель.

        Администратор удаляет запись окончательно, владелец только снимает
        отель с публикации.
        """
        identity.require_role(Role.MERCHANT, Role.ADMIN)
        try:
            hotel = self._load(hotel_id)
            self._check_owner(identity, hotel)
            if identity.role == Role.ADMIN:
                hotel.mark_deleted()
                self._uow.hotels.delete(hotel.id)
                result = DeleteHotelResultDTO(hotel_id=hotel.id, hard_deleted=True)
            else:
                expected_state, expected_version = hotel.state, hotel.version
                hotel.withdraw()
                self._uow.hotels.save(
                    hotel,
                    expected_state=expected_state,
                    expected_version=expected_version,
                )
                result = DeleteHotelResultDTO(
                    hotel_id=hotel.id,
                    hard_deleted=False,
                    publish_status=hotel.publish_status,
                )
            self._uow.track(hotel)
            self._uow.commit()
        except Exception:
            self._uow.rollback()
            raise

        self._logger.info(
            "Hotel deleted", hotel_id=hotel.id, hard=result.hard_deleted
        )
        return result

    def get_hotel(self, identity: Identity, hotel_id: EntityId) -> HotelDTO:
        """Возвращает информацию об отеле."""
        identity.require_role(Role.MERCHANT, Role.ADMIN)
        hotel = self._load(hotel_id)
        self._check_owner(identity, hotel)
        return HotelDTO.from_domain(hotel)

    def list_hotels(self, identity: Identity, request: ListHotelsRequest) -> HotelPageDTO:
        """Возвращает страницу отелей. Владелец видит только свои отели."""
        identity.require_role(Role.MERCHANT, Role.ADMIN)
        merchant_id = request.merchant_id
        if identity.role == Role.MERCHANT:
            merchant_id = identity.user_id

        hotels = self._uow.hotels.list(
            review_status=request.review_status,
            publish_status=request.publish_status,
            merchant_id=merchant_id,
        )
        page_size = min(
            request.page_size or self._settings.default_page_size,
            self._settings.max_page_size,
        )
        items, pagination = paginate(hotels, request.page, page_size)
        return HotelPageDTO(
            items=[HotelDTO.from_domain(hotel) for hotel in items],
            pagination=pagination,
        )

    def get_statistics(self, identity: Identity) -> HotelStatisticsDTO:
        """Возвращает сводку по статусам отелей (только администратор)."""
        identity.require_role(Role.ADMIN)
        hotels = self._uow.hotels.list()
        return HotelStatisticsDTO(
            total_hotels=len(hotels),
            review_stats={
                status.value: sum(1 for h in hotels if h.review_status == status)
                for status in ReviewStatus
            },
            publish_stats={
                status.value: sum(1 for h in hotels if h.publish_status == status)
                for status in PublishStatus
            },
            total_merchants=len({hotel.merchant_id for hotel in hotels}),
        )
