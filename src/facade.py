"""
Граница запросов платформы бронирования.

Каждая операция принимает токен вызывающего, проверяет его через
провайдера аутентификации, вызывает сервис приложения и возвращает
единый результат ``OperationResult``. Доменные ошибки превращаются в
структурированный отказ с кодом; непредвиденные ошибки логируются и
возвращаются как ``INTERNAL_ERROR``.
"""

from datetime import datetime
from typing import Any, Callable, Dict, Optional, Union
from uuid import UUID

import pydantic
from pydantic import BaseModel, Field

from booking.application import (
    CancelOrderRequest,
    CreateOrderRequest,
    ListOrdersRequest,
    PayOrderRequest,
    RebookOrderRequest,
)
from bootstrap import Application, bootstrap_app
from catalog.application import (
    CreateHotelRequest,
    ListHotelsRequest,
    ReviewHotelRequest,
    TogglePublishRequest,
)
from identity.domain import Identity
from pricing.application import CalculatePriceRequest, PointsDiscountRequest
from shared_kernel import (
    DomainException,
    EntityId,
    ILogger,
    StructuredLogger,
    ValidationError,
    describe_validation_error,
    now,
)

INTERNAL_ERROR = "INTERNAL_ERROR"

Payload = Optional[Dict[str, Any]]
IdLike = Union[EntityId, str]


class OperationResult(BaseModel):
    """Единый ответ операции."""

    success: bool
    message: str
    data: Any = None
    code: Optional[str] = None
    timestamp: datetime = Field(default_factory=now)

    @classmethod
    def ok(cls, data: Any = None, message: str = "OK") -> "OperationResult":
        return cls(success=True, message=message, data=data)

    @classmethod
    def fail(cls, message: str, code: str, data: Any = None) -> "OperationResult":
        return cls(success=False, message=message, code=code, data=data)


def parse_id(value: IdLike, field: str = "id") -> EntityId:
    """Приводит идентификатор из запроса к UUID."""
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except ValueError as exc:
        raise ValidationError(f"Некорректный идентификатор {field}: {value!r}") from exc


def _serialize(result: Any) -> Any:
    if isinstance(result, BaseModel):
        return result.model_dump(mode="json")
    return result


class BookingPlatformFacade:
    """Фасад с логическими операциями платформы."""

    def __init__(
        self, app: Optional[Application] = None, logger: Optional[ILogger] = None
    ):
        self._app = app or bootstrap_app()
        self._logger = logger or StructuredLogger(
            f"{self._app.settings.service_name}.facade"
        )

    @property
    def app(self) -> Application:
        return self._app

    def _execute(
        self,
        operation: str,
        credential: Optional[str],
        action: Callable[[Identity], Any],
        message: str = "OK",
    ) -> OperationResult:
        """Аутентифицирует вызов, выполняет действие и упаковывает результат."""
        try:
            identity = self._app.auth_provider.authenticate(credential)
            result = action(identity)
        except DomainException as exc:
            self._logger.warning(
                f"{operation} failed",
                code=exc.code,
                error=exc.message,
                details=exc.details,
            )
            return OperationResult.fail(exc.message, exc.code, data=exc.details or None)
        except pydantic.ValidationError as exc:
            description = describe_validation_error(exc)
            self._logger.warning(
                f"{operation} rejected", code=ValidationError.code, error=description
            )
            return OperationResult.fail(description, ValidationError.code)
        except Exception:
            self._logger.exception(f"{operation} crashed")
            return OperationResult.fail("Внутренняя ошибка сервера", INTERNAL_ERROR)

        return OperationResult.ok(_serialize(result), message)

    # Отели

    def create_hotel(self, credential: Optional[str], payload: Payload) -> OperationResult:
        return self._execute(
            "create_hotel",
            credential,
            lambda identity: self._app.catalog_service.create_hotel(
                identity, CreateHotelRequest.model_validate(payload or {})
            ),
            "Отель создан и отправлен на модерацию",
        )

    def edit_hotel(
        self, credential: Optional[str], hotel_id: IdLike, payload: Payload
    ) -> OperationResult:
        return self._execute(
            "edit_hotel",
            credential,
            lambda identity: self._app.catalog_service.edit_hotel(
                identity, parse_id(hotel_id, "hotel_id"), payload or {}
            ),
            "Отель обновлен",
        )

    def review_hotel(
        self, credential: Optional[str], hotel_id: IdLike, payload: Payload
    ) -> OperationResult:
        return self._execute(
            "review_hotel",
            credential,
            lambda identity: self._app.catalog_service.review_hotel(
                identity,
                parse_id(hotel_id, "hotel_id"),
                ReviewHotelRequest.model_validate(payload or {}),
            ),
            "Модерация выполнена",
        )

    def toggle_publish(
        self, credential: Optional[str], hotel_id: IdLike, payload: Payload
    ) -> OperationResult:
        return self._execute(
            "toggle_publish",
            credential,
            lambda identity: self._app.catalog_service.toggle_publish(
                identity,
                parse_id(hotel_id, "hotel_id"),
                TogglePublishRequest.model_validate(payload or {}),
            ),
            "Статус публикации изменен",
        )

    def delete_hotel(self, credential: Optional[str], hotel_id: IdLike) -> OperationResult:
        return self._execute(
            "delete_hotel",
            credential,
            lambda identity: self._app.catalog_service.delete_hotel(
                identity, parse_id(hotel_id, "hotel_id")
            ),
            "Отель удален",
        )

    def list_hotels(
        self, credential: Optional[str], query: Payload = None
    ) -> OperationResult:
        return self._execute(
            "list_hotels",
            credential,
            lambda identity: self._app.catalog_service.list_hotels(
                identity, ListHotelsRequest.model_validate(query or {})
            ),
        )

    def get_hotel_statistics(self, credential: Optional[str]) -> OperationResult:
        return self._execute(
            "get_hotel_statistics",
            credential,
            self._app.catalog_service.get_statistics,
        )

    # Заказы

    def create_order(self, credential: Optional[str], payload: Payload) -> OperationResult:
        return self._execute(
            "create_order",
            credential,
            lambda identity: self._app.booking_service.create_order(
                identity, CreateOrderRequest.model_validate(payload or {})
            ),
            "Заказ создан",
        )

    def pay_order(
        self, credential: Optional[str], order_id: IdLike, payload: Payload = None
    ) -> OperationResult:
        return self._execute(
            "pay_order",
            credential,
            lambda identity: self._app.booking_service.pay_order(
                identity,
                parse_id(order_id, "order_id"),
                PayOrderRequest.model_validate(payload or {}),
            ),
            "Оплата прошла успешно",
        )

    def cancel_order(
        self, credential: Optional[str], order_id: IdLike, payload: Payload = None
    ) -> OperationResult:
        return self._execute(
            "cancel_order",
            credential,
            lambda identity: self._app.booking_service.cancel_order(
                identity,
                parse_id(order_id, "order_id"),
                CancelOrderRequest.model_validate(payload or {}),
            ),
            "Заказ отменен",
        )

    def rebook_order(
        self, credential: Optional[str], order_id: IdLike, payload: Payload = None
    ) -> OperationResult:
        return self._execute(
            "rebook_order",
            credential,
            lambda identity: self._app.booking_service.rebook_order(
                identity,
                parse_id(order_id, "order_id"),
                RebookOrderRequest.model_validate(payload or {}),
            ),
            "Заказ создан, ожидает оплаты",
        )

    def get_order(self, credential: Optional[str], order_id: IdLike) -> OperationResult:
        return self._execute(
            "get_order",
            credential,
            lambda identity: self._app.booking_service.get_order(
                identity, parse_id(order_id, "order_id")
            ),
        )

    def list_orders(
        self, credential: Optional[str], query: Payload = None
    ) -> OperationResult:
        return self._execute(
            "list_orders",
            credential,
            lambda identity: self._app.booking_service.list_orders(
                identity, ListOrdersRequest.model_validate(query or {})
            ),
        )

    def get_order_statistics(self, credential: Optional[str]) -> OperationResult:
        return self._execute(
            "get_order_statistics",
            credential,
            self._app.booking_service.get_order_statistics,
        )

    # Цены

    def calculate_price(
        self, credential: Optional[str], base_price: Any, params: Payload = None
    ) -> OperationResult:
        return self._execute(
            "calculate_price",
            credential,
            lambda identity: self._app.pricing_service.calculate_price(
                CalculatePriceRequest.model_validate(
                    {**(params or {}), "base_price": base_price}
                )
            ),
        )

    def calculate_points_discount(
        self, credential: Optional[str], payload: Payload
    ) -> OperationResult:
        return self._execute(
            "calculate_points_discount",
            credential,
            lambda identity: self._app.pricing_service.calculate_points_discount(
                PointsDiscountRequest.model_validate(payload or {})
            ),
        )
