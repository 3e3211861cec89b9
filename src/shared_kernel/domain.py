"""
Основные доменные типы и утилиты общего ядра.
"""

from datetime import date, datetime, timezone
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, List, Optional, Tuple, TypeVar, Union
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, model_validator

# Общие типы идентификаторов
EntityId = UUID

Amount = Union[Decimal, int, float, str]

CENT = Decimal("0.01")


def generate_id() -> UUID:
    """Генерирует новый UUID."""
    return uuid4()


def to_decimal(value: Amount) -> Decimal:
    """Приводит число к Decimal без потери точности через строковое представление."""
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value))
        except InvalidOperation as exc:
            raise ValidationError(f"Некорректное числовое значение: {value!r}") from exc
    if not result.is_finite():
        raise ValidationError(f"Некорректное числовое значение: {value!r}")
    return result


def round_money(value: Amount) -> Decimal:
    """Округляет денежную сумму до копеек (ROUND_HALF_UP)."""
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


class DateRange(BaseModel):
    """Диапазон дат проживания."""

    model_config = ConfigDict(frozen=True)

    check_in: date
    check_out: date

    @model_validator(mode="after")
    def check_out_after_check_in(self) -> "DateRange":
        if self.check_out <= self.check_in:
            raise ValueError("Дата выезда должна быть позже даты заезда")
        return self

    @property
    def nights(self) -> int:
        """Количество ночей в бронировании."""
        return (self.check_out - self.check_in).days


class DomainEvent(BaseModel):
    """Базовый класс для всех доменных событий."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    event_id: UUID = Field(default_factory=uuid4)
    occurred_on: datetime = Field(default_factory=lambda: now())

    @property
    def event_type(self) -> str:
        return type(self).__name__


class AggregateRoot(BaseModel):
    """Корень агрегата, накапливающий доменные события."""

    _domain_events: List[DomainEvent] = PrivateAttr(default_factory=list)

    @property
    def domain_events(self) -> List[DomainEvent]:
        """Возвращает список доменных событий."""
        return list(self._domain_events)

    def record_event(self, event: DomainEvent) -> None:
        self._domain_events.append(event)

    def pull_domain_events(self) -> List[DomainEvent]:
        """Возвращает накопленные события и очищает список."""
        events = list(self._domain_events)
        self._domain_events.clear()
        return events

    def clear_events(self) -> None:
        """Очищает список доменных событий."""
        self._domain_events.clear()


class Pagination(BaseModel):
    """Параметры и итог постраничной выборки."""

    page: int
    page_size: int
    total: int
    total_pages: int


T_Item = TypeVar("T_Item")


def paginate(
    items: List[T_Item], page: int, page_size: int
) -> Tuple[List[T_Item], Pagination]:
    """Возвращает срез списка и сведения о странице."""
    total = len(items)
    start = (page - 1) * page_size
    return items[start : start + page_size], Pagination(
        page=page,
        page_size=page_size,
        total=total,
        total_pages=(total + page_size - 1) // page_size,
    )


# Общие исключения
class DomainException(Exception):
    """Базовое исключение для доменных ошибок."""

    code = "DOMAIN_ERROR"

    def __init__(self, message: str, **details: Any):
        super().__init__(message)
        self.message = message
        self.details = details


class ValidationError(DomainException):
    """Отсутствующие или некорректные входные данные."""

    code = "VALIDATION_ERROR"


class NotFoundError(DomainException):
    """Сущность с указанным идентификатором не найдена."""

    code = "NOT_FOUND"


class AuthenticationError(DomainException):
    """Учетные данные отсутствуют, недействительны или просрочены."""

    code = "UNAUTHENTICATED"

    def __init__(self, message: str = "Требуется авторизация", expired: bool = False):
        super().__init__(message)
        if expired:
            self.code = "TOKEN_EXPIRED"


class AuthorizationError(DomainException):
    """Роль или владелец не соответствуют операции."""

    code = "FORBIDDEN"


class StateConflictError(DomainException):
    """Переход недопустим из текущего состояния."""

    code = "STATE_CONFLICT"


class ConcurrencyError(StateConflictError):
    """Состояние в хранилище изменилось между чтением и записью."""


class PolicyViolationError(DomainException):
    """Нарушение бизнес-правила."""

    code = "POLICY_VIOLATION"


# Общие утилиты
def now() -> datetime:
    """Возвращает текущую дату и время (UTC)."""
    return datetime.now(timezone.utc)


def today() -> date:
    """Возвращает текущую дату."""
    return date.today()


def describe_validation_error(exc: Exception, default: Optional[str] = None) -> str:
    """Собирает читаемое сообщение из ошибки валидации pydantic."""
    errors = getattr(exc, "errors", None)
    if not callable(errors):
        return default or str(exc)
    parts = []
    for error in errors():
        location = ".".join(str(item) for item in error.get("loc", ()))
        message = error.get("msg", "")
        parts.append(f"{location}: {message}" if location else message)
    return "; ".join(parts) or default or str(exc)
