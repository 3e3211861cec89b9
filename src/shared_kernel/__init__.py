"""
Общее ядро (Shared Kernel) платформы бронирования отелей.

Содержит общие типы данных и утилиты, используемые в различных ограниченных контекстах.
"""

from .config import Settings, get_settings
from .domain import (
    CENT,
    Amount,
    AuthenticationError,
    AuthorizationError,
    ConcurrencyError,
    AggregateRoot,
    DateRange,
    DomainEvent,
    # Исключения
    DomainException,
    # Базовые типы
    EntityId,
    NotFoundError,
    Pagination,
    PolicyViolationError,
    StateConflictError,
    ValidationError,
    describe_validation_error,
    generate_id,
    # Утилиты
    now,
    paginate,
    round_money,
    to_decimal,
    today,
)
from .infrastructure import (
    EventPublishingUnitOfWork,
    InMemoryEventBus,
    StructuredLogger,
    configure_logging,
)
from .interfaces import IEventBus, ILogger

__all__ = [
    # Базовые типы
    "EntityId",
    "Amount",
    "CENT",
    "generate_id",
    # Основные классы
    "DateRange",
    "DomainEvent",
    "AggregateRoot",
    "Pagination",
    # Исключения
    "DomainException",
    "ValidationError",
    "NotFoundError",
    "AuthenticationError",
    "AuthorizationError",
    "StateConflictError",
    "ConcurrencyError",
    "PolicyViolationError",
    # Утилиты
    "now",
    "today",
    "to_decimal",
    "round_money",
    "paginate",
    "describe_validation_error",
    # Настройки и инфраструктура
    "Settings",
    "get_settings",
    "ILogger",
    "IEventBus",
    "StructuredLogger",
    "InMemoryEventBus",
    "EventPublishingUnitOfWork",
    "configure_logging",
]
