"""
Инфраструктура общего ядра: логирование и шина событий в памяти.
"""

import json
import logging
import threading
from typing import Any, Callable, Dict, List, Optional, Type

from .config import Settings
from .domain import AggregateRoot, DomainEvent
from . import interfaces as ports


def configure_logging(settings: Settings) -> None:
    """Настраивает корневой логгер по настройкам приложения."""
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format=settings.log_format,
    )


class StructuredLogger(ports.ILogger):
    """Логгер поверх модуля logging, дописывающий контекст в виде JSON."""

    def __init__(self, name: str = "hotel_booking"):
        self._logger = logging.getLogger(name)

    @property
    def name(self) -> str:
        return self._logger.name

    def _format(self, message: str, context: Dict[str, Any]) -> str:
        if not context:
            return message
        return f"{message} | {json.dumps(context, default=str, ensure_ascii=False)}"

    def info(self, message: str, **kwargs: Any) -> None:
        self._logger.info(self._format(message, kwargs))

    def error(self, message: str, **kwargs: Any) -> None:
        self._logger.error(self._format(message, kwargs))

    def warning(self, message: str, **kwargs: Any) -> None:
        self._logger.warning(self._format(message, kwargs))

    def debug(self, message: str, **kwargs: Any) -> None:
        self._logger.debug(self._format(message, kwargs))

    def exception(self, message: str, **kwargs: Any) -> None:
        self._logger.exception(self._format(message, kwargs))


class InMemoryEventBus(ports.IEventBus):
    """Реализация шины событий в памяти."""

    def __init__(self, logger: Optional[ports.ILogger] = None):
        self._subscribers: Dict[Type[DomainEvent], List[Callable]] = {}
        self._logger = logger or StructuredLogger("hotel_booking.events")

    def publish(self, event: DomainEvent) -> None:
        """Публикует событие.

        Ошибки обработчиков логируются и не пробрасываются: подписчики
        работают по принципу fire-and-forget.
        """
        event_type = type(event)
        handlers = self._subscribers.get(event_type, [])
        if not handlers:
            self._logger.debug(f"No subscribers for event type {event_type.__name__}")
            return

        self._logger.info(
            f"Publishing event: {event_type.__name__}", event=event.model_dump()
        )

        for handler in handlers:
            try:
                handler(event)
            except Exception as e:
                self._logger.error(
                    f"Error in event handler for {event_type.__name__}",
                    error=str(e),
                    event=event.model_dump(),
                )

    def publish_all(self, events: List[DomainEvent]) -> None:
        for event in events:
            self.publish(event)

    def subscribe(self, event_type: Type[DomainEvent], handler: Callable) -> None:
        """Подписывает обработчик на события указанного типа."""
        self._subscribers.setdefault(event_type, []).append(handler)
        self._logger.debug(f"Subscribed handler to {event_type.__name__} events")


class EventPublishingUnitOfWork:
    """Единица работы, публикующая события агрегатов при фиксации.

    Агрегаты, затронутые операцией, регистрируются через ``track``; их
    события публикуются только после ``commit`` и отбрасываются при
    ``rollback``. Список отслеживаемых агрегатов свой у каждого потока,
    поэтому параллельные запросы не фиксируют и не откатывают чужие события.
    """

    name = "UnitOfWork"

    def __init__(
        self,
        event_bus: Optional[ports.IEventBus] = None,
        logger: Optional[ports.ILogger] = None,
    ):
        self._logger = logger or StructuredLogger("hotel_booking.uow")
        self._event_bus = event_bus or InMemoryEventBus(self._logger)
        self._local = threading.local()

    @property
    def event_bus(self) -> ports.IEventBus:
        return self._event_bus

    @property
    def _tracked(self) -> List[AggregateRoot]:
        if not hasattr(self._local, "tracked"):
            self._local.tracked = []
        return self._local.tracked

    def track(self, aggregate: AggregateRoot) -> None:
        if all(item is not aggregate for item in self._tracked):
            self._tracked.append(aggregate)

    def commit(self) -> None:
        """Фиксирует все изменения и публикует накопленные события."""
        events: List[DomainEvent] = []
        for aggregate in self._tracked:
            events.extend(aggregate.pull_domain_events())
        self._local.tracked = []
        self._logger.debug(f"{self.name} committed", events=len(events))
        for event in events:
            self._event_bus.publish(event)

    def rollback(self) -> None:
        """Откатывает все изменения."""
        for aggregate in self._tracked:
            aggregate.clear_events()
        self._local.tracked = []
        self._logger.warning(f"{self.name} rolled back")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type is None:
            self.commit()
        else:
            self.rollback()
        return False  # Пробрасываем исключение дальше, если оно было
