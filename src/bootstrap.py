from dataclasses import dataclass
from datetime import date
from functools import partial
from typing import Callable, Optional

from booking.application import BookingApplicationService
from booking.domain import RefundRequested
from booking.event_handlers import on_refund_requested
from booking.infrastructure import BookingUnitOfWork, LoggingNotificationSink
from booking.interfaces import INotificationSink
from catalog.application import CatalogApplicationService
from catalog.infrastructure import CatalogUnitOfWork
from identity.infrastructure import StaticTokenAuthProvider
from identity.interfaces import IAuthProvider
from pricing.application import PricingApplicationService
from shared_kernel import (
    InMemoryEventBus,
    Settings,
    StructuredLogger,
    configure_logging,
    today,
)


@dataclass
class Application:
    """Собранные компоненты приложения."""

    settings: Settings
    auth_provider: IAuthProvider
    event_bus: InMemoryEventBus
    catalog_uow: CatalogUnitOfWork
    booking_uow: BookingUnitOfWork
    notification_sink: INotificationSink
    catalog_service: CatalogApplicationService
    booking_service: BookingApplicationService
    pricing_service: PricingApplicationService


def bootstrap_app(
    settings: Optional[Settings] = None,
    auth_provider: Optional[IAuthProvider] = None,
    notification_sink: Optional[INotificationSink] = None,
    clock: Callable[[], date] = today,
) -> Application:
    """Создает и настраивает все компоненты приложения."""
    settings = settings or Settings()
    configure_logging(settings)
    logger = StructuredLogger(settings.service_name)

    # 1. Общая шина событий для всех контекстов
    event_bus = InMemoryEventBus(StructuredLogger(f"{settings.service_name}.events"))

    # 2. Unit of Work контекстов; бронирование читает отели из каталога
    catalog_uow = CatalogUnitOfWork(event_bus=event_bus, logger=logger)
    booking_uow = BookingUnitOfWork(
        hotels=catalog_uow.hotels, event_bus=event_bus, logger=logger
    )

    # 3. Сервисы
    auth_provider = auth_provider or StaticTokenAuthProvider(logger=logger)
    notification_sink = notification_sink or LoggingNotificationSink()
    catalog_service = CatalogApplicationService(
        catalog_uow,
        settings=settings,
        logger=StructuredLogger(f"{settings.service_name}.catalog"),
    )
    booking_service = BookingApplicationService(
        booking_uow,
        settings=settings,
        logger=StructuredLogger(f"{settings.service_name}.booking"),
        clock=clock,
    )
    pricing_service = PricingApplicationService(
        StructuredLogger(f"{settings.service_name}.pricing")
    )

    # 4. Подписываем обработчики на события
    handler = partial(on_refund_requested, sink=notification_sink)
    event_bus.subscribe(RefundRequested, handler)

    logger.info(
        "Application bootstrapped",
        service=settings.service_name,
        version=settings.service_version,
    )
    return Application(
        settings=settings,
        auth_provider=auth_provider,
        event_bus=event_bus,
        catalog_uow=catalog_uow,
        booking_uow=booking_uow,
        notification_sink=notification_sink,
        catalog_service=catalog_service,
        booking_service=booking_service,
        pricing_service=pricing_service,
    )
