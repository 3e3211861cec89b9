"""
Модуль контекста бронирования (Booking Context).

Отвечает за заказы гостей:
- Оформление заказа с фиксацией цены номера
- Оплату, отмену и повторное бронирование
- Начисление баллов программы лояльности
"""

from . import application, domain, event_handlers, infrastructure, interfaces

__all__ = [
    "domain",
    "interfaces",
    "application",
    "infrastructure",
    "event_handlers",
]
