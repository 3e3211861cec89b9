"""
Модуль контекста ценообразования (Pricing Context).

Отвечает за расчет стоимости проживания:
- Последовательное применение скидок (акция, уровень участника, купон)
- Таблицу скидок по уровням программы лояльности
- Расчет списания баллов
"""

from . import application, domain

__all__ = [
    "domain",
    "application",
]
