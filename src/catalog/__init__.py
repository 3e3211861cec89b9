"""
Модуль контекста каталога отелей (Catalog Context).

Отвечает за жизненный цикл карточки отеля:
- Создание и редактирование владельцем
- Модерацию администратором
- Публикацию и снятие с публикации
"""

from . import application, domain, infrastructure, interfaces

__all__ = [
    "domain",
    "interfaces",
    "application",
    "infrastructure",
]
