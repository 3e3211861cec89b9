"""
Модуль контекста идентификации (Identity Context).

Роли, аутентифицированный пользователь и порт внешнего провайдера токенов.
"""

from . import domain, infrastructure, interfaces

__all__ = [
    "domain",
    "interfaces",
    "infrastructure",
]
