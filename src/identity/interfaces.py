"""
Интерфейсы (порты) для контекста идентификации.
"""

from __future__ import annotations

from typing import Optional, Protocol

from .domain import Identity


class IAuthProvider(Protocol):
    """Проверяет bearer-токен и возвращает пользователя.

    Бросает AuthenticationError, если токен отсутствует, неизвестен или просрочен.
    """

    def authenticate(self, credential: Optional[str]) -> Identity: ...
