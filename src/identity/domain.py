"""
Доменная модель контекста идентификации.

Токены выдает и проверяет внешний провайдер; здесь описано только то,
что остальные контексты получают от него: кто вызывает и в какой роли.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict

from shared_kernel import AuthorizationError, EntityId, now


class Role(str, Enum):
    """Роли пользователей."""

    MERCHANT = "merchant"  # Владелец отелей
    ADMIN = "admin"  # Модератор платформы
    END_USER = "end_user"  # Пользователь мобильного приложения


class Identity(BaseModel):
    """Аутентифицированный пользователь."""

    model_config = ConfigDict(frozen=True)

    user_id: EntityId
    role: Role
    expires_at: Optional[datetime] = None

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    def is_expired(self, moment: Optional[datetime] = None) -> bool:
        if self.expires_at is None:
            return False
        return (moment or now()) >= self.expires_at

    def require_role(self, *roles: Role) -> None:
        """Проверяет, что роль пользователя входит в список разрешенных."""
        if self.role not in roles:
            raise AuthorizationError(
                f"Операция недоступна для роли {self.role.value}",
                role=self.role.value,
            )
