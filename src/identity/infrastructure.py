"""
Инфраструктурный слой контекста идентификации.
"""

from typing import Dict, Optional

from shared_kernel import AuthenticationError, ILogger, StructuredLogger

from . import interfaces as ports
from .domain import Identity

BEARER_PREFIX = "Bearer "


class StaticTokenAuthProvider(ports.IAuthProvider):
    """Провайдер с заранее выданными токенами (для разработки и тестов)."""

    def __init__(
        self,
        tokens: Optional[Dict[str, Identity]] = None,
        logger: Optional[ILogger] = None,
    ):
        self._tokens: Dict[str, Identity] = dict(tokens or {})
        self._logger = logger or StructuredLogger("hotel_booking.identity")

    def register(self, token: str, identity: Identity) -> None:
        self._tokens[token] = identity

    def authenticate(self, credential: Optional[str]) -> Identity:
        if not credential:
            raise AuthenticationError("Требуется авторизация")

        token = credential
        if token.startswith(BEARER_PREFIX):
            token = token[len(BEARER_PREFIX):]

        identity = self._tokens.get(token.strip())
        if identity is None:
            self._logger.warning("Rejected unknown token")
            raise AuthenticationError("Недействительный токен")
        if identity.is_expired():
            self._logger.info("Rejected expired token", user_id=identity.user_id)
            raise AuthenticationError("Срок действия токена истек", expired=True)
        return identity
