# storefront/core/identity.py
# Текущий пользователь {id, role} и поток событий его смены (логин, логаут, смена роли).
import logging
from dataclasses import dataclass
from typing import Callable, List, Optional

from storefront.models.user import RoleEnum

logger = logging.getLogger(__name__)

Listener = Callable[[Optional["Identity"]], None]


@dataclass(frozen=True)
class Identity:
    id: str
    role: str

    @property
    def is_buyer(self) -> bool:
        return self.role == RoleEnum.buyer.value


class IdentityFeed:
    """
    Источник identity для подписчиков (корзина и т.п.).
    Слушатели вызываются синхронно и только при реальном изменении.
    """

    def __init__(self, initial: Optional[Identity] = None):
        self._current = initial
        self._listeners: List[Listener] = []

    @property
    def current(self) -> Optional[Identity]:
        return self._current

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def publish(self, identity: Optional[Identity]) -> None:
        if identity == self._current:
            return
        logger.debug(f"Identity changed: {self._current} -> {identity}")
        self._current = identity
        for listener in list(self._listeners):
            listener(identity)
