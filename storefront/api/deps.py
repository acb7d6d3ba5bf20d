# storefront/api/deps.py
# Общие зависимости роутеров: backend-клиент и корзина текущего пользователя.
from typing import Optional

from fastapi import Depends

from storefront.core.identity import Identity
from storefront.core.security import get_optional_identity
from storefront.services.backend import SqlBackend
from storefront.services.cart import CartStore
from storefront.services.cart_storage import get_cart_storage


def get_backend() -> SqlBackend:
    return SqlBackend()


def get_cart(identity: Optional[Identity] = Depends(get_optional_identity)) -> CartStore:
    return CartStore(get_cart_storage(), identity)
