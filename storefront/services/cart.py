# storefront/services/cart.py
# Корзина покупателя: список позиций в памяти, переходы add/remove/update/clear.
# Менять корзину может только авторизованный пользователь с ролью buyer.
# Итоги каждый раз пересчитываются по всему списку.
from __future__ import annotations

import logging
import math
from collections.abc import Mapping
from dataclasses import asdict, dataclass, field
from typing import Any, Callable, List, Optional, Tuple

from starlette.concurrency import run_in_threadpool

from storefront.core.errors import AuthorizationError
from storefront.core.identity import Identity, IdentityFeed
from storefront.services import pricing

logger = logging.getLogger(__name__)

SNAPSHOT_FIELDS = ("name", "description", "price", "image_url", "category", "seller_id")


@dataclass
class CartItem:
    product_id: str
    name: str
    price: float
    quantity: int = 1
    description: str = ""
    image_url: Optional[str] = None
    category: Optional[str] = None
    seller_id: Optional[str] = None

    @property
    def line_total(self) -> float:
        return pricing.line_total(self)

    @classmethod
    def from_product(cls, product: Any) -> "CartItem":
        """Снимок товара (dict или ORM-объект) с количеством 1."""
        if isinstance(product, Mapping):
            get = product.get
        else:
            def get(key, default=None):
                return getattr(product, key, default)

        product_id = get("id")
        if product_id is None:
            raise ValueError("product snapshot has no id")
        price = float(get("price") or 0)
        if not math.isfinite(price) or price <= 0:
            raise ValueError(f"product {product_id} has invalid price {price}")
        seller_id = get("seller_id")
        return cls(
            product_id=str(product_id),
            name=get("name") or "",
            description=get("description") or "",
            price=price,
            image_url=get("image_url"),
            category=get("category"),
            seller_id=str(seller_id) if seller_id is not None else None,
        )

    @classmethod
    def from_dict(cls, data: Mapping) -> "CartItem":
        quantity = int(data["quantity"])
        if quantity < 1:
            raise ValueError(f"quantity must be >= 1, got {quantity}")
        return cls(
            product_id=str(data["product_id"]),
            name=str(data["name"]),
            price=float(data["price"]),
            quantity=quantity,
            description=data.get("description") or "",
            image_url=data.get("image_url"),
            category=data.get("category"),
            seller_id=data.get("seller_id"),
        )

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class CartSummary:
    items: Tuple[CartItem, ...] = field(default_factory=tuple)
    total: float = 0.0
    item_count: int = 0

    @classmethod
    def of(cls, items: List[CartItem]) -> "CartSummary":
        return cls(
            items=tuple(CartItem(**it.to_dict()) for it in items),
            total=pricing.cart_total(items),
            item_count=pricing.item_count(items),
        )

    @property
    def is_empty(self) -> bool:
        return not self.items

    def to_dict(self) -> dict:
        return {
            "items": [dict(it.to_dict(), line_total=pricing.display_amount(it.line_total)) for it in self.items],
            "total": pricing.display_amount(self.total),
            "item_count": self.item_count,
            "formatted_total": pricing.money(self.total),
        }


class CartStore:
    """
    Контейнер состояния корзины.

    Состояния: пустая / заполненная. При смене identity на «не покупатель»
    корзина сразу очищается; при входе покупателя загружается из storage
    по его id. После каждого изменения список сохраняется в storage.
    """

    def __init__(self, storage, identity: Optional[Identity] = None):
        self._storage = storage
        self._identity: Optional[Identity] = None
        self._items: List[CartItem] = []
        self._loaded_for: Optional[str] = None
        self._unsubscribe: Optional[Callable[[], None]] = None
        self.on_identity_change(identity)

    # ---------------- lifecycle ----------------

    def attach(self, feed: IdentityFeed) -> None:
        """Подписка на поток identity; сразу применяет текущее значение."""
        self.detach()
        self._unsubscribe = feed.subscribe(self.on_identity_change)
        self.on_identity_change(feed.current)

    def detach(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def on_identity_change(self, identity: Optional[Identity]) -> None:
        previous = self._identity
        self._identity = identity

        if identity is None or not identity.is_buyer:
            if self._items:
                logger.info("Cart cleared: user signed out or is not a buyer")
            self._items = []
            self._loaded_for = None
            if previous is not None and previous.is_buyer:
                self._storage.clear(previous.id)
            return

        if self._loaded_for != identity.id:
            self._items = self._storage.load(identity.id)
            self._loaded_for = identity.id
            logger.debug(f"Cart loaded for user {identity.id}: {len(self._items)} item(s)")

    # ---------------- reads ----------------

    @property
    def identity(self) -> Optional[Identity]:
        return self._identity

    @property
    def items(self) -> List[CartItem]:
        return [CartItem(**it.to_dict()) for it in self._items]

    @property
    def total(self) -> float:
        return pricing.cart_total(self._items)

    @property
    def item_count(self) -> int:
        return pricing.item_count(self._items)

    def summary(self) -> CartSummary:
        return CartSummary.of(self._items)

    def is_in_cart(self, product_id) -> bool:
        return self._find(str(product_id)) is not None

    def get_item_quantity(self, product_id) -> int:
        item = self._find(str(product_id))
        return item.quantity if item else 0

    # ---------------- mutations ----------------

    async def add_to_cart(self, product: Any) -> CartSummary:
        self.require_buyer()
        new_item = product if isinstance(product, CartItem) else CartItem.from_product(product)
        items = self.items
        for it in items:
            if it.product_id == new_item.product_id:
                it.quantity += 1
                break
        else:
            new_item = CartItem(**dict(new_item.to_dict(), quantity=1))
            items.append(new_item)
        return await self._commit(items)

    async def remove_from_cart(self, product_id) -> CartSummary:
        self.require_buyer()
        pid = str(product_id)
        return await self._commit([it for it in self._items if it.product_id != pid])

    async def update_quantity(self, product_id, quantity: int) -> CartSummary:
        self.require_buyer()
        pid = str(product_id)
        quantity = max(1, int(quantity))
        items = self.items
        for it in items:
            if it.product_id == pid:
                it.quantity = quantity
        return await self._commit(items)

    async def remove_quantity(self, product_id) -> CartSummary:
        self.require_buyer()
        pid = str(product_id)
        current = self._find(pid)
        if current is None:
            return self.summary()
        if current.quantity <= 1:
            return await self.remove_from_cart(pid)
        items = self.items
        for it in items:
            if it.product_id == pid:
                it.quantity -= 1
        return await self._commit(items)

    async def clear_cart(self) -> CartSummary:
        self.require_buyer()
        return await self._commit([])

    # ---------------- internals ----------------

    def _find(self, product_id: str) -> Optional[CartItem]:
        for it in self._items:
            if it.product_id == product_id:
                return it
        return None

    def require_buyer(self) -> None:
        if self._identity is None or not self._identity.is_buyer:
            raise AuthorizationError("You must be signed in as a buyer")

    async def _commit(self, items: List[CartItem]) -> CartSummary:
        self._items = items
        summary = self.summary()
        await run_in_threadpool(self._storage.save, self._identity.id, self.items)
        return summary
