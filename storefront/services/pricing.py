# storefront/services/pricing.py
# Арифметика корзины. Суммы не округляются при хранении, только при выводе.
from typing import Iterable

from storefront.core.config import settings


def line_total(item) -> float:
    return float(item.price) * int(item.quantity)


def cart_total(items: Iterable) -> float:
    return sum((line_total(it) for it in items), 0.0)


def item_count(items: Iterable) -> int:
    return sum(int(it.quantity) for it in items)


def display_amount(amount: float) -> float:
    return round(amount, 2)


def money(amount: float) -> str:
    return f"{amount:.2f} {settings.CURRENCY}"
