# storefront/services/catalog.py
# Витрина: поиск по ключевому слову, фильтр по категориям и цене, сортировка, страницы.
# Чистые синхронные функции над списком словарей товаров.
import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from storefront.core.config import settings

SORT_POPULARITY = "popularity"
SORT_PRICE_LOW = "price-low"
SORT_PRICE_HIGH = "price-high"
SORT_RATING = "rating"
SORT_NEWEST = "newest"
SORT_KEYS = (SORT_POPULARITY, SORT_PRICE_LOW, SORT_PRICE_HIGH, SORT_RATING, SORT_NEWEST)

ANY_PRICE = (0.0, math.inf)


@dataclass
class ListingQuery:
    keyword: str = ""
    categories: Sequence[str] = ()
    price_range: Tuple[float, float] = ANY_PRICE
    sort_by: str = SORT_POPULARITY
    page: int = 1
    page_size: int = field(default_factory=lambda: settings.PAGE_SIZE)


@dataclass
class Page:
    items: List[Mapping[str, Any]]
    page: int
    page_size: int
    total: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.page_size) if self.total else 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "items": list(self.items),
            "page": self.page,
            "page_size": self.page_size,
            "total": self.total,
            "total_pages": self.total_pages,
        }


def search_products(products: Sequence[Mapping], keyword: str) -> List[Mapping]:
    """Совпадения по name/description/category без учёта регистра; совпадения по имени — первыми."""
    needle = (keyword or "").strip().lower()
    if not needle:
        return list(products)

    seen = set()
    name_hits, other_hits = [], []
    for p in products:
        if p.get("id") in seen:
            continue
        name = str(p.get("name") or "").lower()
        rest = f"{p.get('description') or ''} {p.get('category') or ''}".lower()
        if needle in name:
            name_hits.append(p)
        elif needle in rest:
            other_hits.append(p)
        else:
            continue
        seen.add(p.get("id"))
    return name_hits + other_hits


def filter_products(products: Sequence[Mapping], categories: Sequence[str] = (),
                    price_range: Tuple[float, float] = ANY_PRICE) -> List[Mapping]:
    wanted = {c.lower() for c in categories if c}
    low, high = price_range
    result = []
    for p in products:
        if wanted and str(p.get("category") or "").lower() not in wanted:
            continue
        price = float(p.get("price") or 0)
        if low <= price <= high:
            result.append(p)
    return result


def _timestamp(value) -> float:
    if value is None or value == "":
        return -math.inf
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return -math.inf
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.timestamp()


def _review_count(p: Mapping) -> int:
    return int(p.get("review_count") or p.get("reviewCount") or 0)


def sort_products(products: Sequence[Mapping], sort_by: str = SORT_POPULARITY) -> List[Mapping]:
    if sort_by == SORT_PRICE_LOW:
        return sorted(products, key=lambda p: float(p.get("price") or 0))
    if sort_by == SORT_PRICE_HIGH:
        return sorted(products, key=lambda p: float(p.get("price") or 0), reverse=True)
    if sort_by == SORT_RATING:
        return sorted(products, key=lambda p: float(p.get("rating") or 0), reverse=True)
    if sort_by == SORT_NEWEST:
        return sorted(products, key=lambda p: _timestamp(p.get("created_at")), reverse=True)
    return sorted(products, key=_review_count, reverse=True)


def paginate(products: Sequence[Mapping], page: int = 1, page_size: Optional[int] = None) -> Page:
    page_size = page_size or settings.PAGE_SIZE
    if page_size < 1:
        raise ValueError("page_size must be >= 1")
    total = len(products)
    last_page = max(1, math.ceil(total / page_size))
    page = min(max(1, int(page)), last_page)
    start = (page - 1) * page_size
    return Page(items=list(products[start:start + page_size]), page=page, page_size=page_size, total=total)


def browse(products: Sequence[Mapping], query: ListingQuery) -> Page:
    found = search_products(products, query.keyword)
    found = filter_products(found, query.categories, query.price_range)
    found = sort_products(found, query.sort_by)
    return paginate(found, query.page, query.page_size)
