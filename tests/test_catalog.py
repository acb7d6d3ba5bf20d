from datetime import datetime

import pytest

from storefront.services.catalog import (
    ListingQuery,
    browse,
    filter_products,
    paginate,
    search_products,
    sort_products,
)

PRODUCTS = [
    {"id": 1, "name": "Desk Lamp", "description": "Warm light for reading", "category": "Home & Garden",
     "price": 35.0, "rating": 4.1, "review_count": 12, "created_at": datetime(2024, 1, 5)},
    {"id": 2, "name": "Reading Glasses", "description": "Blue light filter", "category": "Beauty & Health",
     "price": 19.5, "rating": 4.8, "review_count": 40, "created_at": datetime(2024, 3, 1)},
    {"id": 3, "name": "Trail Shoes", "description": "Grip for wet rocks", "category": "Sports & Outdoors",
     "price": 110.0, "rating": 3.9, "review_count": 5, "created_at": "2024-02-10T08:00:00Z"},
    {"id": 4, "name": "Garden Hose", "description": "Twenty metres, kink free", "category": "Home & Garden",
     "price": 42.0, "rating": 4.5, "review_count": 0, "created_at": None},
]


def ids(items):
    return [p["id"] for p in items]


def test_search_puts_name_matches_first():
    assert ids(search_products(PRODUCTS, "READING")) == [2, 1]


def test_search_matches_category_and_ignores_blank_keyword():
    assert ids(search_products(PRODUCTS, "garden")) == [4, 1]
    assert ids(search_products(PRODUCTS, "  ")) == [1, 2, 3, 4]


def test_search_skips_duplicate_ids():
    assert ids(search_products(PRODUCTS + [PRODUCTS[0]], "lamp")) == [1]


def test_filter_by_category_and_price():
    assert ids(filter_products(PRODUCTS, ["home & garden"])) == [1, 4]
    assert ids(filter_products(PRODUCTS, [], (20, 50))) == [1, 4]
    assert ids(filter_products(PRODUCTS, ["Home & Garden", "Sports & Outdoors"], (40, 200))) == [3, 4]


@pytest.mark.parametrize(
    "sort_by, expected",
    [
        ("popularity", [2, 1, 3, 4]),
        ("price-low", [2, 1, 4, 3]),
        ("price-high", [3, 4, 1, 2]),
        ("rating", [2, 4, 1, 3]),
        ("newest", [2, 3, 1, 4]),
        ("unknown", [2, 1, 3, 4]),
    ],
)
def test_sort_orders(sort_by, expected):
    assert ids(sort_products(PRODUCTS, sort_by)) == expected


def test_paginate_clamps_page_number():
    items = [{"id": n} for n in range(30)]
    page = paginate(items, page=3, page_size=12)
    assert ids(page.items) == list(range(24, 30))
    assert page.total_pages == 3

    assert paginate(items, page=99, page_size=12).page == 3
    assert paginate(items, page=0, page_size=12).page == 1


def test_paginate_empty_list():
    page = paginate([], page=5, page_size=12)
    assert page.items == []
    assert page.page == 1
    assert page.to_dict()["total_pages"] == 0


def test_browse_combines_steps():
    query = ListingQuery(keyword="light", categories=["Home & Garden", "Beauty & Health"],
                         price_range=(0, 30), sort_by="price-low", page_size=12)
    page = browse(PRODUCTS, query)
    assert ids(page.items) == [2]
    assert page.total == 1
