from storefront.services import pricing
from storefront.services.cart import CartItem


def test_totals_are_sums_over_all_lines():
    items = [
        CartItem(product_id="1", name="A", price=10.0, quantity=2),
        CartItem(product_id="2", name="B", price=2.5, quantity=3),
    ]
    assert pricing.line_total(items[0]) == 20.0
    assert pricing.cart_total(items) == 27.5
    assert pricing.item_count(items) == 5


def test_empty_cart_totals():
    assert pricing.cart_total([]) == 0.0
    assert pricing.item_count([]) == 0


def test_rounding_only_for_display():
    items = [CartItem(product_id="1", name="A", price=0.1, quantity=3)]
    assert pricing.cart_total(items) != 0.3
    assert pricing.display_amount(pricing.cart_total(items)) == 0.3
    assert pricing.money(20) == "20.00 USD"
