from storefront.db.session import SessionLocal
from storefront.models.cart import CartItem as CartItemRow
from storefront.services.cart import CartItem
from storefront.services.cart_storage import JsonFileCartStorage, MemoryCartStorage, SqlCartStorage

ITEMS = [
    CartItem(product_id="1", name="Lamp", price=10.0, quantity=2, category="Home", seller_id="7"),
    CartItem(product_id="2", name="Mug", price=4.5, quantity=1, image_url="https://example.com/mug.jpg"),
]


def test_file_storage_saves_per_user(tmp_path):
    storage = JsonFileCartStorage(str(tmp_path))
    storage.save("user-1", ITEMS)
    storage.save("user/2", ITEMS[:1])

    assert storage.load("user-1") == ITEMS
    assert storage.load("user/2") == ITEMS[:1]
    assert storage.load("nobody") == []
    assert len(list(tmp_path.glob("*.json"))) == 2


def test_file_storage_tolerates_malformed_data(tmp_path):
    storage = JsonFileCartStorage(str(tmp_path))
    storage.save("u1", ITEMS)
    storage._path("u1").write_text("{not json", encoding="utf-8")
    assert storage.load("u1") == []

    storage._path("u1").write_text('[{"product_id": "1", "name": "Lamp", "price": 1, "quantity": 0}]',
                                   encoding="utf-8")
    assert storage.load("u1") == []

    storage._path("u1").write_bytes(b"\xff\xfe\x00garbage")
    assert storage.load("u1") == []


def test_file_storage_clear(tmp_path):
    storage = JsonFileCartStorage(str(tmp_path))
    storage.save("u1", ITEMS)
    storage.clear("u1")
    assert storage.load("u1") == []
    storage.clear("u1")


def test_memory_storage_tolerates_malformed_data():
    storage = MemoryCartStorage()
    storage.data["u1"] = '{"items": []}'
    assert storage.load("u1") == []


def test_sql_storage_replaces_whole_cart():
    storage = SqlCartStorage()
    storage.save("u1", ITEMS)
    storage.save("u2", ITEMS[:1])
    assert storage.load("u1") == ITEMS

    storage.save("u1", [ITEMS[1]])
    assert storage.load("u1") == [ITEMS[1]]
    assert storage.load("u2") == ITEMS[:1]

    storage.clear("u1")
    assert storage.load("u1") == []


def test_sql_storage_skips_rows_below_one():
    with SessionLocal() as db:
        db.add(CartItemRow(user_id="u1", product_id="1", quantity=0, product_name="Lamp", product_price=10.0))
        db.add(CartItemRow(user_id="u1", product_id="2", quantity=3, product_name="Mug", product_price=4.5))
        db.commit()

    items = SqlCartStorage().load("u1")
    assert [(it.product_id, it.quantity) for it in items] == [("2", 3)]
