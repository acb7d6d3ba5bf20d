# tests/conftest.py
# Окружение тестов: временная SQLite-база и каталоги до импорта пакета storefront.
import os
import tempfile

_TMP = tempfile.mkdtemp(prefix="storefront-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_TMP, 'test.db')}"
os.environ["UPLOAD_DIR"] = os.path.join(_TMP, "uploads")
os.environ["CART_STORAGE_DIR"] = os.path.join(_TMP, "carts")
os.environ["CART_STORAGE"] = "db"
os.environ["ENVIRONMENT"] = "testing"
os.environ["PUBLIC_BASE_URL"] = "http://testserver"
os.environ["SECRET_KEY"] = "test-secret"

import pytest
from fastapi.testclient import TestClient

from storefront.db.base import Base
from storefront.db.session import engine

import storefront.models.user
import storefront.models.product
import storefront.models.cart

PASSWORD = "Secret123"


@pytest.fixture(autouse=True)
def fresh_db():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture
def client():
    from storefront.main import app

    with TestClient(app) as c:
        yield c


def auth_headers(client, email: str, role: str) -> dict:
    resp = client.post(
        "/api/auth/register",
        json={"email": email, "password": PASSWORD, "full_name": "Test User", "role": role},
    )
    assert resp.status_code == 200, resp.text
    resp = client.post("/api/auth/token", data={"username": email, "password": PASSWORD})
    assert resp.status_code == 200, resp.text
    return {"Authorization": f"Bearer {resp.json()['access_token']}"}


@pytest.fixture
def register():
    return auth_headers


@pytest.fixture
def buyer_headers(client):
    return auth_headers(client, "buyer@example.com", "buyer")


@pytest.fixture
def seller_headers(client):
    return auth_headers(client, "seller@example.com", "seller")


@pytest.fixture
def product_factory(client, seller_headers):
    def make(name="Desk Lamp", price=10.0, category="Home & Garden", **extra):
        body = {"name": name, "description": f"{name} description", "category": category, "price": price}
        body.update(extra)
        resp = client.post("/api/products/", json=body, headers=seller_headers)
        assert resp.status_code == 200, resp.text
        return resp.json()["product"]

    return make
