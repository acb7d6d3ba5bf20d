# storefront/api/cart.py
# Корзина текущего пользователя. Читать может кто угодно, менять — только покупатель.
from fastapi import APIRouter, Depends
from pydantic import BaseModel
from starlette.concurrency import run_in_threadpool

from storefront.api.deps import get_backend, get_cart
from storefront.services.backend import SqlBackend
from storefront.services.cart import CartStore

router = APIRouter()


class AddItemRequest(BaseModel):
    product_id: int


class QuantityRequest(BaseModel):
    quantity: int


@router.get("/")
def get_cart_summary(cart: CartStore = Depends(get_cart)):
    return cart.summary().to_dict()


@router.post("/items")
async def add_item(
    payload: AddItemRequest,
    cart: CartStore = Depends(get_cart),
    backend: SqlBackend = Depends(get_backend),
):
    cart.require_buyer()
    product = await run_in_threadpool(backend.get, "products", payload.product_id)
    summary = await cart.add_to_cart(product)
    return summary.to_dict()


@router.put("/items/{product_id}")
async def update_item(product_id: str, payload: QuantityRequest, cart: CartStore = Depends(get_cart)):
    return (await cart.update_quantity(product_id, payload.quantity)).to_dict()


@router.post("/items/{product_id}/decrement")
async def decrement_item(product_id: str, cart: CartStore = Depends(get_cart)):
    return (await cart.remove_quantity(product_id)).to_dict()


@router.delete("/items/{product_id}")
async def remove_item(product_id: str, cart: CartStore = Depends(get_cart)):
    return (await cart.remove_from_cart(product_id)).to_dict()


@router.post("/clear")
async def clear_cart(cart: CartStore = Depends(get_cart)):
    return (await cart.clear_cart()).to_dict()
