from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from storefront.api.deps import require
from storefront.db import get_db
from storefront.models.user import User
from storefront.schemas.cart_schema import CartOut
from storefront.services.cart_service import CartService

router = APIRouter(prefix="/api/cart", tags=["cart"])

manage_cart = require("cart:manage")


class AddItemIn(BaseModel):
    product_id: int
    quantity: int = 1


class QuantityIn(BaseModel):
    quantity: int


class CouponIn(BaseModel):
    code: str


def _cart_out(cart, user: User) -> dict:
    if cart is None:
        return CartOut.empty(user.id).model_dump()
    return CartOut.model_validate(cart).model_dump()


@router.get("", summary="Get cart")
def get_cart(user: User = Depends(manage_cart), db: Session = Depends(get_db)):
    return _cart_out(CartService(db).get_cart(user.id), user)


@router.post("", status_code=201, summary="Add item to cart")
def add_item(payload: AddItemIn, user: User = Depends(manage_cart), db: Session = Depends(get_db)):
    cart = CartService(db).add_item(user.id, payload.product_id, payload.quantity)
    return _cart_out(cart, user)


@router.delete("", summary="Clear cart")
def clear_cart(user: User = Depends(manage_cart), db: Session = Depends(get_db)):
    CartService(db).clear(user.id)
    return {"ok": True, "cart": _cart_out(None, user)}


@router.patch("/apply-coupon", summary="Apply coupon")
def apply_coupon(payload: CouponIn, user: User = Depends(manage_cart), db: Session = Depends(get_db)):
    cart = CartService(db).apply_coupon(user.id, payload.code)
    return {"message": "Coupon applied successfully", "cart": _cart_out(cart, user)}


@router.patch("/{product_id}", summary="Update item quantity")
def update_item(
    product_id: int,
    payload: QuantityIn,
    user: User = Depends(manage_cart),
    db: Session = Depends(get_db),
):
    cart = CartService(db).update_item_quantity(user.id, product_id, payload.quantity)
    return _cart_out(cart, user)


@router.delete("/{product_id}", summary="Remove item")
def remove_item(product_id: int, user: User = Depends(manage_cart), db: Session = Depends(get_db)):
    cart = CartService(db).remove_item(user.id, product_id)
    return _cart_out(cart, user)
