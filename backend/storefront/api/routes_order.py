from fastapi import APIRouter, Depends, Header
from typing import Optional
from pydantic import BaseModel
from sqlalchemy.orm import Session
from storefront.api.deps import require
from storefront.db import get_db
from storefront.errors import ValidationError
from storefront.models.user import User
from storefront.schemas.order_schema import OrderOut
from storefront.services.order_service import OrderService

router = APIRouter(tags=["orders"])


class CashOrderIn(BaseModel):
    shipping_address: Optional[str] = None


class CheckoutSessionIn(BaseModel):
    shipping_address: Optional[str] = None


class PaidIn(BaseModel):
    is_paid: bool = True


class DeliveredIn(BaseModel):
    is_delivered: bool = True


def _out(order) -> dict:
    return OrderOut.model_validate(order).model_dump(mode="json")


# declared before /{cart_id} so the literal path wins
@router.post("/checkout-session", summary="Create payment checkout session")
def checkout_session(
    payload: Optional[CheckoutSessionIn] = None,
    user: User = Depends(require("order:create")),
    db: Session = Depends(get_db),
):
    address = payload.shipping_address if payload else None
    return OrderService(db).create_checkout_session(user, shipping_address=address)


@router.post("/{cart_id}", summary="Create cash order (checkout)")
def create_cash_order(
    cart_id: int,
    payload: Optional[CashOrderIn] = None,
    user: User = Depends(require("order:create")),
    db: Session = Depends(get_db),
    idempotency_key: Optional[str] = Header(None, alias="Idempotency-Key"),
):
    address = payload.shipping_address if payload else None
    return OrderService(db).place_order(
        user.id, cart_id, shipping_address=address, idempotency_key=idempotency_key
    )


@router.get("", summary="List orders")
def list_orders(user: User = Depends(require("order:read")), db: Session = Depends(get_db)):
    return [_out(o) for o in OrderService(db).list_orders(user)]


@router.get("/{order_id}", summary="Get order")
def get_order(order_id: int, user: User = Depends(require("order:read")), db: Session = Depends(get_db)):
    return _out(OrderService(db).get_order(user, order_id))


class OrderPatch(BaseModel):
    shipping_address: Optional[str] = None


@router.patch(
    "/{order_id}",
    summary="Update order shipping address",
    dependencies=[Depends(require("order:update"))],
)
def update_order(order_id: int, payload: OrderPatch, db: Session = Depends(get_db)):
    return _out(OrderService(db).update_order(order_id, shipping_address=payload.shipping_address))


@router.patch(
    "/{order_id}/is-paid",
    summary="Mark order paid",
    dependencies=[Depends(require("order:mark-paid"))],
)
def mark_paid(order_id: int, payload: Optional[PaidIn] = None, db: Session = Depends(get_db)):
    if payload is not None and not payload.is_paid:
        raise ValidationError("A paid order cannot be marked unpaid")
    return _out(OrderService(db).mark_paid(order_id))


@router.patch(
    "/{order_id}/is-delivered",
    summary="Mark order delivered",
    dependencies=[Depends(require("order:mark-delivered"))],
)
def mark_delivered(order_id: int, payload: Optional[DeliveredIn] = None, db: Session = Depends(get_db)):
    if payload is not None and not payload.is_delivered:
        raise ValidationError("A delivered order cannot be marked undelivered")
    return _out(OrderService(db).mark_delivered(order_id))


@router.delete(
    "/{order_id}",
    summary="Delete order",
    dependencies=[Depends(require("order:delete"))],
)
def delete_order(order_id: int, db: Session = Depends(get_db)):
    OrderService(db).delete_order(order_id)
    return {"ok": True}
