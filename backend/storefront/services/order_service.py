import time
from datetime import datetime
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from storefront.adapters.mock_payment import MockPaymentAdapter
from storefront.errors import (
    ConflictError,
    EmptyCartError,
    NotFoundError,
    ValidationError,
)
from storefront.models.idempotency import IdempotencyStatus
from storefront.models.order import Order, OrderLine
from storefront.models.product import Product
from storefront.models.user import User
from storefront.repositories.cart_repo import CartRepository
from storefront.repositories.idempotency_repo import IdempotencyRepository
from storefront.repositories.order_repo import OrderRepository
from storefront.schemas.order_schema import OrderOut
from storefront.services.cart_service import locked_cart_unit
from storefront.services.policy import policy
from storefront.utils.clock import as_utc, utcnow
from storefront.utils.log import get_logger

log = get_logger("storefront.orders")

PAYMENT_METHODS = ("cash", "card")


class OrderService:
    def __init__(self, db: Session, payment_adapter: Optional[MockPaymentAdapter] = None):
        self.db = db
        self.cart_repo = CartRepository(db)
        self.order_repo = OrderRepository(db)
        self.idem_repo = IdempotencyRepository(db)
        self.payment_adapter = payment_adapter or MockPaymentAdapter()

    def checkout(
        self,
        user_id: int,
        cart_id: int,
        shipping_address: Optional[str] = None,
        payment_method: str = "cash",
    ) -> Order:
        """
        Turn the user's cart into an order.

        Lines are copied from the cart (price snapshots included), the total is
        the discounted total when a coupon is applied, product stock/sold
        counters are adjusted and the cart is deleted. All of it is one
        transaction taken under the owner's cart lock: either the order exists
        and the cart is gone, or nothing changed.
        """
        if payment_method not in PAYMENT_METHODS:
            raise ValidationError(f"Unsupported payment method: {payment_method}")
        with locked_cart_unit(self.db, user_id):
            cart = self.cart_repo.get_for_owner(cart_id, user_id)
            if cart is None:
                raise NotFoundError(f"There is no cart with id: {cart_id}")
            if not cart.items:
                raise EmptyCartError("Your cart is empty")

            order = Order(
                owner_id=user_id,
                shipping_address=shipping_address,
                payment_method=payment_method,
                total_price_cents=cart.payable_cents,
                coupon_code=cart.coupon_code,
                is_paid=False,
                is_delivered=False,
            )
            for it in cart.items:
                product = it.product
                if product is None or not product.active:
                    raise ValidationError(f"Product {it.product_id} is no longer available")
                order.lines.append(
                    OrderLine(
                        product_id=product.id,
                        sku=product.sku,
                        name=product.name,
                        quantity=it.quantity,
                        unit_price_cents=it.unit_price_cents,
                    )
                )
            self.order_repo.add(order)
            for line in order.lines:
                self._take_stock(line)
            self.cart_repo.delete(cart)
        log.info(
            "checkout user=%s cart=%s -> order=%s total_cents=%s",
            user_id, cart_id, order.id, order.total_price_cents,
        )
        return order

    def _take_stock(self, line: OrderLine):
        # conditional decrement: carts of different owners race on the same product
        changed = (
            self.db.query(Product)
            .filter(Product.id == line.product_id, Product.stock >= line.quantity)
            .update(
                {
                    Product.stock: Product.stock - line.quantity,
                    Product.sold: Product.sold + line.quantity,
                },
                synchronize_session=False,
            )
        )
        if not changed:
            available = self.db.query(Product.stock).filter(Product.id == line.product_id).scalar()
            raise ValidationError(f"Not enough stock for {line.sku}. Available={available or 0}")

    def place_order(
        self,
        user_id: int,
        cart_id: int,
        shipping_address: Optional[str] = None,
        payment_method: str = "cash",
        idempotency_key: Optional[str] = None,
    ) -> Dict:
        """
        checkout() with an optional Idempotency-Key. A key that already
        completed replays the stored response instead of creating a second
        order; a key still in progress is waited on briefly.
        """
        if not idempotency_key:
            return self._to_response(
                self.checkout(user_id, cart_id, shipping_address, payment_method)
            )

        rec, created = self.idem_repo.begin(idempotency_key, "create_order", owner_id=user_id)
        if not created:
            timeout = 2.0
            start = time.time()
            while True:
                if rec is not None and rec.status == IdempotencyStatus.COMPLETED and rec.response_body:
                    log.debug("replaying idempotent response key=%r", idempotency_key)
                    return rec.response_body
                if time.time() - start >= timeout:
                    # Owner hasn't finished within timeout, refuse to proceed to prevent duplicates
                    raise ConflictError("Duplicate request in progress, try again later")
                time.sleep(0.05)
                rec = self.idem_repo.get(idempotency_key)

        try:
            resp = self._to_response(
                self.checkout(user_id, cart_id, shipping_address, payment_method)
            )
        except Exception as e:
            self.idem_repo.mark_failed(idempotency_key, str(e))
            raise
        self.idem_repo.mark_completed(idempotency_key, resp)
        return resp

    def mark_paid(self, order_id: int, now: Optional[datetime] = None) -> Order:
        """unpaid -> paid. Repeat calls keep the first paid_at."""
        return self._transition(order_id, "is_paid", "paid_at", now)

    def mark_delivered(self, order_id: int, now: Optional[datetime] = None) -> Order:
        """undelivered -> delivered. Repeat calls keep the first delivered_at."""
        return self._transition(order_id, "is_delivered", "delivered_at", now)

    def _transition(self, order_id: int, flag: str, stamp: str, now: Optional[datetime]) -> Order:
        now = as_utc(now) or utcnow()
        # conditional update: only the first caller flips the flag
        changed = (
            self.db.query(Order)
            .filter(Order.id == order_id, getattr(Order, flag) == False)  # noqa: E712
            .update({flag: True, stamp: now}, synchronize_session=False)
        )
        self.db.commit()
        order = self.order_repo.get(order_id)
        if order is None:
            raise NotFoundError(f"There is no order with id: {order_id}")
        self.db.refresh(order)
        if changed:
            log.info("order=%s %s at %s", order_id, flag, now.isoformat())
        return order

    def list_orders(self, user: User) -> List[Order]:
        read_all = policy(user.role, "order:read-all")
        return self.order_repo.list(None if read_all else user.id)

    def get_order(self, user: User, order_id: int) -> Order:
        order = self.order_repo.get(order_id)
        if order is None or (
            not policy(user.role, "order:read-all") and order.owner_id != user.id
        ):
            raise NotFoundError(f"There is no order with id: {order_id}")
        return order

    def update_order(self, order_id: int, shipping_address: Optional[str] = None) -> Order:
        """
        Admin edit of an order's shipping address. Lines and totals are a
        snapshot and never change; a delivered order is closed for edits.
        """
        order = self.order_repo.get(order_id)
        if order is None:
            raise NotFoundError(f"There is no order with id: {order_id}")
        if order.is_delivered:
            raise ValidationError("Order is already delivered")
        if shipping_address is not None:
            order.shipping_address = shipping_address
        self.db.commit()
        self.db.refresh(order)
        log.info("updated order=%s", order_id)
        return order

    def delete_order(self, order_id: int):
        order = self.order_repo.get(order_id)
        if order is None:
            raise NotFoundError(f"There is no order with id: {order_id}")
        self.order_repo.delete(order)
        self.db.commit()
        log.info("deleted order=%s", order_id)

    def create_checkout_session(self, user: User, shipping_address: Optional[str] = None) -> Dict:
        """Open a hosted payment session for the user's current cart."""
        cart = self.cart_repo.get_by_owner(user.id)
        if cart is None or not cart.items:
            raise EmptyCartError("Your cart is empty")
        line_items = [
            {
                "name": it.product.name if it.product else str(it.product_id),
                "quantity": it.quantity,
                "unit_amount": it.unit_price_cents,
            }
            for it in cart.items
        ]
        session = self.payment_adapter.create_session(
            amount_cents=cart.payable_cents,
            client_reference_id=str(cart.id),
            line_items=line_items,
            customer_email=user.email,
            metadata={"shipping_address": shipping_address} if shipping_address else None,
        )
        log.info("checkout session %s for user=%s cart=%s", session["id"], user.id, cart.id)
        return session

    @staticmethod
    def _to_response(order: Order) -> Dict:
        return OrderOut.model_validate(order).model_dump(mode="json")
