from contextlib import contextmanager
from datetime import datetime
from typing import Iterator, Optional

from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from storefront.errors import (
    ConflictError,
    EmptyCartError,
    InvalidCouponError,
    NotFoundError,
    ValidationError,
)
from storefront.models.cart import Cart
from storefront.repositories.cart_repo import CartRepository
from storefront.repositories.product_repo import ProductRepository
from storefront.services.coupon_service import CouponService
from storefront.utils.locks import owner_lock
from storefront.utils.log import get_logger
from storefront.utils.transactions import smart_transaction

log = get_logger("storefront.cart")


@contextmanager
def locked_cart_unit(db: Session, owner_id: int) -> Iterator[None]:
    """
    Serialize work on one owner's cart: per-owner file lock around a single
    transaction. A version clash with a writer outside the lock becomes a
    ConflictError.
    """
    with owner_lock(owner_id):
        try:
            with smart_transaction(db):
                yield
        except StaleDataError:
            raise ConflictError("Cart was modified by another request, please retry")


class CartService:
    def __init__(self, db: Session):
        self.db = db
        self.cart_repo = CartRepository(db)
        self.product_repo = ProductRepository(db)
        self.coupons = CouponService(db)

    def get_cart(self, user_id: int) -> Optional[Cart]:
        return self.cart_repo.get_by_owner(user_id)

    def add_item(self, user_id: int, product_id: int, qty: int) -> Cart:
        """Add `qty` of a product, creating the cart on first use."""
        if qty is None or qty < 1:
            raise ValidationError("Quantity must be positive")
        with locked_cart_unit(self.db, user_id):
            product = self.product_repo.get(product_id)
            if not product:
                raise ValidationError("Product not found")
            cart = self.cart_repo.get_by_owner(user_id) or self.cart_repo.create_for_owner(user_id)
            self.cart_repo.add_or_increment_item(cart, product.id, qty, product.price_cents)
            cart.recompute_totals()
        log.info("user=%s added product=%s qty=%s", user_id, product_id, qty)
        return cart

    def update_item_quantity(self, user_id: int, product_id: int, qty: int) -> Cart:
        """
        Set the quantity of an existing line. A quantity of zero or less removes
        the line, the same as remove_item().
        """
        with locked_cart_unit(self.db, user_id):
            cart, item = self._get_line(user_id, product_id)
            if qty <= 0:
                self.cart_repo.remove_item(cart, item)
            else:
                product = self.product_repo.get(product_id)
                item.quantity = qty
                if product is not None:
                    item.unit_price_cents = product.price_cents
            cart.recompute_totals()
        return cart

    def remove_item(self, user_id: int, product_id: int) -> Cart:
        with locked_cart_unit(self.db, user_id):
            cart, item = self._get_line(user_id, product_id)
            self.cart_repo.remove_item(cart, item)
            cart.recompute_totals()
        return cart

    def clear(self, user_id: int):
        with locked_cart_unit(self.db, user_id):
            cart = self.cart_repo.get_by_owner(user_id)
            if cart is not None:
                self.cart_repo.delete(cart)
        log.info("user=%s cleared cart", user_id)

    def apply_coupon(self, user_id: int, code: str, now: Optional[datetime] = None) -> Cart:
        """
        Apply a coupon to the whole cart. On any failure the cart is left as it
        was: unknown codes raise InvalidCouponError, expired ones
        ExpiredCouponError.
        """
        with locked_cart_unit(self.db, user_id):
            cart = self.cart_repo.get_by_owner(user_id)
            if cart is None or not cart.items:
                raise EmptyCartError("Your cart is empty")
            try:
                discount = self.coupons.validate(code, now)
            except NotFoundError:
                raise InvalidCouponError(f"Invalid coupon code: {code}")
            cart.coupon_code = code
            cart.discount_percent = discount
            cart.total_price_after_discount_cents = int(
                round(cart.total_price_cents * (100 - discount) / 100)
            )
        log.info("user=%s applied coupon=%s (%s%%)", user_id, code, discount)
        return cart

    def _get_line(self, user_id: int, product_id: int):
        cart = self.cart_repo.get_by_owner(user_id)
        item = self.cart_repo.find_item(cart, product_id) if cart else None
        if item is None:
            raise NotFoundError(f"There is no item for this product id: {product_id}")
        return cart, item
