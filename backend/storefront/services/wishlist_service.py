from typing import List

from sqlalchemy.orm import Session

from storefront.errors import NotFoundError
from storefront.models.product import Product
from storefront.repositories.product_repo import ProductRepository
from storefront.repositories.wishlist_repo import WishlistRepository
from storefront.utils.log import get_logger
from storefront.utils.transactions import smart_transaction

log = get_logger("storefront.wishlist")


class WishlistService:
    """A user's saved products. Adding a product twice keeps one entry."""

    def __init__(self, db: Session):
        self.db = db
        self.repo = WishlistRepository(db)
        self.products = ProductRepository(db)

    def get(self, user_id: int) -> List[Product]:
        return self.repo.products(user_id)

    def add(self, user_id: int, product_id: int) -> List[Product]:
        with smart_transaction(self.db):
            if self.products.get(product_id) is None:
                raise NotFoundError("Product not found")
            if self.repo.find(user_id, product_id) is None:
                self.repo.add(user_id, product_id)
        log.debug("wishlist user=%s +product=%s", user_id, product_id)
        return self.get(user_id)

    def remove(self, user_id: int, product_id: int) -> List[Product]:
        with smart_transaction(self.db):
            item = self.repo.find(user_id, product_id)
            if item is None:
                raise NotFoundError("Product not found in wishlist")
            self.repo.remove(item)
        return self.get(user_id)

    def clear(self, user_id: int):
        with smart_transaction(self.db):
            removed = self.repo.clear(user_id)
        log.debug("wishlist user=%s cleared %s", user_id, removed)
