from typing import List, Optional

from sqlalchemy.orm import Session

from storefront.models.product import Product
from storefront.models.wishlist import WishlistItem


class WishlistRepository:
    def __init__(self, db: Session):
        self.db = db

    def products(self, user_id: int) -> List[Product]:
        """Active products on the user's wishlist, oldest entry first."""
        return (
            self.db.query(Product)
            .join(WishlistItem, WishlistItem.product_id == Product.id)
            .filter(WishlistItem.user_id == user_id, Product.active == True)  # noqa: E712
            .order_by(WishlistItem.id)
            .all()
        )

    def find(self, user_id: int, product_id: int) -> Optional[WishlistItem]:
        return (
            self.db.query(WishlistItem)
            .filter(WishlistItem.user_id == user_id, WishlistItem.product_id == product_id)
            .first()
        )

    def add(self, user_id: int, product_id: int) -> WishlistItem:
        item = WishlistItem(user_id=user_id, product_id=product_id)
        self.db.add(item)
        self.db.flush()
        return item

    def remove(self, item: WishlistItem):
        self.db.delete(item)
        self.db.flush()

    def clear(self, user_id: int) -> int:
        return (
            self.db.query(WishlistItem)
            .filter(WishlistItem.user_id == user_id)
            .delete(synchronize_session=False)
        )
