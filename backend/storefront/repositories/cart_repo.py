from sqlalchemy.orm import Session
from typing import Optional
from storefront.models.cart import Cart
from storefront.models.cart_item import CartItem

class CartRepository:
    def __init__(self, db: Session):
        self.db = db

    def get_by_owner(self, owner_id: int) -> Optional[Cart]:
        return self.db.query(Cart).filter(Cart.owner_id == owner_id).first()

    def get_for_owner(self, cart_id: int, owner_id: int) -> Optional[Cart]:
        return self.db.query(Cart).filter(Cart.id == cart_id, Cart.owner_id == owner_id).first()

    def create_for_owner(self, owner_id: int) -> Cart:
        c = Cart(owner_id=owner_id)
        self.db.add(c)
        self.db.flush()
        return c

    def find_item(self, cart: Cart, product_id: int) -> Optional[CartItem]:
        return next((it for it in cart.items if it.product_id == product_id), None)

    def add_or_increment_item(self, cart: Cart, product_id: int, qty: int, unit_price_cents: int) -> CartItem:
        item = self.find_item(cart, product_id)
        if item:
            item.quantity += qty
            item.unit_price_cents = unit_price_cents
        else:
            item = CartItem(product_id=product_id, quantity=qty, unit_price_cents=unit_price_cents)
            cart.items.append(item)
        self.db.flush()
        return item

    def remove_item(self, cart: Cart, item: CartItem):
        # delete-orphan cascade deletes the row on flush
        cart.items.remove(item)
        self.db.flush()

    def delete(self, cart: Cart):
        self.db.delete(cart)
        self.db.flush()
