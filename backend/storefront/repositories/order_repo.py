from typing import List, Optional

from sqlalchemy.orm import Session

from storefront.models.order import Order


class OrderRepository:
    def __init__(self, db: Session):
        self.db = db

    def get(self, order_id: int) -> Optional[Order]:
        return self.db.get(Order, order_id)

    def list(self, owner_id: Optional[int] = None) -> List[Order]:
        """All orders, newest first; restricted to one owner when owner_id is given."""
        qry = self.db.query(Order)
        if owner_id is not None:
            qry = qry.filter(Order.owner_id == owner_id)
        return qry.order_by(Order.created_at.desc(), Order.id.desc()).all()

    def add(self, order: Order) -> Order:
        self.db.add(order)
        self.db.flush()
        return order

    def delete(self, order: Order):
        self.db.delete(order)
        self.db.flush()
