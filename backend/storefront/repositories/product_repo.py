from typing import List, Optional, Tuple

from storefront.models.product import Product
from sqlalchemy import func
from sqlalchemy.orm import Session

SORTABLE = ("name", "price_cents", "sold", "rating_average", "created_at")


class ProductRepository:
    def __init__(self, db: Session):
        self.db = db

    def get(self, product_id: int, active_only: bool = True) -> Optional[Product]:
        qry = self.db.query(Product).filter(Product.id == product_id)
        if active_only:
            qry = qry.filter(Product.active == True)  # noqa: E712
        return qry.first()

    def get_by_sku(self, sku: str) -> Optional[Product]:
        return self.db.query(Product).filter(Product.sku == sku).first()

    def list(
        self,
        q: Optional[str] = None,
        page: int = 1,
        size: int = 20,
        sort: str = "name",
    ) -> Tuple[List[Product], int]:
        """
        Active products matching `q`, one page at a time.
        `sort` is a column name, prefixed with "-" for descending order.
        """
        query = self.db.query(Product).filter(Product.active == True)  # noqa: E712
        if q:
            like = f"%{q}%"
            query = query.filter(
                (Product.name.ilike(like)) | (Product.description.ilike(like))
            )
        total = query.with_entities(func.count()).scalar() or 0
        items = (
            query.order_by(*self._ordering(sort))
            .offset((page - 1) * size)
            .limit(size)
            .all()
        )
        return items, total

    @staticmethod
    def _ordering(sort: str):
        desc = sort.startswith("-")
        name = sort.lstrip("-")
        if name not in SORTABLE:
            raise ValueError(f"cannot sort products by {name}")
        col = getattr(Product, name)
        return (col.desc(), Product.id.desc()) if desc else (col, Product.id)

    def create_or_update(
        self,
        sku: str,
        name: str,
        price_cents: int,
        stock: int = 0,
        description: str = None,
    ) -> Product:
        p = self.get_by_sku(sku)
        if p:
            p.name = name
            p.price_cents = price_cents
            p.stock = stock
            p.description = description
        else:
            p = Product(
                sku=sku,
                name=name,
                price_cents=price_cents,
                stock=stock,
                description=description,
            )
            self.db.add(p)
        self.db.flush()
        return p

    def update(self, product: Product, **fields) -> Product:
        for name, value in fields.items():
            setattr(product, name, value)
        self.db.flush()
        return product
